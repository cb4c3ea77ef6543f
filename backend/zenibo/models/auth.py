from __future__ import annotations

from ..extensions import db
from zenibo.time_utils import to_utc_z


PLANS = ("free", "basic", "professional")
SUBSCRIPTION_STATUSES = ("inactive", "active", "cancelled")


class User(db.Model):
    """
    User accounts: the tenant boundary.

    Every Book and Recipient belongs to exactly one user, and every
    ownership check in the services resolves back to users.id.

    Users are never hard-deleted; deactivate with is_active=False.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_email", "email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False, unique=True)
    name = db.Column(db.String(120), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    subscription_plan = db.Column(db.String(32), nullable=False, default="free")
    subscription_status = db.Column(db.String(32), nullable=False, default="inactive")
    subscription_start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    subscription_end_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Reserved for the payment integration (not implemented)
    stripe_customer_id = db.Column(db.String(255), nullable=True)
    stripe_subscription_id = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Coupon management is restricted to admins
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    books = db.relationship(
        "Book",
        back_populates="user",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="Book.created_at.desc()",
    )
    recipients = db.relationship(
        "Recipient",
        back_populates="user",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def subscription_dict(self) -> dict:
        return {
            "plan": self.subscription_plan or "free",
            "status": self.subscription_status or "inactive",
            "start_date": to_utc_z(self.subscription_start_date),
            "end_date": to_utc_z(self.subscription_end_date),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "subscription_plan": self.subscription_plan or "free",
            "subscription_status": self.subscription_status or "inactive",
            "subscription_start_date": to_utc_z(self.subscription_start_date),
            "subscription_end_date": to_utc_z(self.subscription_end_date),
            "is_admin": self.is_admin,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }
