from __future__ import annotations

from ..extensions import db
from zenibo.time_utils import to_utc_z


DISCOUNT_TYPES = ("percentage", "fixed")


class Coupon(db.Model):
    """
    Discount codes for plan subscriptions.

    Global (not owned by any user). discount_value is a whole percent for
    "percentage" coupons and whole yen for "fixed" coupons.

    A coupon is usable only while active, inside its validity window, under
    its redemption cap and (if restricted) for the matching plan. The cap is
    global: redemption_count counts every user's redemptions.
    """
    __tablename__ = "coupons"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    description = db.Column(db.String(255), nullable=True)

    discount_type = db.Column(db.String(16), nullable=False)  # percentage, fixed
    discount_value = db.Column(db.Integer, nullable=False)

    plan_restriction = db.Column(db.String(32), nullable=True)
    max_redemptions = db.Column(db.Integer, nullable=True)
    redemption_count = db.Column(db.Integer, nullable=False, default=0)

    valid_from = db.Column(db.DateTime(timezone=True), nullable=True)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    stripe_coupon_id = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    redemptions = db.relationship(
        "CouponRedemption",
        back_populates="coupon",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "plan_restriction": self.plan_restriction,
            "max_redemptions": self.max_redemptions,
            "redemption_count": self.redemption_count,
            "valid_from": to_utc_z(self.valid_from),
            "valid_until": to_utc_z(self.valid_until),
            "is_active": self.is_active,
            "stripe_coupon_id": self.stripe_coupon_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CouponRedemption(db.Model):
    __tablename__ = "coupon_redemptions"
    __table_args__ = (
        db.Index("ix_coupon_redemptions_coupon_id", "coupon_id"),
        db.Index("ix_coupon_redemptions_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    plan = db.Column(db.String(32), nullable=True)
    redeemed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    coupon = db.relationship("Coupon", back_populates="redemptions")
    user = db.relationship("User")

    def to_dict(self, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "coupon_id": self.coupon_id,
            "user_id": self.user_id,
            "plan": self.plan,
            "redeemed_at": to_utc_z(self.redeemed_at),
        }
        if include_user and self.user is not None:
            data["email"] = self.user.email
            data["name"] = self.user.name
        return data
