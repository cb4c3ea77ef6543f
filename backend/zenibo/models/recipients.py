from __future__ import annotations

from ..extensions import db
from zenibo.time_utils import to_utc_z


class Recipient(db.Model):
    """
    Email contact that receives closing reports.

    Recipients belong to a user, not a book: one contact (e.g. the user's tax
    accountant) can be assigned to any number of that user's books.
    """
    __tablename__ = "recipients"
    __table_args__ = (
        db.Index("ix_recipients_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    user = db.relationship("User", back_populates="recipients")
    assignments = db.relationship(
        "RecipientBookAssignment",
        back_populates="recipient",
        lazy=True,
        cascade="all, delete-orphan",
    )

    @property
    def book_ids(self) -> set[int]:
        return {a.book_id for a in self.assignments}

    def to_dict(self, include_books: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "sort_order": self.sort_order,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_books:
            books = sorted((a.book for a in self.assignments), key=lambda b: b.id)
            data["assigned_books"] = [
                {"id": b.id, "business_name": b.business_name, "account_name": b.account_name}
                for b in books
            ]
        return data


class RecipientBookAssignment(db.Model):
    __tablename__ = "recipient_book_assignments"
    __table_args__ = (
        db.UniqueConstraint("recipient_id", "book_id", name="uq_recipient_book_assignments_pair"),
        db.Index("ix_recipient_book_assignments_recipient_id", "recipient_id"),
        db.Index("ix_recipient_book_assignments_book_id", "book_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey("recipients.id", ondelete="CASCADE"), nullable=False)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    recipient = db.relationship("Recipient", back_populates="assignments")
    book = db.relationship("Book", back_populates="recipient_assignments")
