from __future__ import annotations

from ..extensions import db
from zenibo.time_utils import to_utc_z


EXPORT_FORMATS = ("basic", "mf", "freee", "yayoi")
TRANSACTION_TYPES = ("income", "expense")
TAX_TYPES = ("taxable-10", "taxable-8", "non-taxable", "tax-exempt", "out-of-scope")


class Book(db.Model):
    """
    A cash book (出納帳): one user's ledger with its own opening balance.

    Deleting a book removes its transactions, account subjects, receipts and
    recipient assignments.
    """
    __tablename__ = "books"
    __table_args__ = (
        db.Index("ix_books_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    business_name = db.Column(db.String(255), nullable=False)
    account_name = db.Column(db.String(255), nullable=False)

    # Whole yen; may be negative (overdrawn petty cash)
    opening_balance = db.Column(db.BigInteger().with_variant(db.Integer, "sqlite"), nullable=False, default=0)
    export_format = db.Column(db.String(16), nullable=False, default="mf")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    user = db.relationship("User", back_populates="books")
    transactions = db.relationship(
        "Transaction",
        back_populates="book",
        lazy=True,
        cascade="all, delete-orphan",
    )
    account_subjects = db.relationship(
        "AccountSubject",
        back_populates="book",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="[AccountSubject.sort_order, AccountSubject.name]",
    )
    receipts = db.relationship(
        "Receipt",
        back_populates="book",
        lazy=True,
        cascade="all, delete-orphan",
    )
    recipient_assignments = db.relationship(
        "RecipientBookAssignment",
        back_populates="book",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Book id={self.id} business_name={self.business_name!r}>"

    @property
    def display_name(self) -> str:
        return f"{self.business_name}_{self.account_name}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "business_name": self.business_name,
            "account_name": self.account_name,
            "opening_balance": self.opening_balance,
            "export_format": self.export_format,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Transaction(db.Model):
    """
    One income or expense entry in a book.

    The amount is always non-negative; `type` decides which column it lands
    in, so an entry can never count as both income and expense.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_book_id", "book_id"),
        db.Index("ix_transactions_book_date", "book_id", "date"),
        db.CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
        db.CheckConstraint("type IN ('income', 'expense')", name="ck_transactions_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id", ondelete="CASCADE"), nullable=False)

    date = db.Column(db.Date, nullable=False)
    type = db.Column(db.String(16), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    client = db.Column(db.String(255), nullable=False, default="")
    amount = db.Column(db.BigInteger().with_variant(db.Integer, "sqlite"), nullable=False)

    account_subject_id = db.Column(
        db.Integer, db.ForeignKey("account_subjects.id", ondelete="SET NULL"), nullable=True
    )
    sub_account_id = db.Column(
        db.Integer, db.ForeignKey("sub_accounts.id", ondelete="SET NULL"), nullable=True
    )
    tax_type = db.Column(db.String(32), nullable=True)
    receipt_id = db.Column(db.Integer, db.ForeignKey("receipts.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    book = db.relationship("Book", back_populates="transactions")
    account_subject = db.relationship("AccountSubject")
    sub_account = db.relationship("SubAccount")
    receipt = db.relationship("Receipt")

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} {self.date} {self.type} {self.amount}>"

    @property
    def income(self) -> int:
        return self.amount if self.type == "income" else 0

    @property
    def expense(self) -> int:
        return self.amount if self.type == "expense" else 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "date": self.date.isoformat() if self.date else None,
            "type": self.type,
            "description": self.description,
            "client": self.client,
            "amount": self.amount,
            "account_subject_id": self.account_subject_id,
            "account_subject_name": self.account_subject.name if self.account_subject else None,
            "sub_account_id": self.sub_account_id,
            "sub_account_name": self.sub_account.name if self.sub_account else None,
            "tax_type": self.tax_type,
            "receipt_id": self.receipt_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class AccountSubject(db.Model):
    """勘定科目: first level of a book's classification taxonomy."""
    __tablename__ = "account_subjects"
    __table_args__ = (
        db.Index("ix_account_subjects_book_id", "book_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    book = db.relationship("Book", back_populates="account_subjects")
    sub_accounts = db.relationship(
        "SubAccount",
        back_populates="subject",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="[SubAccount.sort_order, SubAccount.name]",
    )

    def to_dict(self, include_sub_accounts: bool = False) -> dict:
        data = {
            "id": self.id,
            "book_id": self.book_id,
            "name": self.name,
            "sort_order": self.sort_order,
            "created_at": to_utc_z(self.created_at),
        }
        if include_sub_accounts:
            data["sub_accounts"] = [s.to_dict() for s in self.sub_accounts]
        return data


class SubAccount(db.Model):
    """補助科目: second level, owned by an account subject."""
    __tablename__ = "sub_accounts"
    __table_args__ = (
        db.Index("ix_sub_accounts_subject_id", "subject_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    subject_id = db.Column(db.Integer, db.ForeignKey("account_subjects.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    subject = db.relationship("AccountSubject", back_populates="sub_accounts")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "name": self.name,
            "sort_order": self.sort_order,
            "created_at": to_utc_z(self.created_at),
        }


class Receipt(db.Model):
    """Uploaded receipt image or PDF (証憑), stored on disk under RECEIPT_STORAGE_DIR."""
    __tablename__ = "receipts"
    __table_args__ = (
        db.Index("ix_receipts_book_id", "book_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(512), nullable=False)
    file_size = db.Column(db.Integer, nullable=True)
    mime_type = db.Column(db.String(128), nullable=True)
    uploaded_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    book = db.relationship("Book", back_populates="receipts")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "filename": self.filename,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "uploaded_at": to_utc_z(self.uploaded_at),
        }
