# Overview: Service-layer operations for transactions; the ledger store behind the cash book API.

"""
Transaction Service (Ledger Store)

Reads always go through the canonical order (ascending date, then id) before
filtering and accumulation, so the running balance of a row does not depend
on how the client asked for the list to be displayed.

Writes validate that every referenced account subject, sub-account and
receipt belongs to the same book, and enforce the plan's monthly ceiling.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import (
    AccountSubject,
    Book,
    Receipt,
    SubAccount,
    TAX_TYPES,
    TRANSACTION_TYPES,
    Transaction,
    User,
)
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_choice,
    enforce_rules_amount,
    validate_payload,
)
from . import balance_service, filter_service
from .book_service import get_owned_book
from .entitlement_service import check_can_attach_receipt, check_can_create_transaction
from .filter_service import TransactionFilter


TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={
        "date",
        "type",
        "description",
        "client",
        "amount",
        "account_subject_id",
        "sub_account_id",
        "tax_type",
        "receipt_id",
    },
    required_on_create={"date", "type", "amount"},
)


@dataclass
class LedgerView:
    book: Book
    spec: TransactionFilter
    result: balance_service.BalanceResult
    order: str = "asc"

    @property
    def rows(self) -> list:
        rows = list(self.result.rows)
        if self.order == "desc":
            rows.reverse()
        return rows

    def status_text(self) -> str:
        names = filter_service.subject_name_map(self.book.account_subjects)
        return filter_service.filter_status(self.spec, len(self.result.rows), names)

    def to_dict(self) -> dict:
        items = []
        for row in self.rows:
            data = row.transaction.to_dict()
            data["income"] = row.income
            data["expense"] = row.expense
            data["balance"] = row.balance
            items.append(data)
        return {
            "book": self.book.to_dict(),
            "transactions": items,
            "summary": self.result.summary_dict(),
            "filter_status": self.status_text(),
            "order": self.order,
        }


def book_transactions(book: Book) -> list[Transaction]:
    """All of a book's transactions in canonical order."""
    rows = (
        db.session.query(Transaction)
        .filter(Transaction.book_id == book.id)
        .order_by(Transaction.date.asc(), Transaction.id.asc())
        .all()
    )
    return balance_service.canonical_order(rows)


def ledger(user_id: int, book_id: int, spec: TransactionFilter | None = None, order: str = "asc") -> LedgerView:
    """
    Filtered view of a book with running balances.

    The running balance covers the filtered subset only, starting from the
    book's opening balance.
    """
    enforce_choice("order", order, ("asc", "desc"))
    book = get_owned_book(user_id, book_id)
    spec = spec or TransactionFilter()
    selected = filter_service.apply_filters(book_transactions(book), spec)
    result = balance_service.accumulate(selected, book.opening_balance or 0)
    return LedgerView(book=book, spec=spec, result=result, order=order)


def get_owned_transaction(user_id: int, transaction_id: int) -> Transaction:
    tx = (
        db.session.query(Transaction)
        .join(Book, Book.id == Transaction.book_id)
        .filter(Transaction.id == transaction_id, Book.user_id == user_id)
        .first()
    )
    if tx is None:
        raise NotFoundError("Transaction not found")
    return tx


def _normalize_text_fields(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    for key in ("description", "client"):
        if key in payload and payload[key] is None:
            payload[key] = ""
    if payload.get("tax_type") == "":
        payload["tax_type"] = None
    return payload


def _check_references(book: Book, tx: Transaction) -> None:
    if tx.account_subject_id is not None:
        subject = db.session.get(AccountSubject, tx.account_subject_id)
        if subject is None or subject.book_id != book.id:
            raise ValidationError("account_subject_id does not belong to this book")

    if tx.sub_account_id is not None:
        if tx.account_subject_id is None:
            raise ValidationError("sub_account_id requires account_subject_id")
        sub = db.session.get(SubAccount, tx.sub_account_id)
        if sub is None or sub.subject_id != tx.account_subject_id:
            raise ValidationError("sub_account_id does not belong to the account subject")

    if tx.receipt_id is not None:
        receipt = db.session.get(Receipt, tx.receipt_id)
        if receipt is None or receipt.book_id != book.id:
            raise ValidationError("receipt_id does not belong to this book")


def _enforce_transaction_rules(patch: dict) -> None:
    if "type" in patch:
        enforce_choice("type", patch["type"], TRANSACTION_TYPES)
    if "amount" in patch:
        enforce_rules_amount("amount", patch["amount"])
    if patch.get("tax_type") is not None:
        enforce_choice("tax_type", patch["tax_type"], TAX_TYPES)


def create_transaction(user: User, book_id: int, payload: dict) -> Transaction:
    book = get_owned_book(user.id, book_id)
    patch = validate_payload(
        model=Transaction,
        payload=_normalize_text_fields(payload),
        policy=TRANSACTION_POLICY,
        partial=False,
    )
    _enforce_transaction_rules(patch)

    check_can_create_transaction(user)
    if patch.get("receipt_id") is not None:
        check_can_attach_receipt(user)

    tx = Transaction(book_id=book.id, **patch)
    if tx.description is None:
        tx.description = ""
    if tx.client is None:
        tx.client = ""

    _check_references(book, tx)

    db.session.add(tx)
    db.session.commit()
    return tx


def update_transaction(user: User, transaction_id: int, payload: dict) -> Transaction:
    tx = get_owned_transaction(user.id, transaction_id)
    patch = validate_payload(
        model=Transaction,
        payload=_normalize_text_fields(payload),
        policy=TRANSACTION_POLICY,
        partial=True,
    )
    _enforce_transaction_rules(patch)

    if patch.get("receipt_id") is not None and patch["receipt_id"] != tx.receipt_id:
        check_can_attach_receipt(user)

    for key, value in patch.items():
        setattr(tx, key, value)

    # A sub-account only makes sense under its own subject
    if "account_subject_id" in patch and "sub_account_id" not in patch:
        if patch["account_subject_id"] is None:
            tx.sub_account_id = None

    try:
        with db.session.no_autoflush:
            _check_references(tx.book, tx)
    except ValidationError:
        db.session.rollback()
        raise

    db.session.commit()
    return tx


def delete_transaction(user_id: int, transaction_id: int) -> None:
    tx = get_owned_transaction(user_id, transaction_id)
    db.session.delete(tx)
    db.session.commit()
