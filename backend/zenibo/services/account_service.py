# Overview: Service-layer operations for account subjects and sub-accounts (two-level taxonomy per book).

from __future__ import annotations

from ..extensions import db
from ..models import AccountSubject, Book, SubAccount, Transaction
from ..validation import ModelValidationPolicy, NotFoundError, validate_payload
from .book_service import get_owned_book
from .concurrency import atomic


SUBJECT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "sort_order"},
    required_on_create={"name"},
)

SUB_ACCOUNT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "sort_order"},
    required_on_create={"name"},
)


def list_subjects(user_id: int, book_id: int) -> list[AccountSubject]:
    book = get_owned_book(user_id, book_id)
    return list(book.account_subjects)


def get_owned_subject(user_id: int, subject_id: int) -> AccountSubject:
    subject = (
        db.session.query(AccountSubject)
        .join(Book, Book.id == AccountSubject.book_id)
        .filter(AccountSubject.id == subject_id, Book.user_id == user_id)
        .first()
    )
    if subject is None:
        raise NotFoundError("Account subject not found")
    return subject


def get_owned_sub_account(user_id: int, sub_account_id: int) -> SubAccount:
    sub = (
        db.session.query(SubAccount)
        .join(AccountSubject, AccountSubject.id == SubAccount.subject_id)
        .join(Book, Book.id == AccountSubject.book_id)
        .filter(SubAccount.id == sub_account_id, Book.user_id == user_id)
        .first()
    )
    if sub is None:
        raise NotFoundError("Sub-account not found")
    return sub


def _next_sort_order(siblings) -> int:
    return max((s.sort_order or 0 for s in siblings), default=-1) + 1


def create_subject(user_id: int, book_id: int, payload: dict) -> AccountSubject:
    book = get_owned_book(user_id, book_id)
    patch = validate_payload(model=AccountSubject, payload=payload, policy=SUBJECT_POLICY, partial=False)
    if patch.get("sort_order") is None:
        patch["sort_order"] = _next_sort_order(book.account_subjects)

    subject = AccountSubject(book_id=book.id, **patch)
    db.session.add(subject)
    db.session.commit()
    return subject


def update_subject(user_id: int, subject_id: int, payload: dict) -> AccountSubject:
    subject = get_owned_subject(user_id, subject_id)
    patch = validate_payload(model=AccountSubject, payload=payload, policy=SUBJECT_POLICY, partial=True)
    for key, value in patch.items():
        setattr(subject, key, value)
    db.session.commit()
    return subject


def delete_subject(user_id: int, subject_id: int) -> None:
    """
    Delete a subject and its sub-accounts. Transactions that referenced either
    keep their amounts but lose the classification.
    """
    subject = get_owned_subject(user_id, subject_id)
    sub_ids = [s.id for s in subject.sub_accounts]

    with atomic():
        db.session.query(Transaction).filter(
            Transaction.account_subject_id == subject.id
        ).update(
            {Transaction.account_subject_id: None, Transaction.sub_account_id: None},
            synchronize_session="fetch",
        )
        if sub_ids:
            db.session.query(Transaction).filter(
                Transaction.sub_account_id.in_(sub_ids)
            ).update({Transaction.sub_account_id: None}, synchronize_session="fetch")
        db.session.delete(subject)


def create_sub_account(user_id: int, subject_id: int, payload: dict) -> SubAccount:
    subject = get_owned_subject(user_id, subject_id)
    patch = validate_payload(model=SubAccount, payload=payload, policy=SUB_ACCOUNT_POLICY, partial=False)
    if patch.get("sort_order") is None:
        patch["sort_order"] = _next_sort_order(subject.sub_accounts)

    sub = SubAccount(subject_id=subject.id, **patch)
    db.session.add(sub)
    db.session.commit()
    return sub


def delete_sub_account(user_id: int, sub_account_id: int) -> None:
    sub = get_owned_sub_account(user_id, sub_account_id)
    with atomic():
        db.session.query(Transaction).filter(
            Transaction.sub_account_id == sub.id
        ).update({Transaction.sub_account_id: None}, synchronize_session="fetch")
        db.session.delete(sub)
