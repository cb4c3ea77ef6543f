# Overview: Service-layer operations for report recipients and their book assignments.

"""
Recipient Service

Recipients belong to a user and may be assigned to any of that user's books.
Replacing a recipient's book set diffs old against new inside one atomic
unit: either every insert/delete lands or none does. Assigning a book that
is already assigned is a no-op.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Book, Recipient, RecipientBookAssignment, User
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_int,
    validate_email,
    validate_payload,
)
from .book_service import get_owned_book
from .concurrency import atomic


RECIPIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "sort_order"},
    required_on_create={"name", "email"},
)


def list_recipients(user_id: int) -> list[Recipient]:
    return (
        db.session.query(Recipient)
        .filter(Recipient.user_id == user_id)
        .order_by(Recipient.sort_order.asc(), Recipient.id.asc())
        .all()
    )


def list_for_book(user_id: int, book_id: int) -> list[Recipient]:
    book = get_owned_book(user_id, book_id)
    return (
        db.session.query(Recipient)
        .join(RecipientBookAssignment, RecipientBookAssignment.recipient_id == Recipient.id)
        .filter(RecipientBookAssignment.book_id == book.id, Recipient.user_id == user_id)
        .order_by(Recipient.sort_order.asc(), Recipient.id.asc())
        .all()
    )


def get_owned_recipient(user_id: int, recipient_id: int) -> Recipient:
    recipient = db.session.query(Recipient).filter_by(id=recipient_id, user_id=user_id).first()
    if recipient is None:
        raise NotFoundError("Recipient not found")
    return recipient


def _parse_book_ids(user_id: int, raw) -> set[int] | None:
    """None means "leave assignments unchanged". Every id must be one of the user's books."""
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValidationError("book_ids must be a list of book ids")

    ids = {coerce_int("book_ids", value) for value in raw}
    if not ids:
        return ids

    owned = {
        book_id
        for (book_id,) in db.session.query(Book.id).filter(Book.user_id == user_id, Book.id.in_(ids)).all()
    }
    if owned != ids:
        raise NotFoundError("Book not found")
    return ids


def _replace_assignments(recipient: Recipient, wanted: set[int]) -> None:
    current = {a.book_id: a for a in recipient.assignments}

    for book_id in set(current) - wanted:
        recipient.assignments.remove(current[book_id])

    for book_id in sorted(wanted - set(current)):
        recipient.assignments.append(RecipientBookAssignment(book_id=book_id))


def _validated(payload: dict, partial: bool) -> dict:
    patch = validate_payload(model=Recipient, payload=payload, policy=RECIPIENT_POLICY, partial=partial)
    if "email" in patch:
        patch["email"] = validate_email("email", patch["email"])
    return patch


def create_recipient(user: User, payload: dict) -> Recipient:
    patch = _validated(payload, partial=False)
    book_ids = _parse_book_ids(user.id, (payload or {}).get("book_ids"))

    with atomic():
        recipient = Recipient(user_id=user.id, **patch)
        if recipient.sort_order is None:
            recipient.sort_order = len(list_recipients(user.id))
        db.session.add(recipient)
        if book_ids:
            _replace_assignments(recipient, book_ids)
    return recipient


def update_recipient(user_id: int, recipient_id: int, payload: dict) -> Recipient:
    recipient = get_owned_recipient(user_id, recipient_id)
    patch = _validated(payload, partial=True)
    book_ids = _parse_book_ids(user_id, (payload or {}).get("book_ids"))

    with atomic():
        for key, value in patch.items():
            setattr(recipient, key, value)
        if book_ids is not None:
            _replace_assignments(recipient, book_ids)
    return recipient


def delete_recipient(user_id: int, recipient_id: int) -> None:
    recipient = get_owned_recipient(user_id, recipient_id)
    with atomic():
        db.session.delete(recipient)


def assign_book(user_id: int, recipient_id: int, book_id: int) -> Recipient:
    recipient = get_owned_recipient(user_id, recipient_id)
    book = get_owned_book(user_id, book_id)
    if book.id not in recipient.book_ids:
        with atomic():
            recipient.assignments.append(RecipientBookAssignment(book_id=book.id))
    return recipient


def unassign_book(user_id: int, recipient_id: int, book_id: int) -> Recipient:
    recipient = get_owned_recipient(user_id, recipient_id)
    book = get_owned_book(user_id, book_id)
    existing = [a for a in recipient.assignments if a.book_id == book.id]
    if existing:
        with atomic():
            for assignment in existing:
                recipient.assignments.remove(assignment)
    return recipient
