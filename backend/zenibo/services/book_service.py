# Overview: Service-layer operations for books; ownership-scoped CRUD on cash books.

"""
Book Service

Every lookup is scoped by user_id. A book that does not exist and a book that
belongs to another user both raise NotFoundError, so callers cannot discover
other tenants' ids.
"""

from __future__ import annotations

import os

from flask import current_app

from ..extensions import db
from ..models import Book, EXPORT_FORMATS, User
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    enforce_choice,
    enforce_rules_amount,
    validate_payload,
)
from .entitlement_service import check_can_create_book


BOOK_POLICY = ModelValidationPolicy(
    writable_fields={"business_name", "account_name", "opening_balance", "export_format"},
    required_on_create={"business_name", "account_name"},
)


def get_owned_book(user_id: int, book_id: int) -> Book:
    book = db.session.query(Book).filter_by(id=book_id, user_id=user_id).first()
    if book is None:
        raise NotFoundError("Book not found")
    return book


def list_books(user_id: int) -> list[Book]:
    return (
        db.session.query(Book)
        .filter(Book.user_id == user_id)
        .order_by(Book.created_at.desc(), Book.id.desc())
        .all()
    )


def _enforce_book_rules(patch: dict) -> None:
    if "opening_balance" in patch:
        enforce_rules_amount("opening_balance", patch["opening_balance"], allow_negative=True)
    if "export_format" in patch:
        enforce_choice("export_format", patch["export_format"], EXPORT_FORMATS)


def create_book(user: User, payload: dict) -> Book:
    patch = validate_payload(model=Book, payload=payload, policy=BOOK_POLICY, partial=False)
    _enforce_book_rules(patch)
    check_can_create_book(user)

    book = Book(user_id=user.id, **patch)
    if book.opening_balance is None:
        book.opening_balance = 0
    if not book.export_format:
        book.export_format = "mf"

    db.session.add(book)
    db.session.commit()
    current_app.logger.info("Book created user_id=%s book_id=%s", user.id, book.id)
    return book


def update_book(user_id: int, book_id: int, payload: dict) -> Book:
    book = get_owned_book(user_id, book_id)
    patch = validate_payload(model=Book, payload=payload, policy=BOOK_POLICY, partial=True)
    _enforce_book_rules(patch)

    for key, value in patch.items():
        setattr(book, key, value)
    db.session.commit()
    return book


def delete_book(user_id: int, book_id: int) -> None:
    """Removes the book together with its transactions, subjects, receipts and assignments."""
    book = get_owned_book(user_id, book_id)
    receipt_paths = [r.file_path for r in book.receipts]
    db.session.delete(book)
    db.session.commit()
    _remove_receipt_files(receipt_paths)
    current_app.logger.info(
        "Book deleted user_id=%s book_id=%s receipts_removed=%s", user_id, book_id, len(receipt_paths)
    )


def _remove_receipt_files(paths: list[str]) -> None:
    # Files go only after the commit; a rolled-back delete keeps them.
    for path in paths:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
    for directory in {os.path.dirname(p) for p in paths}:
        try:
            os.rmdir(directory)
        except OSError:
            current_app.logger.warning("Receipt directory not removed: %s", directory)
