# Overview: Service-layer operations for receipts; plan-gated upload, listing, download and deletion.

"""
Receipt Service

Receipt files live on local disk under RECEIPT_STORAGE_DIR, one directory per
book. Only metadata is stored in the database. Uploading requires a plan with
the receipt capability; listing, downloading and deleting existing receipts
do not (a user who downgrades keeps access to what they uploaded).
"""

from __future__ import annotations

import os
import uuid

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..extensions import db
from ..models import Book, Receipt, Transaction, User
from ..validation import NotFoundError, ValidationError
from .book_service import get_owned_book
from .concurrency import atomic
from .entitlement_service import check_can_attach_receipt
from .transaction_service import get_owned_transaction


def storage_root() -> str:
    root = current_app.config.get("RECEIPT_STORAGE_DIR") or os.path.join(current_app.instance_path, "receipts")
    os.makedirs(root, exist_ok=True)
    return root


def list_receipts(user_id: int, book_id: int) -> list[Receipt]:
    book = get_owned_book(user_id, book_id)
    return (
        db.session.query(Receipt)
        .filter(Receipt.book_id == book.id)
        .order_by(Receipt.uploaded_at.desc(), Receipt.id.desc())
        .all()
    )


def get_owned_receipt(user_id: int, receipt_id: int) -> Receipt:
    receipt = (
        db.session.query(Receipt)
        .join(Book, Book.id == Receipt.book_id)
        .filter(Receipt.id == receipt_id, Book.user_id == user_id)
        .first()
    )
    if receipt is None:
        raise NotFoundError("Receipt not found")
    return receipt


def upload_receipt(
    user: User,
    book_id: int,
    file: FileStorage | None,
    transaction_id: int | None = None,
) -> Receipt:
    """
    Store an uploaded file and optionally link it to one of the book's transactions.
    """
    book = get_owned_book(user.id, book_id)
    check_can_attach_receipt(user)

    if file is None or not file.filename:
        raise ValidationError("file is required")

    allowed = current_app.config.get("RECEIPT_ALLOWED_MIME_TYPES") or ()
    mime_type = (file.mimetype or "").lower()
    if allowed and mime_type not in allowed:
        raise ValidationError(f"Unsupported file type: {mime_type or 'unknown'}")

    tx = None
    if transaction_id is not None:
        tx = get_owned_transaction(user.id, transaction_id)
        if tx.book_id != book.id:
            raise ValidationError("transaction_id does not belong to this book")

    original_name = secure_filename(file.filename) or "receipt"
    book_dir = os.path.join(storage_root(), str(book.id))
    os.makedirs(book_dir, exist_ok=True)
    path = os.path.join(book_dir, f"{uuid.uuid4().hex}_{original_name}")
    file.save(path)

    try:
        with atomic():
            receipt = Receipt(
                book_id=book.id,
                filename=original_name,
                file_path=path,
                file_size=os.path.getsize(path),
                mime_type=mime_type or None,
            )
            db.session.add(receipt)
            db.session.flush()
            if tx is not None:
                tx.receipt_id = receipt.id
    except Exception:
        _remove_file(path)
        raise

    current_app.logger.info("Receipt uploaded user_id=%s book_id=%s receipt_id=%s", user.id, book.id, receipt.id)
    return receipt


def _remove_file(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def receipt_file(user_id: int, receipt_id: int) -> tuple[Receipt, str]:
    receipt = get_owned_receipt(user_id, receipt_id)
    if not os.path.isfile(receipt.file_path):
        current_app.logger.warning("Receipt file missing receipt_id=%s", receipt.id)
        raise NotFoundError("Receipt file not found")
    return receipt, receipt.file_path


def delete_receipt(user_id: int, receipt_id: int) -> None:
    """Remove metadata and file; transactions that referenced it are unlinked."""
    receipt = get_owned_receipt(user_id, receipt_id)
    path = receipt.file_path

    with atomic():
        db.session.query(Transaction).filter(
            Transaction.receipt_id == receipt.id
        ).update({Transaction.receipt_id: None}, synchronize_session="fetch")
        db.session.delete(receipt)

    _remove_file(path)
