# Overview: Flask API routes for account subjects, sub-accounts and report recipients.

"""
Account Routes

Subjects (勘定科目) and sub-accounts (補助科目) are scoped to a book;
recipients are scoped to the user and assigned to books.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import account_service, recipient_service
from ..validation import NotFoundError, ValidationError


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


# Account subjects

@accounts_bp.get("/subjects/book/<int:book_id>")
@require_auth
def list_subjects_route(book_id: int):
    try:
        subjects = account_service.list_subjects(g.current_user.id, book_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"subjects": [s.to_dict(include_sub_accounts=True) for s in subjects]})


@accounts_bp.post("/subjects/book/<int:book_id>")
@require_auth
def create_subject_route(book_id: int):
    data = request.get_json(silent=True) or {}
    try:
        subject = account_service.create_subject(g.current_user.id, book_id, data)
        return jsonify({"subject": subject.to_dict(include_sub_accounts=True)}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create account subject")
        return jsonify({"error": "Failed to create account subject"}), 500


@accounts_bp.put("/subjects/<int:subject_id>")
@require_auth
def update_subject_route(subject_id: int):
    data = request.get_json(silent=True) or {}
    try:
        subject = account_service.update_subject(g.current_user.id, subject_id, data)
        return jsonify({"subject": subject.to_dict(include_sub_accounts=True)})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update account subject")
        return jsonify({"error": "Failed to update account subject"}), 500


@accounts_bp.delete("/subjects/<int:subject_id>")
@require_auth
def delete_subject_route(subject_id: int):
    """Deletes the subject and its sub-accounts; transactions keep their amounts but lose the reference."""
    try:
        account_service.delete_subject(g.current_user.id, subject_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete account subject")
        return jsonify({"error": "Failed to delete account subject"}), 500
    return jsonify({"success": True})


# Sub-accounts

@accounts_bp.post("/sub-accounts/subject/<int:subject_id>")
@require_auth
def create_sub_account_route(subject_id: int):
    data = request.get_json(silent=True) or {}
    try:
        sub = account_service.create_sub_account(g.current_user.id, subject_id, data)
        return jsonify({"sub_account": sub.to_dict()}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create sub-account")
        return jsonify({"error": "Failed to create sub-account"}), 500


@accounts_bp.delete("/sub-accounts/<int:sub_account_id>")
@require_auth
def delete_sub_account_route(sub_account_id: int):
    try:
        account_service.delete_sub_account(g.current_user.id, sub_account_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete sub-account")
        return jsonify({"error": "Failed to delete sub-account"}), 500
    return jsonify({"success": True})


# Recipients

@accounts_bp.get("/recipients")
@require_auth
def list_recipients_route():
    recipients = recipient_service.list_recipients(g.current_user.id)
    return jsonify({"recipients": [r.to_dict(include_books=True) for r in recipients]})


@accounts_bp.post("/recipients")
@require_auth
def create_recipient_route():
    """
    Request body: {"name", "email", "sort_order"?, "book_ids"?: [int]}

    Every id in book_ids must be one of the caller's books (404 otherwise).
    """
    data = request.get_json(silent=True) or {}
    try:
        recipient = recipient_service.create_recipient(g.current_user, data)
        return jsonify({"recipient": recipient.to_dict(include_books=True)}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create recipient")
        return jsonify({"error": "Failed to create recipient"}), 500


@accounts_bp.put("/recipients/<int:recipient_id>")
@require_auth
def update_recipient_route(recipient_id: int):
    """When book_ids is present it replaces the whole assignment set."""
    data = request.get_json(silent=True) or {}
    try:
        recipient = recipient_service.update_recipient(g.current_user.id, recipient_id, data)
        return jsonify({"recipient": recipient.to_dict(include_books=True)})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update recipient")
        return jsonify({"error": "Failed to update recipient"}), 500


@accounts_bp.delete("/recipients/<int:recipient_id>")
@require_auth
def delete_recipient_route(recipient_id: int):
    try:
        recipient_service.delete_recipient(g.current_user.id, recipient_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete recipient")
        return jsonify({"error": "Failed to delete recipient"}), 500
    return jsonify({"success": True})


@accounts_bp.post("/recipients/<int:recipient_id>/books/<int:book_id>")
@require_auth
def assign_book_route(recipient_id: int, book_id: int):
    try:
        recipient = recipient_service.assign_book(g.current_user.id, recipient_id, book_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to assign book to recipient")
        return jsonify({"error": "Failed to assign book to recipient"}), 500
    return jsonify({"recipient": recipient.to_dict(include_books=True)})


@accounts_bp.delete("/recipients/<int:recipient_id>/books/<int:book_id>")
@require_auth
def unassign_book_route(recipient_id: int, book_id: int):
    try:
        recipient = recipient_service.unassign_book(g.current_user.id, recipient_id, book_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to unassign book from recipient")
        return jsonify({"error": "Failed to unassign book from recipient"}), 500
    return jsonify({"recipient": recipient.to_dict(include_books=True)})


@accounts_bp.get("/recipients/book/<int:book_id>")
@require_auth
def list_book_recipients_route(book_id: int):
    try:
        recipients = recipient_service.list_for_book(g.current_user.id, book_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"recipients": [r.to_dict() for r in recipients]})
