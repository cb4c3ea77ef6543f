# Overview: Flask API routes for cash books, monthly closing and CSV export.

"""
Book Routes

All routes require authentication and only ever see the caller's own books;
another user's book id answers 404 exactly like a missing one.
"""

import io

from flask import Blueprint, current_app, g, jsonify, request, send_file

from ..decorators import require_auth
from ..services import book_service, closing_service
from ..services.entitlement_service import PlanFeatureError, PlanLimitError
from ..services.export_service import NoDataError
from ..validation import NotFoundError, ValidationError


books_bp = Blueprint("books", __name__, url_prefix="/api/books")


@books_bp.get("")
@require_auth
def list_books_route():
    books = book_service.list_books(g.current_user.id)
    return jsonify({"books": [b.to_dict() for b in books], "count": len(books)})


@books_bp.get("/<int:book_id>")
@require_auth
def get_book_route(book_id: int):
    try:
        book = book_service.get_owned_book(g.current_user.id, book_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"book": book.to_dict()})


@books_bp.post("")
@require_auth
def create_book_route():
    """
    Request body:
    {
        "business_name": "...",   // required
        "account_name": "...",    // required
        "opening_balance": 0,     // optional, whole yen, may be negative
        "export_format": "mf"     // optional: basic | mf | freee | yayoi
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        book = book_service.create_book(g.current_user, data)
        return jsonify({"book": book.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PlanLimitError as e:
        return jsonify({"error": str(e), "code": e.code}), 403
    except Exception:
        current_app.logger.exception("Failed to create book")
        return jsonify({"error": "Failed to create book"}), 500


@books_bp.put("/<int:book_id>")
@require_auth
def update_book_route(book_id: int):
    data = request.get_json(silent=True) or {}
    try:
        book = book_service.update_book(g.current_user.id, book_id, data)
        return jsonify({"book": book.to_dict()})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update book")
        return jsonify({"error": "Failed to update book"}), 500


@books_bp.delete("/<int:book_id>")
@require_auth
def delete_book_route(book_id: int):
    try:
        book_service.delete_book(g.current_user.id, book_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete book")
        return jsonify({"error": "Failed to delete book"}), 500
    return jsonify({"success": True})


@books_bp.get("/<int:book_id>/closing")
@require_auth
def closing_preview_route(book_id: int):
    """
    Monthly closing summary.

    Query parameters:
    - start: first month, YYYY-MM (required)
    - end: last month, YYYY-MM (defaults to start)
    """
    try:
        book = book_service.get_owned_book(g.current_user.id, book_id)
        start, end = closing_service.month_range(request.args.get("start"), request.args.get("end"))
        summary = closing_service.preview(book, start, end)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NoDataError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"book": book.to_dict(), "closing": summary.to_dict()})


@books_bp.get("/<int:book_id>/export")
@require_auth
def export_route(book_id: int):
    """
    Download the month range as CSV.

    Query parameters:
    - start / end: as for /closing
    - format: basic | mf | freee | yayoi (optional; free plans get basic)
    """
    user = g.current_user
    try:
        book = book_service.get_owned_book(user.id, book_id)
        start, end = closing_service.month_range(request.args.get("start"), request.args.get("end"))
        result = closing_service.export(book, user, start, end, request.args.get("format") or None)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PlanFeatureError as e:
        return jsonify({"error": str(e), "code": e.code}), 403
    except NoDataError as e:
        return jsonify({"error": str(e)}), 404

    current_app.logger.info(
        "CSV exported user_id=%s book_id=%s format=%s", user.id, book.id, result.dialect
    )
    return send_file(
        io.BytesIO(result.content.encode("utf-8")),
        mimetype="text/csv; charset=utf-8",
        as_attachment=True,
        download_name=result.filename,
    )
