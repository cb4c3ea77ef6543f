# Overview: Flask API routes for receipt files; multipart upload, listing, download and deletion.

from flask import Blueprint, current_app, g, jsonify, request, send_file

from ..decorators import require_auth
from ..services import receipt_service
from ..services.entitlement_service import PlanFeatureError
from ..validation import NotFoundError, ValidationError, coerce_int


receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")


@receipts_bp.post("/book/<int:book_id>/upload")
@require_auth
def upload_receipt_route(book_id: int):
    """
    multipart/form-data:
    - file: image (jpeg/png/webp) or PDF, required
    - transaction_id: optional, links the receipt to that transaction

    Requires a plan with receipt attachments (403 E4001 otherwise).
    """
    try:
        raw_tx = request.form.get("transaction_id")
        transaction_id = coerce_int("transaction_id", raw_tx) if raw_tx else None
        receipt = receipt_service.upload_receipt(
            g.current_user,
            book_id,
            request.files.get("file"),
            transaction_id=transaction_id,
        )
        return jsonify({"receipt": receipt.to_dict()}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PlanFeatureError as e:
        return jsonify({"error": str(e), "code": e.code}), 403
    except Exception:
        current_app.logger.exception("Receipt upload failed")
        return jsonify({"error": "Receipt upload failed"}), 500


@receipts_bp.get("/book/<int:book_id>")
@require_auth
def list_receipts_route(book_id: int):
    try:
        receipts = receipt_service.list_receipts(g.current_user.id, book_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"receipts": [r.to_dict() for r in receipts]})


@receipts_bp.get("/<int:receipt_id>/download")
@require_auth
def download_receipt_route(receipt_id: int):
    try:
        receipt, path = receipt_service.receipt_file(g.current_user.id, receipt_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return send_file(
        path,
        mimetype=receipt.mime_type or "application/octet-stream",
        as_attachment=True,
        download_name=receipt.filename,
    )


@receipts_bp.delete("/<int:receipt_id>")
@require_auth
def delete_receipt_route(receipt_id: int):
    try:
        receipt_service.delete_receipt(g.current_user.id, receipt_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete receipt")
        return jsonify({"error": "Failed to delete receipt"}), 500
    return jsonify({"success": True})
