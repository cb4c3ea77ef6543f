# Overview: Flask API routes for transactions; filtered ledger listing with running balances and CRUD.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import transaction_service
from ..services.entitlement_service import PlanFeatureError, PlanLimitError
from ..services.filter_service import TransactionFilter
from ..validation import NotFoundError, ValidationError


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("/book/<int:book_id>")
@require_auth
def list_transactions_route(book_id: int):
    """
    List a book's transactions with running balances.

    Query parameters (all optional):
    - date_from, date_to: YYYY-MM-DD, inclusive
    - keyword: matches description or client, case-insensitive
    - min_amount, max_amount: inclusive, whole yen
    - account_subject_id
    - order: asc (default) | desc. Display order only; balances are always
      computed oldest-first.

    Returns:
        {book, transactions[], summary, filter_status, order}
    """
    try:
        spec = TransactionFilter.from_args(request.args)
        view = transaction_service.ledger(
            g.current_user.id,
            book_id,
            spec,
            order=(request.args.get("order") or "asc").lower(),
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(view.to_dict())


@transactions_bp.post("/book/<int:book_id>")
@require_auth
def create_transaction_route(book_id: int):
    """
    Request body:
    {
        "date": "2024-01-05",          // required
        "type": "income" | "expense",  // required
        "amount": 10000,               // required, whole yen, >= 0
        "description": "...",
        "client": "...",
        "account_subject_id": 1,
        "sub_account_id": 2,
        "tax_type": "taxable-10",
        "receipt_id": 3                // paid plans only
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        tx = transaction_service.create_transaction(g.current_user, book_id, data)
        return jsonify({"transaction": tx.to_dict()}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (PlanLimitError, PlanFeatureError) as e:
        return jsonify({"error": str(e), "code": e.code}), 403
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"error": "Failed to create transaction"}), 500


@transactions_bp.put("/<int:transaction_id>")
@require_auth
def update_transaction_route(transaction_id: int):
    data = request.get_json(silent=True) or {}
    try:
        tx = transaction_service.update_transaction(g.current_user, transaction_id, data)
        return jsonify({"transaction": tx.to_dict()})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PlanFeatureError as e:
        return jsonify({"error": str(e), "code": e.code}), 403
    except Exception:
        current_app.logger.exception("Failed to update transaction")
        return jsonify({"error": "Failed to update transaction"}), 500


@transactions_bp.delete("/<int:transaction_id>")
@require_auth
def delete_transaction_route(transaction_id: int):
    try:
        transaction_service.delete_transaction(g.current_user.id, transaction_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete transaction")
        return jsonify({"error": "Failed to delete transaction"}), 500
    return jsonify({"success": True})
