# Overview: Flask API routes for coupons; public validation plus admin-only management.

"""
Coupon Routes

- POST /validate is public: anyone can preview a code's discount before
  signing up.
- Everything else requires an authenticated admin.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_admin, require_auth
from ..models import PLANS
from ..services import coupon_service
from ..services.coupon_service import CouponInvalidError
from ..services.entitlement_service import plan_price
from ..validation import ConflictError, NotFoundError, ValidationError


coupons_bp = Blueprint("coupons", __name__, url_prefix="/api/coupons")


@coupons_bp.post("/validate")
def validate_coupon_route():
    """
    Request body: {"code": "WELCOME50", "plan": "basic"}

    Returns {valid: true, coupon, preview: {original_price, discount_amount,
    final_price}} or 400 {valid: false, error}.
    """
    data = request.get_json(silent=True) or {}
    plan = data.get("plan") or "basic"
    if plan not in PLANS:
        return jsonify({"valid": False, "error": f"plan must be one of: {', '.join(PLANS)}"}), 400

    try:
        coupon, preview = coupon_service.validate_coupon(data.get("code"), plan, plan_price(plan))
    except (ValidationError, CouponInvalidError) as e:
        return jsonify({"valid": False, "error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Coupon validation failed")
        return jsonify({"valid": False, "error": "Coupon validation failed"}), 500

    return jsonify({"valid": True, "coupon": coupon.to_dict(), "preview": preview})


@coupons_bp.get("")
@require_auth
@require_admin
def list_coupons_route():
    return jsonify({"coupons": [c.to_dict() for c in coupon_service.list_coupons()]})


@coupons_bp.post("")
@require_auth
@require_admin
def create_coupon_route():
    """
    Request body:
    {
        "code": "WELCOME50",                     // required, stored upper-case
        "discount_type": "percentage" | "fixed", // required
        "discount_value": 50,                    // required: percent (1-100) or yen
        "plan_restriction": "basic",             // optional
        "max_redemptions": 100,                  // optional
        "valid_from": "2024-01-01T00:00:00Z",    // optional
        "valid_until": "2024-12-31T23:59:59Z",   // optional
        "description": "..."                     // optional
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        coupon = coupon_service.create_coupon(data)
        return jsonify({"coupon": coupon.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create coupon")
        return jsonify({"error": "Failed to create coupon"}), 500


@coupons_bp.put("/<int:coupon_id>")
@require_auth
@require_admin
def update_coupon_route(coupon_id: int):
    data = request.get_json(silent=True) or {}
    try:
        coupon = coupon_service.update_coupon(coupon_id, data)
        return jsonify({"coupon": coupon.to_dict()})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update coupon")
        return jsonify({"error": "Failed to update coupon"}), 500


@coupons_bp.delete("/<int:coupon_id>")
@require_auth
@require_admin
def delete_coupon_route(coupon_id: int):
    try:
        coupon_service.delete_coupon(coupon_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete coupon")
        return jsonify({"error": "Failed to delete coupon"}), 500
    return jsonify({"success": True})


@coupons_bp.get("/stats")
@require_auth
@require_admin
def coupon_stats_route():
    return jsonify({"stats": coupon_service.coupon_stats()})


@coupons_bp.get("/redemptions")
@require_auth
@require_admin
def list_redemptions_route():
    """Query parameters: coupon_id, user_id (both optional)."""
    try:
        coupon_id = coupon_service.parse_optional_id("coupon_id", request.args.get("coupon_id"))
        user_id = coupon_service.parse_optional_id("user_id", request.args.get("user_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    redemptions = coupon_service.list_redemptions(coupon_id=coupon_id, user_id=user_id)
    return jsonify({"redemptions": [r.to_dict() for r in redemptions]})


@coupons_bp.get("/<int:coupon_id>/history")
@require_auth
@require_admin
def coupon_history_route(coupon_id: int):
    try:
        coupon, redemptions = coupon_service.coupon_history(coupon_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({
        "coupon": coupon.to_dict(),
        "redemptions": [r.to_dict(include_user=True) for r in redemptions],
    })


@coupons_bp.post("/<int:coupon_id>/sync-stripe")
@require_auth
@require_admin
def sync_stripe_route(coupon_id: int):
    return jsonify({"success": False, "message": "Stripe sync not yet implemented"}), 501
