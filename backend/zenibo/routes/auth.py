# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /register   create account (201, bearer token)
- POST /login      exchange credentials for a bearer token
- GET  /me         current user, subscription and plan capabilities
- POST /subscribe  activate a paid plan, optionally with a coupon
- POST /unsubscribe
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import auth_service, subscription_service
from ..services.auth_service import AuthenticationError, PasswordValidationError
from ..services.coupon_service import CouponInvalidError
from ..validation import ConflictError, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _me_payload(user) -> dict:
    ctx = g.request_context
    return {
        "user": user.to_dict(),
        "subscription": user.subscription_dict(),
        "effective_plan": ctx.plan,
        "capabilities": ctx.capabilities.to_dict(),
    }


@auth_bp.post("/register")
def register_route():
    """
    Request body: {"email", "password", "name"}

    Returns 201 {token, user}; 400 on missing/invalid fields; 409 when the
    email is already registered.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")
    name = data.get("name")

    if not all([email, password, name]):
        return jsonify({"error": "email, password and name are required"}), 400
    if not all(isinstance(v, str) for v in (email, password, name)):
        return jsonify({"error": "email, password and name must be strings"}), 400

    try:
        user, token = auth_service.register(email, password, name)
        return jsonify({"token": token, "user": user.to_dict()}), 201
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Registration failed")
        return jsonify({"error": "Registration failed"}), 500


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400
    if not all(isinstance(v, str) for v in (email, password)):
        return jsonify({"error": "email and password must be strings"}), 400

    try:
        user, token = auth_service.login(email, password)
    except AuthenticationError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Login failed"}), 500

    return jsonify({"token": token, "user": user.to_dict()})


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(_me_payload(g.current_user))


@auth_bp.post("/subscribe")
@require_auth
def subscribe_route():
    """
    Request body: {"plan": "basic" | "professional", "coupon_code": optional}

    No payment is collected; the plan is activated for SUBSCRIPTION_PERIOD_DAYS.
    """
    data = request.get_json(silent=True) or {}
    user = g.current_user

    try:
        result = subscription_service.subscribe(user, data.get("plan"), data.get("coupon_code") or None)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CouponInvalidError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Subscription failed")
        return jsonify({"error": "Subscription failed"}), 500

    return jsonify({
        "user": result.user.to_dict(),
        "subscription": result.user.subscription_dict(),
        "pricing": result.pricing_dict(),
    })


@auth_bp.post("/unsubscribe")
@require_auth
def unsubscribe_route():
    user = g.current_user
    try:
        subscription_service.unsubscribe(user)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to unsubscribe")
        return jsonify({"error": "Failed to unsubscribe"}), 500

    return jsonify({"user": user.to_dict(), "subscription": user.subscription_dict()})
