# Overview: Request decorators for API routes; bearer-token authentication and admin gating.

from dataclasses import dataclass
from functools import wraps

from flask import g, jsonify, request

from .models import User
from .services import auth_service, entitlement_service
from .services.auth_service import AuthenticationError
from .services.entitlement_service import Capabilities


@dataclass
class RequestContext:
    """
    Per-request identity, resolved once by require_auth.

    Stored on flask.g so handlers and services read the caller's identity
    and plan from one explicit place.
    """
    user: User
    plan: str
    capabilities: Capabilities


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets:
    - g.current_user: the authenticated User
    - g.request_context: RequestContext(user, effective plan, capabilities)

    Returns 401 when the header is missing, the token is malformed, tampered
    with or expired, or the user no longer exists / is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        try:
            user = auth_service.user_for_token(token)
        except AuthenticationError:
            return jsonify({"error": "Invalid or expired token"}), 401

        plan = entitlement_service.effective_plan(user)
        g.current_user = user
        g.request_context = RequestContext(
            user=user,
            plan=plan,
            capabilities=entitlement_service.capabilities_for(plan),
        )
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require an admin user (coupon management).

    Must be applied after @require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, "current_user"):
            return jsonify({"error": "Authentication required"}), 401

        if not g.current_user.is_admin:
            return jsonify({"error": "Admin access required"}), 403

        return f(*args, **kwargs)

    return decorated_function
