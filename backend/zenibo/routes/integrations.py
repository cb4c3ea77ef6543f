# Overview: Placeholder routes for payment and email integrations (not implemented; answer 501).

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_auth


stripe_bp = Blueprint("stripe", __name__, url_prefix="/api/stripe")
emails_bp = Blueprint("emails", __name__, url_prefix="/api/emails")


def _not_implemented(feature: str, message: str):
    current_app.logger.info("%s requested user_id=%s (not implemented)", feature, g.current_user.id)
    return jsonify({"success": False, "message": message}), 501


@stripe_bp.post("/create-checkout-session")
@require_auth
def create_checkout_session_route():
    return _not_implemented("Stripe checkout", "Stripe checkout not yet implemented")


@stripe_bp.post("/customer-portal")
@require_auth
def customer_portal_route():
    return _not_implemented("Stripe customer portal", "Stripe customer portal not yet implemented")


@emails_bp.post("/monthly-report")
@require_auth
def monthly_report_route():
    return _not_implemented("Monthly report email", "Email sending not yet implemented")


@emails_bp.post("/test")
@require_auth
def test_email_route():
    return _not_implemented("Test email", "Email sending not yet implemented")
