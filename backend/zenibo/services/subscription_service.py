# Overview: Plan subscription changes; applies coupons and records the subscription window.

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..models import CouponRedemption, User
from ..time_utils import utcnow
from ..validation import ValidationError
from . import coupon_service
from .concurrency import atomic
from .entitlement_service import plan_price


PAID_PLANS = ("basic", "professional")


@dataclass
class SubscriptionResult:
    user: User
    original_price: int
    discount_amount: int
    final_price: int
    redemption: CouponRedemption | None = None

    def pricing_dict(self) -> dict:
        return {
            "original_price": self.original_price,
            "discount_amount": self.discount_amount,
            "final_price": self.final_price,
            "coupon_code": self.redemption.coupon.code if self.redemption else None,
        }


def subscribe(user: User, plan: str | None, coupon_code: str | None = None) -> SubscriptionResult:
    """
    Activate a paid plan for SUBSCRIPTION_PERIOD_DAYS.

    With a coupon_code, the coupon is redeemed in the same database
    transaction as the plan change; if the coupon turns out to be unusable
    nothing is written.

    No payment is taken (payment processing is not implemented).
    """
    if plan not in PAID_PLANS:
        raise ValidationError(f"plan must be one of: {', '.join(PAID_PLANS)}")

    price = plan_price(plan)
    now = utcnow()
    period = timedelta(days=int(current_app.config.get("SUBSCRIPTION_PERIOD_DAYS", 30)))

    with atomic():
        redemption = None
        discount = 0
        if coupon_code:
            redemption = coupon_service.redeem(coupon_code, user, plan, now)
            discount = coupon_service.discount_for(redemption.coupon, price)

        user.subscription_plan = plan
        user.subscription_status = "active"
        user.subscription_start_date = now
        user.subscription_end_date = now + period

    current_app.logger.info(
        "Subscription activated user_id=%s plan=%s coupon=%s", user.id, plan, bool(redemption)
    )
    return SubscriptionResult(
        user=user,
        original_price=price,
        discount_amount=discount,
        final_price=price - discount,
        redemption=redemption,
    )


def unsubscribe(user: User) -> User:
    """
    Cancel the subscription. The paid plan stays in effect until
    subscription_end_date (see entitlement_service.effective_plan).
    """
    if user.subscription_status != "active":
        raise ValidationError("No active subscription to cancel")

    with atomic():
        user.subscription_status = "cancelled"

    current_app.logger.info("Subscription cancelled user_id=%s plan=%s", user.id, user.subscription_plan)
    return user
