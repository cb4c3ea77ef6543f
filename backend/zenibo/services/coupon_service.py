# Overview: Service-layer operations for coupons; validation, price previews, redemption and admin management.

"""
Coupon Service

A coupon is usable when ALL of the following hold:
- it exists and is_active
- now is inside [valid_from, valid_until] (either bound optional)
- redemption_count < max_redemptions (cap optional, counted globally)
- plan_restriction is unset or equals the plan being purchased

Codes are case-insensitive and stored upper-case.

Redemption locks the coupon row, re-checks usability, increments
redemption_count and records a CouponRedemption. It does NOT commit: the
caller wraps it in concurrency.atomic() together with the subscription change.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import Coupon, CouponRedemption, DISCOUNT_TYPES, PLANS, User
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_int,
    enforce_choice,
    validate_payload,
)
from .concurrency import lock_for_update


class CouponInvalidError(Exception):
    """The coupon cannot be applied (unknown, inactive, expired, exhausted or wrong plan)."""


COUPON_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "code",
        "description",
        "discount_type",
        "discount_value",
        "plan_restriction",
        "max_redemptions",
        "valid_from",
        "valid_until",
        "is_active",
    },
    required_on_create={"code", "discount_type", "discount_value"},
)

COUPON_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "description",
        "plan_restriction",
        "max_redemptions",
        "valid_from",
        "valid_until",
        "is_active",
    },
)


def normalize_code(code: str | None) -> str:
    if code is not None and not isinstance(code, str):
        raise ValidationError("code must be a string")
    normalized = (code or "").strip().upper()
    if not normalized:
        raise ValidationError("code is required")
    return normalized


def _naive(dt: datetime | None) -> datetime | None:
    if dt is not None and dt.tzinfo is not None:
        return dt.replace(tzinfo=None)
    return dt


def unusable_reason(coupon: Coupon, plan: str | None, now: datetime | None = None) -> str | None:
    """Return why the coupon cannot be applied to `plan`, or None if it can."""
    now = now or utcnow()
    if not coupon.is_active:
        return "Coupon is not active"
    valid_from = _naive(coupon.valid_from)
    valid_until = _naive(coupon.valid_until)
    if valid_from is not None and now < valid_from:
        return "Coupon is not yet valid"
    if valid_until is not None and now > valid_until:
        return "Coupon has expired"
    if coupon.max_redemptions is not None and (coupon.redemption_count or 0) >= coupon.max_redemptions:
        return "Coupon redemption limit reached"
    if coupon.plan_restriction and coupon.plan_restriction != plan:
        return f"Coupon is only valid for the {coupon.plan_restriction} plan"
    return None


def discount_for(coupon: Coupon, price: int) -> int:
    """Discount in yen, never more than the price."""
    if coupon.discount_type == "percentage":
        return min(price, price * coupon.discount_value // 100)
    return min(price, coupon.discount_value)


def price_preview(coupon: Coupon, price: int) -> dict:
    discount = discount_for(coupon, price)
    return {
        "original_price": price,
        "discount_amount": discount,
        "final_price": price - discount,
    }


def get_coupon_by_code(code: str) -> Coupon | None:
    return db.session.query(Coupon).filter_by(code=normalize_code(code)).first()


def get_coupon(coupon_id: int) -> Coupon:
    coupon = db.session.get(Coupon, coupon_id)
    if coupon is None:
        raise NotFoundError("Coupon not found")
    return coupon


def validate_coupon(code: str, plan: str | None, price: int, now: datetime | None = None) -> tuple[Coupon, dict]:
    """
    Check a code against a plan and return (coupon, price preview).

    Raises CouponInvalidError with a human-readable reason.
    """
    coupon = get_coupon_by_code(code)
    if coupon is None:
        raise CouponInvalidError("Invalid or expired coupon")
    reason = unusable_reason(coupon, plan, now)
    if reason:
        raise CouponInvalidError(reason)
    return coupon, price_preview(coupon, price)


def redeem(code: str, user: User, plan: str, now: datetime | None = None) -> CouponRedemption:
    """
    Lock, re-check and consume one redemption. Caller owns the transaction.
    """
    normalized = normalize_code(code)
    coupon = lock_for_update(db.session.query(Coupon).filter_by(code=normalized)).first()
    if coupon is None:
        raise CouponInvalidError("Invalid or expired coupon")

    reason = unusable_reason(coupon, plan, now)
    if reason:
        raise CouponInvalidError(reason)

    coupon.redemption_count = (coupon.redemption_count or 0) + 1
    redemption = CouponRedemption(coupon=coupon, user_id=user.id, plan=plan)
    db.session.add(redemption)
    db.session.flush()

    current_app.logger.info(
        "Coupon redeemed code=%s user_id=%s plan=%s count=%s",
        coupon.code, user.id, plan, coupon.redemption_count,
    )
    return redemption


def _enforce_coupon_rules(coupon: Coupon) -> None:
    enforce_choice("discount_type", coupon.discount_type, DISCOUNT_TYPES)
    if coupon.discount_value is None or coupon.discount_value <= 0:
        raise ValidationError("discount_value must be > 0")
    if coupon.discount_type == "percentage" and coupon.discount_value > 100:
        raise ValidationError("discount_value must be between 1 and 100 for percentage coupons")
    if coupon.plan_restriction is not None:
        enforce_choice("plan_restriction", coupon.plan_restriction, PLANS)
    if coupon.max_redemptions is not None and coupon.max_redemptions < 1:
        raise ValidationError("max_redemptions must be >= 1")
    valid_from = _naive(coupon.valid_from)
    valid_until = _naive(coupon.valid_until)
    if valid_from is not None and valid_until is not None and valid_from > valid_until:
        raise ValidationError("valid_from must be before valid_until")


def _blank_to_none(patch: dict, *keys: str) -> None:
    for key in keys:
        if patch.get(key) == "":
            patch[key] = None


def list_coupons() -> list[Coupon]:
    return db.session.query(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


def create_coupon(payload: dict) -> Coupon:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    payload["code"] = normalize_code(payload.get("code"))

    patch = validate_payload(model=Coupon, payload=payload, policy=COUPON_CREATE_POLICY, partial=False)
    _blank_to_none(patch, "plan_restriction", "description")
    patch["discount_type"] = (patch.get("discount_type") or "").lower()

    if db.session.query(Coupon).filter_by(code=patch["code"]).first() is not None:
        raise ConflictError("Coupon code already exists")

    coupon = Coupon(**patch)
    if coupon.is_active is None:
        coupon.is_active = True
    coupon.redemption_count = 0
    _enforce_coupon_rules(coupon)

    db.session.add(coupon)
    db.session.commit()
    current_app.logger.info("Coupon created code=%s", coupon.code)
    return coupon


def update_coupon(coupon_id: int, payload: dict) -> Coupon:
    coupon = get_coupon(coupon_id)
    patch = validate_payload(model=Coupon, payload=payload, policy=COUPON_UPDATE_POLICY, partial=True)
    _blank_to_none(patch, "plan_restriction", "description")

    for key, value in patch.items():
        setattr(coupon, key, value)
    try:
        _enforce_coupon_rules(coupon)
    except ValidationError:
        db.session.rollback()
        raise

    db.session.commit()
    return coupon


def delete_coupon(coupon_id: int) -> None:
    coupon = get_coupon(coupon_id)
    db.session.delete(coupon)
    db.session.commit()


def coupon_stats() -> dict:
    total, active, redemptions = db.session.query(
        func.count(Coupon.id),
        func.sum(case((Coupon.is_active.is_(True), 1), else_=0)),
        func.sum(Coupon.redemption_count),
    ).one()
    return {
        "total_coupons": total or 0,
        "active_coupons": int(active or 0),
        "total_redemptions": int(redemptions or 0),
    }


def list_redemptions(coupon_id: int | None = None, user_id: int | None = None) -> list[CouponRedemption]:
    query = db.session.query(CouponRedemption)
    if coupon_id is not None:
        query = query.filter(CouponRedemption.coupon_id == coupon_id)
    if user_id is not None:
        query = query.filter(CouponRedemption.user_id == user_id)
    return query.order_by(CouponRedemption.redeemed_at.desc(), CouponRedemption.id.desc()).all()


def coupon_history(coupon_id: int) -> tuple[Coupon, list[CouponRedemption]]:
    coupon = get_coupon(coupon_id)
    return coupon, list_redemptions(coupon_id=coupon.id)


def parse_optional_id(key: str, raw: str | None) -> int | None:
    if raw is None or not str(raw).strip():
        return None
    return coerce_int(key, raw)
