from __future__ import annotations
from datetime import date, datetime
from zenibo.time_utils import parse_iso_datetime, parse_iso_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# ¥9,999,999,999 keeps sums well inside a 64-bit integer column
MAX_AMOUNT_YEN = 9_999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate email)."""


class NotFoundError(LookupError):
    """
    404-level: entity absent OR not owned by the caller.

    The two cases are deliberately indistinguishable to avoid leaking existence.
    """


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_date(key: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            d = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")
        if d is None:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")
        return d
    raise ValidationError(f"{key} must be a date")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # DateTime must be checked before Date (DateTime is not a Date subclass,
    # but keep the order explicit)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        return coerce_date(col.key, value)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)

    Unknown keys are ignored rather than rejected: the web client sends whole
    form objects that include display-only fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields or k not in cols:
            continue
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "" and k in required:
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_amount(key: str, amount: int | None, *, allow_negative: bool = False) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Amounts are whole yen; there are no fractional subunits.
    """
    if amount is None:
        return
    if not isinstance(amount, int):
        raise ValidationError(f"{key} must be an integer")
    if not allow_negative and amount < 0:
        raise ValidationError(f"{key} must be >= 0")
    if abs(amount) > MAX_AMOUNT_YEN:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT_YEN:,}")


def enforce_choice(key: str, value: str | None, choices) -> None:
    if value is None:
        return
    if value not in choices:
        raise ValidationError(f"{key} must be one of: {', '.join(choices)}")


def validate_email(key: str, value: str | None) -> str:
    email = (value or "").strip()
    if not email or "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError(f"{key} must be a valid email address")
    return email
