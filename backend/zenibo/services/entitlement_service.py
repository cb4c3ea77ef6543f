# Overview: Plan entitlements; maps subscription plans to capabilities and enforces them on writes.

"""
Entitlement Gate

Each subscription plan grants a fixed set of capabilities. The capabilities
are exposed to clients (GET /api/auth/me) for display, but the limits are
enforced here, in the server write path, so a modified client cannot bypass
them.

Plan table:

    plan          receipts  export format  books  tx/month   users  price
    free          no        basic only     1      30         1      ¥0
    basic         yes       any            3      unlimited  2      ¥330
    professional  yes       any            10     unlimited  4      ¥990

Unknown plan names resolve to free.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Book, Transaction, User
from ..time_utils import month_start, utcnow
from ..validation import ValidationError
from .export_service import EXPORT_FORMATS


DEFAULT_PLAN = "free"


class PlanFeatureError(Exception):
    """The plan does not include the requested feature."""
    code = "E4001"


class PlanLimitError(Exception):
    """A numeric plan ceiling (books, monthly transactions) has been reached."""
    code = "E4002"


@dataclass(frozen=True)
class Capabilities:
    plan: str
    can_attach_receipt: bool
    can_choose_export_format: bool
    max_books: int | None
    max_transactions_per_month: int | None
    max_users: int
    monthly_price: int

    def to_dict(self) -> dict:
        return asdict(self)


PLAN_CAPABILITIES: dict[str, Capabilities] = {
    "free": Capabilities(
        plan="free",
        can_attach_receipt=False,
        can_choose_export_format=False,
        max_books=1,
        max_transactions_per_month=30,
        max_users=1,
        monthly_price=0,
    ),
    "basic": Capabilities(
        plan="basic",
        can_attach_receipt=True,
        can_choose_export_format=True,
        max_books=3,
        max_transactions_per_month=None,
        max_users=2,
        monthly_price=330,
    ),
    "professional": Capabilities(
        plan="professional",
        can_attach_receipt=True,
        can_choose_export_format=True,
        max_books=10,
        max_transactions_per_month=None,
        max_users=4,
        monthly_price=990,
    ),
}


def capabilities_for(plan: str | None) -> Capabilities:
    return PLAN_CAPABILITIES.get(plan or DEFAULT_PLAN, PLAN_CAPABILITIES[DEFAULT_PLAN])


def plan_price(plan: str | None) -> int:
    return capabilities_for(plan).monthly_price


def effective_plan(user: User, now: datetime | None = None) -> str:
    """
    The plan whose capabilities currently apply to the user.

    A paid plan counts while the subscription is active, or cancelled with an
    end date still in the future (paid-through). Otherwise the user is on free.
    """
    plan = user.subscription_plan or DEFAULT_PLAN
    if plan not in PLAN_CAPABILITIES or plan == DEFAULT_PLAN:
        return DEFAULT_PLAN

    status = user.subscription_status
    if status == "active":
        return plan

    if status == "cancelled" and user.subscription_end_date is not None:
        now = now or utcnow()
        end = user.subscription_end_date
        if end.tzinfo is not None:
            end = end.replace(tzinfo=None)
        if end > now:
            return plan

    return DEFAULT_PLAN


def user_capabilities(user: User) -> Capabilities:
    return capabilities_for(effective_plan(user))


def count_books(user_id: int) -> int:
    return db.session.query(func.count(Book.id)).filter(Book.user_id == user_id).scalar() or 0


def count_transactions_this_month(user_id: int, now: datetime | None = None) -> int:
    """Transactions created since the start of the current UTC month, across all of the user's books."""
    since = month_start(now)
    return (
        db.session.query(func.count(Transaction.id))
        .join(Book, Book.id == Transaction.book_id)
        .filter(Book.user_id == user_id, Transaction.created_at >= since)
        .scalar()
        or 0
    )


def check_can_create_book(user: User) -> None:
    caps = user_capabilities(user)
    if caps.max_books is None:
        return
    existing = count_books(user.id)
    if existing >= caps.max_books:
        current_app.logger.warning(
            "Book limit reached user_id=%s plan=%s books=%s", user.id, caps.plan, existing
        )
        raise PlanLimitError(
            f"{caps.plan} plan allows at most {caps.max_books} book(s). Upgrade your plan to add more."
        )


def check_can_create_transaction(user: User, now: datetime | None = None) -> None:
    caps = user_capabilities(user)
    if caps.max_transactions_per_month is None:
        return
    used = count_transactions_this_month(user.id, now)
    if used >= caps.max_transactions_per_month:
        current_app.logger.warning(
            "Monthly transaction limit reached user_id=%s plan=%s used=%s", user.id, caps.plan, used
        )
        raise PlanLimitError(
            f"{caps.plan} plan allows {caps.max_transactions_per_month} transactions per month. "
            "Upgrade your plan to record more."
        )


def check_can_attach_receipt(user: User) -> None:
    caps = user_capabilities(user)
    if not caps.can_attach_receipt:
        raise PlanFeatureError("Receipt attachments require a paid plan")


def resolve_export_format(user: User, requested: str | None, book_format: str | None = None) -> str:
    """
    Decide the export dialect for a user.

    Free users always get "basic"; explicitly asking for another dialect is a
    PlanFeatureError. Paid users get the requested dialect, else the book's
    configured one, else "mf".
    """
    if requested is not None and requested not in EXPORT_FORMATS:
        raise ValidationError(f"format must be one of: {', '.join(EXPORT_FORMATS)}")

    caps = user_capabilities(user)
    if not caps.can_choose_export_format:
        if requested not in (None, "basic"):
            raise PlanFeatureError("Accounting-software export formats require a paid plan")
        return "basic"

    if requested:
        return requested
    if book_format in EXPORT_FORMATS:
        return book_format
    return "mf"
