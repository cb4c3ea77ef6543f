# Overview: Pytest coverage for plan entitlements.

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from zenibo.services.entitlement_service import (
    PlanFeatureError,
    PlanLimitError,
    capabilities_for,
    check_can_attach_receipt,
    check_can_create_book,
    check_can_create_transaction,
    effective_plan,
    plan_price,
    resolve_export_format,
)
from zenibo.validation import ValidationError

from conftest import make_book, make_transaction, make_user


NOW = datetime(2024, 6, 15, 12, 0, 0)


def _user(plan, status="active", end=None):
    return SimpleNamespace(subscription_plan=plan, subscription_status=status, subscription_end_date=end)


class TestCapabilities:
    def test_free_plan(self):
        caps = capabilities_for("free")
        assert caps.can_attach_receipt is False
        assert caps.can_choose_export_format is False
        assert caps.max_books == 1
        assert caps.max_transactions_per_month == 30
        assert caps.max_users == 1

    @pytest.mark.parametrize(
        "plan,books,users,price",
        [("basic", 3, 2, 330), ("professional", 10, 4, 990)],
    )
    def test_paid_plans(self, plan, books, users, price):
        caps = capabilities_for(plan)
        assert caps.can_attach_receipt is True
        assert caps.can_choose_export_format is True
        assert caps.max_books == books
        assert caps.max_transactions_per_month is None
        assert caps.max_users == users
        assert plan_price(plan) == price

    @pytest.mark.parametrize("plan", [None, "", "enterprise"])
    def test_unknown_plan_resolves_to_free(self, plan):
        assert capabilities_for(plan).plan == "free"


class TestEffectivePlan:
    def test_active_paid_plan(self):
        assert effective_plan(_user("basic"), NOW) == "basic"

    def test_inactive_paid_plan_is_free(self):
        assert effective_plan(_user("professional", status="inactive"), NOW) == "free"

    def test_cancelled_but_paid_through(self):
        user = _user("basic", status="cancelled", end=NOW + timedelta(days=3))
        assert effective_plan(user, NOW) == "basic"

    def test_cancelled_and_lapsed(self):
        user = _user("basic", status="cancelled", end=NOW - timedelta(seconds=1))
        assert effective_plan(user, NOW) == "free"

    def test_unknown_plan(self):
        assert effective_plan(_user("gold"), NOW) == "free"


class TestExportFormatResolution:
    def test_free_user_gets_basic(self):
        assert resolve_export_format(_user("free"), None, "mf") == "basic"
        assert resolve_export_format(_user("free"), "basic") == "basic"

    @pytest.mark.parametrize("requested", ["mf", "freee", "yayoi"])
    def test_free_user_cannot_choose_dialect(self, requested):
        with pytest.raises(PlanFeatureError) as exc:
            resolve_export_format(_user("free"), requested)
        assert exc.value.code == "E4001"

    def test_paid_user_precedence(self):
        paid = _user("basic")
        assert resolve_export_format(paid, "yayoi", "freee") == "yayoi"
        assert resolve_export_format(paid, None, "freee") == "freee"
        assert resolve_export_format(paid, None, None) == "mf"

    def test_invalid_format_rejected(self):
        with pytest.raises(ValidationError):
            resolve_export_format(_user("basic"), "excel")


class TestWriteGates:
    def test_free_user_limited_to_one_book(self, user_a):
        check_can_create_book(user_a)
        make_book(user_a)
        with pytest.raises(PlanLimitError) as exc:
            check_can_create_book(user_a)
        assert exc.value.code == "E4002"

    def test_basic_user_gets_three_books(self, paid_user):
        for i in range(3):
            check_can_create_book(paid_user)
            make_book(paid_user, business_name=f"Biz {i}")
        with pytest.raises(PlanLimitError):
            check_can_create_book(paid_user)

    def test_monthly_transaction_limit(self, user_a, book_a):
        for i in range(29):
            make_transaction(book_a, NOW.date(), "expense", 100 + i)
        check_can_create_transaction(user_a)
        make_transaction(book_a, NOW.date(), "expense", 1)
        with pytest.raises(PlanLimitError):
            check_can_create_transaction(user_a)

    def test_paid_user_has_no_monthly_limit(self, paid_user):
        book = make_book(paid_user)
        for i in range(31):
            make_transaction(book, NOW.date(), "income", i)
        check_can_create_transaction(paid_user)

    def test_receipts_require_paid_plan(self, user_a, paid_user):
        with pytest.raises(PlanFeatureError):
            check_can_attach_receipt(user_a)
        check_can_attach_receipt(paid_user)

    def test_limit_counts_across_books(self, db_session):
        user = make_user("multi@example.com", plan="basic")
        first = make_book(user, business_name="One")
        second = make_book(user, business_name="Two")
        user.subscription_status = "inactive"
        db_session.commit()
        for i in range(15):
            make_transaction(first, NOW.date(), "income", i)
            make_transaction(second, NOW.date(), "income", i)
        with pytest.raises(PlanLimitError):
            check_can_create_transaction(user)
