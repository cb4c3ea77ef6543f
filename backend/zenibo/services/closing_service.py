# Overview: Monthly closing (月次締め); month-range summaries and CSV export for a book.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..models import Book, User
from ..time_utils import month_key, parse_month as _parse_month
from ..validation import ValidationError
from . import balance_service, entitlement_service, export_service, transaction_service
from .export_service import NoDataError


@dataclass(frozen=True)
class ClosingSummary:
    start_month: str
    end_month: str
    count: int
    total_income: int
    total_expense: int
    opening_balance: int
    closing_balance: int

    @property
    def net(self) -> int:
        return self.total_income - self.total_expense

    def to_dict(self) -> dict:
        return {
            "start_month": self.start_month,
            "end_month": self.end_month,
            "count": self.count,
            "total_income": self.total_income,
            "total_expense": self.total_expense,
            "net": self.net,
            "opening_balance": self.opening_balance,
            "closing_balance": self.closing_balance,
        }


@dataclass(frozen=True)
class ClosingExport:
    filename: str
    dialect: str
    content: str


def parse_month(value: str | None, key: str = "month") -> str:
    """Validate "YYYY-MM" and return it normalized."""
    try:
        year, month = _parse_month(value or "")
    except ValueError:
        raise ValidationError(f"{key} must be a month in YYYY-MM format")
    return f"{year:04d}-{month:02d}"


def month_range(start: str | None, end: str | None) -> tuple[str, str]:
    start_month = parse_month(start, "start")
    end_month = parse_month(end or start, "end")
    if start_month > end_month:
        raise ValidationError("start must not be after end")
    return start_month, end_month


def in_range(d: date, start_month: str, end_month: str) -> bool:
    return start_month <= month_key(d) <= end_month


def _select(book: Book, start_month: str, end_month: str) -> list:
    rows = [
        t for t in transaction_service.book_transactions(book)
        if in_range(t.date, start_month, end_month)
    ]
    if not rows:
        raise NoDataError("指定された期間の取引データがありません")
    return rows


def preview(book: Book, start_month: str, end_month: str) -> ClosingSummary:
    """
    Totals for the month range. The running balance starts from the book's
    opening balance, the same convention the CSV export uses.
    """
    result = balance_service.accumulate(_select(book, start_month, end_month), book.opening_balance or 0)
    return ClosingSummary(
        start_month=start_month,
        end_month=end_month,
        count=len(result.rows),
        total_income=result.total_income,
        total_expense=result.total_expense,
        opening_balance=result.opening_balance,
        closing_balance=result.final_balance,
    )


def export(
    book: Book,
    user: User,
    start_month: str,
    end_month: str,
    requested_format: str | None = None,
) -> ClosingExport:
    dialect = entitlement_service.resolve_export_format(user, requested_format, book.export_format)
    selected = _select(book, start_month, end_month)
    result = balance_service.accumulate(selected, book.opening_balance or 0)

    subject_names = {s.id: s.name for s in book.account_subjects}
    sub_account_names = {sub.id: sub.name for s in book.account_subjects for sub in s.sub_accounts}

    content = export_service.export_csv(
        result.rows,
        dialect,
        opening_balance=result.opening_balance,
        subject_names=subject_names,
        sub_account_names=sub_account_names,
    )
    return ClosingExport(
        filename=export_service.export_filename(book, dialect, start_month, end_month),
        dialect=dialect,
        content=content,
    )
