# Overview: Transaction filter engine; pure functions over in-memory transaction sequences.

"""
Filter Engine

Applies zero or more predicates to a book's transactions:

- date_from / date_to: inclusive calendar-date bounds
- keyword: case-insensitive substring of description OR client
- min_amount / max_amount: inclusive amount bounds (default 0 / unbounded)
- account_subject_id: exact match

The result is the conjunction of the supplied predicates with the input's
relative order preserved. An option that is not supplied is not applied, so
an empty TransactionFilter is the identity.

Works on anything with date/description/client/amount/account_subject_id
attributes (ORM rows or plain records in tests).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from typing import Iterable, Mapping, Sequence, TypeVar

from ..validation import ValidationError, coerce_date, coerce_int


T = TypeVar("T")


@dataclass(frozen=True)
class TransactionFilter:
    date_from: date | None = None
    date_to: date | None = None
    keyword: str | None = None
    min_amount: int | None = None
    max_amount: int | None = None
    account_subject_id: int | None = None

    def __post_init__(self):
        if self.keyword is not None:
            normalized = self.keyword.strip().lower()
            object.__setattr__(self, "keyword", normalized or None)
        if self.min_amount is not None and self.min_amount < 0:
            raise ValidationError("min_amount must be >= 0")
        if self.max_amount is not None and self.max_amount < 0:
            raise ValidationError("max_amount must be >= 0")

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    @property
    def has_amount_range(self) -> bool:
        return self.min_amount is not None or self.max_amount is not None

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "TransactionFilter":
        """
        Build a filter from HTTP query parameters.

        Blank values mean "not supplied". Malformed values raise ValidationError.
        """
        def _get(name: str) -> str | None:
            value = args.get(name)
            if value is None:
                return None
            value = str(value).strip()
            return value or None

        raw_from = _get("date_from")
        raw_to = _get("date_to")
        raw_min = _get("min_amount")
        raw_max = _get("max_amount")
        raw_subject = _get("account_subject_id")

        return cls(
            date_from=coerce_date("date_from", raw_from) if raw_from else None,
            date_to=coerce_date("date_to", raw_to) if raw_to else None,
            keyword=_get("keyword"),
            min_amount=coerce_int("min_amount", raw_min) if raw_min else None,
            max_amount=coerce_int("max_amount", raw_max) if raw_max else None,
            account_subject_id=coerce_int("account_subject_id", raw_subject) if raw_subject else None,
        )


def _matches(t, spec: TransactionFilter) -> bool:
    if spec.date_from is not None and t.date < spec.date_from:
        return False
    if spec.date_to is not None and t.date > spec.date_to:
        return False

    if spec.keyword:
        description = (t.description or "").lower()
        client = (t.client or "").lower()
        if spec.keyword not in description and spec.keyword not in client:
            return False

    if spec.has_amount_range:
        low = spec.min_amount if spec.min_amount is not None else 0
        if t.amount < low:
            return False
        if spec.max_amount is not None and t.amount > spec.max_amount:
            return False

    if spec.account_subject_id is not None and t.account_subject_id != spec.account_subject_id:
        return False

    return True


def apply_filters(transactions: Iterable[T], spec: TransactionFilter | None) -> list[T]:
    """Return the transactions matching every supplied predicate, in input order."""
    items = list(transactions)
    if spec is None or spec.is_empty:
        return items
    return [t for t in items if _matches(t, spec)]


def _yen(value: int) -> str:
    return f"¥{value:,}"


def describe_filters(spec: TransactionFilter, subject_names: Mapping[int, str] | None = None) -> list[str]:
    """Human-readable description of the active filters (status display only)."""
    conditions: list[str] = []

    if spec.date_from and spec.date_to:
        conditions.append(f"期間: {spec.date_from.isoformat()} ～ {spec.date_to.isoformat()}")
    elif spec.date_from:
        conditions.append(f"期間: {spec.date_from.isoformat()} 以降")
    elif spec.date_to:
        conditions.append(f"期間: {spec.date_to.isoformat()} まで")

    if spec.keyword:
        conditions.append(f'キーワード: "{spec.keyword}"')

    if spec.min_amount is not None and spec.max_amount is not None:
        conditions.append(f"金額: {_yen(spec.min_amount)} ～ {_yen(spec.max_amount)}")
    elif spec.min_amount is not None:
        conditions.append(f"金額: {_yen(spec.min_amount)} 以上")
    elif spec.max_amount is not None:
        conditions.append(f"金額: {_yen(spec.max_amount)} 以下")

    if spec.account_subject_id is not None:
        name = (subject_names or {}).get(spec.account_subject_id, "")
        conditions.append(f"勘定科目: {name}")

    return conditions


def filter_status(
    spec: TransactionFilter,
    count: int,
    subject_names: Mapping[int, str] | None = None,
) -> str:
    conditions = describe_filters(spec, subject_names)
    if conditions:
        return f"絞込中（{count}件）: {', '.join(conditions)}"
    return f"全期間の取引を表示中（{count}件）"


def subject_name_map(subjects: Sequence) -> dict[int, str]:
    return {s.id: s.name for s in subjects}
