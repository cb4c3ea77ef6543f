# Overview: Balance accumulator; folds an opening balance over a transaction sequence.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Iterable, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class BalanceRow(Generic[T]):
    transaction: T
    income: int
    expense: int
    balance: int


@dataclass(frozen=True)
class BalanceResult(Generic[T]):
    opening_balance: int
    final_balance: int
    total_income: int
    total_expense: int
    rows: list[BalanceRow[T]] = field(default_factory=list)

    @property
    def net(self) -> int:
        return self.total_income - self.total_expense

    @property
    def running_balances(self) -> list[int]:
        return [r.balance for r in self.rows]

    def summary_dict(self) -> dict:
        return {
            "opening_balance": self.opening_balance,
            "total_income": self.total_income,
            "total_expense": self.total_expense,
            "net": self.net,
            "final_balance": self.final_balance,
            "count": len(self.rows),
        }


def _creation_key(t):
    # Unsaved records have no id yet; they sort after persisted ones
    tid = getattr(t, "id", None)
    return (tid is None, tid or 0)


def canonical_order(transactions: Iterable[T]) -> list[T]:
    """
    The one accumulation order used everywhere: ascending date, then creation
    order (primary key). Display code may reverse the result afterwards, but
    balances are always computed in this order.
    """
    return sorted(transactions, key=lambda t: (t.date, _creation_key(t)))


def accumulate(transactions: Iterable[T], opening_balance: int = 0) -> BalanceResult[T]:
    """
    Walk the sequence in the order given, producing the running balance per row.

    income: balance += amount
    expense: balance -= amount

    Balances may go negative and are never clamped.
    """
    balance = opening_balance or 0
    total_income = 0
    total_expense = 0
    rows: list[BalanceRow[T]] = []

    for t in transactions:
        if t.type == "income":
            income, expense = t.amount, 0
        elif t.type == "expense":
            income, expense = 0, t.amount
        else:
            raise ValueError(f"Unknown transaction type: {t.type!r}")

        balance += income - expense
        total_income += income
        total_expense += expense
        rows.append(BalanceRow(transaction=t, income=income, expense=expense, balance=balance))

    return BalanceResult(
        opening_balance=opening_balance or 0,
        final_balance=balance,
        total_income=total_income,
        total_expense=total_expense,
        rows=rows,
    )
