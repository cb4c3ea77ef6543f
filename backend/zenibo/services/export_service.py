# Overview: CSV export in the four supported accounting-software dialects.

"""
Export Formatter

Renders a sequence of balance rows as a CSV payload for one of:

- basic: human-readable cash book with running balance (every plan)
- mf:    MoneyForward Cloud journal import (paid plans)
- freee: freee income/expense import (paid plans)
- yayoi: Yayoi journal import (paid plans)

Payload conventions shared by every dialect:
- UTF-8 byte-order mark prefix (Excel on Windows needs it to detect UTF-8)
- comma separated, one header row, "\\n" row terminator
- free-text fields wrapped in double quotes with embedded quotes doubled

Rows are written by hand rather than through the csv module because the
import formats expect exactly which fields are quoted.
"""

from __future__ import annotations

from typing import Callable, Mapping, Sequence

from .balance_service import BalanceRow


BOM = "\ufeff"
LINE_TERMINATOR = "\n"

EXPORT_FORMATS = ("basic", "mf", "freee", "yayoi")

FORMAT_LABELS = {
    "basic": "基本形式",
    "mf": "MFクラウド",
    "freee": "freee",
    "yayoi": "弥生",
}

TAX_LABELS = {
    "basic": {
        "taxable-10": "課税10%",
        "taxable-8": "軽減8%",
        "non-taxable": "非課税",
        "tax-exempt": "免税",
        "out-of-scope": "不課税",
    },
    "mf": {
        "taxable-10": "課税売上10%",
        "taxable-8": "課税売上8%",
        "non-taxable": "非課税売上",
        "tax-exempt": "免税売上",
        "out-of-scope": "対象外",
    },
    "freee": {
        "taxable-10": "課税売上10%",
        "taxable-8": "軽減税率8%",
        "non-taxable": "非課税売上",
        "tax-exempt": "免税売上",
        "out-of-scope": "対象外",
    },
    "yayoi": {
        "taxable-10": "課売10%",
        "taxable-8": "課売8%",
        "non-taxable": "非課税",
        "tax-exempt": "免税",
        "out-of-scope": "対象外",
    },
}

HEADERS = {
    "basic": [
        "取引日", "区分", "取引内容", "取引先", "勘定科目", "補助科目",
        "入金", "出金", "残高", "消費税区分",
    ],
    "mf": [
        "取引No", "取引日",
        "借方勘定科目", "借方補助科目", "借方部門", "借方税区分", "借方金額", "借方税額",
        "貸方勘定科目", "貸方補助科目", "貸方部門", "貸方税区分", "貸方金額", "貸方税額",
        "摘要", "取引先", "品目", "メモタグ", "期日",
    ],
    "freee": [
        "収支区分", "管理番号", "発生日", "決済期日", "取引先", "勘定科目", "税区分",
        "金額", "税額", "備考", "品目", "部門", "メモタグ",
        "セグメント1", "セグメント2", "セグメント3",
    ],
    "yayoi": [
        "伝票No", "決算", "取引日付",
        "借方勘定科目", "借方補助科目", "借方部門", "借方税区分", "借方金額", "借方税額",
        "貸方勘定科目", "貸方補助科目", "貸方部門", "貸方税区分", "貸方金額", "貸方税額",
        "摘要", "期日", "証憑番号", "入力マシン", "入力ユーザ", "入力アプリ", "入力会社", "入力日付",
    ],
}

CASH_ACCOUNT = "現金"
INCOME_ACCOUNT = "売上高"
EXPENSE_ACCOUNT = "経費"


class NoDataError(Exception):
    """Raised when there is nothing to export for the requested range."""


class UnknownFormatError(ValueError):
    pass


def tax_label(dialect: str, tax_type: str | None) -> str:
    """Dialect-specific tax label. Unset or unknown codes fall back to the 10% label."""
    table = TAX_LABELS[dialect]
    return table.get(tax_type or "", table["taxable-10"])


def quote(value) -> str:
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def _date(t) -> str:
    return t.date.isoformat()


def _line(fields: Sequence) -> str:
    return ",".join("" if f is None else str(f) for f in fields)


def _basic_row(index: int, row: BalanceRow, subjects: Mapping, subs: Mapping) -> list:
    t = row.transaction
    return [
        _date(t),
        quote("入金" if t.type == "income" else "出金"),
        quote(t.description),
        quote(t.client),
        quote(subjects.get(t.account_subject_id, "")),
        quote(subs.get(t.sub_account_id, "")),
        row.income if t.type == "income" else "",
        row.expense if t.type == "expense" else "",
        row.balance,
        quote(tax_label("basic", t.tax_type)),
    ]


def _mf_row(index: int, row: BalanceRow, subjects: Mapping, subs: Mapping) -> list:
    t = row.transaction
    code = tax_label("mf", t.tax_type)
    if t.type == "income":
        debit, debit_tax = CASH_ACCOUNT, ""
        credit, credit_tax = INCOME_ACCOUNT, code
    else:
        debit, debit_tax = EXPENSE_ACCOUNT, code
        credit, credit_tax = CASH_ACCOUNT, ""
    return [
        index, _date(t),
        debit, "", "", debit_tax, t.amount, "",
        credit, "", "", credit_tax, t.amount, "",
        quote(t.description), quote(t.client), "", "", "",
    ]


def _freee_row(index: int, row: BalanceRow, subjects: Mapping, subs: Mapping) -> list:
    t = row.transaction
    income = t.type == "income"
    return [
        "収入" if income else "支出",
        "",
        _date(t),
        "",
        quote(t.client),
        INCOME_ACCOUNT if income else EXPENSE_ACCOUNT,
        tax_label("freee", t.tax_type),
        t.amount,
        "",
        quote(t.description),
        "", "", "", "", "", "",
    ]


def _yayoi_row(index: int, row: BalanceRow, subjects: Mapping, subs: Mapping) -> list:
    t = row.transaction
    code = tax_label("yayoi", t.tax_type)
    if t.type == "income":
        debit, credit = CASH_ACCOUNT, INCOME_ACCOUNT
    else:
        debit, credit = EXPENSE_ACCOUNT, CASH_ACCOUNT
    return [
        index, "", _date(t),
        debit, "", "", code, t.amount, "",
        credit, "", "", code, t.amount, "",
        quote(t.description), "", "", "", "", "", "", "",
    ]


_ROW_WRITERS: dict[str, Callable] = {
    "basic": _basic_row,
    "mf": _mf_row,
    "freee": _freee_row,
    "yayoi": _yayoi_row,
}


def export_csv(
    rows: Sequence[BalanceRow],
    dialect: str,
    opening_balance: int = 0,
    subject_names: Mapping[int, str] | None = None,
    sub_account_names: Mapping[int, str] | None = None,
) -> str:
    """
    Render balance rows (from balance_service.accumulate) as a CSV payload.

    The rows carry their running balance already; opening_balance is kept in
    the signature so callers can pass the accumulator result through unchanged.
    Raises NoDataError for an empty sequence.
    """
    if dialect not in _ROW_WRITERS:
        raise UnknownFormatError(f"Unknown export format: {dialect}")
    if not rows:
        raise NoDataError("指定された期間の取引データがありません")

    writer = _ROW_WRITERS[dialect]
    subjects = subject_names or {}
    subs = sub_account_names or {}

    lines = [",".join(HEADERS[dialect])]
    for index, row in enumerate(rows, start=1):
        fields = writer(index, row, subjects, subs)
        lines.append(_line(fields))

    return BOM + LINE_TERMINATOR.join(lines) + LINE_TERMINATOR


def period_label(start_month: str, end_month: str) -> str:
    if start_month == end_month:
        return start_month
    return f"{start_month}_{end_month}"


def export_filename(book, dialect: str, start_month: str, end_month: str) -> str:
    label = FORMAT_LABELS.get(dialect, dialect)
    return (
        f"現金出納帳_{label}_{book.business_name}_{book.account_name}_"
        f"{period_label(start_month, end_month)}.csv"
    )
