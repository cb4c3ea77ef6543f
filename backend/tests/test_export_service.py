# Overview: Pytest coverage for CSV export dialects.

import csv
import io
from types import SimpleNamespace

import pytest

from zenibo.services.balance_service import accumulate
from zenibo.services.export_service import (
    BOM,
    HEADERS,
    NoDataError,
    UnknownFormatError,
    export_csv,
    export_filename,
    tax_label,
)

from ledger_records import entry


def _parse(payload: str) -> list[list[str]]:
    assert payload.startswith(BOM)
    return list(csv.reader(io.StringIO(payload[len(BOM):])))


@pytest.fixture
def rows():
    entries = [
        entry(1, "2024-01-05", "income", 10000, description="Sales", client="Acme",
              account_subject_id=1, tax_type="taxable-8"),
        entry(2, "2024-01-10", "expense", 3000, description='Paper "A4"', client="Shop, Inc.",
              account_subject_id=2, sub_account_id=5),
    ]
    return accumulate(entries, opening_balance=50000).rows


class TestPayloadShape:
    @pytest.mark.parametrize("dialect", ["basic", "mf", "freee", "yayoi"])
    def test_header_and_column_counts(self, rows, dialect):
        parsed = _parse(export_csv(rows, dialect))
        assert parsed[0] == HEADERS[dialect]
        assert len(parsed) == 3
        for line in parsed[1:]:
            assert len(line) == len(HEADERS[dialect])

    def test_header_widths(self):
        assert [len(HEADERS[d]) for d in ("basic", "mf", "freee", "yayoi")] == [10, 19, 16, 23]

    def test_trailing_newline(self, rows):
        assert export_csv(rows, "mf").endswith("\n")

    def test_empty_rows_rejected(self):
        with pytest.raises(NoDataError):
            export_csv([], "basic")

    def test_unknown_dialect_rejected(self, rows):
        with pytest.raises(UnknownFormatError):
            export_csv(rows, "excel")


class TestBasicDialect:
    def test_running_balances_reparse(self, rows):
        parsed = _parse(export_csv(rows, "basic", 50000, {1: "売上高", 2: "消耗品費"}, {5: "文具"}))
        assert [int(line[8]) for line in parsed[1:]] == [60000, 57000]

    def test_income_and_expense_columns_exclusive(self, rows):
        parsed = _parse(export_csv(rows, "basic"))
        income_row, expense_row = parsed[1], parsed[2]
        assert income_row[6] == "10000" and income_row[7] == ""
        assert expense_row[6] == "" and expense_row[7] == "3000"

    def test_names_and_quoting(self, rows):
        payload = export_csv(rows, "basic", 50000, {1: "売上高", 2: "消耗品費"}, {5: "文具"})
        assert '"Paper ""A4"""' in payload
        parsed = _parse(payload)
        assert parsed[2][2] == 'Paper "A4"'
        assert parsed[2][3] == "Shop, Inc."
        assert parsed[2][4] == "消耗品費"
        assert parsed[2][5] == "文具"
        assert parsed[1][0] == "2024-01-05"

    def test_tax_labels(self, rows):
        parsed = _parse(export_csv(rows, "basic"))
        assert parsed[1][9] == "軽減8%"
        assert parsed[2][9] == "課税10%"


class TestJournalDialects:
    def test_mf_income_and_expense_legs(self, rows):
        parsed = _parse(export_csv(rows, "mf"))
        income, expense = parsed[1], parsed[2]
        assert income[0] == "1"
        assert (income[2], income[8]) == ("現金", "売上高")
        assert income[11] == "課税売上8%"
        assert income[6] == income[12] == "10000"
        assert (expense[2], expense[8]) == ("経費", "現金")
        assert expense[5] == "課税売上10%"

    def test_mf_raw_line_mixes_bare_and_quoted_text(self, rows):
        lines = export_csv(rows, "mf").splitlines()
        assert lines[2] == '2,2024-01-10,経費,,,課税売上10%,3000,,現金,,,,3000,,"Paper ""A4""","Shop, Inc.",,,'

    def test_freee_direction(self, rows):
        parsed = _parse(export_csv(rows, "freee"))
        assert parsed[1][0] == "収入"
        assert parsed[2][0] == "支出"
        assert parsed[2][4] == "Shop, Inc."
        assert parsed[2][7] == "3000"

    def test_yayoi_tax_on_both_legs(self, rows):
        parsed = _parse(export_csv(rows, "yayoi"))
        assert parsed[1][6] == parsed[1][12] == "課売8%"
        assert parsed[2][2] == "2024-01-10"


class TestHelpers:
    @pytest.mark.parametrize("tax_type", [None, "", "reverse-charge"])
    def test_tax_label_fallback(self, tax_type):
        assert tax_label("freee", tax_type) == "課税売上10%"

    def test_filename_single_month(self):
        book = SimpleNamespace(business_name="Acme", account_name="Petty cash")
        assert export_filename(book, "mf", "2024-01", "2024-01") == "現金出納帳_MFクラウド_Acme_Petty cash_2024-01.csv"

    def test_filename_range(self):
        book = SimpleNamespace(business_name="Acme", account_name="Cash")
        assert export_filename(book, "basic", "2024-01", "2024-03") == "現金出納帳_基本形式_Acme_Cash_2024-01_2024-03.csv"
