# Overview: Pytest coverage for book CRUD, plan ceilings, monthly closing and CSV export.

import csv
import io
import os
from datetime import date

from zenibo.models import Book, Receipt, Transaction
from zenibo.services import book_service

from conftest import make_book, make_transaction


def _book_payload(**overrides):
    payload = {"business_name": "Acme", "account_name": "Petty cash", "opening_balance": 1000}
    payload.update(overrides)
    return payload


def _parse_csv(resp):
    text = resp.data.decode("utf-8")
    assert text.startswith("\ufeff")
    return list(csv.reader(io.StringIO(text[1:])))


class TestBookCrud:
    def test_create_and_list(self, client, headers_a):
        resp = client.post("/api/books", json=_book_payload(), headers=headers_a)
        assert resp.status_code == 201
        book = resp.get_json()["book"]
        assert book["opening_balance"] == 1000
        assert book["export_format"] == "mf"

        body = client.get("/api/books", headers=headers_a).get_json()
        assert body["count"] == 1
        assert body["books"][0]["id"] == book["id"]

    def test_negative_opening_balance_allowed(self, client, headers_a):
        resp = client.post("/api/books", json=_book_payload(opening_balance=-500), headers=headers_a)
        assert resp.status_code == 201

    def test_missing_required_fields(self, client, headers_a):
        resp = client.post("/api/books", json={"business_name": "Acme"}, headers=headers_a)
        assert resp.status_code == 400

    def test_invalid_export_format(self, client, headers_a):
        resp = client.post("/api/books", json=_book_payload(export_format="excel"), headers=headers_a)
        assert resp.status_code == 400

    def test_update(self, client, headers_a, book_a):
        resp = client.put(
            f"/api/books/{book_a.id}",
            json={"account_name": "Main register", "export_format": "yayoi"},
            headers=headers_a,
        )
        assert resp.status_code == 200
        book = resp.get_json()["book"]
        assert book["account_name"] == "Main register"
        assert book["export_format"] == "yayoi"

    def test_delete_cascades_transactions(self, client, headers_a, book_a, db_session):
        make_transaction(book_a, date(2024, 1, 5), "income", 100)
        resp = client.delete(f"/api/books/{book_a.id}", headers=headers_a)
        assert resp.status_code == 200
        assert db_session.get(Book, book_a.id) is None
        assert db_session.query(Transaction).count() == 0

    def test_delete_removes_receipt_files(self, client, paid_user, paid_headers, db_session):
        book = make_book(paid_user)
        resp = client.post(
            f"/api/receipts/book/{book.id}/upload",
            data={"file": (io.BytesIO(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16), "receipt.png", "image/png")},
            headers=paid_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        path = db_session.query(Receipt).one().file_path
        assert os.path.isfile(path)

        assert client.delete(f"/api/books/{book.id}", headers=paid_headers).status_code == 200
        assert db_session.query(Receipt).count() == 0
        assert not os.path.exists(path)
        assert not os.path.exists(os.path.dirname(path))

    def test_unexpected_failure_returns_json_500(self, client, headers_a, book_a, monkeypatch):
        def fail(*args, **kwargs):
            raise RuntimeError("disk unavailable")

        monkeypatch.setattr(book_service, "update_book", fail)
        monkeypatch.setattr(book_service, "delete_book", fail)

        resp = client.put(f"/api/books/{book_a.id}", json={"account_name": "X"}, headers=headers_a)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to update book"}

        resp = client.delete(f"/api/books/{book_a.id}", headers=headers_a)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to delete book"}

    def test_missing_book(self, client, headers_a):
        assert client.get("/api/books/99999", headers=headers_a).status_code == 404


class TestBookLimits:
    def test_free_plan_second_book_rejected(self, client, headers_a, book_a):
        resp = client.post("/api/books", json=_book_payload(), headers=headers_a)
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "E4002"

    def test_basic_plan_allows_three(self, client, paid_headers):
        for i in range(3):
            resp = client.post("/api/books", json=_book_payload(business_name=f"Biz {i}"), headers=paid_headers)
            assert resp.status_code == 201
        resp = client.post("/api/books", json=_book_payload(), headers=paid_headers)
        assert resp.status_code == 403


class TestClosing:
    def test_month_summary(self, client, headers_a, book_a):
        make_transaction(book_a, date(2023, 12, 31), "income", 999)
        make_transaction(book_a, date(2024, 1, 5), "income", 10000)
        make_transaction(book_a, date(2024, 1, 20), "expense", 3000)
        make_transaction(book_a, date(2024, 2, 1), "expense", 1)

        resp = client.get(f"/api/books/{book_a.id}/closing?start=2024-01", headers=headers_a)
        assert resp.status_code == 200
        closing = resp.get_json()["closing"]
        assert closing["start_month"] == closing["end_month"] == "2024-01"
        assert closing["count"] == 2
        assert closing["total_income"] == 10000
        assert closing["total_expense"] == 3000
        assert closing["net"] == 7000
        assert closing["opening_balance"] == 5000
        assert closing["closing_balance"] == 12000

    def test_month_range(self, client, headers_a, book_a):
        make_transaction(book_a, date(2024, 1, 5), "income", 100)
        make_transaction(book_a, date(2024, 3, 31), "income", 200)
        resp = client.get(f"/api/books/{book_a.id}/closing?start=2024-01&end=2024-03", headers=headers_a)
        assert resp.get_json()["closing"]["count"] == 2

    def test_empty_month(self, client, headers_a, book_a):
        resp = client.get(f"/api/books/{book_a.id}/closing?start=2024-05", headers=headers_a)
        assert resp.status_code == 404

    def test_invalid_month(self, client, headers_a, book_a):
        assert client.get(f"/api/books/{book_a.id}/closing?start=2024-13", headers=headers_a).status_code == 400
        assert client.get(f"/api/books/{book_a.id}/closing", headers=headers_a).status_code == 400
        resp = client.get(f"/api/books/{book_a.id}/closing?start=2024-03&end=2024-01", headers=headers_a)
        assert resp.status_code == 400


class TestExport:
    def test_free_user_gets_basic_csv(self, client, headers_a, book_a):
        make_transaction(book_a, date(2024, 1, 5), "income", 10000, "Sales", "Acme")
        make_transaction(book_a, date(2024, 1, 10), "expense", 3000, "Paper", "Shop")

        resp = client.get(f"/api/books/{book_a.id}/export?start=2024-01", headers=headers_a)
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment" in resp.headers["Content-Disposition"]

        rows = _parse_csv(resp)
        assert rows[0][0] == "取引日"
        assert [int(r[8]) for r in rows[1:]] == [15000, 12000]

    def test_free_user_cannot_request_dialect(self, client, headers_a, book_a):
        make_transaction(book_a, date(2024, 1, 5), "income", 100)
        resp = client.get(f"/api/books/{book_a.id}/export?start=2024-01&format=mf", headers=headers_a)
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "E4001"

    def test_paid_user_uses_book_format(self, client, paid_user, paid_headers):
        book = make_book(paid_user, export_format="freee")
        make_transaction(book, date(2024, 1, 5), "expense", 500, "Taxi", "Cab Co.")

        resp = client.get(f"/api/books/{book.id}/export?start=2024-01", headers=paid_headers)
        rows = _parse_csv(resp)
        assert rows[0][0] == "収支区分"
        assert rows[1][0] == "支出"

    def test_paid_user_requested_format_wins(self, client, paid_user, paid_headers):
        book = make_book(paid_user, export_format="freee")
        make_transaction(book, date(2024, 1, 5), "income", 500)

        resp = client.get(f"/api/books/{book.id}/export?start=2024-01&format=yayoi", headers=paid_headers)
        rows = _parse_csv(resp)
        assert rows[0][0] == "伝票No"
        assert len(rows[1]) == 23

    def test_export_empty_range(self, client, headers_a, book_a):
        resp = client.get(f"/api/books/{book_a.id}/export?start=2024-01", headers=headers_a)
        assert resp.status_code == 404

    def test_export_unknown_format(self, client, paid_user, paid_headers):
        book = make_book(paid_user)
        make_transaction(book, date(2024, 1, 5), "income", 500)
        resp = client.get(f"/api/books/{book.id}/export?start=2024-01&format=excel", headers=paid_headers)
        assert resp.status_code == 400
