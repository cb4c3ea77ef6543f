# Overview: Pytest coverage for the filtered ledger listing and transaction writes.

from datetime import date

import pytest

from zenibo.models import AccountSubject, SubAccount
from zenibo.services import transaction_service

from conftest import make_book, make_transaction


def _tx_payload(**overrides):
    payload = {"date": "2024-01-05", "type": "expense", "amount": 1200, "description": "Taxi", "client": "Cab Co."}
    payload.update(overrides)
    return payload


@pytest.fixture
def seeded_book(book_a):
    make_transaction(book_a, date(2024, 1, 5), "income", 10000, "Consulting", "Acme")
    make_transaction(book_a, date(2024, 1, 10), "expense", 999, "Coffee", "Cafe")
    make_transaction(book_a, date(2024, 1, 15), "expense", 5000, "Taxi fare", "")
    make_transaction(book_a, date(2024, 2, 1), "expense", 5001, "Hotel", "Taxi Co.")
    return book_a


class TestLedgerListing:
    def test_running_balances_from_opening(self, client, headers_a, seeded_book):
        body = client.get(f"/api/transactions/book/{seeded_book.id}", headers=headers_a).get_json()
        assert [t["balance"] for t in body["transactions"]] == [15000, 14001, 9001, 4000]
        assert body["summary"]["opening_balance"] == 5000
        assert body["summary"]["final_balance"] == 4000
        assert body["summary"]["count"] == 4
        assert body["order"] == "asc"
        assert body["filter_status"] == "全期間の取引を表示中（4件）"

    def test_income_expense_columns(self, client, headers_a, seeded_book):
        first, second = client.get(
            f"/api/transactions/book/{seeded_book.id}", headers=headers_a
        ).get_json()["transactions"][:2]
        assert (first["income"], first["expense"]) == (10000, 0)
        assert (second["income"], second["expense"]) == (0, 999)

    def test_desc_order_keeps_balances(self, client, headers_a, seeded_book):
        body = client.get(f"/api/transactions/book/{seeded_book.id}?order=desc", headers=headers_a).get_json()
        assert [t["balance"] for t in body["transactions"]] == [4000, 9001, 14001, 15000]
        assert body["transactions"][0]["date"] == "2024-02-01"

    def test_same_day_entries_follow_creation_order(self, client, headers_a, book_a):
        make_transaction(book_a, date(2024, 3, 1), "expense", 100)
        make_transaction(book_a, date(2024, 3, 1), "income", 50)
        body = client.get(f"/api/transactions/book/{book_a.id}", headers=headers_a).get_json()
        assert [t["balance"] for t in body["transactions"]] == [4900, 4950]

    def test_keyword_matches_description_or_client(self, client, headers_a, seeded_book):
        body = client.get(f"/api/transactions/book/{seeded_book.id}?keyword=TAXI", headers=headers_a).get_json()
        assert [t["description"] for t in body["transactions"]] == ["Taxi fare", "Hotel"]
        assert body["filter_status"].startswith("絞込中（2件）")

    def test_amount_range_inclusive(self, client, headers_a, seeded_book):
        body = client.get(
            f"/api/transactions/book/{seeded_book.id}?min_amount=1000&max_amount=5000", headers=headers_a
        ).get_json()
        assert [t["amount"] for t in body["transactions"]] == [5000]

    def test_filtered_balances_cover_subset(self, client, headers_a, seeded_book):
        body = client.get(
            f"/api/transactions/book/{seeded_book.id}?date_from=2024-01-10&date_to=2024-01-15", headers=headers_a
        ).get_json()
        assert [t["balance"] for t in body["transactions"]] == [4001, -999]
        assert body["summary"]["final_balance"] == -999

    def test_subject_filter(self, client, headers_a, book_a, db_session):
        subject = AccountSubject(book_id=book_a.id, name="旅費交通費")
        db_session.add(subject)
        db_session.commit()
        make_transaction(book_a, date(2024, 1, 1), "expense", 700, account_subject_id=subject.id)
        make_transaction(book_a, date(2024, 1, 2), "expense", 300)

        body = client.get(
            f"/api/transactions/book/{book_a.id}?account_subject_id={subject.id}", headers=headers_a
        ).get_json()
        assert [t["amount"] for t in body["transactions"]] == [700]
        assert body["transactions"][0]["account_subject_name"] == "旅費交通費"
        assert "勘定科目: 旅費交通費" in body["filter_status"]

    @pytest.mark.parametrize(
        "query",
        ["date_from=2024-02-30", "min_amount=-5", "max_amount=ten", "order=sideways"],
    )
    def test_bad_query_parameters(self, client, headers_a, book_a, query):
        resp = client.get(f"/api/transactions/book/{book_a.id}?{query}", headers=headers_a)
        assert resp.status_code == 400


class TestCreateTransaction:
    def test_create(self, client, headers_a, book_a):
        resp = client.post(f"/api/transactions/book/{book_a.id}", json=_tx_payload(), headers=headers_a)
        assert resp.status_code == 201
        tx = resp.get_json()["transaction"]
        assert tx["date"] == "2024-01-05"
        assert tx["amount"] == 1200
        assert tx["type"] == "expense"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"type": "transfer"},
            {"amount": -1},
            {"amount": 10.5},
            {"date": "05/01/2024"},
            {"tax_type": "vat"},
            {"date": None},
        ],
    )
    def test_invalid_payloads(self, client, headers_a, book_a, overrides):
        resp = client.post(f"/api/transactions/book/{book_a.id}", json=_tx_payload(**overrides), headers=headers_a)
        assert resp.status_code == 400

    def test_missing_amount(self, client, headers_a, book_a):
        payload = _tx_payload()
        del payload["amount"]
        resp = client.post(f"/api/transactions/book/{book_a.id}", json=payload, headers=headers_a)
        assert resp.status_code == 400

    def test_subject_from_other_book_rejected(self, client, paid_user, paid_headers, db_session):
        first = make_book(paid_user, business_name="One")
        second = make_book(paid_user, business_name="Two")
        subject = AccountSubject(book_id=second.id, name="消耗品費")
        db_session.add(subject)
        db_session.commit()

        resp = client.post(
            f"/api/transactions/book/{first.id}",
            json=_tx_payload(account_subject_id=subject.id),
            headers=paid_headers,
        )
        assert resp.status_code == 400

    def test_sub_account_must_match_subject(self, client, headers_a, book_a, db_session):
        one = AccountSubject(book_id=book_a.id, name="A")
        two = AccountSubject(book_id=book_a.id, name="B")
        db_session.add_all([one, two])
        db_session.commit()
        sub = SubAccount(subject_id=two.id, name="B-1")
        db_session.add(sub)
        db_session.commit()

        resp = client.post(
            f"/api/transactions/book/{book_a.id}",
            json=_tx_payload(account_subject_id=one.id, sub_account_id=sub.id),
            headers=headers_a,
        )
        assert resp.status_code == 400

    def test_free_plan_monthly_limit(self, client, headers_a, book_a):
        for i in range(30):
            resp = client.post(
                f"/api/transactions/book/{book_a.id}", json=_tx_payload(amount=i), headers=headers_a
            )
            assert resp.status_code == 201

        resp = client.post(f"/api/transactions/book/{book_a.id}", json=_tx_payload(), headers=headers_a)
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "E4002"

    def test_free_plan_cannot_attach_receipt(self, client, headers_a, book_a):
        resp = client.post(
            f"/api/transactions/book/{book_a.id}", json=_tx_payload(receipt_id=1), headers=headers_a
        )
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "E4001"


class TestUpdateDeleteTransaction:
    def test_update(self, client, headers_a, book_a):
        tx = make_transaction(book_a, date(2024, 1, 5), "expense", 100, "Old")
        resp = client.put(
            f"/api/transactions/{tx.id}",
            json={"description": "New", "amount": 250, "type": "income"},
            headers=headers_a,
        )
        assert resp.status_code == 200
        body = resp.get_json()["transaction"]
        assert (body["description"], body["amount"], body["type"]) == ("New", 250, "income")

    def test_update_invalid_amount(self, client, headers_a, book_a):
        tx = make_transaction(book_a, date(2024, 1, 5), "expense", 100)
        resp = client.put(f"/api/transactions/{tx.id}", json={"amount": -3}, headers=headers_a)
        assert resp.status_code == 400

    def test_clearing_subject_clears_sub_account(self, client, headers_a, book_a, db_session):
        subject = AccountSubject(book_id=book_a.id, name="A")
        db_session.add(subject)
        db_session.commit()
        sub = SubAccount(subject_id=subject.id, name="A-1")
        db_session.add(sub)
        db_session.commit()
        tx = make_transaction(
            book_a, date(2024, 1, 5), "expense", 100, account_subject_id=subject.id, sub_account_id=sub.id
        )

        resp = client.put(f"/api/transactions/{tx.id}", json={"account_subject_id": None}, headers=headers_a)
        assert resp.status_code == 200
        body = resp.get_json()["transaction"]
        assert body["account_subject_id"] is None
        assert body["sub_account_id"] is None

    def test_delete(self, client, headers_a, book_a):
        tx = make_transaction(book_a, date(2024, 1, 5), "expense", 100)
        assert client.delete(f"/api/transactions/{tx.id}", headers=headers_a).status_code == 200
        body = client.get(f"/api/transactions/book/{book_a.id}", headers=headers_a).get_json()
        assert body["transactions"] == []
        assert body["summary"]["final_balance"] == 5000

    def test_delete_missing(self, client, headers_a):
        assert client.delete("/api/transactions/99999", headers=headers_a).status_code == 404

    def test_unexpected_failure_returns_json_500(self, client, headers_a, book_a, monkeypatch):
        tx = make_transaction(book_a, date(2024, 1, 5), "expense", 100)

        def fail(*args, **kwargs):
            raise RuntimeError("database went away")

        monkeypatch.setattr(transaction_service, "update_transaction", fail)
        monkeypatch.setattr(transaction_service, "delete_transaction", fail)

        resp = client.put(f"/api/transactions/{tx.id}", json={"amount": 200}, headers=headers_a)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to update transaction"}

        resp = client.delete(f"/api/transactions/{tx.id}", headers=headers_a)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to delete transaction"}
