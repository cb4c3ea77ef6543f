# Overview: Pytest coverage for plan-gated receipt upload, download and deletion.

import io
import os
from datetime import date

from zenibo.models import Receipt, Transaction

from conftest import make_book, make_transaction


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _upload(client, headers, book_id, filename="receipt.png", mimetype="image/png", **form):
    data = {"file": (io.BytesIO(PNG_BYTES), filename, mimetype)}
    data.update(form)
    return client.post(
        f"/api/receipts/book/{book_id}/upload",
        data=data,
        headers=headers,
        content_type="multipart/form-data",
    )


class TestReceiptUpload:
    def test_free_plan_rejected(self, client, headers_a, book_a):
        resp = _upload(client, headers_a, book_a.id)
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "E4001"

    def test_upload_and_download(self, client, paid_user, paid_headers):
        book = make_book(paid_user)
        resp = _upload(client, paid_headers, book.id, filename="../../taxi receipt.png")
        assert resp.status_code == 201
        receipt = resp.get_json()["receipt"]
        assert receipt["filename"] == "taxi_receipt.png"
        assert receipt["file_size"] == len(PNG_BYTES)
        assert receipt["mime_type"] == "image/png"

        download = client.get(f"/api/receipts/{receipt['id']}/download", headers=paid_headers)
        assert download.status_code == 200
        assert download.data == PNG_BYTES
        download.close()

        listed = client.get(f"/api/receipts/book/{book.id}", headers=paid_headers).get_json()
        assert [r["id"] for r in listed["receipts"]] == [receipt["id"]]

    def test_upload_links_transaction(self, client, paid_user, paid_headers, db_session):
        book = make_book(paid_user)
        tx = make_transaction(book, date(2024, 1, 5), "expense", 1200)

        resp = _upload(client, paid_headers, book.id, transaction_id=str(tx.id))
        assert resp.status_code == 201
        db_session.expire_all()
        assert db_session.get(Transaction, tx.id).receipt_id == resp.get_json()["receipt"]["id"]

    def test_transaction_from_other_book_rejected(self, client, paid_user, paid_headers):
        first = make_book(paid_user, business_name="One")
        second = make_book(paid_user, business_name="Two")
        tx = make_transaction(second, date(2024, 1, 5), "expense", 1200)
        resp = _upload(client, paid_headers, first.id, transaction_id=str(tx.id))
        assert resp.status_code == 400

    def test_unsupported_type(self, client, paid_user, paid_headers):
        book = make_book(paid_user)
        resp = _upload(client, paid_headers, book.id, filename="notes.txt", mimetype="text/plain")
        assert resp.status_code == 400

    def test_missing_file(self, client, paid_user, paid_headers):
        book = make_book(paid_user)
        resp = client.post(
            f"/api/receipts/book/{book.id}/upload",
            data={},
            headers=paid_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400


class TestReceiptDelete:
    def test_delete_unlinks_and_removes_file(self, client, paid_user, paid_headers, db_session):
        book = make_book(paid_user)
        tx = make_transaction(book, date(2024, 1, 5), "expense", 1200)
        receipt_id = _upload(client, paid_headers, book.id, transaction_id=str(tx.id)).get_json()["receipt"]["id"]
        path = db_session.get(Receipt, receipt_id).file_path
        assert os.path.isfile(path)

        resp = client.delete(f"/api/receipts/{receipt_id}", headers=paid_headers)
        assert resp.status_code == 200
        assert not os.path.exists(path)

        db_session.expire_all()
        assert db_session.get(Receipt, receipt_id) is None
        assert db_session.get(Transaction, tx.id).receipt_id is None

    def test_downgraded_user_keeps_access(self, client, paid_user, paid_headers, db_session):
        book = make_book(paid_user)
        receipt_id = _upload(client, paid_headers, book.id).get_json()["receipt"]["id"]

        paid_user.subscription_status = "inactive"
        db_session.commit()

        download = client.get(f"/api/receipts/{receipt_id}/download", headers=paid_headers)
        assert download.status_code == 200
        download.close()
        assert client.delete(f"/api/receipts/{receipt_id}", headers=paid_headers).status_code == 200
