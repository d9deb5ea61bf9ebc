"""
Tests para documentos de factura

- Render PDF con reportlab
- Storage local y MinIO (cliente simulado)
- InvoiceService: fallos envueltos, ubicación y faltantes
- Endpoints GET/POST /api/bills/{id}/invoice
- Tareas de reconciliación
"""

import os
from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock

import pytest
from minio.error import S3Error

from billing.common.exceptions import ArtifactGenerationFailure
from billing.modules.bills.schemas import BillCreate, BillItemCreate
from billing.modules.bills.service import BillService
from billing.modules.invoices import tasks
from billing.modules.invoices.renderer import (
    ITEM_HEADER, invoice_filename, item_rows, render_invoice_pdf, summary_rows
)
from billing.modules.invoices.service import InvoiceService
from billing.modules.invoices.storage import LocalInvoiceStorage, MinIOInvoiceStorage


@pytest.fixture
def committed_bill(db_session, make_product):
    """Factura confirmada: P1 x2 a 100 con GST 18%"""
    make_product(code="P1", name="Blue Emulsion 4L", opening_stock="10")
    data = BillCreate(
        customer_name="Meera <Paints> & Co",
        items=[BillItemCreate(product_code="P1", quantity=Decimal("2"), rate=Decimal("100"))]
    )
    return BillService(db_session).create_bill(data)


# ===== TESTS DE RENDER =====

class TestRenderer:

    def test_filename(self):
        assert invoice_filename(42) == "invoice_42.pdf"

    def test_item_rows(self, committed_bill):
        rows = item_rows(committed_bill)
        assert rows[0] == ITEM_HEADER
        assert rows[1] == ["P1", "Blue Emulsion 4L", "2.00", "100.00", "18.00", "236.00"]

    def test_summary_rows(self, committed_bill):
        assert summary_rows(committed_bill, currency="Rs.") == [
            ["Subtotal", "Rs. 200.00"],
            ["GST", "Rs. 36.00"],
            ["Discount", "Rs. 0.00"],
            ["Net Amount", "Rs. 236.00"],
        ]

    def test_render_pdf(self, committed_bill):
        data = render_invoice_pdf(committed_bill, shop_name="Colour House")
        assert data.startswith(b"%PDF")
        assert len(data) > 500


# ===== TESTS DE STORAGE =====

class TestLocalInvoiceStorage:

    def test_save_and_exists(self, tmp_path):
        storage = LocalInvoiceStorage(str(tmp_path / "out"), "/invoices/")
        assert not storage.exists("invoice_1.pdf")

        url = storage.save("invoice_1.pdf", b"%PDF-1.4 test")

        assert url == "/invoices/invoice_1.pdf"
        assert storage.exists("invoice_1.pdf")
        assert (tmp_path / "out" / "invoice_1.pdf").read_bytes() == b"%PDF-1.4 test"
        # Sin temporales huérfanos
        assert [p.name for p in (tmp_path / "out").iterdir()] == ["invoice_1.pdf"]

    def test_save_overwrites(self, tmp_path):
        storage = LocalInvoiceStorage(str(tmp_path))
        storage.save("invoice_1.pdf", b"old")
        storage.save("invoice_1.pdf", b"new")
        assert (tmp_path / "invoice_1.pdf").read_bytes() == b"new"


class TestMinIOInvoiceStorage:

    def make_storage(self, bucket_exists=True):
        client = Mock()
        client.bucket_exists.return_value = bucket_exists
        client.presigned_get_object.return_value = "https://minio.local/invoices/invoice_7.pdf?sig=abc"
        storage = MinIOInvoiceStorage(client=client, bucket_name="invoices", url_expires=timedelta(hours=2))
        return storage, client

    def test_save_uploads_pdf(self):
        storage, client = self.make_storage()

        url = storage.save("invoice_7.pdf", b"%PDF-data")

        assert url == "https://minio.local/invoices/invoice_7.pdf?sig=abc"
        kwargs = client.put_object.call_args.kwargs
        assert kwargs["bucket_name"] == "invoices"
        assert kwargs["object_name"] == "invoice_7.pdf"
        assert kwargs["length"] == len(b"%PDF-data")
        assert kwargs["content_type"] == "application/pdf"
        assert kwargs["data"].read() == b"%PDF-data"
        client.presigned_get_object.assert_called_once_with(
            bucket_name="invoices", object_name="invoice_7.pdf", expires=timedelta(hours=2)
        )

    def test_creates_missing_bucket_once(self):
        storage, client = self.make_storage(bucket_exists=False)
        storage.save("invoice_1.pdf", b"a")
        storage.save("invoice_2.pdf", b"b")
        client.make_bucket.assert_called_once_with(bucket_name="invoices")
        assert client.bucket_exists.call_count == 1

    def test_exists(self):
        storage, client = self.make_storage()
        assert storage.exists("invoice_7.pdf")

        client.stat_object.side_effect = S3Error(
            code="NoSuchKey", message="Object does not exist", resource="invoice_7.pdf",
            request_id="req-1", host_id="host-1", response=None
        )
        assert not storage.exists("invoice_7.pdf")


# ===== TESTS DEL SERVICIO =====

class TestInvoiceService:

    def test_generate_for_bill(self, committed_bill, invoice_storage):
        location = InvoiceService(invoice_storage).generate_for_bill(committed_bill)
        assert location.bill_id == committed_bill.id
        assert location.filename == f"invoice_{committed_bill.id}.pdf"
        assert location.url == f"/invoices/invoice_{committed_bill.id}.pdf"
        assert invoice_storage.exists(location.filename)

    def test_renderer_error_is_wrapped(self, committed_bill, invoice_storage):
        def broken_renderer(bill):
            raise ValueError("bad font")

        with pytest.raises(ArtifactGenerationFailure) as exc:
            InvoiceService(invoice_storage, renderer=broken_renderer).generate_for_bill(committed_bill)

        assert exc.value.bill_id == committed_bill.id
        assert exc.value.status_code == 500
        assert exc.value.detail["code"] == "invoice_generation_failed"

    def test_storage_error_is_wrapped(self, committed_bill):
        storage = Mock()
        storage.save.side_effect = OSError("disk full")
        with pytest.raises(ArtifactGenerationFailure):
            InvoiceService(storage, renderer=lambda bill: b"%PDF").generate_for_bill(committed_bill)

    def test_locate_and_find_missing(self, committed_bill, invoice_storage):
        service = InvoiceService(invoice_storage)
        assert service.locate(committed_bill.id) is None
        assert service.find_missing([committed_bill]) == [committed_bill.id]

        service.generate_for_bill(committed_bill)

        location = service.locate(committed_bill.id)
        assert location.url == f"/invoices/invoice_{committed_bill.id}.pdf"
        assert service.find_missing([committed_bill]) == []


# ===== TESTS DE API =====

class TestInvoiceAPI:

    def create_bill(self, client, make_product):
        make_product(code="P1", opening_stock="10")
        response = client.post("/api/bills", json={
            "customerName": "Asha",
            "items": [{"productCode": "P1", "quantity": 1, "rate": 100}]
        })
        assert response.status_code == 201
        return response.json()

    def test_download_invoice(self, client, make_product):
        bill = self.create_bill(client, make_product)
        response = client.get(f"/api/bills/{bill['id']}/invoice")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_download_missing_invoice(self, client, make_product, invoice_storage):
        bill = self.create_bill(client, make_product)
        os.remove(invoice_storage.path(f"invoice_{bill['id']}.pdf"))

        response = client.get(f"/api/bills/{bill['id']}/invoice")
        assert response.status_code == 404

    def test_download_unknown_bill(self, client):
        response = client.get("/api/bills/999/invoice")
        assert response.status_code == 404
        assert response.json()["detail"]["message"] == "bill 999 not found"

    def test_regenerate_invoice(self, client, make_product, invoice_storage):
        bill = self.create_bill(client, make_product)
        filename = f"invoice_{bill['id']}.pdf"
        invoice_storage.save(filename, b"stale")

        response = client.post(f"/api/bills/{bill['id']}/invoice")

        assert response.status_code == 201
        assert response.json() == {
            "billId": bill["id"],
            "filename": filename,
            "invoiceUrl": f"/invoices/{filename}"
        }
        with open(invoice_storage.path(filename), "rb") as f:
            assert f.read().startswith(b"%PDF")


# ===== TESTS DE TAREAS =====

class TestInvoiceTasks:

    def test_enqueue_missing_invoices(self, db_session, committed_bill, invoice_storage):
        service = InvoiceService(invoice_storage)
        queued = []

        result = tasks.enqueue_missing_invoices(db_session, service, limit=10, enqueue=queued.append)

        assert result == {"checked": 1, "enqueued": [committed_bill.id]}
        assert queued == [committed_bill.id]

        service.generate_for_bill(committed_bill)
        queued.clear()
        result = tasks.enqueue_missing_invoices(db_session, service, limit=10, enqueue=queued.append)
        assert result["enqueued"] == []
        assert queued == []

    def test_regenerate_invoice_task(self, monkeypatch, session_factory, committed_bill, invoice_service, invoice_storage):
        monkeypatch.setattr(tasks, "SessionLocal", session_factory)
        monkeypatch.setattr(tasks, "get_invoice_service", lambda: invoice_service)

        result = tasks.regenerate_invoice(committed_bill.id)

        assert result["status"] == "generated"
        assert invoice_storage.exists(f"invoice_{committed_bill.id}.pdf")

    def test_regenerate_invoice_for_missing_bill(self, monkeypatch, session_factory, invoice_service):
        monkeypatch.setattr(tasks, "SessionLocal", session_factory)
        monkeypatch.setattr(tasks, "get_invoice_service", lambda: invoice_service)

        assert tasks.regenerate_invoice(404) == {"status": "missing_bill", "bill_id": 404}
