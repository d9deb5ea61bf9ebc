"""
Tests para facturas de venta (Bills)

Tests que cubren:
- Caso de referencia: P1 stock 10, rate 100, GST 18%, cantidad 2
- Rechazo atómico por producto inexistente o stock insuficiente
- Concurrencia: dos facturas de 6 contra stock 10, solo una confirma
- Estados de la transacción y rollback ante fallos de persistencia
- Fallo del PDF después del commit: la factura se mantiene
"""

import threading
import time
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from billing.common.exceptions import (
    BillValidationError, InsufficientStock, PersistenceFailure, ProductNotFound
)
from billing.main import app
from billing.modules.bills.models import Bill, BillTransactionState
from billing.modules.bills.schemas import BillCreate, BillItemCreate
from billing.modules.bills.service import BillService
from billing.modules.inventory.locks import ProductLockRegistry
from billing.modules.invoices.service import InvoiceService, get_invoice_service


def bill_request(*items, customer="Ravi Traders", discount=None):
    lines = [
        BillItemCreate(product_code=code, quantity=Decimal(str(qty)), rate=Decimal(str(rate)))
        for code, qty, rate in items
    ]
    return BillCreate(customer_name=customer, items=lines, discount=discount)


def count_bills(session_factory):
    session = session_factory()
    try:
        return session.query(Bill).count()
    finally:
        session.close()


# ===== TESTS DEL COORDINADOR =====

class TestBillService:

    def test_reference_bill(self, db_session, make_product, fetch_product):
        make_product(code="P1", opening_stock="10", rate="100", gst_perc="18")

        bill = BillService(db_session).create_bill(bill_request(("P1", 2, 100)))

        assert bill.id is not None
        assert bill.subtotal == Decimal("200.00")
        assert bill.gst_amount == Decimal("36.00")
        assert bill.discount == Decimal("0.00")
        assert bill.net_amount == Decimal("236.00")
        assert len(bill.items) == 1
        assert bill.items[0].line_total == Decimal("236.00")
        assert bill.items[0].gst_perc == Decimal("18")

        product = fetch_product("P1")
        assert product.sales == Decimal("2")
        assert product.closing_stock == Decimal("8")

    def test_transaction_states_on_success(self, db_session, make_product):
        make_product(code="P1")
        service = BillService(db_session)
        service.create_bill(bill_request(("P1", 1, 100)))
        assert service.last_transaction.history == [
            BillTransactionState.STARTED,
            BillTransactionState.VALIDATING,
            BillTransactionState.MUTATING,
            BillTransactionState.COMMITTING,
            BillTransactionState.COMMITTED,
        ]

    def test_missing_customer_name(self, db_session, make_product):
        make_product(code="P1")
        with pytest.raises(BillValidationError):
            BillService(db_session).create_bill(bill_request(("P1", 1, 100), customer="   "))

    def test_empty_items(self, db_session):
        with pytest.raises(BillValidationError) as exc:
            BillService(db_session).create_bill(BillCreate(customer_name="Asha", items=[]))
        assert exc.value.detail["message"] == "customer name and items are required"

    def test_unknown_product_mutates_nothing(self, db_session, session_factory, make_product, fetch_product):
        make_product(code="P1")
        service = BillService(db_session)

        with pytest.raises(ProductNotFound) as exc:
            service.create_bill(bill_request(("P1", 2, 100), ("GHOST", 1, 10)))

        assert exc.value.product_code == "GHOST"
        assert service.last_transaction.state == BillTransactionState.ROLLED_BACK
        assert fetch_product("P1").sales == Decimal("0")
        assert count_bills(session_factory) == 0

    def test_insufficient_stock_rejects_whole_bill(self, db_session, session_factory, make_product, fetch_product):
        make_product(code="P1", opening_stock="10")
        make_product(code="P2", name="Thinner 1L", opening_stock="1")

        with pytest.raises(InsufficientStock) as exc:
            BillService(db_session).create_bill(bill_request(("P1", 5, 100), ("P2", 2, 50)))

        assert exc.value.product_code == "P2"
        assert exc.value.detail["message"] == "insufficient stock for Thinner 1L. Available: 1.00"
        assert fetch_product("P1").sales == Decimal("0")
        assert fetch_product("P2").sales == Decimal("0")
        assert count_bills(session_factory) == 0

    def test_repeated_lines_are_validated_together(self, db_session, make_product, fetch_product):
        make_product(code="P1", opening_stock="10")

        with pytest.raises(InsufficientStock):
            BillService(db_session).create_bill(bill_request(("P1", 6, 100), ("P1", 6, 100)))
        assert fetch_product("P1").sales == Decimal("0")

    def test_repeated_lines_within_stock(self, db_session, make_product, fetch_product):
        make_product(code="P1", opening_stock="10")
        bill = BillService(db_session).create_bill(bill_request(("P1", 4, 100), ("P1", 6, 90)))
        assert len(bill.items) == 2
        assert fetch_product("P1").closing_stock == Decimal("0")

    def test_persistence_failure_rolls_back(self, session_factory, make_product, fetch_product, monkeypatch):
        make_product(code="P1", opening_stock="10")
        session = session_factory()

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(session, "commit", failing_commit)
        service = BillService(session)
        try:
            with pytest.raises(PersistenceFailure) as exc:
                service.create_bill(bill_request(("P1", 3, 100)))
        finally:
            session.close()

        assert exc.value.status_code == 500
        assert exc.value.detail == {"code": "persistence_failure", "message": "error creating bill"}
        assert service.last_transaction.state == BillTransactionState.ROLLED_BACK
        assert fetch_product("P1").sales == Decimal("0")
        assert count_bills(session_factory) == 0

    def test_lock_timeout_is_persistence_failure(self, db_session, make_product):
        make_product(code="P1")
        locks = ProductLockRegistry(timeout=0.05)
        with locks.hold(["P1"]):
            with pytest.raises(PersistenceFailure):
                BillService(db_session, locks=locks).create_bill(bill_request(("P1", 1, 100)))

    def test_bill_is_complete_without_reload(self, session_factory, make_product):
        make_product(code="P1")
        session = session_factory()
        try:
            bill = BillService(session).create_bill(bill_request(("P1", 2, 100)))
        finally:
            session.close()

        # Sin sesión abierta: todo lo necesario ya quedó cargado en el flush
        assert bill.id is not None
        assert bill.created_at is not None
        assert bill.items[0].id is not None
        assert bill.net_amount == Decimal("236.00")

    def test_snapshot_survives_catalog_rename(self, db_session, session_factory, make_product):
        product = make_product(code="P1", name="Blue Emulsion")
        bill = BillService(db_session).create_bill(bill_request(("P1", 1, 100)))

        product.name = "Blue Emulsion (new)"
        db_session.commit()

        session = session_factory()
        try:
            reloaded = BillService(session).get_bill(bill.id)
            assert reloaded.items[0].product_name == "Blue Emulsion"
        finally:
            session.close()


# ===== TESTS DE CONCURRENCIA =====

class TestConcurrentBills:

    def test_only_one_of_two_competing_bills_commits(self, session_factory, make_product, fetch_product):
        make_product(code="P1", opening_stock="10")
        locks = ProductLockRegistry(timeout=10)
        barrier = threading.Barrier(2)
        results = []

        def worker():
            session = session_factory()
            try:
                barrier.wait()
                bill = BillService(session, locks=locks).create_bill(bill_request(("P1", 6, 100)))
                results.append(("committed", bill.id))
            except InsufficientStock as e:
                results.append(("rejected", e.available))
            finally:
                session.close()

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=20)

        assert sorted(outcome for outcome, _ in results) == ["committed", "rejected"]
        rejected = [value for outcome, value in results if outcome == "rejected"][0]
        assert rejected == Decimal("4")

        product = fetch_product("P1")
        assert product.sales == Decimal("6")
        assert product.closing_stock == Decimal("4")
        assert count_bills(session_factory) == 1

    def test_bill_waits_for_lock_holder(self, session_factory, make_product, fetch_product):
        make_product(code="P1", opening_stock="10")
        locks = ProductLockRegistry(timeout=10)
        done = threading.Event()

        def worker():
            session = session_factory()
            try:
                BillService(session, locks=locks).create_bill(bill_request(("P1", 2, 100)))
            finally:
                session.close()
                done.set()

        with locks.hold(["P1"]):
            thread = threading.Thread(target=worker)
            thread.start()
            time.sleep(0.2)
            assert not done.is_set()
            assert fetch_product("P1").sales == Decimal("0")

        thread.join(timeout=10)
        assert done.is_set()
        assert fetch_product("P1").sales == Decimal("2")

    def test_disjoint_products_proceed_in_parallel(self, session_factory, make_product, fetch_product):
        make_product(code="P1")
        make_product(code="P2")
        locks = ProductLockRegistry(timeout=1)

        with locks.hold(["P1"]):
            session = session_factory()
            try:
                bill = BillService(session, locks=locks).create_bill(bill_request(("P2", 3, 100)))
            finally:
                session.close()

        assert bill.id is not None
        assert fetch_product("P2").sales == Decimal("3")


# ===== TESTS DE API =====

class TestBillAPI:

    def test_create_bill_endpoint(self, client, make_product, invoice_storage):
        make_product(code="P1", opening_stock="10", rate="100", gst_perc="18")

        response = client.post("/api/bills", json={
            "customerName": "  Meera Paints  ",
            "items": [{"productCode": "P1", "quantity": 2, "rate": 100, "discountPerc": 0, "gstPerc": 18}]
        })

        assert response.status_code == 201
        data = response.json()
        assert data["customerName"] == "Meera Paints"
        assert Decimal(data["subtotal"]) == Decimal("200")
        assert Decimal(data["gstAmount"]) == Decimal("36")
        assert Decimal(data["discount"]) == Decimal("0")
        assert Decimal(data["netAmount"]) == Decimal("236")
        assert Decimal(data["items"][0]["lineTotal"]) == Decimal("236")
        assert data["items"][0]["productName"] == "Product P1"
        assert data["invoiceUrl"] == f"/invoices/invoice_{data['id']}.pdf"
        assert invoice_storage.exists(f"invoice_{data['id']}.pdf")

    def test_overall_discount_and_default_gst(self, client, make_product):
        make_product(code="P1", opening_stock="10")

        response = client.post("/api/bills", json={
            "customerName": "Asha",
            "items": [{"productCode": "P1", "quantity": 2, "rate": 100}],
            "discount": 10
        })

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["items"][0]["gstPerc"]) == Decimal("18")
        assert Decimal(data["discount"]) == Decimal("20")
        assert Decimal(data["netAmount"]) == Decimal("216")
        assert Decimal(data["netAmount"]) == (
            Decimal(data["subtotal"]) - Decimal(data["discount"]) + Decimal(data["gstAmount"])
        )

    def test_missing_customer_name(self, client, make_product):
        make_product(code="P1")
        response = client.post("/api/bills", json={
            "items": [{"productCode": "P1", "quantity": 1, "rate": 100}]
        })
        assert response.status_code == 400
        assert response.json()["detail"] == {
            "code": "validation_error",
            "message": "customer name and items are required"
        }

    def test_empty_cart(self, client):
        response = client.post("/api/bills", json={"customerName": "Asha", "items": []})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "validation_error"

    def test_unknown_product(self, client, make_product, fetch_product):
        make_product(code="P1")
        response = client.post("/api/bills", json={
            "customerName": "Asha",
            "items": [
                {"productCode": "P1", "quantity": 1, "rate": 100},
                {"productCode": "NOPE", "quantity": 1, "rate": 100}
            ]
        })
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "product_not_found"
        assert detail["product_code"] == "NOPE"
        assert "NOPE" in detail["message"]
        assert fetch_product("P1").sales == Decimal("0")
        assert client.get("/api/bills").json() == []

    def test_insufficient_stock(self, client, make_product):
        make_product(code="P1", name="White Primer", opening_stock="3")
        response = client.post("/api/bills", json={
            "customerName": "Asha",
            "items": [{"productCode": "P1", "quantity": 5, "rate": 100}]
        })
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "insufficient stock for White Primer. Available: 3.00"

    @pytest.mark.parametrize("item", [
        {"productCode": "P1", "quantity": 0, "rate": 100},
        {"productCode": "P1", "quantity": 1, "rate": 100, "discountPerc": 120},
        {"productCode": "P1", "quantity": 1, "rate": 100, "gstPerc": -1},
        {"productCode": "P1", "quantity": 1},
    ])
    def test_invalid_line_rejected_by_schema(self, client, make_product, item):
        make_product(code="P1")
        response = client.post("/api/bills", json={"customerName": "Asha", "items": [item]})
        assert response.status_code == 422

    @pytest.mark.parametrize("item", [
        {"productCode": "P1", "quantity": "0.004", "rate": "100"},
        {"productCode": "P1", "quantity": "1", "rate": "99.999"},
        {"productCode": "P1", "quantity": "1", "rate": "100", "discountPerc": "2.505"},
        {"productCode": "P1", "quantity": "1", "rate": "100", "gstPerc": "18.001"},
    ])
    def test_sub_cent_values_rejected(self, client, make_product, fetch_product, item):
        make_product(code="P1", opening_stock="10")

        response = client.post("/api/bills", json={"customerName": "Asha", "items": [item]})

        assert response.status_code == 422
        assert fetch_product("P1").sales == Decimal("0")
        assert client.get("/api/bills").json() == []

    def test_sub_cent_overall_discount_rejected(self, client, make_product):
        make_product(code="P1")
        response = client.post("/api/bills", json={
            "customerName": "Asha",
            "items": [{"productCode": "P1", "quantity": 1, "rate": 100}],
            "discount": "10.125"
        })
        assert response.status_code == 422

    def test_fractional_quantity_is_deducted(self, client, make_product, fetch_product):
        make_product(code="P1", opening_stock="10")

        response = client.post("/api/bills", json={
            "customerName": "Asha",
            "items": [{"productCode": "P1", "quantity": "0.25", "rate": "100"}]
        })

        assert response.status_code == 201
        assert Decimal(response.json()["items"][0]["quantity"]) == Decimal("0.25")
        assert fetch_product("P1").sales == Decimal("0.25")

    def test_invoice_failure_keeps_bill(self, client, make_product, invoice_storage, fetch_product):
        make_product(code="P1", opening_stock="10")

        def broken_renderer(bill):
            raise IOError("disk full")

        app.dependency_overrides[get_invoice_service] = lambda: InvoiceService(invoice_storage, renderer=broken_renderer)

        response = client.post("/api/bills", json={
            "customerName": "Asha",
            "items": [{"productCode": "P1", "quantity": 2, "rate": 100}]
        })

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["code"] == "invoice_generation_failed"
        bill_id = detail["bill_id"]

        bills = client.get("/api/bills").json()
        assert [b["id"] for b in bills] == [bill_id]
        assert Decimal(bills[0]["netAmount"]) == Decimal("236")
        assert fetch_product("P1").sales == Decimal("2")
        assert not invoice_storage.exists(f"invoice_{bill_id}.pdf")

    def test_list_bills_newest_first(self, client, make_product):
        make_product(code="P1", opening_stock="10")
        for customer in ("First", "Second"):
            client.post("/api/bills", json={
                "customerName": customer,
                "items": [{"productCode": "P1", "quantity": 1, "rate": 100}]
            })

        bills = client.get("/api/bills").json()
        assert [b["customerName"] for b in bills] == ["Second", "First"]
        assert all(len(b["items"]) == 1 for b in bills)

        assert len(client.get("/api/bills", params={"limit": 1}).json()) == 1

    def test_get_bill(self, client, make_product):
        make_product(code="P1")
        created = client.post("/api/bills", json={
            "customerName": "Asha",
            "items": [{"productCode": "P1", "quantity": 1, "rate": 100}]
        }).json()

        response = client.get(f"/api/bills/{created['id']}")
        assert response.status_code == 200
        assert response.json()["customerName"] == "Asha"

    def test_get_bill_not_found(self, client):
        response = client.get("/api/bills/12345")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"
