"""
Tests para el módulo de inventario

- Registro de locks por producto (orden, timeout, liberación)
- StockLedger: validación de existencia y stock de cierre
- Endpoints de stock y registro de compras
"""

import threading
import time
from decimal import Decimal

import pytest

from billing.common.exceptions import InsufficientStock, ProductNotFound
from billing.modules.inventory.locks import LockTimeout, ProductLockRegistry
from billing.modules.inventory.service import StockLedger


# ===== TESTS DE LOCKS =====

class TestProductLockRegistry:

    def test_hold_returns_sorted_distinct_codes(self):
        locks = ProductLockRegistry()
        with locks.hold(["B", "A", "B"]) as codes:
            assert codes == ["A", "B"]
            assert locks.is_locked("A")
            assert locks.is_locked("B")
        assert not locks.is_locked("A")
        assert not locks.is_locked("B")

    def test_locks_released_on_error(self):
        locks = ProductLockRegistry()
        with pytest.raises(RuntimeError):
            with locks.hold(["A"]):
                raise RuntimeError("boom")
        assert not locks.is_locked("A")

    def test_timeout_releases_partial_acquisitions(self):
        locks = ProductLockRegistry(timeout=0.05)
        with locks.hold(["B"]):
            with pytest.raises(LockTimeout) as exc:
                with locks.hold(["A", "B"]):
                    pass
            assert exc.value.product_code == "B"
            # "A" se tomó primero y debe haberse liberado
            assert not locks.is_locked("A")

    def test_disjoint_codes_do_not_block(self):
        locks = ProductLockRegistry(timeout=1)
        acquired = threading.Event()

        def other():
            with locks.hold(["P2"]):
                acquired.set()

        with locks.hold(["P1"]):
            worker = threading.Thread(target=other)
            worker.start()
            assert acquired.wait(timeout=1)
            worker.join()

    def test_same_code_blocks_until_release(self):
        locks = ProductLockRegistry(timeout=5)
        order = []

        def other():
            with locks.hold(["P1"]):
                order.append("other")

        with locks.hold(["P1"]):
            worker = threading.Thread(target=other)
            worker.start()
            time.sleep(0.1)
            order.append("holder")
        worker.join()
        assert order == ["holder", "other"]


# ===== TESTS DEL LEDGER =====

class TestStockLedger:

    def test_lock_and_validate_returns_products(self, db_session, make_product):
        make_product(code="P1", opening_stock="10")
        make_product(code="P2", opening_stock="5", purchases="3", sales="2")

        locked = StockLedger(db_session).lock_and_validate({"P1": Decimal("10"), "P2": Decimal("6")})
        assert set(locked) == {"P1", "P2"}
        assert locked["P2"].closing_stock == Decimal("6")

    def test_missing_product(self, db_session, make_product):
        make_product(code="P1")
        with pytest.raises(ProductNotFound) as exc:
            StockLedger(db_session).lock_and_validate({"P1": Decimal("1"), "NOPE": Decimal("1")})
        assert exc.value.product_code == "NOPE"
        assert exc.value.detail["message"] == "product NOPE not found"

    def test_insufficient_stock(self, db_session, make_product):
        make_product(code="P1", name="Red Enamel", opening_stock="4", purchases="1", sales="2")
        with pytest.raises(InsufficientStock) as exc:
            StockLedger(db_session).lock_and_validate({"P1": Decimal("3.5")})
        assert exc.value.available == Decimal("3")
        assert exc.value.detail["message"] == "insufficient stock for Red Enamel. Available: 3.00"

    def test_validation_does_not_mutate(self, db_session, make_product):
        make_product(code="P1", opening_stock="10")
        locked = StockLedger(db_session).lock_and_validate({"P1": Decimal("4")})
        assert locked["P1"].sales == Decimal("0")

    def test_apply_sale(self, db_session, make_product):
        product = make_product(code="P1", opening_stock="10")
        StockLedger(db_session).apply_sale(product, Decimal("3"))
        assert product.sales == Decimal("3")
        assert product.closing_stock == Decimal("7")

    def test_apply_sale_refuses_negative_stock(self, db_session, make_product):
        product = make_product(code="P1", opening_stock="1")
        with pytest.raises(RuntimeError):
            StockLedger(db_session).apply_sale(product, Decimal("2"))


# ===== TESTS DE API =====

class TestInventoryAPI:

    def test_list_stock(self, client, make_product):
        make_product(code="B1", opening_stock="5", purchases="2", sales="1")
        make_product(code="A1", opening_stock="3")

        response = client.get("/api/inventory/stock")
        assert response.status_code == 200
        data = response.json()
        assert [row["code"] for row in data] == ["A1", "B1"]
        assert Decimal(data[1]["closingStock"]) == Decimal("6")

    def test_get_stock_not_found(self, client):
        response = client.get("/api/inventory/stock/NOPE")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"

    def test_record_purchase(self, client, make_product, fetch_product):
        make_product(code="P1", opening_stock="2")

        response = client.post("/api/inventory/stock/P1/purchases", json={"quantity": "8"})
        assert response.status_code == 201
        assert Decimal(response.json()["closingStock"]) == Decimal("10")
        assert fetch_product("P1").purchases == Decimal("8")

    def test_record_purchase_rejects_non_positive(self, client, make_product):
        make_product(code="P1")
        response = client.post("/api/inventory/stock/P1/purchases", json={"quantity": 0})
        assert response.status_code == 422

    def test_record_purchase_rejects_sub_cent_quantity(self, client, make_product, fetch_product):
        make_product(code="P1")
        response = client.post("/api/inventory/stock/P1/purchases", json={"quantity": "0.004"})
        assert response.status_code == 422
        assert fetch_product("P1").purchases == Decimal("0")

    def test_record_purchase_unknown_product(self, client):
        response = client.post("/api/inventory/stock/NOPE/purchases", json={"quantity": 1})
        assert response.status_code == 404
