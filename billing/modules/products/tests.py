"""
Tests para el catálogo de productos (CRUD)
"""

from decimal import Decimal

import pytest


@pytest.fixture
def sample_product_data():
    """Datos de ejemplo en el formato del cliente web"""
    return {
        "code": "ENM-RED-1L",
        "name": "Red Enamel 1L",
        "openingStock": "20",
        "purchases": "5",
        "sales": "0",
        "rate": "450",
        "gstPerc": "18"
    }


class TestProductAPI:

    def test_create_product(self, client, sample_product_data):
        response = client.post("/api/products", json=sample_product_data)
        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "ENM-RED-1L"
        assert Decimal(data["closingStock"]) == Decimal("25")
        assert data["id"] > 0

    def test_create_duplicate_code(self, client, sample_product_data):
        assert client.post("/api/products", json=sample_product_data).status_code == 201
        response = client.post("/api/products", json=sample_product_data)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "duplicate_product_code"
        assert response.json()["detail"]["message"] == "product code already exists"

    def test_create_rejects_negative_values(self, client, sample_product_data):
        sample_product_data["rate"] = "-1"
        assert client.post("/api/products", json=sample_product_data).status_code == 422

    def test_list_products_ordered_by_code(self, client, make_product):
        make_product(code="Z9")
        make_product(code="A1")
        response = client.get("/api/products")
        assert [p["code"] for p in response.json()] == ["A1", "Z9"]

    def test_get_product_not_found(self, client):
        response = client.get("/api/products/999")
        assert response.status_code == 404

    def test_update_product(self, client, make_product):
        product = make_product(code="P1", rate="100")
        response = client.put(f"/api/products/{product.id}", json={"rate": "120.50", "purchases": "4"})
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["rate"]) == Decimal("120.50")
        assert Decimal(data["closingStock"]) == Decimal("14")

    def test_update_rejects_negative_closing_stock(self, client, make_product, fetch_product):
        product = make_product(code="P1", opening_stock="10", sales="8")
        response = client.put(f"/api/products/{product.id}", json={"openingStock": "5"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "negative_stock"
        assert fetch_product("P1").opening_stock == Decimal("10")

    def test_create_rejects_negative_closing_stock(self, client, sample_product_data):
        sample_product_data.update({"openingStock": "0", "purchases": "0", "sales": "5"})
        response = client.post("/api/products", json=sample_product_data)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "negative_stock"
        assert client.get("/api/products").json() == []

    @pytest.mark.parametrize("field, value", [
        ("openingStock", "1.005"),
        ("rate", "450.125"),
        ("gstPerc", "18.001"),
    ])
    def test_create_rejects_sub_cent_values(self, client, sample_product_data, field, value):
        sample_product_data[field] = value
        assert client.post("/api/products", json=sample_product_data).status_code == 422

    @pytest.mark.parametrize("payload", [{"code": "   "}, {"name": ""}, {"sales": "0.001"}])
    def test_update_rejects_invalid_fields(self, client, make_product, fetch_product, payload):
        product = make_product(code="P1")
        response = client.put(f"/api/products/{product.id}", json=payload)
        assert response.status_code == 422
        assert fetch_product("P1") is not None

    def test_update_strips_code(self, client, make_product):
        product = make_product(code="P1")
        response = client.put(f"/api/products/{product.id}", json={"code": "  P1-NEW "})
        assert response.status_code == 200
        assert response.json()["code"] == "P1-NEW"

    def test_update_to_existing_code(self, client, make_product):
        make_product(code="P1")
        other = make_product(code="P2")
        response = client.put(f"/api/products/{other.id}", json={"code": "P1"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "duplicate_product_code"

    def test_delete_product_keeps_bill_snapshot(self, client, make_product):
        product = make_product(code="P1", name="Primer 4L", opening_stock="10")
        bill = client.post("/api/bills", json={
            "customerName": "Asha",
            "items": [{"productCode": "P1", "quantity": 1, "rate": 100}]
        })
        assert bill.status_code == 201

        response = client.delete(f"/api/products/{product.id}")
        assert response.status_code == 200
        assert client.get(f"/api/products/{product.id}").status_code == 404

        bills = client.get("/api/bills").json()
        assert bills[0]["items"][0]["productName"] == "Primer 4L"
