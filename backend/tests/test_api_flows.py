"""
End-to-end API flows through the HTTP layer.

Verifies:
- Stock in, sell, and the 409 body for insufficient stock
- Park a bill, resume it into a checkout
- Manual POS item lands in the Extra warehouse and can be promoted
- CSV export and import endpoints
- Generic resource endpoints and bulk delete
- Notifications feed read flags
"""

import io

import pytest


@pytest.fixture
def stocked(client, admin_headers):
    warehouse = client.post("/api/warehouses", json={"name": "Main"}, headers=admin_headers).json
    product = client.post(
        "/api/products",
        json={"name": "Soap", "sku": "SOAP-1", "selling_price_cents": 300},
        headers=admin_headers,
    ).json
    response = client.post("/api/inventory/movements", json={
        "product_id": product["id"],
        "warehouse_id": warehouse["id"],
        "movement_type": "in",
        "quantity": 5,
    }, headers=admin_headers)
    assert response.status_code == 201
    return warehouse, product


def test_sale_reduces_stock(client, admin_headers, stocked):
    warehouse, product = stocked
    response = client.post("/api/pos/checkout", json={
        "warehouse_id": warehouse["id"],
        "cart": [{"product_id": product["id"], "quantity": 2, "price_cents": 300}],
        "tax_cents": 0,
    }, headers=admin_headers)

    assert response.status_code == 201
    assert response.json["total_cents"] == 600
    stock = client.get(f"/api/products/{product['id']}", headers=admin_headers).json
    assert stock["total_stock"] == 3

    receipt = client.get(f"/api/pos/transactions/{response.json['id']}/receipt", headers=admin_headers)
    assert receipt.status_code == 200
    assert receipt.json["qr_code"].startswith("data:image/png;base64,")


def test_insufficient_stock_is_409(client, admin_headers, stocked):
    warehouse, product = stocked
    response = client.post("/api/pos/checkout", json={
        "warehouse_id": warehouse["id"],
        "cart": [{"product_id": product["id"], "quantity": 6, "price_cents": 300}],
    }, headers=admin_headers)

    assert response.status_code == 409
    assert response.json["error"].startswith("Insufficient stock")
    assert response.json["available"] == 5
    assert response.json["requested"] == 6


def test_checkout_requires_warehouse(client, cashier_headers):
    response = client.post("/api/pos/checkout", json={"cart": []}, headers=cashier_headers)
    assert response.status_code == 400


def test_park_and_resume_bill(client, admin_headers, stocked):
    warehouse, product = stocked
    line = {"product_id": product["id"], "quantity": 1, "price_cents": 300}

    bill = client.post("/api/pending-bills", json={
        "customer_name": "Walk-in Wanda", "warehouse_id": warehouse["id"], "cart": [line],
    }, headers=admin_headers)
    assert bill.status_code == 201
    bill_id = bill.json["id"]

    merged = client.post(f"/api/pending-bills/{bill_id}/merge", json={"cart": [line]}, headers=admin_headers)
    assert merged.json["items"][0]["quantity"] == 2

    cart = client.get(f"/api/pending-bills/{bill_id}/cart", headers=admin_headers).json
    assert cart["total_cents"] == 600

    sale = client.post("/api/pos/checkout", json={
        "warehouse_id": warehouse["id"], "cart": cart["cart"], "tax_cents": 0, "pending_bill_id": bill_id,
    }, headers=admin_headers)
    assert sale.status_code == 201
    assert client.get("/api/pending-bills", headers=admin_headers).json["count"] == 0


def test_bill_without_customer_name(client, admin_headers, stocked):
    warehouse, product = stocked
    response = client.post("/api/pending-bills", json={
        "customer_name": "", "warehouse_id": warehouse["id"],
        "cart": [{"product_id": product["id"], "quantity": 1, "price_cents": 300}],
    }, headers=admin_headers)
    assert response.status_code == 400
    assert response.json["error"] == "Customer name is required"


def test_manual_item_and_promotion(client, admin_headers, stocked, category):
    warehouse, _ = stocked
    line = client.post("/api/pos/manual-item", json={
        "name": "Gift card", "quantity": 3, "price_cents": 1000,
    }, headers=admin_headers)
    assert line.status_code == 201
    product_id = line.json["product_id"]

    classification = client.get(f"/api/products/{product_id}/classification", headers=admin_headers)
    assert classification.json["classification"] == "extra"

    moved = client.post(f"/api/products/{product_id}/move-to-regular", json={
        "warehouse_id": warehouse["id"], "category_id": category.id,
    }, headers=admin_headers)
    assert moved.status_code == 200

    classification = client.get(f"/api/products/{product_id}/classification", headers=admin_headers)
    assert classification.json["classification"] == "regular"


def test_csv_round_trip_endpoints(client, admin_headers, stocked):
    export = client.get("/api/products/export", headers=admin_headers)
    assert export.status_code == 200
    assert export.mimetype == "text/csv"
    assert "SOAP-1" in export.get_data(as_text=True)

    upload = client.post(
        "/api/products/import",
        data={"file": (io.BytesIO(b"name,sku,selling_price\nShampoo,SHAM-1,4.50\n"), "products.csv")},
        content_type="multipart/form-data",
        headers=admin_headers,
    )
    assert upload.status_code == 200
    assert upload.json["created"] == 1


def test_resource_endpoints(client, admin_headers, db_session):
    ids = []
    for name in ("North", "South"):
        response = client.post("/api/customers", json={"name": name}, headers=admin_headers)
        assert response.status_code == 201
        ids.append(response.json["id"])

    listing = client.get("/api/customers?search=nor", headers=admin_headers).json
    assert [c["name"] for c in listing["items"]] == ["North"]

    bad = client.post("/api/customers/bulk-delete", json={"ids": ids + [999]}, headers=admin_headers)
    assert bad.status_code == 404

    ok = client.post("/api/customers/bulk-delete", json={"ids": ids}, headers=admin_headers)
    assert ok.json == {"ok": True, "deleted": 2}


def test_notification_read_flags(client, admin_headers, stocked):
    feed = client.get("/api/notifications?refresh=1", headers=admin_headers).json
    assert [n["id"] for n in feed["notifications"]] == ["low-stock"]

    assert client.post("/api/notifications/low-stock/read", headers=admin_headers).json["unread_count"] == 0
    assert client.post("/api/notifications/nope/read", headers=admin_headers).status_code == 404

    feed = client.get("/api/notifications?refresh=1", headers=admin_headers).json
    assert feed["notifications"][0]["read"] is True


def test_product_page_size_is_clamped(client, admin_headers, make_product):
    for name in ("Apple", "Banana", "Cherry"):
        make_product(name)

    response = client.get("/api/products?page=2&per_page=-1", headers=admin_headers)

    assert response.status_code == 200
    pagination = response.json["pagination"]
    assert pagination["per_page"] == 1
    assert pagination["total_pages"] == 3
    assert pagination["has_next"] is True
    assert [p["name"] for p in response.json["items"]] == ["Banana"]
