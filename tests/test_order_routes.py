import pytest

from core.imports import text
from services.orders import OrderService
from conftest import register, make_product, count_rows

ORDER = {"address": "1 Main St", "quantity": 2, "price": 10.00, "barcode": "B1", "variationname": "Red"}


@pytest.fixture
def product(app_engine):
    seller_id = "SELLER1"
    with app_engine.begin() as conn:
        conn.execute(text(
            "INSERT INTO [User] (Id, Username, Password, Email) VALUES (:id, 'shop', 'x', 'shop@example.com')"
        ), {"id": seller_id})
        conn.execute(text("INSERT INTO Seller (Id) VALUES (:id)"), {"id": seller_id})
    return make_product(app_engine, seller_id, barcode="B1", name="Sneaker")


def test_buyer_places_order(client, app_engine, product):
    register(client, "buyer")

    response = client.post("/api/orders", json=ORDER)

    assert response.status_code == 201
    order = response.get_json()["order"]
    assert order["total"] == 20.0
    assert order["status"] == "Pending"

    fetched = client.get(f"/api/orders/{order['id']}")
    assert fetched.status_code == 200
    assert fetched.get_json()["order"]["orderItems"][0]["quantity"] == 2


def test_order_requires_login(client):
    assert client.post("/api/orders", json=ORDER).status_code == 401


def test_sellers_cannot_order(client, app_engine):
    register(client, "seller")
    assert client.post("/api/orders", json=ORDER).status_code == 403
    assert count_rows(app_engine, "[Order]") == 0


def test_admin_can_order(client, app_engine):
    user = register(client, "seller")
    with app_engine.begin() as conn:
        conn.execute(text("INSERT INTO Admin (Id) VALUES (:id)"), {"id": user["id"]})

    assert client.post("/api/orders", json=ORDER).status_code == 201


@pytest.mark.parametrize("field", ["address", "quantity", "price", "barcode", "variationname"])
def test_order_missing_field(client, app_engine, field):
    register(client, "buyer")
    body = dict(ORDER)
    del body[field]

    response = client.post("/api/orders", json=body)

    assert response.status_code == 400
    assert count_rows(app_engine, "[Order]") == 0


def test_order_with_bad_quantity(client, app_engine):
    register(client, "buyer")
    response = client.post("/api/orders", json=dict(ORDER, quantity="lots"))
    assert response.status_code == 400
    assert count_rows(app_engine, "[Order]") == 0


def test_other_buyers_order_is_hidden(client, app_engine):
    register(client, "buyer")
    order_id = client.post("/api/orders", json=ORDER).get_json()["order"]["id"]
    client.post("/api/users/logout")
    register(client, "buyer")

    assert client.get(f"/api/orders/{order_id}").status_code == 404


def test_order_details_report(client, app_engine):
    buyer = register(client, "buyer")
    client.post("/api/orders", json=ORDER)
    OrderService(app_engine).create_order(buyer["id"], "a", 1, 1, "B1", "Red", status="Delivered")

    everything = client.get("/api/orders/details").get_json()
    assert everything["count"] == 2

    delivered = client.get("/api/orders/details?status=Delivered&minItems=1").get_json()
    assert delivered["count"] == 1
    assert delivered["data"][0]["status"] == "Delivered"


def test_top_selling_defaults_to_own_products_for_sellers(client, app_engine, product):
    buyer = register(client, "buyer")
    OrderService(app_engine).create_order(buyer["id"], "a", 3, 10, "B1", "Red", status="Delivered")
    client.post("/api/users/logout")

    register(client, "seller")
    own = client.get("/api/orders/reports/top-selling").get_json()
    assert own == {"success": True, "count": 0, "data": []}

    everyone = client.get("/api/orders/reports/top-selling?sellerId=SELLER1").get_json()
    assert everyone["data"] == [{"barcode": "B1", "name": "Sneaker", "totalQuantitySold": 3}]


def test_free_item_order(client, app_engine):
    register(client, "buyer")

    response = client.post("/api/orders", json=dict(ORDER, price=0))

    assert response.status_code == 201
    assert response.get_json()["order"]["total"] == 0.0
