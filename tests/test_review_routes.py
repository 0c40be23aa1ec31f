import pytest

from core.imports import text
from services.orders import OrderService
from conftest import register, make_product


@pytest.fixture
def purchase(client, app_engine):
    with app_engine.begin() as conn:
        conn.execute(text(
            "INSERT INTO [User] (Id, Username, Password, Email) VALUES ('SELLER1', 'shop', 'x', 'shop@example.com')"
        ))
        conn.execute(text("INSERT INTO Seller (Id) VALUES ('SELLER1')"))
    make_product(app_engine, "SELLER1", barcode="B1", name="Sneaker")
    buyer = register(client, "buyer", username="alice")
    order = OrderService(app_engine).create_order(buyer["id"], "1 Main St", 1, 10, "B1", "Red", status="Delivered")
    return {"buyer": buyer, "order": order}


def post_review(client, purchase, **overrides):
    body = {
        "orderId": purchase["order"]["id"],
        "orderItemId": purchase["order"]["orderItemId"],
        "rating": 5,
        "content": "Fits perfectly",
    }
    body.update(overrides)
    return client.post("/api/reviews", json=body)


def test_review_flow(client, purchase):
    pending = client.get("/api/reviews/purchased").get_json()["items"]
    assert [item["orderItemId"] for item in pending] == [purchase["order"]["orderItemId"]]

    response = post_review(client, purchase)
    assert response.status_code == 201
    review = response.get_json()["review"]
    assert review["username"] == "alice"

    assert client.get("/api/reviews/purchased").get_json()["items"] == []

    listed = client.get("/api/reviews/B1").get_json()["data"]
    assert [r["id"] for r in listed] == [review["id"]]
    by_query = client.get("/api/reviews?productId=B1&rating=all&sort=ASC").get_json()["data"]
    assert by_query == listed


def test_review_needs_fields(client, purchase):
    assert post_review(client, purchase, content="").status_code == 400
    assert post_review(client, purchase, orderId=None).status_code == 400
    assert post_review(client, purchase, orderItemId=None).status_code == 400


def test_review_for_foreign_item(client, purchase):
    assert post_review(client, purchase, orderItemId="NOTMINE").status_code == 400


def test_second_review_is_rejected(client, purchase):
    assert post_review(client, purchase).status_code == 201
    assert post_review(client, purchase).status_code == 400


def test_review_requires_login(client):
    assert client.post("/api/reviews", json={}).status_code == 401


def test_reviews_need_product_id(client):
    assert client.get("/api/reviews").status_code == 400


def test_reactions(client, purchase):
    review_id = post_review(client, purchase).get_json()["review"]["id"]

    helpful = client.post(f"/api/reviews/{review_id}/reactions", json={"type": "helpful"})
    assert helpful.status_code == 200
    assert helpful.get_json()["review"]["helpfulCount"] == 1

    again = client.post(f"/api/reviews/{review_id}/helpful")
    assert again.get_json()["review"]["helpfulCount"] == 1

    liked = client.post(f"/api/reviews/{review_id}/reactions", json={"type": "like"})
    assert liked.get_json()["review"]["helpfulCount"] == 0


def test_reaction_errors(client, purchase):
    review_id = post_review(client, purchase).get_json()["review"]["id"]

    assert client.post(f"/api/reviews/{review_id}/reactions", json={}).status_code == 400
    assert client.post("/api/reviews/NOPE/reactions", json={"type": "like"}).status_code == 404
    assert client.post("/api/reviews/NOPE/helpful").status_code == 404


def test_simple_product_list(client, purchase):
    response = client.get("/api/reviews/products")
    assert response.get_json()["data"] == [{"barcode": "B1", "name": "Sneaker"}]
