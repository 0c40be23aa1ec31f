import pytest

from core.imports import text, OperationalError
from core.errors import ValidationError, LinkageError
from services.orders import OrderService
from services.reviews import ReviewService, rating_filter, sort_direction
from conftest import make_user, make_product, count_rows


@pytest.fixture
def buyer(engine):
    return make_user(engine, "buyer", username="alice")


@pytest.fixture
def reviews(engine):
    return ReviewService(engine)


@pytest.fixture
def delivered(engine, buyer):
    seller = make_user(engine, "seller", username="sam")
    make_product(engine, seller["id"], barcode="B1", name="Sneaker")
    return OrderService(engine).create_order(buyer["id"], "1 Main St", 1, 10, "B1", "Red", status="Delivered")


@pytest.fixture
def review(reviews, buyer, delivered):
    return reviews.create_review(delivered["id"], delivered["orderItemId"], buyer["id"], 4, "Comfortable")


def reaction_rows(engine, review_id):
    with engine.connect() as conn:
        return [tuple(row) for row in conn.execute(
            text("SELECT Author, [Type] FROM Reactions WHERE ReviewID = :id"), {"id": review_id}
        )]


def test_create_review(engine, review, buyer):
    assert review["rating"] == 4
    assert review["username"] == "alice"
    assert review["helpfulCount"] == 0
    assert count_rows(engine, "Write_review") == 1


@pytest.mark.parametrize("missing", ["order_id", "order_item_id", "user_id"])
def test_review_without_link_writes_nothing(engine, reviews, buyer, delivered, missing):
    link = {"order_id": delivered["id"], "order_item_id": delivered["orderItemId"], "user_id": buyer["id"]}
    link[missing] = None

    with pytest.raises(LinkageError):
        reviews.create_review(rating=5, content="Great", **link)

    assert count_rows(engine, "Review") == 0
    assert count_rows(engine, "Write_review") == 0


def test_review_requires_content(engine, reviews, buyer, delivered):
    with pytest.raises(ValidationError):
        reviews.create_review(delivered["id"], delivered["orderItemId"], buyer["id"], 5, "   ")
    assert count_rows(engine, "Review") == 0


def test_review_of_someone_elses_item_is_rejected(engine, reviews, delivered):
    stranger = make_user(engine, "buyer", username="mallory")
    with pytest.raises(LinkageError):
        reviews.create_review(delivered["id"], delivered["orderItemId"], stranger["id"], 1, "Bad")
    assert count_rows(engine, "Review") == 0


def test_item_can_only_be_reviewed_once(engine, reviews, buyer, delivered, review):
    with pytest.raises(ValidationError):
        reviews.create_review(delivered["id"], delivered["orderItemId"], buyer["id"], 1, "Again")
    assert count_rows(engine, "Review") == 1


def test_repeated_reaction_is_idempotent(engine, reviews, buyer, review):
    first = reviews.upsert_reaction(review["id"], buyer["id"], "helpful")
    second = reviews.upsert_reaction(review["id"], buyer["id"], "helpful")

    assert first == second
    assert second["helpfulCount"] == 1
    assert reaction_rows(engine, review["id"]) == [(buyer["id"], "helpful")]


def test_changed_reaction_replaces_the_old_one(engine, reviews, buyer, review):
    reviews.upsert_reaction(review["id"], buyer["id"], "helpful")
    updated = reviews.upsert_reaction(review["id"], buyer["id"], "like")

    assert updated["helpfulCount"] == 0
    assert reaction_rows(engine, review["id"]) == [(buyer["id"], "like")]


def test_helpful_count_is_per_author(engine, reviews, buyer, review):
    other = make_user(engine, "buyer", username="bob")
    reviews.upsert_reaction(review["id"], buyer["id"], "helpful")
    summary = reviews.upsert_reaction(review["id"], other["id"], "helpful")
    assert summary["helpfulCount"] == 2


def test_reaction_on_missing_review(reviews, buyer):
    assert reviews.upsert_reaction("NOPE", buyer["id"], "helpful") is None


def test_reaction_type_is_required(reviews, buyer, review):
    with pytest.raises(ValidationError):
        reviews.upsert_reaction(review["id"], buyer["id"], "")


def test_reviews_by_product(engine, reviews, buyer, review):
    reviews.upsert_reaction(review["id"], buyer["id"], "helpful")

    listed = reviews.get_reviews_by_product("B1")
    assert len(listed) == 1
    assert listed[0]["id"] == review["id"]
    assert listed[0]["content"] == "Comfortable"
    assert listed[0]["username"] == "alice"
    assert listed[0]["variationName"] == "Red"
    assert listed[0]["helpfulCount"] == 1
    assert reviews.get_reviews_by_product("B1", rating="5") == []
    assert len(reviews.get_reviews_by_product("B1", rating="all")) == 1
    assert reviews.get_reviews_by_product("B2") == []


def test_purchased_items_hide_reviewed_and_undelivered(engine, reviews, buyer, delivered):
    OrderService(engine).create_order(buyer["id"], "1 Main St", 1, 10, "B1", "Red", status="Pending")

    items = reviews.get_purchased_items_for_review(buyer["id"])
    assert [item["orderItemId"] for item in items] == [delivered["orderItemId"]]
    assert items[0]["productName"] == "Sneaker"
    assert items[0]["variationName"] == "Red"

    reviews.create_review(delivered["id"], delivered["orderItemId"], buyer["id"], 5, "Nice")
    assert reviews.get_purchased_items_for_review(buyer["id"]) == []


def test_product_list_simple(engine, reviews, delivered):
    assert reviews.get_product_list_simple() == [{"barcode": "B1", "name": "Sneaker"}]


@pytest.mark.parametrize("value, expected", [(None, None), ("", None), ("all", None), ("4", 4)])
def test_rating_filter(value, expected):
    assert rating_filter(value) == expected


def test_rating_filter_rejects_garbage():
    with pytest.raises(ValidationError):
        rating_filter("five")


@pytest.mark.parametrize("value, expected", [("asc", "ASC"), ("DESC", "DESC"), (None, "DESC"), ("sideways", "DESC")])
def test_sort_direction(value, expected):
    assert sort_direction(value) == expected


@pytest.mark.parametrize("rating, stored", [(42, 0), (-3, 0), ("5", 5), ("bad", 0), (0, 0)])
def test_rating_outside_zero_to_five_is_zero(engine, reviews, buyer, delivered, rating, stored):
    created = reviews.create_review(delivered["id"], delivered["orderItemId"], buyer["id"], rating, "Ok")

    assert created["rating"] == stored
    with engine.connect() as conn:
        assert conn.execute(text("SELECT Rating FROM Review WHERE ID = :id"), {"id": created["id"]}).scalar() == stored


def test_failed_link_insert_rolls_back_review(engine, reviews, buyer, delivered, monkeypatch):
    monkeypatch.setattr(
        "services.reviews.INSERT_WRITE_REVIEW",
        text("INSERT INTO Write_review (NoSuchColumn) VALUES (:review_id)"),
    )

    with pytest.raises(OperationalError):
        reviews.create_review(delivered["id"], delivered["orderItemId"], buyer["id"], 5, "Great")

    assert count_rows(engine, "Review") == 0
    assert count_rows(engine, "Write_review") == 0


def test_reaction_type_is_stored_as_given(engine, reviews, buyer, review):
    summary = reviews.upsert_reaction(review["id"], buyer["id"], "Helpful")

    assert reaction_rows(engine, review["id"]) == [(buyer["id"], "Helpful")]
    assert summary["helpfulCount"] == 0
