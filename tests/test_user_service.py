import pytest

from core.imports import text
from core.errors import ValidationError
from services.users import UserService, sanitize_user, parse_date
from conftest import make_user, count_rows


@pytest.fixture
def users(engine):
    return UserService(engine)


def test_buyer_gets_a_cart(engine, users):
    buyer = make_user(engine, "buyer", username="alice", phoneNumber="0901234567")

    assert users.check_role(buyer["id"]) == "buyer"
    assert users.get_phone_number(buyer["id"]) == "0901234567"
    assert count_rows(engine, "Cart") == 1
    with engine.connect() as conn:
        cart_id = conn.execute(text("SELECT cartId FROM Buyer WHERE Id = :id"), {"id": buyer["id"]}).scalar()
    assert cart_id


def test_shipper_details_are_stored(engine, users):
    shipper = make_user(engine, "shipper", company="GHN", license="51F-12345")
    assert users.check_role(shipper["id"]) == "shipper"


def test_seller_outranks_buyer(engine, users):
    user = make_user(engine, "buyer", username="dual")
    with engine.begin() as conn:
        conn.execute(text("INSERT INTO Seller (Id) VALUES (:id)"), {"id": user["id"]})

    assert users.check_role(user["id"]) == "seller"


def test_admin_outranks_everyone(engine, users):
    user = make_user(engine, "seller", username="boss")
    with engine.begin() as conn:
        conn.execute(text("INSERT INTO Admin (Id) VALUES (:id)"), {"id": user["id"]})

    assert users.check_role(user["id"]) == "admin"


def test_unknown_role(users):
    assert users.check_role("NOBODY") == "unknown"


def test_admin_cannot_self_register(engine):
    with pytest.raises(ValidationError):
        make_user(engine, "admin")
    assert count_rows(engine, "[User]") == 0


def test_lookups(engine, users):
    created = make_user(engine, "buyer", username="alice", dateOfBirth="1990-02-03", age="34")

    by_email = users.get_user_by_email("alice@example.com")
    assert by_email["Id"] == created["id"]
    assert users.get_user_by_username("alice")["Email"] == "alice@example.com"
    assert users.get_user_by_id(created["id"])["Age"] == 34
    assert users.get_user_by_email("nobody@example.com") is None
    assert created["dateOfBirth"] == "1990-02-03"


def test_sanitize_user_hides_password():
    public = sanitize_user({"Id": "U1", "Password": "secret", "DateOfBirth": parse_date("1990-02-03")})
    assert public == {"Id": "U1", "DateOfBirth": "1990-02-03"}


def test_parse_date_rejects_garbage():
    with pytest.raises(ValidationError):
        parse_date("yesterday")
