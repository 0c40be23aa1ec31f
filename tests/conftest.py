import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from core.imports import text
from core.extensions import db
from core.identifiers import generate_id
from main import create_app
from services.users import UserService
from services.products import ProductService

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SQLALCHEMY_ENGINE_OPTIONS": {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}},
    "JWT_SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
    "BCRYPT_LOG_ROUNDS": 4,
    "CLOUDINARY_FOLDER": "test-products",
    "LOG_LEVEL": "DEBUG",
}


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_engine(app):
    return db.engine


@pytest.fixture
def engine():
    """Standalone in-memory database for service tests."""
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    db.metadata.create_all(engine)
    yield engine
    engine.dispose()


def make_user(engine, role="buyer", username=None, **extra):
    username = username or f"{role}{generate_id(length=6).lower()}"
    user = {"username": username, "email": f"{username}@example.com", "password": "hashed", "role": role}
    user.update(extra)
    return UserService(engine).create_user(user)


def make_product(engine, seller_id, barcode="B1", name="Canvas Sneaker", variations=None, category=None):
    if variations is None:
        variations = [{"NAME": "Red", "PRICE": 10.0, "STOCK": 5, "Size": "42", "Color": "red"}]
    data = {"Bar_code": barcode, "Name": name, "variations": variations}
    if category:
        with engine.begin() as conn:
            exists = conn.execute(text("SELECT 1 FROM Category WHERE Name = :name"), {"name": category}).first()
            if exists is None:
                conn.execute(text("INSERT INTO Category (Name) VALUES (:name)"), {"name": category})
        data["category"] = category
    return ProductService(engine).create_product(seller_id, data)


def count_rows(engine, table):
    with engine.connect() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()


def register(client, role="buyer", username=None, password="password123", **extra):
    """Register through the API; the test client keeps the session cookie."""
    username = username or f"{role}{generate_id(length=6).lower()}"
    body = {"username": username, "email": f"{username}@example.com", "password": password, "role": role}
    body.update(extra)
    response = client.post("/api/users/register", json=body)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["user"]
