import logging

from sqlalchemy import bindparam, Date

from core.imports import text, datetime
from core.errors import ValidationError
from core.identifiers import generate_id
from core.db_utils import transaction

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = ("buyer", "seller", "shipper")

ROLE_QUERY = text("""
    SELECT
        CASE
            WHEN EXISTS (SELECT 1 FROM Admin WHERE Id = :user_id) THEN 'admin'
            WHEN EXISTS (SELECT 1 FROM Seller WHERE Id = :user_id) THEN 'seller'
            WHEN EXISTS (SELECT 1 FROM Buyer WHERE Id = :user_id) THEN 'buyer'
            WHEN EXISTS (SELECT 1 FROM Shipper WHERE Id = :user_id) THEN 'shipper'
            ELSE 'unknown'
        END AS Role
""")

INSERT_USER = text("""
    INSERT INTO [User] (Id, Username, Password, Email, Gender, Age, DateOfBirth, Address, [Rank])
    VALUES (:id, :username, :password, :email, :gender, :age, :date_of_birth, :address, :rank)
""").bindparams(bindparam("date_of_birth", type_=Date))


def parse_date(value):
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value)[:10]).date()
    except ValueError:
        raise ValidationError("dateOfBirth must be an ISO date (YYYY-MM-DD)")


def parse_age(value):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("age must be a number")


def sanitize_user(user):
    """Public view of a user row or of the dict ``create_user`` returns."""
    if user is None:
        return None
    hidden = {"Password", "password"}
    return {
        key: (value.isoformat() if hasattr(value, "isoformat") else value)
        for key, value in dict(user).items()
        if key not in hidden
    }


class UserService:
    def __init__(self, engine):
        self.engine = engine

    def _one(self, sql, params):
        with self.engine.connect() as conn:
            row = conn.execute(text(sql), params).first()
        return dict(row._mapping) if row is not None else None

    def get_user_by_email(self, email):
        return self._one("SELECT * FROM [User] WHERE Email = :email", {"email": email})

    def get_user_by_username(self, username):
        return self._one("SELECT * FROM [User] WHERE Username = :username", {"username": username})

    def get_user_by_id(self, user_id):
        return self._one("SELECT * FROM [User] WHERE Id = :id", {"id": user_id})

    def get_phone_number(self, user_id):
        row = self._one(
            "SELECT PhoneNumber FROM UserPhoneNumber WHERE UserId = :id", {"id": user_id}
        )
        return row["PhoneNumber"] if row else None

    def check_role(self, user_id):
        """Role by table membership: admin, then seller, buyer, shipper; else ``unknown``."""
        with self.engine.connect() as conn:
            role = conn.execute(ROLE_QUERY, {"user_id": user_id}).scalar()
        return role or "unknown"

    def create_user(self, user):
        """Insert the user, an optional phone number and the role row in one transaction.

        ``user["password"]`` must already be hashed. Buyers get a fresh cart.
        """
        role = (user.get("role") or "buyer").lower()
        if role not in SELF_SERVICE_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(SELF_SERVICE_ROLES)}")
        for field in ("username", "password", "email"):
            if not user.get(field):
                raise ValidationError(f"{field} is required")

        user_id = user.get("id") or generate_id()
        age = parse_age(user.get("age"))
        date_of_birth = parse_date(user.get("dateOfBirth"))

        with transaction(self.engine, f"create user {user_id}") as conn:
            conn.execute(INSERT_USER, {
                "id": user_id,
                "username": user["username"],
                "password": user["password"],
                "email": user["email"],
                "gender": user.get("gender"),
                "age": age,
                "date_of_birth": date_of_birth,
                "address": user.get("address"),
                "rank": "Bronze",
            })

            if user.get("phoneNumber"):
                conn.execute(
                    text("INSERT INTO UserPhoneNumber (UserId, PhoneNumber) VALUES (:user_id, :phone)"),
                    {"user_id": user_id, "phone": user["phoneNumber"]},
                )

            if role == "buyer":
                cart_id = generate_id()
                conn.execute(text("INSERT INTO Cart (Id) VALUES (:cart_id)"), {"cart_id": cart_id})
                conn.execute(
                    text("INSERT INTO Buyer (Id, cartId) VALUES (:user_id, :cart_id)"),
                    {"user_id": user_id, "cart_id": cart_id},
                )
            elif role == "seller":
                conn.execute(text("INSERT INTO Seller (Id) VALUES (:user_id)"), {"user_id": user_id})
            else:
                conn.execute(
                    text("INSERT INTO Shipper (Id, LicensePlate, Company) VALUES (:user_id, :plate, :company)"),
                    {"user_id": user_id, "plate": user.get("license") or "", "company": user.get("company") or ""},
                )

        logger.info("User %s registered as %s", user_id, role)
        return {
            "id": user_id,
            "username": user["username"],
            "email": user["email"],
            "role": role,
            "age": age,
            "dateOfBirth": date_of_birth.isoformat() if date_of_birth else None,
            "gender": user.get("gender"),
            "address": user.get("address"),
            "phoneNumber": user.get("phoneNumber"),
        }
