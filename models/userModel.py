from core.extensions import db


class User(db.Model):
    __tablename__ = "User"

    id = db.Column("Id", db.String(20), primary_key=True)
    username = db.Column("Username", db.String(100), unique=True, nullable=False, index=True)
    password = db.Column("Password", db.String(200), nullable=False)
    email = db.Column("Email", db.String(100), unique=True, nullable=False, index=True)
    gender = db.Column("Gender", db.String(20))
    age = db.Column("Age", db.Integer)
    date_of_birth = db.Column("DateOfBirth", db.Date)
    address = db.Column("Address", db.String(500))
    rank = db.Column("Rank", db.String(50), default="Bronze")


class UserPhoneNumber(db.Model):
    __tablename__ = "UserPhoneNumber"

    user_id = db.Column("UserId", db.String(20), db.ForeignKey("User.Id"), primary_key=True)
    phone_number = db.Column("PhoneNumber", db.String(20), primary_key=True)


class Admin(db.Model):
    __tablename__ = "Admin"

    id = db.Column("Id", db.String(20), db.ForeignKey("User.Id"), primary_key=True)


class Seller(db.Model):
    __tablename__ = "Seller"

    id = db.Column("Id", db.String(20), db.ForeignKey("User.Id"), primary_key=True)


class Buyer(db.Model):
    __tablename__ = "Buyer"

    id = db.Column("Id", db.String(20), db.ForeignKey("User.Id"), primary_key=True)
    cart_id = db.Column("cartId", db.String(20), db.ForeignKey("Cart.Id"), nullable=False)


class Shipper(db.Model):
    __tablename__ = "Shipper"

    id = db.Column("Id", db.String(20), db.ForeignKey("User.Id"), primary_key=True)
    license_plate = db.Column("LicensePlate", db.String(50), default="")
    company = db.Column("Company", db.String(150), default="")
