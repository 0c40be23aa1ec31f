from core.extensions import db
from core.imports import datetime


class Order(db.Model):
    __tablename__ = "Order"

    id = db.Column("ID", db.String(20), primary_key=True)
    total = db.Column("Total", db.Numeric(18, 2), nullable=False, default=0)
    address = db.Column("Address", db.String(500), nullable=False)
    buyer_id = db.Column("buyerID", db.String(20), db.ForeignKey("User.Id"), nullable=False)
    time = db.Column("Time", db.DateTime, default=datetime.utcnow)
    status = db.Column("Status", db.String(50), default="Pending")  # Pending, Delivered, Completed


class OrderItem(db.Model):
    __tablename__ = "Order_Item"

    id = db.Column("ID", db.String(20), primary_key=True)
    order_id = db.Column("OrderID", db.String(20), db.ForeignKey("Order.ID"), nullable=False)
    barcode = db.Column("BarCode", db.String(50), nullable=False)
    variation_name = db.Column("Variation_Name", db.String(100), nullable=False)
    quantity = db.Column("Quantity", db.Integer, nullable=False)
    price = db.Column("Price", db.Numeric(18, 2), nullable=False)  # per unit
