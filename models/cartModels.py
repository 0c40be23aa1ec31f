from core.extensions import db


class Cart(db.Model):
    __tablename__ = "Cart"

    id = db.Column("Id", db.String(20), primary_key=True)


class CartItem(db.Model):
    __tablename__ = "Cart_Item"

    cart_id = db.Column("CartID", db.String(20), db.ForeignKey("Cart.Id"), primary_key=True)
    barcode = db.Column("BarCode", db.String(50), primary_key=True)
    variation_name = db.Column("Variation_Name", db.String(100), primary_key=True)
    quantity = db.Column("Quantity", db.Integer, default=1, nullable=False)
