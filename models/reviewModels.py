from core.extensions import db
from core.imports import datetime


class Review(db.Model):
    __tablename__ = "Review"

    id = db.Column("ID", db.String(20), primary_key=True)
    rating = db.Column("Rating", db.Integer, nullable=False, default=0)
    description = db.Column("Description", db.Text)
    time = db.Column("Time", db.DateTime, default=datetime.utcnow)


class WriteReview(db.Model):
    __tablename__ = "Write_review"
    __table_args__ = (
        db.UniqueConstraint("OrderID", "Order_itemID", name="uq_write_review_order_item"),
    )

    review_id = db.Column("ReviewID", db.String(20), db.ForeignKey("Review.ID"), primary_key=True)
    user_id = db.Column("UserID", db.String(20), db.ForeignKey("User.Id"), nullable=False)
    order_item_id = db.Column("Order_itemID", db.String(20), db.ForeignKey("Order_Item.ID"), nullable=False)
    order_id = db.Column("OrderID", db.String(20), db.ForeignKey("Order.ID"), nullable=False)


class Reaction(db.Model):
    __tablename__ = "Reactions"

    review_id = db.Column("ReviewID", db.String(20), db.ForeignKey("Review.ID"), primary_key=True)
    author = db.Column("Author", db.String(20), db.ForeignKey("User.Id"), primary_key=True)
    type = db.Column("Type", db.String(30), nullable=False)
