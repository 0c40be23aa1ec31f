import logging

from sqlalchemy import bindparam, DateTime

from core.imports import text, datetime
from core.errors import ValidationError, LinkageError
from core.identifiers import generate_id
from core.db_utils import transaction, to_float, to_iso, pick
from core.procedures import ProcedureRunner

logger = logging.getLogger(__name__)

HELPFUL = "helpful"
SORT_DIRECTIONS = {"ASC": "ASC", "DESC": "DESC"}

INSERT_REVIEW = text("""
    INSERT INTO Review (ID, Rating, Description, [Time])
    VALUES (:id, :rating, :description, :time)
""").bindparams(bindparam("time", type_=DateTime))

INSERT_WRITE_REVIEW = text("""
    INSERT INTO Write_review (ReviewID, UserID, Order_itemID, OrderID)
    VALUES (:review_id, :user_id, :order_item_id, :order_id)
""")

OWNED_ORDER_ITEM = text("""
    SELECT OI.ID
    FROM Order_Item OI
    INNER JOIN [Order] O ON O.ID = OI.OrderID
    WHERE OI.ID = :order_item_id AND O.ID = :order_id AND O.buyerID = :user_id
""")

ALREADY_REVIEWED = text("""
    SELECT ReviewID FROM Write_review WHERE OrderID = :order_id AND Order_itemID = :order_item_id
""")

HELPFUL_COUNT = text("""
    SELECT COUNT(*) FROM Reactions WHERE ReviewID = :review_id AND [Type] = 'helpful'
""")

REVIEW_SUMMARY = text("""
    SELECT R.ID, R.Rating, R.[Time] FROM Review R WHERE R.ID = :review_id
""")

PRODUCT_REVIEWS_FALLBACK = """
    SELECT
        R.ID AS ReviewID,
        R.Rating,
        R.Description AS Content,
        R.[Time] AS ReviewDate,
        WR.UserID,
        U.Username AS AuthorName,
        OI.Variation_Name AS VariationName,
        (SELECT COUNT(*) FROM Reactions RX WHERE RX.ReviewID = R.ID AND RX.[Type] = 'helpful') AS HelpfulCount,
        (SELECT COUNT(*) FROM Reactions RX WHERE RX.ReviewID = R.ID) AS TotalReactions
    FROM Review R
    INNER JOIN Write_review WR ON R.ID = WR.ReviewID
    INNER JOIN Order_Item OI ON WR.Order_itemID = OI.ID AND WR.OrderID = OI.OrderID
    LEFT JOIN [User] U ON U.Id = WR.UserID
    WHERE OI.BarCode = :barcode
      AND (:rating IS NULL OR R.Rating = :rating)
    ORDER BY R.[Time] {direction}, R.ID
"""

PURCHASED_ITEMS_FALLBACK = """
    SELECT
        o.ID AS OrderID,
        oi.ID AS Order_ItemID,
        p.Bar_code AS BarCode,
        p.[Name] AS ProductName,
        v.NAME AS VariationName,
        oi.Price,
        o.[Time] AS PurchaseDate,
        (SELECT MIN(img.IMAGE_URL) FROM IMAGES img WHERE img.Bar_code = p.Bar_code) AS ProductImage
    FROM [Order] o
    JOIN Order_Item oi ON o.ID = oi.OrderID
    JOIN Product_SKU p ON oi.BarCode = p.Bar_code
    LEFT JOIN VARIATIONS v ON oi.BarCode = v.Bar_code AND oi.Variation_Name = v.NAME
    LEFT JOIN Write_review wr ON o.ID = wr.OrderID AND oi.ID = wr.Order_itemID
    WHERE o.buyerID = :user_id
      AND o.[Status] IN ('Completed', 'Delivered')
      AND wr.ReviewID IS NULL
    ORDER BY o.[Time] DESC, oi.ID
"""

PRODUCT_LIST_FALLBACK = """
    SELECT Bar_code AS BarCode, [Name] AS ProductName FROM Product_SKU ORDER BY [Name], Bar_code
"""


RATING_RANGE = range(0, 6)


def coerce_rating(value):
    """Star rating 0-5; anything unparsable or out of range becomes 0."""
    try:
        rating = int(value)
    except (TypeError, ValueError):
        return 0
    return rating if rating in RATING_RANGE else 0


def rating_filter(value):
    """``None``, ``""`` and ``"all"`` mean no rating filter."""
    if value in (None, "", "all"):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("rating must be a number or 'all'")


def sort_direction(value):
    return SORT_DIRECTIONS.get(str(value or "DESC").upper(), "DESC")


def product_review(row):
    return {
        "id": pick(row, "ReviewID", "ID"),
        "rating": pick(row, "Rating"),
        "content": pick(row, "Content", "Description"),
        "userId": pick(row, "UserID"),
        "username": pick(row, "AuthorName", "Username"),
        "variationName": pick(row, "VariationName"),
        "helpfulCount": int(pick(row, "HelpfulCount", default=0)),
        "totalReactions": int(pick(row, "TotalReactions", default=0)),
        "createdAt": to_iso(pick(row, "ReviewDate", "CreatedAt")),
    }


def purchased_item(row):
    return {
        "orderId": pick(row, "OrderID"),
        "orderItemId": pick(row, "Order_ItemID", "Order_itemID"),
        "productId": pick(row, "BarCode", "ProductID"),
        "productName": pick(row, "ProductName"),
        "variationName": pick(row, "VariationName"),
        "price": to_float(pick(row, "Price")),
        "purchaseDate": to_iso(pick(row, "PurchaseDate")),
        "productImage": pick(row, "ProductImage"),
    }


class ReviewService:
    def __init__(self, engine):
        self.engine = engine
        self.procedures = ProcedureRunner(engine)

    def create_review(self, order_id, order_item_id, user_id, rating, content, review_id=None):
        """Insert a review together with the Write_review row that justifies it.

        The order item must belong to ``order_id`` and the order to
        ``user_id``. Order status is not checked here; the purchased-items
        listing decides which items are offered for review.
        """
        content = (content or "").strip()
        if not content:
            raise ValidationError("content is required")
        rating = coerce_rating(rating)
        review_id = review_id or generate_id()
        created_at = datetime.utcnow()

        with transaction(self.engine, f"create review {review_id}") as conn:
            conn.execute(INSERT_REVIEW, {
                "id": review_id,
                "rating": rating,
                "description": content,
                "time": created_at,
            })

            if not order_id or not order_item_id or not user_id:
                raise LinkageError("orderId, orderItemId and userId are required to link review (Write_review)")

            link = {"order_id": order_id, "order_item_id": order_item_id, "user_id": user_id}
            if conn.execute(OWNED_ORDER_ITEM, link).first() is None:
                raise LinkageError("Order item not found among this user's orders")
            if conn.execute(ALREADY_REVIEWED, link).first() is not None:
                raise ValidationError("This order item has already been reviewed")

            conn.execute(INSERT_WRITE_REVIEW, dict(link, review_id=review_id))

        logger.info("Review %s created by %s for order item %s", review_id, user_id, order_item_id)
        return {
            "id": review_id,
            "rating": rating,
            "userId": user_id,
            "username": self._username(user_id),
            "description": content,
            "helpfulCount": 0,
            "createdAt": created_at.isoformat(),
        }

    def upsert_reaction(self, review_id, author_id, reaction_type):
        """Record ``author_id``'s reaction to a review, replacing any earlier one.

        Returns the review summary with its recomputed helpful count, or
        ``None`` when the review does not exist.
        """
        reaction_type = (reaction_type or "").strip()
        if not reaction_type:
            raise ValidationError("Reaction type required")
        if not author_id:
            raise ValidationError("authorId is required")
        if self.review_summary(review_id) is None:
            return None

        self.procedures.run(
            "usp_Reactions_Upsert",
            {"ReviewID": review_id, "Type": reaction_type, "Author": author_id},
            lambda: self._merge_reaction(review_id, author_id, reaction_type),
        )
        return self.review_summary(review_id)

    def _merge_reaction(self, review_id, author_id, reaction_type):
        params = {"review_id": review_id, "author": author_id, "type": reaction_type}
        with transaction(self.engine, f"reaction on {review_id}") as conn:
            existing = conn.execute(text(
                "SELECT [Type] FROM Reactions WHERE ReviewID = :review_id AND Author = :author"
            ), params).first()
            if existing is not None:
                conn.execute(text(
                    "UPDATE Reactions SET [Type] = :type WHERE ReviewID = :review_id AND Author = :author"
                ), params)
            else:
                conn.execute(text(
                    "INSERT INTO Reactions (ReviewID, [Type], Author) VALUES (:review_id, :type, :author)"
                ), params)
        return []

    def review_summary(self, review_id):
        with self.engine.connect() as conn:
            row = conn.execute(REVIEW_SUMMARY, {"review_id": review_id}).first()
            if row is None:
                return None
            helpful = conn.execute(HELPFUL_COUNT, {"review_id": review_id}).scalar()
        review = row._mapping
        return {
            "id": review["ID"],
            "rating": review["Rating"],
            "helpfulCount": int(helpful or 0),
            "createdAt": to_iso(review["Time"]),
        }

    def get_reviews_by_product(self, barcode, rating=None, sort="DESC"):
        rating = rating_filter(rating)
        direction = sort_direction(sort)
        rows = self.procedures.run(
            "usp_GetProductReviews",
            {"Barcode": barcode, "FilterRating": rating, "SortByDate": direction},
            lambda: self.procedures.query(
                PRODUCT_REVIEWS_FALLBACK.format(direction=direction),
                {"barcode": barcode, "rating": rating},
            ),
        )
        return [product_review(row) for row in rows]

    def get_purchased_items_for_review(self, user_id):
        """Delivered or completed order items of ``user_id`` that have no review yet."""
        rows = self.procedures.run(
            "usp_GetPurchasedItemsForReview",
            {"UserID": user_id},
            lambda: self.procedures.query(PURCHASED_ITEMS_FALLBACK, {"user_id": user_id}),
        )
        return [purchased_item(row) for row in rows]

    def get_product_list_simple(self):
        rows = self.procedures.run(
            "usp_GetAllProductsSimple",
            {},
            lambda: self.procedures.query(PRODUCT_LIST_FALLBACK),
        )
        return [
            {"barcode": pick(row, "BarCode", "Bar_code"), "name": pick(row, "ProductName", "Name")}
            for row in rows
        ]

    def _username(self, user_id):
        with self.engine.connect() as conn:
            return conn.execute(
                text("SELECT Username FROM [User] WHERE Id = :id"), {"id": user_id}
            ).scalar()
