import logging

from core.imports import text
from core.errors import ValidationError, NotFoundError
from core.db_utils import transaction, to_float, pick
from core.procedures import ProcedureRunner
from services.orders import coerce_quantity

logger = logging.getLogger(__name__)

CART_ITEMS_FALLBACK = """
    SELECT
        CI.BarCode,
        CI.Variation_Name AS VariationName,
        CI.Quantity,
        V.PRICE AS Price,
        V.STOCK AS Stock,
        P.[Name] AS ProductName,
        (SELECT MIN(I.IMAGE_URL) FROM IMAGES I WHERE I.Bar_code = CI.BarCode) AS ProductImage
    FROM Cart_Item CI
    LEFT JOIN Product_SKU P ON P.Bar_code = CI.BarCode
    LEFT JOIN VARIATIONS V ON V.Bar_code = CI.BarCode AND V.NAME = CI.Variation_Name
    WHERE CI.CartID = :cart_id
    ORDER BY P.[Name], CI.Variation_Name
"""


def cart_item(row):
    return {
        "barcode": pick(row, "BarCode", "Bar_code"),
        "variationName": pick(row, "VariationName", "Variation_Name"),
        "quantity": pick(row, "Quantity"),
        "price": to_float(pick(row, "Price", "PRICE")),
        "stock": pick(row, "Stock", "STOCK"),
        "productName": pick(row, "ProductName", "Name"),
        "productImage": pick(row, "ProductImage", "IMAGE_URL"),
    }


class CartService:
    def __init__(self, engine):
        self.engine = engine
        self.procedures = ProcedureRunner(engine)

    def get_cart_id(self, user_id):
        with self.engine.connect() as conn:
            return conn.execute(
                text("SELECT cartId FROM Buyer WHERE Id = :user_id"), {"user_id": user_id}
            ).scalar()

    def get_items(self, cart_id):
        rows = self.procedures.run(
            "getCartItems",
            {"CartID": cart_id},
            lambda: self.procedures.query(CART_ITEMS_FALLBACK, {"cart_id": cart_id}),
        )
        return [cart_item(row) for row in rows]

    def add_variation(self, cart_id, barcode, variation_name, quantity):
        """Put ``quantity`` of a variation in the cart; an existing line grows by that amount."""
        if not barcode or not variation_name:
            raise ValidationError("barcode and variationName are required")
        quantity = coerce_quantity(quantity if quantity is not None else 1)
        if not self._variation_exists(barcode, variation_name):
            raise NotFoundError("Variation not found")

        self.procedures.run(
            "addVariationToCart",
            {"CartID": cart_id, "BarCode": barcode, "VariationName": variation_name, "Quantity": quantity},
            lambda: self._merge_item(cart_id, barcode, variation_name, quantity),
        )
        logger.debug("Added %d x %s/%s to cart %s", quantity, barcode, variation_name, cart_id)

    def _merge_item(self, cart_id, barcode, variation_name, quantity):
        params = {"cart_id": cart_id, "barcode": barcode, "variation": variation_name, "quantity": quantity}
        with transaction(self.engine, f"add to cart {cart_id}") as conn:
            updated = conn.execute(text("""
                UPDATE Cart_Item SET Quantity = Quantity + :quantity
                WHERE CartID = :cart_id AND BarCode = :barcode AND Variation_Name = :variation
            """), params)
            if updated.rowcount == 0:
                conn.execute(text("""
                    INSERT INTO Cart_Item (CartID, BarCode, Variation_Name, Quantity)
                    VALUES (:cart_id, :barcode, :variation, :quantity)
                """), params)
        return []

    def delete_item(self, cart_id, barcode, variation_name):
        if not barcode or not variation_name:
            raise ValidationError("barcode and variationName are required")
        self.procedures.run(
            "deleteCartItem",
            {"CartID": cart_id, "BarCode": barcode, "VariationName": variation_name},
            lambda: self._delete_item(cart_id, barcode, variation_name),
        )

    def _delete_item(self, cart_id, barcode, variation_name):
        with transaction(self.engine, f"delete from cart {cart_id}") as conn:
            conn.execute(text("""
                DELETE FROM Cart_Item
                WHERE CartID = :cart_id AND BarCode = :barcode AND Variation_Name = :variation
            """), {"cart_id": cart_id, "barcode": barcode, "variation": variation_name})
        return []

    def _variation_exists(self, barcode, variation_name):
        with self.engine.connect() as conn:
            row = conn.execute(
                text("SELECT 1 FROM VARIATIONS WHERE Bar_code = :barcode AND NAME = :name"),
                {"barcode": barcode, "name": variation_name},
            ).first()
        return row is not None
