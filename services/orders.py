import logging
import math

from sqlalchemy import bindparam, DateTime

from core.imports import text, datetime
from core.errors import ValidationError
from core.identifiers import generate_id
from core.db_utils import rows_to_dicts, transaction, to_float, to_iso, pick
from core.procedures import ProcedureRunner

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "Pending"

INSERT_ORDER = text("""
    INSERT INTO [Order] (ID, Total, [Address], buyerID, [Time], [Status])
    VALUES (:id, 0, :address, :buyer_id, :time, :status)
""").bindparams(bindparam("time", type_=DateTime))

INSERT_ORDER_ITEM = text("""
    INSERT INTO Order_Item (ID, OrderID, BarCode, Variation_Name, Quantity, Price)
    VALUES (:id, :order_id, :barcode, :variation_name, :quantity, :price)
""")

# Keeps Total correct whether or not a trigger on Order_Item maintains it
REFRESH_TOTAL = text("""
    UPDATE [Order]
    SET Total = (SELECT COALESCE(SUM(OI.Quantity * OI.Price), 0) FROM Order_Item OI WHERE OI.OrderID = :id)
    WHERE ID = :id
""")

ORDER_DETAILS_FALLBACK = """
    SELECT O.ID, O.[Status], O.Total, U.Username AS Buyer, O.[Time], COUNT(OI.ID) AS ItemCount
    FROM [Order] O
    INNER JOIN [User] U ON O.buyerID = U.Id
    LEFT JOIN Order_Item OI ON OI.OrderID = O.ID
    WHERE (:status IS NULL OR O.[Status] = :status)
    GROUP BY O.ID, O.[Status], O.Total, U.Username, O.[Time]
    HAVING COUNT(OI.ID) >= :min_items
    ORDER BY O.[Time] DESC, O.ID
"""

TOP_SELLING_FALLBACK = """
    SELECT PS.Bar_code, PS.[Name], SUM(OI.Quantity) AS TotalQuantitySold
    FROM Order_Item OI
    INNER JOIN [Order] O ON OI.OrderID = O.ID
    INNER JOIN Product_SKU PS ON OI.BarCode = PS.Bar_code
    WHERE O.[Status] IN ('Delivered', 'Completed')
      AND (:seller_id IS NULL OR PS.sellerID = :seller_id)
    GROUP BY PS.Bar_code, PS.[Name]
    HAVING SUM(OI.Quantity) >= :min_quantity
    ORDER BY TotalQuantitySold DESC, PS.Bar_code
"""


def coerce_quantity(value):
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be a positive integer")
    if quantity < 1:
        raise ValidationError("quantity must be a positive integer")
    return quantity


def coerce_price(value):
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError("price must be a non-negative number")
    if price < 0 or not math.isfinite(price):
        raise ValidationError("price must be a non-negative number")
    return price


def coerce_count(value):
    """Filter counts: anything unparsable or negative means no lower bound."""
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def order_summary(row):
    return {
        "id": pick(row, "ID", "OrderID"),
        "status": pick(row, "Status"),
        "total": to_float(pick(row, "Total", default=0)),
        "buyer": pick(row, "Buyer", "BuyerName"),
        "createdAt": to_iso(pick(row, "Time", "OrderTime")),
        "itemCount": pick(row, "ItemCount", "TotalItems", default=0),
    }


def top_selling_row(row):
    return {
        "barcode": pick(row, "Bar_code", "BarCode"),
        "name": pick(row, "Name", "ProductName"),
        "totalQuantitySold": int(pick(row, "TotalQuantitySold", default=0)),
    }


class OrderService:
    def __init__(self, engine):
        self.engine = engine
        self.procedures = ProcedureRunner(engine)

    def create_order(self, buyer_id, address, quantity, price, barcode, variation_name,
                     status=None, order_id=None, order_item_id=None):
        """Insert an order and its single line item in one transaction.

        The order row goes in first; a missing barcode or variation name then
        rolls the whole transaction back, so callers never observe an order
        without its item.
        """
        if not buyer_id:
            raise ValidationError("buyerId is required")
        if not address:
            raise ValidationError("address is required")
        quantity = coerce_quantity(quantity)
        price = coerce_price(price)
        status = status or DEFAULT_STATUS
        order_id = order_id or generate_id()
        order_item_id = order_item_id or generate_id()

        with transaction(self.engine, f"create order {order_id}") as conn:
            conn.execute(INSERT_ORDER, {
                "id": order_id,
                "address": address,
                "buyer_id": buyer_id,
                "time": datetime.utcnow(),
                "status": status,
            })

            if not barcode or not variation_name:
                raise ValidationError("barcode and variationname are required to link (Order_Item)")

            conn.execute(INSERT_ORDER_ITEM, {
                "id": order_item_id,
                "order_id": order_id,
                "barcode": barcode,
                "variation_name": variation_name,
                "quantity": quantity,
                "price": price,
            })
            conn.execute(REFRESH_TOTAL, {"id": order_id})

        logger.info("Order %s created for buyer %s", order_id, buyer_id)
        return {
            "id": order_id,
            "total": self.get_total(order_id),
            "address": address,
            "status": status,
            "buyerId": buyer_id,
            "orderItemId": order_item_id,
            "quantity": quantity,
            "price": price,
            "barcode": barcode,
            "variationname": variation_name,
        }

    def get_total(self, order_id):
        with self.engine.connect() as conn:
            total = conn.execute(
                text("SELECT Total FROM [Order] WHERE ID = :id"), {"id": order_id}
            ).scalar()
        return to_float(total) or 0.0

    def get_order(self, order_id, buyer_id):
        with self.engine.connect() as conn:
            row = conn.execute(text("""
                SELECT ID, Total, [Address], buyerID, [Time], [Status]
                FROM [Order] WHERE ID = :id AND buyerID = :buyer_id
            """), {"id": order_id, "buyer_id": buyer_id}).first()
            if row is None:
                return None
            items = rows_to_dicts(conn.execute(text("""
                SELECT ID, Quantity, Price, BarCode, Variation_Name
                FROM Order_Item WHERE OrderID = :id ORDER BY ID
            """), {"id": order_id}))

        order = row._mapping
        return {
            "id": order["ID"],
            "total": to_float(order["Total"]),
            "address": order["Address"],
            "buyerId": order["buyerID"],
            "status": order["Status"],
            "createdAt": to_iso(order["Time"]),
            "orderItems": [
                {
                    "orderItemId": item["ID"],
                    "quantity": item["Quantity"],
                    "price": to_float(item["Price"]),
                    "barcode": item["BarCode"],
                    "variationName": item["Variation_Name"],
                }
                for item in items
            ],
        }

    def get_order_details(self, status_filter=None, min_items=0):
        """Order summaries, newest first; a ``None`` status returns every status."""
        status_filter = status_filter or None
        min_items = coerce_count(min_items)
        rows = self.procedures.run(
            "usp_GetOrderDetails",
            {"p_StatusFilter": status_filter, "p_MinItems": min_items},
            lambda: self.procedures.query(
                ORDER_DETAILS_FALLBACK, {"status": status_filter, "min_items": min_items}
            ),
        )
        return [order_summary(row) for row in rows]

    def get_top_selling_products(self, min_quantity=0, seller_id=None):
        min_quantity = coerce_count(min_quantity)
        seller_id = seller_id or None
        rows = self.procedures.run(
            "usp_GetTopSellingProducts",
            {"p_MinQuantitySold": min_quantity, "p_SellerID": seller_id},
            lambda: self.procedures.query(
                TOP_SELLING_FALLBACK, {"min_quantity": min_quantity, "seller_id": seller_id}
            ),
        )
        return [top_selling_row(row) for row in rows]
