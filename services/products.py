import logging

from sqlalchemy import bindparam, Date

from core.imports import text, ProgrammingError, OperationalError
from core.errors import ValidationError
from core.identifiers import generate_id
from core.db_utils import rows_to_dicts, transaction, to_float, to_date_iso, driver_message
from services.orders import coerce_price
from services.users import parse_date

logger = logging.getLogger(__name__)

# Raised by the driver when an optional child table or column is absent
MISSING_TABLE_ERRORS = (ProgrammingError, OperationalError)

SORT_COLUMNS = {
    "BarCode": "p.Bar_code",
    "Name": "p.[Name]",
    "Manufacturing_date": "p.Manufacturing_date",
    "Expired_date": "p.Expired_date",
}
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

# request key -> Product_SKU column; both spellings are accepted
PRODUCT_FIELDS = {
    "Name": "Name",
    "name": "Name",
    "Manufacturing_date": "Manufacturing_date",
    "manufacturingDate": "Manufacturing_date",
    "Expired_date": "Expired_date",
    "expiredDate": "Expired_date",
    "Description": "Description",
    "description": "Description",
}
DATE_COLUMNS = ("Manufacturing_date", "Expired_date")

PRODUCT_CARD = """
    SELECT
        p.Bar_code AS barcode,
        p.[Name] AS productName,
        p.AvgRating,
        (SELECT MIN(v.PRICE) FROM VARIATIONS v WHERE v.Bar_code = p.Bar_code) AS price,
        (SELECT MIN(i.IMAGE_URL) FROM IMAGES i WHERE i.Bar_code = p.Bar_code) AS image
    FROM Product_SKU p
"""

INSERT_PRODUCT = text("""
    INSERT INTO Product_SKU (Bar_code, [Name], Manufacturing_date, Expired_date, Description, sellerID, AvgRating)
    VALUES (:barcode, :name, :manufacturing_date, :expired_date, :description, :seller_id, 0)
""").bindparams(
    bindparam("manufacturing_date", type_=Date),
    bindparam("expired_date", type_=Date),
)

INSERT_VARIATION = text("""
    INSERT INTO VARIATIONS (Bar_code, NAME, PRICE, STOCK, Size, Color)
    VALUES (:barcode, :name, :price, :stock, :size, :color)
""")


def _first(data, *keys, default=None):
    for key in keys:
        if key in data:
            return data[key]
    return default


def normalize_variation(raw):
    name = _first(raw, "NAME", "name")
    if not name:
        raise ValidationError("Each variation needs a NAME")
    stock = _first(raw, "STOCK", "stock", default=0)
    try:
        stock = max(int(stock or 0), 0)
    except (TypeError, ValueError):
        raise ValidationError("STOCK must be an integer")
    return {
        "name": name,
        "price": coerce_price(_first(raw, "PRICE", "price", default=0)),
        "stock": stock,
        "size": _first(raw, "Size", "size"),
        "color": _first(raw, "Color", "color"),
    }


def product_card(row):
    return {
        "barcode": row["barcode"],
        "productName": row["productName"],
        "AvgRating": to_float(row["AvgRating"]),
        "price": to_float(row["price"]),
        "image": row["image"],
    }


def clamp_limit(value):
    try:
        return min(max(int(value), 1), MAX_LIMIT)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT


def clamp_offset(value):
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


class ProductService:
    def __init__(self, engine):
        self.engine = engine

    def _paginate(self):
        if self.engine.dialect.name == "mssql":
            return "OFFSET :offset ROWS FETCH NEXT :limit ROWS ONLY"
        return "LIMIT :limit OFFSET :offset"

    def list_products_by_seller(self, seller_id, search=None, min_price=None, max_price=None,
                                size=None, color=None, category=None, stock=None, has_images=None,
                                order_by="BarCode", order="DESC", limit=DEFAULT_LIMIT, offset=0):
        """One page of a seller's products, filtered and sorted.

        Price, size and colour match when a single variation satisfies all of
        them. ``stock`` is ``"in"`` or ``"out"``; ``has_images`` is ``"with"``
        or ``"without"``. ``order_by`` outside ``SORT_COLUMNS`` falls back to
        the barcode.
        """
        params = {"seller_id": seller_id, "limit": clamp_limit(limit), "offset": clamp_offset(offset)}
        where = ["p.sellerID = :seller_id"]

        if search:
            params["search"] = f"%{search}%"
            where.append("(p.[Name] LIKE :search OR p.Bar_code LIKE :search)")

        variation_filters = []
        if min_price not in (None, ""):
            params["min_price"] = coerce_price(min_price)
            variation_filters.append("v.PRICE >= :min_price")
        if max_price not in (None, ""):
            params["max_price"] = coerce_price(max_price)
            variation_filters.append("v.PRICE <= :max_price")
        if size:
            params["size"] = size
            variation_filters.append("v.Size = :size")
        if color:
            params["color"] = color
            variation_filters.append("v.Color = :color")
        if variation_filters:
            where.append(
                "EXISTS (SELECT 1 FROM VARIATIONS v WHERE v.Bar_code = p.Bar_code AND "
                + " AND ".join(variation_filters) + ")"
            )

        if category:
            params["category"] = category
            where.append("EXISTS (SELECT 1 FROM Belongs_to b WHERE b.Barcode = p.Bar_code AND b.CategoryName = :category)")
        if stock == "in":
            where.append("EXISTS (SELECT 1 FROM VARIATIONS v WHERE v.Bar_code = p.Bar_code AND v.STOCK > 0)")
        elif stock == "out":
            # any sold-out variation, or nothing in stock at all
            where.append(
                "(EXISTS (SELECT 1 FROM VARIATIONS v WHERE v.Bar_code = p.Bar_code AND (v.STOCK = 0 OR v.STOCK IS NULL))"
                " OR NOT EXISTS (SELECT 1 FROM VARIATIONS v WHERE v.Bar_code = p.Bar_code AND v.STOCK > 0))"
            )
        if has_images == "with":
            where.append("EXISTS (SELECT 1 FROM IMAGES im WHERE im.Bar_code = p.Bar_code)")
        elif has_images == "without":
            where.append("NOT EXISTS (SELECT 1 FROM IMAGES im WHERE im.Bar_code = p.Bar_code)")

        order_column = SORT_COLUMNS.get(order_by, "p.Bar_code")
        direction = "ASC" if str(order or "").upper() == "ASC" else "DESC"
        where_clause = " AND ".join(where)
        sql = f"""
            SELECT p.Bar_code, p.[Name] AS Name, p.Manufacturing_date, p.Expired_date, p.Description, p.sellerID,
                   (SELECT MIN(IMAGE_URL) FROM IMAGES WHERE Bar_code = p.Bar_code) AS IMAGE_URL
            FROM Product_SKU p
            WHERE {where_clause}
            ORDER BY {order_column} {direction}
            {self._paginate()}
        """
        logger.debug("Seller product listing for %s: %s", seller_id, params)

        with self.engine.connect() as conn:
            rows = rows_to_dicts(conn.execute(text(sql), params))
        for row in rows:
            for column in DATE_COLUMNS:
                row[column] = to_date_iso(row[column])
        return rows

    def get_product_by_barcode(self, seller_id, barcode):
        with self.engine.connect() as conn:
            row = conn.execute(text("""
                SELECT Bar_code, [Name] AS Name, Manufacturing_date, Expired_date, Description, sellerID
                FROM Product_SKU WHERE Bar_code = :barcode AND sellerID = :seller_id
            """), {"barcode": barcode, "seller_id": seller_id}).first()
        if row is None:
            return None
        return self._assemble(dict(row._mapping))

    def get_product_details(self, barcode):
        """Public product page: base record plus variations, category and images."""
        with self.engine.connect() as conn:
            row = conn.execute(text("""
                SELECT Bar_code, [Name] AS Name, Manufacturing_date, Expired_date, Description, sellerID, AvgRating
                FROM Product_SKU WHERE Bar_code = :barcode
            """), {"barcode": barcode}).first()
        if row is None:
            return None
        product = self._assemble(dict(row._mapping))
        product["AvgRating"] = to_float(product["AvgRating"])
        return product

    def _assemble(self, product):
        barcode = product["Bar_code"]
        for column in DATE_COLUMNS:
            product[column] = to_date_iso(product[column])
        product["variations"] = self._child_rows(
            "SELECT NAME, PRICE, STOCK, Size, Color FROM VARIATIONS WHERE Bar_code = :barcode ORDER BY NAME",
            barcode, default=[],
        )
        for variation in product["variations"]:
            variation["PRICE"] = to_float(variation["PRICE"])

        categories = self._child_rows(
            "SELECT CategoryName FROM Belongs_to WHERE Barcode = :barcode", barcode, default=[]
        )
        product["category"] = categories[0]["CategoryName"] if categories else None

        images = self._child_rows(
            "SELECT IMAGE_URL AS url FROM IMAGES WHERE Bar_code = :barcode ORDER BY IMAGE_URL",
            barcode, default=[],
        )
        product["images"] = [image["url"] for image in images]
        return product

    def _child_rows(self, sql, barcode, default):
        try:
            with self.engine.connect() as conn:
                return rows_to_dicts(conn.execute(text(sql), {"barcode": barcode}))
        except MISSING_TABLE_ERRORS as e:
            logger.warning("Product %s child lookup failed, using default: %s", barcode, driver_message(e))
            return default

    def create_product(self, seller_id, data):
        name = _first(data, "Name", "name")
        if not name:
            raise ValidationError("Name is required")
        barcode = _first(data, "Bar_code", "barcode") or generate_id()
        variations = [normalize_variation(v) for v in (data.get("variations") or [])]

        with transaction(self.engine, f"create product {barcode}") as conn:
            conn.execute(INSERT_PRODUCT, {
                "barcode": barcode,
                "name": name,
                "manufacturing_date": parse_date(_first(data, "Manufacturing_date", "manufacturingDate")),
                "expired_date": parse_date(_first(data, "Expired_date", "expiredDate")),
                "description": _first(data, "Description", "description"),
                "seller_id": seller_id,
            })
            if variations:
                self._replace_variations(conn, barcode, variations)
            if data.get("category"):
                self._replace_category(conn, barcode, data["category"])

        logger.info("Product %s created by seller %s", barcode, seller_id)
        return self.get_product_by_barcode(seller_id, barcode)

    def add_variations(self, seller_id, barcode, variations):
        """Replace the variation set of one of the seller's products. False if not theirs."""
        variations = [normalize_variation(v) for v in (variations or [])]
        if not variations:
            raise ValidationError("variations must be a non-empty list")
        with transaction(self.engine, f"variations for {barcode}") as conn:
            if not self._owned(conn, seller_id, barcode):
                return False
            self._replace_variations(conn, barcode, variations)
        return True

    def update_product(self, seller_id, barcode, data):
        """Apply the given fields; ``variations`` and ``category`` replace the stored sets.

        A ``category`` of ``None`` removes the category link. Returns ``None``
        when the product does not exist or belongs to another seller.
        """
        sets = {}
        for key, column in PRODUCT_FIELDS.items():
            if key in data:
                value = data[key]
                sets[column] = parse_date(value) if column in DATE_COLUMNS else value
        variations = None
        if isinstance(data.get("variations"), list):
            variations = [normalize_variation(v) for v in data["variations"]]

        with transaction(self.engine, f"update product {barcode}") as conn:
            if not self._owned(conn, seller_id, barcode):
                return None
            if sets:
                statement = text(
                    "UPDATE Product_SKU SET "
                    + ", ".join(f"[{column}] = :{column}" for column in sets)
                    + " WHERE Bar_code = :barcode AND sellerID = :seller_id"
                ).bindparams(*[bindparam(c, type_=Date) for c in sets if c in DATE_COLUMNS])
                conn.execute(statement, dict(sets, barcode=barcode, seller_id=seller_id))
            if variations is not None:
                self._replace_variations(conn, barcode, variations)
            if "category" in data:
                if data["category"] is None:
                    conn.execute(text("DELETE FROM Belongs_to WHERE Barcode = :barcode"), {"barcode": barcode})
                else:
                    self._replace_category(conn, barcode, data["category"])

        return self.get_product_by_barcode(seller_id, barcode)

    def delete_product(self, seller_id, barcode):
        with transaction(self.engine, f"delete product {barcode}") as conn:
            if not self._owned(conn, seller_id, barcode):
                return False
            for table, column in (("VARIATIONS", "Bar_code"), ("IMAGES", "Bar_code"), ("Belongs_to", "Barcode")):
                conn.execute(text(f"DELETE FROM {table} WHERE {column} = :barcode"), {"barcode": barcode})
            conn.execute(
                text("DELETE FROM Product_SKU WHERE Bar_code = :barcode AND sellerID = :seller_id"),
                {"barcode": barcode, "seller_id": seller_id},
            )
        logger.info("Product %s deleted by seller %s", barcode, seller_id)
        return True

    def _owned(self, conn, seller_id, barcode):
        return conn.execute(
            text("SELECT 1 FROM Product_SKU WHERE Bar_code = :barcode AND sellerID = :seller_id"),
            {"barcode": barcode, "seller_id": seller_id},
        ).first() is not None

    def _replace_variations(self, conn, barcode, variations):
        conn.execute(text("DELETE FROM VARIATIONS WHERE Bar_code = :barcode"), {"barcode": barcode})
        if variations:
            conn.execute(INSERT_VARIATION, [dict(v, barcode=barcode) for v in variations])

    def _replace_category(self, conn, barcode, category):
        conn.execute(text("DELETE FROM Belongs_to WHERE Barcode = :barcode"), {"barcode": barcode})
        conn.execute(
            text("INSERT INTO Belongs_to (CategoryName, Barcode) VALUES (:category, :barcode)"),
            {"category": category, "barcode": barcode},
        )

    def get_all_products(self):
        with self.engine.connect() as conn:
            rows = conn.execute(text(PRODUCT_CARD + " ORDER BY p.[Name]")).mappings().all()
        return [product_card(row) for row in rows]

    def get_products_by_name(self, name):
        if not name:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(
                text(PRODUCT_CARD + " WHERE p.[Name] LIKE :name ORDER BY p.[Name]"),
                {"name": f"%{name}%"},
            ).mappings().all()
        return [product_card(row) for row in rows]

    def get_products_by_category(self, category):
        if not category:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(text(PRODUCT_CARD + """
                INNER JOIN Belongs_to b ON p.Bar_code = b.Barcode
                WHERE b.CategoryName = :category
                ORDER BY p.[Name]
            """), {"category": category}).mappings().all()
        return [product_card(row) for row in rows]

    def get_categories(self):
        with self.engine.connect() as conn:
            return list(conn.execute(text("SELECT Name FROM Category ORDER BY Name")).scalars())
