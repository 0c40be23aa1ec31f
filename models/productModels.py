from core.extensions import db


class Category(db.Model):
    __tablename__ = "Category"

    name = db.Column("Name", db.String(100), primary_key=True)


class ProductSKU(db.Model):
    __tablename__ = "Product_SKU"

    barcode = db.Column("Bar_code", db.String(50), primary_key=True)
    name = db.Column("Name", db.String(150), nullable=False)
    manufacturing_date = db.Column("Manufacturing_date", db.Date)
    expired_date = db.Column("Expired_date", db.Date)
    description = db.Column("Description", db.Text)
    seller_id = db.Column("sellerID", db.String(20), db.ForeignKey("Seller.Id"), nullable=False)
    avg_rating = db.Column("AvgRating", db.Float, default=0.0)


class Variation(db.Model):
    __tablename__ = "VARIATIONS"

    barcode = db.Column("Bar_code", db.String(50), db.ForeignKey("Product_SKU.Bar_code"), primary_key=True)
    name = db.Column("NAME", db.String(100), primary_key=True)
    price = db.Column("PRICE", db.Numeric(18, 2), nullable=False, default=0)
    stock = db.Column("STOCK", db.Integer, default=0)
    size = db.Column("Size", db.String(20))
    color = db.Column("Color", db.String(50))


class Image(db.Model):
    __tablename__ = "IMAGES"

    barcode = db.Column("Bar_code", db.String(50), db.ForeignKey("Product_SKU.Bar_code"), primary_key=True)
    image_url = db.Column("IMAGE_URL", db.String(500), primary_key=True)


class BelongsTo(db.Model):
    __tablename__ = "Belongs_to"

    category_name = db.Column("CategoryName", db.String(100), db.ForeignKey("Category.Name"), primary_key=True)
    barcode = db.Column("Barcode", db.String(50), db.ForeignKey("Product_SKU.Bar_code"), primary_key=True)
