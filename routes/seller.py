from core.imports import Blueprint, jsonify, request, current_app, SQLAlchemyError, IntegrityError
from core.extensions import db
from core.auth import current_user_id, roles_required
from core.db_utils import driver_message
from services.products import ProductService, DEFAULT_LIMIT

seller_bp = Blueprint('seller', __name__)


def _products():
    return ProductService(db.engine)


def _not_found():
    return jsonify({"success": False, "message": "Product not found"}), 404


def _db_failure(action, e):
    current_app.logger.error("%s failed: %s", action, driver_message(e))
    return jsonify({"success": False, "message": f"Failed to {action}", "error": driver_message(e)}), 500


@seller_bp.route('/api/seller/products', methods=['GET'])
@roles_required("seller")
def list_products():
    """
    List my products
    ---
    tags:
      - Seller Products
    parameters:
      - name: search
        in: query
        type: string
        description: Matches name or barcode
      - name: minPrice
        in: query
        type: number
      - name: maxPrice
        in: query
        type: number
      - name: size
        in: query
        type: string
      - name: color
        in: query
        type: string
      - name: category
        in: query
        type: string
      - name: stock
        in: query
        type: string
        enum: [in, out]
      - name: hasImages
        in: query
        type: string
        enum: [with, without]
      - name: orderBy
        in: query
        type: string
        enum: [BarCode, Name, Manufacturing_date, Expired_date]
      - name: order
        in: query
        type: string
        enum: [ASC, DESC]
      - name: limit
        in: query
        type: integer
        example: 20
      - name: offset
        in: query
        type: integer
        example: 0
    responses:
      200:
        description: One page of the seller's products
      401:
        description: Not logged in
      403:
        description: Not a seller
    """
    args = request.args
    products = _products().list_products_by_seller(
        current_user_id(),
        search=args.get('search'),
        min_price=args.get('minPrice'),
        max_price=args.get('maxPrice'),
        size=args.get('size'),
        color=args.get('color'),
        category=args.get('category'),
        stock=args.get('stock'),
        has_images=args.get('hasImages'),
        order_by=args.get('orderBy') or args.get('sortBy') or "BarCode",
        order=args.get('order', "DESC"),
        limit=args.get('limit', DEFAULT_LIMIT),
        offset=args.get('offset', 0),
    )
    return jsonify({"success": True, "count": len(products), "data": products}), 200


@seller_bp.route('/api/seller/products/<string:barcode>', methods=['GET'])
@roles_required("seller")
def get_product(barcode):
    """
    Get one of my products
    ---
    tags:
      - Seller Products
    parameters:
      - name: barcode
        in: path
        type: string
        required: true
    responses:
      200:
        description: Product with variations, category and images
      404:
        description: Product not found
    """
    product = _products().get_product_by_barcode(current_user_id(), barcode)
    if not product:
        return _not_found()
    return jsonify({"success": True, "data": product}), 200


@seller_bp.route('/api/seller/products', methods=['POST'])
@roles_required("seller")
def create_product():
    """
    Create a product
    ---
    tags:
      - Seller Products
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - Name
          properties:
            Bar_code:
              type: string
              description: Generated when left out
            Name:
              type: string
              example: "Python Programming"
            Manufacturing_date:
              type: string
              example: "2025-01-01"
            Expired_date:
              type: string
            Description:
              type: string
            category:
              type: string
              example: "Books"
            variations:
              type: array
              items:
                type: object
                properties:
                  NAME:
                    type: string
                    example: "Hardcover"
                  PRICE:
                    type: number
                    example: 12.5
                  STOCK:
                    type: integer
                    example: 10
                  Size:
                    type: string
                  Color:
                    type: string
    responses:
      201:
        description: Product created
      400:
        description: Missing name, bad variation or duplicate barcode
    """
    data = request.get_json(silent=True) or {}
    try:
        product = _products().create_product(current_user_id(), data)
    except IntegrityError:
        return jsonify({"success": False, "message": "A product with this barcode already exists"}), 400
    except SQLAlchemyError as e:
        return _db_failure("create product", e)

    return jsonify({"success": True, "message": "Product created", "data": product}), 201


@seller_bp.route('/api/seller/products/<string:barcode>/variations', methods=['POST'])
@roles_required("seller")
def add_variations(barcode):
    """
    Replace the variations of a product
    ---
    tags:
      - Seller Products
    consumes:
      - application/json
    parameters:
      - name: barcode
        in: path
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - variations
          properties:
            variations:
              type: array
              items:
                type: object
    responses:
      200:
        description: Variations saved
      400:
        description: Empty or invalid variation list
      404:
        description: Product not found
    """
    data = request.get_json(silent=True) or {}
    try:
        saved = _products().add_variations(current_user_id(), barcode, data.get('variations'))
    except SQLAlchemyError as e:
        return _db_failure("save variations", e)

    if not saved:
        return _not_found()
    return jsonify({"success": True, "message": "Variations saved"}), 200


def _update(barcode, data):
    try:
        product = _products().update_product(current_user_id(), barcode, data)
    except SQLAlchemyError as e:
        return _db_failure("update product", e)

    if not product:
        return _not_found()
    return jsonify({"success": True, "message": "Product updated", "data": product}), 200


@seller_bp.route('/api/seller/products/<string:barcode>', methods=['PUT'])
@roles_required("seller")
def replace_product(barcode):
    """
    Update a product
    ---
    tags:
      - Seller Products
    description: >
      Full update; Name is required. Variations and category, when given,
      replace the stored ones.
    consumes:
      - application/json
    parameters:
      - name: barcode
        in: path
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - Name
    responses:
      200:
        description: Product updated
      400:
        description: Name is required
      404:
        description: Product not found
    """
    data = request.get_json(silent=True) or {}
    if not (data.get('Name') or data.get('name')):
        return jsonify({"success": False, "message": "Name is required"}), 400
    return _update(barcode, data)


@seller_bp.route('/api/seller/products/<string:barcode>', methods=['PATCH'])
@roles_required("seller")
def patch_product(barcode):
    """
    Partially update a product
    ---
    tags:
      - Seller Products
    description: Only the fields present in the body change.
    parameters:
      - name: barcode
        in: path
        type: string
        required: true
    responses:
      200:
        description: Product updated
      404:
        description: Product not found
    """
    return _update(barcode, request.get_json(silent=True) or {})


@seller_bp.route('/api/seller/products/<string:barcode>', methods=['DELETE'])
@roles_required("seller")
def delete_product(barcode):
    """
    Delete a product
    ---
    tags:
      - Seller Products
    parameters:
      - name: barcode
        in: path
        type: string
        required: true
    responses:
      200:
        description: Product deleted with its variations, images and category link
      404:
        description: Product not found
    """
    try:
        deleted = _products().delete_product(current_user_id(), barcode)
    except SQLAlchemyError as e:
        return _db_failure("delete product", e)

    if not deleted:
        return _not_found()
    current_app.logger.info("Seller %s deleted product %s", current_user_id(), barcode)
    return jsonify({"success": True, "message": "Product deleted"}), 200
