from core.imports import Blueprint, jsonify, request
from core.extensions import db
from services.products import ProductService

marketplace_bp = Blueprint('marketplace', __name__)


def _products():
    return ProductService(db.engine)


@marketplace_bp.route('/api/products', methods=['GET'])
def get_all_products():
    """
    All products
    ---
    tags:
      - Products
    responses:
      200:
        description: Product cards with lowest variation price and one image
        schema:
          type: object
          properties:
            success:
              type: boolean
            data:
              type: array
              items:
                type: object
                properties:
                  barcode:
                    type: string
                    example: "BOOK-005"
                  productName:
                    type: string
                    example: "Python Programming"
                  AvgRating:
                    type: number
                    example: 4.5
                  price:
                    type: number
                    example: 12.5
                  image:
                    type: string
    """
    return jsonify({"success": True, "data": _products().get_all_products()}), 200


@marketplace_bp.route('/api/products/search', methods=['GET'])
def search_products():
    """
    Search products by name
    ---
    tags:
      - Products
    parameters:
      - name: name
        in: query
        type: string
        required: true
    responses:
      200:
        description: Matching product cards (empty when no name is given)
    """
    return jsonify({"success": True, "data": _products().get_products_by_name(request.args.get('name'))}), 200


@marketplace_bp.route('/api/products/categories', methods=['GET'])
def get_categories():
    """
    Category names
    ---
    tags:
      - Products
    responses:
      200:
        description: All category names
    """
    return jsonify({"success": True, "data": _products().get_categories()}), 200


@marketplace_bp.route('/api/products/category/<string:category>', methods=['GET'])
def get_products_by_category(category):
    """
    Products in a category
    ---
    tags:
      - Products
    parameters:
      - name: category
        in: path
        type: string
        required: true
    responses:
      200:
        description: Product cards in the category
    """
    return jsonify({"success": True, "data": _products().get_products_by_category(category)}), 200


@marketplace_bp.route('/api/products/<string:barcode>', methods=['GET'])
def get_product_details(barcode):
    """
    Product details
    ---
    tags:
      - Products
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
    product = _products().get_product_details(barcode)
    if not product:
        return jsonify({"success": False, "message": "Product not found"}), 404

    return jsonify({"success": True, "data": product}), 200
