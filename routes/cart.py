from core.imports import Blueprint, jsonify, request, jwt_required
from core.extensions import db
from core.auth import current_user_id
from services.carts import CartService

cart_bp = Blueprint("cart", __name__)


def _cart_for_current_user():
    carts = CartService(db.engine)
    return carts, carts.get_cart_id(current_user_id())


def _no_cart():
    return jsonify({"success": False, "message": "Cart not found for user"}), 404


@cart_bp.route('/api/cart/items', methods=['GET'])
@jwt_required()
def get_cart_items():
    """
    Get the current buyer's cart
    ---
    tags:
      - Cart
    responses:
      200:
        description: Cart lines with product name, price and image
        schema:
          type: object
          properties:
            success:
              type: boolean
            items:
              type: array
              items:
                type: object
                properties:
                  barcode:
                    type: string
                    example: "BOOK-005"
                  variationName:
                    type: string
                    example: "Hardcover"
                  quantity:
                    type: integer
                    example: 2
                  price:
                    type: number
                    example: 12.5
      401:
        description: Not logged in
      404:
        description: Cart not found for user
    """
    carts, cart_id = _cart_for_current_user()
    if not cart_id:
        return _no_cart()

    return jsonify({"success": True, "items": carts.get_items(cart_id)}), 200


@cart_bp.route('/api/cart', methods=['POST'])
@jwt_required()
def add_variation_to_cart():
    """
    Add a product variation to the cart
    ---
    tags:
      - Cart
    consumes:
      - application/json
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - barcode
            - variationName
          properties:
            barcode:
              type: string
              example: "BOOK-005"
            variationName:
              type: string
              example: "Hardcover"
            quantity:
              type: integer
              example: 1
    responses:
      200:
        description: Variation added to cart
      400:
        description: Missing barcode/variationName or bad quantity
      404:
        description: Cart or variation not found
    """
    carts, cart_id = _cart_for_current_user()
    if not cart_id:
        return _no_cart()

    data = request.get_json(silent=True) or {}
    carts.add_variation(cart_id, data.get("barcode"), data.get("variationName"), data.get("quantity", 1))
    return jsonify({"success": True, "message": "Variation added to cart"}), 200


@cart_bp.route('/api/cart', methods=['DELETE'])
@jwt_required()
def delete_cart_item():
    """
    Remove a variation from the cart
    ---
    tags:
      - Cart
    consumes:
      - application/json
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            barcode:
              type: string
              example: "BOOK-005"
            variationName:
              type: string
              example: "Hardcover"
    responses:
      200:
        description: Cart item deleted
      404:
        description: Cart not found for user
    """
    carts, cart_id = _cart_for_current_user()
    if not cart_id:
        return _no_cart()

    data = request.get_json(silent=True) or {}
    carts.delete_item(cart_id, data.get("barcode"), data.get("variationName"))
    return jsonify({"success": True, "message": "Cart item deleted"}), 200
