from core.imports import Blueprint, jsonify, request, current_app, jwt_required, SQLAlchemyError
from core.extensions import db
from core.auth import current_user_id, current_role
from core.db_utils import driver_message
from services.orders import OrderService
from services.users import UserService

orders_bp = Blueprint('orders', __name__)

ORDER_FIELDS = ("address", "quantity", "price", "barcode", "variationname")


def _orders():
    return OrderService(db.engine)


@orders_bp.route('/api/orders', methods=['POST'])
@jwt_required()
def create_order():
    """
    Create an order with one line item
    ---
    tags:
      - Orders
    summary: Place an order for a product variation
    description: >
      Only buyers and admins may order. The order and its line item are
      written in one transaction; the response carries the total computed
      from the line item.
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - address
            - quantity
            - price
            - barcode
            - variationname
          properties:
            address:
              type: string
              example: "12 Nguyen Hue, District 1"
            status:
              type: string
              example: "Pending"
            quantity:
              type: integer
              example: 2
            price:
              type: number
              example: 10.00
            barcode:
              type: string
              example: "B1"
            variationname:
              type: string
              example: "Red"
    responses:
      201:
        description: Order created
      400:
        description: Missing or invalid fields
      401:
        description: Not logged in
      403:
        description: Only buyers and admins can order
      500:
        description: Database error, nothing was written
    """
    buyer_id = current_user_id()
    # role may have changed since the token was issued
    role = UserService(db.engine).check_role(buyer_id)
    if role not in ("buyer", "admin"):
        return jsonify({"success": False, "message": "Access denied"}), 403

    data = request.get_json(silent=True) or {}
    if any(data.get(field) in (None, "") for field in ORDER_FIELDS):
        return jsonify({
            "success": False,
            "message": "Missing required fields: address, quantity, price, barcode, and variationname."
        }), 400

    try:
        created = _orders().create_order(
            buyer_id=buyer_id,
            address=data["address"],
            status=data.get("status"),
            quantity=data["quantity"],
            price=data["price"],
            barcode=data["barcode"],
            variation_name=data["variationname"],
        )
    except SQLAlchemyError as e:
        current_app.logger.error("Create order failed: %s", driver_message(e))
        return jsonify({"success": False, "message": "Failed to create order", "error": driver_message(e)}), 500

    return jsonify({"success": True, "message": "Order created", "order": created}), 201


@orders_bp.route('/api/orders/details', methods=['GET'])
@jwt_required()
def get_order_details():
    """
    Order summaries, optionally filtered
    ---
    tags:
      - Orders
    parameters:
      - name: status
        in: query
        type: string
        required: false
        description: Only orders in this status; omit for every status
        example: "Delivered"
      - name: minItems
        in: query
        type: integer
        required: false
        description: Minimum number of line items
        example: 1
    responses:
      200:
        description: Orders, newest first
      503:
        description: Database query failed
    """
    status_filter = request.args.get('status') or None
    min_items = request.args.get('minItems', 0)

    orders = _orders().get_order_details(status_filter, min_items)
    return jsonify({"success": True, "count": len(orders), "data": orders}), 200


@orders_bp.route('/api/orders/reports/top-selling', methods=['GET'])
@jwt_required()
def get_top_selling_products():
    """
    Best-selling products report
    ---
    tags:
      - Orders
    description: >
      Counts quantities from delivered and completed orders. Sellers see
      their own products unless a sellerId is given; everyone else sees all
      sellers unless a sellerId is given.
    parameters:
      - name: minQuantity
        in: query
        type: integer
        required: false
        example: 5
      - name: sellerId
        in: query
        type: string
        required: false
    responses:
      200:
        description: Products with total quantity sold, highest first
      503:
        description: Database query failed
    """
    min_quantity = request.args.get('minQuantity', 0)
    seller_id = request.args.get('sellerId') or None
    if seller_id is None and current_role() == "seller":
        seller_id = current_user_id()

    products = _orders().get_top_selling_products(min_quantity, seller_id)
    return jsonify({"success": True, "count": len(products), "data": products}), 200


@orders_bp.route('/api/orders/<string:order_id>', methods=['GET'])
@jwt_required()
def get_order(order_id):
    """
    Get one of my orders
    ---
    tags:
      - Orders
    parameters:
      - name: order_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Order with its line items
      404:
        description: Order not found
    """
    order = _orders().get_order(order_id, current_user_id())
    if not order:
        return jsonify({"success": False, "message": "Order not found"}), 404

    return jsonify({"success": True, "order": order}), 200
