from core.imports import Blueprint, jsonify, request, current_app, jwt_required, SQLAlchemyError
from core.extensions import db
from core.auth import current_user_id
from core.db_utils import driver_message
from services.reviews import ReviewService

reviews_bp = Blueprint('reviews', __name__)


def _reviews():
    return ReviewService(db.engine)


@reviews_bp.route('/api/reviews/products', methods=['GET'])
def get_product_list():
    """
    Simple product list for review pickers
    ---
    tags:
      - Reviews
    responses:
      200:
        description: Barcode and name of every product
    """
    return jsonify({"success": True, "data": _reviews().get_product_list_simple()}), 200


@reviews_bp.route('/api/reviews/purchased', methods=['GET'])
@jwt_required()
def get_purchased_items():
    """
    Purchased items waiting for a review
    ---
    tags:
      - Reviews
    description: >
      Line items from the user's delivered or completed orders that have not
      been reviewed yet, newest first.
    responses:
      200:
        description: Items the user may review
      401:
        description: Not logged in
    """
    items = _reviews().get_purchased_items_for_review(current_user_id())
    current_app.logger.debug("Purchased items for review: %d", len(items))
    return jsonify({"success": True, "items": items}), 200


@reviews_bp.route('/api/reviews', methods=['GET'])
@reviews_bp.route('/api/reviews/<string:product_id>', methods=['GET'])
def get_reviews(product_id=None):
    """
    Reviews of a product
    ---
    tags:
      - Reviews
    parameters:
      - name: product_id
        in: path
        type: string
        required: false
        description: Product barcode; may be given as ?productId= instead
      - name: productId
        in: query
        type: string
        required: false
      - name: rating
        in: query
        type: string
        required: false
        description: Exact star rating, or "all"
      - name: sort
        in: query
        type: string
        enum: [ASC, DESC]
        required: false
    responses:
      200:
        description: Reviews with author, helpful count and date
      400:
        description: Product ID is required
    """
    barcode = product_id or request.args.get('productId')
    if not barcode:
        return jsonify({"success": False, "message": "Product ID is required"}), 400

    reviews = _reviews().get_reviews_by_product(
        barcode, request.args.get('rating'), request.args.get('sort', 'DESC')
    )
    return jsonify({"success": True, "data": reviews}), 200


@reviews_bp.route('/api/reviews', methods=['POST'])
@jwt_required()
def create_review():
    """
    Review a purchased order item
    ---
    tags:
      - Reviews
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - orderId
            - orderItemId
            - content
          properties:
            orderId:
              type: string
            orderItemId:
              type: string
            rating:
              type: integer
              example: 5
            content:
              type: string
              example: "Arrived quickly, exactly as described."
    responses:
      201:
        description: Review created
      400:
        description: Missing fields, item not in the user's orders, or already reviewed
      401:
        description: Not logged in
    """
    data = request.get_json(silent=True) or {}
    order_id = data.get('orderId')
    order_item_id = data.get('orderItemId')
    content = data.get('content')

    if not order_id or not order_item_id or not isinstance(content, str) or not content.strip():
        return jsonify({"success": False, "message": "orderId, orderItemId and content are required"}), 400

    try:
        created = _reviews().create_review(
            order_id=order_id,
            order_item_id=order_item_id,
            user_id=current_user_id(),
            rating=data.get('rating', 5),
            content=content,
        )
    except SQLAlchemyError as e:
        current_app.logger.error("Create review failed: %s", driver_message(e))
        return jsonify({"success": False, "message": "Failed to create review", "error": driver_message(e)}), 500

    return jsonify({"success": True, "message": "Review created", "review": created}), 201


@reviews_bp.route('/api/reviews/<string:review_id>/reactions', methods=['POST'])
@jwt_required()
def upsert_reaction(review_id):
    """
    React to a review
    ---
    tags:
      - Reviews
    description: >
      One reaction per user and review; reacting again replaces the earlier type.
    consumes:
      - application/json
    parameters:
      - name: review_id
        in: path
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - type
          properties:
            type:
              type: string
              example: "helpful"
    responses:
      200:
        description: Reaction recorded, review summary with helpful count
      400:
        description: Reaction type required
      404:
        description: Review not found
    """
    data = request.get_json(silent=True) or {}
    reaction_type = data.get('type')
    if not reaction_type:
        return jsonify({"success": False, "message": "Reaction type required"}), 400

    updated = _reviews().upsert_reaction(review_id, current_user_id(), reaction_type)
    if not updated:
        return jsonify({"success": False, "message": "Review not found"}), 404

    return jsonify({"success": True, "message": "Reaction recorded", "review": updated}), 200


@reviews_bp.route('/api/reviews/<string:review_id>/helpful', methods=['POST'])
@jwt_required()
def mark_helpful(review_id):
    """
    Mark a review as helpful
    ---
    tags:
      - Reviews
    parameters:
      - name: review_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Marked helpful
      404:
        description: Review not found
    """
    updated = _reviews().upsert_reaction(review_id, current_user_id(), "helpful")
    if not updated:
        return jsonify({"success": False, "message": "Review not found"}), 404

    return jsonify({"success": True, "message": "Marked helpful", "review": updated}), 200
