from core.imports import Blueprint, jsonify, request
from core.extensions import db
from core.auth import current_user_id, roles_required
from services.shippers import ShipperService

shipper_bp = Blueprint('shipper', __name__)


@shipper_bp.route('/api/shipper/me', methods=['GET'])
@roles_required("shipper")
def get_shipper_details():
    """
    Get my shipper details
    ---
    tags:
      - Shipper
    responses:
      200:
        description: Company and licence plate
      403:
        description: Not a shipper
      404:
        description: Shipper not found
    """
    details = ShipperService(db.engine).get_details(current_user_id())
    if not details:
        return jsonify({"success": False, "message": "Shipper not found"}), 404
    return jsonify({"success": True, "data": details}), 200


@shipper_bp.route('/api/shipper/me', methods=['PUT'])
@roles_required("shipper")
def update_shipper_details():
    """
    Update my shipper details
    ---
    tags:
      - Shipper
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            company:
              type: string
              example: "GHN Express"
            license:
              type: string
              example: "51F-123.45"
    responses:
      200:
        description: Updated details
      404:
        description: Shipper not found
    """
    details = ShipperService(db.engine).update_details(current_user_id(), request.get_json(silent=True) or {})
    if not details:
        return jsonify({"success": False, "message": "Shipper not found"}), 404
    return jsonify({"success": True, "message": "Shipper details updated", "data": details}), 200
