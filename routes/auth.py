from core.imports import Blueprint, jsonify, request, current_app, jwt_required, IntegrityError
from core.extensions import db, bcrypt
from core.auth import issue_session, clear_session, current_user_id, current_role
from services.users import UserService, sanitize_user

auth_bp = Blueprint('auth', __name__)


def _users():
    return UserService(db.engine)


@auth_bp.route('/api/users/register', methods=['POST'])
def register_user():
    """
    Register a new user
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - username
            - password
            - email
          properties:
            username:
              type: string
              example: "jane"
            password:
              type: string
              example: "password123"
            email:
              type: string
              example: "jane@example.com"
            age:
              type: integer
              example: 28
            dateOfBirth:
              type: string
              example: "1997-05-14"
            phoneNumber:
              type: string
              example: "0901234567"
            address:
              type: string
              example: "12 Nguyen Hue, District 1"
            gender:
              type: string
              example: "F"
            role:
              type: string
              enum: [buyer, seller, shipper]
              example: "buyer"
            company:
              type: string
              description: Shippers only
            license:
              type: string
              description: Shippers only, licence plate
    responses:
      201:
        description: User registered, session cookie set
      400:
        description: Missing fields, duplicate email/username or invalid role
    """
    data = request.get_json(silent=True) or {}
    username = data.get('username')
    email = data.get('email')
    password = data.get('password')

    if not all([username, email, password]):
        return jsonify({"success": False, "message": "username, email and password are required"}), 400

    users = _users()
    if users.get_user_by_email(email):
        return jsonify({"success": False, "message": "User already exists"}), 400
    if users.get_user_by_username(username):
        return jsonify({"success": False, "message": "Username already taken"}), 400

    hashed_password = bcrypt.generate_password_hash(password).decode('utf-8')
    try:
        user = users.create_user(dict(data, password=hashed_password))
    except IntegrityError:
        return jsonify({"success": False, "message": "User already exists"}), 400

    current_app.logger.info("Registered user %s (%s)", user["id"], user["role"])
    response = jsonify({
        "success": True,
        "message": "User registered successfully",
        "user": sanitize_user(user)
    })
    issue_session(response, user["id"], user["role"])
    return response, 201


@auth_bp.route('/api/users/login', methods=['POST'])
def login_user():
    """
    Log in with email or username
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - password
          properties:
            identifier:
              type: string
              description: Email or username
              example: "jane@example.com"
            email:
              type: string
              description: Older clients send the email here
            password:
              type: string
              example: "password123"
    responses:
      200:
        description: Login successful, session cookie set
      400:
        description: Missing credentials
      401:
        description: Invalid email/username or password
    """
    data = request.get_json(silent=True) or {}
    identifier = data.get('identifier') or data.get('email')
    password = data.get('password')

    if not identifier or not password:
        return jsonify({"success": False, "message": "Please provide email/username and password"}), 400

    users = _users()
    if '@' in identifier:
        user = users.get_user_by_email(identifier)
    else:
        user = users.get_user_by_username(identifier)

    if not user or not bcrypt.check_password_hash(user["Password"], password):
        return jsonify({"success": False, "message": "Invalid email/username or password"}), 401

    role = users.check_role(user["Id"])
    response = jsonify({
        "success": True,
        "message": "Login successful",
        "user": sanitize_user(user),
        "userRole": role
    })
    issue_session(response, user["Id"], role)
    return response, 200


@auth_bp.route('/api/users/logout', methods=['POST'])
def logout_user():
    """
    Log out and clear the session cookie
    ---
    tags:
      - Users
    responses:
      200:
        description: Logout successful
    """
    response = jsonify({"success": True, "message": "Logout successful"})
    clear_session(response)
    return response, 200


@auth_bp.route('/api/users/me', methods=['GET'])
@jwt_required()
def get_current_user():
    """
    Get the logged-in user
    ---
    tags:
      - Users
    responses:
      200:
        description: Current user, phone number and role from the session
      401:
        description: No token or invalid token
      404:
        description: User not found
    """
    users = _users()
    user_id = current_user_id()
    user = users.get_user_by_id(user_id)
    if not user:
        return jsonify({"success": False, "message": "User not found"}), 404

    return jsonify({
        "success": True,
        "user": sanitize_user(user),
        "phoneNumber": users.get_phone_number(user_id),
        "userRole": current_role()
    }), 200
