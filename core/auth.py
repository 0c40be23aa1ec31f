from functools import wraps

from core.imports import (
    jsonify, create_access_token, get_jwt_identity, get_jwt, verify_jwt_in_request,
    set_access_cookies, unset_jwt_cookies,
)
from core.errors import AuthenticationError, AuthorizationError


def issue_session(response, user_id, role):
    """Sign a token for ``user_id`` with its role claim and set it as the session cookie."""
    token = create_access_token(identity=str(user_id), additional_claims={"role": role})
    set_access_cookies(response, token)
    return response


def clear_session(response):
    unset_jwt_cookies(response)
    return response


def current_user_id():
    user_id = get_jwt_identity()
    if not user_id:
        raise AuthenticationError("No token provided. Please log in.")
    return user_id


def current_role():
    return get_jwt().get("role", "unknown")


def roles_required(*roles):
    """Require a valid session whose role claim is one of ``roles``."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if current_role() not in roles:
                raise AuthorizationError("Access denied")
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def register_session_handlers(jwt):
    """Answer 401 and drop the cookie whenever the session token is missing or bad."""

    def reject(message):
        response = jsonify({"success": False, "message": message})
        clear_session(response)
        return response, 401

    @jwt.unauthorized_loader
    def missing_token(_reason):
        return reject("No token provided. Please log in.")

    @jwt.invalid_token_loader
    def invalid_token(_reason):
        return reject("Invalid or expired token. Please log in again.")

    @jwt.expired_token_loader
    def expired_token(_jwt_header, _jwt_payload):
        return reject("Invalid or expired token. Please log in again.")
