from core.imports import jsonify


class ShopError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message=None, error=None):
        self.message = message or self.default_message
        self.error = error
        super().__init__(self.message)

    def to_response(self):
        body = {"success": False, "message": self.message}
        if self.error:
            body["error"] = self.error
        return jsonify(body), self.status_code


class ValidationError(ShopError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(ShopError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(ShopError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(ShopError):
    status_code = 404
    default_message = "Resource not found"


class LinkageError(ShopError):
    """A write would leave a dependent row without its parent or link."""

    status_code = 400
    default_message = "Required linkage is missing"


class FatalQueryError(ShopError):
    """Both the stored procedure and its fallback query failed."""

    status_code = 503
    default_message = "Database query failed."


def register_error_handlers(app):
    @app.errorhandler(ShopError)
    def handle_shop_error(err):
        if err.status_code >= 500:
            app.logger.error("%s: %s", type(err).__name__, err.error or err.message)
        return err.to_response()

    @app.errorhandler(404)
    def handle_not_found(_err):
        return jsonify({"success": False, "message": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(_err):
        return jsonify({"success": False, "message": "Method not allowed"}), 405
