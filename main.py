import logging
import sys

from core.imports import Flask, text, cloudinary
from core.config import Config
from core.extensions import db, jwt, swagger, cors, bcrypt, migrate
from core.errors import register_error_handlers
from core.auth import register_session_handlers
from models import userModel, cartModels, productModels, orderModels, reviewModels  # noqa: F401
from routes.auth import auth_bp
from routes.cart import cart_bp
from routes.marketplace import marketplace_bp
from routes.seller import seller_bp
from routes.shipper import shipper_bp
from routes.upload import upload_bp
from routes.orders import orders_bp
from routes.reviews import reviews_bp


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    jwt.init_app(app)
    swagger.init_app(app)
    cors.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)

    if app.config.get("CLOUDINARY_CLOUD_NAME"):
        cloudinary.config(
            cloud_name=app.config["CLOUDINARY_CLOUD_NAME"],
            api_key=app.config["CLOUDINARY_API_KEY"],
            api_secret=app.config["CLOUDINARY_API_SECRET"],
            secure=True,
        )

    register_error_handlers(app)
    register_session_handlers(jwt)

    app.register_blueprint(auth_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(marketplace_bp)
    app.register_blueprint(seller_bp)
    app.register_blueprint(shipper_bp)
    app.register_blueprint(upload_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(reviews_bp)

    @app.route('/ping')
    def ping():
        return "Ping received", 200

    return app


app = create_app()


if __name__ == "__main__":
    with app.app_context():
        try:
            with db.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            app.logger.error("Database connection failed: %s", e)
            sys.exit(1)
        app.logger.info("Connected to %s", db.engine.url.render_as_string(hide_password=True))
        db.create_all()

    app.run(debug=True)
