from flask import Flask
from flask_cors import CORS

from .config import get_config, REQUIRED_SETTINGS
from .dependencies import STORAGE_KEY, IDENTITY_KEY, RENTAL_KEY
from .errors import register_error_handlers
from .logging_config import setup_logging
from models.db_storage import DBStorage
from services.identity_service import IdentityService, TokenSettings
from services.rental_service import RentalService
from utils.security import SecretHasher, TokenSigner


def build_services(config, storage: DBStorage):
    """Compose the identity and rental services from a config mapping."""
    hasher = SecretHasher(
        time_cost=config["ARGON2_TIME_COST"],
        memory_cost=config["ARGON2_MEMORY_COST"],
        parallelism=config["ARGON2_PARALLELISM"],
    )
    settings = TokenSettings(
        access_secret=config["AT_SECRET"],
        refresh_secret=config["RT_SECRET"],
        access_ttl=config["ACCESS_TOKEN_EXPIRES"],
        refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
    )
    identity = IdentityService(storage, hasher, TokenSigner(config["JWT_ALGORITHM"]), settings)
    return identity, RentalService(storage)


def create_app(config_name: str | None = None, **overrides) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `overrides` are applied on top of the selected config class (tests use
    this to point DATABASE_URL at a temporary file).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    app.config.update(overrides)
    missing = [key for key in REQUIRED_SETTINGS if not app.config.get(key)]
    if missing:
        raise RuntimeError(f"Missing required settings: {', '.join(missing)}")

    setup_logging(app.config["LOG_LEVEL"], app.config.get("LOG_FILE"))

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    storage = DBStorage(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()
    identity, rentals = build_services(app.config, storage)
    app.extensions[STORAGE_KEY] = storage
    app.extensions[IDENTITY_KEY] = identity
    app.extensions[RENTAL_KEY] = rentals

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .books import bp as books_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(books_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Book Rental API",
            "health": "/api/v1/health",
        }, 200

    return app
