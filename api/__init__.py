from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from tokens import TokenService

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Session Token API",
        "version": "1.0.0",
        "description": "Refresh-token rotation, revocation and session management.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None, identity_verifier=None, clock=None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    identity_verifier: utils.identity.IdentityVerifier used by /auth/login/<provider>
    clock: optional callable returning naive UTC now (tests)
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    service_kwargs = {"clock": clock} if clock is not None else {}
    app.extensions["tokens"] = TokenService.from_config(app.config, storage, **service_kwargs)
    app.extensions["identity_verifier"] = identity_verifier

    from .health import bp as health_bp
    from .auth import bp as auth_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")

    from .commands import register_commands
    register_commands(app)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Session Token API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
