import os

from flask import Flask, send_from_directory
from flask_swagger_ui import get_swaggerui_blueprint

from .config import config_by_name
from .extensions import db, migrate, jwt, CUSTOM_ELEMENTS_KEY
from .api.v1 import v1_bp
from .errors import register_error_handlers
from .cli import register_cli
from .domain.registry import CustomElementRegistry
from .models.custom_element import SqlDefinitionSource

OPENAPI_DIR = os.path.join(os.path.dirname(__file__), "api", "v1")
OPENAPI_FILE = "cms_openapi.yaml"
OPENAPI_URL = "/openapi/cms.yaml"
SWAGGER_URL = "/swagger"


def create_app(config_name: str = "development") -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # -------------------------------------------------
    # Extensions
    # -------------------------------------------------
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # -------------------------------------------------
    # Custom element registry (one cache per app)
    # -------------------------------------------------
    app.extensions[CUSTOM_ELEMENTS_KEY] = CustomElementRegistry(
        SqlDefinitionSource(),
        max_age=app.config["CUSTOM_ELEMENT_CACHE_MAX_AGE"],
    )

    # -------------------------------------------------
    # API, errors, CLI
    # -------------------------------------------------
    app.register_blueprint(v1_bp, url_prefix="/api/v1")
    register_error_handlers(app)
    register_cli(app)

    _register_docs(app)

    return app


def _register_docs(app: Flask) -> None:
    """Public OpenAPI document and the Swagger UI pointed at it."""

    @app.route(OPENAPI_URL, methods=["GET"], endpoint="openapi_cms")
    def serve_openapi():
        return send_from_directory(OPENAPI_DIR, OPENAPI_FILE, mimetype="application/yaml")

    swaggerui_blueprint = get_swaggerui_blueprint(
        SWAGGER_URL,
        OPENAPI_URL,
        config={
            "app_name": "Block CMS API",
            "deepLinking": True,
            "persistAuthorization": True,
        },
    )
    app.register_blueprint(swaggerui_blueprint, url_prefix=SWAGGER_URL)
