from flask import current_app
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()

CUSTOM_ELEMENTS_KEY = "custom_elements"


def custom_elements():
    """The custom element registry owned by the current app."""
    return current_app.extensions[CUSTOM_ELEMENTS_KEY]
