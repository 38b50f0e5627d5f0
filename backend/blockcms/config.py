import os
from dotenv import load_dotenv

load_dotenv()


def _float_or_none(value):
    if value in (None, ""):
        return None
    return float(value)


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Legacy JSON definition directory used by `flask custom-elements import`
    CUSTOM_ELEMENTS_PATH = os.getenv("CUSTOM_ELEMENTS_PATH")
    # Seconds; unset keeps the registry cache until a mutation or refresh
    CUSTOM_ELEMENT_CACHE_MAX_AGE = _float_or_none(os.getenv("CUSTOM_ELEMENT_CACHE_MAX_AGE"))

    JWT_ROLE_CLAIM = "role"
    ROLE_PERMISSIONS = {
        "admin": ["*"],
        "editor": [
            "contents.edit",
            "contents.publish",
            "contents.delete",
            "contents.lock",
        ],
        "author": ["contents.edit"],
        "viewer": [],
    }


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///blockcms-dev.db")


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CUSTOM_ELEMENT_CACHE_MAX_AGE = None


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
