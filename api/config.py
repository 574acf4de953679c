"""
Environment-aware configuration.
Durations use the "<number><s|m|h|d|w>" format, e.g. "15m" or "7d".
"""
import os
from dotenv import load_dotenv

load_dotenv()  # Read .env if present


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # Access tokens (JWT, never stored)
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "session-token-service")
    ACCESS_TOKEN_EXPIRES = os.getenv("ACCESS_TOKEN_EXPIRES", "15m")
    # Refresh tokens (opaque, stored hashed)
    REFRESH_TOKEN_EXPIRES = os.getenv("REFRESH_TOKEN_EXPIRES", "7d")
    # How long expired records are kept for audit before the sweep deletes them
    REFRESH_TOKEN_RETENTION = os.getenv("REFRESH_TOKEN_RETENTION", "0s")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class TestingConfig(BaseConfig):
    TESTING = True
    JWT_SECRET = "test-secret-key-for-testing-only-0123456789"


class ProductionConfig(BaseConfig):
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
