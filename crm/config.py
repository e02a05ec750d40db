"""
CRM Hub
Configuration classes for the Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Preferences live in a local SQLite file unless DATABASE_URL is set
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'crm_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _float_or_none(raw):
    try:
        return float(raw) if raw else None
    except ValueError:
        return None


def _database_url(default):
    raw = os.getenv("DATABASE_URL", "")
    # Heroku-style postgres:// URLs are rejected by SQLAlchemy 2.0
    return raw.replace("postgres://", "postgresql://", 1) if raw else default


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy (preferences storage)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Remote backend (live data source). Both values are required; when
    # either is missing the store runs mock-only.
    CRM_BACKEND_URL = os.getenv("CRM_BACKEND_URL", "")
    CRM_BACKEND_KEY = os.getenv("CRM_BACKEND_KEY", "")
    CRM_BACKEND_TIMEOUT = _float_or_none(os.getenv("CRM_BACKEND_TIMEOUT"))

    # Data source used until a preference has been stored
    DEFAULT_DATA_SOURCE = os.getenv("DEFAULT_DATA_SOURCE", "mock")

    # Scope holding app-wide preferences (dataSource)
    PREFERENCE_SCOPE = os.getenv("PREFERENCE_SCOPE", "default")

    # Flask-Limiter storage
    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    # Never talk to a real backend from the test suite
    CRM_BACKEND_URL = ""
    CRM_BACKEND_KEY = ""
    DEFAULT_DATA_SOURCE = "mock"
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    def __init__(self):
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
