"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env in development (no-op when the file does not exist)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_minutes(name: str, default: int) -> timedelta:
    """Read a duration expressed in minutes from the environment.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: int
        Minutes used when the variable is unset or blank.

    Returns
    -------
    datetime.timedelta
        Parsed duration.

    Raises
    ------
    ValueError
        If the value is not a positive integer.
    """
    raw = (os.getenv(name) or "").strip()
    minutes = int(raw) if raw else default
    if minutes <= 0:
        raise ValueError(f"{name} must be a positive number of minutes.")
    return timedelta(minutes=minutes)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing. Defaults to a development-safe
        placeholder and should be overridden in production.
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` to sign access and refresh tokens.
    JWT_ACCESS_TOKEN_EXPIRES: datetime.timedelta
        Access token lifetime.
    JWT_REFRESH_TOKEN_EXPIRES: datetime.timedelta
        Refresh token lifetime (7 days unless overridden).
    PASSWORD_RESET_EXPIRES: datetime.timedelta
        Validity window of a password reset token.
    REVOKE_SESSIONS_ON_PASSWORD_RESET: bool
        When ``True`` a successful password reset revokes every refresh token
        of the account.
    REFRESH_TOKEN_BACKEND: str
        ``"sql"`` (relational store, default) or ``"redis"``.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        Redis connection URL; required when ``REFRESH_TOKEN_BACKEND`` is
        ``"redis"``.
    SMTP_HOST: str | None
        Outgoing mail server. When unset, mails are logged instead of sent.
    FRONTEND_URL: str
        Base URL used to build password reset links.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ACCESS_TOKEN_EXPIRES = env_minutes("JWT_ACCESS_TOKEN_EXPIRES", 15)
    JWT_REFRESH_TOKEN_EXPIRES = env_minutes("JWT_REFRESH_TOKEN_EXPIRES", 7 * 24 * 60)
    PASSWORD_RESET_EXPIRES = env_minutes("PASSWORD_RESET_EXPIRES", 60)
    REVOKE_SESSIONS_ON_PASSWORD_RESET = env_bool("REVOKE_SESSIONS_ON_PASSWORD_RESET", True)
    REFRESH_TOKEN_BACKEND = os.getenv("REFRESH_TOKEN_BACKEND", "sql").strip().lower()

    # DB / cache
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = os.getenv("REDIS_URL")

    # Mail
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER = os.getenv("SMTP_USER")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_USE_TLS = env_bool("SMTP_USE_TLS", True)
    EMAIL_FROM = os.getenv("EMAIL_FROM", "noreply@example.com")
    EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Portfolio Website")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3030")

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3030")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and uses a longer access token lifetime
    than production to keep the admin panel usable while iterating.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    JWT_ACCESS_TOKEN_EXPIRES = env_minutes("JWT_ACCESS_TOKEN_EXPIRES", 60)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Always uses the relational refresh-token store and never sends mail.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    JWT_SECRET_KEY = "testing-secret-key-with-enough-bytes-for-hs256"
    REFRESH_TOKEN_BACKEND = "sql"
    REDIS_URL = None
    SMTP_HOST = None
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled and the short (15 min) access token
    lifetime from :class:`BaseConfig`.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
