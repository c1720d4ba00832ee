"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Per-service shared secrets live in WEBHOOK_SECRET_<SERVICE_ID>
WEBHOOK_SECRET_PREFIX: Final[str] = "WEBHOOK_SECRET_"

# Loads .env during development (no-op when absent)
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


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


def webhook_secret_name(service_id: str) -> str:
    """Return the setting name holding ``service_id``'s shared secret.

    ``minu-find`` becomes ``WEBHOOK_SECRET_MINU_FIND``.
    """
    return WEBHOOK_SECRET_PREFIX + service_id.upper().replace("-", "_")


def lookup_webhook_secret(config: Mapping[str, Any], service_id: str) -> str | None:
    """Resolve a service secret from the app config first, then the environment.

    :param config: Flask config (or any mapping).
    :type config: Mapping[str, Any]
    :param service_id: Known service identifier.
    :type service_id: str
    :returns: The secret or ``None`` when it was never provisioned.
    :rtype: str | None
    """
    name = webhook_secret_name(service_id)
    secret = config.get(name) or os.getenv(name)
    return secret or None


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    SECRET_KEY: str
        Flask secret used for session signing.
    MCP_JWT_SECRET: str | None
        HS256 key used to sign and verify service access tokens. Mirrored into
        ``JWT_SECRET_KEY`` for ``flask-jwt-extended``.
    MCP_ACCESS_TOKEN_TTL_SECONDS: int
        Access token lifetime (15 minutes).
    MCP_REFRESH_TOKEN_TTL_SECONDS: int
        Refresh token lifetime (7 days).
    MCP_TIMESTAMP_TOLERANCE_SECONDS: int
        Accepted clock skew for the ``X-Timestamp`` credential header.
    MCP_STATUS_DEGRADED_PENDING_THRESHOLD: int
        Pending queue depth above which the router reports ``degraded``.
    MCP_REVOKE_SAME_SERVICE_ONLY: bool
        Restricts revocation to tokens of the caller's own service.
    MCP_INSTANCE_STARTED_AT: str | None
        Optional ISO-8601 instance start time used for reported uptime.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        Optional Redis used as a revocation denylist accelerator.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    MCP_JWT_SECRET = os.getenv("MCP_JWT_SECRET")

    # flask-jwt-extended (claims contract shared with every service)
    JWT_SECRET_KEY = MCP_JWT_SECRET
    JWT_ALGORITHM = "HS256"
    JWT_DECODE_ALGORITHMS = ["HS256"]
    JWT_ENCODE_ISSUER = "mcp-auth"
    JWT_DECODE_ISSUER = "mcp-auth"
    JWT_ENCODE_AUDIENCE = "central-hub"
    JWT_DECODE_AUDIENCE = "central-hub"
    JWT_TOKEN_LOCATION = ["headers"]

    # Token lifecycle
    MCP_ACCESS_TOKEN_TTL_SECONDS = env_int("MCP_ACCESS_TOKEN_TTL_SECONDS", 900)
    MCP_REFRESH_TOKEN_TTL_SECONDS = env_int("MCP_REFRESH_TOKEN_TTL_SECONDS", 7 * 24 * 3600)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=MCP_ACCESS_TOKEN_TTL_SECONDS)
    MCP_TIMESTAMP_TOLERANCE_SECONDS = env_int("MCP_TIMESTAMP_TOLERANCE_SECONDS", 300)
    MCP_REVOKE_SAME_SERVICE_ONLY = env_bool("MCP_REVOKE_SAME_SERVICE_ONLY", False)

    # Router
    MCP_STATUS_DEGRADED_PENDING_THRESHOLD = env_int("MCP_STATUS_DEGRADED_PENDING_THRESHOLD", 100)
    MCP_INSTANCE_STARTED_AT = os.getenv("MCP_INSTANCE_STARTED_AT")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = os.getenv("REDIS_URL")

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging, CORS & proxy
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    CORS_MAX_AGE = 600
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)
    PROXY_TRUSTED_HOPS = env_int("PROXY_TRUSTED_HOPS", 1)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Ships a deterministic signing key so tokens can be minted in tests.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    MCP_JWT_SECRET = "testing-mcp-jwt-secret-with-enough-length"
    JWT_SECRET_KEY = MCP_JWT_SECRET
    REDIS_URL = None


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled. ``MCP_JWT_SECRET`` is mandatory and
    checked by the application factory.
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
