"""Flask extension singletons for the hub and the optional Redis denylist client."""

from __future__ import annotations

import logging

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

LOGGER = logging.getLogger(__name__)

REDIS_EXTENSION = "mcphub.redis"

# Constraint names in migrations/versions/0001_mcp_hub_initial.py follow this
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(table_name)s_%(column_0_name)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

# Repositories flush explicitly, so autoflush stays off
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()


def init_app(app: Flask) -> None:
    """Bind the database, migrations and JWT manager; connect the denylist Redis.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. Importing
        :mod:`mcphub.models` here registers every table for Alembic.

    Notes
    -----
    Redis only accelerates revocation checks; the database stays the source of
    truth. An unreachable ``REDIS_URL`` is logged and the app starts without it.
    """
    db.init_app(app)

    from mcphub import models as _models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)

    app.extensions[REDIS_EXTENSION] = _connect_redis(app.config.get("REDIS_URL"))


def _connect_redis(url: str | None) -> redis.Redis | None:
    if not url:
        return None
    client = redis.Redis.from_url(url, decode_responses=True)
    try:
        client.ping()
    except RedisError:
        LOGGER.warning("Redis unreachable; revocation denylist disabled", exc_info=True)
        return None
    return client


def get_redis() -> redis.Redis | None:
    """Return the current app's denylist client, or ``None`` when Redis is off."""
    return current_app.extensions.get(REDIS_EXTENSION)
