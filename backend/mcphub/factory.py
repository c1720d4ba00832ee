"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from datetime import UTC, datetime

from flask import Flask

from mcphub.core.config import BaseConfig, get_config
from mcphub.core.logger import configure_logging, init_app as init_logging
from mcphub.services._shared.ports import Clock, SystemClock


def _startup_clock(app: Flask) -> Clock:
    """Build the clock whose ``started_at`` drives reported uptime.

    ``MCP_INSTANCE_STARTED_AT`` (ISO-8601) lets a deployment share one start
    time across instances; otherwise the factory call time is used.
    """
    raw = app.config.get("MCP_INSTANCE_STARTED_AT")
    if not raw:
        return SystemClock()
    started_at = raw if isinstance(raw, datetime) else datetime.fromisoformat(str(raw))
    if started_at.tzinfo is None:
        started_at = started_at.replace(tzinfo=UTC)
    return SystemClock(started_at=started_at)


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    clock: Clock | None = None,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config object or import path; defaults to ``get_config()``.
    :param clock: Time source injected into every service; tests pass a fixed one.
    :raises RuntimeError: Production config without ``MCP_JWT_SECRET``.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    # MCP_JWT_SECRET is the single source for the signing key
    if app.config.get("MCP_JWT_SECRET"):
        app.config["JWT_SECRET_KEY"] = app.config["MCP_JWT_SECRET"]
    if not app.config.get("JWT_SECRET_KEY") and not (app.debug or app.testing):
        raise RuntimeError("MCP_JWT_SECRET must be set outside development and testing")

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from mcphub.api.deps import CLOCK_EXTENSION

    app.extensions[CLOCK_EXTENSION] = clock or _startup_clock(app)

    # Proxy headers if running behind a reverse proxy (optional module)
    from mcphub.core import proxy

    proxy.init_app(app)

    from mcphub.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from mcphub.core import cors

    cors.init_app(app)

    from mcphub.api import init_app as init_api

    init_api(app)

    from mcphub.core import errors

    errors.init_app(app)

    from mcphub import cli as app_cli

    app_cli.init_app(app)

    return app
