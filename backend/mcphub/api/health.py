"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from mcphub.api.deps import get_clock, json_response, timing
from mcphub.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return liveness plus database reachability; 503 when the database is down."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"
    clock = get_clock()
    payload = {
        "status": "ok" if db_status == "ok" else "degraded",
        "db": db_status,
        "version": current_app.config.get("APP_VERSION", "dev"),
        "uptime_seconds": max(0, int((clock.now() - clock.started_at).total_seconds())),
    }
    return json_response(payload, status=200 if db_status == "ok" else 503)
