# Overview: Health endpoint for load balancers and deploy checks.

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db


system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {"status": "error", "database": "unavailable"}, 503

    return {"status": "ok", "database": "ok"}
