# backend/docflow/routes/system.py
"""
System health and branch directory endpoints.
"""

import time
from flask import Blueprint, current_app, jsonify, g
from ..extensions import db
from ..models import Branch, User, Role, Permission
from ..decorators import require_auth
from ..services import branch_access, permission_service
from docflow.time_utils import utcnow, to_utc_z, local_today

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Database connectivity plus a few row counts."""
    start_time = time.time()
    try:
        details = {
            "branches": db.session.query(Branch).count(),
            "users": db.session.query(User).count(),
            "roles": db.session.query(Role).count(),
            "permissions": db.session.query(Permission).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return jsonify({
        "status": database["status"],
        "timestamp": to_utc_z(utcnow()),
        "local_date": local_today(current_app.config["DOCFLOW_TIMEZONE"]).isoformat(),
        "checks": {"database": database},
    }), status_code


@system_bp.get("/api/me")
@require_auth
def me():
    """The caller's identity with freshly resolved roles and permissions."""
    profile = permission_service.resolve(g.current_user.id)
    data = g.current_user.to_dict()
    data["access"] = profile.to_dict() if profile else None
    return jsonify({"user": data})


@system_bp.get("/api/branches")
@require_auth
def list_branches():
    """Active branches the caller can open."""
    profile = permission_service.resolve(g.current_user.id)
    branches = branch_access.accessible_branches(profile)
    return jsonify({"branches": [b.to_dict() for b in branches], "count": len(branches)})
