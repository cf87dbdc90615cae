# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for users, roles and the activity log.

Users are mirrored from the identity provider; these endpoints manage the
local profile (home branch, active flag) and role assignments only.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User, Role, Permission, Branch
from ..services import permission_service, session_service, activity_service
from ..decorators import require_auth, require_permission, error_response
from ..errors import DocflowError, ValidationError
from ..permissions import definitions as p, validate_permission_code
from ..validation import coerce_int

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _user_detail(user: User) -> dict:
    data = user.to_dict()
    profile = permission_service.resolve(user.id)
    data["roles"] = sorted(profile.roles) if profile else permission_service.get_user_role_names(user.id)
    data["permissions"] = sorted(profile.permissions) if profile else []
    return data


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_permission(p.ADMIN_USERS)
def list_users():
    """
    Query params:
    - include_inactive: bool (default false)
    - ba_code: int - filter by home branch
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    ba_code = request.args.get("ba_code", type=int)

    query = db.session.query(User)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    if ba_code:
        query = query.filter_by(ba_code=ba_code)

    users = query.order_by(User.username).all()
    result = []
    for user in users:
        user_dict = user.to_dict()
        user_dict["roles"] = permission_service.get_user_role_names(user.id)
        result.append(user_dict)

    return jsonify({"users": result, "count": len(result)})


@admin_bp.get("/users/<int:user_id>")
@require_auth
@require_permission(p.ADMIN_USERS)
def get_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"kind": "not_found", "error": "User not found"}), 404
    return jsonify({"user": _user_detail(user)})


@admin_bp.post("/users")
@require_auth
@require_permission(p.ADMIN_USERS)
def create_user():
    """
    Register a user known to the identity provider.

    Request body:
    - username: str (required)
    - email, first_name, last_name, position: str (optional)
    - ba_code: int (optional home branch)
    - role: str (optional initial role)
    """
    data = request.get_json(silent=True) or {}
    try:
        username = (data.get("username") or "").strip()
        if not username:
            raise ValidationError("username is required")
        if db.session.query(User).filter_by(username=username).first():
            raise ValidationError(f"Username '{username}' already exists")

        ba_code = coerce_int(data["ba_code"], "ba_code") if data.get("ba_code") is not None else None
        if ba_code is not None and not db.session.query(Branch).filter_by(ba_code=ba_code).first():
            raise ValidationError(f"Branch {ba_code} does not exist")
        if data.get("role") and not db.session.query(Role).filter_by(name=data["role"]).first():
            raise ValidationError(f"Role '{data['role']}' does not exist")

        user = User(
            username=username,
            email=data.get("email"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            position=data.get("position"),
            ba_code=ba_code,
            is_active=True,
        )
        db.session.add(user)
        db.session.commit()

        if data.get("role"):
            permission_service.assign_role(user.id, data["role"], assigned_by_user_id=g.current_user.id)
    except DocflowError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": _user_detail(user)}), 201


@admin_bp.patch("/users/<int:user_id>")
@require_auth
@require_permission(p.ADMIN_USERS)
def update_user(user_id: int):
    """Update home branch / active flag. Deactivation revokes every session."""
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"kind": "not_found", "error": "User not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        if "ba_code" in data:
            ba_code = coerce_int(data["ba_code"], "ba_code") if data["ba_code"] is not None else None
            if ba_code is not None and not db.session.query(Branch).filter_by(ba_code=ba_code).first():
                raise ValidationError(f"Branch {ba_code} does not exist")
            user.ba_code = ba_code
        for field in ("email", "first_name", "last_name", "position"):
            if field in data:
                setattr(user, field, data[field])
        deactivated = False
        if "is_active" in data:
            if not isinstance(data["is_active"], bool):
                raise ValidationError("is_active must be true or false")
            deactivated = user.is_active and not data["is_active"]
            user.is_active = data["is_active"]
        db.session.commit()
    except ValidationError as e:
        db.session.rollback()
        return error_response(e)

    if deactivated:
        session_service.revoke_all_user_sessions(user.id, reason="User deactivated")

    return jsonify({"user": _user_detail(user)})


# =============================================================================
# ROLE MANAGEMENT
# =============================================================================

@admin_bp.get("/roles")
@require_auth
@require_permission(p.ADMIN_ROLES)
def list_roles():
    roles = db.session.query(Role).order_by(Role.name).all()
    result = []
    for role in roles:
        role_dict = role.to_dict()
        role_dict["permissions"] = sorted(rp.permission.code for rp in role.role_permissions)
        result.append(role_dict)
    return jsonify({"roles": result})


@admin_bp.get("/permissions")
@require_auth
@require_permission(p.ADMIN_ROLES)
def list_permissions():
    permissions = db.session.query(Permission).order_by(Permission.category, Permission.code).all()
    return jsonify({"permissions": [perm.to_dict() for perm in permissions]})


@admin_bp.post("/users/<int:user_id>/roles")
@require_auth
@require_permission(p.ADMIN_ROLES)
def assign_role(user_id: int):
    """Request body: {"role": "branch_user"}"""
    data = request.get_json(silent=True) or {}
    role_name = (data.get("role") or "").strip()
    if not role_name:
        return error_response(ValidationError("role is required"))

    try:
        permission_service.assign_role(user_id, role_name, assigned_by_user_id=g.current_user.id)
    except DocflowError as e:
        db.session.rollback()
        return error_response(e)

    return jsonify({"user_id": user_id, "roles": permission_service.get_user_role_names(user_id)})


@admin_bp.delete("/users/<int:user_id>/roles/<role_name>")
@require_auth
@require_permission(p.ADMIN_ROLES)
def revoke_role(user_id: int, role_name: str):
    try:
        removed = permission_service.revoke_role(user_id, role_name, revoked_by_user_id=g.current_user.id)
    except DocflowError as e:
        db.session.rollback()
        return error_response(e)

    return jsonify({
        "user_id": user_id,
        "revoked": removed,
        "roles": permission_service.get_user_role_names(user_id),
    })


@admin_bp.post("/roles/<role_name>/permissions")
@require_auth
@require_permission(p.ADMIN_ROLES)
def grant_permission(role_name: str):
    """Request body: {"permission": "comments:create"}"""
    data = request.get_json(silent=True) or {}
    code = (data.get("permission") or "").strip()
    if not code:
        return error_response(ValidationError("permission is required"))
    if not validate_permission_code(code):
        return error_response(ValidationError(f"Unknown permission: {code}"))
    try:
        permission_service.grant_permission_to_role(role_name, code)
    except DocflowError as e:
        db.session.rollback()
        return error_response(e)
    return jsonify({"role": role_name, "granted": code})


@admin_bp.delete("/roles/<role_name>/permissions/<path:permission_code>")
@require_auth
@require_permission(p.ADMIN_ROLES)
def revoke_permission(role_name: str, permission_code: str):
    try:
        removed = permission_service.revoke_permission_from_role(role_name, permission_code)
    except DocflowError as e:
        db.session.rollback()
        return error_response(e)
    return jsonify({"role": role_name, "revoked": removed})


# =============================================================================
# ACTIVITY LOG
# =============================================================================

@admin_bp.get("/activity")
@require_auth
@require_permission(p.ADMIN_SYSTEM)
def list_activity():
    """Query params: document_id, user_id, action, limit, offset."""
    rows, total = activity_service.list_activity(
        document_id=request.args.get("document_id", type=int),
        user_id=request.args.get("user_id", type=int),
        action=request.args.get("action") or None,
        limit=min(request.args.get("limit", 100, type=int), 500),
        offset=request.args.get("offset", 0, type=int),
    )
    return jsonify({"activity": [row.to_dict() for row in rows], "count": len(rows), "total": total})
