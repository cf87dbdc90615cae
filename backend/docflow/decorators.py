# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import DocflowError, HTTP_STATUS_BY_KIND
from .services import session_service, permission_service, activity_service
from .services.activity_service import RequestMeta


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def error_response(error: DocflowError):
    """JSON body and HTTP status for a DocflowError."""
    if error.kind.value in ("permission_denied", "branch_access_denied"):
        current_app.logger.warning(
            "Access denied for user %s on %s %s: %s",
            getattr(g.get("current_user"), "id", None),
            request.method,
            request.path,
            error.detail,
        )
    return jsonify(error.to_dict()), HTTP_STATUS_BY_KIND[error.kind]


def require_auth(f):
    """
    Require a valid bearer session.

    Sets:
    - g.current_user: The authenticated User object
    - g.session_context: The SessionContext returned by session_service
    - g.request_meta: Client IP / user agent for the activity log

    Roles are NOT loaded here; services resolve them per call.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"kind": "authentication_required", "error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"kind": "authentication_required", "error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        g.request_meta = RequestMeta.from_request(request)

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require a specific permission, resolved fresh from the database.

    Denials are written to the activity log.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"kind": "authentication_required", "error": "Authentication required"}), 401

            user = g.current_user
            profile = permission_service.resolve(user.id)
            if profile is None:
                return jsonify({"kind": "authentication_required", "error": "Invalid or expired token"}), 401

            if not profile.has_permission(permission_code):
                activity_service.log_activity(
                    user_id=user.id,
                    action=activity_service.PERMISSION_DENIED,
                    details={"required_permission": permission_code, "resource": request.path},
                    meta=g.get("request_meta"),
                )
                current_app.logger.warning(
                    "Permission %s denied for user %s on %s", permission_code, user.id, request.path
                )
                return jsonify({
                    "kind": "permission_denied",
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            g.access_profile = profile
            return f(*args, **kwargs)

        return decorated_function
    return decorator
