# Overview: Append-only activity log; writes are best-effort and never fail the caller.

"""
Activity Log

log_activity() runs after the business transaction has committed. A
failure to write the audit row is logged through current_app.logger and
swallowed: the document change already happened and must not be reported
as failed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import ActivityLog


# Action names written to activity_logs.action
DOCUMENT_CREATED = "document_created"
DOCUMENT_TRANSITION = "document_transition"
DOCUMENT_DELETED = "document_deleted"
DOCUMENT_VIEWED = "document_viewed"
COMMENT_ADDED = "comment_added"
FILE_ATTACHED = "file_attached"
ADDITIONAL_FILE_VERIFIED = "additional_file_verified"
ROLE_ASSIGNED = "role_assigned"
ROLE_REVOKED = "role_revoked"
PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class RequestMeta:
    """Client details captured from the HTTP request, if there is one."""
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_request(cls, request) -> "RequestMeta":
        forwarded = request.headers.get("X-Forwarded-For")
        ip_address = forwarded.split(",")[0].strip() if forwarded else request.remote_addr
        user_agent = request.headers.get("User-Agent")
        return cls(
            ip_address=ip_address[:45] if ip_address else None,
            user_agent=user_agent[:512] if user_agent else None,
        )


def log_activity(
    *,
    user_id: int | None,
    action: str,
    document_id: int | None = None,
    branch_ba_code: int | None = None,
    details: dict[str, Any] | None = None,
    meta: RequestMeta | None = None,
) -> ActivityLog | None:
    """
    Append one activity row and commit it.

    Returns the row, or None when the write failed.
    """
    meta = meta or RequestMeta()
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        document_id=document_id,
        branch_ba_code=branch_ba_code,
        details=details,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to write activity log: action=%s document_id=%s", action, document_id
        )
        return None
    return entry


def list_activity(
    *,
    document_id: int | None = None,
    user_id: int | None = None,
    action: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[ActivityLog], int]:
    query = db.session.query(ActivityLog)
    if document_id is not None:
        query = query.filter(ActivityLog.document_id == document_id)
    if user_id is not None:
        query = query.filter(ActivityLog.user_id == user_id)
    if action:
        query = query.filter(ActivityLog.action == action)

    total = query.count()
    rows = (
        query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total
