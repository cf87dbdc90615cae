from __future__ import annotations

from ..extensions import db
from docflow.time_utils import to_utc_z

class ActivityLog(db.Model):
    """
    Who did what to which document and branch.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_document_created", "document_id", "created_at"),
        db.Index("ix_activity_logs_user_action", "user_id", "action"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)  # Nullable for system jobs
    action = db.Column(db.String(64), nullable=False, index=True)

    # Plain columns, not FKs: log rows outlive deleted drafts
    document_id = db.Column(db.Integer, nullable=True, index=True)
    branch_ba_code = db.Column(db.Integer, nullable=True, index=True)

    details = db.Column(db.JSON, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("activity_logs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "document_id": self.document_id,
            "branch_ba_code": self.branch_ba_code,
            "details": self.details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": to_utc_z(self.created_at),
        }
