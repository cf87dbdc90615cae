from __future__ import annotations

from enum import Enum

from ..extensions import db
from docflow.time_utils import to_utc_z, to_iso_date


class DocumentStatus(str, Enum):
    """Primary lifecycle status, in workflow order."""
    DRAFT = "draft"
    SENT = "sent"
    ACKNOWLEDGED = "acknowledged"
    ADDITIONAL_DOCS_COMPLETED = "additional_docs_completed"
    VERIFICATION_COMPLETED = "verification_completed"
    ALL_CHECKED = "all_checked"
    SENT_BACK_TO_DISTRICT = "sent_back_to_district"
    RECEIVED = "received"


class DisbursementState(str, Enum):
    """Disbursement sub-state, meaningful once a document is all_checked."""
    UNSET = "unset"
    DATE_SET = "date_set"
    CONFIRMED = "confirmed"
    PAID = "paid"


STATUS_ORDER = [s.value for s in DocumentStatus]


class Document(db.Model):
    """
    Disbursement document routed between the district office and a branch.

    The disbursement progress is a single tagged column
    (disbursement_state); the confirmed/paid flags are read-only views of it
    so that "paid but not confirmed" cannot be stored.
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.Index("ix_documents_branch_status", "branch_ba_code", "status"),
        db.CheckConstraint(
            "disbursement_state = 'unset' OR disbursement_date IS NOT NULL",
            name="ck_documents_disbursement_date_set",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_ba_code = db.Column(db.Integer, db.ForeignKey("branches.ba_code"), nullable=False, index=True)

    mt_number = db.Column(db.String(64), nullable=False, index=True)
    mt_date = db.Column(db.Date, nullable=False)
    subject = db.Column(db.Text, nullable=False)
    month_year = db.Column(db.String(32), nullable=True)

    status = db.Column(db.String(50), nullable=False, default=DocumentStatus.DRAFT.value, index=True)
    disbursement_state = db.Column(
        db.String(16),
        nullable=False,
        default=DisbursementState.UNSET.value,
        index=True,
    )

    uploader_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    original_filename = db.Column(db.String(255), nullable=True)
    file_path = db.Column(db.String(512), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)

    disbursement_date = db.Column(db.Date, nullable=True)
    send_back_date = db.Column(db.Date, nullable=True)
    deadline_date = db.Column(db.Date, nullable=True, index=True)
    received_paper_doc_date = db.Column(db.Date, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branch = db.relationship("Branch", backref=db.backref("documents", lazy=True))
    uploader = db.relationship("User", backref=db.backref("uploaded_documents", lazy=True))

    comments = db.relationship(
        "Comment", backref="document", lazy=True, cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )
    emendation_files = db.relationship(
        "EmendationFile", backref="document", lazy=True, cascade="all, delete-orphan",
    )
    additional_files = db.relationship(
        "AdditionalFile", backref="document", lazy=True, cascade="all, delete-orphan",
        order_by="AdditionalFile.item_index",
    )
    status_history = db.relationship(
        "DocumentStatusHistory", backref="document", lazy=True, cascade="all, delete-orphan",
        order_by="DocumentStatusHistory.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def disbursement_confirmed(self) -> bool:
        return self.disbursement_state in (DisbursementState.CONFIRMED.value, DisbursementState.PAID.value)

    @property
    def disbursement_paid(self) -> bool:
        return self.disbursement_state == DisbursementState.PAID.value

    def __repr__(self) -> str:
        return f"<Document id={self.id} mt={self.mt_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_ba_code": self.branch_ba_code,
            "mt_number": self.mt_number,
            "mt_date": to_iso_date(self.mt_date),
            "subject": self.subject,
            "month_year": self.month_year,
            "status": self.status,
            "disbursement_state": self.disbursement_state,
            "disbursement_date": to_iso_date(self.disbursement_date),
            "disbursement_confirmed": self.disbursement_confirmed,
            "disbursement_paid": self.disbursement_paid,
            "send_back_date": to_iso_date(self.send_back_date),
            "deadline_date": to_iso_date(self.deadline_date),
            "received_paper_doc_date": to_iso_date(self.received_paper_doc_date),
            "uploader_id": self.uploader_id,
            "original_filename": self.original_filename,
            "file_size": self.file_size,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Comment(db.Model):
    __tablename__ = "comments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(db.Integer, db.ForeignKey("documents.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "content": self.content,
            "created_at": to_utc_z(self.created_at),
        }


class EmendationFile(db.Model):
    """Correction attached to a document while it is being verified."""
    __tablename__ = "emendation_files"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(db.Integer, db.ForeignKey("documents.id"), nullable=False, index=True)
    original_filename = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(512), nullable=False)
    file_size = db.Column(db.Integer, nullable=True)
    uploaded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "original_filename": self.original_filename,
            "file_size": self.file_size,
            "uploaded_by": self.uploaded_by,
            "created_at": to_utc_z(self.created_at),
        }


class AdditionalFile(db.Model):
    """
    Supplementary attachment for one requested item of a document.

    item_index 0 is the emendation slot by convention.
    """
    __tablename__ = "additional_files"
    __table_args__ = (
        db.UniqueConstraint("document_id", "item_index", name="uq_additional_files_document_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(db.Integer, db.ForeignKey("documents.id"), nullable=False, index=True)
    item_index = db.Column(db.Integer, nullable=False)
    item_name = db.Column(db.String(255), nullable=False)

    original_filename = db.Column(db.String(255), nullable=True)
    file_path = db.Column(db.String(512), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)
    uploaded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    due_date = db.Column(db.Date, nullable=True, index=True)

    # None = not reviewed yet, True = correct, False = needs correction
    is_verified = db.Column(db.Boolean, nullable=True)
    verified_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "item_index": self.item_index,
            "item_name": self.item_name,
            "original_filename": self.original_filename,
            "file_size": self.file_size,
            "due_date": to_iso_date(self.due_date),
            "is_verified": self.is_verified,
            "verified_by": self.verified_by,
            "verified_at": to_utc_z(self.verified_at) if self.verified_at else None,
            "created_at": to_utc_z(self.created_at),
        }


class DocumentStatusHistory(db.Model):
    """One row per primary status change. Append-only."""
    __tablename__ = "document_status_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(db.Integer, db.ForeignKey("documents.id"), nullable=False, index=True)
    from_status = db.Column(db.String(50), nullable=True)
    to_status = db.Column(db.String(50), nullable=False)
    changed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "changed_by": self.changed_by,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
        }
