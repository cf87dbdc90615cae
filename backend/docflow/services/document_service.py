# Overview: Persistence-backed document workflow; loads rows, runs the core rules, commits, then side effects.

"""
Document Service

Every public function here is a core boundary: it returns a Result and
never raises a DocflowError. Internally the work raises, which rolls back
the open transaction before the error is handed back.

FLOW for a state-changing call:
    1. resolve the actor (permission_service.resolve, never cached)
    2. load and lock the document row(s)
    3. lifecycle_service.plan_transition() for each document
    4. apply every plan, write status history, commit once
    5. after commit: activity log, notification, storage cleanup
       (best-effort; failures become Result.warnings)

Batch operations (set date, confirm, pay) are all-or-nothing. Access
denials win over state problems; otherwise every offending document is
named in one aggregate PreconditionFailed. Nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from ..errors import (
    AuthenticationRequired,
    BranchAccessDenied,
    DocflowError,
    InvalidTransition,
    NotFound,
    PreconditionFailed,
    Result,
    ValidationError,
)
from ..extensions import db
from ..models import (
    AdditionalFile,
    Branch,
    Comment,
    Document,
    DocumentStatus,
    DocumentStatusHistory,
    EmendationFile,
)
from ..time_utils import local_today, utcnow
from ..validation import MAX_COMMENT_LENGTH
from . import (
    activity_service,
    branch_access,
    lifecycle_service,
    notification_service,
    permission_service,
    storage_service,
)
from .access_gate import DocumentAction, authorize_branch_action, check_requirement, require
from .activity_service import RequestMeta
from .concurrency import load_documents_for_update, lock_for_update
from .deadline_service import DueClass, classify_due
from .lifecycle_service import BATCH_ACTIONS, DISBURSEMENT_ROUND_STATUSES, TransitionPlan

T = TypeVar("T")


# Statuses during which emendations and additional files may be attached
ATTACHABLE_STATUSES = frozenset({
    DocumentStatus.SENT.value,
    DocumentStatus.ACKNOWLEDGED.value,
    DocumentStatus.ADDITIONAL_DOCS_COMPLETED.value,
    DocumentStatus.VERIFICATION_COMPLETED.value,
    DocumentStatus.ALL_CHECKED.value,
})

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


@dataclass(frozen=True)
class AttentionItem:
    """A due date the notifier should chase."""
    kind: str  # "paper_return" or "additional_file"
    due_class: DueClass
    due_date: date
    document_id: int
    branch_ba_code: int
    mt_number: str
    item_index: int | None = None
    item_name: str | None = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "due_class": self.due_class.value,
            "due_date": self.due_date.isoformat(),
            "document_id": self.document_id,
            "branch_ba_code": self.branch_ba_code,
            "mt_number": self.mt_number,
            "item_index": self.item_index,
            "item_name": self.item_name,
        }


# =============================================================================
# INTERNAL HELPERS
# =============================================================================

def _run(op: Callable[[], Result[T]]) -> Result[T]:
    """Run op, turning a raised DocflowError into a rolled-back failure Result."""
    try:
        return op()
    except DocflowError as exc:
        db.session.rollback()
        return Result.failure(exc)
    except StaleDataError:
        db.session.rollback()
        return Result.failure(PreconditionFailed("Document was modified by another request; reload and retry"))


def _today(today: date | None) -> date:
    if today is not None:
        return today
    return local_today(current_app.config["DOCFLOW_TIMEZONE"])


def _require_profile(user_id: int | None) -> permission_service.AccessProfile:
    if user_id is None:
        raise AuthenticationRequired("Authentication required")
    profile = permission_service.resolve(user_id)
    if profile is None:
        raise AuthenticationRequired("Unknown or inactive user")
    return profile


def _load_document(document_id: int, *, lock: bool = False) -> Document:
    query = db.session.query(Document).filter(Document.id == document_id)
    if lock:
        query = lock_for_update(query)
    document = query.first()
    if document is None:
        raise NotFound(f"Document {document_id} not found", document_ids=[document_id])
    return document


def _check_upload(file_data: bytes | None, filename: str | None) -> str:
    if not file_data:
        raise ValidationError("A non-empty file is required")
    suffix = storage_service.file_suffix(filename)
    if suffix not in storage_service.ALLOWED_EXTENSIONS:
        raise ValidationError(f"File type {suffix} is not allowed")
    return suffix


def _commit_or_discard(file_path: str | None) -> None:
    """Commit; if the commit fails, delete the file stored for this write and re-raise."""
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        storage_service.remove_quietly(file_path)
        raise


def _record_history(document: Document, plan: TransitionPlan, profile, comment: str | None) -> None:
    db.session.add(DocumentStatusHistory(
        document_id=document.id,
        from_status=plan.from_status,
        to_status=plan.to_status,
        changed_by=profile.user_id,
        comment=comment,
    ))


def _after_transition(plan: TransitionPlan, document: Document | None, branch_code: int, profile, meta) -> list[str]:
    warnings: list[str] = []
    logged = activity_service.log_activity(
        user_id=profile.user_id,
        action=activity_service.DOCUMENT_DELETED if plan.delete else activity_service.DOCUMENT_TRANSITION,
        document_id=plan.document_id,
        branch_ba_code=branch_code,
        details=plan.activity_details(),
        meta=meta,
    )
    if logged is None:
        warnings.append(f"Activity log not written for document {plan.document_id}")

    if plan.notify and document is not None:
        if not notification_service.dispatch_for_action(plan.action, document, profile):
            warnings.append(f"Notification not sent for document {plan.document_id}")
    return warnings


# =============================================================================
# CREATE / READ
# =============================================================================

def create_draft(
    *,
    user_id: int,
    metadata: dict,
    file_data: bytes,
    original_filename: str | None,
    meta: RequestMeta | None = None,
) -> Result[Document]:
    """
    Upload a new document in draft.

    metadata is the output of validation.parse_new_document().
    """
    def _op() -> Result[Document]:
        profile = _require_profile(user_id)
        branch_code = metadata["branch_ba_code"]

        branch = db.session.query(Branch).filter_by(ba_code=branch_code).first()
        if branch is None or not branch.is_active:
            raise NotFound(f"Branch {branch_code} not found")

        decision = authorize_branch_action(profile, branch_code, DocumentAction.CREATE)
        if not decision.allowed:
            raise decision.to_error()

        suffix = _check_upload(file_data, original_filename)
        file_path = storage_service.get_storage().store(file_data, suffix=suffix)

        document = Document(
            branch_ba_code=branch_code,
            mt_number=metadata["mt_number"],
            mt_date=metadata["mt_date"],
            subject=metadata["subject"],
            month_year=metadata.get("month_year"),
            status=DocumentStatus.DRAFT.value,
            uploader_id=profile.user_id,
            original_filename=original_filename,
            file_path=file_path,
            file_size=len(file_data),
        )
        document.status_history.append(DocumentStatusHistory(
            from_status=None,
            to_status=DocumentStatus.DRAFT.value,
            changed_by=profile.user_id,
        ))
        db.session.add(document)
        _commit_or_discard(file_path)

        warnings = []
        if activity_service.log_activity(
            user_id=profile.user_id,
            action=activity_service.DOCUMENT_CREATED,
            document_id=document.id,
            branch_ba_code=branch_code,
            details={"mt_number": document.mt_number},
            meta=meta,
        ) is None:
            warnings.append(f"Activity log not written for document {document.id}")
        return Result.success(document, warnings=warnings)

    return _run(_op)


def get_document(document_id: int, user_id: int) -> Result[Document]:
    def _op() -> Result[Document]:
        profile = _require_profile(user_id)
        document = _load_document(document_id)
        require(profile, document, DocumentAction.VIEW)
        return Result.success(document)

    return _run(_op)


def list_documents(
    user_id: int,
    *,
    branch_code: int | None = None,
    status: str | None = None,
    mt_number: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> Result[tuple[list[Document], int]]:
    """
    Documents the user may see, newest first.

    Branch scoping and draft hiding are applied as SQL filters so counts and
    pages agree with single-document checks.
    """
    def _op() -> Result[tuple[list[Document], int]]:
        profile = _require_profile(user_id)

        decision = check_requirement(profile, DocumentAction.VIEW)
        if not decision.allowed:
            raise decision.to_error()

        if branch_code is not None and not branch_access.can_access_branch(profile, branch_code):
            raise BranchAccessDenied(f"No access to branch {branch_code}")

        if status is not None and status not in {s.value for s in DocumentStatus}:
            raise ValidationError(f"Unknown status: {status}")

        query = branch_access.scope_documents(db.session.query(Document), profile)
        if branch_code is not None:
            query = query.filter(Document.branch_ba_code == branch_code)
        if status is not None:
            query = query.filter(Document.status == status)
        if mt_number:
            query = query.filter(Document.mt_number.ilike(f"%{mt_number}%"))

        total = query.count()
        rows = (
            query.order_by(Document.created_at.desc(), Document.id.desc())
            .offset(max(offset, 0))
            .limit(min(max(limit, 1), MAX_PAGE_SIZE))
            .all()
        )
        return Result.success((rows, total))

    return _run(_op)


def get_status_history(document_id: int, user_id: int) -> Result[list[DocumentStatusHistory]]:
    def _op():
        profile = _require_profile(user_id)
        document = _load_document(document_id)
        require(profile, document, DocumentAction.VIEW)
        return Result.success(list(document.status_history))

    return _run(_op)


def read_document_file(document_id: int, user_id: int) -> Result[tuple[bytes, str]]:
    """Bytes and download name of the main PDF."""
    def _op():
        profile = _require_profile(user_id)
        document = _load_document(document_id)
        require(profile, document, DocumentAction.VIEW)
        if not document.file_path:
            raise NotFound(f"Document {document_id} has no file", document_ids=[document_id])
        try:
            data = storage_service.get_storage().retrieve(document.file_path)
        except storage_service.StorageError as exc:
            current_app.logger.warning("Stored file missing for document %s: %s", document_id, exc)
            raise NotFound(f"File for document {document_id} is missing", document_ids=[document_id])
        return Result.success((data, document.original_filename or f"document-{document_id}.pdf"))

    return _run(_op)


def list_disbursement_round(user_id: int) -> Result[list[Document]]:
    """All-checked and sent-back documents, for the district's confirm/pay screen."""
    def _op():
        profile = _require_profile(user_id)
        decision = check_requirement(profile, DocumentAction.CONFIRM_DISBURSEMENT)
        if not decision.allowed:
            raise decision.to_error()

        rows = (
            db.session.query(Document)
            .filter(Document.status.in_(DISBURSEMENT_ROUND_STATUSES))
            .order_by(Document.disbursement_date.asc(), Document.id.asc())
            .all()
        )
        return Result.success(rows)

    return _run(_op)


# =============================================================================
# LIFECYCLE
# =============================================================================

def apply_action(
    document_id: int,
    action: str | DocumentAction,
    user_id: int,
    *,
    disbursement_date: date | None = None,
    comment: str | None = None,
    meta: RequestMeta | None = None,
    today: date | None = None,
) -> Result[Document | None]:
    """
    Run one lifecycle action on one document.

    Returns the updated document, or None for delete_draft.
    """
    def _op():
        parsed = lifecycle_service.validate_action(action)
        profile = _require_profile(user_id)
        document = _load_document(document_id, lock=True)
        branch_code = document.branch_ba_code

        plan = lifecycle_service.plan_transition(
            document,
            parsed,
            profile,
            today=_today(today),
            disbursement_date=disbursement_date,
        )

        removed_path = None
        if plan.delete:
            removed_path = document.file_path
            db.session.delete(document)
        else:
            lifecycle_service.apply_plan(document, plan)
            if plan.status_changed:
                _record_history(document, plan, profile, comment)
        db.session.commit()

        if plan.delete:
            storage_service.remove_quietly(removed_path)
            return Result.success(None, warnings=_after_transition(plan, None, branch_code, profile, meta))

        return Result.success(document, warnings=_after_transition(plan, document, branch_code, profile, meta))

    return _run(_op)


def apply_batch(
    document_ids: list[int],
    action: str | DocumentAction,
    user_id: int,
    *,
    disbursement_date: date | None = None,
    meta: RequestMeta | None = None,
    today: date | None = None,
) -> Result[list[Document]]:
    """
    Run a disbursement action over many documents, all or nothing.

    Repeated ids are collapsed; each document is changed and logged once.

    Failure precedence:
        unknown ids          -> NotFound naming them
        any access denial    -> that denial
        state/data problems  -> one PreconditionFailed naming every offender
    """
    def _op():
        parsed = lifecycle_service.validate_action(action)
        if parsed not in BATCH_ACTIONS:
            raise ValidationError(f"{parsed.value} cannot run as a batch")
        unique_ids = list(dict.fromkeys(document_ids or []))
        if not unique_ids:
            raise ValidationError("document_ids must be a non-empty list")

        profile = _require_profile(user_id)
        documents = load_documents_for_update(unique_ids)

        missing = [doc_id for doc_id in unique_ids if doc_id not in documents]
        if missing:
            raise NotFound(
                f"{len(missing)} document(s) not found",
                document_ids=missing,
            )

        run_today = _today(today)
        plans: list[tuple[Document, TransitionPlan]] = []
        failures: list[dict] = []

        for doc_id in unique_ids:
            document = documents[doc_id]
            try:
                plan = lifecycle_service.plan_transition(
                    document,
                    parsed,
                    profile,
                    today=run_today,
                    disbursement_date=disbursement_date,
                )
            except (InvalidTransition, PreconditionFailed) as exc:
                failures.append({"document_id": doc_id, "kind": exc.kind.value, "error": exc.detail})
                continue
            plans.append((document, plan))

        if failures:
            raise PreconditionFailed(
                f"{len(failures)} of {len(unique_ids)} document(s) cannot {parsed.value}; nothing was changed",
                document_ids=[item["document_id"] for item in failures],
                failures=failures,
            )

        for document, plan in plans:
            lifecycle_service.apply_plan(document, plan)
        db.session.commit()

        warnings: list[str] = []
        for document, plan in plans:
            warnings.extend(_after_transition(plan, document, document.branch_ba_code, profile, meta))
        return Result.success([document for document, _plan in plans], warnings=warnings)

    return _run(_op)


def set_disbursement_date(document_ids, disbursement_date, user_id, **kwargs) -> Result[list[Document]]:
    return apply_batch(
        document_ids,
        DocumentAction.SET_DISBURSEMENT_DATE,
        user_id,
        disbursement_date=disbursement_date,
        **kwargs,
    )


def confirm_disbursement(document_ids, user_id, **kwargs) -> Result[list[Document]]:
    return apply_batch(document_ids, DocumentAction.CONFIRM_DISBURSEMENT, user_id, **kwargs)


def mark_paid(document_ids, user_id, **kwargs) -> Result[list[Document]]:
    return apply_batch(document_ids, DocumentAction.MARK_PAID, user_id, **kwargs)


def receive_paper(document_id: int, user_id: int, **kwargs) -> Result[Document]:
    return apply_action(document_id, DocumentAction.RECEIVE_PAPER, user_id, **kwargs)


def delete_draft(document_id: int, user_id: int, **kwargs) -> Result[None]:
    return apply_action(document_id, DocumentAction.DELETE_DRAFT, user_id, **kwargs)


# =============================================================================
# COMMENTS
# =============================================================================

def add_comment(document_id: int, user_id: int, content: str, *, meta: RequestMeta | None = None) -> Result[Comment]:
    def _op():
        profile = _require_profile(user_id)
        document = _load_document(document_id)
        require(profile, document, DocumentAction.COMMENT)

        text = (content or "").strip()
        if not text:
            raise ValidationError("content is required")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"content must be at most {MAX_COMMENT_LENGTH} characters")

        item = Comment(document_id=document.id, user_id=profile.user_id, content=text)
        db.session.add(item)
        db.session.commit()

        activity_service.log_activity(
            user_id=profile.user_id,
            action=activity_service.COMMENT_ADDED,
            document_id=document.id,
            branch_ba_code=document.branch_ba_code,
            details={"comment_id": item.id},
            meta=meta,
        )
        return Result.success(item)

    return _run(_op)


def list_comments(document_id: int, user_id: int) -> Result[list[Comment]]:
    def _op():
        profile = _require_profile(user_id)
        document = _load_document(document_id)
        require(profile, document, DocumentAction.VIEW)
        return Result.success(list(document.comments))

    return _run(_op)


# =============================================================================
# ATTACHMENTS
# =============================================================================

def _require_attachable(document: Document) -> None:
    if document.status not in ATTACHABLE_STATUSES:
        raise InvalidTransition(
            f"Cannot attach files to document {document.id} in status '{document.status}'",
            document_ids=[document.id],
            current_state=document.status,
            requested=DocumentAction.ATTACH_FILE.value,
        )


def attach_emendation(
    document_id: int,
    user_id: int,
    *,
    file_data: bytes,
    original_filename: str,
    meta: RequestMeta | None = None,
) -> Result[EmendationFile]:
    def _op():
        profile = _require_profile(user_id)
        document = _load_document(document_id, lock=True)
        require(profile, document, DocumentAction.ATTACH_FILE)
        _require_attachable(document)
        suffix = _check_upload(file_data, original_filename)

        file_path = storage_service.get_storage().store(file_data, suffix=suffix)
        item = EmendationFile(
            document_id=document.id,
            original_filename=original_filename,
            file_path=file_path,
            file_size=len(file_data),
            uploaded_by=profile.user_id,
        )
        db.session.add(item)
        _commit_or_discard(file_path)

        activity_service.log_activity(
            user_id=profile.user_id,
            action=activity_service.FILE_ATTACHED,
            document_id=document.id,
            branch_ba_code=document.branch_ba_code,
            details={"kind": "emendation", "emendation_file_id": item.id},
            meta=meta,
        )
        return Result.success(item)

    return _run(_op)


def attach_additional_file(
    document_id: int,
    user_id: int,
    *,
    item_index: int,
    item_name: str,
    file_data: bytes,
    original_filename: str,
    due_date: date | None = None,
    meta: RequestMeta | None = None,
) -> Result[AdditionalFile]:
    """
    Upload (or replace) the file for one requested item.

    Replacing a file clears its verification verdict.
    """
    def _op():
        profile = _require_profile(user_id)
        document = _load_document(document_id, lock=True)
        require(profile, document, DocumentAction.ATTACH_FILE)
        _require_attachable(document)

        if item_index < 0:
            raise ValidationError("item_index must be >= 0")
        name = (item_name or "").strip()
        if not name:
            raise ValidationError("item_name is required")
        suffix = _check_upload(file_data, original_filename)

        item = (
            db.session.query(AdditionalFile)
            .filter_by(document_id=document.id, item_index=item_index)
            .first()
        )
        replaced_path = item.file_path if item else None
        if item is None:
            item = AdditionalFile(document_id=document.id, item_index=item_index)
            db.session.add(item)

        file_path = storage_service.get_storage().store(file_data, suffix=suffix)
        item.item_name = name
        item.file_path = file_path
        item.original_filename = original_filename
        item.file_size = len(file_data)
        item.uploaded_by = profile.user_id
        if due_date is not None:
            item.due_date = due_date
        item.is_verified = None
        item.verified_by = None
        item.verified_at = None
        _commit_or_discard(file_path)

        storage_service.remove_quietly(replaced_path)
        activity_service.log_activity(
            user_id=profile.user_id,
            action=activity_service.FILE_ATTACHED,
            document_id=document.id,
            branch_ba_code=document.branch_ba_code,
            details={"kind": "additional", "item_index": item_index, "replaced": replaced_path is not None},
            meta=meta,
        )
        return Result.success(item)

    return _run(_op)


def verify_additional_file(
    document_id: int,
    item_index: int,
    user_id: int,
    *,
    is_verified: bool,
    meta: RequestMeta | None = None,
) -> Result[AdditionalFile]:
    def _op():
        profile = _require_profile(user_id)
        document = _load_document(document_id, lock=True)
        require(profile, document, DocumentAction.VERIFY_ADDITIONAL_FILE)

        item = (
            db.session.query(AdditionalFile)
            .filter_by(document_id=document.id, item_index=item_index)
            .first()
        )
        if item is None:
            raise NotFound(f"Item {item_index} not found on document {document_id}", document_ids=[document_id])
        if not item.file_path:
            raise PreconditionFailed(
                f"Item {item_index} of document {document_id} has no uploaded file",
                document_ids=[document_id],
            )

        item.is_verified = bool(is_verified)
        item.verified_by = profile.user_id
        item.verified_at = utcnow()
        db.session.commit()

        activity_service.log_activity(
            user_id=profile.user_id,
            action=activity_service.ADDITIONAL_FILE_VERIFIED,
            document_id=document.id,
            branch_ba_code=document.branch_ba_code,
            details={"item_index": item_index, "is_verified": item.is_verified},
            meta=meta,
        )
        return Result.success(item)

    return _run(_op)


# =============================================================================
# DUE DATES
# =============================================================================

def documents_needing_attention(today: date | None = None, soon_days: int | None = None) -> list[AttentionItem]:
    """
    Overdue, due-today and due-soon items for the reminder job.

    Covers paper returns (deadline_date of sent-back documents still missing
    their original) and unverified additional files with a due date.
    System-level: no actor, no access filtering.
    """
    run_today = _today(today)
    if soon_days is None:
        soon_days = current_app.config.get("DOCFLOW_DUE_SOON_DAYS", 3)
    horizon = run_today + timedelta(days=soon_days)

    items: list[AttentionItem] = []

    paper_rows = (
        db.session.query(Document)
        .filter(
            Document.status == DocumentStatus.SENT_BACK_TO_DISTRICT.value,
            Document.received_paper_doc_date.is_(None),
            Document.deadline_date.isnot(None),
            Document.deadline_date <= horizon,
        )
        .all()
    )
    for document in paper_rows:
        due_class = classify_due(document.deadline_date, run_today, soon_days)
        if due_class is None:
            continue
        items.append(AttentionItem(
            kind="paper_return",
            due_class=due_class,
            due_date=document.deadline_date,
            document_id=document.id,
            branch_ba_code=document.branch_ba_code,
            mt_number=document.mt_number,
        ))

    file_rows = (
        db.session.query(AdditionalFile, Document)
        .join(Document, Document.id == AdditionalFile.document_id)
        .filter(
            AdditionalFile.due_date.isnot(None),
            AdditionalFile.due_date <= horizon,
            db.or_(AdditionalFile.is_verified.is_(None), AdditionalFile.is_verified.is_(False)),
            Document.status.in_(ATTACHABLE_STATUSES),
        )
        .all()
    )
    for item, document in file_rows:
        due_class = classify_due(item.due_date, run_today, soon_days)
        if due_class is None:
            continue
        items.append(AttentionItem(
            kind="additional_file",
            due_class=due_class,
            due_date=item.due_date,
            document_id=document.id,
            branch_ba_code=document.branch_ba_code,
            mt_number=document.mt_number,
            item_index=item.item_index,
            item_name=item.item_name,
        ))

    items.sort(key=lambda entry: (entry.due_date, entry.document_id, entry.item_index or 0))
    return items
