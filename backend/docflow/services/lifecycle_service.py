# Overview: Document state machine; decides the field changes of one action on one document.

"""
DocFlow Document Lifecycle

================================================================================
PURPOSE: Decide whether an action is legal for a document and what it changes
================================================================================

PRIMARY STATE MACHINE:
    draft -> sent -> acknowledged -> additional_docs_completed
          -> verification_completed -> all_checked
          -> sent_back_to_district -> received (terminal)

DISBURSEMENT SUB-STATE (meaningful from all_checked on):
    unset -> date_set -> confirmed -> paid

RULES:
1. Forward only, one step at a time. No action moves a document backwards.
2. confirmed implies a disbursement date; paid implies confirmed. The
   sub-state is a single column so the flags cannot disagree.
3. received_paper_doc_date is stamped once, only out of sent_back_to_district.
4. Drafts are deleted outright; nothing out of draft is ever deleted.

CHECK ORDER for every action:
    1. access gate (branch, draft visibility, action table)
    2. current state permits the action      -> InvalidTransition
    3. action-specific data preconditions    -> PreconditionFailed

plan_transition() is pure: it reads the document and returns a
TransitionPlan; apply_plan() writes the plan onto the object. The
persistence-backed flow lives in document_service.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from ..errors import DocflowError, InvalidTransition, PermissionDenied, PreconditionFailed, Result, ValidationError
from ..models import DisbursementState, DocumentStatus
from ..permissions.roles import ADMIN
from .access_gate import DocumentAction, require
from .deadline_service import compute_return_window

if TYPE_CHECKING:
    from .permission_service import AccessProfile


# Primary-status actions: action -> (required status, resulting status)
STATUS_TRANSITIONS: dict[DocumentAction, tuple[DocumentStatus, DocumentStatus]] = {
    DocumentAction.SUBMIT: (DocumentStatus.DRAFT, DocumentStatus.SENT),
    DocumentAction.ACKNOWLEDGE: (DocumentStatus.SENT, DocumentStatus.ACKNOWLEDGED),
    DocumentAction.COMPLETE_ADDITIONAL_DOCS: (
        DocumentStatus.ACKNOWLEDGED,
        DocumentStatus.ADDITIONAL_DOCS_COMPLETED,
    ),
    DocumentAction.COMPLETE_VERIFICATION: (
        DocumentStatus.ADDITIONAL_DOCS_COMPLETED,
        DocumentStatus.VERIFICATION_COMPLETED,
    ),
    DocumentAction.MARK_ALL_CHECKED: (DocumentStatus.VERIFICATION_COMPLETED, DocumentStatus.ALL_CHECKED),
    DocumentAction.SEND_BACK_TO_DISTRICT: (DocumentStatus.ALL_CHECKED, DocumentStatus.SENT_BACK_TO_DISTRICT),
    DocumentAction.RECEIVE_PAPER: (DocumentStatus.SENT_BACK_TO_DISTRICT, DocumentStatus.RECEIVED),
}

DISBURSEMENT_ACTIONS = frozenset({
    DocumentAction.SET_DISBURSEMENT_DATE,
    DocumentAction.CONFIRM_DISBURSEMENT,
    DocumentAction.MARK_PAID,
})

# Actions that may run over many documents in one all-or-nothing request
BATCH_ACTIONS = DISBURSEMENT_ACTIONS

LIFECYCLE_ACTIONS = frozenset(STATUS_TRANSITIONS) | DISBURSEMENT_ACTIONS | {DocumentAction.DELETE_DRAFT}

# Primary-status changes that the district or branch should hear about
NOTIFY_ACTIONS = frozenset({
    DocumentAction.SUBMIT,
    DocumentAction.ACKNOWLEDGE,
    DocumentAction.COMPLETE_ADDITIONAL_DOCS,
    DocumentAction.COMPLETE_VERIFICATION,
    DocumentAction.SEND_BACK_TO_DISTRICT,
})

# Statuses in which confirm / mark-paid may run: all_checked and everything after it
DISBURSEMENT_ROUND_STATUSES = frozenset({
    DocumentStatus.ALL_CHECKED.value,
    DocumentStatus.SENT_BACK_TO_DISTRICT.value,
    DocumentStatus.RECEIVED.value,
})

# Statuses in which the disbursement date may be (re)set
DATE_SETTABLE_STATES = frozenset({
    DisbursementState.UNSET.value,
    DisbursementState.DATE_SET.value,
})


@dataclass
class TransitionPlan:
    """Field changes one action makes to one document."""
    document_id: int | None
    action: DocumentAction
    from_status: str
    to_status: str
    changes: dict[str, Any] = field(default_factory=dict)
    delete: bool = False

    @property
    def status_changed(self) -> bool:
        return self.from_status != self.to_status

    @property
    def notify(self) -> bool:
        return self.action in NOTIFY_ACTIONS

    def activity_details(self) -> dict:
        details: dict[str, Any] = {"action": self.action.value}
        if self.status_changed:
            details["from_status"] = self.from_status
            details["to_status"] = self.to_status
        for key, value in self.changes.items():
            if key == "status":
                continue
            details[key] = value.isoformat() if isinstance(value, date) else value
        return details


def validate_action(action: str | DocumentAction) -> DocumentAction:
    """Coerce to a lifecycle DocumentAction or raise ValidationError."""
    try:
        parsed = DocumentAction(action)
    except ValueError:
        raise ValidationError(f"Unknown action: {action}")
    if parsed not in LIFECYCLE_ACTIONS:
        raise ValidationError(f"'{parsed.value}' is not a lifecycle action")
    return parsed


def _invalid(document, action: DocumentAction, current_state: str) -> InvalidTransition:
    return InvalidTransition(
        f"Cannot {action.value} document {document.id}: current state is '{current_state}'",
        document_ids=[document.id] if document.id is not None else None,
        current_state=current_state,
        requested=action.value,
    )


def _precondition(document, message: str) -> PreconditionFailed:
    return PreconditionFailed(message, document_ids=[document.id] if document.id is not None else None)


def _plan_status_action(document, action: DocumentAction, *, today: date) -> TransitionPlan:
    required, target = STATUS_TRANSITIONS[action]

    if action == DocumentAction.RECEIVE_PAPER and (
        document.received_paper_doc_date is not None or document.status == DocumentStatus.RECEIVED.value
    ):
        raise _precondition(document, f"Original paper for document {document.id} was already received")

    if document.status != required.value:
        raise _invalid(document, action, document.status)

    plan = TransitionPlan(
        document_id=document.id,
        action=action,
        from_status=document.status,
        to_status=target.value,
        changes={"status": target.value},
    )

    if action == DocumentAction.SEND_BACK_TO_DISTRICT:
        window = compute_return_window(today)
        plan.changes["send_back_date"] = window.send_back_date
        plan.changes["deadline_date"] = window.deadline_date
    elif action == DocumentAction.RECEIVE_PAPER:
        plan.changes["received_paper_doc_date"] = today

    return plan


def _plan_disbursement_action(document, action: DocumentAction, *, disbursement_date: date | None) -> TransitionPlan:
    state = document.disbursement_state

    if action == DocumentAction.SET_DISBURSEMENT_DATE:
        if document.status != DocumentStatus.ALL_CHECKED.value:
            raise _invalid(document, action, document.status)
        if state not in DATE_SETTABLE_STATES:
            raise _invalid(document, action, state)
        if disbursement_date is None:
            raise _precondition(document, "A disbursement date is required")
        changes = {
            "disbursement_date": disbursement_date,
            "disbursement_state": DisbursementState.DATE_SET.value,
        }

    elif action == DocumentAction.CONFIRM_DISBURSEMENT:
        if document.status not in DISBURSEMENT_ROUND_STATUSES:
            raise _invalid(document, action, document.status)
        if state in (DisbursementState.CONFIRMED.value, DisbursementState.PAID.value):
            raise _invalid(document, action, state)
        if state == DisbursementState.UNSET.value or document.disbursement_date is None:
            raise _precondition(document, f"Document {document.id} has no disbursement date")
        changes = {"disbursement_state": DisbursementState.CONFIRMED.value}

    else:
        if document.status not in DISBURSEMENT_ROUND_STATUSES:
            raise _invalid(document, action, document.status)
        if state == DisbursementState.PAID.value:
            raise _invalid(document, action, state)
        if state != DisbursementState.CONFIRMED.value:
            raise _precondition(document, f"Disbursement of document {document.id} is not confirmed")
        changes = {"disbursement_state": DisbursementState.PAID.value}

    return TransitionPlan(
        document_id=document.id,
        action=action,
        from_status=document.status,
        to_status=document.status,
        changes=changes,
    )


def _plan_delete_draft(document, profile: "AccessProfile") -> TransitionPlan:
    if document.status != DocumentStatus.DRAFT.value:
        raise _invalid(document, DocumentAction.DELETE_DRAFT, document.status)
    if document.uploader_id != profile.user_id and not profile.has_role(ADMIN):
        raise PermissionDenied(
            "Only the uploader or an administrator can delete a draft",
            document_ids=[document.id],
        )
    return TransitionPlan(
        document_id=document.id,
        action=DocumentAction.DELETE_DRAFT,
        from_status=document.status,
        to_status=document.status,
        delete=True,
    )


def plan_transition(
    document,
    action: str | DocumentAction,
    profile: "AccessProfile",
    *,
    today: date,
    disbursement_date: date | None = None,
) -> TransitionPlan:
    """
    Validate `action` on `document` for `profile` and return the changes.

    Args:
        document: Loaded document (only attributes are read)
        action: Lifecycle action name
        profile: Resolved AccessProfile of the actor
        today: Calendar date in the organization time zone
        disbursement_date: Required by set_disbursement_date only

    Raises:
        AuthenticationRequired / PermissionDenied / BranchAccessDenied
        InvalidTransition: The current state does not permit the action
        PreconditionFailed: State permits it but the data does not
        ValidationError: Unknown or non-lifecycle action
    """
    action = validate_action(action)

    require(profile, document, action)

    if action in STATUS_TRANSITIONS:
        return _plan_status_action(document, action, today=today)
    if action in DISBURSEMENT_ACTIONS:
        return _plan_disbursement_action(document, action, disbursement_date=disbursement_date)
    return _plan_delete_draft(document, profile)


def transition(
    document,
    action: str | DocumentAction,
    profile: "AccessProfile",
    *,
    today: date,
    disbursement_date: date | None = None,
) -> Result[TransitionPlan]:
    """plan_transition() with failures returned as a Result instead of raised."""
    try:
        return Result.success(
            plan_transition(document, action, profile, today=today, disbursement_date=disbursement_date)
        )
    except DocflowError as exc:
        return Result.failure(exc)


def apply_plan(document, plan: TransitionPlan) -> None:
    """Write the planned field changes onto the document (no commit)."""
    for attr, value in plan.changes.items():
        setattr(document, attr, value)


def disbursement_invariants_hold(document) -> bool:
    """paid => confirmed => dated, and paper receipt only after send-back."""
    state = document.disbursement_state
    if state != DisbursementState.UNSET.value and document.disbursement_date is None:
        return False
    if document.received_paper_doc_date is not None and document.status != DocumentStatus.RECEIVED.value:
        return False
    return state in {s.value for s in DisbursementState}
