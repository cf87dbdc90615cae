# Overview: Single allow/deny decision for (user, document, action).

"""
Document Access Gate

Composes the resolved AccessProfile with branch scoping and draft hiding,
then checks the static per-action requirement. Evaluation order:

    profile present -> branch access -> draft visibility -> action table

The gate is pure: it never touches the database. Callers resolve the
profile first (permission_service.resolve) and hand in a loaded document.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..errors import (
    AuthenticationRequired,
    BranchAccessDenied,
    DocflowError,
    PermissionDenied,
)
from ..models import DocumentStatus
from ..permissions import DISTRICT_AUTHORITY_ROLES, UPLOADER_CLASS_ROLES
from ..permissions import definitions as p
from . import branch_access

if TYPE_CHECKING:
    from .permission_service import AccessProfile


class DocumentAction(str, Enum):
    VIEW = "view"
    COMMENT = "comment"
    CREATE = "create"
    ATTACH_FILE = "attach_file"
    VERIFY_ADDITIONAL_FILE = "verify_additional_file"

    SUBMIT = "submit"
    ACKNOWLEDGE = "acknowledge"
    COMPLETE_ADDITIONAL_DOCS = "complete_additional_docs"
    COMPLETE_VERIFICATION = "complete_verification"
    MARK_ALL_CHECKED = "mark_all_checked"
    SEND_BACK_TO_DISTRICT = "send_back_to_district"
    RECEIVE_PAPER = "receive_paper"

    SET_DISBURSEMENT_DATE = "set_disbursement_date"
    CONFIRM_DISBURSEMENT = "confirm_disbursement"
    MARK_PAID = "mark_paid"

    DELETE_DRAFT = "delete_draft"


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    BRANCH_DENIED = "branch_denied"
    PERMISSION_DENIED = "permission_denied"
    ROLE_DENIED = "role_denied"


@dataclass(frozen=True)
class Requirement:
    """Any one of the listed permissions, or any one of the listed roles."""
    permissions: frozenset[str] = frozenset()
    roles: frozenset[str] = frozenset()

    def satisfied_by(self, profile: "AccessProfile") -> bool:
        if self.permissions and profile.permissions & self.permissions:
            return True
        if self.roles and profile.roles & self.roles:
            return True
        return False

    @property
    def deny_reason(self) -> DenyReason:
        return DenyReason.PERMISSION_DENIED if self.permissions else DenyReason.ROLE_DENIED


def _perm(*codes: str) -> Requirement:
    return Requirement(permissions=frozenset(codes))


def _role(roles: frozenset[str]) -> Requirement:
    return Requirement(roles=roles)


_UPLOADER_CLASS = _role(UPLOADER_CLASS_ROLES)
_DISTRICT_AUTHORITY = _role(DISTRICT_AUTHORITY_ROLES)

ACTION_REQUIREMENTS: dict[DocumentAction, Requirement] = {
    DocumentAction.VIEW: _perm(p.DOCUMENTS_READ_BRANCH, p.DOCUMENTS_READ_ALL_BRANCHES),
    DocumentAction.COMMENT: _perm(p.COMMENTS_CREATE),
    DocumentAction.CREATE: _perm(p.DOCUMENTS_CREATE),
    DocumentAction.ATTACH_FILE: _UPLOADER_CLASS,
    DocumentAction.VERIFY_ADDITIONAL_FILE: _UPLOADER_CLASS,
    DocumentAction.SUBMIT: _UPLOADER_CLASS,
    DocumentAction.ACKNOWLEDGE: _UPLOADER_CLASS,
    DocumentAction.COMPLETE_ADDITIONAL_DOCS: _UPLOADER_CLASS,
    DocumentAction.COMPLETE_VERIFICATION: _UPLOADER_CLASS,
    DocumentAction.MARK_ALL_CHECKED: _UPLOADER_CLASS,
    DocumentAction.SEND_BACK_TO_DISTRICT: _UPLOADER_CLASS,
    DocumentAction.RECEIVE_PAPER: _DISTRICT_AUTHORITY,
    DocumentAction.SET_DISBURSEMENT_DATE: _DISTRICT_AUTHORITY,
    DocumentAction.CONFIRM_DISBURSEMENT: _DISTRICT_AUTHORITY,
    DocumentAction.MARK_PAID: _DISTRICT_AUTHORITY,
    DocumentAction.DELETE_DRAFT: _UPLOADER_CLASS,
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None
    detail: str | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason, detail: str) -> "Decision":
        return cls(allowed=False, reason=reason, detail=detail)

    def __bool__(self) -> bool:
        return self.allowed

    def to_error(self, document_id: int | None = None) -> DocflowError | None:
        """Typed error for a denial; None when allowed."""
        if self.allowed:
            return None
        ids = [document_id] if document_id is not None else None
        if self.reason == DenyReason.UNAUTHENTICATED:
            return AuthenticationRequired(self.detail)
        if self.reason == DenyReason.BRANCH_DENIED:
            return BranchAccessDenied(self.detail, document_ids=ids, reason=self.reason.value)
        return PermissionDenied(self.detail, document_ids=ids, reason=self.reason.value)


def check_requirement(profile: "AccessProfile", action: DocumentAction) -> Decision:
    """Action-table check alone, without branch or draft scoping."""
    if profile is None:
        return Decision.deny(DenyReason.UNAUTHENTICATED, "Authentication required")
    requirement = ACTION_REQUIREMENTS[DocumentAction(action)]
    if requirement.satisfied_by(profile):
        return Decision.allow()
    return Decision.deny(requirement.deny_reason, f"Not allowed to {DocumentAction(action).value}")


def authorize_branch_action(profile: "AccessProfile", branch_code: int, action: DocumentAction) -> Decision:
    """Gate an action that targets a branch rather than an existing document (create)."""
    if profile is None:
        return Decision.deny(DenyReason.UNAUTHENTICATED, "Authentication required")
    if not branch_access.can_access_branch(profile, branch_code):
        return Decision.deny(DenyReason.BRANCH_DENIED, f"No access to branch {branch_code}")
    return check_requirement(profile, action)


def authorize(profile: "AccessProfile", document, action: DocumentAction) -> Decision:
    """
    Decide whether `profile` may perform `action` on `document`.

    `document` only needs `branch_ba_code` and `status` attributes.
    A draft hidden from the user is reported as ROLE_DENIED.
    """
    if profile is None:
        return Decision.deny(DenyReason.UNAUTHENTICATED, "Authentication required")

    if not branch_access.can_access_branch(profile, document.branch_ba_code):
        return Decision.deny(
            DenyReason.BRANCH_DENIED,
            f"No access to branch {document.branch_ba_code}",
        )

    if document.status == DocumentStatus.DRAFT.value and not branch_access.can_view_drafts(profile):
        return Decision.deny(DenyReason.ROLE_DENIED, "Drafts are visible to uploaders only")

    return check_requirement(profile, action)


def require(profile: "AccessProfile", document, action: DocumentAction) -> None:
    """authorize() that raises the matching DocflowError on denial."""
    decision = authorize(profile, document, action)
    if not decision.allowed:
        raise decision.to_error(getattr(document, "id", None))
