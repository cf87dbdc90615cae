# Overview: Branch scoping and draft visibility, as predicates and as query filters.

"""
Branch Access Evaluator

Every listing path and every single-document check goes through this
module, so the two views (Python predicate and SQL filter) must agree.

can_access_branch() rules, first match wins:
1. documents:read_all_branches permission, or an all-branch role
   (admin / district_manager / branch_manager)
2. uploader role
3. the user's home branch equals the requested branch
4. deny

Draft hiding is a separate rule: only uploader-class roles see drafts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import false, true

from ..extensions import db
from ..models import Branch, Document, DocumentStatus
from ..permissions import ALL_BRANCH_ROLES, UPLOADER_CLASS_ROLES
from ..permissions.definitions import DOCUMENTS_READ_ALL_BRANCHES
from ..permissions.roles import UPLOADER

if TYPE_CHECKING:
    from .permission_service import AccessProfile


def has_all_branch_scope(profile: "AccessProfile") -> bool:
    """Rules 1 and 2: the user is not limited to a home branch."""
    if profile.has_permission(DOCUMENTS_READ_ALL_BRANCHES):
        return True
    if profile.roles & ALL_BRANCH_ROLES:
        return True
    return profile.has_role(UPLOADER)


def can_access_branch(profile: "AccessProfile", branch_code: int | None) -> bool:
    if profile is None:
        return False
    if has_all_branch_scope(profile):
        return True
    if branch_code is None or profile.home_branch_code is None:
        return False
    return profile.home_branch_code == branch_code


def can_view_drafts(profile: "AccessProfile") -> bool:
    if profile is None:
        return False
    return profile.has_role(*UPLOADER_CLASS_ROLES)


def can_view_document(profile: "AccessProfile", document) -> bool:
    """Branch scope and draft hiding combined, for a single loaded document."""
    if not can_access_branch(profile, document.branch_ba_code):
        return False
    if document.status == DocumentStatus.DRAFT.value:
        return can_view_drafts(profile)
    return True


# =============================================================================
# QUERY FILTERS
# =============================================================================

def branch_scope_filter(profile: "AccessProfile"):
    """SQL criterion restricting Document rows to branches the user may access."""
    if profile is None:
        return false()
    if has_all_branch_scope(profile):
        return true()
    if profile.home_branch_code is None:
        return false()
    return Document.branch_ba_code == profile.home_branch_code


def draft_visibility_filter(profile: "AccessProfile"):
    """SQL criterion hiding drafts from users outside the uploader class."""
    if can_view_drafts(profile):
        return true()
    return Document.status != DocumentStatus.DRAFT.value


def scope_documents(query, profile: "AccessProfile"):
    """Apply both filters to a Document query."""
    return query.filter(branch_scope_filter(profile)).filter(draft_visibility_filter(profile))


def accessible_branches(profile: "AccessProfile") -> list[Branch]:
    """Active branches the user can open, ordered by code."""
    if profile is None:
        return []
    query = db.session.query(Branch).filter(Branch.is_active.is_(True))
    if not has_all_branch_scope(profile):
        if profile.home_branch_code is None:
            return []
        query = query.filter(Branch.ba_code == profile.home_branch_code)
    return query.order_by(Branch.ba_code.asc()).all()
