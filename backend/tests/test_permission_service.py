"""
Role-permission resolution against the database.

Verifies:
- Permissions are the union over all assigned roles
- Zero roles resolve to empty sets, unknown/inactive users to None
- Revocations are visible on the very next resolve()
"""

import pytest

from docflow.errors import NotFound
from docflow.models import ActivityLog
from docflow.permissions import definitions as p
from docflow.services import permission_service


def test_resolve_branch_user(branch_user):
    profile = permission_service.resolve(branch_user.id)

    assert profile.roles == frozenset({"branch_user"})
    assert p.DOCUMENTS_READ_BRANCH in profile.permissions
    assert p.COMMENTS_CREATE in profile.permissions
    assert p.DOCUMENTS_READ_ALL_BRANCHES not in profile.permissions
    assert profile.home_branch_code == 1061


def test_permissions_are_union_of_roles(make_user):
    user = make_user("both", role="user", ba_code=1061)
    permission_service.assign_role(user.id, "uploader")

    profile = permission_service.resolve(user.id)
    assert profile.roles == frozenset({"user", "uploader"})
    assert p.DOCUMENTS_CREATE in profile.permissions
    assert p.DOCUMENTS_READ_BRANCH in profile.permissions


def test_user_without_roles_resolves_empty(make_user):
    user = make_user("nobody", ba_code=1061)
    profile = permission_service.resolve(user.id)

    assert profile is not None
    assert profile.roles == frozenset()
    assert profile.permissions == frozenset()


def test_unknown_user_resolves_none(db_session):
    assert permission_service.resolve(999_999) is None


def test_inactive_user_resolves_none(make_user):
    user = make_user("gone", role="admin", is_active=False)
    assert permission_service.resolve(user.id) is None


def test_revocation_is_immediate(make_user):
    user = make_user("temp", role="uploader")
    assert permission_service.resolve(user.id).has_role("uploader")

    assert permission_service.revoke_role(user.id, "uploader") is True

    profile = permission_service.resolve(user.id)
    assert not profile.has_role("uploader")
    assert profile.permissions == frozenset()


def test_revoking_missing_role_returns_false(branch_user):
    assert permission_service.revoke_role(branch_user.id, "admin") is False


def test_assign_role_idempotent(branch_user):
    first = permission_service.assign_role(branch_user.id, "branch_user")
    second = permission_service.assign_role(branch_user.id, "branch_user")
    assert first.id == second.id


def test_assign_unknown_role(branch_user):
    with pytest.raises(NotFound):
        permission_service.assign_role(branch_user.id, "superuser")


def test_role_changes_are_audited(db_session, admin_user, make_user):
    user = make_user("audited", ba_code=1061)
    permission_service.assign_role(user.id, "branch_user", assigned_by_user_id=admin_user.id)
    permission_service.revoke_role(user.id, "branch_user", revoked_by_user_id=admin_user.id)

    actions = [row.action for row in db_session.query(ActivityLog).filter_by(user_id=admin_user.id)]
    assert "role_assigned" in actions
    assert "role_revoked" in actions


def test_permission_grant_reflected_immediately(viewer):
    assert not permission_service.user_has_permission(viewer.id, p.COMMENTS_CREATE)

    permission_service.grant_permission_to_role("user", p.COMMENTS_CREATE)
    assert permission_service.user_has_permission(viewer.id, p.COMMENTS_CREATE)

    permission_service.revoke_permission_from_role("user", p.COMMENTS_CREATE)
    assert not permission_service.user_has_permission(viewer.id, p.COMMENTS_CREATE)


def test_seeding_is_idempotent(setup_roles):
    assert permission_service.create_default_roles() == 0
    assert permission_service.initialize_permissions() == 0
    assert permission_service.assign_default_role_permissions() == 0
