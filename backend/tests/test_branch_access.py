"""
Branch scoping and draft visibility, as predicates and as SQL filters.
"""

from types import SimpleNamespace

import pytest

from docflow.extensions import db
from docflow.models import Document, DocumentStatus
from docflow.permissions import definitions as p
from docflow.services import branch_access
from docflow.services.permission_service import AccessProfile


def profile(*roles, permissions=(), home=None, user_id=1):
    return AccessProfile(
        user_id=user_id,
        username="u",
        roles=frozenset(roles),
        permissions=frozenset(permissions),
        home_branch_code=home,
    )


class TestCanAccessBranch:

    def test_branch_user_home_branch_only(self):
        prof = profile("branch_user", permissions=[p.DOCUMENTS_READ_BRANCH], home=1061)
        assert branch_access.can_access_branch(prof, 1061) is True
        assert branch_access.can_access_branch(prof, 1062) is False

    @pytest.mark.parametrize("role", ["admin", "district_manager", "branch_manager", "uploader"])
    def test_all_branch_roles(self, role):
        prof = profile(role, home=None)
        assert branch_access.can_access_branch(prof, 1061)
        assert branch_access.can_access_branch(prof, 1062)

    def test_read_all_permission_without_role(self):
        prof = profile(permissions=[p.DOCUMENTS_READ_ALL_BRANCHES])
        assert branch_access.can_access_branch(prof, 1062)

    def test_no_home_branch_denied(self):
        prof = profile("branch_user", home=None)
        assert branch_access.can_access_branch(prof, 1061) is False

    def test_no_profile_denied(self):
        assert branch_access.can_access_branch(None, 1061) is False


class TestDraftVisibility:

    def test_draft_hidden_from_branch_user(self):
        prof = profile("branch_user", home=1061)
        draft = SimpleNamespace(branch_ba_code=1061, status="draft")
        sent = SimpleNamespace(branch_ba_code=1061, status="sent")
        assert branch_access.can_view_document(prof, draft) is False
        assert branch_access.can_view_document(prof, sent) is True

    @pytest.mark.parametrize("role", ["uploader", "admin", "district_manager"])
    def test_draft_visible_to_uploader_class(self, role):
        draft = SimpleNamespace(branch_ba_code=1061, status="draft")
        assert branch_access.can_view_document(profile(role), draft) is True

    def test_branch_manager_sees_all_branches_but_no_drafts(self):
        draft = SimpleNamespace(branch_ba_code=1062, status="draft")
        assert branch_access.can_view_document(profile("branch_manager"), draft) is False


class TestQueryFilters:

    @pytest.fixture
    def documents(self, uploader, make_document):
        return {
            "draft_1061": make_document(uploader.id, branch_ba_code=1061),
            "sent_1061": make_document(uploader.id, branch_ba_code=1061, status=DocumentStatus.SENT),
            "sent_1062": make_document(uploader.id, branch_ba_code=1062, status=DocumentStatus.SENT),
        }

    def _visible_ids(self, prof):
        query = branch_access.scope_documents(db.session.query(Document), prof)
        return {d.id for d in query.all()}

    def test_filters_match_predicates(self, documents):
        profiles = [
            profile("branch_user", home=1061),
            profile("uploader", home=105901),
            profile("branch_manager"),
            profile(home=1062),
            profile("user", home=None),
        ]
        for prof in profiles:
            expected = {d.id for d in documents.values() if branch_access.can_view_document(prof, d)}
            assert self._visible_ids(prof) == expected

    def test_branch_user_listing(self, documents):
        ids = self._visible_ids(profile("branch_user", home=1061))
        assert ids == {documents["sent_1061"].id}

    def test_accessible_branches(self, branches):
        assert [b.ba_code for b in branch_access.accessible_branches(profile("branch_user", home=1061))] == [1061]
        assert [b.ba_code for b in branch_access.accessible_branches(profile("admin"))] == [1061, 1062, 105901]
