"""
Bearer sessions: issue, validate, idle/absolute expiry, revocation.
"""

from datetime import timedelta

import pytest

from docflow.extensions import db
from docflow.services import session_service
from docflow.time_utils import utcnow


def test_token_round_trip(branch_user):
    session, token = session_service.create_session(branch_user.id, user_agent="pytest")

    assert session.token_hash == session_service.hash_token(token)
    assert session.token_hash != token

    context = session_service.validate_session(token)
    assert context.user.id == branch_user.id
    assert branch_user.last_login_at is not None


def test_unknown_token(db_session):
    assert session_service.validate_session("not-a-token") is None


def test_inactive_user_cannot_get_session(make_user):
    user = make_user("inactive", is_active=False)
    with pytest.raises(ValueError):
        session_service.create_session(user.id)


def test_expired_session(branch_user):
    session, token = session_service.create_session(branch_user.id)
    session.expires_at = utcnow() - timedelta(minutes=1)
    db.session.commit()

    assert session_service.validate_session(token) is None


def test_idle_session_is_revoked(branch_user):
    session, token = session_service.create_session(branch_user.id)
    session.last_used_at = utcnow() - timedelta(hours=3)
    db.session.commit()

    assert session_service.validate_session(token) is None
    assert session.is_revoked
    assert session.revoked_reason == "Idle timeout"


def test_deactivation_kills_session(branch_user):
    _session, token = session_service.create_session(branch_user.id)
    branch_user.is_active = False
    db.session.commit()

    assert session_service.validate_session(token) is None


def test_revoke_all(branch_user):
    tokens = [session_service.create_session(branch_user.id)[1] for _ in range(2)]

    assert session_service.revoke_all_user_sessions(branch_user.id) == 2
    assert all(session_service.validate_session(t) is None for t in tokens)


def test_revoke_single(branch_user):
    _session, token = session_service.create_session(branch_user.id)
    assert session_service.revoke_session(token) is True
    assert session_service.revoke_session(token) is False


def test_cleanup_removes_old_revoked(branch_user):
    session, token = session_service.create_session(branch_user.id)
    session_service.revoke_session(token)
    session.created_at = utcnow() - timedelta(days=31)
    db.session.commit()

    assert session_service.cleanup_expired_sessions() == 1
