"""
Pytest fixtures for DocFlow backend tests.

Provides an in-memory database, seeded roles and branches, users per role,
a document factory, and bearer-token helpers for API tests.
"""

from datetime import date

import pytest
from docflow import create_app
from docflow.extensions import db
from docflow.models import Branch, User, Document, DocumentStatus, DisbursementState
from docflow.services import permission_service, session_service, notification_service, storage_service
from docflow.services.storage_service import LocalFileStorage


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DOCFLOW_TIMEZONE': 'Asia/Bangkok',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(autouse=True)
def storage(app, tmp_path):
    """Local storage rooted in a per-test temp dir."""
    store = LocalFileStorage(tmp_path / "uploads")
    app.extensions[storage_service.EXTENSION_KEY] = store
    yield store
    app.extensions.pop(storage_service.EXTENSION_KEY, None)


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def notify(self, event_kind, document, actor):
        self.events.append((event_kind, document.id, getattr(actor, "user_id", None)))


@pytest.fixture
def notifier(app):
    recorder = RecordingNotifier()
    notification_service.set_notifier(app, recorder)
    yield recorder
    app.extensions.pop(notification_service.EXTENSION_KEY, None)


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup default roles and permissions."""
    permission_service.create_default_roles()
    permission_service.initialize_permissions()
    permission_service.assign_default_role_permissions()
    db_session.commit()


@pytest.fixture(scope='function')
def branches(db_session):
    """Two field branches and one district department."""
    rows = [
        Branch(ba_code=1061, name="Branch 1061", region_code="R1"),
        Branch(ba_code=1062, name="Branch 1062", region_code="R1"),
        Branch(ba_code=105901, name="District Finance", region_code="R1"),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return {b.ba_code: b for b in rows}


@pytest.fixture
def make_user(db_session, setup_roles, branches):
    """Factory: make_user("name", role="uploader", ba_code=1061)."""
    def _make(username: str, role: str | None = None, ba_code: int | None = None, is_active: bool = True) -> User:
        user = User(username=username, email=f"{username}@docflow.local", ba_code=ba_code, is_active=is_active)
        db_session.add(user)
        db_session.commit()
        if role:
            permission_service.assign_role(user.id, role)
        return user
    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("admin", role="admin", ba_code=105901)


@pytest.fixture
def uploader(make_user):
    return make_user("uploader", role="uploader", ba_code=105901)


@pytest.fixture
def district_manager(make_user):
    return make_user("district", role="district_manager", ba_code=105901)


@pytest.fixture
def branch_user(make_user):
    """branch_user whose home branch is 1061."""
    return make_user("branch1061", role="branch_user", ba_code=1061)


@pytest.fixture
def viewer(make_user):
    """Plain 'user' role at 1061."""
    return make_user("viewer1061", role="user", ba_code=1061)


@pytest.fixture
def make_document(db_session, branches):
    """Factory inserting a document row directly in the given state."""
    counter = {"n": 0}

    def _make(
        uploader_id: int,
        *,
        branch_ba_code: int = 1061,
        status: DocumentStatus = DocumentStatus.DRAFT,
        disbursement_state: DisbursementState = DisbursementState.UNSET,
        disbursement_date: date | None = None,
        **fields,
    ) -> Document:
        counter["n"] += 1
        document = Document(
            branch_ba_code=branch_ba_code,
            mt_number=f"MT-{counter['n']:04d}",
            mt_date=date(2024, 3, 1),
            subject=f"Disbursement {counter['n']}",
            status=status.value,
            disbursement_state=disbursement_state.value,
            disbursement_date=disbursement_date,
            uploader_id=uploader_id,
            **fields,
        )
        db_session.add(document)
        db_session.commit()
        return document

    return _make


@pytest.fixture
def auth_headers(db_session):
    """Factory: auth_headers(user) issues a session and builds the Authorization header."""
    def _headers(user: User) -> dict:
        _session, token = session_service.create_session(user.id)
        return {"Authorization": f"Bearer {token}"}
    return _headers
