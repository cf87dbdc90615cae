"""
Flask CLI commands: seeding, branches, users and the due-date report.
"""

from datetime import date

from docflow.extensions import db
from docflow.models import Branch, DocumentStatus, User
from docflow.services import permission_service


def test_init_seeds_roles_and_admin(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["docflow", "init", "--admin-username", "root"])

    assert result.exit_code == 0, result.output
    assert "DONE DocFlow initialized" in result.output
    user = db_session.query(User).filter_by(username="root").one()
    assert permission_service.resolve(user.id).has_role("admin")

    again = runner.invoke(args=["docflow", "init"])
    assert again.exit_code == 0
    assert "Roles (0 new)" in again.output


def test_add_branch(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["docflow", "add-branch", "1063", "Branch 1063", "--region", "R2"])

    assert result.exit_code == 0, result.output
    branch = db_session.query(Branch).filter_by(ba_code=1063).one()
    assert branch.region_code == "R2"
    assert branch.is_active


def test_users_create_and_show(app, setup_roles, branches):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "create", "--username", "somchai", "--ba-code", "1061", "--role", "branch_user"])
    assert result.exit_code == 0, result.output

    shown = runner.invoke(args=["users", "show", "somchai"])
    assert "Roles: branch_user" in shown.output
    assert "Home branch: 1061" in shown.output

    duplicate = runner.invoke(args=["users", "create", "--username", "somchai"])
    assert duplicate.exit_code != 0


def test_revoke_role(app, branch_user):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "revoke-role", branch_user.username, "branch_user"])

    assert result.exit_code == 0, result.output
    assert "(none)" in result.output
    assert not permission_service.resolve(branch_user.id).roles


def test_due_dates_report(app, uploader, make_document, notifier, monkeypatch):
    from docflow import cli

    monkeypatch.setattr(cli, "local_today", lambda tz: date(2024, 3, 11))
    document = make_document(
        uploader.id,
        status=DocumentStatus.SENT_BACK_TO_DISTRICT,
        send_back_date=date(2024, 3, 1),
        deadline_date=date(2024, 3, 8),
    )

    result = app.test_cli_runner().invoke(args=["docflow", "due-dates", "--notify"])

    assert result.exit_code == 0, result.output
    assert f"doc {document.id}" in result.output
    assert "overdue" in result.output
    assert "TOTAL 1" in result.output
    assert [(kind.value, doc_id) for kind, doc_id, _ in notifier.events] == [("due_date_reminder", document.id)]


def test_cleanup_sessions(app, db_session):
    result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions"])
    assert result.exit_code == 0
    assert "Deleted 0" in result.output
