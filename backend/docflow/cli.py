# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/docflow/cli.py
# Commands Legend (run from the repository root):
# Prereqs:
# - Set FLASK_APP=docflow (PowerShell: $env:FLASK_APP="docflow").
# - Use: python -m flask <group> <command> [options]
#
# Bootstrap:
# - python -m flask docflow init [--admin-username admin]
#   Idempotent: creates tables, roles, permissions and default grants.
# - python -m flask docflow add-branch 1061 "Branch 1061" [--region R1]
#   Create or update a branch / district department.
#
# Due dates:
# - python -m flask docflow due-dates [--soon-days 3] [--notify]
#   List overdue / due-today / due-soon paper returns and additional files.
#
# Users:
# - python -m flask users create --username jdoe --ba-code 1061 --role branch_user
# - python -m flask users assign-role jdoe uploader
# - python -m flask users revoke-role jdoe uploader
# - python -m flask users show jdoe
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch, Role, User, Document
from .errors import DocflowError
from .services import document_service, notification_service, permission_service, session_service
from .services.notification_service import EventKind
from .time_utils import local_today


@click.group('docflow')
def docflow_group():
    """Bootstrap and workflow maintenance commands."""


@docflow_group.command('init')
@click.option('--admin-username', default=None, help='Create this user (if missing) with the admin role')
@with_appcontext
def init_system(admin_username):
    """
    Initialize DocFlow: tables, roles, permissions and default grants.

    Safe to run repeatedly.
    """
    click.echo("START Initializing DocFlow...")

    db.create_all()

    role_count = permission_service.create_default_roles()
    roles = db.session.query(Role).order_by(Role.name).all()
    click.echo(f"PASS Roles ({role_count} new): {', '.join(r.name for r in roles)}")

    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role grants")

    if admin_username:
        user = db.session.query(User).filter_by(username=admin_username).first()
        if user is None:
            user = User(username=admin_username, is_active=True)
            db.session.add(user)
            db.session.commit()
            click.echo(f"PASS Created user '{admin_username}'")
        permission_service.assign_role(user.id, "admin")
        click.echo(f"PASS '{admin_username}' has role 'admin'")

    click.echo("DONE DocFlow initialized")


@docflow_group.command('add-branch')
@click.argument('ba_code', type=int)
@click.argument('name')
@click.option('--region', 'region_code', default=None, help='Region code')
@click.option('--inactive', is_flag=True, help='Create or mark the branch inactive')
@with_appcontext
def add_branch(ba_code, name, region_code, inactive):
    """Create or update a branch by BA code."""
    branch = db.session.query(Branch).filter_by(ba_code=ba_code).first()
    created = branch is None
    if created:
        branch = Branch(ba_code=ba_code)
        db.session.add(branch)

    branch.name = name
    branch.region_code = region_code
    branch.is_active = not inactive
    db.session.commit()

    kind = "district department" if branch.is_district_department else "branch"
    click.echo(f"PASS {'Created' if created else 'Updated'} {kind} {ba_code}: {name}")


@docflow_group.command('due-dates')
@click.option('--soon-days', type=int, default=None, help='Horizon for "due soon" (default from config)')
@click.option('--notify', is_flag=True, help='Send a reminder notification per item')
@with_appcontext
def due_dates(soon_days, notify):
    """List items that are overdue, due today, or due soon."""
    today = local_today(current_app.config["DOCFLOW_TIMEZONE"])
    items = document_service.documents_needing_attention(today=today, soon_days=soon_days)

    if not items:
        click.echo(f"No due items as of {today.isoformat()}")
        return

    click.echo(f"Due items as of {today.isoformat()}:")
    for item in items:
        label = f"item {item.item_index} ({item.item_name})" if item.kind == "additional_file" else "paper return"
        click.echo(
            f"  [{item.due_class.value:>7}] {item.due_date.isoformat()} "
            f"doc {item.document_id} MT {item.mt_number} branch {item.branch_ba_code} - {label}"
        )
        if notify:
            document = db.session.get(Document, item.document_id)
            notification_service.dispatch(EventKind.DUE_DATE_REMINDER, document, None)

    click.echo(f"TOTAL {len(items)}")


@click.group('users')
def users_group():
    """User and role assignment commands."""


def _get_user_or_fail(username: str) -> User:
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")
    return user


@users_group.command('create')
@click.option('--username', required=True)
@click.option('--ba-code', type=int, default=None, help='Home branch')
@click.option('--role', 'role_name', default=None, help='Initial role')
@click.option('--email', default=None)
@with_appcontext
def create_user(username, ba_code, role_name, email):
    """Register a user known to the identity provider."""
    if db.session.query(User).filter_by(username=username).first():
        raise click.ClickException(f"User '{username}' already exists")

    user = User(username=username, ba_code=ba_code, email=email, is_active=True)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user '{username}' (ID: {user.id})")

    if role_name:
        try:
            permission_service.assign_role(user.id, role_name)
        except DocflowError as e:
            raise click.ClickException(e.detail)
        click.echo(f"PASS Assigned role '{role_name}'")


@users_group.command('assign-role')
@click.argument('username')
@click.argument('role_name')
@with_appcontext
def assign_role(username, role_name):
    user = _get_user_or_fail(username)
    try:
        permission_service.assign_role(user.id, role_name)
    except DocflowError as e:
        raise click.ClickException(e.detail)
    click.echo(f"PASS {username} roles: {', '.join(permission_service.get_user_role_names(user.id))}")


@users_group.command('revoke-role')
@click.argument('username')
@click.argument('role_name')
@with_appcontext
def revoke_role(username, role_name):
    user = _get_user_or_fail(username)
    try:
        removed = permission_service.revoke_role(user.id, role_name)
    except DocflowError as e:
        raise click.ClickException(e.detail)
    if not removed:
        click.echo(f"WARN {username} did not have role '{role_name}'")
    roles = permission_service.get_user_role_names(user.id)
    click.echo(f"PASS {username} roles: {', '.join(roles) or '(none)'}")


@users_group.command('show')
@click.argument('username')
@with_appcontext
def show_user(username):
    """Print resolved roles and permissions for a user."""
    user = _get_user_or_fail(username)
    profile = permission_service.resolve(user.id)

    click.echo(f"User: {user.username} (ID: {user.id}) active={user.is_active}")
    click.echo(f"Home branch: {user.ba_code if user.ba_code is not None else '-'}")
    if profile is None:
        click.echo("Access: none (inactive user)")
        return
    click.echo(f"Roles: {', '.join(sorted(profile.roles)) or '(none)'}")
    click.echo("Permissions:")
    for code in sorted(profile.permissions):
        click.echo(f"  - {code}")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} expired or revoked sessions")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(docflow_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
