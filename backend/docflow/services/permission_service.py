# Overview: Service-layer operations for roles and permissions; resolves a user's effective access.

"""
Role-Permission Resolver

A user's effective access is the set of roles assigned in user_roles plus
the union of every permission those roles grant in role_permissions. There
is exactly one level of inheritance (role -> permission).

DESIGN PRINCIPLES:
- Fail closed: a user with no roles resolves to empty sets, never to a
  default role
- No caching: every call re-reads the join tables, so a role revoked a
  moment ago is already gone on the next check
- Session claims are never consulted; the authenticated user id is the only
  input
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import User, UserRole, Role, RolePermission, Permission
from ..permissions import (
    PERMISSION_DEFINITIONS,
    DEFAULT_ROLE_PERMISSIONS,
    ROLE_DESCRIPTIONS,
)
from ..errors import NotFound
from . import activity_service


@dataclass(frozen=True)
class AccessProfile:
    """
    Effective roles and permissions of one user, resolved for one request.

    Immutable and request-scoped: build a new one with resolve() for every
    authorization decision.
    """
    user_id: int
    username: str
    roles: frozenset[str]
    permissions: frozenset[str]
    home_branch_code: int | None = None

    def has_role(self, *role_names: str) -> bool:
        return any(name in self.roles for name in role_names)

    def has_permission(self, *codes: str) -> bool:
        return any(code in self.permissions for code in codes)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "roles": sorted(self.roles),
            "permissions": sorted(self.permissions),
            "home_branch_code": self.home_branch_code,
        }


def resolve(user_id: int) -> AccessProfile | None:
    """
    Resolve a user's roles and permissions from the persisted assignments.

    Returns None when the user does not exist or is deactivated.
    """
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None

    role_rows = (
        db.session.query(Role.id, Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .all()
    )
    role_ids = [row.id for row in role_rows]

    permission_codes: set[str] = set()
    if role_ids:
        permission_rows = (
            db.session.query(Permission.code)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id.in_(role_ids))
            .distinct()
            .all()
        )
        permission_codes = {row.code for row in permission_rows}

    return AccessProfile(
        user_id=user.id,
        username=user.username,
        roles=frozenset(row.name for row in role_rows),
        permissions=frozenset(permission_codes),
        home_branch_code=user.ba_code,
    )


def get_user_permissions(user_id: int) -> set[str]:
    profile = resolve(user_id)
    return set(profile.permissions) if profile else set()


def get_user_role_names(user_id: int) -> list[str]:
    """Get sorted list of role names for a user."""
    profile = resolve(user_id)
    return sorted(profile.roles) if profile else []


def user_has_permission(user_id: int, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user_id)


# =============================================================================
# ROLE ASSIGNMENT
# =============================================================================

def assign_role(user_id: int, role_name: str, *, assigned_by_user_id: int | None = None) -> UserRole:
    """
    Assign a role to a user. Idempotent.

    Raises:
        NotFound: If the user or role doesn't exist
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")

    role = db.session.query(Role).filter_by(name=role_name).first()
    if role is None:
        raise NotFound(f"Role '{role_name}' not found")

    existing = db.session.query(UserRole).filter_by(user_id=user_id, role_id=role.id).first()
    if existing:
        return existing

    user_role = UserRole(user_id=user_id, role_id=role.id)
    db.session.add(user_role)
    db.session.commit()

    activity_service.log_activity(
        user_id=assigned_by_user_id,
        action=activity_service.ROLE_ASSIGNED,
        details={"target_user_id": user_id, "role": role_name},
    )
    return user_role


def revoke_role(user_id: int, role_name: str, *, revoked_by_user_id: int | None = None) -> bool:
    """
    Remove a role from a user.

    Returns False if the user did not hold the role. Takes effect on the very
    next resolve() call.
    """
    role = db.session.query(Role).filter_by(name=role_name).first()
    if role is None:
        raise NotFound(f"Role '{role_name}' not found")

    user_role = db.session.query(UserRole).filter_by(user_id=user_id, role_id=role.id).first()
    if user_role is None:
        return False

    db.session.delete(user_role)
    db.session.commit()

    activity_service.log_activity(
        user_id=revoked_by_user_id,
        action=activity_service.ROLE_REVOKED,
        details={"target_user_id": user_id, "role": role_name},
    )
    return True


# =============================================================================
# ROLE / PERMISSION CATALOGUE
# =============================================================================

def create_default_roles() -> int:
    """Create the canonical roles. Idempotent; returns how many were created."""
    created_count = 0
    for name, description in ROLE_DESCRIPTIONS.items():
        if db.session.query(Role).filter_by(name=name).first():
            continue
        db.session.add(Role(name=name, description=description))
        created_count += 1

    db.session.commit()
    return created_count


def initialize_permissions() -> int:
    """
    Create Permission records for every code in PERMISSION_DEFINITIONS.

    Idempotent: Safe to run multiple times.
    """
    created_count = 0

    for code, description, category in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(code=code).first()

        if not existing:
            db.session.add(Permission(code=code, description=description, category=category))
            created_count += 1

    db.session.commit()
    return created_count


def assign_default_role_permissions() -> int:
    """
    Link roles to their default permissions from DEFAULT_ROLE_PERMISSIONS.

    Idempotent: skips roles or permissions that don't exist yet and grants
    that are already present.
    """
    created_count = 0

    for role_name, permission_codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()

        if not role:
            continue

        for permission_code in permission_codes:
            permission = db.session.query(Permission).filter_by(code=permission_code).first()

            if not permission:
                continue

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                permission_id=permission.id
            ).first()

            if not existing:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
                created_count += 1

    db.session.commit()
    return created_count


def grant_permission_to_role(role_name: str, permission_code: str) -> RolePermission:
    """Grant a permission to a role."""
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFound(f"Role '{role_name}' not found")

    permission = db.session.query(Permission).filter_by(code=permission_code).first()
    if not permission:
        raise NotFound(f"Permission '{permission_code}' not found")

    existing = db.session.query(RolePermission).filter_by(
        role_id=role.id,
        permission_id=permission.id
    ).first()

    if existing:
        return existing

    role_permission = RolePermission(role_id=role.id, permission_id=permission.id)
    db.session.add(role_permission)
    db.session.commit()

    return role_permission


def revoke_permission_from_role(role_name: str, permission_code: str) -> bool:
    """Revoke a permission from a role."""
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFound(f"Role '{role_name}' not found")

    permission = db.session.query(Permission).filter_by(code=permission_code).first()
    if not permission:
        raise NotFound(f"Permission '{permission_code}' not found")

    role_permission = db.session.query(RolePermission).filter_by(
        role_id=role.id,
        permission_id=permission.id
    ).first()

    if role_permission:
        db.session.delete(role_permission)
        db.session.commit()
        return True

    return False
