# Overview: Permission system package.
# Re-exports the public catalogue, role table and helpers.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    DOCUMENT_PERMISSIONS,
    COMMENT_PERMISSIONS,
    NOTIFICATION_PERMISSIONS,
    REPORT_PERMISSIONS,
    ADMIN_PERMISSIONS,
)
from .roles import (
    DEFAULT_ROLE_PERMISSIONS,
    ROLE_DESCRIPTIONS,
    UPLOADER_CLASS_ROLES,
    ALL_BRANCH_ROLES,
    DISTRICT_AUTHORITY_ROLES,
)
from .helpers import (
    get_all_permission_codes,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "DOCUMENT_PERMISSIONS",
    "COMMENT_PERMISSIONS",
    "NOTIFICATION_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "ADMIN_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ROLE_DESCRIPTIONS",
    "UPLOADER_CLASS_ROLES",
    "ALL_BRANCH_ROLES",
    "DISTRICT_AUTHORITY_ROLES",
    "get_all_permission_codes",
    "validate_permission_code",
]
