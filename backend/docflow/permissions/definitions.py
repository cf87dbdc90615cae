# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, description, category)

from .categories import PermissionCategory


DOCUMENTS_CREATE = "documents:create"
DOCUMENTS_UPLOAD = "documents:upload"
DOCUMENTS_READ_BRANCH = "documents:read_branch"
DOCUMENTS_READ_ALL_BRANCHES = "documents:read_all_branches"
DOCUMENTS_UPDATE_STATUS = "documents:update_status"
DOCUMENTS_APPROVE = "documents:approve"
DOCUMENTS_DELETE = "documents:delete"

COMMENTS_CREATE = "comments:create"
COMMENTS_READ = "comments:read"
COMMENTS_UPDATE = "comments:update"
COMMENTS_DELETE = "comments:delete"

NOTIFICATIONS_SEND = "notifications:send"
NOTIFICATIONS_MANAGE = "notifications:manage"

REPORTS_READ = "reports:read"
REPORTS_BRANCH = "reports:branch"
REPORTS_REGION = "reports:region"
REPORTS_SYSTEM = "reports:system"

ADMIN_USERS = "admin:users"
ADMIN_ROLES = "admin:roles"
ADMIN_SYSTEM = "admin:system"
ADMIN_FULL_ACCESS = "admin:full_access"

DASHBOARD_ACCESS = "dashboard:access"


# -- DOCUMENTS --

DOCUMENT_PERMISSIONS = [
    (DOCUMENTS_CREATE, "Create new documents", PermissionCategory.DOCUMENTS),
    (DOCUMENTS_UPLOAD, "Upload document files", PermissionCategory.DOCUMENTS),
    (DOCUMENTS_READ_BRANCH, "Read documents of the user's own branch", PermissionCategory.DOCUMENTS),
    (DOCUMENTS_READ_ALL_BRANCHES, "Read documents of every branch", PermissionCategory.DOCUMENTS),
    (DOCUMENTS_UPDATE_STATUS, "Update document status", PermissionCategory.DOCUMENTS),
    (DOCUMENTS_APPROVE, "Approve documents", PermissionCategory.DOCUMENTS),
    (DOCUMENTS_DELETE, "Delete draft documents", PermissionCategory.DOCUMENTS),
]


# -- COMMENTS --

COMMENT_PERMISSIONS = [
    (COMMENTS_CREATE, "Add comments", PermissionCategory.COMMENTS),
    (COMMENTS_READ, "Read comments", PermissionCategory.COMMENTS),
    (COMMENTS_UPDATE, "Edit comments", PermissionCategory.COMMENTS),
    (COMMENTS_DELETE, "Delete comments", PermissionCategory.COMMENTS),
]


# -- NOTIFICATIONS --

NOTIFICATION_PERMISSIONS = [
    (NOTIFICATIONS_SEND, "Send notifications", PermissionCategory.NOTIFICATIONS),
    (NOTIFICATIONS_MANAGE, "Manage notification settings", PermissionCategory.NOTIFICATIONS),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (REPORTS_READ, "Read reports", PermissionCategory.REPORTS),
    (REPORTS_BRANCH, "Branch-level reports", PermissionCategory.REPORTS),
    (REPORTS_REGION, "District-level reports", PermissionCategory.REPORTS),
    (REPORTS_SYSTEM, "System-wide reports", PermissionCategory.REPORTS),
    (DASHBOARD_ACCESS, "Access the dashboard", PermissionCategory.REPORTS),
]


# -- ADMIN --

ADMIN_PERMISSIONS = [
    (ADMIN_USERS, "Manage users", PermissionCategory.ADMIN),
    (ADMIN_ROLES, "Manage roles and role assignments", PermissionCategory.ADMIN),
    (ADMIN_SYSTEM, "Manage system settings", PermissionCategory.SYSTEM),
    (ADMIN_FULL_ACCESS, "Full administrative access", PermissionCategory.SYSTEM),
]


PERMISSION_DEFINITIONS = (
    DOCUMENT_PERMISSIONS
    + COMMENT_PERMISSIONS
    + NOTIFICATION_PERMISSIONS
    + REPORT_PERMISSIONS
    + ADMIN_PERMISSIONS
)
