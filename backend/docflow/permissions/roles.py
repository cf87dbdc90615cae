# Overview: Canonical role names and their default permission grants.

from . import definitions as p
from .definitions import PERMISSION_DEFINITIONS


ADMIN = "admin"
DISTRICT_MANAGER = "district_manager"
BRANCH_MANAGER = "branch_manager"
BRANCH_USER = "branch_user"
UPLOADER = "uploader"
USER = "user"

ROLE_DESCRIPTIONS = {
    ADMIN: "System administrator",
    DISTRICT_MANAGER: "District office manager",
    BRANCH_MANAGER: "Branch manager",
    BRANCH_USER: "Branch staff",
    UPLOADER: "District document uploader",
    USER: "Read-only branch viewer",
}

# Roles that may see drafts and drive the document workflow
UPLOADER_CLASS_ROLES = frozenset({UPLOADER, ADMIN, DISTRICT_MANAGER})

# Roles that see every branch regardless of home branch
ALL_BRANCH_ROLES = frozenset({ADMIN, DISTRICT_MANAGER, BRANCH_MANAGER})

# Roles allowed to run disbursement rounds and receive original paper
DISTRICT_AUTHORITY_ROLES = frozenset({ADMIN, DISTRICT_MANAGER})


DEFAULT_ROLE_PERMISSIONS = {
    UPLOADER: [
        p.DOCUMENTS_CREATE,
        p.DOCUMENTS_UPLOAD,
        p.DOCUMENTS_READ_ALL_BRANCHES,
        p.DOCUMENTS_UPDATE_STATUS,
        p.COMMENTS_CREATE,
        p.COMMENTS_READ,
        p.NOTIFICATIONS_SEND,
        p.DASHBOARD_ACCESS,
        p.REPORTS_READ,
    ],
    BRANCH_USER: [
        p.DOCUMENTS_READ_BRANCH,
        p.COMMENTS_CREATE,
        p.COMMENTS_READ,
        p.DASHBOARD_ACCESS,
        p.REPORTS_READ,
    ],
    BRANCH_MANAGER: [
        p.DOCUMENTS_READ_ALL_BRANCHES,
        p.DOCUMENTS_APPROVE,
        p.COMMENTS_CREATE,
        p.COMMENTS_READ,
        p.REPORTS_BRANCH,
        p.REPORTS_REGION,
        p.DASHBOARD_ACCESS,
        p.REPORTS_READ,
    ],
    DISTRICT_MANAGER: [
        p.DOCUMENTS_CREATE,
        p.DOCUMENTS_UPLOAD,
        p.DOCUMENTS_READ_ALL_BRANCHES,
        p.DOCUMENTS_UPDATE_STATUS,
        p.DOCUMENTS_APPROVE,
        p.COMMENTS_CREATE,
        p.COMMENTS_READ,
        p.NOTIFICATIONS_SEND,
        p.REPORTS_BRANCH,
        p.REPORTS_REGION,
        p.REPORTS_SYSTEM,
        p.DASHBOARD_ACCESS,
        p.REPORTS_READ,
    ],
    # Admin gets all permissions
    ADMIN: [code for code, _description, _category in PERMISSION_DEFINITIONS],
    # Same visibility as branch_user, without write access to comments
    USER: [
        p.DOCUMENTS_READ_BRANCH,
        p.COMMENTS_READ,
        p.DASHBOARD_ACCESS,
        p.REPORTS_READ,
    ],
}
