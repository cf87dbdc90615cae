from .branches import Branch
from .auth import User, Role, UserRole, Permission, RolePermission, SessionToken
from .documents import (
    Document,
    DocumentStatus,
    DisbursementState,
    Comment,
    EmendationFile,
    AdditionalFile,
    DocumentStatusHistory,
)
from .activity import ActivityLog

__all__ = [
    'Branch',
    'User', 'Role', 'UserRole', 'Permission', 'RolePermission', 'SessionToken',
    'Document', 'DocumentStatus', 'DisbursementState',
    'Comment', 'EmendationFile', 'AdditionalFile', 'DocumentStatusHistory',
    'ActivityLog',
]
