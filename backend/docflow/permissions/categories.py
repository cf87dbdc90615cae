# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    DOCUMENTS = "DOCUMENTS"
    COMMENTS = "COMMENTS"
    NOTIFICATIONS = "NOTIFICATIONS"
    REPORTS = "REPORTS"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"
