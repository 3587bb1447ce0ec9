"""
User roles enumeration.

Defines the role types for the salary administration system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Views, edits and bulk-updates salary records
        EMPLOYEE: Subject who submits their own salary (default role)
    """
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"
