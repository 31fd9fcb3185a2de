"""
Enumeration Module
==================

Defines the closed value sets stored on users, organizations and
memberships.
"""

from enum import Enum


class UserRole(str, Enum):
    """
    System-wide user roles, lowest privilege first.
    """

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class UserStatus(str, Enum):
    """Account lifecycle states."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    INVITED = "invited"
    SUSPENDED = "suspended"


class OrganizationRole(str, Enum):
    """Roles a user can hold inside a single organization."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class SyncStatus(str, Enum):
    """Reconciliation state of a local row against Clerk."""

    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"
