"""
Model Package Initialization
============================

Ensures models are properly registered when imported by the application.

All SQLAlchemy ORM models are exported from this module.

Usage:
    from backoffice.models import User, Organization, Member
"""

from .enums import OrganizationRole, SyncStatus, UserRole, UserStatus
from .user import User
from .user_data import UserData
from .organization import Organization
from .member import Member

__all__ = [
    "User",
    "UserData",
    "Organization",
    "Member",
    "UserRole",
    "UserStatus",
    "OrganizationRole",
    "SyncStatus",
]
