"""
Services Package
================

Database and Clerk access used by routes and sync services.
"""

from backoffice.services.base import BaseService
from backoffice.services.clerk_client import ClerkClient
from backoffice.services.member_service import MemberService
from backoffice.services.organization_service import OrganizationService
from backoffice.services.user_service import UserService

__all__ = [
    "BaseService",
    "ClerkClient",
    "MemberService",
    "OrganizationService",
    "UserService",
]
