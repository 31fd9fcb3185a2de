"""
Clerk synchronization services.

Usage:
    from backoffice.sync.user import UserSyncService
    from backoffice.sync.types import RetryableError
"""
