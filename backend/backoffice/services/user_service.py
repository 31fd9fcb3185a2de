"""
User Service Module
===================

Data access for users and their key/value metadata.

Metadata conventions written by the Clerk sync:
- ``signup_date``: ISO timestamp of account creation
- ``signup_source``: where the account came from (``clerk``)
- ``name_history``: list of ``{first_name, last_name, changed_at}``
"""

import json
from datetime import datetime, UTC
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select

from backoffice.core.logging import get_logger
from backoffice.models.enums import UserRole, UserStatus
from backoffice.models.user import User
from backoffice.models.user_data import UserData
from backoffice.services.base import BaseService

logger = get_logger(__name__)

# Columns callers may set through create/update
USER_FIELDS = (
    "clerk_id",
    "email",
    "first_name",
    "last_name",
    "image_url",
    "username",
    "role",
    "status",
    "last_sign_in_at",
    "created_at",
    "updated_at",
)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _normalize(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unknown keys and store enums by value."""
    clean = {}
    for key, value in fields.items():
        if key not in USER_FIELDS:
            continue
        if isinstance(value, (UserRole, UserStatus)):
            value = value.value
        clean[key] = value
    return clean


class UserService(BaseService):
    """
    User persistence operations.

    Usage:
        user_service = UserService(db)
        user = user_service.get_user_by_clerk_id("user_123")
    """

    # --------------------------
    # Queries
    # --------------------------

    def list_users(
        self,
        page: int = 1,
        page_size: int = 20,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        """
        List users newest first.

        Args:
            page: 1-based page number
            page_size: Users per page
            role: Optional role filter
            status: Optional status filter
            search: Case-insensitive match on email, first or last name

        Returns:
            Tuple of (users on the page, total matching users)
        """
        with self.query("list_users"):
            stmt = select(User)
            if role is not None:
                stmt = stmt.where(User.role == role.value)
            if status is not None:
                stmt = stmt.where(User.status == status.value)
            if search:
                pattern = f"%{_escape_like(search.lower())}%"
                stmt = stmt.where(
                    or_(
                        func.lower(User.email).like(pattern, escape="\\"),
                        func.lower(User.first_name).like(pattern, escape="\\"),
                        func.lower(User.last_name).like(pattern, escape="\\"),
                    )
                )

            total = self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
            users = self.db.scalars(
                stmt.order_by(User.created_at.desc(), User.email)
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).all()
            return list(users), total

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        with self.query("get_user_by_id"):
            return self.db.get(User, user_id)

    def get_user_by_clerk_id(self, clerk_id: str) -> Optional[User]:
        with self.query("get_user_by_clerk_id"):
            return self.db.scalar(select(User).where(User.clerk_id == clerk_id))

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self.query("get_user_by_email"):
            return self.db.scalar(
                select(User).where(func.lower(User.email) == email.lower())
            )

    def get_users_by_ids(self, ids: Iterable[UUID]) -> List[User]:
        ids = list(ids)
        if not ids:
            return []
        with self.query("get_users_by_ids"):
            return list(self.db.scalars(select(User).where(User.id.in_(ids))).all())

    # --------------------------
    # Writes
    # --------------------------

    def create_user(self, fields: Dict[str, Any]) -> User:
        """
        Insert a user.

        Raises:
            ConflictError: If the Clerk id is already taken
        """
        with self.query("create_user"):
            user = User(**_normalize(fields))
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)

        logger.info("user_created", user_id=str(user.id), clerk_id=user.clerk_id)
        return user

    def update_user(self, user: User, fields: Dict[str, Any]) -> User:
        """
        Apply the given fields to a user. Keys absent from ``fields`` are untouched.
        """
        with self.query("update_user"):
            for key, value in _normalize(fields).items():
                setattr(user, key, value)
            self.db.commit()
            self.db.refresh(user)
        return user

    def delete_user(self, user: User) -> None:
        with self.query("delete_user"):
            self.db.delete(user)
            self.db.commit()

        logger.info("user_deleted", user_id=str(user.id), clerk_id=user.clerk_id)

    # --------------------------
    # Metadata
    # --------------------------

    def get_metadata(self, user_id: UUID) -> Dict[str, Any]:
        """Return all metadata for a user as a decoded dict."""
        with self.query("get_metadata"):
            rows = self.db.scalars(select(UserData).where(UserData.user_id == user_id)).all()
            return {row.key: row.decoded_value for row in rows}

    def set_metadata(self, user_id: UUID, key: str, value: Any, commit: bool = True) -> None:
        """Insert or replace one metadata entry."""
        with self.query("set_metadata"):
            self._put_metadata(user_id, key, value)
            if commit:
                self.db.commit()

    def _put_metadata(self, user_id: UUID, key: str, value: Any) -> None:
        row = self.db.scalar(
            select(UserData).where(UserData.user_id == user_id, UserData.key == key)
        )
        encoded = json.dumps(value)
        if row is None:
            self.db.add(UserData(user_id=user_id, key=key, value=encoded))
        else:
            row.value = encoded

    def create_user_with_metadata(
        self,
        fields: Dict[str, Any],
        metadata: Dict[str, Any],
    ) -> User:
        """
        Insert a user and its metadata in one transaction.
        """
        with self.query("create_user_with_metadata"):
            user = User(**_normalize(fields))
            self.db.add(user)
            self.db.flush()
            for key, value in metadata.items():
                self._put_metadata(user.id, key, value)
            self.db.commit()
            self.db.refresh(user)

        logger.info("user_created", user_id=str(user.id), clerk_id=user.clerk_id)
        return user

    def update_user_with_metadata(self, user: User, fields: Dict[str, Any]) -> User:
        """
        Update a user, appending to ``name_history`` when the name changes.
        """
        clean = _normalize(fields)
        new_first = clean.get("first_name", user.first_name)
        new_last = clean.get("last_name", user.last_name)
        name_changed = (new_first or "") != (user.first_name or "") or (
            (new_last or "") != (user.last_name or "")
        )

        with self.query("update_user_with_metadata"):
            for key, value in clean.items():
                setattr(user, key, value)

            if name_changed:
                history_row = self.db.scalar(
                    select(UserData).where(
                        UserData.user_id == user.id,
                        UserData.key == "name_history",
                    )
                )
                history = history_row.decoded_value if history_row else []
                history.append(
                    {
                        "first_name": new_first or "",
                        "last_name": new_last or "",
                        "changed_at": datetime.now(UTC).isoformat(),
                    }
                )
                self._put_metadata(user.id, "name_history", history)

            self.db.commit()
            self.db.refresh(user)
        return user

    def delete_user_with_metadata(self, user: User) -> None:
        """
        Delete a user together with its metadata and memberships.
        """
        with self.query("delete_user_with_metadata"):
            for row in self.db.scalars(select(UserData).where(UserData.user_id == user.id)).all():
                self.db.delete(row)
            self.db.delete(user)
            self.db.commit()

        logger.info("user_deleted", user_id=str(user.id), clerk_id=user.clerk_id)
