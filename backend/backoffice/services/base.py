"""
Service Base Module
===================

Shared plumbing for database-backed services:
- Session ownership
- Commit with error translation
- Failure logging
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.exceptions import ConflictError, DatabaseError
from backoffice.core.logging import get_logger

logger = get_logger(__name__)


class BaseService:
    """
    Base class for services operating on a SQLAlchemy session.

    Usage:
        class UserService(BaseService):
            def delete_user(self, user):
                with self.query("delete_user"):
                    self.db.delete(user)
                    self.db.commit()
    """

    def __init__(self, db: Session):
        """
        Initialize service with database session.

        Args:
            db: SQLAlchemy session
        """
        self.db = db

    @contextmanager
    def query(self, operation: str) -> Iterator[None]:
        """
        Run a unit of database work.

        Rolls back and translates SQLAlchemy failures:
        IntegrityError becomes ConflictError, anything else DatabaseError.

        Args:
            operation: Name used in logs and error details
        """
        try:
            yield
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(
                "db_integrity_error",
                operation=operation,
                error=str(e.orig) if e.orig is not None else str(e),
            )
            raise ConflictError(
                message="Operation conflicts with existing data",
                details={"operation": operation},
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "db_query_failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise DatabaseError(
                message="Database operation failed",
                cause=e,
                details={"operation": operation},
            ) from e
