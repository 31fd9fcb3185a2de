"""
Organization Service Module
===========================

Data access for organizations.
"""

import json
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select

from backoffice.core.logging import get_logger
from backoffice.models.member import Member
from backoffice.models.organization import Organization
from backoffice.services.base import BaseService

logger = get_logger(__name__)

ORGANIZATION_FIELDS = ("clerk_id", "name", "slug", "created_at", "updated_at")


def _normalize(fields: Dict[str, Any]) -> Dict[str, Any]:
    clean = {key: value for key, value in fields.items() if key in ORGANIZATION_FIELDS}
    if "metadata" in fields:
        metadata = fields["metadata"]
        clean["metadata_json"] = json.dumps(metadata) if metadata is not None else None
    return clean


class OrganizationService(BaseService):
    """Organization persistence operations."""

    def get_organization_by_id(self, organization_id: UUID) -> Optional[Organization]:
        with self.query("get_organization_by_id"):
            return self.db.get(Organization, organization_id)

    def get_organization_by_clerk_id(self, clerk_id: str) -> Optional[Organization]:
        with self.query("get_organization_by_clerk_id"):
            return self.db.scalar(select(Organization).where(Organization.clerk_id == clerk_id))

    def get_organization_by_slug(self, slug: str) -> Optional[Organization]:
        with self.query("get_organization_by_slug"):
            return self.db.scalar(select(Organization).where(Organization.slug == slug))

    def list_organizations(
        self,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Organization], int]:
        """
        List all organizations ordered by name.

        Returns:
            Tuple of (organizations on the page, total organizations)
        """
        with self.query("list_organizations"):
            total = self.db.scalar(select(func.count(Organization.id))) or 0
            organizations = self.db.scalars(
                select(Organization)
                .order_by(Organization.name)
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).all()
            return list(organizations), total

    def list_organizations_for_user(self, user_id: UUID) -> List[Tuple[Organization, str]]:
        """
        List the organizations a user belongs to, with the user's role in each.
        """
        with self.query("list_organizations_for_user"):
            rows = self.db.execute(
                select(Organization, Member.role)
                .join(Member, Member.organization_id == Organization.id)
                .where(Member.user_id == user_id)
                .order_by(Organization.name)
            ).all()
            return [(organization, role) for organization, role in rows]

    def create_organization(self, fields: Dict[str, Any]) -> Organization:
        """
        Insert an organization.

        Raises:
            ConflictError: If the slug or Clerk id is already taken
        """
        with self.query("create_organization"):
            organization = Organization(**_normalize(fields))
            self.db.add(organization)
            self.db.commit()
            self.db.refresh(organization)

        logger.info(
            "organization_created",
            organization_id=str(organization.id),
            clerk_id=organization.clerk_id,
        )
        return organization

    def update_organization(self, organization: Organization, fields: Dict[str, Any]) -> Organization:
        with self.query("update_organization"):
            for key, value in _normalize(fields).items():
                setattr(organization, key, value)
            self.db.commit()
            self.db.refresh(organization)
        return organization

    def delete_organization(self, organization: Organization) -> None:
        """Delete an organization and, by cascade, its memberships."""
        with self.query("delete_organization"):
            self.db.delete(organization)
            self.db.commit()

        logger.info(
            "organization_deleted",
            organization_id=str(organization.id),
            clerk_id=organization.clerk_id,
        )
