"""
Organization and Member Service Tests
=====================================
"""

import pytest

from backoffice.core.exceptions import ConflictError, MemberNotFoundError
from backoffice.models.enums import OrganizationRole
from backoffice.services.member_service import MemberService
from backoffice.services.organization_service import OrganizationService
from conftest import add_membership


pytestmark = pytest.mark.services


class TestOrganizationService:

    def test_create_stores_metadata_as_json(self, db_session):
        # Act
        organization = OrganizationService(db_session).create_organization(
            {"clerk_id": "org_1", "name": "Globex", "slug": "globex", "metadata": {"tier": "gold"}}
        )

        # Assert
        assert organization.metadata_dict == {"tier": "gold"}
        assert organization.sync_status == "pending"

    def test_duplicate_slug_conflicts(self, db_session, sample_organization):
        # Act & Assert
        with pytest.raises(ConflictError):
            OrganizationService(db_session).create_organization(
                {"clerk_id": "org_other", "name": "Other", "slug": sample_organization.slug}
            )

    def test_update_clears_metadata(self, db_session):
        # Arrange
        service = OrganizationService(db_session)
        organization = service.create_organization(
            {"clerk_id": "org_1", "name": "Globex", "slug": "globex", "metadata": {"tier": "gold"}}
        )

        # Act
        service.update_organization(organization, {"name": "Globex Inc", "metadata": None})

        # Assert
        assert organization.name == "Globex Inc"
        assert organization.metadata_dict is None

    def test_list_is_ordered_by_name(self, db_session):
        # Arrange
        service = OrganizationService(db_session)
        for name in ("Zeta", "Alpha", "Mid"):
            service.create_organization({"clerk_id": f"org_{name}", "name": name, "slug": name.lower()})

        # Act
        organizations, total = service.list_organizations(page=1, page_size=2)

        # Assert
        assert total == 3
        assert [o.name for o in organizations] == ["Alpha", "Mid"]

    def test_list_for_user_includes_role(self, db_session, sample_organization, sample_user):
        # Arrange
        add_membership(db_session, sample_organization, sample_user, OrganizationRole.ADMIN)

        # Act
        rows = OrganizationService(db_session).list_organizations_for_user(sample_user.id)

        # Assert
        assert [(o.id, role) for o, role in rows] == [(sample_organization.id, "admin")]

    def test_delete_cascades_memberships(self, db_session, sample_organization, sample_user):
        # Arrange
        add_membership(db_session, sample_organization, sample_user)
        organization_id = sample_organization.id

        # Act
        OrganizationService(db_session).delete_organization(sample_organization)

        # Assert
        assert MemberService(db_session).list_members(organization_id) == []


class TestMemberService:

    def test_add_member_defaults_to_member_role(self, db_session, sample_organization, sample_user):
        # Act
        member = MemberService(db_session).add_member(sample_organization.id, sample_user.id)

        # Assert
        assert member.role == "member"
        assert member.email == sample_user.email

    def test_add_twice_conflicts(self, db_session, sample_organization, sample_user):
        # Arrange
        service = MemberService(db_session)
        service.add_member(sample_organization.id, sample_user.id)

        # Act & Assert
        with pytest.raises(ConflictError):
            service.add_member(sample_organization.id, sample_user.id)

    def test_update_role(self, db_session, sample_organization, sample_user):
        # Arrange
        service = MemberService(db_session)
        service.add_member(sample_organization.id, sample_user.id)

        # Act
        member = service.update_member_role(sample_organization.id, sample_user.id, OrganizationRole.OWNER)

        # Assert
        assert member.role == "owner"

    def test_update_missing_member(self, db_session, sample_organization, sample_user):
        # Act & Assert
        with pytest.raises(MemberNotFoundError):
            MemberService(db_session).update_member_role(sample_organization.id, sample_user.id, "admin")

    def test_remove_member(self, db_session, sample_organization, sample_user):
        # Arrange
        service = MemberService(db_session)
        service.add_member(sample_organization.id, sample_user.id)

        # Act
        service.remove_member(sample_organization.id, sample_user.id)

        # Assert
        assert service.get_member(sample_organization.id, sample_user.id) is None
        with pytest.raises(MemberNotFoundError):
            service.remove_member(sample_organization.id, sample_user.id)
