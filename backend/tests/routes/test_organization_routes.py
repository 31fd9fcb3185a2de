"""
Organization Route Tests
========================

Tests for /api/organizations and membership management, including
organization-scoped role checks.
"""

import uuid

import pytest

from backoffice.models.enums import OrganizationRole
from conftest import add_membership, make_user


pytestmark = pytest.mark.routes


@pytest.fixture
def org_admin(db_session, sample_organization, sample_user):
    add_membership(db_session, sample_organization, sample_user, OrganizationRole.ADMIN)
    return sample_user


@pytest.fixture
def org_member(db_session, sample_organization):
    user = make_user(db_session, "member@example.com", clerk_id="user_member")
    add_membership(db_session, sample_organization, user, OrganizationRole.MEMBER)
    return user


class TestListOrganizations:

    def test_super_admin_sees_all(self, client, super_admin_headers, sample_organization):
        # Act
        response = client.get("/api/organizations", headers=super_admin_headers)

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["organizations"][0]["slug"] == "acme-corp"

    def test_user_sees_only_memberships(self, client, db_session, org_admin, user_headers):
        # Arrange
        from backoffice.services.organization_service import OrganizationService

        OrganizationService(db_session).create_organization(
            {"clerk_id": "org_other", "name": "Other", "slug": "other"}
        )

        # Act
        response = client.get("/api/organizations", headers=user_headers)

        # Assert
        body = response.json()
        assert body["total"] == 1
        assert [o["slug"] for o in body["organizations"]] == ["acme-corp"]

    def test_requires_authentication(self, client):
        # Act
        response = client.get("/api/organizations")

        # Assert
        assert response.status_code == 401


class TestCreateOrganization:

    def test_creator_becomes_admin(self, client, user_headers, sample_user):
        # Act
        response = client.post(
            "/api/organizations",
            headers=user_headers,
            json={"name": "Initech", "slug": "initech", "metadata": {"size": "small"}},
        )

        # Assert
        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "admin"
        assert data["clerk_id"].startswith("org_local_")
        assert data["metadata"] == {"size": "small"}
        assert data["member_count"] == 1

    def test_duplicate_slug(self, client, user_headers, sample_organization):
        # Act
        response = client.post(
            "/api/organizations",
            headers=user_headers,
            json={"name": "Acme Again", "slug": "acme-corp"},
        )

        # Assert
        assert response.status_code == 409

    def test_invalid_slug(self, client, user_headers):
        # Act
        response = client.post(
            "/api/organizations",
            headers=user_headers,
            json={"name": "Bad", "slug": "Not A Slug"},
        )

        # Assert
        assert response.status_code == 422


class TestOrganizationAccess:

    def test_member_can_read(self, client, headers_for, org_member, sample_organization):
        # Act
        response = client.get(f"/api/organizations/{sample_organization.id}", headers=headers_for(org_member))

        # Assert
        assert response.status_code == 200
        assert response.json()["role"] == "member"

    def test_non_member_is_forbidden(self, client, user_headers, sample_organization):
        # Act
        response = client.get(f"/api/organizations/{sample_organization.id}", headers=user_headers)

        # Assert
        assert response.status_code == 403

    def test_super_admin_acts_as_owner(self, client, super_admin_headers, sample_organization):
        # Act
        response = client.get(f"/api/organizations/{sample_organization.id}", headers=super_admin_headers)

        # Assert
        assert response.json()["role"] == "owner"

    def test_unknown_organization(self, client, user_headers):
        # Act
        response = client.get(f"/api/organizations/{uuid.uuid4()}", headers=user_headers)

        # Assert
        assert response.status_code == 404

    def test_member_cannot_update(self, client, headers_for, org_member, sample_organization):
        # Act
        response = client.patch(
            f"/api/organizations/{sample_organization.id}",
            headers=headers_for(org_member),
            json={"name": "Hijacked"},
        )

        # Assert
        assert response.status_code == 403
        assert response.json()["details"]["required_roles"] == ["owner", "admin"]


class TestUpdateAndDelete:

    def test_admin_updates(self, client, user_headers, org_admin, sample_organization):
        # Act
        response = client.patch(
            f"/api/organizations/{sample_organization.id}",
            headers=user_headers,
            json={"name": "Acme Corporation", "slug": None},
        )

        # Assert
        assert response.status_code == 200
        assert response.json()["name"] == "Acme Corporation"
        assert response.json()["slug"] == "acme-corp"

    def test_admin_deletes(self, client, user_headers, org_admin, sample_organization, super_admin_headers):
        # Act
        response = client.delete(f"/api/organizations/{sample_organization.id}", headers=user_headers)

        # Assert
        assert response.status_code == 200
        lookup = client.get(f"/api/organizations/{sample_organization.id}", headers=super_admin_headers)
        assert lookup.status_code == 404


class TestMembers:

    def test_list_members(self, client, user_headers, org_admin, org_member, sample_organization):
        # Act
        response = client.get(f"/api/organizations/{sample_organization.id}/members", headers=user_headers)

        # Assert
        body = response.json()
        assert body["total"] == 2
        assert {m["email"] for m in body["members"]} == {"user@example.com", "member@example.com"}

    def test_add_member(self, client, user_headers, org_admin, admin_user, sample_organization):
        # Act
        response = client.post(
            f"/api/organizations/{sample_organization.id}/members",
            headers=user_headers,
            json={"user_id": str(admin_user.id), "role": "admin"},
        )

        # Assert
        assert response.status_code == 201
        assert response.json()["role"] == "admin"
        assert response.json()["user_id"] == str(admin_user.id)

    def test_add_unknown_user(self, client, user_headers, org_admin, sample_organization):
        # Act
        response = client.post(
            f"/api/organizations/{sample_organization.id}/members",
            headers=user_headers,
            json={"user_id": str(uuid.uuid4())},
        )

        # Assert
        assert response.status_code == 404

    def test_add_existing_member_conflicts(self, client, user_headers, org_admin, org_member, sample_organization):
        # Act
        response = client.post(
            f"/api/organizations/{sample_organization.id}/members",
            headers=user_headers,
            json={"user_id": str(org_member.id)},
        )

        # Assert
        assert response.status_code == 409

    def test_owner_role_cannot_be_added_directly(self, client, user_headers, org_admin, admin_user, sample_organization):
        # Act
        response = client.post(
            f"/api/organizations/{sample_organization.id}/members",
            headers=user_headers,
            json={"user_id": str(admin_user.id), "role": "owner"},
        )

        # Assert
        assert response.status_code == 422

    def test_change_role(self, client, user_headers, org_admin, org_member, sample_organization):
        # Act
        response = client.patch(
            f"/api/organizations/{sample_organization.id}/members/{org_member.id}",
            headers=user_headers,
            json={"role": "admin"},
        )

        # Assert
        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    def test_remove_member(self, client, user_headers, org_admin, org_member, sample_organization):
        # Act
        response = client.delete(
            f"/api/organizations/{sample_organization.id}/members/{org_member.id}",
            headers=user_headers,
        )
        again = client.delete(
            f"/api/organizations/{sample_organization.id}/members/{org_member.id}",
            headers=user_headers,
        )

        # Assert
        assert response.status_code == 200
        assert again.status_code == 404
