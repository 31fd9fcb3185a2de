"""
Test Configuration and Fixtures
================================

Central configuration for pytest with all shared fixtures.

Features:
- SQLite in-memory database for testing
- TestClient setup with the database dependency overridden
- Sample users, organizations and memberships
- RS256 session tokens signed with a throwaway key
- Svix-signed webhook requests
"""

import base64
import json
import os
import uuid
from datetime import datetime, UTC
from typing import Any, Callable, Dict, Generator

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

# Throwaway signing key for session tokens
_private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
PRIVATE_KEY_PEM = _private_key.private_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PrivateFormat.PKCS8,
    encryption_algorithm=serialization.NoEncryption(),
).decode()
PUBLIC_KEY_PEM = _private_key.public_key().public_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()

WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"backoffice-test-webhook-secret!!").decode()

# Set testing environment before importing app modules
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["CLERK_JWT_KEY"] = PUBLIC_KEY_PEM
os.environ["CLERK_AUTHORIZED_PARTIES"] = ""
os.environ["CLERK_WEBHOOK_SECRET"] = WEBHOOK_SECRET
os.environ["CLERK_SECRET_KEY"] = "sk_test_backoffice"
os.environ["WEBHOOK_FORWARD_SECRET"] = ""
os.environ["SYNC_MAX_RETRIES"] = "3"
os.environ["SYNC_RETRY_DELAY"] = "0"

from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from svix.webhooks import Webhook

from backoffice.db.base import Base
from backoffice.db.session import get_db
from backoffice.main import app as main_app
from backoffice.models.enums import OrganizationRole, UserRole, UserStatus
from backoffice.models.member import Member
from backoffice.models.organization import Organization
from backoffice.models.user import User


# =====================================
# Database Configuration
# =====================================

# StaticPool keeps the same in-memory connection across sessions
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


# =====================================
# Database Fixtures
# =====================================

@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Fresh database session for each test.

    Tables are created before and dropped after every test.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """TestClient sharing the test's database session."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    main_app.dependency_overrides[get_db] = override_get_db

    with TestClient(main_app) as test_client:
        yield test_client

    main_app.dependency_overrides.clear()


# =====================================
# User Fixtures
# =====================================

def make_user(
    db: Session,
    email: str,
    role: UserRole = UserRole.USER,
    status: UserStatus = UserStatus.ACTIVE,
    clerk_id: str | None = None,
    **fields: Any,
) -> User:
    """Insert a user directly."""
    user = User(
        clerk_id=clerk_id or f"user_{uuid.uuid4().hex[:12]}",
        email=email,
        role=role.value,
        status=status.value,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def super_admin_user(db_session: Session) -> User:
    return make_user(db_session, "root@example.com", UserRole.SUPER_ADMIN, clerk_id="user_root")


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return make_user(
        db_session,
        "admin@example.com",
        UserRole.ADMIN,
        clerk_id="user_admin",
        first_name="Ada",
        last_name="Admin",
    )


@pytest.fixture
def sample_user(db_session: Session) -> User:
    return make_user(
        db_session,
        "user@example.com",
        UserRole.USER,
        clerk_id="user_regular",
        first_name="Uma",
        last_name="User",
    )


# =====================================
# Organization Fixtures
# =====================================

@pytest.fixture
def sample_organization(db_session: Session) -> Organization:
    organization = Organization(
        clerk_id="org_acme",
        name="Acme Corp",
        slug="acme-corp",
    )
    db_session.add(organization)
    db_session.commit()
    db_session.refresh(organization)
    return organization


def add_membership(
    db: Session,
    organization: Organization,
    user: User,
    role: OrganizationRole = OrganizationRole.MEMBER,
) -> Member:
    member = Member(organization_id=organization.id, user_id=user.id, role=role.value)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


# =====================================
# Authentication Helpers
# =====================================

def make_session_token(clerk_id: str, expires_in: int = 300, **claims: Any) -> str:
    """Sign a Clerk-style session token for ``clerk_id``."""
    now = int(datetime.now(UTC).timestamp())
    payload = {"sub": clerk_id, "iat": now, "nbf": now, "exp": now + expires_in, **claims}
    return jwt.encode(payload, PRIVATE_KEY_PEM, algorithm="RS256")


def auth_headers_for(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_session_token(user.clerk_id)}"}


@pytest.fixture
def token_for() -> Callable[..., str]:
    """Factory for session tokens with custom claims or lifetime."""
    return make_session_token


@pytest.fixture
def headers_for() -> Callable[[User], Dict[str, str]]:
    """Factory for bearer headers of any user."""
    return auth_headers_for


@pytest.fixture
def super_admin_headers(super_admin_user: User) -> Dict[str, str]:
    return auth_headers_for(super_admin_user)


@pytest.fixture
def admin_headers(admin_user: User) -> Dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture
def user_headers(sample_user: User) -> Dict[str, str]:
    return auth_headers_for(sample_user)


# =====================================
# Webhook Helpers
# =====================================

def signed_webhook(
    event: Dict[str, Any],
    secret: str = WEBHOOK_SECRET,
    msg_id: str | None = None,
    timestamp: datetime | None = None,
) -> tuple[bytes, Dict[str, str]]:
    """Serialize an event and build matching Svix headers."""
    return sign_body(json.dumps(event), secret, msg_id, timestamp)


def sign_body(
    body: str,
    secret: str = WEBHOOK_SECRET,
    msg_id: str | None = None,
    timestamp: datetime | None = None,
) -> tuple[bytes, Dict[str, str]]:
    """Build Svix headers for an arbitrary request body."""
    msg_id = msg_id or f"msg_{uuid.uuid4().hex}"
    timestamp = timestamp or datetime.now(UTC)
    signature = Webhook(secret).sign(msg_id, timestamp, body)
    headers = {
        "svix-id": msg_id,
        "svix-timestamp": str(int(timestamp.timestamp())),
        "svix-signature": signature,
        "Content-Type": "application/json",
    }
    return body.encode(), headers


def clerk_user_data(
    clerk_id: str = "user_clerk_1",
    email: str = "jane@example.com",
    first_name: str | None = "Jane",
    last_name: str | None = "Doe",
    **extra: Any,
) -> Dict[str, Any]:
    """A ``user.*`` payload as Clerk sends it."""
    data = {
        "id": clerk_id,
        "object": "user",
        "email_addresses": [{"id": "idn_1", "email_address": email}],
        "primary_email_address_id": "idn_1",
        "first_name": first_name,
        "last_name": last_name,
        "image_url": "https://img.clerk.com/avatar.png",
        "username": None,
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
        "last_sign_in_at": None,
    }
    data.update(extra)
    return data


def clerk_membership_data(
    organization_id: str = "org_acme",
    user_id: str = "user_regular",
    role: str = "org:member",
) -> Dict[str, Any]:
    return {
        "id": "orgmem_1",
        "object": "organization_membership",
        "role": role,
        "organization": {"id": organization_id, "name": "Acme Corp", "slug": "acme-corp"},
        "public_user_data": {"user_id": user_id, "identifier": "user@example.com"},
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
    }


@pytest.fixture
def webhook_event() -> Callable[..., Dict[str, Any]]:
    """Factory for webhook envelopes."""
    def build(event_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"data": data, "object": "event", "type": event_type}
    return build
