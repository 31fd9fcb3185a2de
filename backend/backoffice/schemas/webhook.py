"""
Clerk Webhook Schemas
=====================

Payload shapes delivered by Clerk through Svix.

The outer envelope is parsed on receipt; the ``data`` object is parsed
into one of the typed payloads by the sync service that handles the
event, so malformed data surfaces as a sync validation failure.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ClerkWebhookEvent(BaseModel):
    """Outer webhook envelope."""

    data: Dict[str, Any]
    object: str = "event"
    type: str

    model_config = ConfigDict(extra="ignore")

    @property
    def entity(self) -> str:
        """Event family, e.g. ``user`` for ``user.created``."""
        return self.type.split(".", 1)[0]

    @property
    def action(self) -> str:
        """Event action, e.g. ``created`` for ``user.created``."""
        return self.type.split(".", 1)[1] if "." in self.type else ""


class ClerkEmailAddress(BaseModel):
    id: str
    email_address: str

    model_config = ConfigDict(extra="ignore")


class ClerkUserPayload(BaseModel):
    """``data`` of ``user.*`` events and items of the Clerk users API."""

    id: str = Field(..., min_length=1)
    email_addresses: List[ClerkEmailAddress] = Field(default_factory=list)
    primary_email_address_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    username: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    last_sign_in_at: Optional[int] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def first_email(self) -> str:
        """First listed address, or empty when Clerk has none."""
        if self.email_addresses:
            return self.email_addresses[0].email_address
        return ""


class ClerkDeletedObject(BaseModel):
    """``data`` of ``*.deleted`` events."""

    id: str = Field(..., min_length=1)
    deleted: bool = True

    model_config = ConfigDict(extra="ignore")


class ClerkOrganizationPayload(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    slug: str
    public_metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class ClerkOrganizationRef(BaseModel):
    id: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="ignore")


class ClerkPublicUserData(BaseModel):
    user_id: str = Field(..., min_length=1)
    identifier: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ClerkMembershipPayload(BaseModel):
    id: str = Field(..., min_length=1)
    role: str
    organization: ClerkOrganizationRef
    public_user_data: ClerkPublicUserData
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class TransformedUserData(BaseModel):
    clerk_id: str
    email: str
    first_name: str
    last_name: str
    created_at: str
    updated_at: str


class TransformedEvent(BaseModel):
    """Flattened user event, as logged and forwarded."""

    event: str
    data: TransformedUserData
    timestamp: int
