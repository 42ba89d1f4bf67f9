"""Pydantic domain models.

These models are returned by DAOs and services. SQLAlchemy ORM objects never
leave the DAO layer; they are always converted to these models first.
"""

from datetime import datetime
from typing import Literal

from pydantic import Field

from upqueue.enums import DispositionMode, UploadState
from upqueue.models.base import JsonModel


class OwnerRef(JsonModel):
    """Tagged reference to the business entity an upload is attached to.

    ``slot`` names the attribute on the owner (e.g. ``avatar`` or ``photos``).
    """

    type: str
    id: str
    slot: str


class SignedPolicy(JsonModel):
    """A presigned POST authorization for exactly one upload.

    ``fields`` holds every form field the browser must submit alongside the
    file, in the form the storage backend expects them; ``url`` is where the
    form is posted.
    """

    access_key_id: str
    policy_document: str
    signature: str
    content_disposition: DispositionMode
    server_side_encryption: Literal[True] = True
    fields: dict[str, str] = Field(default_factory=dict)
    url: str
    expires_at: datetime


class UploadTicket(JsonModel):
    """Ephemeral upload authorization. Never persisted."""

    id: str
    target_key: str
    endpoint: str
    policy: SignedPolicy
    expires_at: datetime
    owner_type: str
    slot: str

    def form_fields(self) -> dict[str, str]:
        """Form fields to post to ``endpoint`` before the file part."""
        return dict(self.policy.fields)


class QueueEntry(JsonModel):
    """A completed upload awaiting ingestion by the owning application."""

    id: int
    uuid: str
    owner: OwnerRef
    filename: str
    content_type: str
    public_url: str
    private_url: str
    state: UploadState = UploadState.PENDING
    created_at: datetime
    imported_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.state == UploadState.PENDING
