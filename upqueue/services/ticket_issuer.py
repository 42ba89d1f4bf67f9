"""Upload ticket issuance.

Issuing a ticket touches no persistent state: an abandoned ticket simply
expires at the storage backend and leaves nothing behind.
"""

import logging
import uuid

from upqueue.models.domain import UploadTicket
from upqueue.services.credential_signer import CredentialSigner
from upqueue.services.owner_registry import OwnerRegistry
from upqueue.services.storage_location import StorageLocations

logger = logging.getLogger(__name__)


class TicketIssuer:
    """Creates one-time upload tickets for declared owner slots."""

    def __init__(
        self,
        signer: CredentialSigner,
        locations: StorageLocations,
        registry: OwnerRegistry,
    ) -> None:
        self.signer = signer
        self.locations = locations
        self.registry = registry

    def issue(self, owner_type: str, slot: str) -> UploadTicket:
        """Issue a ticket for uploading one file into ``owner_type.slot``.

        Args:
            owner_type: Registered owner type name.
            slot: Upload slot declared on that owner type.

        Returns:
            UploadTicket carrying a fresh UUID and the signed form fields.

        Raises:
            UnknownOwner: If the owner type or slot is not registered.
            SigningError: If the storage credentials are unusable.
        """
        upload_slot = self.registry.slot(owner_type, slot)
        ticket_id = str(uuid.uuid4())
        target_key = self.locations.target_key(ticket_id)

        policy = self.signer.sign(
            target_key,
            content_type_prefix=upload_slot.content_type_prefix,
            disposition=upload_slot.disposition,
        )
        logger.info("Issued upload ticket %s for %s.%s", ticket_id, owner_type, slot)
        return UploadTicket(
            id=ticket_id,
            target_key=target_key,
            endpoint=policy.url,
            policy=policy,
            expires_at=policy.expires_at,
            owner_type=owner_type,
            slot=slot,
        )
