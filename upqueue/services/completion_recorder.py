"""Completion recording: turn a client's "upload finished" report into a queue entry."""

import logging
import uuid as uuid_lib

from upqueue.dao.queue_entry_dao import QueueEntryDAO
from upqueue.errors import DuplicateUpload, InvalidUpload, UrlMismatch
from upqueue.models.domain import OwnerRef, QueueEntry
from upqueue.security.capability import CapabilityContext
from upqueue.services.hook_dispatcher import IngestionHookDispatcher
from upqueue.services.owner_registry import OwnerRegistry
from upqueue.services.storage_location import StorageLocations

logger = logging.getLogger(__name__)


def _canonical_uuid(value: str) -> str:
    try:
        return str(uuid_lib.UUID((value or "").strip()))
    except ValueError as e:
        raise InvalidUpload(f"Malformed upload id: {value!r}") from e


class CompletionRecorder:
    """Validates completion reports and records them as pending queue entries.

    Every check runs before anything is written, so a rejected report leaves
    no row behind. The hook dispatch happens only after the entry is
    committed.
    """

    def __init__(
        self,
        store: QueueEntryDAO,
        locations: StorageLocations,
        registry: OwnerRegistry,
        dispatcher: IngestionHookDispatcher,
    ) -> None:
        self.store = store
        self.locations = locations
        self.registry = registry
        self.dispatcher = dispatcher

    async def record_completion(
        self,
        uuid: str,
        filename: str,
        content_type: str,
        public_url: str,
        owner: OwnerRef,
        context: CapabilityContext,
    ) -> QueueEntry:
        """Record a finished upload.

        Args:
            uuid: Ticket id the upload was made with.
            filename: Original file name as reported by the client.
            content_type: MIME type the file was uploaded with.
            public_url: Location the storage backend reported for the object.
            owner: Owner (type, id, slot) to attach the upload to.
            context: Acting user, checked against the owner.

        Returns:
            The new pending QueueEntry.

        Raises:
            InvalidUpload: Malformed uuid, blank filename or disallowed type.
            UnknownOwner: Owner type or slot not registered.
            OwnerUnauthorized: Actor may not attach to this owner.
            UrlMismatch: public_url does not name ``filename`` under this uuid's key.
            DuplicateUpload: uuid already recorded.
        """
        uuid = _canonical_uuid(uuid)
        filename = (filename or "").strip()
        if not filename:
            raise InvalidUpload("A filename is required")

        slot = self.registry.slot(owner.type, owner.slot)
        await self.registry.authorize(context, owner)

        content_type = (content_type or "").strip()
        if not content_type.startswith(slot.content_type_prefix):
            raise InvalidUpload(
                f"Content type {content_type or '<none>'} is not allowed in "
                f"{owner.type}.{owner.slot}"
            )

        key = self.locations.object_key(uuid, public_url, filename)
        if key is None:
            logger.warning(
                "Rejected completion for %s: public URL %s is not %s under its key prefix",
                uuid,
                public_url,
                filename,
            )
            raise UrlMismatch(uuid, public_url)

        if await self.store.exists(uuid):
            raise DuplicateUpload(uuid)

        # The unique constraint still decides races between concurrent reports
        entry = await self.store.create(
            uuid=uuid,
            owner=owner,
            filename=filename,
            content_type=content_type,
            public_url=public_url.strip(),
            private_url=self.locations.private_url(key),
        )
        logger.info(
            "Recorded upload %s as queue entry %s for %s:%s.%s",
            uuid,
            entry.id,
            owner.type,
            owner.id,
            owner.slot,
        )

        await self.dispatcher.notify_created(owner, entry.id)
        return entry

    async def attachments(self, owner: OwnerRef) -> list[QueueEntry]:
        """Entries attached to an owner's slot, newest first.

        Single-cardinality slots only ever expose their newest entry.
        """
        slot = self.registry.slot(owner.type, owner.slot)
        entries = await self.store.for_owner(owner)
        if slot.is_single:
            return entries[:1]
        return entries
