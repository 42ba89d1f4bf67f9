"""Ingestion hook dispatch.

Owner types that registered an Ingestible hook get told about every new
queue entry. A failing hook never affects the entry: it is already committed,
stays pending and can be drained later via QueueEntryDAO.pending().
"""

from __future__ import annotations

import logging

from upqueue.errors import HookFailure
from upqueue.models.domain import OwnerRef
from upqueue.services.owner_registry import OwnerRegistry

logger = logging.getLogger(__name__)


class IngestionHookDispatcher:
    """Best-effort notifier for owner ingestion hooks."""

    def __init__(self, registry: OwnerRegistry) -> None:
        self._registry = registry

    async def notify_created(self, owner: OwnerRef, queue_entry_id: int) -> bool:
        """Invoke the owner's ingestion hook for a freshly committed entry.

        Args:
            owner: Owner the entry belongs to.
            queue_entry_id: Id of the committed queue entry.

        Returns:
            True if a hook ran and returned normally, False if the owner type
            has no hook or the hook failed.
        """
        hook = self._registry.ingestion_hook(owner.type)
        if hook is None:
            logger.debug("No ingestion hook for owner type %s", owner.type)
            return False

        try:
            await hook.import_upload(owner, queue_entry_id)
        except Exception as e:
            failure = HookFailure(owner, queue_entry_id, e)
            logger.warning(
                "%s; entry stays pending for later draining",
                failure.message,
                exc_info=True,
            )
            return False

        logger.info(
            "Ingestion hook ran for %s:%s entry %s",
            owner.type,
            owner.id,
            queue_entry_id,
        )
        return True
