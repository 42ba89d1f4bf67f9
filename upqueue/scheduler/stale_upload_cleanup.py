"""Stale upload cleanup task.

Removes queue entries that were recorded but never imported within the
configured retention period. Imported entries are never deleted here.
Scheduling is up to the host application.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from upqueue.clock import utcnow

if TYPE_CHECKING:
    from upqueue.config import UploadConfig
    from upqueue.dao.queue_entry_dao import QueueEntryDAO

logger = logging.getLogger(__name__)


async def stale_upload_cleanup_task(
    store: "QueueEntryDAO",
    config: "UploadConfig",
) -> int:
    """Delete pending entries older than the retention window.

    Args:
        store: Queue entry store.
        config: Application configuration with retention settings.

    Returns:
        Number of entries deleted.
    """
    retention_hours = config.stale_upload_retention_hours
    cutoff = utcnow() - timedelta(hours=retention_hours)
    logger.info(
        "Starting stale upload cleanup (retention: %d hours)",
        retention_hours,
    )

    try:
        stale = await store.stale_pending(cutoff)
        for entry in stale:
            logger.info(
                "Removing never-imported upload %s (entry %s, %s)",
                entry.uuid,
                entry.id,
                entry.private_url,
            )
        deleted_count = await store.destroy_stale(cutoff)
        logger.info("Stale upload cleanup completed: deleted %d entries", deleted_count)
        return deleted_count
    except Exception as e:
        logger.error("Stale upload cleanup failed: %s", e)
        raise
