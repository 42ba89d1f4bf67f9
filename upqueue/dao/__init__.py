"""Data Access Objects package."""

from .base import BaseDAO
from .queue_entry_dao import QueueEntryDAO

__all__ = [
    "BaseDAO",
    "QueueEntryDAO",
]
