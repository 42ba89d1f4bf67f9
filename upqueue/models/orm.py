"""SQLAlchemy ORM models.

These models define the database schema. DAOs convert them to pydantic
domain models before returning - SQLAlchemy objects never leak outside the
DAO layer.
"""

from sqlalchemy import Column, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import validates

from upqueue.clock import utcnow
from upqueue.database import Base
from upqueue.enums import UploadState
from upqueue.errors import InvalidStateTransition


class QueueEntryModel(Base):
    """Upload queue entry ORM model.

    One row per completed upload. ``uuid`` matches the ticket that authorized
    the upload; the unique constraint on it is what rejects double reports.
    """

    __tablename__ = "upload_queue_entries"

    __table_args__ = (
        UniqueConstraint("uuid", name="uq_upload_queue_entries_uuid"),
        Index("ix_upload_queue_entries_owner", "owner_type", "owner_id", "owner_slot"),
        Index("ix_upload_queue_entries_state_id", "state", "id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False)
    owner_type = Column(String, nullable=False)
    owner_id = Column(String, nullable=False)
    owner_slot = Column(String, nullable=False)
    filename = Column(String, nullable=False)
    content_type = Column(String, nullable=False)
    public_url = Column(Text, nullable=False)
    private_url = Column(Text, nullable=False)
    state = Column(String, nullable=False, default=UploadState.PENDING.value)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    imported_at = Column(DateTime, nullable=True)

    @validates("state")
    def _validate_state(self, key: str, value: str) -> str:
        current = self.state
        if current == UploadState.IMPORTED.value and value != UploadState.IMPORTED.value:
            raise InvalidStateTransition(
                f"Queue entry {self.id} is imported and cannot move to {value}"
            )
        return UploadState(value).value

    @validates("uuid", "private_url")
    def _validate_write_once(self, key: str, value: str) -> str:
        current = getattr(self, key)
        if current is not None and current != value:
            raise InvalidStateTransition(f"{key} of queue entry {self.id} is immutable")
        return value
