"""Upload queue entry data access operations."""

from collections.abc import AsyncIterator
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from upqueue.clock import utcnow
from upqueue.dao.base import BaseDAO
from upqueue.enums import UploadState
from upqueue.errors import DuplicateUpload, QueueEntryNotFound
from upqueue.models.domain import OwnerRef, QueueEntry
from upqueue.models.orm import QueueEntryModel


class QueueEntryDAO(BaseDAO[QueueEntryModel, QueueEntry]):
    """Persisted queue of completed uploads.

    All methods return pydantic QueueEntry models, never SQLAlchemy objects.
    State only ever moves pending -> imported; there is no method that
    moves an entry back.
    """

    @staticmethod
    def _to_domain(model: QueueEntryModel) -> QueueEntry:
        return QueueEntry(
            id=model.id,
            uuid=model.uuid,
            owner=OwnerRef(
                type=model.owner_type,
                id=model.owner_id,
                slot=model.owner_slot,
            ),
            filename=model.filename,
            content_type=model.content_type,
            public_url=model.public_url,
            private_url=model.private_url,
            state=UploadState(model.state),
            created_at=model.created_at,
            imported_at=model.imported_at,
        )

    @staticmethod
    def _owner_filter(stmt, owner: OwnerRef):
        stmt = stmt.where(QueueEntryModel.owner_type == owner.type).where(
            QueueEntryModel.owner_id == owner.id
        )
        if owner.slot:
            stmt = stmt.where(QueueEntryModel.owner_slot == owner.slot)
        return stmt

    async def create(
        self,
        *,
        uuid: str,
        owner: OwnerRef,
        filename: str,
        content_type: str,
        public_url: str,
        private_url: str,
    ) -> QueueEntry:
        """Persist a new pending entry.

        The entry is committed by the time this returns.

        Raises:
            DuplicateUpload: If an entry with this uuid already exists.
        """
        try:
            async with self._db.session() as session:
                model = QueueEntryModel(
                    uuid=uuid,
                    owner_type=owner.type,
                    owner_id=owner.id,
                    owner_slot=owner.slot,
                    filename=filename,
                    content_type=content_type,
                    public_url=public_url,
                    private_url=private_url,
                    state=UploadState.PENDING.value,
                    created_at=utcnow(),
                )
                session.add(model)
                await session.flush()
                entry = self._to_domain(model)
        except IntegrityError as e:
            raise DuplicateUpload(uuid) from e
        return entry

    async def get_by_id(self, entry_id: int) -> QueueEntry | None:
        return await self._fetch_one(
            select(QueueEntryModel).where(QueueEntryModel.id == entry_id)
        )

    async def get_by_uuid(self, uuid: str) -> QueueEntry | None:
        return await self._fetch_one(
            select(QueueEntryModel).where(QueueEntryModel.uuid == uuid)
        )

    async def exists(self, uuid: str) -> bool:
        async with self._db.session() as session:
            result = await session.execute(
                select(QueueEntryModel.id).where(QueueEntryModel.uuid == uuid)
            )
            return result.first() is not None

    async def pending(
        self,
        owner: OwnerRef | None = None,
        *,
        batch_size: int = 100,
    ) -> AsyncIterator[QueueEntry]:
        """Iterate pending entries in insertion order.

        Reads lazily in batches using keyset pagination on the id. Each call
        starts a fresh pass; the pass ends at the highest id that existed when
        it started, so it always terminates even while new uploads arrive.

        Args:
            owner: Optional owner filter. An empty ``slot`` matches every slot.
            batch_size: Rows fetched per round trip.

        Yields:
            QueueEntry domain models in PENDING state.
        """
        batch_size = max(1, batch_size)
        async with self._db.session() as session:
            ceiling = (
                await session.execute(select(func.max(QueueEntryModel.id)))
            ).scalar()
        if ceiling is None:
            return

        last_id = 0
        while True:
            stmt = (
                select(QueueEntryModel)
                .where(QueueEntryModel.state == UploadState.PENDING.value)
                .where(QueueEntryModel.id > last_id)
                .where(QueueEntryModel.id <= ceiling)
            )
            if owner is not None:
                stmt = self._owner_filter(stmt, owner)
            batch = await self._fetch_all(
                stmt.order_by(QueueEntryModel.id).limit(batch_size)
            )

            for entry in batch:
                yield entry

            if len(batch) < batch_size:
                return
            last_id = batch[-1].id

    async def mark_imported(self, entry_id: int) -> QueueEntry:
        """Move an entry from pending to imported.

        Calling this on an already imported entry returns it unchanged, so
        workers can retry freely. ``imported_at`` is only set by the first
        successful call.

        Raises:
            QueueEntryNotFound: If no entry has this id.
        """
        async with self._db.session() as session:
            await session.execute(
                update(QueueEntryModel)
                .where(QueueEntryModel.id == entry_id)
                .where(QueueEntryModel.state == UploadState.PENDING.value)
                .values(state=UploadState.IMPORTED.value, imported_at=utcnow())
            )
            result = await session.execute(
                select(QueueEntryModel).where(QueueEntryModel.id == entry_id)
            )
            model = result.scalar_one_or_none()
            if model is None:
                raise QueueEntryNotFound(entry_id)
            return self._to_domain(model)

    async def for_owner(self, owner: OwnerRef) -> list[QueueEntry]:
        """All entries for an owner (any state), newest first."""
        return await self._fetch_all(
            self._owner_filter(select(QueueEntryModel), owner).order_by(
                QueueEntryModel.id.desc()
            )
        )

    async def destroy(self, entry_id: int) -> bool:
        """Delete an entry. Returns True if a row was removed."""
        async with self._db.session() as session:
            result = await session.execute(
                delete(QueueEntryModel).where(QueueEntryModel.id == entry_id)
            )
            return result.rowcount > 0

    async def stale_pending(self, older_than: datetime) -> list[QueueEntry]:
        """Pending entries created before ``older_than``, oldest first."""
        return await self._fetch_all(
            select(QueueEntryModel)
            .where(QueueEntryModel.state == UploadState.PENDING.value)
            .where(QueueEntryModel.created_at < older_than)
            .order_by(QueueEntryModel.id)
        )

    async def destroy_stale(self, older_than: datetime) -> int:
        """Delete pending entries created before ``older_than``.

        Imported entries are never touched.

        Returns:
            Number of entries deleted.
        """
        async with self._db.session() as session:
            result = await session.execute(
                delete(QueueEntryModel)
                .where(QueueEntryModel.state == UploadState.PENDING.value)
                .where(QueueEntryModel.created_at < older_than)
            )
            return result.rowcount or 0
