"""Tests for CompletionRecorder.

Uses a real in-memory store so the "nothing written on rejection" guarantee
is checked against actual rows.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest

from upqueue.dao.queue_entry_dao import QueueEntryDAO
from upqueue.database import Database
from upqueue.enums import UploadState
from upqueue.errors import (
    DuplicateUpload,
    InvalidUpload,
    OwnerUnauthorized,
    UnknownOwner,
    UrlMismatch,
)
from upqueue.models.domain import OwnerRef, QueueEntry
from upqueue.security.capability import CapabilityContext
from upqueue.services.completion_recorder import CompletionRecorder
from upqueue.services.hook_dispatcher import IngestionHookDispatcher
from upqueue.services.owner_registry import OwnerRegistry
from upqueue.services.storage_location import StorageLocations

PRODUCT_PHOTOS = OwnerRef(type="product", id="7", slot="photos")
PRODUCT_MANUAL = OwnerRef(type="product", id="7", slot="manual")
ALICE = CapabilityContext(actor_id="alice")


class RecordingHook:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[OwnerRef, int]] = []

    async def import_upload(self, owner: OwnerRef, queue_entry_id: int) -> None:
        self.calls.append((owner, queue_entry_id))
        if self.fail:
            raise RuntimeError("importer down")


class FixedAuthorizer:
    def __init__(self, allowed: bool) -> None:
        self.allowed = allowed

    async def can_attach(self, context: CapabilityContext, owner: OwnerRef) -> bool:
        return self.allowed


@pytest.fixture
def recorder(
    store: QueueEntryDAO, locations: StorageLocations, registry: OwnerRegistry
) -> CompletionRecorder:
    return CompletionRecorder(store, locations, registry, IngestionHookDispatcher(registry))


async def record(
    recorder: CompletionRecorder,
    upload_id: str,
    *,
    public_url: str | None = None,
    filename: str = "a.png",
    content_type: str = "image/png",
    owner: OwnerRef = PRODUCT_PHOTOS,
    context: CapabilityContext = ALICE,
):
    return await recorder.record_completion(
        uuid=upload_id,
        filename=filename,
        content_type=content_type,
        public_url=public_url or f"https://bucket/{upload_id}/{filename}",
        owner=owner,
        context=context,
    )


async def pending_rows(store: QueueEntryDAO) -> list:
    return [entry async for entry in store.pending()]


class TestRecordCompletion:
    async def test_records_pending_entry(self, recorder: CompletionRecorder):
        upload_id = str(uuid.uuid4())

        entry = await record(recorder, upload_id)

        assert entry.uuid == upload_id
        assert entry.state == UploadState.PENDING
        assert entry.owner == PRODUCT_PHOTOS
        assert entry.public_url == f"https://bucket/{upload_id}/a.png"
        assert entry.private_url == f"s3://bucket/{upload_id}/a.png"

    async def test_uuid_is_canonicalized(self, recorder: CompletionRecorder):
        upload_id = uuid.uuid4()

        entry = await record(
            recorder,
            str(upload_id).upper(),
            public_url=f"https://bucket/{upload_id}/a.png",
        )

        assert entry.uuid == str(upload_id)

    async def test_foreign_url_is_rejected_without_a_row(
        self, recorder: CompletionRecorder, store: QueueEntryDAO
    ):
        upload_id = str(uuid.uuid4())

        with pytest.raises(UrlMismatch):
            await record(recorder, upload_id, public_url=f"https://evil.example/{upload_id}/a.png")

        assert await pending_rows(store) == []

    async def test_url_for_another_uuid_is_rejected(self, recorder: CompletionRecorder):
        upload_id = str(uuid.uuid4())

        with pytest.raises(UrlMismatch):
            await record(recorder, upload_id, public_url=f"https://bucket/{uuid.uuid4()}/a.png")

    async def test_object_named_differently_from_filename_is_rejected(
        self, recorder: CompletionRecorder, store: QueueEntryDAO
    ):
        upload_id = str(uuid.uuid4())

        with pytest.raises(UrlMismatch):
            await record(
                recorder,
                upload_id,
                filename="a.png",
                public_url=f"https://bucket/{upload_id}/payload.exe",
            )

        assert await pending_rows(store) == []

    async def test_second_report_is_duplicate(
        self, recorder: CompletionRecorder, store: QueueEntryDAO
    ):
        upload_id = str(uuid.uuid4())
        await record(recorder, upload_id)

        with pytest.raises(DuplicateUpload):
            await record(recorder, upload_id)

        assert len(await pending_rows(store)) == 1

    @pytest.mark.parametrize("bad_id", ["", "not-a-uuid", "1234"])
    async def test_malformed_uuid(self, recorder: CompletionRecorder, bad_id: str):
        with pytest.raises(InvalidUpload):
            await record(recorder, bad_id, public_url="https://bucket/x/a.png")

    async def test_blank_filename(self, recorder: CompletionRecorder):
        upload_id = str(uuid.uuid4())

        with pytest.raises(InvalidUpload):
            await record(
                recorder, upload_id, filename="  ", public_url=f"https://bucket/{upload_id}/a.png"
            )

    async def test_content_type_outside_slot_prefix(
        self, recorder: CompletionRecorder, store: QueueEntryDAO
    ):
        upload_id = str(uuid.uuid4())

        with pytest.raises(InvalidUpload):
            await record(recorder, upload_id, content_type="application/pdf")

        assert await pending_rows(store) == []

    async def test_unknown_owner_type(self, recorder: CompletionRecorder):
        with pytest.raises(UnknownOwner):
            await record(
                recorder,
                str(uuid.uuid4()),
                owner=OwnerRef(type="invoice", id="1", slot="photos"),
            )

    async def test_unknown_slot(self, recorder: CompletionRecorder):
        with pytest.raises(UnknownOwner):
            await record(
                recorder,
                str(uuid.uuid4()),
                owner=OwnerRef(type="product", id="1", slot="videos"),
            )

    async def test_authorizer_denial(
        self,
        recorder: CompletionRecorder,
        registry: OwnerRegistry,
        store: QueueEntryDAO,
    ):
        registry.attach("product", authorizer=FixedAuthorizer(False))

        with pytest.raises(OwnerUnauthorized):
            await record(recorder, str(uuid.uuid4()))

        assert await pending_rows(store) == []

    async def test_global_allow_list(
        self, store: QueueEntryDAO, locations: StorageLocations, registry: OwnerRegistry
    ):
        restricted = OwnerRegistry(allowed_actors=["@bob"])
        restricted.register("product", registry.lookup("product").slots.values())
        recorder = CompletionRecorder(
            store, locations, restricted, IngestionHookDispatcher(restricted)
        )

        with pytest.raises(OwnerUnauthorized):
            await record(recorder, str(uuid.uuid4()), context=ALICE)

        entry = await record(recorder, str(uuid.uuid4()), context=CapabilityContext("Bob"))
        assert entry.is_pending

    async def test_unauthorized_wins_over_url_mismatch(
        self, recorder: CompletionRecorder, registry: OwnerRegistry
    ):
        registry.attach("product", authorizer=FixedAuthorizer(False))
        upload_id = str(uuid.uuid4())

        with pytest.raises(OwnerUnauthorized):
            await record(recorder, upload_id, public_url="https://evil.example/x.png")


class TestHookDispatch:
    async def test_hook_receives_committed_entry(
        self, recorder: CompletionRecorder, registry: OwnerRegistry, store: QueueEntryDAO
    ):
        hook = RecordingHook()
        registry.attach("product", ingestion_hook=hook)

        entry = await record(recorder, str(uuid.uuid4()))

        assert hook.calls == [(PRODUCT_PHOTOS, entry.id)]
        assert await store.get_by_id(entry.id) == entry

    async def test_failing_hook_keeps_entry_pending(
        self, recorder: CompletionRecorder, registry: OwnerRegistry, store: QueueEntryDAO
    ):
        registry.attach("product", ingestion_hook=RecordingHook(fail=True))

        entry = await record(recorder, str(uuid.uuid4()))

        assert entry.is_pending
        assert [e.id for e in await pending_rows(store)] == [entry.id]

    async def test_hook_not_called_on_rejection(
        self, recorder: CompletionRecorder, registry: OwnerRegistry
    ):
        hook = RecordingHook()
        registry.attach("product", ingestion_hook=hook)
        upload_id = str(uuid.uuid4())

        with pytest.raises(UrlMismatch):
            await record(recorder, upload_id, public_url=f"https://evil.example/{upload_id}/a.png")

        assert hook.calls == []

    async def test_dispatch_runs_after_create(self, store, locations, registry):
        dispatcher = AsyncMock(spec=IngestionHookDispatcher)
        recorder = CompletionRecorder(store, locations, registry, dispatcher)

        entry = await record(recorder, str(uuid.uuid4()))

        dispatcher.notify_created.assert_awaited_once_with(PRODUCT_PHOTOS, entry.id)


class TestAttachments:
    async def test_multiple_slot_lists_newest_first(self, recorder: CompletionRecorder):
        first = await record(recorder, str(uuid.uuid4()))
        second = await record(recorder, str(uuid.uuid4()))

        attachments = await recorder.attachments(PRODUCT_PHOTOS)

        assert [e.id for e in attachments] == [second.id, first.id]

    async def test_single_slot_exposes_only_newest(self, recorder: CompletionRecorder):
        await record(
            recorder,
            str(uuid.uuid4()),
            filename="v1.pdf",
            content_type="application/pdf",
            owner=PRODUCT_MANUAL,
        )
        newest = await record(
            recorder,
            str(uuid.uuid4()),
            filename="v2.pdf",
            content_type="application/pdf",
            owner=PRODUCT_MANUAL,
        )

        attachments = await recorder.attachments(PRODUCT_MANUAL)

        assert [e.id for e in attachments] == [newest.id]


class TestConcurrentReports:
    async def test_concurrent_reports_for_one_uuid_record_once(
        self, tmp_path, locations: StorageLocations, registry: OwnerRegistry
    ):
        db = Database(f"sqlite+aiosqlite:///{tmp_path / 'reports.db'}")
        await db.init_db()
        try:
            store = QueueEntryDAO(db)
            hook = RecordingHook()
            registry.attach("product", ingestion_hook=hook)
            recorder = CompletionRecorder(
                store, locations, registry, IngestionHookDispatcher(registry)
            )
            upload_id = str(uuid.uuid4())

            results = await asyncio.gather(
                *[record(recorder, upload_id) for _ in range(5)],
                return_exceptions=True,
            )

            winners = [r for r in results if isinstance(r, QueueEntry)]
            losers = [r for r in results if isinstance(r, DuplicateUpload)]
            assert len(winners) == 1
            assert len(losers) == 4
            assert hook.calls == [(PRODUCT_PHOTOS, winners[0].id)]
            assert [e.uuid for e in await pending_rows(store)] == [upload_id]
        finally:
            await db.close()
