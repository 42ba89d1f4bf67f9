"""Tests for the QueueEntryModel attribute guards."""

import pytest
from sqlalchemy import select

from upqueue.database import Database
from upqueue.enums import UploadState
from upqueue.errors import InvalidStateTransition
from upqueue.models.orm import QueueEntryModel

UPLOAD_ID = "6f1c8e8a-3d2b-4a47-9a55-0b1f7e2c9d10"


def make_model(**overrides) -> QueueEntryModel:
    values = dict(
        uuid=UPLOAD_ID,
        owner_type="product",
        owner_id="1",
        owner_slot="photos",
        filename="a.png",
        content_type="image/png",
        public_url=f"https://bucket/{UPLOAD_ID}/a.png",
        private_url=f"s3://bucket/{UPLOAD_ID}/a.png",
        state=UploadState.PENDING.value,
    )
    values.update(overrides)
    return QueueEntryModel(**values)


def test_pending_to_imported_is_allowed():
    model = make_model()

    model.state = UploadState.IMPORTED

    assert model.state == "imported"


def test_imported_cannot_move_back():
    model = make_model(state=UploadState.IMPORTED.value)

    with pytest.raises(InvalidStateTransition):
        model.state = UploadState.PENDING.value


def test_unknown_state_rejected():
    model = make_model()

    with pytest.raises(ValueError):
        model.state = "archived"


def test_uuid_and_private_url_are_write_once():
    model = make_model()

    with pytest.raises(InvalidStateTransition):
        model.uuid = "0d6b1e5c-7f7a-4d7e-8c3f-2a9b5e4f1c22"
    with pytest.raises(InvalidStateTransition):
        model.private_url = "s3://bucket/elsewhere"


async def test_guard_applies_to_loaded_rows(test_db: Database):
    async with test_db.session() as session:
        session.add(make_model(state=UploadState.IMPORTED.value))

    with pytest.raises(InvalidStateTransition):
        async with test_db.session() as session:
            model = (await session.execute(select(QueueEntryModel))).scalar_one()
            model.state = UploadState.PENDING.value

    async with test_db.session() as session:
        model = (await session.execute(select(QueueEntryModel))).scalar_one()
        assert model.state == UploadState.IMPORTED.value
