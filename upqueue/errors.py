"""Upload error taxonomy.

Every error carries the HTTP status it maps to so the API layer can turn it
into a ``{"message": ...}`` body without a lookup table.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from upqueue.models.domain import OwnerRef


class UploadError(Exception):
    """Base class for all upload errors."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SigningError(UploadError):
    """Storage credentials are absent or malformed, or signing failed."""

    status_code = 500


class InvalidUpload(UploadError):
    """The completion report itself is malformed."""

    status_code = 400


class UnknownOwner(UploadError):
    """Owner type or slot is not registered."""

    status_code = 404


class OwnerUnauthorized(UploadError):
    """The acting user may not attach uploads to the target owner."""

    status_code = 403


class DuplicateUpload(UploadError):
    """An entry for this upload UUID was already recorded."""

    status_code = 409

    def __init__(self, uuid: str) -> None:
        super().__init__(f"Upload {uuid} has already been recorded")
        self.uuid = uuid


class UrlMismatch(UploadError):
    """The reported public URL does not point at the key issued for the UUID."""

    status_code = 422

    def __init__(self, uuid: str, public_url: str) -> None:
        super().__init__(
            f"Public URL does not reference the storage key issued for upload {uuid}"
        )
        self.uuid = uuid
        self.public_url = public_url


class QueueEntryNotFound(UploadError):
    status_code = 404

    def __init__(self, entry_id: int) -> None:
        super().__init__(f"Queue entry {entry_id} not found")
        self.entry_id = entry_id


class InvalidStateTransition(UploadError):
    """Raised by the ORM model when an imported entry would move backwards."""

    status_code = 409


class HookFailure(UploadError):
    """An owner's ingestion hook raised.

    Never propagated to callers: the dispatcher logs it and the entry stays
    pending for later draining.
    """

    status_code = 500

    def __init__(self, owner: "OwnerRef", queue_entry_id: int, cause: BaseException) -> None:
        super().__init__(
            f"Ingestion hook for {owner.type}:{owner.id} failed on entry "
            f"{queue_entry_id}: {cause!r}"
        )
        self.owner = owner
        self.queue_entry_id = queue_entry_id
        self.cause = cause
