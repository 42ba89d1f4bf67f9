"""StrEnum definitions for type-safe constants."""

from enum import StrEnum


class UploadState(StrEnum):
    """Queue entry lifecycle states.

    The only allowed transition is PENDING -> IMPORTED.
    """

    PENDING = "pending"
    IMPORTED = "imported"


class DispositionMode(StrEnum):
    """Content-Disposition modes a ticket may sign for."""

    INLINE = "inline"
    ATTACHMENT = "attachment"


class SlotCardinality(StrEnum):
    """How many uploads an owner may hold in a named slot."""

    SINGLE = "single"
    MULTIPLE = "multiple"


class SignatureVersion(StrEnum):
    """botocore signature versions usable for presigned POSTs."""

    S3V4 = "s3v4"
    S3 = "s3"
