"""Unit tests for StrEnum definitions."""

import pytest

from upqueue.enums import DispositionMode, SignatureVersion, SlotCardinality, UploadState


class TestUploadState:
    def test_values(self):
        assert UploadState.PENDING == "pending"
        assert UploadState.IMPORTED == "imported"

    def test_only_two_states(self):
        assert len(UploadState) == 2


class TestDispositionMode:
    def test_values_are_header_tokens(self):
        """Values are written verbatim into the Content-Disposition form field."""
        assert DispositionMode.INLINE == "inline"
        assert DispositionMode.ATTACHMENT == "attachment"

    def test_invalid_value(self):
        with pytest.raises(ValueError):
            DispositionMode("download")


class TestSlotCardinality:
    def test_values(self):
        assert SlotCardinality("single") is SlotCardinality.SINGLE
        assert SlotCardinality("multiple") is SlotCardinality.MULTIPLE


class TestSignatureVersion:
    def test_botocore_names(self):
        assert SignatureVersion.S3V4.value == "s3v4"
        assert SignatureVersion.S3.value == "s3"
