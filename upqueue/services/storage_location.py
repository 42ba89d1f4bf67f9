"""Storage key and URL rules for uploads.

Key layout: ``{key_prefix}{uuid}/${filename}``. S3 substitutes ``${filename}``
with the name of the posted file, so every upload lands under a prefix only
its ticket knows.
"""

from __future__ import annotations

from urllib.parse import unquote, urlsplit

from upqueue.config import StorageCredentials

FILENAME_PLACEHOLDER = "${filename}"
PRIVATE_SCHEME = "s3"


def _normalize_prefix(prefix: str) -> str:
    prefix = (prefix or "").strip().lstrip("/")
    if prefix and not prefix.endswith("/"):
        prefix = f"{prefix}/"
    return prefix


class StorageLocations:
    """Computes storage keys for tickets and checks reported object URLs."""

    def __init__(
        self,
        credentials: StorageCredentials,
        *,
        key_prefix: str = "",
        public_base_url: str | None = None,
    ) -> None:
        self._credentials = credentials
        self._key_prefix = _normalize_prefix(key_prefix)
        self._public_base_url = (public_base_url or "").strip() or None

    @property
    def bucket(self) -> str:
        return self._credentials.bucket or ""

    def key_prefix_for(self, uuid: str) -> str:
        """Prefix every object uploaded with this ticket UUID lives under."""
        return f"{self._key_prefix}{uuid}/"

    def target_key(self, uuid: str) -> str:
        """Key template signed into the ticket's policy."""
        return f"{self.key_prefix_for(uuid)}{FILENAME_PLACEHOLDER}"

    def public_base_urls(self) -> list[str]:
        """Base URLs a completed upload may be reported under."""
        if self._public_base_url:
            return [self._public_base_url]

        bucket = self.bucket
        endpoint = self._credentials.endpoint_url
        if endpoint:
            return [f"{endpoint.rstrip('/')}/{bucket}"]

        region = self._credentials.region
        return [
            f"https://{bucket}.s3.amazonaws.com",
            f"https://{bucket}.s3.{region}.amazonaws.com",
            f"https://{bucket}.s3-{region}.amazonaws.com",
            f"https://s3.amazonaws.com/{bucket}",
            f"https://s3.{region}.amazonaws.com/{bucket}",
        ]

    def object_key(
        self, uuid: str, public_url: str, filename: str | None = None
    ) -> str | None:
        """Return the storage key ``public_url`` points at, if it belongs to ``uuid``.

        The URL must sit under one of the public base URLs and name exactly
        one object directly below the UUID's prefix. When ``filename`` is
        given, that object must be named ``filename``. Anything else yields None.
        """
        try:
            parsed = urlsplit((public_url or "").strip())
        except ValueError:
            return None
        if parsed.scheme not in ("http", "https") or parsed.query or parsed.fragment:
            return None

        expected_prefix = self.key_prefix_for(uuid)
        for base in self.public_base_urls():
            base_parts = urlsplit(base)
            if parsed.scheme != base_parts.scheme:
                continue
            if parsed.netloc.lower() != base_parts.netloc.lower():
                continue
            base_path = base_parts.path.rstrip("/") + "/"
            if not parsed.path.startswith(base_path):
                continue

            key = unquote(parsed.path[len(base_path):])
            if not key.startswith(expected_prefix):
                continue
            name = key[len(expected_prefix):]
            if not name or "/" in name or name in (".", ".."):
                continue
            if filename is not None and name != filename:
                continue
            return key
        return None

    def private_url(self, key: str) -> str:
        """Bucket-internal URL for a stored object, independent of public access."""
        return f"{PRIVATE_SCHEME}://{self.bucket}/{key}"


def parse_private_url(private_url: str) -> tuple[str, str]:
    """Split an ``s3://bucket/key`` URL into ``(bucket, key)``.

    Raises:
        ValueError: If the URL is not an s3:// URL with both parts.
    """
    parsed = urlsplit(private_url or "")
    key = parsed.path.lstrip("/")
    if parsed.scheme != PRIVATE_SCHEME or not parsed.netloc or not key:
        raise ValueError(f"Not a private storage URL: {private_url!r}")
    return parsed.netloc, key
