"""Credential signer (S3 presigned POST policies).

Keeps AWS/S3 signing logic out of the issuer and recorder.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from upqueue.clock import utcnow
from upqueue.config import StorageCredentials
from upqueue.enums import DispositionMode
from upqueue.errors import SigningError
from upqueue.models.domain import SignedPolicy
from upqueue.services.storage_location import parse_private_url

logger = logging.getLogger(__name__)

SSE_ALGORITHM = "AES256"
SUCCESS_ACTION_STATUS = "201"

_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9.\-]{1,61}[a-z0-9]$")
_WHITESPACE_RE = re.compile(r"\s")


class CredentialSigner:
    """Produces time-boxed presigned POST policies for one storage key each.

    Signing is local: botocore computes the policy and signature from the
    configured long-lived credentials without calling AWS.
    """

    def __init__(
        self,
        credentials: StorageCredentials,
        *,
        ttl_seconds: int = 900,
        read_ttl_seconds: int = 3600,
    ) -> None:
        self._credentials = credentials
        self._ttl_seconds = ttl_seconds if ttl_seconds > 0 else 900
        self._read_ttl_seconds = read_ttl_seconds if read_ttl_seconds > 0 else 3600
        self._s3 = None

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def _validate_credentials(self) -> None:
        creds = self._credentials
        problems = []
        for name in ("access_key_id", "secret_access_key", "region", "bucket"):
            value = getattr(creds, name)
            if not value or not value.strip():
                problems.append(f"{name} is missing")
            elif _WHITESPACE_RE.search(value):
                problems.append(f"{name} contains whitespace")
        if creds.bucket and not _BUCKET_RE.match(creds.bucket):
            problems.append("bucket is not a valid S3 bucket name")
        if problems:
            raise SigningError("Storage credentials are misconfigured: " + "; ".join(problems))

    def _client(self):
        if self._s3 is None:
            self._validate_credentials()
            creds = self._credentials
            s3_options = {"addressing_style": "path"} if creds.endpoint_url else {}
            try:
                self._s3 = boto3.client(
                    "s3",
                    region_name=creds.region,
                    aws_access_key_id=creds.access_key_id,
                    aws_secret_access_key=creds.secret_access_key,
                    endpoint_url=creds.endpoint_url,
                    config=Config(
                        signature_version=creds.signature_version.value,
                        s3=s3_options,
                    ),
                )
            except (BotoCoreError, ValueError) as e:
                raise SigningError(f"Could not create S3 client: {e}") from e
        return self._s3

    def sign(
        self,
        target_key: str,
        content_type_prefix: str = "",
        disposition: DispositionMode = DispositionMode.ATTACHMENT,
    ) -> SignedPolicy:
        """Sign a POST policy for a single key.

        The policy pins the key, the ACL, the success status, one
        Content-Type prefix, the Content-Disposition mode and AES256
        server-side encryption.

        Args:
            target_key: Storage key; a trailing ``${filename}`` is scoped as a
                prefix match on everything before it.
            content_type_prefix: Content-Type the upload must start with
                ("" allows any type).
            disposition: Content-Disposition mode the upload must declare.

        Returns:
            SignedPolicy with the full form field bundle.

        Raises:
            SigningError: If credentials are absent/malformed or signing fails.
        """
        if not target_key or not target_key.strip():
            raise SigningError("A target key is required to sign an upload policy")
        disposition = DispositionMode(disposition)
        client = self._client()
        creds = self._credentials

        fields = {
            "acl": creds.default_acl,
            "success_action_status": SUCCESS_ACTION_STATUS,
            "x-amz-server-side-encryption": SSE_ALGORITHM,
            "Content-Disposition": disposition.value,
        }
        conditions = [
            {"acl": creds.default_acl},
            {"success_action_status": SUCCESS_ACTION_STATUS},
            {"x-amz-server-side-encryption": SSE_ALGORITHM},
            ["starts-with", "$Content-Type", content_type_prefix or ""],
            ["starts-with", "$Content-Disposition", disposition.value],
        ]

        expires_at = utcnow() + timedelta(seconds=self._ttl_seconds)
        try:
            presigned = client.generate_presigned_post(
                Bucket=creds.bucket,
                Key=target_key,
                Fields=fields,
                Conditions=conditions,
                ExpiresIn=self._ttl_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise SigningError(f"Could not sign upload policy: {e}") from e

        post_fields = {k: str(v) for k, v in presigned["fields"].items()}
        # SigV4 names it x-amz-signature, legacy SigV2 just signature
        signature = post_fields.get("x-amz-signature") or post_fields.get("signature")
        if not signature or "policy" not in post_fields:
            raise SigningError("Signer returned an incomplete policy")

        logger.info(
            "Signed upload policy (bucket=%s key=%s ttl=%s)",
            creds.bucket,
            target_key,
            self._ttl_seconds,
        )
        return SignedPolicy(
            access_key_id=creds.access_key_id,
            policy_document=post_fields["policy"],
            signature=signature,
            content_disposition=disposition,
            fields=post_fields,
            url=presigned["url"],
            expires_at=expires_at,
        )

    def presign_read(self, private_url: str, expires_in_seconds: int | None = None) -> str:
        """Presign a GET for an ``s3://bucket/key`` private URL.

        Ingestion hooks use this to fetch objects from a private bucket.
        Defaults to the configured read TTL.
        """
        try:
            bucket, key = parse_private_url(private_url)
        except ValueError as e:
            raise SigningError(str(e)) from e
        if expires_in_seconds is None:
            expires_in_seconds = self._read_ttl_seconds
        elif expires_in_seconds <= 0:
            expires_in_seconds = 60

        client = self._client()
        try:
            url = client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_in_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise SigningError(f"Could not presign read URL: {e}") from e

        logger.debug(
            "Generated presigned read URL (bucket=%s key=%s ttl=%s)",
            bucket,
            key,
            expires_in_seconds,
        )
        return url
