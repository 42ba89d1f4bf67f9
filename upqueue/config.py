"""Configuration with JSON file, secrets.yml, and env variable support.

Storage credentials are read once at startup and handed to the credential
signer as an immutable StorageCredentials value; nothing here is mutated at
runtime.
"""

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from upqueue.enums import DispositionMode, SignatureVersion, SlotCardinality


def _find_repo_root(*, start: Path) -> Path:
    """Best-effort repository root discovery.

    First directory containing `pyproject.toml`, otherwise the current
    working directory.
    """

    try:
        start = start.resolve()
        for p in [start, *start.parents]:
            if (p / "pyproject.toml").exists():
                return p
    except OSError:
        pass

    return Path.cwd()


def _flatten_secrets_mapping(secrets: dict) -> dict:
    """Flatten secrets mapping into UploadConfig-compatible keys.

    Converts nested YAML structure to flat config keys:
        aws.access_key_id -> aws_access_key_id
        s3.bucket -> s3_bucket
    """
    flat = {}
    for section, values in secrets.items():
        if isinstance(values, dict):
            for key, value in values.items():
                flat[f"{section}_{key}"] = value
        else:
            flat[section] = values
    return flat


def _load_secrets(secrets_path: Path) -> dict:
    """Load and flatten secrets from YAML file."""
    if not secrets_path.exists():
        return {}

    with open(secrets_path, encoding="utf-8") as f:
        secrets = yaml.safe_load(f) or {}

    if not isinstance(secrets, dict):
        return {}

    return _flatten_secrets_mapping(secrets)


class SlotConfig(BaseModel):
    """Declaration of one upload slot on an owner type."""

    cardinality: SlotCardinality = SlotCardinality.MULTIPLE
    content_type_prefix: str = ""
    disposition: DispositionMode = DispositionMode.ATTACHMENT


class StorageCredentials(BaseModel):
    """Immutable long-lived credentials used to sign upload policies."""

    model_config = ConfigDict(frozen=True)

    access_key_id: str | None
    secret_access_key: str | None
    region: str | None
    bucket: str | None
    default_acl: str = "private"
    endpoint_url: str | None = None
    signature_version: SignatureVersion = SignatureVersion.S3V4


class UploadConfig(BaseSettings):
    """Configuration with JSON file + secrets.yml + env var support.

    Load order (later overrides earlier):
    1. config.json - base configuration
    2. secrets.yml - AWS credentials and access control
    3. Environment variables - runtime overrides

    Prefix: UPQUEUE_ (e.g., UPQUEUE_S3_BUCKET)
    """

    model_config = SettingsConfigDict(
        env_prefix="UPQUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # AWS / S3 settings
    aws_access_key_id: str | None = Field(default=None)
    aws_secret_access_key: str | None = Field(default=None)
    aws_region: str = Field(default="us-east-1")
    s3_bucket: str | None = Field(default=None)
    s3_default_acl: str = Field(default="private")
    s3_endpoint_url: str | None = Field(
        default=None,
        description="Custom S3 endpoint (e.g. LocalStack). Path-style URLs are used.",
    )
    s3_public_base_url: str | None = Field(
        default=None,
        description=(
            "Base URL objects are publicly addressed under (CDN or custom domain). "
            "When unset, the standard AWS virtual-hosted and path-style URLs are accepted."
        ),
    )
    s3_key_prefix: str = Field(
        default="uploads/",
        description="Prefix prepended to every storage key, e.g. 'uploads/'.",
    )
    s3_signature_version: SignatureVersion = Field(default=SignatureVersion.S3V4)

    # Ticket settings
    ticket_ttl_seconds: int = Field(
        default=900, description="How long a signed upload policy stays valid."
    )
    private_url_ttl_seconds: int = Field(
        default=3600, description="Lifetime of presigned read URLs handed to workers."
    )

    # Owners and access control
    owner_kinds: dict[str, dict[str, SlotConfig]] = Field(
        default_factory=dict,
        description=(
            "Owner types and their upload slots, e.g. "
            '{"product": {"photos": {"cardinality": "multiple", "content_type_prefix": "image/"}}}'
        ),
    )
    allowed_actors: list[str] = Field(
        default_factory=list,
        description=(
            "Optional allow-list of actor identifiers permitted to record uploads. "
            "Empty means every actor passes the global check."
        ),
    )

    # Database settings
    database_url: str = Field(default="sqlite+aiosqlite:///./upqueue.db")
    auto_create_tables: bool = Field(
        default=False,
        description=(
            "If true, create tables from ORM metadata on startup instead of relying "
            "on Alembic migrations."
        ),
    )

    # Retention
    stale_upload_retention_hours: int = Field(
        default=72,
        description="Pending entries older than this are removed by the cleanup task.",
    )

    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)

    # Logging
    log_level: str = Field(default="INFO")
    error_log_file_enabled: bool = Field(default=False)
    error_log_file_path: str = Field(default="./logs/upqueue-warnings.log")
    error_log_level: str = Field(default="WARNING")
    error_log_max_bytes: int = Field(default=10_485_760)
    error_log_backup_count: int = Field(default=5)

    def storage_credentials(self) -> StorageCredentials:
        """Snapshot the signing credentials as an immutable value."""
        return StorageCredentials(
            access_key_id=self.aws_access_key_id,
            secret_access_key=self.aws_secret_access_key,
            region=self.aws_region,
            bucket=self.s3_bucket,
            default_acl=self.s3_default_acl,
            endpoint_url=self.s3_endpoint_url,
            signature_version=self.s3_signature_version,
        )

    @classmethod
    def from_files(
        cls,
        config_path: str = "config.json",
        secrets_path: str = "secrets.yml",
    ) -> "UploadConfig":
        """Load config from JSON + secrets.yml with env var overrides.

        Relative paths are resolved against the repository root.

        Args:
            config_path: Path to JSON config file.
            secrets_path: Path to secrets YAML file.

        Returns:
            Configured UploadConfig instance.
        """
        repo_root = _find_repo_root(start=Path(__file__))
        json_path = Path(config_path)
        if not json_path.is_absolute():
            json_path = repo_root / json_path
        yml_path = Path(secrets_path)
        if not yml_path.is_absolute():
            yml_path = repo_root / yml_path

        config_data: dict[str, Any] = {}
        if json_path.exists():
            with open(json_path, encoding="utf-8") as f:
                config_data = json.load(f)

        config_data.update(_load_secrets(yml_path))

        # Drop file values that an env var overrides so pydantic-settings wins
        env_prefix = cls.model_config.get("env_prefix", "")
        for key in [k for k in config_data if f"{env_prefix}{k.upper()}" in os.environ]:
            del config_data[key]

        return cls(**config_data)
