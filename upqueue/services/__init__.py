"""Upload services package."""

from .completion_recorder import CompletionRecorder
from .credential_signer import CredentialSigner
from .hook_dispatcher import IngestionHookDispatcher
from .owner_registry import (
    Ingestible,
    OwnerAuthorizer,
    OwnerKind,
    OwnerRegistry,
    UploadSlot,
)
from .storage_location import StorageLocations, parse_private_url
from .ticket_issuer import TicketIssuer

__all__ = [
    "CompletionRecorder",
    "CredentialSigner",
    "IngestionHookDispatcher",
    "Ingestible",
    "OwnerAuthorizer",
    "OwnerKind",
    "OwnerRegistry",
    "StorageLocations",
    "TicketIssuer",
    "UploadSlot",
    "parse_private_url",
]
