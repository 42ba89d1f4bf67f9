"""Registry of owner types that may hold uploads.

Owner references are plain tagged values (type, id, slot). Everything the
core needs to know about an owner type - its slots, who may attach to it and
whether it wants ingestion callbacks - is registered here once at startup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from upqueue.config import SlotConfig
from upqueue.enums import DispositionMode, SlotCardinality
from upqueue.errors import OwnerUnauthorized, UnknownOwner
from upqueue.models.domain import OwnerRef
from upqueue.security.capability import CapabilityContext, is_actor_allowed

logger = logging.getLogger(__name__)


class Ingestible(Protocol):
    """Opt-in capability: receive a callback when an upload is queued."""

    async def import_upload(self, owner: OwnerRef, queue_entry_id: int) -> None: ...


class OwnerAuthorizer(Protocol):
    """Host-application check: may this actor attach uploads to this owner?"""

    async def can_attach(self, context: CapabilityContext, owner: OwnerRef) -> bool: ...


@dataclass(frozen=True)
class UploadSlot:
    """A named attachment slot on an owner type."""

    name: str
    cardinality: SlotCardinality = SlotCardinality.MULTIPLE
    content_type_prefix: str = ""
    disposition: DispositionMode = DispositionMode.ATTACHMENT

    @property
    def is_single(self) -> bool:
        return self.cardinality == SlotCardinality.SINGLE


@dataclass
class OwnerKind:
    type: str
    slots: dict[str, UploadSlot] = field(default_factory=dict)
    authorizer: OwnerAuthorizer | None = None
    ingestion_hook: Ingestible | None = None


class OwnerRegistry:
    """Lookup of owner kinds by type name.

    Populated at startup and only read afterwards.
    """

    def __init__(self, allowed_actors: Iterable[str] | None = None) -> None:
        self._kinds: dict[str, OwnerKind] = {}
        self._allowed_actors = list(allowed_actors or [])

    def register(
        self,
        owner_type: str,
        slots: Iterable[UploadSlot],
        *,
        authorizer: OwnerAuthorizer | None = None,
        ingestion_hook: Ingestible | None = None,
    ) -> OwnerKind:
        """Register (or replace) an owner type and its slots."""
        kind = OwnerKind(
            type=owner_type,
            slots={slot.name: slot for slot in slots},
            authorizer=authorizer,
            ingestion_hook=ingestion_hook,
        )
        self._kinds[owner_type] = kind
        logger.info(
            "Registered owner type %s (slots=%s, hook=%s)",
            owner_type,
            sorted(kind.slots),
            ingestion_hook is not None,
        )
        return kind

    def attach(
        self,
        owner_type: str,
        *,
        authorizer: OwnerAuthorizer | None = None,
        ingestion_hook: Ingestible | None = None,
    ) -> OwnerKind:
        """Add an authorizer and/or ingestion hook to an already registered type."""
        kind = self.lookup(owner_type)
        if authorizer is not None:
            kind.authorizer = authorizer
        if ingestion_hook is not None:
            kind.ingestion_hook = ingestion_hook
        return kind

    def set_allowed_actors(self, allowed_actors: Iterable[str]) -> None:
        """Replace the global allow-list checked before any owner authorizer."""
        self._allowed_actors = list(allowed_actors)

    def lookup(self, owner_type: str) -> OwnerKind:
        kind = self._kinds.get(owner_type)
        if kind is None:
            raise UnknownOwner(f"Unknown owner type: {owner_type}")
        return kind

    def slot(self, owner_type: str, slot_name: str) -> UploadSlot:
        kind = self.lookup(owner_type)
        slot = kind.slots.get(slot_name)
        if slot is None:
            raise UnknownOwner(f"Owner type {owner_type} has no upload slot {slot_name}")
        return slot

    def ingestion_hook(self, owner_type: str) -> Ingestible | None:
        kind = self._kinds.get(owner_type)
        return kind.ingestion_hook if kind else None

    async def authorize(self, context: CapabilityContext, owner: OwnerRef) -> None:
        """Raise OwnerUnauthorized unless the actor may attach to ``owner``."""
        if not is_actor_allowed(context.actor_id, self._allowed_actors):
            raise OwnerUnauthorized(
                f"Actor {context.actor_id or '<anonymous>'} may not record uploads"
            )
        kind = self.lookup(owner.type)
        if kind.authorizer is None:
            return
        if not await kind.authorizer.can_attach(context, owner):
            raise OwnerUnauthorized(
                f"Actor {context.actor_id or '<anonymous>'} may not attach uploads "
                f"to {owner.type}:{owner.id}"
            )

    @classmethod
    def from_config(
        cls,
        owner_kinds: Mapping[str, Mapping[str, SlotConfig]],
        allowed_actors: Iterable[str] | None = None,
    ) -> "OwnerRegistry":
        """Build a registry from declarative slot configuration.

        Hooks and authorizers are attached afterwards with attach().
        """
        registry = cls(allowed_actors=allowed_actors)
        for owner_type, slots in owner_kinds.items():
            registry.register(
                owner_type,
                [
                    UploadSlot(
                        name=name,
                        cardinality=cfg.cardinality,
                        content_type_prefix=cfg.content_type_prefix,
                        disposition=cfg.disposition,
                    )
                    for name, cfg in slots.items()
                ],
            )
        return registry
