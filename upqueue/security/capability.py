"""Actor capability checks for attaching uploads to owners.

The acting user arrives on each request (``X-Actor-Id``). A global
allow-list from configuration is checked first; owner kinds may add their own
authorizer on top (see upqueue.services.owner_registry).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from fastapi import Request

ACTOR_HEADER = "X-Actor-Id"


@dataclass(frozen=True)
class CapabilityContext:
    """Who is asking, as far as upload ownership checks are concerned."""

    actor_id: str | None = None


def _normalize_actor_id(actor_id: str | None) -> str:
    # Usernames may be given as "@name" or "name"
    normalized = (actor_id or "").strip().lower()
    if normalized.startswith("@"):
        normalized = normalized[1:]
    return normalized


def normalize_allowed_actors(allowed_actors: Iterable[str] | None) -> set[str]:
    if allowed_actors is None:
        return set()
    return {_normalize_actor_id(a) for a in allowed_actors if _normalize_actor_id(a)}


def is_actor_allowed(actor_id: str | None, allowed_actors: Iterable[str] | None) -> bool:
    """Return True if the actor passes the global allow-list.

    An empty allow-list lets every actor through, anonymous ones included.
    A non-empty list requires a matching actor id.
    """
    allowed = normalize_allowed_actors(allowed_actors)
    if not allowed:
        return True
    return _normalize_actor_id(actor_id) in allowed


def capability_context_from_request(request: Request) -> CapabilityContext:
    """FastAPI dependency building the context from request headers."""
    actor_id = (request.headers.get(ACTOR_HEADER) or "").strip() or None
    return CapabilityContext(actor_id=actor_id)
