"""HTTP routers package."""

from .upload_router import (
    CompletionRequest,
    CompletionResponse,
    TicketResponse,
    create_upload_router,
)

__all__ = [
    "create_upload_router",
    "CompletionRequest",
    "CompletionResponse",
    "TicketResponse",
]
