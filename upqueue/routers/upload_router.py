"""Upload API endpoints.

Routers handle HTTP concerns only - no business logic.
Ticket issuance is delegated to TicketIssuer, completion reports to
CompletionRecorder. Failures are returned as ``{"message": ...}`` bodies.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from upqueue.errors import UploadError
from upqueue.models.base import JsonModel, WireModel
from upqueue.models.domain import OwnerRef
from upqueue.security.capability import CapabilityContext, capability_context_from_request

if TYPE_CHECKING:
    from upqueue.services.completion_recorder import CompletionRecorder
    from upqueue.services.ticket_issuer import TicketIssuer

logger = logging.getLogger(__name__)


class TicketResponse(WireModel):
    """Everything the browser needs to POST a file straight to the bucket."""

    uuid: str
    endpoint: str
    awsaccesskeyid: str
    key: str
    policy: str
    signature: str
    x_amz_server_side_encryption: str
    success_action_status: str
    acl: str
    content_disposition: str
    expires_at: datetime
    fields: dict[str, str]


class CompletionRequest(JsonModel):
    """Client report that a direct upload finished."""

    uuid: str
    filename: str
    content_type: str
    public_url: str
    owner_type: str
    owner_id: str
    slot: str


class CompletionResponse(WireModel):
    id: int
    private_url: str


def error_response(error: UploadError) -> JSONResponse:
    """Render an UploadError as a ``{"message": ...}`` JSON response."""
    if error.status_code >= 500:
        logger.error("Upload request failed: %s", error.message)
    else:
        logger.info("Upload request rejected (%s): %s", error.status_code, error.message)
    return JSONResponse(status_code=error.status_code, content={"message": error.message})


def create_upload_router(
    ticket_issuer: "TicketIssuer",
    completion_recorder: "CompletionRecorder",
) -> APIRouter:
    """Create upload router with injected services.

    Args:
        ticket_issuer: Issues signed upload tickets.
        completion_recorder: Records finished uploads as queue entries.

    Returns:
        APIRouter with the upload endpoints configured
    """
    router = APIRouter(prefix="/uploads", tags=["uploads"])

    @router.get("/new", response_model=TicketResponse)
    async def new_upload(
        owner_type: str = Query(..., description="Owner type the file will attach to"),
        slot: str = Query(..., description="Upload slot on the owner type"),
    ):
        """Issue a one-time upload ticket.

        Raises:
            404 for an unknown owner type/slot, 500 if signing is misconfigured.
        """
        try:
            ticket = ticket_issuer.issue(owner_type, slot)
        except UploadError as e:
            return error_response(e)

        fields = ticket.form_fields()
        return TicketResponse(
            uuid=ticket.id,
            endpoint=ticket.endpoint,
            awsaccesskeyid=ticket.policy.access_key_id,
            key=ticket.target_key,
            policy=ticket.policy.policy_document,
            signature=ticket.policy.signature,
            x_amz_server_side_encryption=fields["x-amz-server-side-encryption"],
            success_action_status=fields["success_action_status"],
            acl=fields["acl"],
            content_disposition=ticket.policy.content_disposition.value,
            expires_at=ticket.expires_at,
            fields=fields,
        )

    @router.post(
        "",
        response_model=CompletionResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def complete_upload(
        request: CompletionRequest,
        context: CapabilityContext = Depends(capability_context_from_request),
    ):
        """Record a finished upload and return its private URL.

        Raises:
            400/403/404/409/422 for rejected reports (see upqueue.errors).
        """
        owner = OwnerRef(type=request.owner_type, id=request.owner_id, slot=request.slot)
        try:
            entry = await completion_recorder.record_completion(
                uuid=request.uuid,
                filename=request.filename,
                content_type=request.content_type,
                public_url=request.public_url,
                owner=owner,
                context=context,
            )
        except UploadError as e:
            return error_response(e)

        return CompletionResponse(id=entry.id, private_url=entry.private_url)

    return router
