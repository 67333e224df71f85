"""
api/routes/signer.py
--------------------
Signing provider proxy.

POST /signer — One tagged action per request ({"action": "create" | "list" |
               "get" | "add-signer" | "delete", ...}).

Dependency order is the pipeline order: provider configuration, then the
bearer token, then the caller's tenant. The body is validated only after
that, and a request that fails validation never reaches the provider.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.db.session import get_db
from mdsign.dependencies import get_caller_context, get_signer_gateway
from mdsign.schemas.document import parse_signer_action
from mdsign.services.caller import CallerContext
from mdsign.services.document_service import DocumentSyncService
from mdsign.services.signer_client import SignerGateway

router = APIRouter(tags=["Signer"])


@router.post(
    "/signer",
    summary="Run a document action against the signing provider",
    responses={
        200: {"description": "list / get / add-signer / delete succeeded"},
        201: {"description": "Document created"},
        400: {"description": "Invalid request"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "No tenant, or plan limit reached"},
        500: {"description": "Provider credentials not configured"},
    },
)
async def signer_action(
    gateway: Annotated[SignerGateway, Depends(get_signer_gateway)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    """
    list and get fall back to the tenant's document cache when the provider
    is unavailable; those responses carry fromCache=true.
    """
    client = gateway.client_for(caller.tenant)
    action = parse_signer_action(payload)
    service = DocumentSyncService(db, client, caller)
    status_code, body = await service.dispatch(action)
    return JSONResponse(status_code=status_code, content=body)
