"""
api/routes/tenants.py
---------------------
Tenant management endpoints. The tenant is always the caller's own; no
endpoint takes a tenant id.

GET    /tenant                      — Current tenant.
PATCH  /tenant                      — Admin: rename / set tax id.
GET    /tenant/users                — Members of the tenant.
POST   /tenant/users                — Admin: attach a registered profile.
DELETE /tenant/users/{profile_id}   — Admin: detach a member.
GET    /tenant/signer-credentials   — Whether provider credentials are set.
PUT    /tenant/signer-credentials   — Admin: set the tenant's own API key.
DELETE /tenant/signer-credentials   — Admin: fall back to the instance key.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.errors import ConflictError, NotFoundError
from mdsign.db.session import get_db
from mdsign.dependencies import get_caller_context, get_current_admin
from mdsign.schemas.profile import MemberAdd, ProfileRead
from mdsign.schemas.tenant import (
    SignerCredentialsStatus,
    SignerCredentialsUpdate,
    TenantRead,
    TenantUpdate,
)
from mdsign.services.caller import CallerContext
from mdsign.services.profile_service import ProfileService
from mdsign.services.tenant_service import TenantService

router = APIRouter(prefix="/tenant", tags=["Tenant"])


@router.get("", response_model=TenantRead, summary="Get the caller's tenant")
async def get_tenant(
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> TenantRead:
    return TenantRead.model_validate(caller.tenant)


@router.patch("", response_model=TenantRead, summary="Update the tenant (admin only)")
async def update_tenant(
    body: TenantUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> TenantRead:
    try:
        tenant = await TenantService.update_tenant(db, admin.tenant, body)
    except ValueError as exc:
        raise ConflictError(str(exc))
    return TenantRead.model_validate(tenant)


# ── Members ──────────────────────────────────────────────────────────────────

@router.get("/users", response_model=list[ProfileRead], summary="List tenant members")
async def list_members(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> list[ProfileRead]:
    profiles = await ProfileService.list_members(db, caller.tenant_id)
    return [ProfileRead.model_validate(p) for p in profiles]


@router.post(
    "/users",
    response_model=ProfileRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a registered profile to the tenant (admin only)",
)
async def add_member(
    body: MemberAdd,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> ProfileRead:
    """
    The profile must have registered already and must not belong to another
    tenant. Answers 403 USER_LIMIT_REACHED when the plan has no free seat.
    """
    try:
        profile = await ProfileService.add_member(db, admin.tenant, body)
    except LookupError as exc:
        raise NotFoundError(str(exc))
    except ValueError as exc:
        raise ConflictError(str(exc))
    return ProfileRead.model_validate(profile)


@router.delete(
    "/users/{profile_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member from the tenant (admin only)",
)
async def remove_member(
    profile_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> Response:
    try:
        await ProfileService.remove_member(db, admin.tenant_id, profile_id, admin.profile_id)
    except LookupError as exc:
        raise NotFoundError(str(exc))
    except ValueError as exc:
        raise ConflictError(str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Provider credentials ─────────────────────────────────────────────────────

@router.get(
    "/signer-credentials",
    response_model=SignerCredentialsStatus,
    summary="Provider credentials status",
)
async def credentials_status(
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> SignerCredentialsStatus:
    return TenantService.credentials_status(caller.tenant)


@router.put(
    "/signer-credentials",
    response_model=SignerCredentialsStatus,
    summary="Use the tenant's own provider API key (admin only)",
)
async def set_credentials(
    body: SignerCredentialsUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> SignerCredentialsStatus:
    return await TenantService.set_credentials(db, admin.tenant, body)


@router.delete(
    "/signer-credentials",
    response_model=SignerCredentialsStatus,
    summary="Remove the tenant's provider API key (admin only)",
)
async def clear_credentials(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> SignerCredentialsStatus:
    return await TenantService.clear_credentials(db, admin.tenant)
