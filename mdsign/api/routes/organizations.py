"""
api/routes/organizations.py
---------------------------
Organizations of the caller's tenant and their members.

Reads are open to every member; changes require owner / admin.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.errors import ConflictError, NotFoundError
from mdsign.db.session import get_db
from mdsign.dependencies import get_caller_context, get_current_admin
from mdsign.models.organization import OrganizationMember
from mdsign.schemas.organization import (
    OrganizationCreate,
    OrganizationMemberAdd,
    OrganizationMemberRead,
    OrganizationRead,
    OrganizationUpdate,
)
from mdsign.services.caller import CallerContext
from mdsign.services.organization_service import OrganizationService

router = APIRouter(prefix="/organizations", tags=["Organizations"])


def _member_read(member: OrganizationMember) -> OrganizationMemberRead:
    return OrganizationMemberRead(
        profile_id=member.profile_id,
        email=member.profile.email,
        full_name=member.profile.full_name,
        role=member.role,
        added_at=member.added_at,
    )


@router.post(
    "",
    response_model=OrganizationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create an organization (admin only)",
)
async def create_organization(
    body: OrganizationCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> OrganizationRead:
    organization = await OrganizationService.create_organization(db, admin.tenant_id, body)
    item = OrganizationRead.model_validate(organization)
    item.user_count = 0
    return item


@router.get("", response_model=list[OrganizationRead], summary="List organizations")
async def list_organizations(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    include_user_count: bool = False,
) -> list[OrganizationRead]:
    organizations = await OrganizationService.list_organizations(db, caller.tenant_id)
    items = [OrganizationRead.model_validate(o) for o in organizations]
    if include_user_count:
        counts = await OrganizationService.member_counts(
            db, caller.tenant_id, [o.id for o in organizations]
        )
        for item in items:
            item.user_count = counts.get(item.id, 0)
    return items


@router.get(
    "/{organization_id}", response_model=OrganizationRead, summary="Get an organization"
)
async def get_organization(
    organization_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> OrganizationRead:
    organization = await OrganizationService.get_organization(
        db, caller.tenant_id, organization_id
    )
    if organization is None:
        raise NotFoundError(f"Organization '{organization_id}' not found")
    item = OrganizationRead.model_validate(organization)
    counts = await OrganizationService.member_counts(db, caller.tenant_id, [organization_id])
    item.user_count = counts.get(organization_id, 0)
    return item


@router.patch(
    "/{organization_id}",
    response_model=OrganizationRead,
    summary="Update an organization (admin only)",
)
async def update_organization(
    organization_id: str,
    body: OrganizationUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> OrganizationRead:
    try:
        organization = await OrganizationService.update_organization(
            db, admin.tenant_id, organization_id, body
        )
    except LookupError as exc:
        raise NotFoundError(str(exc))
    except ValueError as exc:
        raise ConflictError(str(exc))
    return OrganizationRead.model_validate(organization)


@router.delete(
    "/{organization_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an organization and its memberships (admin only)",
)
async def delete_organization(
    organization_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> Response:
    try:
        await OrganizationService.delete_organization(db, admin.tenant_id, organization_id)
    except LookupError as exc:
        raise NotFoundError(str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Members ──────────────────────────────────────────────────────────────────

@router.get(
    "/{organization_id}/users",
    response_model=list[OrganizationMemberRead],
    summary="List organization members",
)
async def list_organization_members(
    organization_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> list[OrganizationMemberRead]:
    try:
        members = await OrganizationService.list_members(db, caller.tenant_id, organization_id)
    except LookupError as exc:
        raise NotFoundError(str(exc))
    return [_member_read(m) for m in members]


@router.post(
    "/{organization_id}/users",
    response_model=OrganizationMemberRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a tenant member to the organization (admin only)",
)
async def add_organization_member(
    organization_id: str,
    body: OrganizationMemberAdd,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> OrganizationMemberRead:
    try:
        member = await OrganizationService.add_member(db, admin.tenant_id, organization_id, body)
    except LookupError as exc:
        raise NotFoundError(str(exc))
    except ValueError as exc:
        raise ConflictError(str(exc))
    return _member_read(member)


@router.delete(
    "/{organization_id}/users/{profile_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member from the organization (admin only)",
)
async def remove_organization_member(
    organization_id: str,
    profile_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> Response:
    try:
        await OrganizationService.remove_member(db, admin.tenant_id, organization_id, profile_id)
    except LookupError as exc:
        raise NotFoundError(str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
