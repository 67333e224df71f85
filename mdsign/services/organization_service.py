"""
services/organization_service.py
--------------------------------
Organizations inside a tenant and their member lists.

Members must be profiles of the same tenant. Raises LookupError for unknown
organizations or profiles and ValueError for duplicate memberships.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mdsign.core.logging import get_logger
from mdsign.models.organization import Organization, OrganizationMember
from mdsign.models.profile import Profile
from mdsign.schemas.organization import (
    OrganizationCreate,
    OrganizationMemberAdd,
    OrganizationUpdate,
)

logger = get_logger(__name__)


class OrganizationService:

    @staticmethod
    async def create_organization(
        db: AsyncSession, tenant_id: str, data: OrganizationCreate
    ) -> Organization:
        organization = Organization(
            tenant_id=tenant_id,
            name=data.name.strip(),
            provider_organization_id=data.provider_organization_id,
        )
        db.add(organization)
        await db.flush()
        await db.refresh(organization)
        logger.info("Organization created", organization_id=organization.id, tenant_id=tenant_id)
        return organization

    @staticmethod
    async def get_organization(
        db: AsyncSession, tenant_id: str, organization_id: str
    ) -> Organization | None:
        result = await db.execute(
            select(Organization).where(
                Organization.id == organization_id,
                Organization.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _require(db: AsyncSession, tenant_id: str, organization_id: str) -> Organization:
        organization = await OrganizationService.get_organization(db, tenant_id, organization_id)
        if organization is None:
            raise LookupError(f"Organization '{organization_id}' not found")
        return organization

    @staticmethod
    async def list_organizations(db: AsyncSession, tenant_id: str) -> list[Organization]:
        result = await db.execute(
            select(Organization)
            .where(Organization.tenant_id == tenant_id)
            .order_by(Organization.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def member_counts(
        db: AsyncSession, tenant_id: str, organization_ids: list[str]
    ) -> dict[str, int]:
        if not organization_ids:
            return {}
        result = await db.execute(
            select(OrganizationMember.organization_id, func.count())
            .join(Organization, Organization.id == OrganizationMember.organization_id)
            .where(
                Organization.tenant_id == tenant_id,
                OrganizationMember.organization_id.in_(organization_ids),
            )
            .group_by(OrganizationMember.organization_id)
        )
        return {row[0]: row[1] for row in result.all()}

    @staticmethod
    async def update_organization(
        db: AsyncSession, tenant_id: str, organization_id: str, data: OrganizationUpdate
    ) -> Organization:
        organization = await OrganizationService._require(db, tenant_id, organization_id)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and not changes["name"]:
            raise ValueError("Organization name cannot be empty")
        for key, value in changes.items():
            setattr(organization, key, value)
        await db.flush()
        await db.refresh(organization)
        logger.info("Organization updated", organization_id=organization_id, tenant_id=tenant_id)
        return organization

    @staticmethod
    async def delete_organization(db: AsyncSession, tenant_id: str, organization_id: str) -> None:
        result = await db.execute(
            select(Organization)
            .options(selectinload(Organization.members))
            .where(Organization.id == organization_id, Organization.tenant_id == tenant_id)
        )
        organization = result.scalar_one_or_none()
        if organization is None:
            raise LookupError(f"Organization '{organization_id}' not found")
        # memberships go with it (delete-orphan cascade)
        await db.delete(organization)
        await db.flush()
        logger.info("Organization deleted", organization_id=organization_id, tenant_id=tenant_id)

    # ── Members ─────────────────────────────────────────────────────────────

    @staticmethod
    async def list_members(
        db: AsyncSession, tenant_id: str, organization_id: str
    ) -> list[OrganizationMember]:
        await OrganizationService._require(db, tenant_id, organization_id)
        result = await db.execute(
            select(OrganizationMember)
            .options(selectinload(OrganizationMember.profile))
            .where(OrganizationMember.organization_id == organization_id)
            .order_by(OrganizationMember.added_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_member(
        db: AsyncSession, tenant_id: str, organization_id: str, data: OrganizationMemberAdd
    ) -> OrganizationMember:
        await OrganizationService._require(db, tenant_id, organization_id)

        result = await db.execute(
            select(Profile).where(Profile.id == data.profile_id, Profile.tenant_id == tenant_id)
        )
        if result.scalar_one_or_none() is None:
            raise LookupError(f"Profile '{data.profile_id}' not found in this tenant")

        existing = await OrganizationService._get_member(db, organization_id, data.profile_id)
        if existing is not None:
            raise ValueError("Profile is already a member of this organization")

        member = OrganizationMember(
            organization_id=organization_id,
            profile_id=data.profile_id,
            role=data.role.value,
        )
        db.add(member)
        await db.flush()
        result = await db.execute(
            select(OrganizationMember)
            .options(selectinload(OrganizationMember.profile))
            .where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.profile_id == data.profile_id,
            )
            .execution_options(populate_existing=True)
        )
        member = result.scalar_one()
        logger.info(
            "Organization member added",
            organization_id=organization_id,
            profile_id=data.profile_id,
            tenant_id=tenant_id,
        )
        return member

    @staticmethod
    async def _get_member(
        db: AsyncSession, organization_id: str, profile_id: str
    ) -> Optional[OrganizationMember]:
        result = await db.execute(
            select(OrganizationMember).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.profile_id == profile_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def remove_member(
        db: AsyncSession, tenant_id: str, organization_id: str, profile_id: str
    ) -> None:
        await OrganizationService._require(db, tenant_id, organization_id)
        member = await OrganizationService._get_member(db, organization_id, profile_id)
        if member is None:
            raise LookupError(f"Profile '{profile_id}' is not a member of this organization")
        await db.delete(member)
        await db.flush()
        logger.info(
            "Organization member removed",
            organization_id=organization_id,
            profile_id=profile_id,
            tenant_id=tenant_id,
        )
