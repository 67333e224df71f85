"""
services/profile_service.py
---------------------------
Business logic for profile registration, authentication, and tenant
membership.

All membership queries are scoped by tenant_id to enforce strict data
isolation. Raises ValueError on conflicts, LookupError when a profile does
not exist, and QuotaExceededError when the plan has no free seat.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.errors import QuotaExceededError
from mdsign.core.logging import get_logger
from mdsign.core.security import hash_password, verify_password
from mdsign.models.profile import Profile, ProfileRole
from mdsign.models.tenant import Tenant
from mdsign.schemas.profile import MemberAdd, ProfileRegister
from mdsign.services.plans import BlockReason
from mdsign.services.usage_service import UsageService

logger = get_logger(__name__)


class ProfileService:

    @staticmethod
    async def register_profile(db: AsyncSession, data: ProfileRegister) -> Profile:
        """
        Self-registration: creates a detached 'user'-role profile. An admin
        attaches it to a tenant later.
        Raises ValueError on duplicate email.
        """
        profile = Profile(
            email=data.email.lower(),
            full_name=data.full_name,
            hashed_password=hash_password(data.password),
            role=ProfileRole.user.value,
            tenant_id=None,
        )
        db.add(profile)
        try:
            await db.flush()
            await db.refresh(profile)
            logger.info("Profile registered", profile_id=profile.id)
            return profile
        except IntegrityError:
            await db.rollback()
            raise ValueError(f"Email '{data.email}' is already registered")

    @staticmethod
    async def authenticate(
        db: AsyncSession, email: str, password: str
    ) -> Profile | None:
        """
        Verify credentials and return the Profile if valid, else None.
        Email lookup is case-insensitive.
        """
        result = await db.execute(
            select(Profile).where(Profile.email == email.lower())
        )
        profile = result.scalar_one_or_none()
        if profile is None or not verify_password(password, profile.hashed_password):
            return None
        return profile

    @staticmethod
    async def get_profile(db: AsyncSession, profile_id: str) -> Profile | None:
        result = await db.execute(select(Profile).where(Profile.id == profile_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_members(db: AsyncSession, tenant_id: str) -> list[Profile]:
        result = await db.execute(
            select(Profile).where(Profile.tenant_id == tenant_id).order_by(Profile.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_member(db: AsyncSession, tenant: Tenant, data: MemberAdd) -> Profile:
        """Attach a detached profile to the tenant, subject to the seat cap."""
        result = await db.execute(select(Profile).where(Profile.email == data.email.lower()))
        profile = result.scalar_one_or_none()
        if profile is None:
            raise LookupError(f"No profile registered with email '{data.email}'")
        if profile.tenant_id == tenant.id:
            raise ValueError(f"'{data.email}' is already a member of this tenant")
        if profile.tenant_id is not None:
            raise ValueError(f"'{data.email}' already belongs to another tenant")

        seats = await UsageService.check_seat_capacity(db, tenant)
        if not seats.allowed:
            logger.info(
                "Member add blocked by plan limit",
                tenant_id=tenant.id,
                members=seats.members,
                limit=seats.limit,
            )
            raise QuotaExceededError(
                BlockReason.USER_LIMIT_REACHED.value,
                details={"members": seats.members, "limit": seats.limit, "message": seats.message},
            )

        profile.tenant_id = tenant.id
        profile.role = data.role.value
        await db.flush()
        await db.refresh(profile)
        logger.info("Member added", tenant_id=tenant.id, profile_id=profile.id, role=profile.role)
        return profile

    @staticmethod
    async def remove_member(
        db: AsyncSession, tenant_id: str, profile_id: str, acting_profile_id: str
    ) -> None:
        if profile_id == acting_profile_id:
            raise ValueError("You cannot remove yourself from the tenant")
        result = await db.execute(
            select(Profile).where(Profile.id == profile_id, Profile.tenant_id == tenant_id)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise LookupError(f"Member '{profile_id}' not found")
        if profile.role == ProfileRole.owner.value:
            raise ValueError("The tenant owner cannot be removed")

        profile.tenant_id = None
        profile.role = ProfileRole.user.value
        await db.flush()
        logger.info("Member removed", tenant_id=tenant_id, profile_id=profile_id)
