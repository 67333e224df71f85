"""
services/tenant_service.py
--------------------------
Business logic for tenant management.

Service layer is responsible for:
  - Constructing queries
  - Enforcing business rules (unique names, seat caps on plan changes)
  - Returning domain objects (ORM models) to the route layer
  - Never returning HTTP responses (that's the route's job)

Raises ValueError for conflicts and LookupError for unknown plans.
"""

from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.config import settings
from mdsign.core.logging import get_logger
from mdsign.core.security import hash_password
from mdsign.models.profile import Profile, ProfileRole
from mdsign.models.tenant import Tenant
from mdsign.schemas.tenant import (
    SignerCredentialsStatus,
    SignerCredentialsUpdate,
    TenantSignup,
    TenantUpdate,
)
from mdsign.services.plans import MOST_RESTRICTIVE_TIER, Plan, get_plan, lookup_plan
from mdsign.services.usage_service import UsageService

logger = get_logger(__name__)


def apply_plan(tenant: Tenant, plan: Plan) -> None:
    """Write the tier and its denormalised caps onto the tenant row."""
    tenant.plan = plan.name
    tenant.max_users = plan.users_limit
    tenant.monthly_doc_limit = plan.docs_limit


class TenantService:

    @staticmethod
    def require_plan(identifier: Union[int, str, None]) -> Plan:
        if identifier is None:
            return get_plan(MOST_RESTRICTIVE_TIER)
        plan = lookup_plan(identifier)
        if plan is None:
            raise LookupError(f"Plan '{identifier}' not found")
        return plan

    @staticmethod
    async def signup(db: AsyncSession, data: TenantSignup) -> tuple[Tenant, Profile]:
        """
        Create a tenant on the requested plan together with its owner profile.
        Raises ValueError if the tenant name or the email is already taken.
        """
        plan = TenantService.require_plan(data.plan_id)

        if await TenantService.get_tenant_by_name(db, data.tenant_name) is not None:
            raise ValueError(f"Tenant '{data.tenant_name}' already exists")
        existing = await db.execute(select(Profile.id).where(Profile.email == data.email.lower()))
        if existing.scalar_one_or_none() is not None:
            raise ValueError(f"Email '{data.email}' is already registered")

        tenant = Tenant(name=data.tenant_name, tax_id=data.tax_id)
        apply_plan(tenant, plan)
        db.add(tenant)
        try:
            await db.flush()  # Trigger DB constraints before creating the owner
            owner = Profile(
                email=data.email.lower(),
                full_name=data.full_name,
                hashed_password=hash_password(data.password),
                role=ProfileRole.owner.value,
                tenant_id=tenant.id,
            )
            db.add(owner)
            await db.flush()
            await db.refresh(tenant)
            await db.refresh(owner)
        except IntegrityError:
            await db.rollback()
            raise ValueError("Tenant name or email is already registered")

        logger.info(
            "Tenant signed up",
            tenant_id=tenant.id,
            name=tenant.name,
            plan=tenant.plan,
            owner_id=owner.id,
        )
        return tenant, owner

    @staticmethod
    async def get_tenant_by_id(db: AsyncSession, tenant_id: str) -> Tenant | None:
        result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_tenant_by_name(db: AsyncSession, name: str) -> Tenant | None:
        result = await db.execute(select(Tenant).where(Tenant.name == name))
        return result.scalar_one_or_none()

    @staticmethod
    async def update_tenant(db: AsyncSession, tenant: Tenant, data: TenantUpdate) -> Tenant:
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            if changes["name"] is None:
                raise ValueError("Tenant name cannot be empty")
            changes["name"] = changes["name"].strip()
            other = await TenantService.get_tenant_by_name(db, changes["name"])
            if other is not None and other.id != tenant.id:
                raise ValueError(f"Tenant '{changes['name']}' already exists")
        for key, value in changes.items():
            setattr(tenant, key, value)
        await db.flush()
        await db.refresh(tenant)
        logger.info("Tenant updated", tenant_id=tenant.id, fields=sorted(changes))
        return tenant

    # ── Plan ────────────────────────────────────────────────────────────────

    @staticmethod
    async def change_plan(
        db: AsyncSession, tenant: Tenant, identifier: Union[int, str]
    ) -> Plan:
        """
        Move the tenant to another plan. A plan whose seat cap is below the
        current member count is refused.
        """
        plan = TenantService.require_plan(identifier)
        if plan.users_limit is not None:
            members = await UsageService.count_members(db, tenant.id)
            if members > plan.users_limit:
                raise ValueError(
                    f"The {plan.display_name} plan allows {plan.users_limit} user(s) "
                    f"but the tenant has {members}. Remove members first."
                )
        previous = tenant.plan
        apply_plan(tenant, plan)
        await db.flush()
        await db.refresh(tenant)
        logger.info("Tenant plan changed", tenant_id=tenant.id, previous=previous, plan=plan.name)
        return plan

    # ── Provider credentials ────────────────────────────────────────────────

    @staticmethod
    def credentials_status(tenant: Tenant) -> SignerCredentialsStatus:
        if tenant.provider_api_key:
            source: Optional[str] = "tenant"
        elif settings.SIGNER_API_KEY:
            source = "instance"
        else:
            source = None
        # a key is useless without the instance endpoint
        return SignerCredentialsStatus(
            configured=source is not None and bool(settings.SIGNER_API_ENDPOINT),
            source=source,
            organization_id=tenant.provider_organization_id,
        )

    @staticmethod
    async def set_credentials(
        db: AsyncSession, tenant: Tenant, data: SignerCredentialsUpdate
    ) -> SignerCredentialsStatus:
        tenant.provider_api_key = data.api_key
        tenant.provider_organization_id = data.organization_id
        await db.flush()
        logger.info("Tenant provider credentials set", tenant_id=tenant.id)
        return TenantService.credentials_status(tenant)

    @staticmethod
    async def clear_credentials(db: AsyncSession, tenant: Tenant) -> SignerCredentialsStatus:
        tenant.provider_api_key = None
        tenant.provider_organization_id = None
        await db.flush()
        logger.info("Tenant provider credentials removed", tenant_id=tenant.id)
        return TenantService.credentials_status(tenant)
