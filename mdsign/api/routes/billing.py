"""
api/routes/billing.py
---------------------
Plan catalogue, usage statistics and plan changes.

GET  /plans               — Public plan table.
GET  /stats               — Current plan, quota and document counters.
POST /stats/upgrade-plan  — Admin: move the tenant to another plan.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.errors import ConflictError, RequestValidationFailed
from mdsign.db.session import get_db
from mdsign.dependencies import get_caller_context, get_current_admin
from mdsign.schemas.billing import PlanChangeResponse, PlanRead, PlanUpgradeRequest
from mdsign.schemas.tenant import TenantRead
from mdsign.services.caller import CallerContext
from mdsign.services.plans import list_plans
from mdsign.services.tenant_service import TenantService
from mdsign.services.usage_service import UsageService

router = APIRouter(tags=["Billing"])


@router.get("/plans", response_model=list[PlanRead], summary="List available plans")
async def get_plans() -> list[PlanRead]:
    return [PlanRead.from_plan(plan) for plan in list_plans()]


@router.get("/stats", summary="Usage statistics for the caller's tenant")
async def get_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> dict[str, Any]:
    return await UsageService.get_stats(db, caller.tenant)


@router.post(
    "/stats/upgrade-plan",
    response_model=PlanChangeResponse,
    summary="Change the tenant's plan (admin only)",
)
async def upgrade_plan(
    body: PlanUpgradeRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[CallerContext, Depends(get_current_admin)],
) -> PlanChangeResponse:
    """
    Payment is handled outside this service; this only records the new tier
    and its limits. Moving to a plan with fewer seats than current members
    is refused with 409.
    """
    try:
        plan = await TenantService.change_plan(db, admin.tenant, body.plan_id)
    except LookupError as exc:
        raise RequestValidationFailed(
            "Invalid request", details=[{"field": "planId", "message": str(exc)}]
        )
    except ValueError as exc:
        raise ConflictError(str(exc))
    return PlanChangeResponse(
        plan=PlanRead.from_plan(plan),
        tenant=TenantRead.model_validate(admin.tenant),
    )
