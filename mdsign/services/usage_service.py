"""
services/usage_service.py
-------------------------
Feeds the pure plan evaluator with counters read from the database.

Document quotas are counted from document_usage, the append-only record of
provider-confirmed creations. The cache is never consulted for quotas:
deleting a document does not give quota back, and caching a document on
read does not consume any. The monthly window is the calendar month in
BILLING_TIMEZONE, converted to UTC for the query.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.config import settings
from mdsign.models.profile import Profile
from mdsign.models.tenant import Tenant
from mdsign.models.usage import DocumentUsage
from mdsign.schemas.document import DocumentStatus
from mdsign.services.document_cache import DocumentCacheStore
from mdsign.services.plans import (
    LimitType,
    QuotaDecision,
    SeatDecision,
    evaluate_document_quota,
    evaluate_seat_capacity,
    month_window,
    resolve_plan,
)


class UsageService:

    @staticmethod
    def now() -> datetime:
        return datetime.now(ZoneInfo(settings.BILLING_TIMEZONE))

    @staticmethod
    async def record_creation(
        db: AsyncSession, tenant_id: str, provider_document_id: Optional[str]
    ) -> DocumentUsage:
        """Append one usage row and commit it on its own."""
        row = DocumentUsage(tenant_id=tenant_id, provider_document_id=provider_document_id)
        db.add(row)
        await db.commit()
        return row

    @staticmethod
    async def count_created(
        db: AsyncSession,
        tenant_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> int:
        """Documents created in [since, until) when bounds are given."""
        stmt = select(func.count()).select_from(DocumentUsage).where(
            DocumentUsage.tenant_id == tenant_id
        )
        if since is not None:
            stmt = stmt.where(DocumentUsage.created_at >= since)
        if until is not None:
            stmt = stmt.where(DocumentUsage.created_at < until)
        result = await db.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def count_members(db: AsyncSession, tenant_id: str) -> int:
        result = await db.execute(
            select(func.count()).select_from(Profile).where(Profile.tenant_id == tenant_id)
        )
        return result.scalar_one()

    @staticmethod
    async def evaluate_document_quota(
        db: AsyncSession,
        tenant: Tenant,
        now: Optional[datetime] = None,
    ) -> QuotaDecision:
        plan = resolve_plan(tenant.plan)
        total = await UsageService.count_created(db, tenant.id)
        monthly = 0
        if plan.limit_type is LimitType.MONTHLY:
            start, end = month_window(now or UsageService.now())
            monthly = await UsageService.count_created(
                db,
                tenant.id,
                since=start.astimezone(timezone.utc),
                until=end.astimezone(timezone.utc),
            )
        return evaluate_document_quota(plan, total, monthly)

    @staticmethod
    async def check_seat_capacity(
        db: AsyncSession, tenant: Tenant, adding: int = 1
    ) -> SeatDecision:
        plan = resolve_plan(tenant.plan)
        members = await UsageService.count_members(db, tenant.id)
        return evaluate_seat_capacity(plan, members, adding)

    @staticmethod
    async def get_stats(
        db: AsyncSession,
        tenant: Tenant,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        now = now or UsageService.now()
        plan = resolve_plan(tenant.plan)
        decision = await UsageService.evaluate_document_quota(db, tenant, now)
        cached = await DocumentCacheStore.count(db, tenant.id)
        members = await UsageService.count_members(db, tenant.id)

        if plan.limit_type is LimitType.FREE_TRIAL:
            usage = {
                "freeTrial": {
                    "used": decision.used,
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                }
            }
        elif plan.limit_type is LimitType.MONTHLY:
            usage = {
                "monthly": {
                    "used": decision.used,
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                    "yearMonth": now.strftime("%Y-%m"),
                }
            }
        else:
            usage = {
                "unlimited": {"totalDocuments": await UsageService.count_created(db, tenant.id)}
            }

        raw_by_status = await DocumentCacheStore.count_by_status(db, tenant.id)
        by_status = {status.value: 0 for status in DocumentStatus}
        for status, count in raw_by_status.items():
            key = status.upper()
            if key in by_status:
                by_status[key] += count

        return {
            "currentPlan": {
                "id": plan.id,
                "name": plan.name,
                "displayName": plan.display_name,
                "limitType": plan.limit_type.value,
                "limitMonthlyDocuments": (
                    plan.docs_limit if plan.limit_type is LimitType.MONTHLY else None
                ),
            },
            "usage": usage,
            "quota": decision.as_dict(),
            "documents": {"total": cached, "byStatus": by_status},
            "users": {"count": members, "limit": plan.users_limit},
        }
