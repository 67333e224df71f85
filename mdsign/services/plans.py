"""
services/plans.py
-----------------
Plan table and the usage / quota evaluator.

Everything in this module is pure: callers pass in the plan and the usage
counters they fetched, and get back a decision. Failing to fetch counts is
the caller's problem, nothing here does I/O or retries.

Tiers, lowest to highest capability:

    CEDRO      free trial, 5 documents in total, 1 seat
    JACARANDA  20 documents per calendar month, 1 seat
    ANGICO     unlimited documents, 4 seats
    AROEIRA    unlimited documents, 6 seats
    IPE        unlimited documents, 10 seats
    MOGNO      enterprise, unlimited documents and seats

None is the "unlimited" sentinel for every cap.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from mdsign.core.logging import get_logger

logger = get_logger(__name__)

# Usage at or above this share of the cap shows the non-blocking banner
NEAR_LIMIT_RATIO = 0.8


class PlanTier(str, Enum):
    CEDRO = "CEDRO"
    JACARANDA = "JACARANDA"
    ANGICO = "ANGICO"
    AROEIRA = "AROEIRA"
    IPE = "IPE"
    MOGNO = "MOGNO"


class LimitType(str, Enum):
    FREE_TRIAL = "FREE_TRIAL"
    MONTHLY = "MONTHLY"
    UNLIMITED = "UNLIMITED"


class BlockReason(str, Enum):
    FREE_TRIAL_LIMIT_REACHED = "FREE_TRIAL_LIMIT_REACHED"
    MONTHLY_LIMIT_REACHED = "MONTHLY_LIMIT_REACHED"
    USER_LIMIT_REACHED = "USER_LIMIT_REACHED"


@dataclass(frozen=True)
class Plan:
    id: int
    tier: PlanTier
    display_name: str
    price: Optional[int]  # cents; None = negotiated
    limit_type: LimitType
    docs_limit: Optional[int]
    users_limit: Optional[int]
    description: str
    features: tuple[str, ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        return self.tier.value


PLANS: dict[PlanTier, Plan] = {
    PlanTier.CEDRO: Plan(
        id=1,
        tier=PlanTier.CEDRO,
        display_name="Cedro",
        price=0,
        limit_type=LimitType.FREE_TRIAL,
        docs_limit=5,
        users_limit=1,
        description="Free - 5 documents in total",
        features=("5 free documents", "Legally valid digital signature", "E-mail support"),
    ),
    PlanTier.JACARANDA: Plan(
        id=2,
        tier=PlanTier.JACARANDA,
        display_name="Jacarandá",
        price=3990,
        limit_type=LimitType.MONTHLY,
        docs_limit=20,
        users_limit=1,
        description="R$ 39,90/month - 20 documents/month",
        features=(
            "20 documents per month",
            "Legally valid digital signature",
            "Priority support",
            "Document history",
        ),
    ),
    PlanTier.ANGICO: Plan(
        id=3,
        tier=PlanTier.ANGICO,
        display_name="Angico",
        price=9997,
        limit_type=LimitType.UNLIMITED,
        docs_limit=None,
        users_limit=4,
        description="R$ 99,97/month - Unlimited documents",
        features=("Unlimited documents", "4 users included", "API access", "Dedicated support"),
    ),
    PlanTier.AROEIRA: Plan(
        id=4,
        tier=PlanTier.AROEIRA,
        display_name="Aroeira",
        price=14997,
        limit_type=LimitType.UNLIMITED,
        docs_limit=None,
        users_limit=6,
        description="R$ 149,97/month - Unlimited documents",
        features=("Unlimited documents", "6 users included", "API access", "Webhooks"),
    ),
    PlanTier.IPE: Plan(
        id=5,
        tier=PlanTier.IPE,
        display_name="Ipê",
        price=19997,
        limit_type=LimitType.UNLIMITED,
        docs_limit=None,
        users_limit=10,
        description="R$ 199,97/month - Unlimited documents",
        features=("Unlimited documents", "10 users included", "Full API", "Bulk sending"),
    ),
    PlanTier.MOGNO: Plan(
        id=6,
        tier=PlanTier.MOGNO,
        display_name="Mogno",
        price=None,
        limit_type=LimitType.UNLIMITED,
        docs_limit=None,
        users_limit=None,
        description="Enterprise - pricing on request",
        features=("Unlimited documents", "Unlimited users", "White-label", "SLA"),
    ),
}

MOST_RESTRICTIVE_TIER = PlanTier.CEDRO


def get_plan(tier: PlanTier) -> Plan:
    return PLANS[tier]


def list_plans() -> list[Plan]:
    return [PLANS[tier] for tier in PlanTier]


def resolve_tier(identifier: Union[str, int, PlanTier, None]) -> PlanTier:
    """
    Parse a stored / client-supplied plan identifier (tier name, case
    insensitive, or numeric plan id).

    Unknown identifiers fail closed to the most restrictive tier.
    """
    if isinstance(identifier, PlanTier):
        return identifier
    if isinstance(identifier, int) and not isinstance(identifier, bool):
        for plan in PLANS.values():
            if plan.id == identifier:
                return plan.tier
    elif isinstance(identifier, str):
        try:
            return PlanTier(identifier.strip().upper())
        except ValueError:
            pass
    logger.warning(
        "Unknown plan identifier, using most restrictive tier",
        identifier=identifier,
        tier=MOST_RESTRICTIVE_TIER.value,
    )
    return MOST_RESTRICTIVE_TIER


def resolve_plan(identifier: Union[str, int, PlanTier, None]) -> Plan:
    return PLANS[resolve_tier(identifier)]


def find_plan_by_id(plan_id: int) -> Optional[Plan]:
    """Strict lookup for client requests (upgrade, signup); no fallback."""
    for plan in PLANS.values():
        if plan.id == plan_id:
            return plan
    return None


def lookup_plan(identifier: Union[str, int, None]) -> Optional[Plan]:
    """Strict variant of resolve_plan: numeric id, digit string or tier name."""
    if isinstance(identifier, bool) or identifier is None:
        return None
    if isinstance(identifier, int):
        return find_plan_by_id(identifier)
    value = str(identifier).strip()
    if value.isdigit():
        return find_plan_by_id(int(value))
    try:
        return PLANS[PlanTier(value.upper())]
    except ValueError:
        return None


# ── Usage window ─────────────────────────────────────────────────────────────

def month_window(now: datetime) -> tuple[datetime, datetime]:
    """
    [start, end) of the calendar month containing `now`, in now's timezone.
    """
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


# ── Document quota ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class QuotaDecision:
    plan: Plan
    allowed: bool
    used: int
    limit: Optional[int]
    remaining: Optional[int]
    usage_percent: Optional[float]
    near_limit: bool
    block_reason: Optional[BlockReason] = None
    message: Optional[str] = None

    @property
    def limit_type(self) -> LimitType:
        return self.plan.limit_type

    def as_dict(self) -> dict:
        return {
            "plan": self.plan.name,
            "limitType": self.limit_type.value,
            "allowed": self.allowed,
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "usagePercent": self.usage_percent,
            "nearLimit": self.near_limit,
            "blockReason": self.block_reason.value if self.block_reason else None,
            "message": self.message,
        }


def _block_message(plan: Plan) -> str:
    if plan.limit_type is LimitType.FREE_TRIAL:
        return (
            f"You have already used your {plan.docs_limit} free documents. "
            "Choose a plan to keep signing documents."
        )
    return (
        f"You reached the monthly limit of {plan.docs_limit} documents on the "
        f"{plan.display_name} plan. Upgrade for unlimited documents."
    )


def evaluate_document_quota(
    plan: Plan,
    total_documents: int,
    documents_this_month: int,
) -> QuotaDecision:
    """
    Decide whether the tenant may create one more document.

    `total_documents` is the lifetime counter (free trial), and
    `documents_this_month` the counter for the current calendar month
    (monthly tier). Unlimited tiers always allow; they report the lifetime
    total as usage with no limit.
    """
    if plan.limit_type is LimitType.UNLIMITED or plan.docs_limit is None:
        return QuotaDecision(
            plan=plan,
            allowed=True,
            used=total_documents,
            limit=None,
            remaining=None,
            usage_percent=None,
            near_limit=False,
        )

    used = total_documents if plan.limit_type is LimitType.FREE_TRIAL else documents_this_month
    cap = plan.docs_limit
    remaining = max(cap - used, 0)
    usage_percent = round(used / cap * 100, 1) if cap > 0 else 100.0

    if used >= cap:
        reason = (
            BlockReason.FREE_TRIAL_LIMIT_REACHED
            if plan.limit_type is LimitType.FREE_TRIAL
            else BlockReason.MONTHLY_LIMIT_REACHED
        )
        return QuotaDecision(
            plan=plan,
            allowed=False,
            used=used,
            limit=cap,
            remaining=0,
            usage_percent=usage_percent,
            near_limit=True,
            block_reason=reason,
            message=_block_message(plan),
        )

    return QuotaDecision(
        plan=plan,
        allowed=True,
        used=used,
        limit=cap,
        remaining=remaining,
        usage_percent=usage_percent,
        near_limit=used >= cap * NEAR_LIMIT_RATIO,
    )


# ── Seats ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SeatDecision:
    allowed: bool
    members: int
    limit: Optional[int]
    message: Optional[str] = None


def evaluate_seat_capacity(plan: Plan, current_members: int, adding: int = 1) -> SeatDecision:
    """Seat check for member-add flows; never consulted on document creation."""
    if plan.users_limit is None:
        return SeatDecision(allowed=True, members=current_members, limit=None)
    if current_members + adding > plan.users_limit:
        return SeatDecision(
            allowed=False,
            members=current_members,
            limit=plan.users_limit,
            message=(
                f"The {plan.display_name} plan includes {plan.users_limit} "
                f"user(s). Upgrade to add more members."
            ),
        )
    return SeatDecision(allowed=True, members=current_members, limit=plan.users_limit)
