"""
schemas/billing.py
------------------
Plan catalogue and plan change models.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mdsign.schemas.tenant import TenantRead
from mdsign.services.plans import Plan


class PlanRead(BaseModel):
    id: int
    name: str
    display_name: str
    price: Optional[int] = Field(default=None, description="Cents; null = on request")
    limit_type: str
    docs_limit: Optional[int] = None
    users_limit: Optional[int] = None
    description: str
    features: list[str]

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanRead":
        return cls(
            id=plan.id,
            name=plan.name,
            display_name=plan.display_name,
            price=plan.price,
            limit_type=plan.limit_type.value,
            docs_limit=plan.docs_limit,
            users_limit=plan.users_limit,
            description=plan.description,
            features=list(plan.features),
        )


class PlanUpgradeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    plan_id: Union[int, str] = Field(..., description="Plan id or tier name")


class PlanChangeResponse(BaseModel):
    success: bool = True
    plan: PlanRead
    tenant: TenantRead
