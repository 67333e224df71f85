"""
schemas/tenant.py
-----------------
Pydantic request/response models for Tenant.

Naming convention:
  TenantSignup / TenantUpdate → inbound request body
  TenantRead                  → outbound response body (never exposes the
                                provider API key)

Signup accepts camelCase (tenantName, taxId, planId) as sent by the
dashboard, as well as snake_case.
"""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from mdsign.schemas.profile import ProfileRead


class TenantSignup(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=255, alias="name")
    tenant_name: str = Field(
        ...,
        min_length=2,
        max_length=255,
        examples=["Acme Corp"],
        description="Unique company / tenant name",
    )
    tax_id: Optional[str] = Field(default=None, max_length=32)
    plan_id: Optional[Union[int, str]] = Field(
        default=None, description="Plan id or tier name; defaults to the free trial"
    )

    @field_validator("tenant_name", "full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class TenantUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    tax_id: Optional[str] = Field(default=None, max_length=32)


class TenantRead(BaseModel):
    id: str
    name: str
    tax_id: Optional[str] = None
    plan: str
    max_users: Optional[int] = None
    monthly_doc_limit: Optional[int] = None
    provider_organization_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SignupResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: ProfileRead
    tenant: TenantRead


# ── Provider credentials ─────────────────────────────────────────────────────

class SignerCredentialsUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    api_key: str = Field(..., min_length=8, max_length=255)
    organization_id: Optional[str] = Field(default=None, max_length=64)

    @field_validator("api_key")
    @classmethod
    def strip_key(cls, v: str) -> str:
        return v.strip()


class SignerCredentialsStatus(BaseModel):
    configured: bool
    source: Optional[Literal["tenant", "instance"]] = None
    organization_id: Optional[str] = None
