"""
schemas/organization.py
-----------------------
Organization and membership request/response models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from mdsign.models.profile import ProfileRole


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    provider_organization_id: Optional[str] = Field(default=None, max_length=64)


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    provider_organization_id: Optional[str] = Field(default=None, max_length=64)


class OrganizationRead(BaseModel):
    id: str
    name: str
    provider_organization_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user_count: Optional[int] = None

    model_config = {"from_attributes": True}


class OrganizationMemberAdd(BaseModel):
    profile_id: str
    role: ProfileRole = ProfileRole.user


class OrganizationMemberRead(BaseModel):
    profile_id: str
    email: str
    full_name: Optional[str] = None
    role: str
    added_at: datetime
