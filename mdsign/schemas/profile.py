"""
schemas/profile.py
------------------
Pydantic models for profile registration, login, and responses.

Security note:
  - hashed_password is NEVER included in any response schema.
  - Passwords require min 8 chars; enforce stronger rules in production.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class MemberRole(str, Enum):
    """Roles an admin can grant; 'owner' only comes from signup."""
    admin = "admin"
    user = "user"


class ProfileRegister(BaseModel):
    """Self-registration: the profile starts detached from any tenant."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: Optional[str] = Field(default=None, max_length=255)


class ProfileRead(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: str
    tenant_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberAdd(BaseModel):
    """Attach an existing, detached profile to the admin's tenant."""
    email: EmailStr
    role: MemberRole = MemberRole.user


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: ProfileRead
