"""
dependencies.py
---------------
FastAPI dependency injection functions for authentication and authorisation.

Flow:
  1. OAuth2PasswordBearer extracts the Bearer token from the Authorization header.
  2. decode_access_token validates and parses the JWT (no DB round-trip).
  3. get_current_profile fetches the full Profile record from the DB, so
     deleted profiles are rejected even while their token is still valid.
  4. get_caller_context resolves the profile's tenant and fails with 403
     when the profile is detached.
  5. get_current_admin layers a role check on top of get_caller_context.

The tenant is always read from the database, never from the token, so
every tenant-scoped query uses the profile's current tenant.
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.errors import AuthenticationError, AuthorizationError
from mdsign.core.logging import get_logger
from mdsign.core.security import decode_access_token
from mdsign.db.session import get_db
from mdsign.models.profile import Profile
from mdsign.models.tenant import Tenant
from mdsign.services.caller import CallerContext
from mdsign.services.signer_client import SignerGateway, build_signer_gateway

logger = get_logger(__name__)

# tokenUrl must match the login endpoint path. auto_error is off so a
# missing header renders through the same error shape as a bad token.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)


async def get_current_profile(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Profile:
    """
    Decode the JWT, then load and return the full Profile from the database.
    Raises 401 if the token is missing, invalid, or the profile no longer exists.
    """
    if not token:
        raise AuthenticationError()
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        logger.warning("JWT decode failed", error=str(exc))
        raise AuthenticationError()
    profile_id = payload.get("sub")
    if not profile_id:
        raise AuthenticationError()

    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        logger.warning("Profile from valid JWT not found in DB", profile_id=profile_id)
        raise AuthenticationError()
    return profile


async def get_caller_context(
    profile: Annotated[Profile, Depends(get_current_profile)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CallerContext:
    """Raises 403 when the profile is not attached to a tenant."""
    if profile.tenant_id is None:
        raise AuthorizationError("User not associated with a tenant")
    result = await db.execute(select(Tenant).where(Tenant.id == profile.tenant_id))
    tenant = result.scalar_one_or_none()
    if tenant is None:
        raise AuthorizationError("User not associated with a tenant")
    return CallerContext.from_profile(profile, tenant)


async def get_current_admin(
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> CallerContext:
    """Raises 403 if the caller is neither the tenant owner nor an admin."""
    if not caller.is_admin:
        raise AuthorizationError("Admin privileges required")
    return caller


def get_signer_gateway() -> SignerGateway:
    """Raises 500 when the instance has no provider endpoint."""
    return build_signer_gateway()
