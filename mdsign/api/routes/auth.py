"""
api/routes/auth.py
------------------
Authentication endpoints.

POST /signup    — Create a tenant plus its owner profile and log in.
POST /register  — Self-registration of a detached profile; an admin attaches
                  it to a tenant afterwards.
POST /login     — Exchange credentials for a JWT access token (OAuth2 form).
GET  /me        — Return the authenticated profile.
"""

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.config import settings
from mdsign.core.errors import AuthenticationError, ConflictError, RequestValidationFailed
from mdsign.core.security import create_access_token
from mdsign.db.session import get_db
from mdsign.dependencies import get_current_profile
from mdsign.models.profile import Profile
from mdsign.schemas.profile import ProfileRead, ProfileRegister, TokenResponse
from mdsign.schemas.tenant import SignupResponse, TenantRead, TenantSignup
from mdsign.services.profile_service import ProfileService
from mdsign.services.tenant_service import TenantService

router = APIRouter(tags=["Authentication"])


def _issue_token(profile: Profile) -> tuple[str, int]:
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token(
        subject=profile.id,
        role=profile.role,
        expires_delta=expires,
    )
    return token, int(expires.total_seconds())


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a tenant and its owner account",
)
async def signup(
    body: TenantSignup,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SignupResponse:
    """
    Public endpoint. The tenant starts on the requested plan (the free
    trial when planId is omitted) and the caller becomes its owner.
    """
    try:
        tenant, owner = await TenantService.signup(db, body)
    except LookupError as exc:
        raise RequestValidationFailed(
            "Invalid request", details=[{"field": "planId", "message": str(exc)}]
        )
    except ValueError as exc:
        raise ConflictError(str(exc))

    token, expires_in = _issue_token(owner)
    return SignupResponse(
        access_token=token,
        expires_in=expires_in,
        user=ProfileRead.model_validate(owner),
        tenant=TenantRead.model_validate(tenant),
    )


@router.post(
    "/register",
    response_model=ProfileRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new profile",
)
async def register(
    body: ProfileRegister,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileRead:
    """
    Create a profile that belongs to no tenant yet. It can log in, but
    tenant-scoped endpoints answer 403 until an admin adds it.
    """
    try:
        profile = await ProfileService.register_profile(db, body)
        return ProfileRead.model_validate(profile)
    except ValueError as exc:
        raise ConflictError(str(exc))


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login and receive a JWT access token",
)
async def login(
    # The OAuth2 "username" field carries the email address.
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    Authenticate with email + password and receive a signed JWT.

    Via curl: send as form data (not JSON):
        -d "username=you@email.com&password=yourpassword"
    """
    profile = await ProfileService.authenticate(db, form_data.username, form_data.password)
    if profile is None:
        raise AuthenticationError("Invalid email or password")

    token, expires_in = _issue_token(profile)
    return TokenResponse(
        access_token=token,
        token_type="bearer",
        expires_in=expires_in,
        user=ProfileRead.model_validate(profile),
    )


@router.get(
    "/me",
    response_model=ProfileRead,
    summary="Get the currently authenticated profile",
)
async def get_me(
    current_profile: Annotated[Profile, Depends(get_current_profile)],
) -> ProfileRead:
    return ProfileRead.model_validate(current_profile)
