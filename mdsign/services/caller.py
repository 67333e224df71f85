"""
services/caller.py
------------------
Explicit identity of the caller, passed into every tenant-scoped service
call. Built once per request by the auth dependencies; services never read
ambient auth state.

Identifiers are copied out of the ORM objects up front: a cache failure
rolls the session back, which expires loaded instances, and logging after
that must not trigger a lazy load.
"""

from dataclasses import dataclass

from mdsign.models.profile import Profile
from mdsign.models.tenant import Tenant


@dataclass(frozen=True)
class CallerContext:
    profile_id: str
    email: str
    role: str
    tenant_id: str
    tenant: Tenant

    @classmethod
    def from_profile(cls, profile: Profile, tenant: Tenant) -> "CallerContext":
        return cls(
            profile_id=profile.id,
            email=profile.email,
            role=profile.role,
            tenant_id=tenant.id,
            tenant=tenant,
        )

    @property
    def is_admin(self) -> bool:
        return self.role in ("owner", "admin")
