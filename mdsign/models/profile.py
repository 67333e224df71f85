"""
models/profile.py
-----------------
Profile (user account) ORM model with roles and an optional tenant binding.

Role design:
  - 'owner': Created the tenant at signup. Cannot be detached.
  - 'admin': Can manage members, credentials and the plan of their tenant.
  - 'user':  Can send and track documents.

tenant_id is nullable: a profile that registered on its own, or that an
admin removed from a tenant, is detached until someone adds it again.
"""

from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mdsign.db.base import Base, TimestampMixin, generate_uuid


class ProfileRole(str, PyEnum):
    owner = "owner"
    admin = "admin"
    user = "user"


class Profile(Base, TimestampMixin):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProfileRole.user.value
    )
    tenant_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    tenant: Mapped[Optional["Tenant"]] = relationship(  # noqa: F821
        "Tenant", back_populates="profiles"
    )

    @property
    def is_admin(self) -> bool:
        return self.role in (ProfileRole.owner.value, ProfileRole.admin.value)

    def __repr__(self) -> str:
        return f"<Profile id={self.id} email={self.email} role={self.role}>"
