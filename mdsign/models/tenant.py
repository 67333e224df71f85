"""
models/tenant.py
----------------
Tenant (billing / organisational unit) ORM model.

Each tenant is an isolated unit. All data belonging to a tenant is scoped by
tenant_id at the query level — never trust application-level filtering alone;
always include tenant_id in WHERE clauses.

max_users / monthly_doc_limit mirror the plan table (NULL = unlimited) and
are rewritten whenever the plan changes.
"""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mdsign.db.base import Base, TimestampMixin, generate_uuid


class Tenant(Base, TimestampMixin):
    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    tax_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    plan: Mapped[str] = mapped_column(String(20), nullable=False, default="CEDRO")
    max_users: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    monthly_doc_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Per-tenant signing provider account; falls back to the instance key
    provider_api_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    provider_organization_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Relationships
    profiles: Mapped[list["Profile"]] = relationship(  # noqa: F821
        "Profile", back_populates="tenant"
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.name} plan={self.plan}>"
