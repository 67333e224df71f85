"""
models/usage.py
---------------
Append-only record of provider-confirmed document creations.

Plan quotas are counted from this table, never from documents_cache: a row
is written once per successful create, is stamped with the creation time,
and is not removed when the document is later deleted.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from mdsign.db.base import Base, generate_uuid


class DocumentUsage(Base):
    __tablename__ = "document_usage"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # None when the provider answered without an id
    provider_document_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentUsage tenant_id={self.tenant_id} "
            f"provider_document_id={self.provider_document_id}>"
        )
