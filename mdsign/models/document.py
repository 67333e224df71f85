"""
models/document.py
------------------
Tenant-scoped cache of documents owned by the signing provider.

The provider is the system of record. A row here holds the provider's JSON
verbatim and is only a read-through / fallback copy:
  - inserted after the provider confirms creation,
  - upserted whenever a live read succeeds,
  - deleted after the provider confirms deletion.

(tenant_id, provider_document_id) is unique so repeated upserts never
duplicate a document.
"""

from typing import Any, Optional

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mdsign.db.base import Base, JSONType, TimestampMixin, generate_uuid


class DocumentCache(Base, TimestampMixin):
    __tablename__ = "documents_cache"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "provider_document_id", name="uq_documents_cache_tenant_document"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_document_id: Mapped[str] = mapped_column(String(64), nullable=False)
    folder_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    document_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<DocumentCache tenant_id={self.tenant_id} "
            f"provider_document_id={self.provider_document_id}>"
        )
