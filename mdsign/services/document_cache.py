"""
services/document_cache.py
--------------------------
Row-level operations on the documents_cache table.

Critical security invariant:
  Every statement takes tenant_id and includes it in the WHERE clause (or
  the row it writes). No method reads or mutates rows without a tenant.

The synchronisation writes (insert / upsert / replace_data / delete) commit
on their own and never share a transaction with the provider call.
detach_from_folders runs inside the caller's folder transaction.
"""

from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.db.base import generate_uuid
from mdsign.models.document import DocumentCache


def _dialect_insert(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upsert not supported for dialect '{dialect}'")


class DocumentCacheStore:

    @staticmethod
    async def insert(
        db: AsyncSession,
        tenant_id: str,
        provider_document_id: str,
        document_data: dict[str, Any],
        folder_id: Optional[str] = None,
    ) -> DocumentCache:
        row = DocumentCache(
            tenant_id=tenant_id,
            provider_document_id=provider_document_id,
            folder_id=folder_id,
            document_data=document_data,
        )
        db.add(row)
        await db.commit()
        return row

    @staticmethod
    async def upsert(
        db: AsyncSession,
        tenant_id: str,
        provider_document_id: str,
        document_data: dict[str, Any],
    ) -> None:
        """Insert, or overwrite document_data of the existing row for this id."""
        insert = _dialect_insert(db)
        stmt = insert(DocumentCache).values(
            id=generate_uuid(),
            tenant_id=tenant_id,
            provider_document_id=provider_document_id,
            document_data=document_data,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["tenant_id", "provider_document_id"],
            set_={
                "document_data": stmt.excluded.document_data,
                "updated_at": func.now(),
            },
        )
        await db.execute(stmt)
        await db.commit()

    @staticmethod
    async def get(
        db: AsyncSession, tenant_id: str, provider_document_id: str
    ) -> Optional[DocumentCache]:
        result = await db.execute(
            select(DocumentCache).where(
                DocumentCache.tenant_id == tenant_id,
                DocumentCache.provider_document_id == provider_document_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_page(
        db: AsyncSession, tenant_id: str, limit: int, offset: int
    ) -> list[DocumentCache]:
        """Newest-first page of the tenant's cached documents."""
        result = await db.execute(
            select(DocumentCache)
            .where(DocumentCache.tenant_id == tenant_id)
            .order_by(DocumentCache.created_at.desc(), DocumentCache.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def replace_data(
        db: AsyncSession,
        tenant_id: str,
        provider_document_id: str,
        document_data: dict[str, Any],
    ) -> None:
        await db.execute(
            update(DocumentCache)
            .where(
                DocumentCache.tenant_id == tenant_id,
                DocumentCache.provider_document_id == provider_document_id,
            )
            .values(document_data=document_data, updated_at=func.now())
        )
        await db.commit()

    @staticmethod
    async def delete(db: AsyncSession, tenant_id: str, provider_document_id: str) -> int:
        result = await db.execute(
            delete(DocumentCache).where(
                DocumentCache.tenant_id == tenant_id,
                DocumentCache.provider_document_id == provider_document_id,
            )
        )
        await db.commit()
        return result.rowcount or 0

    # ── Aggregates (stats / folders) ───────────────────────────────────────────

    @staticmethod
    async def count(db: AsyncSession, tenant_id: str) -> int:
        """Documents currently cached for the tenant. Not a quota counter."""
        result = await db.execute(
            select(func.count()).select_from(DocumentCache).where(
                DocumentCache.tenant_id == tenant_id
            )
        )
        return result.scalar_one()

    @staticmethod
    async def count_by_status(db: AsyncSession, tenant_id: str) -> dict[str, int]:
        status = DocumentCache.document_data["status"].as_string()
        result = await db.execute(
            select(status, func.count())
            .where(DocumentCache.tenant_id == tenant_id)
            .group_by(status)
        )
        return {row[0]: row[1] for row in result.all() if row[0] is not None}

    @staticmethod
    async def count_in_folders(
        db: AsyncSession, tenant_id: str, folder_ids: list[str]
    ) -> dict[str, int]:
        if not folder_ids:
            return {}
        result = await db.execute(
            select(DocumentCache.folder_id, func.count())
            .where(
                DocumentCache.tenant_id == tenant_id,
                DocumentCache.folder_id.in_(folder_ids),
            )
            .group_by(DocumentCache.folder_id)
        )
        return {row[0]: row[1] for row in result.all()}

    @staticmethod
    async def detach_from_folders(
        db: AsyncSession, tenant_id: str, folder_ids: list[str]
    ) -> None:
        """Move documents out of folders that are about to be deleted."""
        if not folder_ids:
            return
        await db.execute(
            update(DocumentCache)
            .where(
                DocumentCache.tenant_id == tenant_id,
                DocumentCache.folder_id.in_(folder_ids),
            )
            .values(folder_id=None)
        )
