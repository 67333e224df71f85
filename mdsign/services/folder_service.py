"""
services/folder_service.py
--------------------------
Business logic for tenant folders.

Raises ValueError for rule violations (cycles, non-empty delete) and
LookupError for references that do not exist inside the caller's tenant.
"""

from typing import Any, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.logging import get_logger
from mdsign.models.folder import Folder
from mdsign.schemas.folder import FolderCreate, FolderUpdate
from mdsign.services.document_cache import DocumentCacheStore

logger = get_logger(__name__)


class FolderService:

    @staticmethod
    async def get_folder(db: AsyncSession, tenant_id: str, folder_id: str) -> Folder | None:
        result = await db.execute(
            select(Folder).where(Folder.id == folder_id, Folder.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _parent_map(db: AsyncSession, tenant_id: str) -> dict[str, Optional[str]]:
        result = await db.execute(
            select(Folder.id, Folder.parent_id).where(Folder.tenant_id == tenant_id)
        )
        return {row[0]: row[1] for row in result.all()}

    @staticmethod
    def _would_cycle(
        parents: dict[str, Optional[str]], folder_id: str, new_parent_id: str
    ) -> bool:
        """True when folder_id is new_parent_id or one of its ancestors."""
        seen: set[str] = set()
        current: Optional[str] = new_parent_id
        while current is not None and current not in seen:
            if current == folder_id:
                return True
            seen.add(current)
            current = parents.get(current)
        return current is not None

    @staticmethod
    async def create_folder(db: AsyncSession, tenant_id: str, data: FolderCreate) -> Folder:
        if data.parent_id and await FolderService.get_folder(db, tenant_id, data.parent_id) is None:
            raise LookupError(f"Parent folder '{data.parent_id}' not found")
        folder = Folder(
            tenant_id=tenant_id,
            name=data.name,
            parent_id=data.parent_id,
            color=data.color,
            icon=data.icon,
        )
        db.add(folder)
        await db.flush()
        await db.refresh(folder)
        logger.info("Folder created", folder_id=folder.id, tenant_id=tenant_id)
        return folder

    @staticmethod
    async def list_folders(
        db: AsyncSession,
        tenant_id: str,
        parent_id: Optional[str] = None,
        root_only: bool = False,
    ) -> list[Folder]:
        stmt = select(Folder).where(Folder.tenant_id == tenant_id)
        if root_only:
            stmt = stmt.where(Folder.parent_id.is_(None))
        elif parent_id is not None:
            stmt = stmt.where(Folder.parent_id == parent_id)
        result = await db.execute(stmt.order_by(Folder.name))
        return list(result.scalars().all())

    @staticmethod
    async def document_counts(
        db: AsyncSession, tenant_id: str, folder_ids: list[str]
    ) -> dict[str, int]:
        return await DocumentCacheStore.count_in_folders(db, tenant_id, folder_ids)

    @staticmethod
    async def subfolder_count(db: AsyncSession, tenant_id: str, folder_id: str) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Folder)
            .where(Folder.tenant_id == tenant_id, Folder.parent_id == folder_id)
        )
        return result.scalar_one()

    @staticmethod
    async def build_tree(db: AsyncSession, tenant_id: str) -> list[dict[str, Any]]:
        """Nested {..., "children": [...]} nodes, roots first, names sorted."""
        folders = await FolderService.list_folders(db, tenant_id)
        nodes = {
            f.id: {
                "id": f.id,
                "name": f.name,
                "parent_id": f.parent_id,
                "color": f.color,
                "icon": f.icon,
                "children": [],
            }
            for f in folders
        }
        roots = []
        for folder in folders:
            node = nodes[folder.id]
            parent = nodes.get(folder.parent_id) if folder.parent_id else None
            if parent is None:
                roots.append(node)
            else:
                parent["children"].append(node)
        return roots

    @staticmethod
    async def update_folder(
        db: AsyncSession, tenant_id: str, folder_id: str, data: FolderUpdate
    ) -> Folder:
        folder = await FolderService.get_folder(db, tenant_id, folder_id)
        if folder is None:
            raise LookupError(f"Folder '{folder_id}' not found")

        changes = data.model_dump(exclude_unset=True)
        if "parent_id" in changes and changes["parent_id"] is not None:
            new_parent = changes["parent_id"]
            if new_parent == folder_id:
                raise ValueError("A folder cannot be its own parent")
            parents = await FolderService._parent_map(db, tenant_id)
            if new_parent not in parents:
                raise LookupError(f"Parent folder '{new_parent}' not found")
            if FolderService._would_cycle(parents, folder_id, new_parent):
                raise ValueError("A folder cannot be moved inside one of its subfolders")

        if "name" in changes and changes["name"] is None:
            raise ValueError("Folder name cannot be empty")

        for key, value in changes.items():
            setattr(folder, key, value)
        await db.flush()
        await db.refresh(folder)
        logger.info("Folder updated", folder_id=folder.id, tenant_id=tenant_id)
        return folder

    @staticmethod
    async def delete_folder(
        db: AsyncSession, tenant_id: str, folder_id: str, force: bool = False
    ) -> int:
        """
        Delete a folder. Without `force` a folder holding subfolders or
        documents is refused; with it, the whole subtree goes and its
        documents move back to the root. Returns the number of folders removed.
        """
        parents = await FolderService._parent_map(db, tenant_id)
        if folder_id not in parents:
            raise LookupError(f"Folder '{folder_id}' not found")

        subtree = [folder_id]
        index = 0
        while index < len(subtree):
            current = subtree[index]
            subtree.extend(fid for fid, pid in parents.items() if pid == current)
            index += 1

        if not force:
            doc_count = await DocumentCacheStore.count_in_folders(db, tenant_id, [folder_id])
            if len(subtree) > 1 or doc_count.get(folder_id, 0) > 0:
                raise ValueError("Folder is not empty; pass force=true to delete it")

        await DocumentCacheStore.detach_from_folders(db, tenant_id, subtree)
        # children before parents so the self-referencing FK never dangles
        for fid in reversed(subtree):
            await db.execute(
                delete(Folder).where(Folder.id == fid, Folder.tenant_id == tenant_id)
            )
        await db.flush()
        logger.info("Folder deleted", folder_id=folder_id, tenant_id=tenant_id, removed=len(subtree))
        return len(subtree)
