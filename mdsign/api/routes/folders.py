"""
api/routes/folders.py
---------------------
Document folders of the caller's tenant.

POST   /folders              — Create (optionally under a parent).
GET    /folders              — List; filter by parent_id or root=true.
GET    /folders/tree         — Whole hierarchy as nested nodes.
GET    /folders/{folder_id}  — One folder with document / subfolder counts.
PATCH  /folders/{folder_id}  — Rename, recolour or move.
DELETE /folders/{folder_id}  — Delete; force=true removes a non-empty folder.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.errors import ConflictError, NotFoundError, RequestValidationFailed
from mdsign.db.session import get_db
from mdsign.dependencies import get_caller_context
from mdsign.schemas.folder import FolderCreate, FolderRead, FolderTreeNode, FolderUpdate
from mdsign.services.caller import CallerContext
from mdsign.services.folder_service import FolderService

router = APIRouter(prefix="/folders", tags=["Folders"])


@router.post(
    "",
    response_model=FolderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a folder",
)
async def create_folder(
    body: FolderCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> FolderRead:
    try:
        folder = await FolderService.create_folder(db, caller.tenant_id, body)
    except LookupError as exc:
        raise RequestValidationFailed(
            "Invalid request", details=[{"field": "parent_id", "message": str(exc)}]
        )
    return FolderRead.model_validate(folder)


@router.get("", response_model=list[FolderRead], summary="List folders")
async def list_folders(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    parent_id: Optional[str] = None,
    root: bool = False,
    include_document_count: bool = False,
) -> list[FolderRead]:
    folders = await FolderService.list_folders(
        db, caller.tenant_id, parent_id=parent_id, root_only=root
    )
    items = [FolderRead.model_validate(f) for f in folders]
    if include_document_count:
        counts = await FolderService.document_counts(
            db, caller.tenant_id, [f.id for f in folders]
        )
        for item in items:
            item.document_count = counts.get(item.id, 0)
    return items


@router.get("/tree", response_model=list[FolderTreeNode], summary="Folder hierarchy")
async def folder_tree(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> list[FolderTreeNode]:
    nodes = await FolderService.build_tree(db, caller.tenant_id)
    return [FolderTreeNode.model_validate(node) for node in nodes]


@router.get("/{folder_id}", response_model=FolderRead, summary="Get a folder")
async def get_folder(
    folder_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> FolderRead:
    folder = await FolderService.get_folder(db, caller.tenant_id, folder_id)
    if folder is None:
        raise NotFoundError(f"Folder '{folder_id}' not found")
    item = FolderRead.model_validate(folder)
    counts = await FolderService.document_counts(db, caller.tenant_id, [folder_id])
    item.document_count = counts.get(folder_id, 0)
    item.subfolder_count = await FolderService.subfolder_count(db, caller.tenant_id, folder_id)
    return item


@router.patch("/{folder_id}", response_model=FolderRead, summary="Update a folder")
async def update_folder(
    folder_id: str,
    body: FolderUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
) -> FolderRead:
    try:
        folder = await FolderService.update_folder(db, caller.tenant_id, folder_id, body)
    except LookupError as exc:
        raise NotFoundError(str(exc))
    except ValueError as exc:
        raise RequestValidationFailed(
            "Invalid request", details=[{"field": "parent_id", "message": str(exc)}]
        )
    return FolderRead.model_validate(folder)


@router.delete(
    "/{folder_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a folder",
)
async def delete_folder(
    folder_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    force: Annotated[bool, Query(description="Also delete subfolders; documents move to the root")] = False,
) -> Response:
    try:
        await FolderService.delete_folder(db, caller.tenant_id, folder_id, force=force)
    except LookupError as exc:
        raise NotFoundError(str(exc))
    except ValueError as exc:
        raise ConflictError(str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
