"""
services/document_service.py
----------------------------
Document cache synchroniser: executes one validated signer action for an
authenticated caller against the signing provider and reconciles the
tenant's cache.

Rules:
  - The provider is authoritative. A cache failure after a successful
    provider call is logged and never fails the request.
  - Reads (list / get) fall back to the cache when the provider fails; the
    response is then tagged fromCache=True. If the fallback read fails or
    misses, the provider's error is what the caller sees.
  - Writes (create / add-signer / delete) propagate provider errors as-is.
  - The cache row is deleted only after the provider confirmed deletion.
  - Every provider-confirmed create appends a document_usage row before the
    cache insert; quotas count those rows, not the cache.

There is no transaction spanning the provider call and the cache write. A
crash in between leaves the cache stale until the next successful get; a
list right after a create may not show the new document yet. Both are
accepted eventual-consistency windows.
"""

from typing import Any, Awaitable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mdsign.core.errors import (
    ProviderError,
    QuotaExceededError,
    RequestValidationFailed,
)
from mdsign.core.logging import get_logger
from mdsign.schemas.document import (
    AddSignerAction,
    CreateDocumentAction,
    DeleteDocumentAction,
    GetDocumentAction,
    ListDocumentsAction,
    SignerAction,
)
from mdsign.services.caller import CallerContext
from mdsign.services.document_cache import DocumentCacheStore
from mdsign.services.folder_service import FolderService
from mdsign.services.signer_client import SignerClient
from mdsign.services.usage_service import UsageService

logger = get_logger(__name__)


def build_create_payload(action: CreateDocumentAction, requested_by: str) -> dict[str, Any]:
    """Provider payload; signer order follows the input list, starting at 1."""
    signers = []
    for index, signer in enumerate(action.signers):
        entry = signer.to_provider()
        entry["order"] = index + 1
        signers.append(entry)
    return {
        "files": [
            {
                "displayName": action.file_name,
                "content": action.file_content,
                "mimeType": "application/pdf",
            }
        ],
        "signers": signers,
        "description": action.description or f"Document created by {requested_by}",
    }


class DocumentSyncService:

    def __init__(
        self,
        db: AsyncSession,
        client: SignerClient,
        caller: CallerContext,
    ) -> None:
        self.db = db
        self.client = client
        self.caller = caller

    @property
    def tenant_id(self) -> str:
        return self.caller.tenant_id

    async def dispatch(self, action: SignerAction) -> tuple[int, dict[str, Any]]:
        """Run the action and return (status_code, body)."""
        logger.info(
            "Processing signer action",
            action=action.action,
            tenant_id=self.tenant_id,
            profile_id=self.caller.profile_id,
        )
        if isinstance(action, CreateDocumentAction):
            return await self.create_document(action)
        if isinstance(action, ListDocumentsAction):
            return await self.list_documents(action)
        if isinstance(action, GetDocumentAction):
            return await self.get_document(action)
        if isinstance(action, AddSignerAction):
            return await self.add_signer(action)
        if isinstance(action, DeleteDocumentAction):
            return await self.delete_document(action)
        raise RequestValidationFailed(
            "Invalid action", details=[{"field": "action", "message": "unsupported action"}]
        )

    async def _reconcile(self, operation: str, document_id: str, write: Awaitable[Any]) -> bool:
        """Await a cache write; log and swallow store failures."""
        try:
            await write
            return True
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(
                "Document cache write failed",
                operation=operation,
                tenant_id=self.tenant_id,
                document_id=document_id,
                error=str(exc),
            )
            return False

    async def _record_usage(self, document_id: Optional[str]) -> None:
        try:
            await UsageService.record_creation(self.db, self.tenant_id, document_id)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(
                "Document usage write failed",
                tenant_id=self.tenant_id,
                document_id=document_id,
                error=str(exc),
            )

    # ── create ───────────────────────────────────────────────────────────────

    async def create_document(self, action: CreateDocumentAction) -> tuple[int, dict[str, Any]]:
        folder_id = str(action.folder_id) if action.folder_id else None
        if folder_id and await FolderService.get_folder(self.db, self.tenant_id, folder_id) is None:
            raise RequestValidationFailed(
                "Invalid request",
                details=[{"field": "folderId", "message": "Folder not found"}],
            )

        decision = await UsageService.evaluate_document_quota(self.db, self.caller.tenant)
        if not decision.allowed:
            logger.info(
                "Document creation blocked by plan limit",
                tenant_id=self.tenant_id,
                reason=decision.block_reason.value,
                used=decision.used,
                limit=decision.limit,
            )
            raise QuotaExceededError(decision.block_reason.value, details=decision.as_dict())

        payload = build_create_payload(action, self.caller.email)
        document = await self.client.create_document(payload)

        provider_id = document.get("id") if isinstance(document, dict) else None
        await self._record_usage(str(provider_id) if provider_id else None)
        cached = False
        if provider_id:
            cached = await self._reconcile(
                "insert",
                str(provider_id),
                DocumentCacheStore.insert(
                    self.db, self.tenant_id, str(provider_id), document, folder_id=folder_id
                ),
            )
        else:
            logger.warning("Provider document has no id, not cached", tenant_id=self.tenant_id)

        logger.info(
            "Document created",
            tenant_id=self.tenant_id,
            document_id=provider_id,
            signers=len(action.signers),
            cached=cached,
        )
        return 201, {"success": True, "document": document, "cached": cached}

    # ── list ─────────────────────────────────────────────────────────────────

    async def list_documents(self, action: ListDocumentsAction) -> tuple[int, dict[str, Any]]:
        try:
            documents = await self.client.list_documents(action.limit, action.offset)
        except ProviderError as provider_error:
            try:
                rows = await DocumentCacheStore.list_page(
                    self.db, self.tenant_id, action.limit, action.offset
                )
            except SQLAlchemyError as exc:
                await self.db.rollback()
                logger.error("Cache fallback failed", tenant_id=self.tenant_id, error=str(exc))
                raise provider_error from exc
            logger.warning(
                "Serving document list from cache",
                tenant_id=self.tenant_id,
                provider_status=provider_error.status_code,
                count=len(rows),
            )
            return 200, {"documents": [row.document_data for row in rows], "fromCache": True}

        return 200, {"documents": documents, "fromCache": False}

    # ── get ──────────────────────────────────────────────────────────────────

    async def get_document(self, action: GetDocumentAction) -> tuple[int, dict[str, Any]]:
        document_id = str(action.document_id)
        try:
            document = await self.client.get_document(document_id)
        except ProviderError as provider_error:
            try:
                row = await DocumentCacheStore.get(self.db, self.tenant_id, document_id)
            except SQLAlchemyError as exc:
                await self.db.rollback()
                logger.error("Cache fallback failed", tenant_id=self.tenant_id, error=str(exc))
                raise provider_error from exc
            if row is None:
                raise provider_error
            logger.warning(
                "Serving document from cache",
                tenant_id=self.tenant_id,
                document_id=document_id,
                provider_status=provider_error.status_code,
            )
            return 200, {"document": row.document_data, "fromCache": True}

        await self._reconcile(
            "upsert",
            document_id,
            DocumentCacheStore.upsert(self.db, self.tenant_id, document_id, document),
        )
        return 200, {"document": document, "fromCache": False}

    # ── add-signer ───────────────────────────────────────────────────────────

    async def add_signer(self, action: AddSignerAction) -> tuple[int, dict[str, Any]]:
        document_id = str(action.document_id)
        participant = await self.client.add_participant(
            document_id, action.signer.to_provider()
        )
        await self._reconcile(
            "append-participant",
            document_id,
            self._append_participant(document_id, participant),
        )
        return 200, {"success": True, "signer": participant}

    async def _append_participant(self, document_id: str, participant: Any) -> None:
        row = await DocumentCacheStore.get(self.db, self.tenant_id, document_id)
        if row is None:
            # create / get repopulate it later
            return
        data = dict(row.document_data or {})
        data["participants"] = [*(data.get("participants") or []), participant]
        await DocumentCacheStore.replace_data(self.db, self.tenant_id, document_id, data)

    # ── delete ───────────────────────────────────────────────────────────────

    async def delete_document(self, action: DeleteDocumentAction) -> tuple[int, dict[str, Any]]:
        document_id = str(action.document_id)
        await self.client.delete_document(document_id)
        await self._reconcile(
            "delete",
            document_id,
            DocumentCacheStore.delete(self.db, self.tenant_id, document_id),
        )
        logger.info("Document deleted", tenant_id=self.tenant_id, document_id=document_id)
        return 200, {"success": True}
