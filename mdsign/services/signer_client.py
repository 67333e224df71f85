"""
services/signer_client.py
-------------------------
Thin async client for the signing provider's document API.

Endpoints used (relative to SIGNER_API_ENDPOINT):
    POST   /documents
    GET    /documents?limit=&offset=
    GET    /documents/{id}
    POST   /documents/{id}/participants
    DELETE /documents/{id}

Every call is bearer-authenticated with the API key and bounded by
SIGNER_TIMEOUT_SECONDS. Any non-2xx answer, timeout or transport failure is
raised as ProviderError so callers can decide between propagating it and
falling back to the cache. Nothing here retries.
"""

from typing import Any, Optional

import httpx

from mdsign.core.config import settings
from mdsign.core.errors import ConfigurationError, ProviderError
from mdsign.core.logging import get_logger
from mdsign.models.tenant import Tenant

logger = get_logger(__name__)


class SignerClient:

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        error_message: str,
        **kwargs: Any,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as exc:
            logger.error("Signing provider timeout", method=method, path=path)
            raise ProviderError(error_message, details=str(exc) or "timeout", status_code=504)
        except httpx.HTTPError as exc:
            logger.error("Signing provider unreachable", method=method, path=path, error=str(exc))
            raise ProviderError(error_message, details=str(exc), status_code=502)

        if not response.is_success:
            logger.error(
                "Signing provider error",
                method=method,
                path=path,
                provider_status=response.status_code,
                body=response.text[:500],
            )
            raise ProviderError(
                error_message, details=response.text, status_code=response.status_code
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.error("Signing provider returned invalid JSON", method=method, path=path)
            raise ProviderError(error_message, details=response.text[:500], status_code=502)

    # ── Documents ────────────────────────────────────────────────────────────

    async def create_document(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/documents",
            "Failed to create document in signing provider",
            json=payload,
        )

    async def list_documents(self, limit: int, offset: int) -> Any:
        return await self._request(
            "GET",
            "/documents",
            "Failed to fetch documents",
            params={"limit": limit, "offset": offset},
        )

    async def get_document(self, document_id: str) -> dict[str, Any]:
        return await self._request(
            "GET", f"/documents/{document_id}", "Document not found"
        )

    async def add_participant(self, document_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/documents/{document_id}/participants",
            "Failed to add signer",
            json=payload,
        )

    async def delete_document(self, document_id: str) -> None:
        await self._request(
            "DELETE", f"/documents/{document_id}", "Failed to delete document"
        )


class SignerGateway:
    """
    Instance-level provider configuration. Hands out a client per tenant,
    preferring the tenant's own API key over the instance key.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def client_for(self, tenant: Tenant) -> SignerClient:
        """
        Raises:
            ConfigurationError: when neither the tenant nor the instance has a key.
        """
        api_key = tenant.provider_api_key or self.api_key
        if not api_key:
            logger.error("Missing signing provider API key", tenant_id=tenant.id)
            raise ConfigurationError()
        return SignerClient(
            base_url=self.base_url,
            api_key=api_key,
            timeout=self.timeout,
            transport=self.transport,
        )


def build_signer_gateway() -> SignerGateway:
    """
    Raises:
        ConfigurationError: when the instance has no provider endpoint. The
            API key is checked per tenant in SignerGateway.client_for.
    """
    if not settings.SIGNER_API_ENDPOINT:
        logger.error("Missing signing provider endpoint")
        raise ConfigurationError()
    return SignerGateway(
        base_url=settings.SIGNER_API_ENDPOINT,
        api_key=settings.SIGNER_API_KEY,
        timeout=settings.SIGNER_TIMEOUT_SECONDS,
    )
