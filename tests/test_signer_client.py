import httpx
import pytest

from mdsign.core.config import settings
from mdsign.core.errors import ConfigurationError, ProviderError
from mdsign.models import Tenant
from mdsign.services.signer_client import SignerClient, SignerGateway, build_signer_gateway


def client_with(handler, api_key="instance-key"):
    return SignerClient(
        base_url="https://signer.test/api/",
        api_key=api_key,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


async def test_requests_are_bearer_authenticated():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["authorization"]
        seen["url"] = str(request.url)
        return httpx.Response(200, json=[])

    await client_with(handler).list_documents(limit=10, offset=20)

    assert seen["auth"] == "Bearer instance-key"
    assert seen["url"] == "https://signer.test/api/documents?limit=10&offset=20"


async def test_non_success_passes_status_and_raw_body():
    def handler(request):
        return httpx.Response(409, text="duplicate document")

    with pytest.raises(ProviderError) as excinfo:
        await client_with(handler).create_document({"files": []})

    assert excinfo.value.status_code == 409
    assert excinfo.value.details == "duplicate document"
    assert excinfo.value.error == "Failed to create document in signing provider"


async def test_timeout_maps_to_504():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProviderError) as excinfo:
        await client_with(handler).get_document("abc")

    assert excinfo.value.status_code == 504


async def test_transport_error_maps_to_502():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderError) as excinfo:
        await client_with(handler).get_document("abc")

    assert excinfo.value.status_code == 502


async def test_invalid_json_maps_to_502():
    def handler(request):
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(ProviderError) as excinfo:
        await client_with(handler).get_document("abc")

    assert excinfo.value.status_code == 502


async def test_empty_body_returns_none():
    def handler(request):
        return httpx.Response(204)

    assert await client_with(handler).delete_document("abc") is None


async def test_add_participant_posts_to_document():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        return httpx.Response(201, json={"id": "p1"})

    result = await client_with(handler).add_participant("doc-1", {"name": "Ana"})

    assert result == {"id": "p1"}
    assert (seen["method"], seen["path"]) == ("POST", "/api/documents/doc-1/participants")


def test_gateway_prefers_tenant_key():
    gateway = SignerGateway(base_url="https://signer.test/api", api_key="instance-key")

    own = gateway.client_for(Tenant(name="Own", provider_api_key="tenant-key"))
    shared = gateway.client_for(Tenant(name="Shared"))

    assert own._headers()["Authorization"] == "Bearer tenant-key"
    assert shared._headers()["Authorization"] == "Bearer instance-key"


def test_build_gateway_requires_endpoint(monkeypatch):
    monkeypatch.setattr(settings, "SIGNER_API_ENDPOINT", "")

    with pytest.raises(ConfigurationError):
        build_signer_gateway()


def test_build_gateway_without_instance_key(monkeypatch):
    monkeypatch.setattr(settings, "SIGNER_API_KEY", "")

    gateway = build_signer_gateway()
    own = gateway.client_for(Tenant(name="Own", provider_api_key="tenant-key"))

    assert own._headers()["Authorization"] == "Bearer tenant-key"
    with pytest.raises(ConfigurationError):
        gateway.client_for(Tenant(name="Shared"))


def test_build_gateway_uses_settings(monkeypatch):
    monkeypatch.setattr(settings, "SIGNER_TIMEOUT_SECONDS", 12.5)

    gateway = build_signer_gateway()

    assert gateway.base_url == settings.SIGNER_API_ENDPOINT
    assert gateway.timeout == 12.5
