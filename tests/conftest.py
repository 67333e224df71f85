import json
import os
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_mdsign.db")
os.environ.setdefault("SIGNER_API_ENDPOINT", "https://signer.test/api")
os.environ.setdefault("SIGNER_API_KEY", "instance-key")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:5173")

import httpx  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from main import app  # noqa: E402
from mdsign.core.security import create_access_token, hash_password  # noqa: E402
from mdsign.db.session import get_db  # noqa: E402
from mdsign.dependencies import get_signer_gateway  # noqa: E402
from mdsign.models import Base, DocumentCache, DocumentUsage, Profile, Tenant  # noqa: E402
from mdsign.services.plans import resolve_plan  # noqa: E402
from mdsign.services.signer_client import SignerGateway  # noqa: E402
from mdsign.services.tenant_service import apply_plan  # noqa: E402

PROVIDER_URL = "https://signer.test/api"
PASSWORD = "s3cret-password"
PASSWORD_HASH = hash_password(PASSWORD)


class FakeProvider:
    """In-memory signing provider reached through httpx.MockTransport."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, Any]] = []
        self.documents: dict[str, dict] = {}
        self.fail_status: Optional[int] = None
        self.timeout = False

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def seed(self, **fields: Any) -> dict:
        document = {
            "id": str(uuid.uuid4()),
            "name": "contract.pdf",
            "status": "PENDING",
            "participants": [],
            **fields,
        }
        self.documents[document["id"]] = document
        return document

    def calls_to(self, method: str) -> list[tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] == method]

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.path.removeprefix("/api")
        self.calls.append((request.method, path, body))

        if self.timeout:
            raise httpx.ReadTimeout("timed out", request=request)
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"message": "provider unavailable"})

        parts = path.strip("/").split("/")
        if parts == ["documents"]:
            if request.method == "POST":
                document = self.seed(
                    name=body["files"][0]["displayName"],
                    signers=body["signers"],
                    description=body["description"],
                )
                return httpx.Response(201, json=document)
            limit = int(request.url.params.get("limit", 50))
            offset = int(request.url.params.get("offset", 0))
            return httpx.Response(200, json=list(self.documents.values())[offset:offset + limit])

        document = self.documents.get(parts[1])
        if document is None:
            return httpx.Response(404, json={"message": "Document not found"})
        if parts[2:] == ["participants"] and request.method == "POST":
            participant = {"id": str(uuid.uuid4()), **body}
            document["participants"].append(participant)
            return httpx.Response(201, json=participant)
        if request.method == "GET":
            return httpx.Response(200, json=document)
        if request.method == "DELETE":
            del self.documents[parts[1]]
            return httpx.Response(204)
        return httpx.Response(405)


@dataclass
class Account:
    tenant_id: Optional[str]
    profile_id: str
    email: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


# ── Database ─────────────────────────────────────────────────────────────────

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ── App ──────────────────────────────────────────────────────────────────────

@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
async def client(session_factory, provider):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def override_gateway():
        return SignerGateway(
            base_url=PROVIDER_URL,
            api_key="instance-key",
            transport=provider.transport(),
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_signer_gateway] = override_gateway
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Factories ────────────────────────────────────────────────────────────────

@pytest.fixture
def make_account(session_factory):
    async def _make(
        plan: str = "CEDRO",
        role: str = "owner",
        tenant_id: Optional[str] = None,
        detached: bool = False,
        email: Optional[str] = None,
    ) -> Account:
        async with session_factory() as session:
            if not detached and tenant_id is None:
                tenant = Tenant(name=f"Tenant {uuid.uuid4().hex[:8]}")
                apply_plan(tenant, resolve_plan(plan))
                session.add(tenant)
                await session.flush()
                tenant_id = tenant.id
            profile = Profile(
                email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
                full_name="Test User",
                hashed_password=PASSWORD_HASH,
                role=role,
                tenant_id=None if detached else tenant_id,
            )
            session.add(profile)
            await session.commit()
        token = create_access_token(subject=profile.id, role=profile.role)
        return Account(
            tenant_id=profile.tenant_id,
            profile_id=profile.id,
            email=profile.email,
            token=token,
        )

    return _make


@pytest.fixture
def add_cached_document(session_factory):
    async def _add(
        tenant_id: str,
        document: Optional[dict] = None,
        created_at: Optional[datetime] = None,
        folder_id: Optional[str] = None,
    ) -> DocumentCache:
        document = document or {"id": str(uuid.uuid4()), "status": "PENDING"}
        row = DocumentCache(
            tenant_id=tenant_id,
            provider_document_id=document["id"],
            folder_id=folder_id,
            document_data=document,
        )
        if created_at is not None:
            row.created_at = created_at
        async with session_factory() as session:
            session.add(row)
            await session.commit()
        return row

    return _add


@pytest.fixture
def add_usage(session_factory):
    """Record documents as already created, for quota tests."""
    async def _add(
        tenant_id: str,
        count: int = 1,
        created_at: Optional[datetime] = None,
    ) -> None:
        async with session_factory() as session:
            for _ in range(count):
                row = DocumentUsage(tenant_id=tenant_id, provider_document_id=str(uuid.uuid4()))
                if created_at is not None:
                    row.created_at = created_at
                session.add(row)
            await session.commit()

    return _add
