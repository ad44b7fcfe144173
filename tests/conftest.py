"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``kitgate`` import so the global
settings object can be built without a .env file. The in-memory repository
and blob store below stand in for the remote services in route and service
tests.
"""

import asyncio
import os
import uuid
from datetime import datetime, timezone

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("SUPABASE_URL", "https://project.example.test")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key-for-tests")
os.environ.setdefault("TOKEN_SECRET", "token-secret-for-tests-0123456789abcdef")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")

import pytest

from kitgate.adapters.rate_limit import InMemoryWindowRateLimiter
from kitgate.adapters.storage.base import AbstractBlobStore
from kitgate.adapters.store.base import AbstractCodeRepository, UsageLogPage
from kitgate.core.errors import StoreAppError
from kitgate.schemas.records import (
    AccessCodeRecord,
    CustomerTypeRecord,
    NewAccessCode,
    NewUsageLog,
    UsageLogRecord,
)
from kitgate.services.tokens import PdfTokenIssuer

TEST_TOKEN_SECRET = os.environ["TOKEN_SECRET"]
ADMIN_HEADERS = {"X-API-Key": "test-api-key-123"}
PDF_BYTES = b"%PDF-1.7\n%fake kit document\n%%EOF\n"

CUSTOMER_TYPES = [
    CustomerTypeRecord(id="ct-startup", slug="startup", name_es="Startup", name_en="Startup"),
    CustomerTypeRecord(id="ct-oro", slug="oro", name_es="Oro", name_en="Gold"),
    CustomerTypeRecord(id="ct-zafiro", slug="zafiro", name_es="Zafiro", name_en="Sapphire"),
]


class FakeCodeRepository(AbstractCodeRepository):
    """Dict-backed repository.

    Every method yields to the event loop first so concurrent callers
    interleave the way they would against a remote store.
    """

    def __init__(self) -> None:
        self.codes: dict[str, AccessCodeRecord] = {}
        self.customer_types: list[CustomerTypeRecord] = list(CUSTOMER_TYPES)
        self.logs: list[UsageLogRecord] = []
        self.calls: list[str] = []
        self.fail_log_insert = False

    def add_code(self, **fields) -> AccessCodeRecord:
        fields.setdefault("id", str(uuid.uuid4()))
        fields.setdefault("customer_type", "startup")
        slug = fields["customer_type"]
        fields.setdefault(
            "customer_type_id",
            next((t.id for t in self.customer_types if t.slug == slug), None),
        )
        fields.setdefault("created_at", datetime.now(timezone.utc))
        record = AccessCodeRecord(**fields)
        self.codes[record.id] = record
        return record

    def _slug_for(self, type_id: str | None) -> str | None:
        return next((t.slug for t in self.customer_types if t.id == type_id), None)

    async def list_active_candidates(self, customer_type=None, *, plaintext=None):
        await asyncio.sleep(0)
        self.calls.append("list_active_candidates")
        return [
            r
            for r in self.codes.values()
            if r.is_active
            and (customer_type is None or r.customer_type == customer_type)
            and (
                plaintext is None
                or r.code_hash is not None
                or plaintext in (r.code or "").upper()
            )
        ]

    async def get_code(self, code_id):
        await asyncio.sleep(0)
        self.calls.append("get_code")
        return self.codes.get(code_id)

    async def compare_and_increment_use(self, code_id, expected_use_count):
        await asyncio.sleep(0)
        self.calls.append("compare_and_increment_use")
        current = self.codes.get(code_id)
        if current is None or current.use_count != expected_use_count:
            return None
        updated = current.model_copy(update={"use_count": expected_use_count + 1})
        self.codes[code_id] = updated
        return updated

    async def insert_usage_log(self, entry: NewUsageLog):
        await asyncio.sleep(0)
        self.calls.append("insert_usage_log")
        if self.fail_log_insert:
            raise StoreAppError(code="store_error", message="The data store rejected the request")
        record = self.codes.get(entry.code_id)
        self.logs.append(
            UsageLogRecord(
                id=str(len(self.logs) + 1),
                accessed_at=datetime.now(timezone.utc),
                code=record.code if record else None,
                customer_type=record.customer_type if record else None,
                **entry.model_dump(),
            )
        )

    async def list_customer_types(self):
        return list(self.customer_types)

    async def list_codes(self, *, customer_type=None, search=None):
        rows = [
            r
            for r in self.codes.values()
            if (customer_type is None or r.customer_type == customer_type)
            and (not search or (r.code is not None and search in r.code))
        ]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    async def insert_codes(self, codes: list[NewAccessCode]):
        inserted = []
        for new in codes:
            inserted.append(
                self.add_code(
                    customer_type=self._slug_for(new.customer_type_id),
                    **new.model_dump(),
                )
            )
        return inserted

    async def set_code_active(self, code_id, is_active):
        current = self.codes.get(code_id)
        if current is None:
            return None
        updated = current.model_copy(update={"is_active": is_active})
        self.codes[code_id] = updated
        return updated

    async def delete_code(self, code_id):
        return self.codes.pop(code_id, None) is not None

    async def list_usage_logs(
        self, *, offset=0, limit=25, customer_type=None, since=None, until=None
    ):
        rows = [
            log
            for log in sorted(self.logs, key=lambda log: log.accessed_at, reverse=True)
            if (customer_type is None or log.customer_type == customer_type)
            and (since is None or log.accessed_at >= since)
            and (until is None or log.accessed_at < until)
        ]
        return UsageLogPage(items=rows[offset : offset + limit], total=len(rows))


class FakeBlobStore(AbstractBlobStore):
    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects = dict(objects or {})
        self.downloads: list[str] = []

    async def download(self, path):
        self.downloads.append(path)
        if path not in self.objects:
            raise StoreAppError(
                code="store_error",
                message="The data store rejected the request",
                details={"http_status": 404},
            )
        return self.objects[path]


@pytest.fixture
def repository() -> FakeCodeRepository:
    return FakeCodeRepository()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    from kitgate.core.config import settings

    return FakeBlobStore(
        {
            path: PDF_BYTES
            for orientations in settings.app.kit_documents.values()
            for path in orientations.values()
        }
    )


@pytest.fixture
def issuer() -> PdfTokenIssuer:
    return PdfTokenIssuer(TEST_TOKEN_SECRET)


@pytest.fixture
def services(repository, blob_store, issuer):
    from kitgate.core.container import ServiceContainer

    return ServiceContainer.build(
        repository=repository,
        blob_store=blob_store,
        issuer=issuer,
        rate_limiter=InMemoryWindowRateLimiter(limit=5, window_seconds=60),
    )


@pytest.fixture
def app(services):
    from kitgate.core.app_factory import create_app

    return create_app(services)


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)
