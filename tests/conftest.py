"""Shared fixtures: in-memory registry database, fake Odoo store, fake push gateway."""
from typing import Dict, List

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leavebridge.database import Base
from leavebridge.errors import AuthenticationError, TransientStoreError
from leavebridge.services.device_registry import DeviceRegistry
from leavebridge.services.push_sender import PushGateway
import leavebridge.models  # noqa: F401


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def registry(session_factory):
    return DeviceRegistry(session_factory)


def _matches(record: dict, clause) -> bool:
    field, op, value = clause
    actual = record.get(field)
    if op == "=":
        return actual == value
    if op == "in":
        return actual in value
    if op == ">":
        return actual is not None and actual > value
    raise ValueError(f"Unsupported operator {op}")


class FakeOdooStore:
    """In-memory stand-in for OdooClient that applies simple domains."""

    def __init__(self):
        self.rows: Dict[str, List[dict]] = {}
        self.queries: List[tuple] = []
        self.reads: List[tuple] = []
        self.auth_calls = 0
        self.fail_auth = False
        self.fail_queries = False
        self.fail_reads = False

    def add(self, collection: str, **row) -> dict:
        self.rows.setdefault(collection, []).append(row)
        return row

    async def authenticate(self) -> int:
        self.auth_calls += 1
        if self.fail_auth:
            raise AuthenticationError("bad credentials")
        return 1

    async def query(self, collection, domain, fields, order=None, limit=None) -> List[dict]:
        self.queries.append((collection, [list(c) for c in domain], list(fields), order, limit))
        if self.fail_queries:
            raise TransientStoreError("connection reset")
        rows = [r for r in self.rows.get(collection, []) if all(_matches(r, c) for c in domain)]
        if order == "write_date desc":
            rows.sort(key=lambda r: r.get("write_date") or "", reverse=True)
        if limit:
            rows = rows[:limit]
        return [dict(r) for r in rows]

    async def read(self, collection, ids, fields) -> List[dict]:
        self.reads.append((collection, list(ids)))
        if self.fail_reads:
            raise TransientStoreError("timeout")
        wanted = set(ids)
        return [dict(r) for r in self.rows.get(collection, []) if r.get("id") in wanted]

    def reads_of(self, collection: str) -> List[list]:
        return [ids for coll, ids in self.reads if coll == collection]


@pytest.fixture
def store():
    return FakeOdooStore()


class FakeGateway(PushGateway):
    """Records sends; raises the configured error per token."""

    def __init__(self):
        self.sent: List[tuple] = []
        self.errors: Dict[str, Exception] = {}

    async def send(self, token, title, body, payload):
        if token in self.errors:
            raise self.errors[token]
        self.sent.append((token, title, body, dict(payload)))

    def tokens_sent(self) -> List[str]:
        return [s[0] for s in self.sent]


@pytest.fixture
def gateway():
    return FakeGateway()
