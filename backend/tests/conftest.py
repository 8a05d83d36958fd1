"""
tests/conftest.py
──────────────────
Shared pytest fixtures for the backend test suite.

Fixtures
--------
app_client
    ``httpx.AsyncClient`` wired to the FastAPI app with every store-facing
    dependency overridden, so tests never hit Supabase or FYERS.

mock_db
    ``MagicMock`` standing in for the Supabase client's fluent builder.

credential_store / quote_log
    In-memory implementations of the two persistence protocols.

Usage
-----
    async def test_health(app_client):
        resp = await app_client.get("/")
        assert resp.status_code == 200
"""

import os

# Settings are read at import time by app.main; give them harmless values.
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-service-role-key")
# No static fallback token, so "no token obtainable" paths are reachable.
os.environ["FYERS_ACCESS_TOKEN"] = ""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable, Dict, List, Optional, Sequence
from unittest.mock import MagicMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_credential_store, get_db, get_quote_log
from app.main import app
from schemas.market import Credential, InstrumentDescriptor, QuoteRecord

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


# ── In-memory stores ──────────────────────────────────────────────────────────


class InMemoryCredentialStore:
    """List-backed ``CredentialStore`` that counts its writes."""

    def __init__(self, rows: Optional[List[Credential]] = None) -> None:
        self.rows: List[Credential] = list(rows or [])
        self.deletes = 0
        self.inserts = 0

    def get_active(self, now: datetime) -> Optional[Credential]:
        active = [c for c in self.rows if c.expires_at > now]
        return max(active, key=lambda c: c.created_at) if active else None

    def insert(self, credential: Credential) -> None:
        self.inserts += 1
        self.rows.append(credential)

    def delete_all(self) -> None:
        self.deletes += 1
        self.rows.clear()


class InMemoryQuoteLog:
    """List-backed ``QuoteLog``; ``fail_with`` makes every call raise."""

    def __init__(self, rows: Optional[List[dict]] = None) -> None:
        self.rows: List[dict] = list(rows or [])
        self.batches: List[Sequence[QuoteRecord]] = []
        self.fail_with: Optional[Exception] = None

    def insert_many(self, records: Sequence[QuoteRecord]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.batches.append(list(records))
        self.rows.extend(record.to_row() for record in records)

    def query_since(self, since: datetime) -> List[dict]:
        if self.fail_with is not None:
            raise self.fail_with
        hits = [
            row
            for row in self.rows
            if datetime.fromisoformat(row["fetched_at"]) >= since
        ]
        return sorted(hits, key=lambda row: row["fetched_at"], reverse=True)


# ── Domain helpers ────────────────────────────────────────────────────────────


def make_universe(n: int) -> List[InstrumentDescriptor]:
    return [
        InstrumentDescriptor(
            symbol=f"NSE:SYM{i}-EQ",
            name=f"Symbol {i}",
            sector="IT" if i % 2 else "Banking",
            industry="Software" if i % 2 else "Private Bank",
        )
        for i in range(1, n + 1)
    ]


def quote_payload(symbol: str, lp: float = 812.4, chp: float = 1.12) -> dict:
    return {
        "s": "ok",
        "code": 200,
        "d": [{"n": symbol, "s": "ok", "v": {"lp": lp, "chp": chp, "ch": 9.0}}],
    }


def quote_row(
    symbol: str,
    fetched_at: datetime,
    price: float = 100.0,
    rs_ratio: float = 100.0,
) -> dict:
    return {
        "symbol": symbol,
        "name": symbol.title(),
        "sector": "IT",
        "industry": "Software",
        "price": price,
        "change": 0.5,
        "rs_ratio": rs_ratio,
        "rs_momentum": 100.25,
        "fetched_at": fetched_at.isoformat(),
        "date": fetched_at.date().isoformat(),
    }


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    """``httpx.Client`` whose requests are answered by ``handler``."""
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def quote_log() -> InMemoryQuoteLog:
    return InMemoryQuoteLog()


# ── Mock Supabase client ──────────────────────────────────────────────────────


@pytest.fixture
def mock_db() -> MagicMock:
    """
    Return a MagicMock that mimics the Supabase client's fluent query builder.

    Any chain ending in ``.execute()`` returns ``MagicMock(data=[])`` unless
    a test overrides it.
    """
    client = MagicMock()
    table = client.table.return_value
    table.select.return_value.gt.return_value.order.return_value.limit.return_value.execute.return_value = MagicMock(
        data=[]
    )
    table.select.return_value.gte.return_value.order.return_value.execute.return_value = MagicMock(
        data=[]
    )
    table.insert.return_value.execute.return_value = MagicMock(data=[])
    table.delete.return_value.neq.return_value.execute.return_value = MagicMock(data=[])
    return client


# ── Test client ───────────────────────────────────────────────────────────────


@pytest.fixture
async def app_client(
    mock_db: MagicMock,
    credential_store: InMemoryCredentialStore,
    quote_log: InMemoryQuoteLog,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTPX client with the stores replaced by in-memory fakes.

    Startup lifespan is skipped to avoid real DB connections in tests.
    Tests needing a different pipeline or provider add their own entries
    to ``app.dependency_overrides``.
    """
    overrides: Dict = {
        get_db: lambda: mock_db,
        get_credential_store: lambda: credential_store,
        get_quote_log: lambda: quote_log,
    }
    app.dependency_overrides.update(overrides)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
