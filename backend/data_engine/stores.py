"""
data_engine/stores.py
─────────────────────
Persistence contracts and their Supabase implementations.

Two tables are owned by this module:

``fyers_tokens``
    The credential cache.  Rows are never updated: a refresh deletes every
    row and inserts a fresh one.  Readers pick the newest non-expired row.

``market_data``
    Append-only quote log written once per ingestion run.

Callers depend on the :class:`CredentialStore` / :class:`QuoteLog`
protocols, never on the Supabase client directly, so tests can swap in
in-memory fakes.
"""

import logging
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from supabase import Client

from core.exceptions import PersistenceError, QueryError
from schemas.market import Credential, QuoteRecord

logger = logging.getLogger(__name__)

TOKENS_TABLE = "fyers_tokens"
MARKET_DATA_TABLE = "market_data"

# PostgREST refuses an unfiltered DELETE; "id != nil-UUID" matches every row.
_NIL_UUID = "00000000-0000-0000-0000-000000000000"


class CredentialStore(Protocol):
    """Durable home of the current access token."""

    def get_active(self, now: datetime) -> Optional[Credential]:
        """Newest credential whose ``expires_at`` is strictly after ``now``."""

    def insert(self, credential: Credential) -> None:
        ...

    def delete_all(self) -> None:
        ...


class QuoteLog(Protocol):
    """Append-only log of :class:`QuoteRecord` rows."""

    def insert_many(self, records: Sequence[QuoteRecord]) -> None:
        ...

    def query_since(self, since: datetime) -> List[dict]:
        """Rows with ``fetched_at >= since``, newest first."""


# ── Supabase implementations ──────────────────────────────────────────────────


class SupabaseCredentialStore:
    """
    :class:`CredentialStore` backed by the ``fyers_tokens`` table.

    Args:
        db: Supabase client (see :func:`core.database.get_supabase_client`).
    """

    def __init__(self, db: Client) -> None:
        self._db = db

    def get_active(self, now: datetime) -> Optional[Credential]:
        try:
            res = (
                self._db.table(TOKENS_TABLE)
                .select("*")
                .gt("expires_at", now.isoformat())
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            # A failed cache read degrades to a refresh, same as a miss.
            logger.error("Could not read cached token: %s", exc)
            return None

        if not res.data:
            return None
        row = res.data[0]
        return Credential(
            token=row["access_token"],
            expires_at=row["expires_at"],
            created_at=row["created_at"],
        )

    def insert(self, credential: Credential) -> None:
        try:
            self._db.table(TOKENS_TABLE).insert(
                {
                    "access_token": credential.token,
                    "expires_at": credential.expires_at.isoformat(),
                    "created_at": credential.created_at.isoformat(),
                }
            ).execute()
        except Exception as exc:
            logger.exception("Storing token failed")
            raise PersistenceError(f"Could not store token: {exc}", attempted=1) from exc

    def delete_all(self) -> None:
        try:
            self._db.table(TOKENS_TABLE).delete().neq("id", _NIL_UUID).execute()
        except Exception as exc:
            logger.exception("Clearing old tokens failed")
            raise PersistenceError(f"Could not clear old tokens: {exc}") from exc


class SupabaseQuoteLog:
    """
    :class:`QuoteLog` backed by the ``market_data`` table.

    Args:
        db: Supabase client.
    """

    def __init__(self, db: Client) -> None:
        self._db = db

    def insert_many(self, records: Sequence[QuoteRecord]) -> None:
        rows = [record.to_row() for record in records]
        try:
            self._db.table(MARKET_DATA_TABLE).insert(rows).execute()
        except Exception as exc:
            logger.exception("Batch insert of %d quotes failed", len(rows))
            raise PersistenceError(
                f"Could not store {len(rows)} quotes: {exc}", attempted=len(rows)
            ) from exc

    def query_since(self, since: datetime) -> List[dict]:
        try:
            res = (
                self._db.table(MARKET_DATA_TABLE)
                .select("*")
                .gte("fetched_at", since.isoformat())
                .order("fetched_at", desc=True)
                .execute()
            )
        except Exception as exc:
            logger.exception("Reading market data failed")
            raise QueryError(f"Could not read market data: {exc}") from exc
        return res.data or []
