"""
core/exceptions.py
──────────────────
Error taxonomy for token handling, quote ingestion and persistence.

Propagation rules
-----------------
- ``FetchError`` is per-instrument: :class:`~data_engine.fetcher.QuoteFetcher`
  absorbs it and reports the instrument as skipped.
- ``RefreshError`` (and its ``ConfigError`` subclass) sends
  :class:`~data_engine.fyers_auth.TokenProvider` down the fallback path.
- ``AuthError`` and ``PersistenceError`` reach the top of the triggering
  operation and are rendered as ``{"error", "details"}`` by ``app.main``.
"""

from typing import List, Optional


class MarketDataError(Exception):
    """Base class for every error raised by this backend."""


class RefreshError(MarketDataError):
    """
    The upstream token-exchange failed.

    Attributes:
        status_code: HTTP status returned by the upstream, if any.
        body:        Raw upstream response body, kept for diagnosis.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConfigError(RefreshError):
    """
    Required secrets are missing, so a refresh cannot even be attempted.

    Attributes:
        missing: Names of the absent environment variables.
    """

    def __init__(self, missing: List[str]) -> None:
        super().__init__(
            "Missing FYERS credentials. Please configure " + ", ".join(missing)
        )
        self.missing = list(missing)


class AuthError(MarketDataError):
    """No usable access token could be obtained by any path."""


class FetchError(MarketDataError):
    """
    A single instrument could not be fetched or parsed.

    Attributes:
        symbol: Instrument symbol the failure belongs to.
    """

    def __init__(self, symbol: str, reason: str) -> None:
        super().__init__(f"{symbol}: {reason}")
        self.symbol = symbol
        self.reason = reason


class PersistenceError(MarketDataError):
    """
    A store write or read failed.

    Attributes:
        attempted: Records that would have been written, when applicable.
    """

    def __init__(self, message: str, attempted: int = 0) -> None:
        super().__init__(message)
        self.attempted = attempted


class QueryError(PersistenceError):
    """Reading the quote log failed."""
