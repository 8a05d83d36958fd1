"""
data_engine/fetcher.py
───────────────────────
FYERS quote client: the ONLY place in the codebase that calls the
FYERS market-data endpoints.

Each instrument is fetched independently.  A failure for one symbol
(HTTP error, refused token after the single reauth retry, malformed
payload) is logged and recorded as skipped; it never aborts the batch.

The quote endpoint has shipped in more than one shape, so the request
path and payload parser are bundled in a :class:`QuoteProtocol` selected
by ``FYERS_QUOTE_API``.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from core.config import Settings
from core.exceptions import FetchError, RefreshError
from data_engine.fyers_auth import (
    AUTH_FAILURE_STATUSES,
    TokenRefresher,
    with_single_reauth_retry,
)
from data_engine.universe import DEFAULT_UNIVERSE
from schemas.market import InstrumentDescriptor

logger = logging.getLogger(__name__)


# ── Quote protocols ───────────────────────────────────────────────────────────


def parse_fyers_quote(symbol: str, payload: Any) -> Tuple[float, float]:
    """
    Extract ``(last_price, percent_change)`` from a FYERS quotes payload.

    Expected shape::

        {"s": "ok", "d": [{"n": "NSE:SBIN-EQ", "s": "ok",
                           "v": {"lp": 812.4, "chp": 1.12, ...}}]}

    Raises:
        FetchError: The payload carries no usable quote for ``symbol``.
    """
    try:
        entry = payload["d"][0]
        values = entry["v"]
    except (KeyError, IndexError, TypeError) as exc:
        raise FetchError(symbol, "payload has no quote data") from exc

    if not isinstance(values, dict):
        raise FetchError(symbol, "payload has no quote data")
    if isinstance(entry, dict) and entry.get("s") == "error":
        raise FetchError(symbol, values.get("errmsg") or "upstream reported an error")

    price = _as_number(values.get("lp"))
    change = _as_number(values.get("chp"))
    if price is None or change is None:
        raise FetchError(symbol, "quote is missing 'lp' or 'chp'")
    return price, change


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class QuoteProtocol:
    """
    One version of the upstream quote API.

    Attributes:
        version: Name used in configuration (``FYERS_QUOTE_API``).
        path:    Endpoint path appended to the FYERS host.
        parse:   Turns a decoded JSON body into ``(price, percent_change)``.
    """

    version: str
    path: str
    parse: Callable[[str, Any], Tuple[float, float]] = parse_fyers_quote


QUOTE_PROTOCOLS: Dict[str, QuoteProtocol] = {
    "v2": QuoteProtocol(version="v2", path="/data-rest/v2/quotes/"),
    "v3": QuoteProtocol(version="v3", path="/data-rest/v3/quotes"),
}


# ── Results ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FetchedQuote:
    """A live quote for one instrument."""

    instrument: InstrumentDescriptor
    price: float
    change: float


@dataclass
class FetchBatch:
    """Outcome of :meth:`QuoteFetcher.fetch_all`."""

    quotes: List[FetchedQuote] = field(default_factory=list)
    skipped: List[FetchError] = field(default_factory=list)

    @property
    def skipped_symbols(self) -> List[str]:
        return [err.symbol for err in self.skipped]


@dataclass
class _TokenState:
    # Shared by every instrument in one batch so a refreshed token is reused.
    token: str


# ── Fetcher ───────────────────────────────────────────────────────────────────


class QuoteFetcher:
    """
    Fetch one live quote per instrument of the universe.

    Args:
        client:      HTTP client for the quote endpoint.
        base_url:    FYERS host (live or sandbox).
        app_id:      ``FYERS_APP_ID``, prefixed to the token in the
                     ``Authorization`` header.
        refresher:   Called at most once per instrument when the token is
                     refused.
        universe:    Instruments to fetch.
        protocol:    Quote API version to speak.
        max_workers: ``1`` fetches sequentially; more uses a thread pool.

    Example:
        >>> fetcher = QuoteFetcher.from_settings(get_settings(), refresher)
        >>> batch = fetcher.fetch_all(token)
        >>> len(batch.quotes), batch.skipped_symbols
    """

    def __init__(
        self,
        client: httpx.Client,
        base_url: str,
        app_id: str,
        refresher: TokenRefresher,
        universe: Sequence[InstrumentDescriptor] = DEFAULT_UNIVERSE,
        protocol: QuoteProtocol = QUOTE_PROTOCOLS["v3"],
        max_workers: int = 1,
    ) -> None:
        self._client = client
        self._url = base_url.rstrip("/") + protocol.path
        self._app_id = app_id
        self._refresher = refresher
        self._universe = tuple(universe)
        self._protocol = protocol
        self._max_workers = max_workers

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        refresher: TokenRefresher,
        client: Optional[httpx.Client] = None,
        universe: Sequence[InstrumentDescriptor] = DEFAULT_UNIVERSE,
    ) -> "QuoteFetcher":
        return cls(
            client=client or httpx.Client(timeout=settings.FYERS_HTTP_TIMEOUT),
            base_url=settings.FYERS_BASE_URL,
            app_id=settings.FYERS_APP_ID,
            refresher=refresher,
            universe=universe,
            protocol=QUOTE_PROTOCOLS[settings.FYERS_QUOTE_API],
            max_workers=settings.FETCH_MAX_WORKERS,
        )

    # ── public API ────────────────────────────────────────────────────────

    def fetch_all(self, token: str) -> FetchBatch:
        """
        Fetch every instrument, tolerating per-instrument failures.

        Args:
            token: Access token to start with.

        Returns:
            :class:`FetchBatch` with the quotes obtained and the failures.
        """
        state = _TokenState(token=token)

        if self._max_workers > 1 and len(self._universe) > 1:
            with ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="quotes"
            ) as pool:
                outcomes = list(pool.map(lambda i: self._fetch_one(i, state), self._universe))
        else:
            outcomes = [self._fetch_one(i, state) for i in self._universe]

        batch = FetchBatch()
        for outcome in outcomes:
            if isinstance(outcome, FetchError):
                batch.skipped.append(outcome)
            else:
                batch.quotes.append(outcome)

        logger.info(
            "Fetched %d/%d quotes (%s API, %d skipped)",
            len(batch.quotes),
            len(self._universe),
            self._protocol.version,
            len(batch.skipped),
        )
        return batch

    # ── private helpers ───────────────────────────────────────────────────

    def _fetch_one(
        self, instrument: InstrumentDescriptor, state: _TokenState
    ) -> Union[FetchedQuote, FetchError]:
        symbol = instrument.symbol
        try:
            response, state.token = with_single_reauth_retry(
                lambda token: self._request(symbol, token),
                state.token,
                lambda: self._refresh_for(symbol),
            )
            if response.status_code in AUTH_FAILURE_STATUSES:
                raise FetchError(
                    symbol, f"token refused again after refresh (HTTP {response.status_code})"
                )
            if not response.is_success:
                raise FetchError(symbol, f"HTTP {response.status_code}: {response.text}")
            try:
                payload = response.json()
            except ValueError as exc:
                raise FetchError(symbol, "response is not JSON") from exc
            price, change = self._protocol.parse(symbol, payload)
        except FetchError as exc:
            logger.warning("Skipping %s: %s", symbol, exc.reason)
            return exc

        return FetchedQuote(instrument=instrument, price=price, change=change)

    def _request(self, symbol: str, token: str) -> httpx.Response:
        try:
            return self._client.get(
                self._url,
                params={"symbols": symbol},
                headers={"Authorization": f"{self._app_id}:{token}"},
            )
        except httpx.HTTPError as exc:
            raise FetchError(symbol, f"request failed: {exc}") from exc

    def _refresh_for(self, symbol: str) -> str:
        try:
            return self._refresher.refresh()
        except RefreshError as exc:
            raise FetchError(symbol, f"token refresh failed: {exc}") from exc
