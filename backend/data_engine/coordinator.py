"""
data_engine/coordinator.py
───────────────────────────
Ingestion pipeline — the SINGLE entry point that writes market data.

Workflow (per run)
------------------
1. Obtain an access token from :class:`TokenProvider` (cache → refresh →
   fallback).  Failure here aborts the run with ``AuthError``.
2. Fetch one quote per instrument via :class:`QuoteFetcher`; failed
   instruments are skipped, not fatal.
3. Derive RS-Ratio / RS-Momentum for every quote.
4. Insert all resulting rows into ``market_data`` in ONE call.  If that
   call fails nothing is stored and ``PersistenceError`` carries the
   number of rows that would have been written.

Readers never import this module; they go through
:class:`~data_engine.market_data.MarketDataService`.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from analytics.metrics import MetricsDeriver
from data_engine.fetcher import QuoteFetcher
from data_engine.fyers_auth import Clock, TokenProvider, utcnow
from data_engine.stores import QuoteLog
from schemas.market import QuoteRecord

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """
    Aggregate outcome of :meth:`IngestionPipeline.run`.

    Attributes:
        stored_count:    Rows written to the quote log.
        fetched:         Instruments for which a quote was obtained.
        skipped_symbols: Instruments dropped by per-instrument failures.
        records:         The rows that were written.
    """

    stored_count: int
    fetched: int
    skipped_symbols: List[str] = field(default_factory=list)
    records: List[QuoteRecord] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.skipped_symbols)

    @property
    def message(self) -> str:
        if self.stored_count == 0:
            return "No data fetched"
        msg = f"Stored {self.stored_count} quotes"
        if self.skipped:
            msg += f" ({self.skipped} skipped: {', '.join(self.skipped_symbols)})"
        return msg


class IngestionPipeline:
    """
    Orchestrates token → fetch → derive → persist.

    Args:
        token_provider: Source of the access token.
        fetcher:        Per-instrument quote client.
        deriver:        Indicator calculator.
        quote_log:      Destination of the batch insert.
        clock:          Returns the current UTC time (stamps ``fetched_at``).

    Example:
        >>> pipeline = IngestionPipeline(provider, fetcher, MetricsDeriver(), log)
        >>> pipeline.run().stored_count
        6
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        fetcher: QuoteFetcher,
        deriver: MetricsDeriver,
        quote_log: QuoteLog,
        clock: Clock = utcnow,
    ) -> None:
        self._token_provider = token_provider
        self._fetcher = fetcher
        self._deriver = deriver
        self._quote_log = quote_log
        self._clock = clock

    # ── public API ────────────────────────────────────────────────────────

    def run(self) -> IngestionResult:
        """
        Execute one ingestion run.

        Returns:
            Counts of stored, fetched and skipped instruments.

        Raises:
            AuthError:        No access token could be obtained.
            PersistenceError: The batch insert failed; nothing was stored.
        """
        token = self._token_provider.get_valid_token()
        batch = self._fetcher.fetch_all(token)

        fetched_at = self._clock()
        records = [
            self._to_record(quote, fetched_at) for quote in batch.quotes
        ]

        if not records:
            logger.warning(
                "No quotes fetched (%d instruments skipped)", len(batch.skipped)
            )
            return IngestionResult(
                stored_count=0, fetched=0, skipped_symbols=batch.skipped_symbols
            )

        logger.info("Inserting %d quotes…", len(records))
        self._quote_log.insert_many(records)
        logger.info("Stored %d quotes", len(records))

        return IngestionResult(
            stored_count=len(records),
            fetched=len(batch.quotes),
            skipped_symbols=batch.skipped_symbols,
            records=records,
        )

    # ── private helpers ───────────────────────────────────────────────────

    def _to_record(self, quote, fetched_at) -> QuoteRecord:
        metrics = self._deriver.derive(quote.price, quote.change)
        instrument = quote.instrument
        return QuoteRecord(
            symbol=instrument.symbol,
            name=instrument.name,
            sector=instrument.sector,
            industry=instrument.industry,
            price=quote.price,
            change=quote.change,
            rs_ratio=metrics.rs_ratio,
            rs_momentum=metrics.rs_momentum,
            fetched_at=fetched_at,
            date=fetched_at.date(),
        )
