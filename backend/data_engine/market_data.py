"""
data_engine/market_data.py
──────────────────────────
Read side of the quote log: the latest row per symbol inside a window.
"""

import logging
from datetime import timedelta
from typing import Dict, List

from data_engine.fyers_auth import Clock, utcnow
from data_engine.stores import QuoteLog
from schemas.market import DEFAULT_TIMEFRAME, TIMEFRAME_HOURS, PresentationRow

logger = logging.getLogger(__name__)


class MarketDataService:
    """
    Serve the newest quote of every symbol seen within a timeframe.

    Args:
        quote_log: Store to read from; never written to.
        clock:     Returns the current UTC time.
    """

    def __init__(self, quote_log: QuoteLog, clock: Clock = utcnow) -> None:
        self._quote_log = quote_log
        self._clock = clock

    def latest(self, timeframe: str = DEFAULT_TIMEFRAME) -> List[PresentationRow]:
        """
        Return one row per symbol, taken from its most recent quote.

        Args:
            timeframe: ``daily`` (24h), ``weekly`` (7d) or ``monthly`` (30d).

        Returns:
            Presentation rows, newest symbol first.  Empty when the window
            holds no data.

        Raises:
            ValueError: Unknown timeframe.
            QueryError: The quote log could not be read.
        """
        if timeframe not in TIMEFRAME_HOURS:
            raise ValueError(f"Unknown timeframe '{timeframe}'")

        since = self._clock() - timedelta(hours=TIMEFRAME_HOURS[timeframe])
        rows = self._quote_log.query_since(since)

        # Rows arrive newest first, so the first hit per symbol is the latest.
        latest: Dict[str, dict] = {}
        for row in rows:
            latest.setdefault(row["symbol"], row)

        result = [
            PresentationRow(
                symbol=row["symbol"],
                name=row["name"],
                sector=row["sector"],
                industry=row["industry"],
                price=float(row["price"]),
                change=float(row["change"]),
                rs_ratio=float(row["rs_ratio"]),
                rs_momentum=float(row["rs_momentum"]),
            )
            for row in latest.values()
        ]
        logger.info(
            "Returning %d market data records for %s timeframe", len(result), timeframe
        )
        return result
