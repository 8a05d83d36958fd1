"""
schemas/market.py
──────────────────
Pydantic schemas for credentials, quotes and the market-data endpoints:

  POST /api/v1/market-data/fetch
      → ``IngestResponse``

  POST /api/v1/market-data/query
      → ``QueryRequest`` / ``list[PresentationRow]``

  POST /api/v1/token
      → ``TokenResponse``

Persisted shapes (``Credential``, ``QuoteRecord``) are frozen: rows are
written once and never mutated in place.
"""

from datetime import date as Date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Timeframe configuration
# ---------------------------------------------------------------------------
# Look-back window, in hours, applied by the query endpoint.
# ---------------------------------------------------------------------------
Timeframe = Literal["daily", "weekly", "monthly"]

TIMEFRAME_HOURS: Dict[str, int] = {
    "daily": 24,
    "weekly": 7 * 24,
    "monthly": 30 * 24,
}

DEFAULT_TIMEFRAME: Timeframe = "weekly"


# ── Domain records ────────────────────────────────────────────────────────────


class InstrumentDescriptor(BaseModel):
    """One entry of the instrument universe (static configuration)."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    sector: str
    industry: str


class Credential(BaseModel):
    """
    A stored FYERS access token.

    Attributes:
        token:      Opaque bearer token.
        expires_at: Instant after which the token must not be served.
        created_at: Insertion time; the newest non-expired row wins.
    """

    model_config = ConfigDict(frozen=True)

    token: str
    expires_at: datetime
    created_at: datetime

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now


class QuoteRecord(BaseModel):
    """
    One row of the append-only ``market_data`` log.

    ``rs_ratio`` / ``rs_momentum`` are always within
    [:data:`~analytics.metrics.INDICATOR_MIN`, :data:`~analytics.metrics.INDICATOR_MAX`].
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    sector: str
    industry: str
    price: float
    change: float
    rs_ratio: float
    rs_momentum: float
    fetched_at: datetime
    date: Date

    def to_row(self) -> dict:
        """Serialise to the column layout of ``market_data``."""
        row = self.model_dump()
        row["fetched_at"] = self.fetched_at.isoformat()
        row["date"] = self.date.isoformat()
        return row


# ── Query endpoint ────────────────────────────────────────────────────────────


class QueryRequest(BaseModel):
    """Optional body of the query endpoint."""

    timeframe: Timeframe = DEFAULT_TIMEFRAME

    @field_validator("timeframe", mode="before")
    @classmethod
    def normalise_timeframe(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class PresentationRow(BaseModel):
    """
    Latest quote for one symbol, shaped for the chart and table.

    The two indicators are exposed under their chart-axis labels
    (``RS-Ratio`` / ``RS-Momentum``) when serialised by alias.
    """

    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    name: str
    sector: str
    industry: str
    price: float
    change: float
    rs_ratio: float = Field(..., alias="RS-Ratio")
    rs_momentum: float = Field(..., alias="RS-Momentum")
    visible: bool = True


# ── Ingestion / token endpoints ───────────────────────────────────────────────


class IngestResponse(BaseModel):
    """
    Outcome of one ingestion run.

    Attributes:
        success:         ``True`` whenever the run completed, even with 0 rows.
        stored_count:    Rows written to ``market_data``.
        fetched:         Instruments for which a quote was obtained.
        skipped:         Instruments dropped by per-instrument failures.
        skipped_symbols: Symbols of the dropped instruments.
        message:         Human-readable summary.
    """

    success: bool
    stored_count: int
    fetched: int
    skipped: int
    skipped_symbols: List[str] = Field(default_factory=list)
    message: str


class TokenResponse(BaseModel):
    """A currently valid access token."""

    success: bool = True
    access_token: str
    message: str = "Valid access token retrieved"


class ErrorResponse(BaseModel):
    """Body of every 5xx response raised by the error taxonomy."""

    error: str
    details: Optional[str] = None
