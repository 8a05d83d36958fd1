"""
app/api/v1/endpoints/market.py
────────────────────────────────
Market-data endpoints.

Routes
------
POST /api/v1/market-data/fetch   Pull FYERS quotes and append them to the log.
POST /api/v1/market-data/query   Latest quote per symbol for a timeframe.

Token and persistence failures are not caught here: they propagate to the
exception handlers registered in ``app.main`` and come back as
``{"error", "details"}`` with a 5xx status.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends

from app.api.dependencies import get_market_data_service, get_pipeline
from data_engine.coordinator import IngestionPipeline
from data_engine.market_data import MarketDataService
from schemas.market import ErrorResponse, IngestResponse, PresentationRow, QueryRequest

router = APIRouter()


@router.post(
    "/fetch",
    response_model=IngestResponse,
    responses={500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Fetch live quotes from FYERS and store them",
)
def fetch_market_data(
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> IngestResponse:
    """
    Run one ingestion pass over the instrument universe.

    Instruments that fail individually only reduce ``stored_count``; a run
    where every instrument failed is still a 200 with ``"No data fetched"``.

    Returns:
        Counts of stored, fetched and skipped instruments.
    """
    result = pipeline.run()
    return IngestResponse(
        success=True,
        stored_count=result.stored_count,
        fetched=result.fetched,
        skipped=result.skipped,
        skipped_symbols=result.skipped_symbols,
        message=result.message,
    )


@router.post(
    "/query",
    response_model=list[PresentationRow],
    responses={500: {"model": ErrorResponse}},
    summary="Latest quote per symbol within a timeframe",
)
def query_market_data(
    request: Optional[QueryRequest] = Body(default=None),
    service: MarketDataService = Depends(get_market_data_service),
) -> list[PresentationRow]:
    """
    Return the newest stored quote for every symbol seen in the window.

    Args:
        request: Optional ``{"timeframe": "daily" | "weekly" | "monthly"}``;
                 weekly when omitted.

    Returns:
        One row per symbol, newest first, each flagged ``visible``.
    """
    timeframe = request.timeframe if request is not None else QueryRequest().timeframe
    return service.latest(timeframe)
