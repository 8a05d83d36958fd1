"""
data_engine — FYERS integration, token cache and quote log.

Public API
----------
    from data_engine import IngestionPipeline, MarketDataService, TokenProvider
"""

from data_engine.coordinator import IngestionPipeline, IngestionResult
from data_engine.fetcher import FetchBatch, QuoteFetcher
from data_engine.fyers_auth import TokenProvider, TokenRefresher
from data_engine.market_data import MarketDataService
from data_engine.stores import SupabaseCredentialStore, SupabaseQuoteLog

__all__ = [
    "FetchBatch",
    "IngestionPipeline",
    "IngestionResult",
    "MarketDataService",
    "QuoteFetcher",
    "SupabaseCredentialStore",
    "SupabaseQuoteLog",
    "TokenProvider",
    "TokenRefresher",
]
