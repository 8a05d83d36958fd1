"""
app/api/dependencies.py
───────────────────────
FastAPI dependency functions shared across all endpoints.

Each collaborator is built from the Supabase client and the cached
settings, so tests can override any single layer with
``app.dependency_overrides``.

Usage
-----
    from app.api.dependencies import get_pipeline

    @router.post("/foo")
    def my_route(pipeline = Depends(get_pipeline)):
        ...
"""

from functools import lru_cache

import httpx
from fastapi import Depends
from supabase import Client

from analytics.metrics import MetricsDeriver
from core.config import Settings, get_settings
from core.database import get_supabase_client
from data_engine.coordinator import IngestionPipeline
from data_engine.fetcher import QuoteFetcher
from data_engine.fyers_auth import TokenProvider, TokenRefresher
from data_engine.market_data import MarketDataService
from data_engine.stores import (
    CredentialStore,
    QuoteLog,
    SupabaseCredentialStore,
    SupabaseQuoteLog,
)


def get_db() -> Client:
    """
    FastAPI dependency that returns the Supabase client singleton.

    Returns:
        Authenticated Supabase ``Client`` instance.
    """
    return get_supabase_client()


@lru_cache(maxsize=1)
def get_http_client() -> httpx.Client:
    """
    Shared HTTP client for every FYERS call (closed in the app lifespan).

    Returns:
        ``httpx.Client`` with the configured per-request timeout.
    """
    return httpx.Client(timeout=get_settings().FYERS_HTTP_TIMEOUT)


def get_credential_store(db: Client = Depends(get_db)) -> CredentialStore:
    return SupabaseCredentialStore(db)


def get_quote_log(db: Client = Depends(get_db)) -> QuoteLog:
    return SupabaseQuoteLog(db)


def get_token_refresher(
    store: CredentialStore = Depends(get_credential_store),
    settings: Settings = Depends(get_settings),
    client: httpx.Client = Depends(get_http_client),
) -> TokenRefresher:
    return TokenRefresher.from_settings(settings, store, client=client)


def get_token_provider(
    store: CredentialStore = Depends(get_credential_store),
    refresher: TokenRefresher = Depends(get_token_refresher),
    settings: Settings = Depends(get_settings),
) -> TokenProvider:
    return TokenProvider(store, refresher, fallback_token=settings.FYERS_ACCESS_TOKEN)


def get_pipeline(
    provider: TokenProvider = Depends(get_token_provider),
    refresher: TokenRefresher = Depends(get_token_refresher),
    quote_log: QuoteLog = Depends(get_quote_log),
    settings: Settings = Depends(get_settings),
    client: httpx.Client = Depends(get_http_client),
) -> IngestionPipeline:
    """Assemble a fresh ingestion pipeline for one request."""
    return IngestionPipeline(
        token_provider=provider,
        fetcher=QuoteFetcher.from_settings(settings, refresher, client=client),
        deriver=MetricsDeriver.seeded(
            settings.RS_SEED,
            benchmark_price=settings.RS_BENCHMARK_PRICE,
            noise_scale=settings.RS_NOISE_SCALE,
        ),
        quote_log=quote_log,
    )


def get_market_data_service(
    quote_log: QuoteLog = Depends(get_quote_log),
) -> MarketDataService:
    return MarketDataService(quote_log)
