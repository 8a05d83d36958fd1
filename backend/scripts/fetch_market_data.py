"""
Run one ingestion pass from the command line (e.g. from cron).

Exit status is 0 when the run completed (even if no quotes were fetched)
and 1 when the token or the store failed.
"""
import sys
import os

# Add the parent directory to sys.path so we can import backend modules
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import logging

from analytics.metrics import MetricsDeriver
from core.config import get_settings
from core.database import get_supabase_client
from core.exceptions import AuthError, PersistenceError
from core.logging import setup_logging
from data_engine.coordinator import IngestionPipeline
from data_engine.fetcher import QuoteFetcher
from data_engine.fyers_auth import TokenProvider, TokenRefresher
from data_engine.stores import SupabaseCredentialStore, SupabaseQuoteLog

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    setup_logging(settings.DEBUG)

    db = get_supabase_client()
    store = SupabaseCredentialStore(db)
    refresher = TokenRefresher.from_settings(settings, store)
    pipeline = IngestionPipeline(
        token_provider=TokenProvider(store, refresher, fallback_token=settings.FYERS_ACCESS_TOKEN),
        fetcher=QuoteFetcher.from_settings(settings, refresher),
        deriver=MetricsDeriver.seeded(
            settings.RS_SEED,
            benchmark_price=settings.RS_BENCHMARK_PRICE,
            noise_scale=settings.RS_NOISE_SCALE,
        ),
        quote_log=SupabaseQuoteLog(db),
    )

    try:
        result = pipeline.run()
    except (AuthError, PersistenceError) as e:
        logger.error(f"Ingestion failed: {e}")
        return 1

    logger.info(result.message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
