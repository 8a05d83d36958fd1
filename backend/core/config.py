"""
core/config.py
──────────────
Centralised application settings via ``pydantic-settings``.

All configuration is driven by environment variables (or a ``.env`` file
in the ``backend/`` directory).  ``pydantic-settings`` validates types at
startup, so malformed values fail fast with a clear error message.

The FYERS refresh secrets are deliberately optional here: the read-only
query endpoint must keep working without them, and their absence is
reported by :class:`~data_engine.fyers_auth.TokenRefresher` the moment a
refresh is actually attempted.

Usage
-----
    from core.config import get_settings

    settings = get_settings()
    print(settings.FYERS_BASE_URL)
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the backend/ directory so relative .env paths work from any cwd.
_BACKEND_DIR = Path(__file__).resolve().parent.parent

# FYERS_ENV values that route to the sandbox host.
_SANDBOX_ENVS = {"t1", "sandbox", "test"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables / ``.env`` file.

    Attributes:
        APP_TITLE:             Human-readable API name shown in OpenAPI docs.
        APP_VERSION:           Semantic version string.
        APP_DESCRIPTION:       Short description shown in the OpenAPI UI.
        DEBUG:                 Enable verbose logging.
        SUPABASE_URL:          Supabase project URL (required).
        SUPABASE_KEY:          Supabase service-role key (required).
        FYERS_APP_ID:          FYERS application identifier.
        FYERS_SECRET_KEY:      FYERS secret key (also sent as the refresh pin).
        FYERS_REFRESH_TOKEN:   Long-lived FYERS refresh credential.
        FYERS_ACCESS_TOKEN:    Optional static token used when refresh fails.
        FYERS_ENV:             ``live`` (default) or ``t1``/``sandbox``/``test``.
        FYERS_QUOTE_API:       Quote protocol version, ``v3`` or ``v2``.
        FYERS_TOKEN_TTL_HOURS: Validity assumed when upstream omits ``expires_in``.
        FYERS_HTTP_TIMEOUT:    Per-request timeout for upstream calls (seconds).
        FETCH_MAX_WORKERS:     Thread-pool size for per-instrument fetches.
        RS_BENCHMARK_PRICE:    Benchmark price used for the RS-Ratio axis.
        RS_NOISE_SCALE:        Multiplier on the placeholder indicator noise.
        RS_SEED:               Optional seed for the indicator noise generator.
        FRONTEND_URL:          Optional deployed frontend origin for CORS.
    """

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        # Extra env vars are ignored — don't raise on unexpected keys.
        extra="ignore",
    )

    # ── API metadata ──────────────────────────────────────────────────────
    APP_TITLE: str = "Relative Rotation API"
    APP_VERSION: str = "0.3.0"
    APP_DESCRIPTION: str = (
        "Backend for the relative-rotation market dashboard. "
        "Ingests FYERS quotes and serves the latest snapshot per symbol."
    )

    # ── Feature flags ─────────────────────────────────────────────────────
    DEBUG: bool = False

    # ── Supabase (required) ───────────────────────────────────────────────
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_KEY: str = Field(..., description="Supabase service-role key")

    # ── FYERS upstream ────────────────────────────────────────────────────
    FYERS_APP_ID: str = ""
    FYERS_SECRET_KEY: str = ""
    FYERS_REFRESH_TOKEN: str = ""
    FYERS_ACCESS_TOKEN: str = ""
    FYERS_ENV: str = "live"
    FYERS_QUOTE_API: Literal["v2", "v3"] = "v3"
    FYERS_TOKEN_TTL_HOURS: float = Field(default=24.0, gt=0)
    FYERS_HTTP_TIMEOUT: float = Field(default=10.0, gt=0)

    # ── Ingestion ─────────────────────────────────────────────────────────
    FETCH_MAX_WORKERS: int = Field(default=1, ge=1, le=16)
    RS_BENCHMARK_PRICE: float = Field(default=4536.89, gt=0)
    RS_NOISE_SCALE: float = Field(default=1.0, ge=0)
    RS_SEED: Optional[int] = None

    # ── CORS ──────────────────────────────────────────────────────────────
    FRONTEND_URL: str = ""

    @property
    def FYERS_BASE_URL(self) -> str:
        """Upstream host for the configured ``FYERS_ENV``."""
        if self.FYERS_ENV.strip().lower() in _SANDBOX_ENVS:
            return "https://api-t1.fyers.in"
        return "https://api.fyers.in"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """
        Build the full CORS allow-list.

        Hard-coded dev origins plus the optional ``FRONTEND_URL`` env var.

        Returns:
            List of allowed origin strings.
        """
        origins: List[str] = [
            "http://localhost:5173",   # Vite / React dev server
            "http://127.0.0.1:5173",
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        ]
        if self.FRONTEND_URL:
            origins.append(self.FRONTEND_URL)
        return origins

    @field_validator("SUPABASE_URL")
    @classmethod
    def _must_not_be_empty(cls, v: str) -> str:
        """Raise if a required URL field is blank."""
        if not v:
            raise ValueError("SUPABASE_URL must not be empty")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return a cached ``Settings`` singleton.

    The instance is created (and the ``.env`` file parsed) only once per
    process lifetime, courtesy of ``functools.lru_cache``.

    Returns:
        Settings: Validated application configuration.
    """
    return Settings()
