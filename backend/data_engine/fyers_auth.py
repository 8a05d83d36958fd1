"""
data_engine/fyers_auth.py
─────────────────────────
FYERS access-token lifecycle — the ONLY place that talks to the
token-exchange endpoint.

Workflow (per ``TokenProvider.get_valid_token`` call)
-----------------------------------------------------
1. Return the newest non-expired token in the :class:`CredentialStore`
   (cache hit, no network).
2. On a miss, :class:`TokenRefresher` exchanges the long-lived refresh
   credential for a new token and replaces every stored row with it.
3. If the refresh fails and ``FYERS_ACCESS_TOKEN`` is configured, that
   static token is served instead.  It is never written to the store.
4. Otherwise the caller gets :class:`~core.exceptions.AuthError`.

Concurrent cache misses may both refresh; the delete-then-insert write
leaves the last refresh in place, which is acceptable because refresh is
idempotent from the caller's point of view.
"""

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import httpx

from core.config import Settings
from core.exceptions import AuthError, ConfigError, RefreshError
from data_engine.stores import CredentialStore
from schemas.market import Credential

logger = logging.getLogger(__name__)

REFRESH_PATH = "/api/v3/validate-refresh-token"

# Statuses that mean "the token was refused" rather than "the call failed".
AUTH_FAILURE_STATUSES = frozenset({401, 403})

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def app_id_hash(app_id: str, secret_key: str) -> str:
    """
    Return the ``appIdHash`` request-integrity field.

    Args:
        app_id:     FYERS application identifier.
        secret_key: FYERS secret key.

    Returns:
        Lower-case hex SHA-256 of ``"<app_id>:<secret_key>"``.
    """
    return hashlib.sha256(f"{app_id}:{secret_key}".encode("utf-8")).hexdigest()


def with_single_reauth_retry(
    call: Callable[[str], httpx.Response],
    token: str,
    refresh: Callable[[], str],
) -> Tuple[httpx.Response, str]:
    """
    Run ``call(token)``; if the upstream refuses the token, refresh once
    and run it again with the new token.

    Nothing else is retried: non-auth failures and the second response are
    returned to the caller as they are.

    Args:
        call:    Performs one upstream request with the given token.
        token:   Token to try first.
        refresh: Produces a fresh token (may raise ``RefreshError``).

    Returns:
        ``(response, token_used)`` so callers can keep using the fresh token.
    """
    response = call(token)
    if response.status_code not in AUTH_FAILURE_STATUSES:
        return response, token

    logger.warning(
        "Upstream refused the access token (HTTP %d); refreshing once",
        response.status_code,
    )
    fresh = refresh()
    return call(fresh), fresh


class TokenRefresher:
    """
    Exchange the FYERS refresh credential for a new access token.

    Args:
        store:         Credential cache written on success.
        client:        HTTP client used for the exchange.
        base_url:      FYERS host (live or sandbox).
        app_id:        ``FYERS_APP_ID``.
        secret_key:    ``FYERS_SECRET_KEY`` (also sent as the ``pin``).
        refresh_token: ``FYERS_REFRESH_TOKEN``.
        ttl:           Validity assumed when the response omits ``expires_in``.
        clock:         Returns the current UTC time.

    Example:
        >>> refresher = TokenRefresher.from_settings(get_settings(), store)
        >>> token = refresher.refresh()
    """

    def __init__(
        self,
        store: CredentialStore,
        client: httpx.Client,
        base_url: str,
        app_id: str,
        secret_key: str,
        refresh_token: str,
        ttl: timedelta = timedelta(hours=24),
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._client = client
        self._url = base_url.rstrip("/") + REFRESH_PATH
        self._app_id = app_id
        self._secret_key = secret_key
        self._refresh_token = refresh_token
        self._ttl = ttl
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: CredentialStore,
        client: Optional[httpx.Client] = None,
    ) -> "TokenRefresher":
        return cls(
            store=store,
            client=client or httpx.Client(timeout=settings.FYERS_HTTP_TIMEOUT),
            base_url=settings.FYERS_BASE_URL,
            app_id=settings.FYERS_APP_ID,
            secret_key=settings.FYERS_SECRET_KEY,
            refresh_token=settings.FYERS_REFRESH_TOKEN,
            ttl=timedelta(hours=settings.FYERS_TOKEN_TTL_HOURS),
        )

    # ── public API ────────────────────────────────────────────────────────

    def refresh(self) -> str:
        """
        Mint a new access token and make it the only stored credential.

        Returns:
            The new access token.

        Raises:
            ConfigError:      A required secret is not configured.
            RefreshError:     The upstream rejected the exchange or returned
                              no ``access_token``.
            PersistenceError: The new token could not be stored.
        """
        self._check_secrets()
        logger.info("Refreshing FYERS access token…")

        try:
            response = self._client.post(
                self._url,
                json={
                    "grant_type": "refresh_token",
                    "appIdHash": app_id_hash(self._app_id, self._secret_key),
                    "refresh_token": self._refresh_token,
                    "pin": self._secret_key,
                },
                headers={"Content-Type": "application/json; charset=utf-8"},
            )
        except httpx.HTTPError as exc:
            raise RefreshError(f"Token refresh request failed: {exc}") from exc

        if not response.is_success:
            logger.error(
                "Token refresh rejected (HTTP %d): %s",
                response.status_code,
                response.text,
            )
            raise RefreshError(
                f"Failed to refresh token: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise RefreshError(
                "Token refresh returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise RefreshError(
                "No access token in response",
                status_code=response.status_code,
                body=response.text,
            )

        credential = self._build_credential(token, data.get("expires_in"))
        self._store.delete_all()
        self._store.insert(credential)
        logger.info(
            "Token refreshed and stored, expires at %s",
            credential.expires_at.isoformat(),
        )
        return token

    # ── private helpers ───────────────────────────────────────────────────

    def _check_secrets(self) -> None:
        missing = [
            name
            for name, value in (
                ("FYERS_APP_ID", self._app_id),
                ("FYERS_SECRET_KEY", self._secret_key),
                ("FYERS_REFRESH_TOKEN", self._refresh_token),
            )
            if not value
        ]
        if missing:
            raise ConfigError(missing)

    def _build_credential(self, token: str, expires_in) -> Credential:
        """Prefer the upstream ``expires_in`` (seconds) over the fixed TTL."""
        ttl = self._ttl
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
            if expires_in > 0:
                ttl = timedelta(seconds=expires_in)
        now = self._clock()
        return Credential(token=token, expires_at=now + ttl, created_at=now)


class TokenProvider:
    """
    Hand out a currently valid access token.

    Args:
        store:          Credential cache consulted first.
        refresher:      Used on a cache miss.
        fallback_token: Static ``FYERS_ACCESS_TOKEN``; empty disables it.
        clock:          Returns the current UTC time.
    """

    def __init__(
        self,
        store: CredentialStore,
        refresher: TokenRefresher,
        fallback_token: str = "",
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._refresher = refresher
        self._fallback_token = fallback_token
        self._clock = clock

    def get_valid_token(self) -> str:
        """
        Return a token, refreshing or falling back as needed.

        Raises:
            AuthError: Refresh failed and no fallback token is configured.
        """
        cached = self._store.get_active(self._clock())
        if cached is not None:
            logger.info("Using cached token, expires at %s", cached.expires_at.isoformat())
            return cached.token

        logger.info("No valid cached token, refreshing…")
        try:
            return self._refresher.refresh()
        except RefreshError as exc:
            if self._fallback_token:
                logger.warning(
                    "Token refresh failed (%s); bypassing refresh with FYERS_ACCESS_TOKEN",
                    exc,
                )
                return self._fallback_token
            raise AuthError(f"No FYERS access token available: {exc}") from exc
