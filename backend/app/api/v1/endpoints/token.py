"""
app/api/v1/endpoints/token.py
──────────────────────────────
Access-token endpoint.

Routes
------
POST /api/v1/token   Return a valid FYERS access token (cache → refresh → fallback).
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_token_provider
from data_engine.fyers_auth import TokenProvider
from schemas.market import TokenResponse

router = APIRouter()


@router.post("", response_model=TokenResponse, summary="Get a valid FYERS access token")
def get_token(provider: TokenProvider = Depends(get_token_provider)) -> TokenResponse:
    """
    Return the cached token, refreshing it first if it has expired.

    Raises:
        AuthError: Rendered as HTTP 502 by the handler in ``app.main``.
    """
    return TokenResponse(access_token=provider.get_valid_token())
