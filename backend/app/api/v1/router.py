"""
app/api/v1/router.py
────────────────────
Aggregates every v1 endpoint router under one ``APIRouter``.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import market, token

api_router = APIRouter()
api_router.include_router(market.router, prefix="/market-data", tags=["market-data"])
api_router.include_router(token.router, prefix="/token", tags=["token"])
