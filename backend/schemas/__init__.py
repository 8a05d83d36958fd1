"""
Pydantic schemas for request/response serialization.

Separate from stores (data layer) and routes (HTTP layer).
"""

from schemas.market import (
    Credential,
    ErrorResponse,
    IngestResponse,
    InstrumentDescriptor,
    PresentationRow,
    QueryRequest,
    QuoteRecord,
    TokenResponse,
)

__all__ = [
    "Credential",
    "ErrorResponse",
    "IngestResponse",
    "InstrumentDescriptor",
    "PresentationRow",
    "QueryRequest",
    "QuoteRecord",
    "TokenResponse",
]
