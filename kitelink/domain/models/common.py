"""Defines common Value Objects used across the pipeline.

These objects represent simple values like paths, headers and cache keys,
keeping signatures readable and consistent.
"""

from typing import Any, Dict, NewType, Optional, TypedDict

# === Request Building ===
UrlPath = NewType("UrlPath", str)                # e.g. "/orders/123/trades"
FormBody = Dict[str, Any]
Headers = Dict[str, str]

# === Caching Context ===
CacheKey = NewType("CacheKey", str)              # "GET /instruments/NSE"


class ErrorEnvelope(TypedDict, total=False):
    """Error body returned by the remote service."""
    status: str
    message: str
    error_type: str
    data: Optional[Any]
