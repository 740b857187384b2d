"""kitelink: async client pipeline for the Kite Connect trading REST API.

Every business call funnels through one dispatch pipeline: endpoint registry,
response cache, per-category rate limiter and retry orchestrator.
"""

from kitelink.core.client import KiteConnect
from kitelink.domain.models.config import CacheConfig, KiteConnectConfig, RetryPolicy
from kitelink.domain.models.endpoints import KiteEndpoint, RateLimitCategory
from kitelink.domain.models.errors import KiteError

__version__ = "0.3.0"

__all__ = [
    'KiteConnect',
    'KiteConnectConfig',
    'RetryPolicy',
    'CacheConfig',
    'KiteEndpoint',
    'RateLimitCategory',
    'KiteError',
]
