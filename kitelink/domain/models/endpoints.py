"""Endpoint registry for every Kite Connect REST operation.

Each logical operation maps to exactly one `Endpoint` (method, path template,
rate limit category, auth requirement). Keeping the metadata in one table
means a new operation cannot be added without choosing its throttle category.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Sequence

from .common import UrlPath


class HttpMethod(str, Enum):
    """HTTP verbs used by the remote API."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @property
    def is_idempotent(self) -> bool:
        return self is HttpMethod.GET


class RateLimitCategory(str, Enum):
    """Throughput groups with independent ceilings (requests per second)."""
    QUOTE = "quote"
    HISTORICAL = "historical"
    ORDERS = "orders"
    STANDARD = "standard"

    @property
    def requests_per_second(self) -> int:
        return _REQUESTS_PER_SECOND[self]

    @property
    def min_delay(self) -> float:
        """Minimum spacing in seconds between two requests of this category.

        Integer milliseconds, truncated: 1000 // rps (Historical -> 0.333s).
        """
        return (1000 // self.requests_per_second) / 1000.0


_REQUESTS_PER_SECOND: Dict[RateLimitCategory, int] = {
    RateLimitCategory.QUOTE: 1,
    RateLimitCategory.HISTORICAL: 3,
    RateLimitCategory.ORDERS: 10,
    RateLimitCategory.STANDARD: 10,
}


@dataclass(frozen=True)
class Endpoint:
    """Static description of one remote operation."""
    method: HttpMethod
    path: str
    category: RateLimitCategory
    requires_auth: bool = True
    cacheable: bool = False

    @property
    def is_idempotent(self) -> bool:
        return self.method.is_idempotent


class KiteEndpoint(Enum):
    """Every logical operation the client can dispatch."""

    # === Authentication ===
    LOGIN_URL = "login_url"
    GENERATE_SESSION = "generate_session"
    INVALIDATE_SESSION = "invalidate_session"
    RENEW_ACCESS_TOKEN = "renew_access_token"
    INVALIDATE_REFRESH_TOKEN = "invalidate_refresh_token"

    # === User ===
    PROFILE = "profile"
    MARGINS = "margins"
    MARGINS_SEGMENT = "margins_segment"

    # === Portfolio ===
    HOLDINGS = "holdings"
    POSITIONS = "positions"
    CONVERT_POSITION = "convert_position"

    # === Orders ===
    PLACE_ORDER = "place_order"
    MODIFY_ORDER = "modify_order"
    CANCEL_ORDER = "cancel_order"
    ORDERS = "orders"
    ORDER_HISTORY = "order_history"
    TRADES = "trades"
    ORDER_TRADES = "order_trades"

    # === Market data: quote ===
    QUOTE = "quote"
    OHLC = "ohlc"
    LTP = "ltp"

    # === Market data: historical ===
    HISTORICAL_DATA = "historical_data"

    # === Market data: standard ===
    INSTRUMENTS = "instruments"
    MF_INSTRUMENTS = "mf_instruments"
    TRIGGER_RANGE = "trigger_range"
    MARKET_MARGINS = "market_margins"

    # === Mutual funds ===
    PLACE_MF_ORDER = "place_mf_order"
    CANCEL_MF_ORDER = "cancel_mf_order"
    MF_ORDERS = "mf_orders"
    MF_ORDER_INFO = "mf_order_info"
    MF_HOLDINGS = "mf_holdings"
    PLACE_SIP = "place_sip"
    MODIFY_SIP = "modify_sip"
    CANCEL_SIP = "cancel_sip"
    SIPS = "sips"
    SIP_INFO = "sip_info"

    # === GTT ===
    PLACE_GTT = "place_gtt"
    MODIFY_GTT = "modify_gtt"
    CANCEL_GTT = "cancel_gtt"
    GTTS = "gtts"
    GTT_INFO = "gtt_info"

    @property
    def config(self) -> Endpoint:
        return resolve(self)

    @property
    def method(self) -> HttpMethod:
        return resolve(self).method

    @property
    def path(self) -> str:
        return resolve(self).path

    @property
    def category(self) -> RateLimitCategory:
        return resolve(self).category

    @property
    def requires_auth(self) -> bool:
        return resolve(self).requires_auth

    def build_path(self, segments: Sequence[str] = ()) -> UrlPath:
        return build_path(resolve(self), segments)

    @classmethod
    def from_name(cls, name: str) -> "KiteEndpoint":
        """Looks up an operation by value ("order_history") or member name ("ORDER_HISTORY")."""
        key = name.strip()
        try:
            return cls(key.lower())
        except ValueError:
            pass
        try:
            return cls[key.upper()]
        except KeyError:
            raise ValueError(f"Unknown operation: {name!r}") from None


_GET, _POST, _PUT, _DELETE = HttpMethod.GET, HttpMethod.POST, HttpMethod.PUT, HttpMethod.DELETE
_QUOTE = RateLimitCategory.QUOTE
_HISTORICAL = RateLimitCategory.HISTORICAL
_ORDERS = RateLimitCategory.ORDERS
_STANDARD = RateLimitCategory.STANDARD

ENDPOINTS: Dict[KiteEndpoint, Endpoint] = {
    KiteEndpoint.LOGIN_URL: Endpoint(_GET, "/connect/login", _STANDARD, requires_auth=False),
    KiteEndpoint.GENERATE_SESSION: Endpoint(_POST, "/session/token", _STANDARD, requires_auth=False),
    KiteEndpoint.INVALIDATE_SESSION: Endpoint(_DELETE, "/session/token", _STANDARD),
    KiteEndpoint.RENEW_ACCESS_TOKEN: Endpoint(_POST, "/session/refresh_token", _STANDARD),
    KiteEndpoint.INVALIDATE_REFRESH_TOKEN: Endpoint(_DELETE, "/session/refresh_token", _STANDARD),

    KiteEndpoint.PROFILE: Endpoint(_GET, "/user/profile", _STANDARD),
    KiteEndpoint.MARGINS: Endpoint(_GET, "/user/margins", _STANDARD),
    KiteEndpoint.MARGINS_SEGMENT: Endpoint(_GET, "/user/margins", _STANDARD),

    KiteEndpoint.HOLDINGS: Endpoint(_GET, "/portfolio/holdings", _STANDARD),
    KiteEndpoint.POSITIONS: Endpoint(_GET, "/portfolio/positions", _STANDARD),
    KiteEndpoint.CONVERT_POSITION: Endpoint(_PUT, "/portfolio/positions", _STANDARD),

    KiteEndpoint.PLACE_ORDER: Endpoint(_POST, "/orders", _ORDERS),
    KiteEndpoint.MODIFY_ORDER: Endpoint(_PUT, "/orders", _ORDERS),
    KiteEndpoint.CANCEL_ORDER: Endpoint(_DELETE, "/orders", _ORDERS),
    KiteEndpoint.ORDERS: Endpoint(_GET, "/orders", _STANDARD),
    KiteEndpoint.ORDER_HISTORY: Endpoint(_GET, "/orders", _STANDARD),
    KiteEndpoint.TRADES: Endpoint(_GET, "/trades", _STANDARD),
    KiteEndpoint.ORDER_TRADES: Endpoint(_GET, "/orders", _STANDARD),

    KiteEndpoint.QUOTE: Endpoint(_GET, "/quote", _QUOTE),
    KiteEndpoint.OHLC: Endpoint(_GET, "/quote/ohlc", _QUOTE),
    KiteEndpoint.LTP: Endpoint(_GET, "/quote/ltp", _QUOTE),

    KiteEndpoint.HISTORICAL_DATA: Endpoint(_GET, "/instruments/historical", _HISTORICAL),

    KiteEndpoint.INSTRUMENTS: Endpoint(_GET, "/instruments", _STANDARD, cacheable=True),
    KiteEndpoint.MF_INSTRUMENTS: Endpoint(_GET, "/mf/instruments", _STANDARD, cacheable=True),
    KiteEndpoint.TRIGGER_RANGE: Endpoint(_GET, "/instruments/trigger_range", _STANDARD),
    KiteEndpoint.MARKET_MARGINS: Endpoint(_GET, "/margins", _STANDARD),

    KiteEndpoint.PLACE_MF_ORDER: Endpoint(_POST, "/mf/orders", _ORDERS),
    KiteEndpoint.CANCEL_MF_ORDER: Endpoint(_DELETE, "/mf/orders", _ORDERS),
    KiteEndpoint.MF_ORDERS: Endpoint(_GET, "/mf/orders", _STANDARD),
    KiteEndpoint.MF_ORDER_INFO: Endpoint(_GET, "/mf/orders", _STANDARD),
    KiteEndpoint.MF_HOLDINGS: Endpoint(_GET, "/mf/holdings", _STANDARD),
    KiteEndpoint.PLACE_SIP: Endpoint(_POST, "/mf/sips", _ORDERS),
    KiteEndpoint.MODIFY_SIP: Endpoint(_PUT, "/mf/sips", _ORDERS),
    KiteEndpoint.CANCEL_SIP: Endpoint(_DELETE, "/mf/sips", _ORDERS),
    KiteEndpoint.SIPS: Endpoint(_GET, "/mf/sips", _STANDARD),
    KiteEndpoint.SIP_INFO: Endpoint(_GET, "/mf/sips", _STANDARD),

    KiteEndpoint.PLACE_GTT: Endpoint(_POST, "/gtt/triggers", _ORDERS),
    KiteEndpoint.MODIFY_GTT: Endpoint(_PUT, "/gtt/triggers", _ORDERS),
    KiteEndpoint.CANCEL_GTT: Endpoint(_DELETE, "/gtt/triggers", _ORDERS),
    KiteEndpoint.GTTS: Endpoint(_GET, "/gtt/triggers", _STANDARD),
    KiteEndpoint.GTT_INFO: Endpoint(_GET, "/gtt/triggers", _STANDARD),
}


def resolve(operation: KiteEndpoint) -> Endpoint:
    """Returns the endpoint metadata for an operation. Total over KiteEndpoint."""
    return ENDPOINTS[operation]


def build_path(endpoint: Endpoint, segments: Sequence[str] = ()) -> UrlPath:
    """Appends path segments to the endpoint's template, joined by '/'.

    >>> build_path(resolve(KiteEndpoint.ORDER_HISTORY), ["order_123", "trades"])
    '/orders/order_123/trades'
    """
    if not segments:
        return UrlPath(endpoint.path)
    return UrlPath(f"{endpoint.path}/{'/'.join(str(s) for s in segments)}")


def by_category(category: RateLimitCategory) -> FrozenSet[KiteEndpoint]:
    """All operations throttled under the given category."""
    return frozenset(op for op, endpoint in ENDPOINTS.items() if endpoint.category == category)
