"""Async client facade for the Kite Connect REST API.

Business methods are thin pass-throughs: pick the operation, attach path
segments, query parameters or form fields, and hand off to the dispatch
pipeline. They return plain dicts/lists (or CSV rows as dicts for the
instrument dumps) and raise `KiteError` subclasses on failure.

Example:

    async with KiteConnect("api_key", "access_token") as kite:
        holdings = await kite.holdings()
        quotes = await kite.quote(["NSE:INFY", "NSE:TCS"])
"""

import csv
import io
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from kitelink.core.services.dispatch_service import DispatchService, PipelineContext, QueryParams, SessionExpiryHook
from kitelink.domain.interfaces.checksum import Checksum
from kitelink.domain.interfaces.transport import Transport
from kitelink.domain.models.common import FormBody, Headers
from kitelink.domain.models.config import DEFAULT_LOGIN_URL, KiteConnectConfig
from kitelink.domain.models.endpoints import Endpoint, KiteEndpoint
from kitelink.domain.models.responses import ApiResponse
from kitelink.infrastructure.monitoring.events import EventListener
from kitelink.infrastructure.resilience.rate_limiter import RateLimiterStats
from kitelink.infrastructure.security.checksum import Sha256Checksum
from kitelink.infrastructure.transport.httpx_transport import HttpxTransport

logger = logging.getLogger(__name__)

KITE_API_VERSION = "3"
USER_AGENT = "kitelink-python"


def _parse_csv(payload: Any) -> List[Dict[str, str]]:
    if not isinstance(payload, str):
        return payload
    return list(csv.DictReader(io.StringIO(payload)))


def _form(**fields: Any) -> FormBody:
    """Drops unset fields; the API treats an empty field as a bad value."""
    return {key: value for key, value in fields.items() if value is not None}


class KiteConnect:
    """Shareable client: one pipeline context per instance."""

    def __init__(
        self,
        api_key: str,
        access_token: str = "",
        config: Optional[KiteConnectConfig] = None,
        transport: Optional[Transport] = None,
        checksum: Optional[Checksum] = None,
        session_expiry_hook: Optional[SessionExpiryHook] = None,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the client.

        Args:
            api_key: The application's API key.
            access_token: Token from a previous session (or set later).
            config: Pipeline settings; defaults apply when omitted.
            transport: HTTP primitive; an `HttpxTransport` is created if omitted.
            checksum: Keyed hash for the token exchange; SHA-256 by default.
            session_expiry_hook: Called when a call fails with TokenException.
            event_listener: Receives every pipeline event.
        """
        self.api_key = api_key
        self.access_token = access_token
        self.config = config or KiteConnectConfig()
        self.transport = transport or HttpxTransport(timeout=self.config.timeout)
        self.checksum = checksum or Sha256Checksum()
        self.context = PipelineContext.from_config(self.config, event_listener=event_listener)
        self._dispatcher = DispatchService(
            transport=self.transport,
            config=self.config,
            context=self.context,
            header_provider=self._headers_for,
            session_expiry_hook=session_expiry_hook,
        )
        logger.info(f"KiteConnect client initialized for {self.config.base_url}")

    async def __aenter__(self) -> "KiteConnect":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.transport.aclose()

    # --- Session / auth ---

    @property
    def session_expiry_hook(self) -> Optional[SessionExpiryHook]:
        return self._dispatcher.session_expiry_hook

    def set_session_expiry_hook(self, hook: Optional[SessionExpiryHook]) -> None:
        self._dispatcher.session_expiry_hook = hook

    def set_access_token(self, access_token: str) -> None:
        self.access_token = access_token

    def login_url(self) -> str:
        return f"{DEFAULT_LOGIN_URL}?api_key={self.api_key}&v={KITE_API_VERSION}"

    def _headers_for(self, endpoint: Endpoint) -> Headers:
        headers = {
            'X-Kite-Version': KITE_API_VERSION,
            'User-Agent': USER_AGENT,
        }
        if endpoint.requires_auth:
            headers['Authorization'] = f"token {self.api_key}:{self.access_token}"
        return headers

    async def _exchange_token(self, operation: KiteEndpoint, token_field: str, token: str, api_secret: str) -> Dict[str, Any]:
        checksum = self.checksum.hexdigest(f"{self.api_key}{token}{api_secret}")
        session = await self._data(operation, body={
            'api_key': self.api_key,
            token_field: token,
            'checksum': checksum,
        })
        if isinstance(session, dict) and session.get('access_token'):
            self.set_access_token(session['access_token'])
        return session

    async def generate_session(self, request_token: str, api_secret: str) -> Dict[str, Any]:
        """Exchanges the login `request_token` for an access token and stores it."""
        return await self._exchange_token(KiteEndpoint.GENERATE_SESSION, 'request_token', request_token, api_secret)

    async def renew_access_token(self, refresh_token: str, api_secret: str) -> Dict[str, Any]:
        return await self._exchange_token(KiteEndpoint.RENEW_ACCESS_TOKEN, 'refresh_token', refresh_token, api_secret)

    async def invalidate_access_token(self, access_token: Optional[str] = None) -> Any:
        return await self._data(KiteEndpoint.INVALIDATE_SESSION, body={
            'api_key': self.api_key,
            'access_token': access_token or self.access_token,
        })

    async def invalidate_refresh_token(self, refresh_token: str) -> Any:
        return await self._data(KiteEndpoint.INVALIDATE_REFRESH_TOKEN, body={
            'api_key': self.api_key,
            'refresh_token': refresh_token,
        })

    # --- Pipeline entry point and introspection ---

    async def dispatch(
        self,
        operation: KiteEndpoint,
        path_segments: Sequence[str] = (),
        query_params: QueryParams = None,
        body: Optional[FormBody] = None,
    ) -> ApiResponse:
        return await self._dispatcher.dispatch(operation, path_segments, query_params, body)

    async def _data(
        self,
        operation: KiteEndpoint,
        path_segments: Sequence[str] = (),
        query_params: QueryParams = None,
        body: Optional[FormBody] = None,
    ) -> Any:
        response = await self.dispatch(operation, path_segments, query_params, body)
        return response.data

    @property
    def is_rate_limiting_enabled(self) -> bool:
        return self._dispatcher.is_rate_limiting_enabled

    def can_request_immediately(self, operation: KiteEndpoint) -> bool:
        return self._dispatcher.can_request_immediately(operation)

    def get_delay_for_request(self, operation: KiteEndpoint) -> float:
        return self._dispatcher.get_delay_for_request(operation)

    def rate_limiter_stats(self) -> RateLimiterStats:
        return self._dispatcher.rate_limiter_stats()

    def request_count(self) -> int:
        return self._dispatcher.request_count()

    # --- User ---

    async def profile(self) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.PROFILE)

    async def margins(self, segment: Optional[str] = None) -> Dict[str, Any]:
        if segment:
            return await self._data(KiteEndpoint.MARGINS_SEGMENT, [segment])
        return await self._data(KiteEndpoint.MARGINS)

    # --- Portfolio ---

    async def holdings(self) -> List[Dict[str, Any]]:
        return await self._data(KiteEndpoint.HOLDINGS)

    async def positions(self) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.POSITIONS)

    async def convert_position(
        self,
        exchange: str,
        tradingsymbol: str,
        transaction_type: str,
        position_type: str,
        quantity: int,
        old_product: str,
        new_product: str,
    ) -> Any:
        return await self._data(KiteEndpoint.CONVERT_POSITION, body=_form(
            exchange=exchange,
            tradingsymbol=tradingsymbol,
            transaction_type=transaction_type,
            position_type=position_type,
            quantity=quantity,
            old_product=old_product,
            new_product=new_product,
        ))

    # --- Orders ---

    async def place_order(
        self,
        variety: str,
        exchange: str,
        tradingsymbol: str,
        transaction_type: str,
        quantity: int,
        product: str,
        order_type: str,
        price: Optional[float] = None,
        validity: Optional[str] = None,
        disclosed_quantity: Optional[int] = None,
        trigger_price: Optional[float] = None,
        squareoff: Optional[float] = None,
        stoploss: Optional[float] = None,
        trailing_stoploss: Optional[float] = None,
        tag: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Places an order; returns {"order_id": ...}."""
        return await self._data(KiteEndpoint.PLACE_ORDER, [variety], body=_form(
            exchange=exchange,
            tradingsymbol=tradingsymbol,
            transaction_type=transaction_type,
            quantity=quantity,
            product=product,
            order_type=order_type,
            price=price,
            validity=validity,
            disclosed_quantity=disclosed_quantity,
            trigger_price=trigger_price,
            squareoff=squareoff,
            stoploss=stoploss,
            trailing_stoploss=trailing_stoploss,
            tag=tag,
        ))

    async def modify_order(
        self,
        variety: str,
        order_id: str,
        parent_order_id: Optional[str] = None,
        quantity: Optional[int] = None,
        price: Optional[float] = None,
        order_type: Optional[str] = None,
        trigger_price: Optional[float] = None,
        validity: Optional[str] = None,
        disclosed_quantity: Optional[int] = None,
    ) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.MODIFY_ORDER, [variety, order_id], body=_form(
            parent_order_id=parent_order_id,
            quantity=quantity,
            price=price,
            order_type=order_type,
            trigger_price=trigger_price,
            validity=validity,
            disclosed_quantity=disclosed_quantity,
        ))

    async def cancel_order(self, variety: str, order_id: str, parent_order_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._data(
            KiteEndpoint.CANCEL_ORDER, [variety, order_id], body=_form(parent_order_id=parent_order_id) or None,
        )

    async def exit_order(self, variety: str, order_id: str, parent_order_id: Optional[str] = None) -> Dict[str, Any]:
        """Exits a cover/bracket order; same wire call as cancel."""
        return await self.cancel_order(variety, order_id, parent_order_id)

    async def orders(self) -> List[Dict[str, Any]]:
        return await self._data(KiteEndpoint.ORDERS)

    async def order_history(self, order_id: str) -> List[Dict[str, Any]]:
        return await self._data(KiteEndpoint.ORDER_HISTORY, [order_id])

    async def trades(self) -> List[Dict[str, Any]]:
        return await self._data(KiteEndpoint.TRADES)

    async def order_trades(self, order_id: str) -> List[Dict[str, Any]]:
        return await self._data(KiteEndpoint.ORDER_TRADES, [order_id, "trades"])

    # --- Market data ---

    async def quote(self, instruments: Sequence[str]) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.QUOTE, query_params=[('i', list(instruments))])

    async def ohlc(self, instruments: Sequence[str]) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.OHLC, query_params=[('i', list(instruments))])

    async def ltp(self, instruments: Sequence[str]) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.LTP, query_params=[('i', list(instruments))])

    async def historical_data(
        self,
        instrument_token: str,
        from_date: str,
        to_date: str,
        interval: str,
        continuous: bool = False,
        oi: bool = False,
    ) -> Dict[str, Any]:
        """Candles for one instrument; dates as 'yyyy-mm-dd hh:mm:ss'."""
        return await self._data(
            KiteEndpoint.HISTORICAL_DATA,
            [str(instrument_token), interval],
            query_params={'from': from_date, 'to': to_date, 'continuous': continuous, 'oi': oi},
        )

    async def instruments(self, exchange: Optional[str] = None) -> List[Dict[str, str]]:
        """Instrument master dump (cached); one dict per CSV row."""
        segments = [exchange] if exchange else []
        return _parse_csv(await self._data(KiteEndpoint.INSTRUMENTS, segments))

    async def mf_instruments(self) -> List[Dict[str, str]]:
        return _parse_csv(await self._data(KiteEndpoint.MF_INSTRUMENTS))

    async def trigger_range(self, transaction_type: str, instruments: Sequence[str]) -> Dict[str, Any]:
        return await self._data(
            KiteEndpoint.TRIGGER_RANGE,
            [transaction_type.lower()],
            query_params=[('i', list(instruments))],
        )

    async def instruments_margins(self, segment: str) -> List[Dict[str, Any]]:
        return await self._data(KiteEndpoint.MARKET_MARGINS, [segment])

    # --- Mutual funds ---

    async def mf_orders(self, order_id: Optional[str] = None) -> Any:
        if order_id:
            return await self._data(KiteEndpoint.MF_ORDER_INFO, [order_id])
        return await self._data(KiteEndpoint.MF_ORDERS)

    async def place_mf_order(
        self,
        tradingsymbol: str,
        transaction_type: str,
        quantity: Optional[float] = None,
        amount: Optional[float] = None,
        tag: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.PLACE_MF_ORDER, body=_form(
            tradingsymbol=tradingsymbol,
            transaction_type=transaction_type,
            quantity=quantity,
            amount=amount,
            tag=tag,
        ))

    async def cancel_mf_order(self, order_id: str) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.CANCEL_MF_ORDER, [order_id])

    async def mf_sips(self, sip_id: Optional[str] = None) -> Any:
        if sip_id:
            return await self._data(KiteEndpoint.SIP_INFO, [sip_id])
        return await self._data(KiteEndpoint.SIPS)

    async def place_mf_sip(
        self,
        tradingsymbol: str,
        amount: float,
        instalments: int,
        frequency: str,
        initial_amount: Optional[float] = None,
        instalment_day: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.PLACE_SIP, body=_form(
            tradingsymbol=tradingsymbol,
            amount=amount,
            instalments=instalments,
            frequency=frequency,
            initial_amount=initial_amount,
            instalment_day=instalment_day,
            tag=tag,
        ))

    async def modify_mf_sip(
        self,
        sip_id: str,
        amount: Optional[float] = None,
        status: Optional[str] = None,
        instalments: Optional[int] = None,
        frequency: Optional[str] = None,
        instalment_day: Optional[int] = None,
    ) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.MODIFY_SIP, [sip_id], body=_form(
            amount=amount,
            status=status,
            instalments=instalments,
            frequency=frequency,
            instalment_day=instalment_day,
        ))

    async def cancel_mf_sip(self, sip_id: str) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.CANCEL_SIP, [sip_id])

    async def mf_holdings(self) -> List[Dict[str, Any]]:
        return await self._data(KiteEndpoint.MF_HOLDINGS)

    # --- GTT ---

    async def get_gtts(self) -> List[Dict[str, Any]]:
        return await self._data(KiteEndpoint.GTTS)

    async def get_gtt(self, trigger_id: str) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.GTT_INFO, [str(trigger_id)])

    async def place_gtt(self, trigger_type: str, condition: Dict[str, Any], orders: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Places a GTT; `condition` and `orders` are sent as JSON form fields."""
        return await self._data(KiteEndpoint.PLACE_GTT, body={
            'type': trigger_type,
            'condition': json.dumps(condition),
            'orders': json.dumps(orders),
        })

    async def modify_gtt(
        self,
        trigger_id: str,
        trigger_type: str,
        condition: Dict[str, Any],
        orders: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.MODIFY_GTT, [str(trigger_id)], body={
            'type': trigger_type,
            'condition': json.dumps(condition),
            'orders': json.dumps(orders),
        })

    async def delete_gtt(self, trigger_id: str) -> Dict[str, Any]:
        return await self._data(KiteEndpoint.CANCEL_GTT, [str(trigger_id)])
