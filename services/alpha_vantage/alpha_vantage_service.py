# services/alpha_vantage/alpha_vantage_service.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from services.errors import UpstreamError

logger = logging.getLogger(__name__)

TOP_MOVERS_LIMIT = 5

# In-band failure markers. Alpha Vantage answers HTTP 200 for all of these.
_RATE_LIMIT_KEYS = ("Note", "Information")
_ERROR_KEYS = ("Error Message",)


class ProviderStatus(str, Enum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ProviderPayload:
    status: ProviderStatus
    data: Dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ProviderStatus.OK


@dataclass(frozen=True)
class Quote:
    symbol: str
    price: float
    change: float
    change_percent: float


@dataclass(frozen=True)
class MoverEntry:
    ticker: str
    price: float
    change_percent_text: str
    volume: Optional[str] = None


@dataclass(frozen=True)
class MarketMovers:
    gainers: List[MoverEntry] = field(default_factory=list)
    losers: List[MoverEntry] = field(default_factory=list)
    most_active: List[MoverEntry] = field(default_factory=list)


def decode_payload(payload: Any) -> ProviderPayload:
    """
    Classify a success-shaped provider body before trusting it.
    Rate-limit notes and error messages arrive inside HTTP-200 responses.
    """
    if not isinstance(payload, dict):
        return ProviderPayload(ProviderStatus.MALFORMED, message="Expected a JSON object")

    for key in _RATE_LIMIT_KEYS:
        if payload.get(key):
            return ProviderPayload(ProviderStatus.RATE_LIMITED, payload, str(payload[key]))

    for key in _ERROR_KEYS:
        if payload.get(key):
            return ProviderPayload(ProviderStatus.MALFORMED, payload, str(payload[key]))

    return ProviderPayload(ProviderStatus.OK, payload)


def _safe_float(x: Any) -> float:
    try:
        return float(str(x).replace("%", "").strip())
    except Exception:
        return 0.0


def _parse_mover(row: Dict[str, Any]) -> MoverEntry:
    volume = row.get("volume")
    return MoverEntry(
        ticker=str(row.get("ticker") or "").strip().upper(),
        price=_safe_float(row.get("price")),
        change_percent_text=str(row.get("change_percentage") or "").strip(),
        volume=str(volume) if volume is not None else None,
    )


def _parse_movers(rows: Any, limit: int = TOP_MOVERS_LIMIT) -> List[MoverEntry]:
    if not isinstance(rows, list):
        return []
    return [_parse_mover(r) for r in rows if isinstance(r, dict)][:limit]


def _parse_global_quote(symbol: str, block: Dict[str, Any]) -> Quote:
    return Quote(
        symbol=symbol,
        price=_safe_float(block.get("05. price")),
        change=_safe_float(block.get("09. change")),
        change_percent=_safe_float(block.get("10. change percent")),
    )


class AlphaVantageService:
    """
    Async client for the two Alpha Vantage endpoints the dashboard needs.

    Quotes are fetched strictly one at a time with a pause in between;
    the free tier rate-limits bursts.
    """

    BASE_URL = "https://www.alphavantage.co/query"

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 10.0,
        quote_delay_sec: float = 0.3,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if not api_key:
            raise UpstreamError("Missing ALPHA_VANTAGE_API_KEY")
        self.api_key = api_key
        self.timeout = timeout
        self.quote_delay_sec = max(0.0, float(quote_delay_sec))
        self._sleep = sleep

    @asynccontextmanager
    async def _client(self, client: Optional[httpx.AsyncClient] = None):
        if client is not None:
            yield client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as c:
            yield c

    def _auth_params(self, **params: Any) -> Dict[str, Any]:
        return {**params, "apikey": self.api_key}

    async def _query(self, client: httpx.AsyncClient, **params: Any) -> ProviderPayload:
        fn = params.get("function")
        try:
            r = await client.get(self.BASE_URL, params=self._auth_params(**params))
            r.raise_for_status()
            body = r.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"Alpha Vantage {fn} failed with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Alpha Vantage {fn} request failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"Alpha Vantage {fn} returned invalid JSON") from e
        return decode_payload(body)

    # -----------------------
    # Movers
    # -----------------------

    async def fetch_movers(self, client: Optional[httpx.AsyncClient] = None) -> MarketMovers:
        """Top gainers / losers / most active, each capped at five rows."""
        async with self._client(client) as c:
            decoded = await self._query(c, function="TOP_GAINERS_LOSERS")

        if decoded.status is ProviderStatus.RATE_LIMITED:
            raise UpstreamError("Alpha Vantage API limit reached or error occurred")
        if not decoded.ok:
            raise UpstreamError(f"Alpha Vantage returned an error: {decoded.message}")

        movers = MarketMovers(
            gainers=_parse_movers(decoded.data.get("top_gainers")),
            losers=_parse_movers(decoded.data.get("top_losers")),
            most_active=_parse_movers(decoded.data.get("most_actively_traded")),
        )
        logger.info(
            "alpha_vantage_movers_fetched gainers=%s losers=%s most_active=%s",
            len(movers.gainers), len(movers.losers), len(movers.most_active),
        )
        return movers

    # -----------------------
    # Index quotes
    # -----------------------

    async def fetch_quote(self, symbol: str, client: Optional[httpx.AsyncClient] = None) -> Quote:
        sym = (symbol or "").strip().upper()
        if not sym:
            raise UpstreamError("Missing symbol")

        async with self._client(client) as c:
            decoded = await self._query(c, function="GLOBAL_QUOTE", symbol=sym)

        if not decoded.ok:
            raise UpstreamError(f"{sym}: {decoded.status.value} ({decoded.message})")

        block = decoded.data.get("Global Quote")
        if not isinstance(block, dict) or not block:
            raise UpstreamError(f"{sym}: no quote in response")
        return _parse_global_quote(sym, block)

    async def fetch_index_quotes(
        self,
        symbols: Sequence[str],
        client: Optional[httpx.AsyncClient] = None,
    ) -> List[Quote]:
        """
        One request per symbol, sequentially, pausing between requests.
        A symbol that fails is skipped; partial results are fine.
        """
        quotes: List[Quote] = []
        for i, symbol in enumerate(symbols):
            if i > 0 and self.quote_delay_sec:
                await self._sleep(self.quote_delay_sec)
            try:
                quotes.append(await self.fetch_quote(symbol, client=client))
            except UpstreamError as e:
                logger.warning("alpha_vantage_quote_skipped symbol=%s reason=%s", symbol, e)

        logger.info("alpha_vantage_index_quotes_fetched count=%s requested=%s", len(quotes), len(symbols))
        return quotes
