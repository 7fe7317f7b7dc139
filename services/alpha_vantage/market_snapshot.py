# services/alpha_vantage/market_snapshot.py
"""
Turns an Alpha Vantage snapshot (index ETFs + movers) into a plain-text
block that is pasted into the analysis prompt.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

import httpx

from services.alpha_vantage.alpha_vantage_service import AlphaVantageService, MoverEntry, Quote

MOST_ACTIVE_DISPLAY_LIMIT = 3


def _signed_pct(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value:.2f}%"


def _gain_text(text: str) -> str:
    t = (text or "").strip()
    if t.startswith(("+", "-")):
        return t
    return f"+{t}"


def _format_quote(q: Quote) -> str:
    return f"{q.symbol}: ${q.price:.2f} ({_signed_pct(q.change_percent)})"


def _format_mover(m: MoverEntry, *, gainer: bool = False) -> str:
    pct = _gain_text(m.change_percent_text) if gainer else m.change_percent_text
    return f"{m.ticker}: ${m.price:.2f} ({pct})"


def _format_active(m: MoverEntry) -> str:
    return f"{_format_mover(m)} - Vol: {m.volume if m.volume is not None else 'n/a'}"


def build_summary_text(
    quotes: Sequence[Quote],
    gainers: Sequence[MoverEntry],
    losers: Sequence[MoverEntry],
    most_active: Sequence[MoverEntry],
    *,
    as_of: datetime,
) -> str:
    lines: List[str] = [f"Current Market Data ({as_of.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}):", ""]

    lines.append("Major Market ETFs:")
    lines.extend(_format_quote(q) for q in quotes)
    lines.append("")

    lines.append("Top 5 Gainers Today:")
    lines.extend(_format_mover(m, gainer=True) for m in gainers)
    lines.append("")

    lines.append("Top 5 Losers Today:")
    lines.extend(_format_mover(m) for m in losers)
    lines.append("")

    lines.append("Most Actively Traded:")
    lines.extend(_format_active(m) for m in list(most_active)[:MOST_ACTIVE_DISPLAY_LIMIT])

    return "\n".join(lines)


async def gather_market_summary(
    service: AlphaVantageService,
    symbols: Sequence[str],
    *,
    as_of: datetime,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Movers first (fails loudly), then index quotes (degrade per symbol)."""
    movers = await service.fetch_movers(client=client)
    quotes = await service.fetch_index_quotes(symbols, client=client)
    return build_summary_text(
        quotes,
        movers.gainers,
        movers.losers,
        movers.most_active,
        as_of=as_of,
    )
