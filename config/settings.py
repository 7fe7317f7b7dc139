# config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_INDEX_SYMBOLS = ["SPY", "QQQ", "DIA"]  # ETFs that track the major indices
DEFAULT_CORS_ORIGINS = ["http://localhost:3000"]


def _split_csv(raw: Optional[str], default: List[str]) -> List[str]:
    items = [x.strip() for x in (raw or "").split(",") if x.strip()]
    return items or list(default)


def mask_secret(value: Optional[str], keep: int = 4) -> str:
    """Render a secret for logs: 'Set (abcd...)' or 'Missing'."""
    if not value:
        return "Missing"
    return f"Set ({value[:keep]}...)"


@dataclass(frozen=True)
class DashboardSettings:
    alpha_vantage_api_key: str = ""
    gemini_api_key: str = ""

    # single-slot analysis cache
    analysis_ttl_sec: int = 3600

    # market data
    index_symbols: List[str] = field(default_factory=lambda: list(DEFAULT_INDEX_SYMBOLS))
    quote_delay_sec: float = 0.3
    alpha_vantage_timeout_s: float = 10.0

    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @property
    def has_credentials(self) -> bool:
        return bool(self.alpha_vantage_api_key) and bool(self.gemini_api_key)

    @staticmethod
    def from_env() -> "DashboardSettings":
        return DashboardSettings(
            alpha_vantage_api_key=(os.getenv("ALPHA_VANTAGE_API_KEY") or "").strip(),
            gemini_api_key=(os.getenv("GEMINI_API_KEY") or "").strip(),
            analysis_ttl_sec=int(os.getenv("MARKET_ANALYSIS_TTL_SEC", "3600")),
            index_symbols=_split_csv(os.getenv("MARKET_INDEX_SYMBOLS"), DEFAULT_INDEX_SYMBOLS),
            quote_delay_sec=float(os.getenv("ALPHA_VANTAGE_QUOTE_DELAY_SEC", "0.3")),
            alpha_vantage_timeout_s=float(os.getenv("ALPHA_VANTAGE_TIMEOUT_S", "10")),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS"), DEFAULT_CORS_ORIGINS),
        )
