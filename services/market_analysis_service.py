# services/market_analysis_service.py
"""
AI market analysis for the dashboard's market panel.

Alpha Vantage snapshot -> Gemini prompt -> JSON recovery, behind a
single-slot in-process cache (1h by default). Every call returns an
AnalysisResult; failures come back as a degraded result with `error` set.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Tuple

import httpx

from config.settings import DashboardSettings, mask_secret
from schemas.market_analysis import AnalysisResult
from services.ai.gemini_client import GeminiClient, GeminiConfig, TextModelClient
from services.ai.json_helpers import parse_analysis
from services.alpha_vantage.alpha_vantage_service import AlphaVantageService
from services.alpha_vantage.market_snapshot import gather_market_summary

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

ANALYSIS_PROMPT = """You are a professional market analyst.

Current Market Snapshot:
{market_summary}

TASK: Based on the current market data above, analyze market conditions and identify the best investment opportunities. Consider:
1. Market momentum and trends from the gainers/losers
2. Sector rotation opportunities
3. Risk factors and market sentiment
4. Specific stocks or sectors showing strong signals

Provide your analysis in this EXACT JSON format (no other text):
{{
  "summary": "[emoji 📈/📊/📉] + [comprehensive 2-sentence market analysis with key insights]",
  "opportunities": ["[actionable opportunity 1]", "[actionable opportunity 2]", "[actionable opportunity 3]", "[actionable opportunity 4]"],
  "riskLevel": "Low" or "Medium" or "High"
}}

Make each opportunity specific and actionable (under 15 words). Focus on the strongest signals from the data.
Return ONLY the JSON object, no other text."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_analysis_prompt(market_summary: str) -> str:
    return ANALYSIS_PROMPT.format(market_summary=market_summary.strip())


class AnalysisSource(str, Enum):
    CACHED = "cached"
    FRESH = "fresh"
    CONFIG_ERROR = "config_error"
    RUNTIME_ERROR = "runtime_error"


# ---------------------------
# Degraded payloads
# ---------------------------

def config_error_result() -> AnalysisResult:
    return AnalysisResult(
        error="Missing API keys. Please set GEMINI_API_KEY and ALPHA_VANTAGE_API_KEY in .env",
        summary="⚠️ API keys not configured",
        opportunities=[
            "Add GEMINI_API_KEY to your .env file",
            "Add ALPHA_VANTAGE_API_KEY to your .env file",
            "Restart the backend server",
            "Get free API keys from aistudio.google.com and alphavantage.co",
        ],
        riskLevel="Medium",
    )


def runtime_error_result(message: Optional[str]) -> AnalysisResult:
    return AnalysisResult(
        error=message or "Failed to analyze market",
        summary="❌ Unable to fetch market analysis",
        opportunities=[
            "Check your API keys are valid",
            "Ensure you have not exceeded API rate limits",
            "Verify your internet connection",
            "Try refreshing in a few moments",
        ],
        riskLevel="Medium",
    )


# ---------------------------
# Single-slot cache
# ---------------------------

@dataclass(frozen=True)
class CacheEntry:
    data: AnalysisResult
    timestamp: datetime


class AnalysisCache:
    """
    One entry, no key. Overwritten on every successful generation and
    otherwise left to age out; there is no invalidation.
    """

    def __init__(self, ttl_sec: int = 3600):
        self.ttl = timedelta(seconds=ttl_sec)
        self.entry: Optional[CacheEntry] = None

    def get(self, now: datetime) -> Optional[CacheEntry]:
        entry = self.entry
        if entry is not None and now - entry.timestamp < self.ttl:
            return entry
        return None

    def put(self, data: AnalysisResult, now: datetime) -> CacheEntry:
        self.entry = CacheEntry(data=data, timestamp=now)
        return self.entry


# ---------------------------
# Service
# ---------------------------

class MarketAnalysisService:
    def __init__(
        self,
        settings: Optional[DashboardSettings] = None,
        cache: Optional[AnalysisCache] = None,
        *,
        market_data: Optional[AlphaVantageService] = None,
        model_client: Optional[TextModelClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings or DashboardSettings.from_env()
        self.cache = cache or AnalysisCache(ttl_sec=self.settings.analysis_ttl_sec)
        self._market_data = market_data
        self._model_client = model_client
        self._http_client = http_client
        self._clock = clock

    def _get_market_data(self) -> AlphaVantageService:
        if self._market_data is None:
            self._market_data = AlphaVantageService(
                self.settings.alpha_vantage_api_key,
                timeout=self.settings.alpha_vantage_timeout_s,
                quote_delay_sec=self.settings.quote_delay_sec,
            )
        return self._market_data

    def _get_model_client(self) -> TextModelClient:
        if self._model_client is None:
            self._model_client = GeminiClient(GeminiConfig.from_env(api_key=self.settings.gemini_api_key))
        return self._model_client

    async def _generate(self, now: datetime) -> AnalysisResult:
        market_summary = await gather_market_summary(
            self._get_market_data(),
            self.settings.index_symbols,
            as_of=now,
            client=self._http_client,
        )
        prompt = build_analysis_prompt(market_summary)
        logger.info("market_analysis_calling_llm prompt_chars=%s", len(prompt))

        completion = await self._get_model_client().generate(prompt)
        logger.debug("market_analysis_llm_text %s", completion.text)
        return parse_analysis(completion.text)

    async def get_analysis_with_source(self) -> Tuple[AnalysisResult, AnalysisSource]:
        now = self._clock()

        hit = self.cache.get(now)
        if hit is not None:
            age_min = round((now - hit.timestamp).total_seconds() / 60)
            logger.info("market_analysis_cache_hit age_min=%s", age_min)
            return hit.data, AnalysisSource.CACHED

        logger.info("market_analysis_cache_miss")
        logger.info(
            "market_analysis_keys gemini=%s alpha_vantage=%s",
            mask_secret(self.settings.gemini_api_key),
            mask_secret(self.settings.alpha_vantage_api_key),
        )
        if not self.settings.has_credentials:
            logger.warning("market_analysis_missing_api_keys")
            return config_error_result(), AnalysisSource.CONFIG_ERROR

        try:
            analysis = await self._generate(now)
        except Exception as e:
            logger.exception("market_analysis_failed: %s", e)
            return runtime_error_result(str(e)), AnalysisSource.RUNTIME_ERROR

        self.cache.put(analysis, self._clock())
        logger.info(
            "market_analysis_generated risk=%s opportunities=%s ttl_sec=%s",
            analysis.riskLevel, len(analysis.opportunities), int(self.cache.ttl.total_seconds()),
        )
        return analysis, AnalysisSource.FRESH

    async def get_analysis(self) -> AnalysisResult:
        result, _ = await self.get_analysis_with_source()
        return result


_service_singleton: Optional[MarketAnalysisService] = None


def get_market_analysis_service() -> MarketAnalysisService:
    global _service_singleton
    if _service_singleton is None:
        _service_singleton = MarketAnalysisService()
    return _service_singleton
