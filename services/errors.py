# services/errors.py
from __future__ import annotations


class MarketAnalysisError(Exception):
    """Base class for failures inside the market analysis pipeline."""


class UpstreamError(MarketAnalysisError):
    """Market-data provider reported a failure (in-band or transport) or sent malformed data."""


class GenerationError(MarketAnalysisError):
    """The generative-model call failed or returned no usable candidate."""


class ParseError(MarketAnalysisError):
    """Model output could not be recovered as an AnalysisResult."""
