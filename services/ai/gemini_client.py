# services/ai/gemini_client.py
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from services.errors import GenerationError

logger = logging.getLogger(__name__)

FINISH_MAX_TOKENS = "MAX_TOKENS"


# ============================================================================
# PUBLIC INTERFACE
# ============================================================================

@dataclass(frozen=True)
class GeminiCompletion:
    text: str
    finish_reason: Optional[str] = None

    @property
    def truncated(self) -> bool:
        return self.finish_reason == FINISH_MAX_TOKENS


class TextModelClient(Protocol):
    async def generate(self, prompt: str) -> GeminiCompletion:
        """Return the first candidate's text plus its finish reason."""


@dataclass
class GeminiConfig:
    api_key: str = ""
    model: str = "gemini-2.5-flash"
    temperature: float = 0.7
    max_output_tokens: int = 1024
    response_mime_type: str = "application/json"

    @staticmethod
    def from_env(api_key: Optional[str] = None) -> "GeminiConfig":
        return GeminiConfig(
            api_key=api_key if api_key is not None else os.getenv("GEMINI_API_KEY", ""),
            model=os.getenv("GEMINI_MODEL") or "gemini-2.5-flash",
            temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.7")),
            max_output_tokens=int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "1024")),
        )


# ============================================================================
# GEMINI (Developer API, key auth)
# ============================================================================

def _finish_reason_name(candidate: Any) -> Optional[str]:
    fr = getattr(candidate, "finish_reason", None)
    if fr is None:
        return None
    return getattr(fr, "name", None) or str(fr)


def _candidate_text(candidate: Any) -> str:
    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    return "".join(getattr(p, "text", None) or "" for p in parts)


class GeminiClient:
    def __init__(self, cfg: GeminiConfig):
        if not cfg.api_key:
            raise GenerationError("Missing GEMINI_API_KEY")
        self.cfg = cfg

    async def generate(self, prompt: str) -> GeminiCompletion:
        # google-genai SDK call is blocking; run in thread.
        completion = await asyncio.to_thread(self._sync_call, prompt)
        logger.info("gemini_finish_reason model=%s reason=%s", self.cfg.model, completion.finish_reason)
        if completion.truncated:
            logger.warning("gemini_response_truncated model=%s max_output_tokens=%s", self.cfg.model, self.cfg.max_output_tokens)
        return completion

    def _sync_call(self, prompt: str) -> GeminiCompletion:
        from google import genai
        from google.genai import types

        try:
            client = genai.Client(api_key=self.cfg.api_key)
            resp = client.models.generate_content(
                model=self.cfg.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.cfg.temperature,
                    max_output_tokens=self.cfg.max_output_tokens,
                    response_mime_type=self.cfg.response_mime_type,
                ),
            )
        except Exception as e:
            raise GenerationError(f"Failed to get AI analysis: {e}") from e

        candidates = getattr(resp, "candidates", None) or []
        if not candidates:
            raise GenerationError("Failed to get AI analysis: model returned no candidates")

        first = candidates[0]
        text = _candidate_text(first)
        if not text.strip():
            raise GenerationError("Failed to get AI analysis: empty model response")

        return GeminiCompletion(text=text, finish_reason=_finish_reason_name(first))
