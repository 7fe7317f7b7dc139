"""
Central logging configuration for the dashboard backend.

- JSON logs when LOG_JSON=1, plain text otherwise.
- LOG_LEVEL from env (default INFO).
- Never log API keys. Use config.settings.mask_secret when a key's
  presence needs to show up in a message.
"""
import json
import logging
import os
import sys
from typing import Any

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "google_genai")


def _json_default(obj: Any):
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return str(obj)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            payload["exception"] = self.formatException(record.exc_info)
        analysis_source = getattr(record, "analysis_source", None)
        if analysis_source is not None:
            payload["analysis_source"] = analysis_source
        return json.dumps(payload, default=_json_default)


def _use_json() -> bool:
    return os.getenv("LOG_JSON", "").lower() in ("1", "true", "yes")


def configure_logging() -> None:
    """Configure the root logger once per process (safe to call again on reload)."""
    level_name = (os.getenv("LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if _use_json():
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
