import json
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from schemas.market_analysis import AnalysisResult
from services.errors import ParseError

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)


def strip_code_fences(s: str) -> str:
    """Drop every ``` / ```json marker, wherever the model put them."""
    return _FENCE_RE.sub("", s or "").strip()


def find_balanced_object(s: str) -> Optional[str]:
    """
    Return the first balanced {...} span in s, or None.
    Braces inside JSON string literals don't count.
    """
    start = s.find("{")
    while start != -1:
        depth = 0
        in_str = False
        escaped = False
        for i in range(start, len(s)):
            ch = s[i]
            if in_str:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_str = False
                continue
            if ch == '"':
                in_str = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return s[start:i + 1]
        # unbalanced from this brace; try the next one
        start = s.find("{", start + 1)
    return None


def _loads_object(text: str) -> Dict[str, Any]:
    obj = json.loads(text)
    # sometimes models double-encode JSON as a string
    if isinstance(obj, str):
        obj = json.loads(obj)
    if not isinstance(obj, dict):
        raise ParseError("Expected a JSON object")
    return obj


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Recover a JSON object from model output:
      1) strip code fences
      2) parse directly if it looks like an object
      3) otherwise parse the first balanced {...} span, once
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise ParseError("Empty model response")

    first_error: Optional[Exception] = None
    if cleaned.startswith("{"):
        try:
            return _loads_object(cleaned)
        except (json.JSONDecodeError, ParseError) as e:
            first_error = e

    candidate = find_balanced_object(cleaned)
    if candidate is None or candidate == cleaned:
        if first_error is not None:
            raise ParseError(f"Invalid JSON in model response: {first_error}") from first_error
        raise ParseError("No JSON object found in model response")

    try:
        return _loads_object(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in model response: {e}") from e


def parse_analysis(text: str) -> AnalysisResult:
    obj = extract_json_object(text)
    try:
        return AnalysisResult.model_validate(obj)
    except ValidationError as e:
        raise ParseError(f"Model response does not match the analysis schema: {e.error_count()} error(s)") from e
