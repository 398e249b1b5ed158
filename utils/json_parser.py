# utils/json_parser.py
"""
Robust JSON parsing for LLM output.

Models often return "almost JSON":
- text before/after the JSON
- JSON wrapped in markdown code fences
- markdown emphasis leaking into values
- trailing commas

The parser tries several strategies and never raises.
"""

import json
import re
from typing import Any, Dict, List, Optional
from utils.logger import log_warning, log_error, log_debug


_FENCE_PATTERN = re.compile(r"```(?:json)?\n?([\s\S]*?)\n?```", re.IGNORECASE)


def strip_markdown(raw: str) -> str:
    """
    Removes code fences and inline markdown formatting from a model reply.
    """
    cleaned = _FENCE_PATTERN.sub(r"\1", raw).strip()
    cleaned = re.sub(r"\*\*([^*]+)\*\*", r"\1", cleaned)   # **bold**
    cleaned = re.sub(r"\*([^*]+)\*", r"\1", cleaned)       # *italic*
    cleaned = re.sub(r"#{1,6}\s+", "", cleaned)            # # headers
    cleaned = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", cleaned)  # [text](url)
    cleaned = re.sub(r"`([^`]+)`", r"\1", cleaned)         # `code`
    return cleaned.strip()


def safe_parse_json(
    raw: str,
    default: Optional[Dict] = None,
    context: str = "unknown"
) -> Dict[str, Any]:
    """
    JSON object parsing with fallback strategies.

    Args:
        raw: raw string, possibly with text around it
        default: returned when every strategy fails
        context: used in log lines (e.g. "Extraction")

    Returns:
        Parsed dict or default
    """
    if not raw or not raw.strip():
        log_warning(f"[JSON:{context}] Empty input, using default")
        return default or {}

    # Strategy 1: direct
    try:
        parsed = json.loads(raw)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    # Strategy 2: first { to last }
    try:
        start = raw.index("{")
        end = raw.rindex("}") + 1
        parsed = json.loads(raw[start:end])
        if isinstance(parsed, dict):
            return parsed
    except (ValueError, json.JSONDecodeError):
        pass

    # Strategy 3: repair common mistakes
    repaired = _attempt_json_repair(raw, "{", "}")
    if repaired:
        try:
            parsed = json.loads(repaired)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

    log_error(f"[JSON:{context}] All parsing strategies failed")
    log_debug(f"[JSON:{context}] Raw input was: {raw[:200]}...")
    return default or {}


def extract_json_array(raw: str, context: str = "unknown") -> Optional[List[Any]]:
    """
    Extracts a JSON array from model output.

    A single top-level object is wrapped into a one-element list, so callers
    always get a list. Returns None when nothing parseable is found.
    """
    if not raw or not raw.strip():
        return None

    cleaned = strip_markdown(raw)

    for candidate in (cleaned, _slice(cleaned, "[", "]"), _attempt_json_repair(cleaned, "[", "]")):
        if not candidate:
            continue
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, list):
            return parsed
        if isinstance(parsed, dict):
            return [parsed]

    obj = safe_parse_json(cleaned, default=None, context=context)
    if obj:
        return [obj]
    return None


def _slice(raw: str, open_char: str, close_char: str) -> Optional[str]:
    try:
        start = raw.index(open_char)
        end = raw.rindex(close_char) + 1
    except ValueError:
        return None
    return raw[start:end]


def _attempt_json_repair(raw: str, open_char: str, close_char: str) -> Optional[str]:
    """
    Tries to fix frequent JSON mistakes inside the outermost brackets.
    """
    json_str = _slice(raw, open_char, close_char)
    if json_str is None:
        return None

    # Trailing commas: ,} / ,]
    json_str = re.sub(r",\s*}", "}", json_str)
    json_str = re.sub(r",\s*]", "]", json_str)

    # Single quotes, only when there are no double quotes at all
    if '"' not in json_str and "'" in json_str:
        json_str = json_str.replace("'", '"')

    # Python literals
    json_str = re.sub(r"\bTrue\b", "true", json_str)
    json_str = re.sub(r"\bFalse\b", "false", json_str)
    json_str = re.sub(r"\bNone\b", "null", json_str)

    return json_str
