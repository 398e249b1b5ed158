# core/input_normalizer.py
"""
Input Normalizer - strips inline control flags from a raw line and
tokenizes the rest on whitespace.

Flags:
    --raw / -r              raw JSON output for this turn
    --lines N / --lines=N   log line count for inspect queries
    -n N                    short form of --lines
"""

import re
from typing import List, Optional, Tuple

from config import DEFAULT_LOG_LINES
from core.models import TurnInput
from utils.logger import log_debug

RAW_FLAGS = frozenset({"--raw", "-r"})
LINES_FLAGS = frozenset({"--lines", "-n"})
EXIT_COMMANDS = frozenset({"exit", "quit"})

_LINES_INLINE = re.compile(r"^--lines=(.*)$")


def is_exit_command(line: str) -> bool:
    return line.strip().lower() in EXIT_COMMANDS


def _parse_line_count(value: Optional[str]) -> Tuple[int, Optional[str]]:
    """Returns (count, warning). Non-positive or missing values fall back to the default."""
    if value is None or value == "":
        return DEFAULT_LOG_LINES, f"--lines needs a value, using default {DEFAULT_LOG_LINES}"
    try:
        count = int(value)
    except ValueError:
        return DEFAULT_LOG_LINES, f"Invalid --lines value '{value}', using default {DEFAULT_LOG_LINES}"
    if count <= 0:
        return DEFAULT_LOG_LINES, f"--lines must be positive (got {count}), using default {DEFAULT_LOG_LINES}"
    return count, None


def normalize(line: str, raw_default: bool = False) -> TurnInput:
    """
    Splits a raw input line into tokens and flags.

    Flag tokens never reach the context store or the extractor.
    """
    parts: List[str] = line.strip().split()
    result = TurnInput(raw_output=raw_default)

    i = 0
    while i < len(parts):
        part = parts[i]
        lowered = part.lower()

        if lowered in RAW_FLAGS:
            result.raw_output = not raw_default
            i += 1
            continue

        inline = _LINES_INLINE.match(lowered)
        if inline:
            count, warning = _parse_line_count(inline.group(1))
            result.line_limit = count
            if warning:
                result.warnings.append(warning)
            i += 1
            continue

        if lowered in LINES_FLAGS:
            value = parts[i + 1] if i + 1 < len(parts) else None
            # A following word that is clearly not a number is left in the token stream
            consumed = value is not None and re.fullmatch(r"-?\d+", value) is not None
            count, warning = _parse_line_count(value if consumed else None)
            result.line_limit = count
            if warning:
                result.warnings.append(warning)
            i += 2 if consumed else 1
            continue

        result.tokens.append(part)
        i += 1

    for warning in result.warnings:
        log_debug(f"[Input] {warning}")

    return result
