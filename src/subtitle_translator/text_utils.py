"""Response parsing and text utilities."""

from __future__ import annotations

import logging
import math
import re
from typing import List, Sequence

from .models import PARSE_ERROR_MARKER

logger = logging.getLogger(__name__)


NUMBERED_LINE = re.compile(r"^[0-9]+\.\s*(.+)$", re.MULTILINE)
NUMBER_PREFIX = re.compile(r"^[0-9]+\.\s*")
# 仅含编号的行（"3." 或 "3"）视为噪声
BARE_NUMERAL = re.compile(r"^[0-9]+\.?\s*$")


def parse_translation_response(raw_text: str, expected_count: int) -> List[str]:
    """
    Extract ``expected_count`` translations from a numbered-list response.

    Never raises. Strategies, in order:

    1. Numbered lines (``"3. text"``), used only if their count matches.
    2. Non-blank lines that are not a bare numeral, if there are enough.
    3. Whatever lines exist, padded with the parse-error marker.

    Note that strategy 2 also drops a genuine translation consisting only of
    a numeral such as ``"42"``.

    Args:
        raw_text: Raw model output
        expected_count: Number of fragments in the batch

    Returns:
        Exactly ``expected_count`` strings
    """
    if expected_count <= 0:
        return []

    text = (raw_text or "").strip()

    numbered = [m.group(0) for m in NUMBERED_LINE.finditer(text)]
    if len(numbered) == expected_count:
        return [NUMBER_PREFIX.sub("", line, count=1).strip() for line in numbered]

    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line and not BARE_NUMERAL.match(line)]

    if len(lines) >= expected_count:
        if numbered:
            logger.debug(
                f"Numbered parse found {len(numbered)}/{expected_count} items, "
                "falling back to line split"
            )
        return lines[:expected_count]

    logger.warning(
        f"Could only parse {len(lines)}/{expected_count} translations, padding with error markers"
    )
    logger.debug(f"Raw response: {text[:200]}...")
    return lines + [PARSE_ERROR_MARKER] * (expected_count - len(lines))


def estimate_tokens(texts: Sequence[str]) -> int:
    """
    Rough token estimate for translating ``texts``.

    About 4 characters per token for input, the same again for output,
    plus a fixed prompt overhead per entry.
    """
    input_tokens = sum(math.ceil(len(text) / 4) for text in texts)
    output_tokens = input_tokens
    prompt_tokens = len(texts) * 50
    return input_tokens + output_tokens + prompt_tokens


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate text to maximum length with suffix."""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
