"""Source-language detection for subtitle text."""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from langdetect import DetectorFactory, LangDetectException, detect

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# langdetect 默认带随机性，固定种子保证结果可复现
DetectorFactory.seed = 0

AUTO = "auto"
SAMPLE_ENTRIES = 10
MIN_TEXT_LENGTH = 10

LANGUAGE_NAMES = {
    "ar": "Arabic",
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "hi": "Hindi",
    "id": "Indonesian",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "nl": "Dutch",
    "pl": "Polish",
    "pt": "Portuguese",
    "ru": "Russian",
    "th": "Thai",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "vi": "Vietnamese",
    "zh-cn": "Chinese",
    "zh-tw": "Traditional Chinese",
}

_MARKUP_AND_DIGITS = re.compile(r"<[^>]*>|\d+")
_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Strip tags, digits and punctuation, collapsing whitespace."""
    text = _MARKUP_AND_DIGITS.sub("", text)
    text = _PUNCTUATION.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def detect_language(text: str) -> Optional[str]:
    """
    Detect the language of ``text``.

    Returns:
        A langdetect code such as ``"en"`` or ``"zh-cn"``, or None when the
        text is too short or undetermined
    """
    cleaned = clean_text(text)
    if len(cleaned) < MIN_TEXT_LENGTH:
        return None
    try:
        return detect(cleaned)
    except LangDetectException as e:
        logger.debug(f"Language detection failed: {e}")
        return None


def detect_from_entries(texts: Sequence[str], sample: int = SAMPLE_ENTRIES) -> Optional[str]:
    """Detect the language of the first ``sample`` entries taken together."""
    return detect_language(" ".join(texts[:sample]))


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code.lower(), code)


def resolve_source_language(value: str, texts: Sequence[str]) -> str:
    """
    Return ``value`` unchanged, or the detected language name if it is ``"auto"``.

    Raises:
        ConfigurationError: If auto-detection cannot determine a language
    """
    if value.strip().lower() != AUTO:
        return value

    code = detect_from_entries(texts)
    if code is None:
        raise ConfigurationError("Could not detect the source language; pass --source-lang")

    name = language_name(code)
    logger.info(f"Detected source language: {name} ({code})")
    return name
