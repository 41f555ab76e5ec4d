"""
Subtitle Translator - batched, concurrent AI subtitle translation.

Features:
- Pluggable providers (OpenAI-compatible, Anthropic, Google Gemini, custom endpoints)
- Batched numbered-list prompts with tolerant response parsing
- Bounded worker pool with per-batch exponential-backoff retries
- Live progress snapshots and cooperative cancellation
- Bilingual SRT output
"""

__version__ = "2.0.0"
__author__ = "wjin999"

from .models import Fragment, Batch, TranslationUnit, PARSE_ERROR_MARKER, CANCELLED_MARKER
from .errors import (
    TranslatorError,
    ConfigurationError,
    UnsupportedProviderError,
    ProviderError,
    UserCancelled,
)
from .config import ProviderConfig, TranslatorConfig
from .cancellation import CancellationController, CancellationToken
from .providers import ProviderFamily, TextGenerator, detect_family, resolve_model
from .prompts import build_prompt
from .text_utils import parse_translation_response, estimate_tokens
from .progress import Progress, ProgressReporter
from .translator import BatchTranslator, translate_all
from .srt import SrtEntry, parse_srt, render_srt, save_srt, compose_bilingual
from .language import detect_language, resolve_source_language

__all__ = [
    # Models
    "Fragment",
    "Batch",
    "TranslationUnit",
    "Progress",
    "PARSE_ERROR_MARKER",
    "CANCELLED_MARKER",
    # Errors
    "TranslatorError",
    "ConfigurationError",
    "UnsupportedProviderError",
    "ProviderError",
    "UserCancelled",
    # Configuration
    "ProviderConfig",
    "TranslatorConfig",
    # Providers
    "ProviderFamily",
    "TextGenerator",
    "detect_family",
    "resolve_model",
    # Pipeline
    "build_prompt",
    "parse_translation_response",
    "estimate_tokens",
    "ProgressReporter",
    "CancellationController",
    "CancellationToken",
    "BatchTranslator",
    "translate_all",
    # SRT
    "SrtEntry",
    "parse_srt",
    "render_srt",
    "save_srt",
    "compose_bilingual",
    # Language detection
    "detect_language",
    "resolve_source_language",
]
