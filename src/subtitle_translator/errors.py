"""Exception hierarchy for the translation pipeline."""

from __future__ import annotations

from enum import Enum


class APIErrorType(Enum):
    """Provider failure categories, used for logging and backoff hints."""
    RATE_LIMIT = "rate_limit"      # 429
    CONNECTION = "connection"      # network / timeout
    AUTH = "auth"                  # 401 / 403
    BAD_REQUEST = "bad_request"    # 400 / 404 / 422
    SERVER = "server"              # 500+
    UNKNOWN = "unknown"


class TranslatorError(Exception):
    """Base exception for all custom errors."""


class ConfigurationError(TranslatorError):
    """Raised when credentials, provider or model settings are unusable."""


class UnsupportedProviderError(ConfigurationError):
    """Raised when a provider family cannot be resolved."""


class ProviderError(TranslatorError):
    """Raised when a model call fails at request time."""

    def __init__(
        self,
        message: str,
        error_type: APIErrorType = APIErrorType.UNKNOWN,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.status_code = status_code


class UserCancelled(TranslatorError):
    """Raised when the run's cancellation token has been triggered."""

    def __init__(self, message: str = "Translation cancelled by user") -> None:
        super().__init__(message)
