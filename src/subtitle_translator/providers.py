"""Model resolution and text-generation clients for the supported providers."""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import anthropic
import httpx
from anthropic.resources.messages import AsyncMessages
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from openai import (
    AsyncOpenAI,
    APIConnectionError,
    APIError,
    RateLimitError,
    AuthenticationError,
    BadRequestError,
    APIStatusError,
)

from .cancellation import CancellationToken
from .config import ProviderConfig
from .errors import (
    APIErrorType,
    ConfigurationError,
    ProviderError,
    UnsupportedProviderError,
)

logger = logging.getLogger(__name__)


class ProviderFamily(Enum):
    """Closed set of client families a provider can resolve to."""
    OPENAI_COMPATIBLE = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    CUSTOM = "custom"


def _classify_status(status_code: Optional[int]) -> APIErrorType:
    if status_code is None:
        return APIErrorType.UNKNOWN
    if status_code == 429:
        return APIErrorType.RATE_LIMIT
    if status_code in (401, 403):
        return APIErrorType.AUTH
    if status_code >= 500:
        return APIErrorType.SERVER
    if 400 <= status_code < 500:
        return APIErrorType.BAD_REQUEST
    return APIErrorType.UNKNOWN


def classify_error(error: Exception) -> APIErrorType:
    """分类 SDK 异常。"""
    if isinstance(error, (RateLimitError, anthropic.RateLimitError)):
        return APIErrorType.RATE_LIMIT
    elif isinstance(error, (APIConnectionError, anthropic.APIConnectionError)):
        return APIErrorType.CONNECTION
    elif isinstance(error, (AuthenticationError, anthropic.AuthenticationError)):
        return APIErrorType.AUTH
    elif isinstance(error, (BadRequestError, anthropic.BadRequestError)):
        return APIErrorType.BAD_REQUEST
    elif isinstance(error, (APIStatusError, anthropic.APIStatusError)):
        return _classify_status(error.status_code)
    elif isinstance(error, genai_errors.APIError):
        return _classify_status(error.code)
    elif isinstance(error, httpx.HTTPStatusError):
        return _classify_status(error.response.status_code)
    elif isinstance(error, (httpx.TransportError, TimeoutError)):
        return APIErrorType.CONNECTION
    return APIErrorType.UNKNOWN


def to_provider_error(error: Exception, provider: str) -> ProviderError:
    """Wrap a vendor SDK exception."""
    error_type = classify_error(error)
    status_code = getattr(error, "status_code", None) or getattr(error, "code", None)
    if not isinstance(status_code, int):
        status_code = None
    return ProviderError(f"{provider}: {error}", error_type, status_code)


class TextGenerator(ABC):
    """
    The "generate text from a prompt" capability.

    Subclasses implement ``_complete``; ``generate`` adds cancellation and
    guarantees that vendor failures surface as ``ProviderError``.
    """

    family: ProviderFamily = ProviderFamily.OPENAI_COMPATIBLE

    def __init__(self, model: str) -> None:
        self.model = model

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 4000,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """
        Generate a completion for ``prompt``.

        Raises:
            UserCancelled: If ``cancel_token`` is or becomes triggered
            ProviderError: On transport, rate-limit or auth failures
        """
        call = self._complete(prompt, temperature=temperature, max_tokens=max_tokens)
        if cancel_token is None:
            return await call
        return await cancel_token.guard(call)

    @abstractmethod
    async def _complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        """Perform one request and return the response text."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


class OpenAICompatibleGenerator(TextGenerator):
    """OpenAI chat completions, also used for OpenAI-compatible endpoints."""

    family = ProviderFamily.OPENAI_COMPATIBLE

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        family: ProviderFamily = ProviderFamily.OPENAI_COMPATIBLE,
    ) -> None:
        super().__init__(model)
        self.family = family
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,  # retries are owned by the batch scheduler
        )

    async def _complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except APIError as e:
            raise to_provider_error(e, "openai") from e

        if not response.choices:
            raise ProviderError("openai: response contained no choices")
        content = response.choices[0].message.content
        return content.strip() if content else ""


# 部分 anthropic 版本的 messages.create 不再接受 temperature
_MESSAGES_CREATE_PARAMS = frozenset(inspect.signature(AsyncMessages.create).parameters)


class AnthropicGenerator(TextGenerator):
    """Anthropic Messages API."""

    family = ProviderFamily.ANTHROPIC

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(model)
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    def request_params(self, prompt: str, *, temperature: float, max_tokens: int) -> dict:
        """Keyword arguments for ``messages.create``, limited to what the SDK accepts."""
        params = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if "temperature" in _MESSAGES_CREATE_PARAMS:
            params["temperature"] = temperature
        return params

    async def _complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        params = self.request_params(prompt, temperature=temperature, max_tokens=max_tokens)
        try:
            message = await self.client.messages.create(**params)
        except anthropic.APIError as e:
            raise to_provider_error(e, "anthropic") from e

        parts = [block.text for block in message.content if getattr(block, "type", None) == "text"]
        return "".join(parts).strip()


class GoogleGenerator(TextGenerator):
    """Google Gemini via the google-genai SDK (async surface)."""

    family = ProviderFamily.GOOGLE

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(model)
        # HttpOptions.timeout 单位为毫秒
        http_options = genai_types.HttpOptions(base_url=base_url, timeout=int(timeout * 1000))
        self.client = genai.Client(api_key=api_key, http_options=http_options)

    async def _complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                ),
            )
        # google-genai 不包装 httpx 的传输层异常
        except (genai_errors.APIError, httpx.HTTPError, TimeoutError) as e:
            raise to_provider_error(e, "google") from e

        text = response.text
        return text.strip() if text else ""


_FAMILY_BY_PROVIDER_ID = {
    "anthropic": ProviderFamily.ANTHROPIC,
    "google": ProviderFamily.GOOGLE,
    "openai": ProviderFamily.OPENAI_COMPATIBLE,
    "siliconflow": ProviderFamily.OPENAI_COMPATIBLE,
}

_FAMILY_BY_URL = (
    ("anthropic.com", ProviderFamily.ANTHROPIC),
    ("googleapis.com", ProviderFamily.GOOGLE),
    ("openai.com", ProviderFamily.OPENAI_COMPATIBLE),
    ("siliconflow.cn", ProviderFamily.OPENAI_COMPATIBLE),
)


def detect_family(provider_id: str, provider: ProviderConfig) -> ProviderFamily:
    """
    Decide which client family serves a provider.

    Priority: explicit ``family`` on the config, provider id, base-URL
    substring, custom flag, then OpenAI-compatible as the default.

    Raises:
        UnsupportedProviderError: If an explicit family is not recognised
    """
    if provider.family:
        try:
            return ProviderFamily(provider.family.strip().lower())
        except ValueError:
            supported = ", ".join(f.value for f in ProviderFamily)
            raise UnsupportedProviderError(
                f"Unsupported AI provider type '{provider.family}' for {provider_id}. "
                f"Supported: {supported}"
            ) from None

    family = _FAMILY_BY_PROVIDER_ID.get(provider_id.lower())
    if family is not None:
        return family

    base_url = (provider.base_url or "").lower()
    for needle, url_family in _FAMILY_BY_URL:
        if needle in base_url:
            return url_family

    if provider.is_custom:
        return ProviderFamily.CUSTOM

    return ProviderFamily.OPENAI_COMPATIBLE


def resolve_model(
    provider_id: str,
    provider: ProviderConfig,
    model_name: str,
    timeout: float = 60.0,
) -> TextGenerator:
    """
    Map a provider + credentials + model to a text-generation capability.

    Args:
        provider_id: Provider key in the configuration
        provider: Provider settings (credential, base URL, models)
        model_name: Model to call
        timeout: Per-request timeout passed to the SDK client

    Returns:
        A TextGenerator bound to ``model_name``

    Raises:
        ConfigurationError: If the credential or model name is missing
        UnsupportedProviderError: If the provider family is unknown
    """
    family = detect_family(provider_id, provider)

    if not provider.is_configured:
        raise ConfigurationError(f"Provider '{provider_id}' is not configured with an API key")

    if not model_name or not model_name.strip():
        raise ConfigurationError(f"No model selected for provider '{provider_id}'")

    base_url = provider.base_url or None
    logger.debug(f"Resolved provider '{provider_id}' to {family.value} ({model_name})")

    if family is ProviderFamily.ANTHROPIC:
        return AnthropicGenerator(model_name, provider.api_key, base_url, timeout)

    if family is ProviderFamily.GOOGLE:
        return GoogleGenerator(model_name, provider.api_key, base_url, timeout)

    if family is ProviderFamily.CUSTOM and not base_url:
        raise ConfigurationError(f"Custom provider '{provider_id}' requires a base URL")

    return OpenAICompatibleGenerator(model_name, provider.api_key, base_url, timeout, family)
