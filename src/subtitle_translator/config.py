"""Configuration and constants."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables once
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    """Credentials and model list for one AI provider."""

    name: str
    api_key: str = ""
    base_url: Optional[str] = None
    models: tuple = ()
    selected_model: Optional[str] = None
    is_custom: bool = False
    # 显式指定 provider 类型（openai / anthropic / google / custom）
    family: Optional[str] = None

    @property
    def default_model(self) -> Optional[str]:
        return self.models[0] if self.models else None

    @property
    def active_model(self) -> Optional[str]:
        """Selected model, falling back to the first listed one."""
        return self.selected_model or self.default_model

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], fallback_name: str = "") -> "ProviderConfig":
        """Build from a JSON-style mapping (camelCase keys are accepted)."""
        models = tuple(m.strip() for m in data.get("models", []) if m and m.strip())
        return cls(
            name=data.get("name") or fallback_name,
            api_key=data.get("api_key", data.get("apiKey", "")) or "",
            base_url=data.get("base_url", data.get("baseURL")) or None,
            models=tuple(dict.fromkeys(models)),
            selected_model=data.get("selected_model", data.get("selectedModel")) or None,
            is_custom=bool(data.get("is_custom", data.get("isCustom", False))),
            family=data.get("family") or None,
        )


def _builtin_providers() -> Dict[str, ProviderConfig]:
    """Built-in providers, with keys taken from the environment."""
    return {
        "openai": ProviderConfig(
            name="OpenAI",
            api_key=os.environ.get("OPENAI_API_KEY", ""),
            base_url=os.environ.get("OPENAI_BASE_URL") or None,
            models=("gpt-4o-mini", "gpt-4o", "gpt-4.1-mini"),
        ),
        "anthropic": ProviderConfig(
            name="Anthropic",
            api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
            models=("claude-3-5-haiku-latest", "claude-3-5-sonnet-latest"),
        ),
        "google": ProviderConfig(
            name="Google AI",
            api_key=os.environ.get("GOOGLE_API_KEY") or os.environ.get("GEMINI_API_KEY", ""),
            models=("gemini-2.0-flash", "gemini-1.5-pro"),
        ),
        "siliconflow": ProviderConfig(
            name="SiliconFlow",
            api_key=os.environ.get("SILICONFLOW_API_KEY", ""),
            base_url="https://api.siliconflow.cn/v1",
            models=("Qwen/Qwen2.5-7B-Instruct", "deepseek-ai/DeepSeek-V3"),
        ),
    }


def provider_id_from_name(name: str) -> str:
    """Derive a provider id from a display name ("My Proxy" -> "my-proxy")."""
    return re.sub(r"\s+", "-", name.strip().lower())


@dataclass(frozen=True)
class TranslatorConfig:
    """
    Immutable configuration snapshot for one translation run.

    Settings changes produce a new snapshot; a run in flight keeps the one
    it was started with.
    """

    providers: Mapping[str, ProviderConfig] = field(default_factory=_builtin_providers)
    default_provider: str = "openai"

    # Processing settings
    concurrency: int = 3
    batch_size: int = 5
    max_retries: int = 2
    backoff_base: float = 1.0

    # Model call settings
    temperature: float = 0.3
    max_tokens: int = 4000
    request_timeout: float = 60.0

    # Output settings
    output_layout: str = "original-top"
    output_prefix: str = "translated_"

    def get_provider(self, provider_id: str) -> ProviderConfig:
        """Look up a provider, raising ConfigurationError if unknown."""
        provider = self.providers.get(provider_id)
        if provider is None:
            raise ConfigurationError(f"Provider {provider_id} not found in configuration")
        return provider

    def is_provider_configured(self, provider_id: str) -> bool:
        provider = self.providers.get(provider_id)
        return bool(provider and provider.is_configured)

    def available_providers(self) -> List[str]:
        """Provider ids that have an API key."""
        return [pid for pid, p in self.providers.items() if p.is_configured]

    def provider_models(self, provider_id: str) -> List[str]:
        provider = self.providers.get(provider_id)
        return list(provider.models) if provider else []

    def with_overrides(self, **changes: Any) -> "TranslatorConfig":
        """Return a new snapshot with the given fields replaced (None values ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def add_custom_provider(self, provider: ProviderConfig) -> tuple[str, "TranslatorConfig"]:
        """
        Register a custom provider.

        Returns:
            (provider id, new config snapshot)
        """
        provider_id = provider_id_from_name(provider.name)
        custom = replace(
            provider,
            is_custom=True,
            selected_model=provider.selected_model or provider.default_model,
        )
        providers = dict(self.providers)
        providers[provider_id] = custom
        return provider_id, replace(self, providers=providers)

    def validate(self) -> Optional[str]:
        """
        Validate configuration.

        Returns:
            Error message if invalid, None if valid
        """
        if not self.default_provider:
            return "Default provider is not set"

        if self.default_provider not in self.providers:
            return f"Default provider '{self.default_provider}' does not exist in providers"

        if not self.is_provider_configured(self.default_provider):
            return f"Provider '{self.default_provider}' is not configured with an API key"

        if self.concurrency < 1 or self.concurrency > 100:
            return f"Concurrency must be 1-100, got {self.concurrency}"

        if self.batch_size < 1:
            return f"Batch size must be >= 1, got {self.batch_size}"

        if self.max_retries < 0:
            return f"Max retries must be >= 0, got {self.max_retries}"

        if self.output_layout not in OUTPUT_LAYOUTS:
            return f"Unknown output layout: {self.output_layout}"

        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TranslatorConfig":
        """Merge a JSON-style mapping over the built-in defaults."""
        providers = _builtin_providers()
        for provider_id, raw in (data.get("providers") or {}).items():
            base = providers.get(provider_id)
            if base is not None:
                # 只覆盖文件里给出的字段
                merged = ProviderConfig.from_dict(raw, base.name)
                providers[provider_id] = replace(
                    base,
                    api_key=merged.api_key or base.api_key,
                    base_url=merged.base_url or base.base_url,
                    models=merged.models or base.models,
                    selected_model=merged.selected_model or base.selected_model,
                    family=merged.family or base.family,
                )
            else:
                providers[provider_id] = replace(
                    ProviderConfig.from_dict(raw, provider_id), is_custom=True
                )

        known = {
            "default_provider": data.get("default_provider", data.get("defaultProvider")),
            "concurrency": data.get("concurrency"),
            "batch_size": data.get("batch_size", data.get("subtitleBatchSize")),
            "max_retries": data.get("max_retries", data.get("maxRetries")),
            "temperature": data.get("temperature"),
            "max_tokens": data.get("max_tokens"),
            "output_layout": data.get("output_layout", data.get("outputFormat")),
        }
        return cls(providers=providers).with_overrides(**known)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "TranslatorConfig":
        """
        Load configuration from a JSON file, or defaults if no file is given.

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        if path is None:
            return cls()

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config file not found: {path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

        logger.debug(f"Loaded config from {path}")
        return cls.from_dict(data)

    def apply_args(self, args) -> "TranslatorConfig":
        """Apply argparse overrides on top of this snapshot."""
        config = self.with_overrides(
            default_provider=getattr(args, "provider", None),
            concurrency=getattr(args, "concurrency", None),
            batch_size=getattr(args, "batch_size", None),
            max_retries=getattr(args, "max_retries", None),
            output_layout=getattr(args, "layout", None),
        )

        api_key = getattr(args, "api_key", None)
        base_url = getattr(args, "base_url", None)
        if api_key or base_url:
            provider = config.get_provider(config.default_provider)
            providers = dict(config.providers)
            providers[config.default_provider] = replace(
                provider,
                api_key=api_key or provider.api_key,
                base_url=base_url or provider.base_url,
            )
            config = replace(config, providers=providers)

        return config


OUTPUT_LAYOUTS = ("original-top", "translation-top", "translation-only")

# Supported file extensions
SUPPORTED_EXTENSIONS = {".srt"}
