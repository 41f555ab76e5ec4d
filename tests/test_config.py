"""Tests for configuration snapshots."""

import argparse
import json

import pytest

from subtitle_translator.config import ProviderConfig, TranslatorConfig, provider_id_from_name
from subtitle_translator.errors import ConfigurationError


def make_config(**kwargs) -> TranslatorConfig:
    providers = {
        "openai": ProviderConfig(name="OpenAI", api_key="sk-test", models=("gpt-4o-mini",)),
        "anthropic": ProviderConfig(name="Anthropic", models=("claude-3-5-haiku-latest",)),
    }
    return TranslatorConfig(providers=providers, **kwargs)


class TestProviderConfig:

    def test_active_model_defaults_to_first(self):
        p = ProviderConfig(name="X", models=("a", "b"))
        assert p.active_model == "a"
        assert ProviderConfig(name="X", models=("a", "b"), selected_model="b").active_model == "b"

    def test_is_configured(self):
        assert not ProviderConfig(name="X", api_key="  ").is_configured
        assert ProviderConfig(name="X", api_key="k").is_configured

    def test_from_dict_camel_case(self):
        p = ProviderConfig.from_dict({
            "apiKey": "k",
            "baseURL": "https://example.com/v1",
            "models": ["m1", " m1 ", "", "m2"],
            "isCustom": True,
        }, "proxy")
        assert p.name == "proxy"
        assert p.base_url == "https://example.com/v1"
        assert p.models == ("m1", "m2")
        assert p.is_custom


class TestValidate:

    def test_valid(self):
        assert make_config().validate() is None

    def test_unconfigured_default(self):
        error = make_config(default_provider="anthropic").validate()
        assert "API key" in error

    def test_unknown_default(self):
        assert "does not exist" in make_config(default_provider="nope").validate()

    @pytest.mark.parametrize("value", [0, 101])
    def test_concurrency_range(self, value):
        assert "Concurrency" in make_config(concurrency=value).validate()

    def test_batch_size(self):
        assert "Batch size" in make_config(batch_size=0).validate()

    def test_layout(self):
        assert "layout" in make_config(output_layout="sideways").validate()


class TestSnapshots:

    def test_with_overrides_ignores_none(self):
        config = make_config()
        updated = config.with_overrides(concurrency=10, batch_size=None)
        assert updated.concurrency == 10
        assert updated.batch_size == config.batch_size
        assert config.concurrency == 3

    def test_add_custom_provider_returns_new_snapshot(self):
        config = make_config()
        provider_id, updated = config.add_custom_provider(
            ProviderConfig(name="My Proxy", api_key="k", base_url="http://localhost:8000/v1", models=("local",))
        )
        assert provider_id == "my-proxy"
        assert "my-proxy" not in config.providers
        assert updated.providers["my-proxy"].is_custom
        assert updated.providers["my-proxy"].selected_model == "local"

    def test_available_providers(self):
        assert make_config().available_providers() == ["openai"]

    def test_get_provider_unknown(self):
        with pytest.raises(ConfigurationError):
            make_config().get_provider("missing")

    def test_provider_id_from_name(self):
        assert provider_id_from_name("  Local  LLM ") == "local-llm"


class TestLoad:

    def test_load_none_gives_defaults(self):
        config = TranslatorConfig.load(None)
        assert set(config.providers) >= {"openai", "anthropic", "google", "siliconflow"}

    def test_load_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "defaultProvider": "local",
            "concurrency": 7,
            "subtitleBatchSize": 4,
            "maxRetries": 1,
            "providers": {
                "openai": {"apiKey": "sk-file"},
                "local": {"name": "Local", "apiKey": "x", "baseURL": "http://localhost:1234/v1", "models": ["llama"]},
            },
        }), encoding="utf-8")

        config = TranslatorConfig.load(path)

        assert config.default_provider == "local"
        assert config.concurrency == 7
        assert config.batch_size == 4
        assert config.max_retries == 1
        assert config.providers["openai"].api_key == "sk-file"
        assert config.providers["openai"].models  # kept from the built-in entry
        assert config.providers["local"].is_custom
        assert config.validate() is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            TranslatorConfig.load(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            TranslatorConfig.load(path)


class TestApplyArgs:

    def test_overrides(self):
        args = argparse.Namespace(
            provider="anthropic", concurrency=9, batch_size=None, max_retries=0,
            layout="translation-top", api_key="sk-cli", base_url=None,
        )
        config = make_config().apply_args(args)
        assert config.default_provider == "anthropic"
        assert config.concurrency == 9
        assert config.max_retries == 0
        assert config.output_layout == "translation-top"
        assert config.providers["anthropic"].api_key == "sk-cli"
        assert config.validate() is None
