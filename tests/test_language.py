"""Tests for source-language detection."""

import pytest

from subtitle_translator.errors import ConfigurationError
from subtitle_translator.language import (
    clean_text,
    detect_from_entries,
    detect_language,
    language_name,
    resolve_source_language,
)

ENGLISH = [
    "The quick brown fox jumps over the lazy dog.",
    "We are going to the market this afternoon with my brother.",
    "Nobody knows where the children have been playing all day.",
]

SPANISH = [
    "El rápido zorro marrón salta sobre el perro perezoso.",
    "Vamos al mercado esta tarde con mi hermano y mis amigos.",
    "Nadie sabe dónde han estado jugando los niños todo el día.",
]


class TestCleanText:

    def test_strips_tags_digits_and_punctuation(self):
        assert clean_text("<i>Hello,</i> world 42!") == "Hello world"

    def test_keeps_non_latin_letters(self):
        assert clean_text("你好，世界") == "你好 世界"


class TestDetectLanguage:

    def test_english(self):
        assert detect_language(" ".join(ENGLISH)) == "en"

    def test_spanish(self):
        assert detect_language(" ".join(SPANISH)) == "es"

    def test_too_short(self):
        assert detect_language("Hi!") is None

    def test_only_noise(self):
        assert detect_language("123 ... <b>456</b> !!!") is None

    def test_from_entries_uses_leading_sample(self):
        texts = ENGLISH + SPANISH * 5
        assert detect_from_entries(texts, sample=3) == "en"


class TestResolveSourceLanguage:

    def test_explicit_value_passes_through(self):
        assert resolve_source_language("Japanese", ["irrelevant"]) == "Japanese"

    @pytest.mark.parametrize("value", ["auto", "AUTO", " Auto "])
    def test_auto_detects(self, value):
        assert resolve_source_language(value, SPANISH) == "Spanish"

    def test_auto_undetermined(self):
        with pytest.raises(ConfigurationError):
            resolve_source_language("auto", ["1", "..."])

    def test_language_name(self):
        assert language_name("zh-cn") == "Chinese"
        assert language_name("xx") == "xx"
