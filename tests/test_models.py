"""Tests for pipeline data models."""

import pytest
from subtitle_translator.models import (
    CANCELLED_MARKER,
    PARSE_ERROR_MARKER,
    TranslationUnit,
    failure_marker,
    is_marker,
    make_batches,
    missing_item_marker,
)


class TestMakeBatches:

    def test_partition(self):
        batches = make_batches(["a", "b", "c", "d", "e"], 2)
        assert [b.texts for b in batches] == [["a", "b"], ["c", "d"], ["e"]]
        assert [b.start_index for b in batches] == [0, 2, 4]

    def test_absolute_indices(self):
        batches = make_batches(["a", "b", "c"], 2)
        assert [f.index for f in batches[1].fragments] == [2]

    def test_label(self):
        batches = make_batches(["a", "b", "c"], 2)
        assert batches[0].label == "Fragments 1-2"
        assert batches[1].label == "Fragments 3-3"

    def test_empty(self):
        assert make_batches([], 5) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            make_batches(["a"], 0)


class TestMarkers:

    def test_known_markers(self):
        assert is_marker(PARSE_ERROR_MARKER)
        assert is_marker(CANCELLED_MARKER)
        assert is_marker(failure_marker("timeout"))
        assert is_marker(missing_item_marker(2))

    def test_regular_text(self):
        assert not is_marker("Hola")

    def test_unit_ok(self):
        unit = TranslationUnit("Hello", "Hola", "en", "es")
        assert unit.ok
        failed = TranslationUnit("Hello", failure_marker("boom"), "en", "es")
        assert not failed.ok

    def test_unit_immutable(self):
        unit = TranslationUnit("Hello", "Hola", "en", "es")
        with pytest.raises(AttributeError):
            unit.translated_text = "x"
