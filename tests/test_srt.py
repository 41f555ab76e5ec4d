"""Tests for SRT parsing, saving and bilingual composition."""

import tempfile
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from subtitle_translator.srt import (
    SrtEntry,
    compose_bilingual,
    parse_srt,
    render_srt,
    save_srt,
    validate_srt_file,
)


class TestSrtEntry:

    def test_timecode_property(self):
        entry = SrtEntry(1, "00:00:01,000", "00:00:03,500", "Test")
        assert entry.timecode == "00:00:01,000 --> 00:00:03,500"

    def test_block(self):
        entry = SrtEntry(1, "00:00:01,000", "00:00:03,500", "Hello")
        assert entry.block() == "1\n00:00:01,000 --> 00:00:03,500\nHello\n\n"
        assert entry.block(7).startswith("7\n")

    def test_frozen(self):
        entry = SrtEntry(1, "00:00:01,000", "00:00:03,500", "Hello")
        with pytest.raises(FrozenInstanceError):
            entry.text = "World"


class TestParseSrt:

    def test_parse_simple(self):
        content = """1
00:00:01,000 --> 00:00:03,500
Hello world

2
00:00:04,000 --> 00:00:06,500
Goodbye world

"""
        entries = parse_srt(content)
        assert len(entries) == 2
        assert entries[0].text == "Hello world"
        assert entries[1].text == "Goodbye world"

    def test_parse_multiline(self):
        content = """1
00:00:01,000 --> 00:00:03,500
Line one
Line two

"""
        entries = parse_srt(content)
        assert entries[0].text == "Line one Line two"

    def test_strips_markup(self):
        content = "1\n00:00:01,000 --> 00:00:03,500\n<i>Hello</i> <b>there</b>\n\n"
        entries = parse_srt(content)
        assert entries[0].text == "Hello there"

    def test_dot_millis_and_position_suffix(self):
        content = "1\n00:00:01.000 --> 00:00:03.500 X1:10 X2:20\nHello\n\n"
        entries = parse_srt(content)
        assert entries[0].start == "00:00:01,000"
        assert entries[0].end == "00:00:03,500"

    def test_parse_empty(self):
        assert parse_srt("") == []
        assert parse_srt("   \n\n  ") == []

    def test_parse_no_trailing_newline(self):
        content = """1
00:00:01,000 --> 00:00:03,500
First

2
00:00:04,000 --> 00:00:06,500
Last entry"""
        entries = parse_srt(content)
        assert len(entries) == 2
        assert entries[1].text == "Last entry"

    def test_parse_windows_line_endings(self):
        content = "1\r\n00:00:01,000 --> 00:00:03,500\r\nHello\r\n\r\n"
        entries = parse_srt(content)
        assert len(entries) == 1
        assert entries[0].text == "Hello"


class TestValidateSrtFile:

    def test_nonexistent(self):
        error = validate_srt_file(Path("/nonexistent/file.srt"))
        assert "not found" in error

    def test_wrong_extension(self):
        with tempfile.NamedTemporaryFile(suffix=".txt") as f:
            error = validate_srt_file(Path(f.name))
            assert "Invalid file extension" in error

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.srt"
        path.write_text("")
        assert validate_srt_file(path) == "File is empty"

    def test_valid_file(self, tmp_path):
        path = tmp_path / "ok.srt"
        path.write_bytes(b"test content")
        assert validate_srt_file(path) is None


class TestComposeBilingual:

    def test_original_top(self):
        assert compose_bilingual("Hello", "你好") == "Hello\n你好"

    def test_translation_top(self):
        assert compose_bilingual("Hello", "你好", "translation-top") == "你好\nHello"

    def test_translation_only(self):
        assert compose_bilingual("Hello", "你好", "translation-only") == "你好"

    def test_missing_translation_keeps_original(self):
        assert compose_bilingual("Hello", None, "translation-only") == "Hello"
        assert compose_bilingual("Hello", "", "original-top") == "Hello"

    def test_unknown_layout(self):
        with pytest.raises(ValueError):
            compose_bilingual("Hello", "你好", "side-by-side")


class TestSaveSrt:

    def test_save_and_reload(self, tmp_path):
        entries = [
            SrtEntry(1, "00:00:01,000", "00:00:03,500", "Hello"),
            SrtEntry(5, "00:00:04,000", "00:00:06,500", "World"),
        ]
        path = tmp_path / "nested" / "out.srt"

        save_srt(entries, path)
        reloaded = parse_srt(path.read_text(encoding="utf-8"))

        assert len(reloaded) == 2
        assert reloaded[0].text == "Hello"
        assert reloaded[1].index == 2  # renumbered

    def test_render_renumbers(self):
        entries = [
            SrtEntry(3, "00:00:01,000", "00:00:02,000", "A"),
            SrtEntry(9, "00:00:03,000", "00:00:04,000", "B"),
        ]
        assert render_srt(entries) == (
            "1\n00:00:01,000 --> 00:00:02,000\nA\n\n"
            "2\n00:00:03,000 --> 00:00:04,000\nB\n\n"
        )


class TestValidateSrtFileLimits:

    def test_directory(self, tmp_path):
        directory = tmp_path / "clips.srt"
        directory.mkdir()
        assert "Not a file" in validate_srt_file(directory)

    def test_too_large(self, tmp_path, monkeypatch):
        path = tmp_path / "big.srt"
        path.write_bytes(b"abc")
        monkeypatch.setattr("subtitle_translator.srt.MAX_FILE_SIZE", 2)
        assert "File too large" in validate_srt_file(path)
