"""SRT file parsing and saving utilities."""

from __future__ import annotations

import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Optional

from .config import OUTPUT_LAYOUTS, SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB

TIMECODE = r"\d{2}:\d{2}:\d{2}[,.]\d{3}"

BLOCK_PATTERN = re.compile(
    r"(\d+)\s*\n"                                      # 序号
    rf"\s*({TIMECODE})\s*-->\s*({TIMECODE})[^\n]*\n"   # 时间轴
    r"([\s\S]*?)(?=\n\s*\n\d+\s*\n|\n\s*\n\s*$|\s*$)"  # 文本内容
)

TAG_PATTERN = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class SrtEntry:
    """One subtitle cue: its number, timing and single-line text."""

    index: int
    start: str
    end: str
    text: str

    @property
    def timecode(self) -> str:
        return f"{self.start} --> {self.end}"

    def block(self, number: Optional[int] = None) -> str:
        """SRT block for this cue, numbered ``number`` (defaults to ``index``)."""
        return f"{self.index if number is None else number}\n{self.timecode}\n{self.text}\n\n"


def parse_srt(content: str) -> List[SrtEntry]:
    """
    Parse SRT file content into list of SrtEntry objects.

    Markup tags are stripped and multi-line text is joined into one line,
    so every entry's text is a plain fragment ready for translation.

    Args:
        content: Raw SRT file content as string

    Returns:
        List of parsed SrtEntry objects
    """
    if not content or not content.strip():
        return []

    # 预处理：标准化换行符，确保末尾有空行
    content = content.replace('\r\n', '\n').replace('\r', '\n')
    content = content.strip() + '\n\n'

    entries: List[SrtEntry] = []

    for match in BLOCK_PATTERN.finditer(content):
        idx, start, end, text = match.groups()
        text = TAG_PATTERN.sub("", text)
        clean_text = " ".join(line.strip() for line in text.strip().splitlines() if line.strip())
        if clean_text:
            entries.append(SrtEntry(int(idx), start.replace('.', ','), end.replace('.', ','), clean_text))

    if not entries:
        logger.warning("No valid SRT entries found in content")

    return entries


def validate_srt_file(path: Path) -> Optional[str]:
    """
    Check that ``path`` is a readable, non-empty subtitle file.

    Returns:
        Error message if invalid, None if valid
    """
    if not path.is_file():
        return f"File not found: {path}" if not path.exists() else f"Not a file: {path}"
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        return f"Invalid file extension: {path.suffix.lower()} (expected .srt)"

    size = path.stat().st_size
    if not 0 < size <= MAX_FILE_SIZE:
        return "File is empty" if size == 0 else f"File too large: {size / 1024 / 1024:.1f}MB (max 50MB)"
    return None


def compose_bilingual(original: str, translated: Optional[str], layout: str = "original-top") -> str:
    """
    Combine original and translated text for output.

    Args:
        original: Source text
        translated: Translation (falsy means untranslated)
        layout: "original-top", "translation-top" or "translation-only"
    """
    if layout not in OUTPUT_LAYOUTS:
        raise ValueError(f"Unknown layout: {layout}")

    if not translated:
        return original
    if layout == "translation-only":
        return translated
    if layout == "original-top":
        return f"{original}\n{translated}"
    return f"{translated}\n{original}"


def render_srt(entries: Sequence[SrtEntry]) -> str:
    """Render entries as SRT text, renumbered from 1."""
    return "".join(entry.block(number) for number, entry in enumerate(entries, 1))


def save_srt(entries: Sequence[SrtEntry], path: Path) -> None:
    """Write entries to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_srt(entries), encoding="utf-8")
    logger.info(f"Saved {len(entries)} entries to {path}")
