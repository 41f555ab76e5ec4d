"""Data models for the translation pipeline."""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence, Tuple


# 结果占位标记
PARSE_ERROR_MARKER = "[Translation error: Unable to parse response]"
CANCELLED_MARKER = "[Translation cancelled]"


def failure_marker(reason: str) -> str:
    """Marker written for every fragment of a batch that exhausted its retries."""
    return f"[Translation failed: {reason}]"


def missing_item_marker(position: int) -> str:
    """Marker for an empty item in an otherwise parsed response (1-based)."""
    return f"[Translation failed: No response for item {position}]"


def is_marker(text: str) -> bool:
    """Check whether a translated text is one of the synthetic markers."""
    return text.startswith(("[Translation failed:", "[Translation error:")) or text == CANCELLED_MARKER


@dataclass(frozen=True)
class Fragment:
    """One source text and its position in the caller's sequence."""

    index: int
    text: str


@dataclass(frozen=True)
class Batch:
    """A contiguous slice of fragments translated in one model call."""

    fragments: Tuple[Fragment, ...]
    start_index: int

    @property
    def texts(self) -> List[str]:
        return [f.text for f in self.fragments]

    @property
    def end_index(self) -> int:
        """Exclusive end index."""
        return self.start_index + len(self.fragments)

    @property
    def label(self) -> str:
        """Human-readable range, 1-based and inclusive."""
        return f"Fragments {self.start_index + 1}-{self.end_index}"

    def __len__(self) -> int:
        return len(self.fragments)


@dataclass(frozen=True)
class TranslationUnit:
    """Result record pairing original and translated text for one fragment."""

    original_text: str
    translated_text: str
    source_language: str
    target_language: str

    @property
    def ok(self) -> bool:
        return not is_marker(self.translated_text)


@dataclass
class RetryState:
    """Attempt counter for one batch, alive until the batch is terminal."""

    batch: Batch
    attempt: int = 0


def make_batches(texts: Sequence[str], batch_size: int) -> List[Batch]:
    """
    Partition texts into batches of ``batch_size`` (last may be shorter).

    Args:
        texts: Ordered fragment texts
        batch_size: Maximum fragments per batch

    Returns:
        Batches in submission order, carrying absolute indices
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    fragments = [Fragment(i, text) for i, text in enumerate(texts)]
    return [
        Batch(tuple(fragments[i:i + batch_size]), i)
        for i in range(0, len(fragments), batch_size)
    ]
