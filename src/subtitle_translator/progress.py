"""Progress aggregation and reporting."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .models import Batch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Progress:
    """
    A point-in-time snapshot of a translation run.

    ``completed`` counts fragments whose unit is final (success or terminal
    failure); ``failed`` counts only terminal failures. Under concurrency
    ``current`` may jump around and is meant for display only.
    """

    total: int
    completed: int = 0
    failed: int = 0
    current: Optional[str] = None
    cancelled: bool = False
    # 终态失败（含取消）的片段下标
    failed_indices: frozenset[int] = frozenset()

    @property
    def percent(self) -> float:
        """Completion percentage (0-100)."""
        if self.total == 0:
            return 100.0
        return self.completed * 100.0 / self.total

    @property
    def succeeded(self) -> int:
        return self.completed - self.failed

    @property
    def is_complete(self) -> bool:
        return self.completed >= self.total


ProgressCallback = Callable[[Progress], None]


class ProgressReporter:
    """
    Counts finished fragments and pushes a snapshot after every change.

    Callbacks run synchronously and are not coalesced; consumers should treat
    them as a stream of snapshots and debounce for display if needed.
    """

    def __init__(self, total: int, callback: Optional[ProgressCallback] = None) -> None:
        self.total = total
        self.callback = callback
        self.completed = 0
        self.failed = 0
        self.cancelled = False
        self._failed_indices: set[int] = set()

    @property
    def failed_indices(self) -> frozenset[int]:
        return frozenset(self._failed_indices)

    def snapshot(self, current: Optional[str] = None) -> Progress:
        return Progress(
            total=self.total,
            completed=self.completed,
            failed=self.failed,
            current=current,
            cancelled=self.cancelled,
            failed_indices=self.failed_indices,
        )

    def report(self, current: Optional[str] = None) -> Progress:
        """Emit the current state to the callback and return it."""
        progress = self.snapshot(current)
        if self.callback is not None:
            self.callback(progress)
        return progress

    def start(self, batch: Batch) -> None:
        """Batch entered an attempt."""
        self.report(batch.label)

    def succeed(self, batch: Batch) -> None:
        self.completed += len(batch)
        self.report(batch.label)

    def fail(self, batch: Batch) -> None:
        """Batch reached a terminal failure (retries exhausted)."""
        self.completed += len(batch)
        self.failed += len(batch)
        self._failed_indices.update(f.index for f in batch.fragments)
        self.report(batch.label)

    def cancel(self, batch: Batch) -> None:
        """Batch was cancelled; its fragments count as failed."""
        self.cancelled = True
        self.fail(batch)
