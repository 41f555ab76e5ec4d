"""Tests for progress reporting."""

from subtitle_translator.models import make_batches
from subtitle_translator.progress import Progress, ProgressReporter


class TestProgress:

    def test_percent(self):
        assert Progress(total=4, completed=1).percent == 25.0
        assert Progress(total=0).percent == 100.0

    def test_succeeded(self):
        assert Progress(total=5, completed=4, failed=1).succeeded == 3


class TestProgressReporter:

    def test_callback_on_every_change(self):
        seen = []
        batches = make_batches(["a", "b", "c"], 2)
        reporter = ProgressReporter(3, seen.append)

        reporter.report()
        reporter.start(batches[0])
        reporter.succeed(batches[0])
        reporter.start(batches[1])
        reporter.fail(batches[1])

        assert [(p.completed, p.failed) for p in seen] == [(0, 0), (0, 0), (2, 0), (2, 0), (3, 1)]
        assert seen[1].current == "Fragments 1-2"
        assert seen[0].current is None
        assert seen[-1].is_complete
        assert reporter.failed_indices == {2}
        assert seen[-1].failed_indices == {2}
        assert seen[2].failed_indices == frozenset()

    def test_cancel_counts_as_failed(self):
        seen = []
        batch = make_batches(["a", "b"], 2)[0]
        reporter = ProgressReporter(2, seen.append)

        reporter.cancel(batch)

        assert seen[-1] == Progress(
            total=2, completed=2, failed=2, current="Fragments 1-2", cancelled=True,
            failed_indices=frozenset({0, 1}),
        )

    def test_no_callback(self):
        reporter = ProgressReporter(1)
        assert reporter.report() == Progress(total=1)
