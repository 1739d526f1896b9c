"""Tests for ffmpeg progress line parsing and the progress tracker."""

from __future__ import annotations

import threading

import pytest

from captioner.render.progress import ProgressTracker, parse_progress_time


class TestParseProgressTime:
    def test_status_line(self, progress_lines):
        assert parse_progress_time(progress_lines[1]) == 5000

    def test_fraction_digits(self):
        assert parse_progress_time("time=01:02:03.5") == 3723500

    def test_no_fraction(self):
        assert parse_progress_time("time=00:00:07 bitrate=N/A") == 7000

    @pytest.mark.parametrize("line", ["time=N/A", "Stream mapping:", "", "time=-00:00:00.02"])
    def test_ignored(self, line):
        assert parse_progress_time(line) is None


class TestProgressTracker:
    def test_fractions_reported(self, progress_lines):
        seen = []
        tracker = ProgressTracker(10000, seen.append)
        for line in progress_lines:
            tracker.feed_line(line)
        assert seen == [0.25, 0.5, 1.0]

    def test_clamped_to_one(self):
        seen = []
        tracker = ProgressTracker(1000, seen.append)
        tracker.feed_line("time=00:00:05.00")
        assert seen == [1.0]

    def test_regressions_dropped(self):
        seen = []
        tracker = ProgressTracker(10000, seen.append)
        tracker.feed_line("time=00:00:05.00")
        tracker.feed_line("time=00:00:04.00")
        tracker.feed_line("time=00:00:06.00")
        assert seen == [0.5, 0.6]
        assert tracker.last_progress == 0.6

    def test_completion_never_overtaken_by_late_line(self):
        seen = []
        finisher = []

        def slow_sink(fraction):
            if not finisher:
                # Completion arrives from the waiting thread mid-delivery.
                thread = threading.Thread(target=tracker.complete)
                finisher.append(thread)
                thread.start()
                thread.join(timeout=0.2)
            seen.append(fraction)

        tracker = ProgressTracker(10000, slow_sink)
        tracker.feed_line("time=00:00:03.00")
        finisher[0].join()
        assert seen == [0.3, 1.0]

    def test_unknown_duration_only_completes(self, progress_lines):
        seen = []
        tracker = ProgressTracker(0, seen.append)
        for line in progress_lines:
            assert tracker.feed_line(line) is None
        tracker.complete()
        assert seen == [1.0]

    def test_sink_errors_do_not_propagate(self):
        def broken(_fraction):
            raise RuntimeError("ui went away")

        tracker = ProgressTracker(10000, broken)
        assert tracker.feed_line("time=00:00:05.00") == 0.5
        tracker.complete()

    def test_no_sink(self):
        tracker = ProgressTracker(10000)
        assert tracker.feed_line("time=00:00:02.50") == 0.25
