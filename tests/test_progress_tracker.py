"""Tests for progress tracker."""

import io
import time
from unittest.mock import Mock

from rich.console import Console

from dap_sync.database.progress_tracker import (
    ConsoleProgressReporter,
    ProgressPhase,
    ProgressTracker,
    ProgressUpdate,
    RichProgressReporter,
)


def _console() -> Console:
    return Console(file=io.StringIO(), force_terminal=False, width=120)


class TestProgressUpdate:
    """Test ProgressUpdate dataclass."""

    def test_initialization(self):
        """Test ProgressUpdate initialization with defaults."""
        update = ProgressUpdate(phase=ProgressPhase.COPYING, current=5, total=10)
        assert update.phase == ProgressPhase.COPYING
        assert update.message == ""
        assert update.metadata == {}
        assert update.elapsed_time == 0.0
        assert update.estimated_remaining is None

    def test_fraction_and_percentage(self):
        """Test fraction and percentage calculation."""
        update = ProgressUpdate(phase=ProgressPhase.COPYING, current=5, total=10)
        assert update.fraction == 0.5
        assert update.percentage == 50.0

    def test_fraction_zero_total(self):
        """Test fraction with zero total."""
        update = ProgressUpdate(phase=ProgressPhase.COPYING, current=5, total=0)
        assert update.fraction == 0.0

    def test_fraction_capped(self):
        """Test fraction never exceeds one."""
        update = ProgressUpdate(phase=ProgressPhase.COPYING, current=11, total=10)
        assert update.fraction == 1.0
        assert update.is_complete is True

    def test_is_complete_false(self):
        """Test is_complete when current less than total."""
        update = ProgressUpdate(phase=ProgressPhase.COPYING, current=5, total=10)
        assert update.is_complete is False

    def test_str(self):
        """Test string representation."""
        update = ProgressUpdate(
            phase=ProgressPhase.COPYING,
            current=5,
            total=10,
            message="Music/TOOL/Opiate/01 - Sweat.flac",
            estimated_remaining=5.5,
        )
        result = str(update)
        assert "[copying]" in result
        assert "5/10" in result
        assert "50.0%" in result
        assert "01 - Sweat.flac" in result
        assert "5.5s remaining" in result


class TestProgressTracker:
    """Test ProgressTracker class."""

    def test_initialization_with_defaults(self):
        """Test ProgressTracker initialization with defaults."""
        tracker = ProgressTracker()
        assert tracker.callback is None
        assert tracker.update_interval == 0.0
        assert tracker.current_phase is None

    def test_start_phase(self):
        """Test starting a new phase notifies the callback."""
        callback = Mock()
        tracker = ProgressTracker(callback=callback)

        tracker.start(ProgressPhase.COPYING, total=10, message="Copying 10 tracks")

        assert tracker.current_phase == ProgressPhase.COPYING
        callback.assert_called_once()
        update = callback.call_args[0][0]
        assert update.phase == ProgressPhase.COPYING
        assert update.current == 0
        assert update.total == 10
        assert update.message == "Copying 10 tracks"

    def test_update_increment(self):
        """Test updating progress by incrementing."""
        callback = Mock()
        tracker = ProgressTracker(callback=callback)
        tracker.start(ProgressPhase.REMOVING_ORPHANS, total=3)

        tracker.update()
        tracker.update()

        assert callback.call_args[0][0].current == 2

    def test_update_never_moves_backwards(self):
        """Test an explicit lower value does not reduce progress."""
        callback = Mock()
        tracker = ProgressTracker(callback=callback)
        tracker.start(ProgressPhase.COPYING, total=10)

        tracker.update(current=6)
        tracker.update(current=4)

        assert callback.call_args[0][0].current == 6

    def test_update_with_metadata(self):
        """Test updating progress with metadata."""
        callback = Mock()
        tracker = ProgressTracker(callback=callback)
        tracker.start(ProgressPhase.COPYING, total=10)

        tracker.update(current=1, metadata={"track_id": 7})

        assert callback.call_args[0][0].metadata == {"track_id": 7}

    def test_update_throttling(self):
        """Test intermediate updates are throttled by the interval."""
        callback = Mock()
        tracker = ProgressTracker(callback=callback, update_interval=60.0)
        tracker.start(ProgressPhase.COPYING, total=10)
        callback.reset_mock()

        tracker.update(current=1)
        tracker.update(current=2)

        assert callback.call_count == 0

    def test_complete_always_notifies(self):
        """Test completion is reported even when throttled."""
        callback = Mock()
        tracker = ProgressTracker(callback=callback, update_interval=60.0)
        tracker.start(ProgressPhase.COPYING, total=10)
        callback.reset_mock()

        tracker.complete(message="Copied 10, failed 0")

        update = callback.call_args[0][0]
        assert update.current == 10
        assert update.is_complete is True
        assert update.message == "Copied 10, failed 0"

    def test_error_reports_error_phase(self):
        """Test error reporting."""
        callback = Mock()
        tracker = ProgressTracker(callback=callback)
        tracker.start(ProgressPhase.COPYING, total=10)

        tracker.error("Copy failed")

        update = callback.call_args[0][0]
        assert update.phase == ProgressPhase.ERROR
        assert update.message == "Copy failed"

    def test_callback_exception_is_swallowed(self):
        """Test that callback exceptions do not break tracking."""
        tracker = ProgressTracker(callback=Mock(side_effect=Exception("boom")))
        tracker.start(ProgressPhase.COPYING, total=10)
        tracker.update()
        tracker.complete()

    def test_estimated_remaining(self):
        """Test estimated remaining time from the phase rate."""
        callback = Mock()
        tracker = ProgressTracker(callback=callback)
        tracker.start(ProgressPhase.COPYING, total=10)

        tracker._phase_start_time = time.monotonic() - 2.0
        tracker.update(current=5)

        remaining = callback.call_args[0][0].estimated_remaining
        assert remaining is not None
        assert 1.5 < remaining < 2.5

    def test_get_summary(self):
        """Test getting progress summary."""
        tracker = ProgressTracker()
        tracker.start(ProgressPhase.COPYING, total=4)
        tracker.complete()

        summary = tracker.get_summary()

        assert "copying" in summary["phase_history"]
        assert summary["current_phase"] == "copying"
        assert summary["progress"] == "4/4"

    def test_get_summary_not_started(self):
        """Test summary before any phase started."""
        summary = ProgressTracker().get_summary()
        assert summary["total_time"] == 0
        assert summary["current_phase"] is None


class TestConsoleProgressReporter:
    """Test ConsoleProgressReporter class."""

    def test_prints_phase_change_once(self):
        """Test a phase header is printed once per phase."""
        console = _console()
        reporter = ConsoleProgressReporter(console=console)

        reporter(ProgressUpdate(phase=ProgressPhase.COPYING, current=0, total=2))
        reporter(ProgressUpdate(phase=ProgressPhase.COPYING, current=1, total=2))

        assert console.file.getvalue().count("copying") == 1

    def test_verbose_prints_every_update(self):
        """Test verbose mode prints update lines."""
        console = _console()
        reporter = ConsoleProgressReporter(console=console, verbose=True)

        reporter(
            ProgressUpdate(
                phase=ProgressPhase.COPYING, current=1, total=2, message="a.flac"
            )
        )

        assert "a.flac" in console.file.getvalue()


class TestRichProgressReporter:
    """Test RichProgressReporter class."""

    def test_one_task_per_phase(self):
        """Test updates of the same phase share one task."""
        reporter = RichProgressReporter(console=_console())
        try:
            reporter(ProgressUpdate(phase=ProgressPhase.COPYING, current=0, total=3))
            reporter(ProgressUpdate(phase=ProgressPhase.COPYING, current=2, total=3))
            reporter(
                ProgressUpdate(phase=ProgressPhase.COPYING_ARTWORK, current=0, total=1)
            )
        finally:
            reporter.close()

        assert len(reporter.progress.tasks) == 2
        copying = reporter.progress.tasks[0]
        assert copying.completed == 2

    def test_error_prints_message(self):
        """Test error updates are printed instead of tracked."""
        console = _console()
        reporter = RichProgressReporter(console=console)
        try:
            reporter(
                ProgressUpdate(
                    phase=ProgressPhase.ERROR, current=0, total=0, message="Disk full"
                )
            )
        finally:
            reporter.close()

        assert "Disk full" in console.file.getvalue()
        assert reporter.progress.tasks == []
