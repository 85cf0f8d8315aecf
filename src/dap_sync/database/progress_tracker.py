"""Progress tracking for device sync passes.

Callback-based: the executor reports units of work to a ``ProgressTracker``,
which turns them into ``ProgressUpdate`` objects for whoever is listening (the
orchestrator's status snapshot, or a console reporter).
"""

import logging
import time
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)

logger = logging.getLogger(__name__)


class ProgressPhase(str, Enum):
    """Phases of a sync pass."""

    PREPARING = "preparing"
    READING_CHANGELOG = "reading_changelog"
    REMOVING_ORPHANS = "removing_orphans"
    COPYING = "copying"
    COPYING_ARTWORK = "copying_artwork"
    WRITING_CHANGELOG = "writing_changelog"
    EXPORTING_PLAYLISTS = "exporting_playlists"
    INSTALLING_THEMES = "installing_themes"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class ProgressUpdate:
    """Progress update information."""

    phase: ProgressPhase
    current: int
    total: int
    message: str = ""
    metadata: Dict[str, Any] = dataclass_field(default_factory=dict)
    elapsed_time: float = 0.0
    estimated_remaining: Optional[float] = None

    @property
    def fraction(self) -> float:
        """Completed share of the phase in [0, 1]."""
        if self.total <= 0:
            return 0.0
        return min(self.current / self.total, 1.0)

    @property
    def percentage(self) -> float:
        """Calculate progress percentage."""
        return self.fraction * 100.0

    @property
    def is_complete(self) -> bool:
        """Check if phase is complete."""
        return self.current >= self.total

    def __str__(self) -> str:
        """String representation of progress."""
        parts = [
            f"[{self.phase.value}]",
            f"{self.current}/{self.total}",
            f"({self.percentage:.1f}%)",
        ]
        if self.message:
            parts.append(f"- {self.message}")
        if self.estimated_remaining:
            parts.append(f"(~{self.estimated_remaining:.1f}s remaining)")
        return " ".join(parts)


# Type alias for progress callback function
ProgressCallback = Callable[[ProgressUpdate], None]


class ProgressTracker:
    """Tracks progress of one phase at a time and notifies a callback."""

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        update_interval: float = 0.0,
    ):
        """Initialize progress tracker.

        Args:
            callback: Function to call with progress updates
            update_interval: Minimum time between intermediate updates (seconds);
                phase start and completion are always reported
        """
        self.callback = callback
        self.update_interval = update_interval
        self._last_update_time = 0.0
        self._start_time = 0.0
        self._current_phase: Optional[ProgressPhase] = None
        self._phase_start_time = 0.0
        self._current = 0
        self._total = 0
        self._phase_history: Dict[ProgressPhase, float] = {}

    @property
    def current_phase(self) -> Optional[ProgressPhase]:
        """Phase currently being tracked."""
        return self._current_phase

    def start(self, phase: ProgressPhase, total: int, message: str = "") -> None:
        """Start tracking a new phase.

        Args:
            phase: Phase being started
            total: Total units of work in the phase
            message: Optional descriptive message
        """
        self._current_phase = phase
        self._phase_start_time = time.monotonic()
        self._current = 0
        self._total = total

        if self._start_time == 0.0:
            self._start_time = self._phase_start_time

        self._notify(message)

    def update(
        self,
        current: Optional[int] = None,
        message: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Update progress.

        Progress never moves backwards within a phase.

        Args:
            current: Units completed so far (if None, increments by 1)
            message: Optional progress message
            metadata: Optional metadata dictionary
        """
        if current is None:
            self._current += 1
        else:
            self._current = max(self._current, current)

        now = time.monotonic()
        if self.update_interval and now - self._last_update_time < self.update_interval:
            return

        self._notify(message, metadata)

    def complete(self, message: str = "") -> None:
        """Mark current phase as complete."""
        if self._current_phase:
            duration = time.monotonic() - self._phase_start_time
            self._phase_history[self._current_phase] = duration

        self._current = self._total
        self._notify(message)

    def error(self, message: str) -> None:
        """Report an error in the current phase."""
        if self._current_phase:
            self._notify(message, phase=ProgressPhase.ERROR)

    def _notify(
        self,
        message: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        phase: Optional[ProgressPhase] = None,
    ) -> None:
        if not self.callback:
            return

        now = time.monotonic()
        self._last_update_time = now
        elapsed = now - self._phase_start_time

        estimated_remaining = None
        if self._total > 0 and self._current > 0 and elapsed > 0:
            rate = self._current / elapsed
            estimated_remaining = (self._total - self._current) / rate

        update = ProgressUpdate(
            phase=phase or self._current_phase or ProgressPhase.PREPARING,
            current=self._current,
            total=self._total,
            message=message,
            metadata=metadata or {},
            elapsed_time=elapsed,
            estimated_remaining=estimated_remaining,
        )

        try:
            self.callback(update)
        except Exception as e:
            logger.error("Error in progress callback: %s", e)

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of progress tracking."""
        total_time = time.monotonic() - self._start_time if self._start_time else 0
        return {
            "total_time": total_time,
            "phase_history": {
                phase.value: duration for phase, duration in self._phase_history.items()
            },
            "current_phase": (
                self._current_phase.value if self._current_phase else None
            ),
            "progress": f"{self._current}/{self._total}",
        }


class ConsoleProgressReporter:
    """Prints one line per phase change, plus per-update lines when verbose."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        """Initialize console reporter.

        Args:
            console: Rich console to print to
            verbose: Whether to print every update
        """
        self.console = console or Console()
        self.verbose = verbose
        self._last_phase: Optional[ProgressPhase] = None

    def __call__(self, update: ProgressUpdate) -> None:
        """Handle progress update."""
        if update.phase != self._last_phase:
            self.console.print(f"[bold blue]▶ {update.phase.value}[/bold blue]")
            self._last_phase = update.phase

        if self.verbose or (update.is_complete and update.total):
            self.console.print(f"  {update}", markup=False)


class RichProgressReporter:
    """Renders one rich progress bar per phase."""

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the progress display (call ``close`` when done)."""
        self.progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeRemainingColumn(),
            TextColumn("{task.fields[message]}"),
            console=console,
            transient=False,
        )
        self._tasks: Dict[ProgressPhase, TaskID] = {}
        self.progress.start()

    def __call__(self, update: ProgressUpdate) -> None:
        """Handle progress update."""
        if update.phase == ProgressPhase.ERROR:
            self.progress.console.print(f"[red]✗ {update.message}[/red]")
            return

        task_id = self._tasks.get(update.phase)
        if task_id is None:
            task_id = self.progress.add_task(
                update.phase.value.replace("_", " "),
                total=max(update.total, 1),
                message="",
            )
            self._tasks[update.phase] = task_id

        completed = update.current if update.total else int(update.is_complete)
        self.progress.update(task_id, completed=completed, message=update.message)

    def close(self) -> None:
        """Stop the live display."""
        self.progress.stop()
