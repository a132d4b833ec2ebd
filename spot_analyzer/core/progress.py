"""
Terminal progress display for spot-analyzer using the Rich library.

Two displays are used by the analyze command:
    - spinner(): shown while the track listing is being fetched
    - AnalysisProgressBar: one step per track, with analyzed/cached/error
      counters; result lines are printed above the bar

Usage:
    from spot_analyzer.core.progress import AnalysisProgressBar, spinner

    with spinner("Loading playlist"):
        tracks = client.list_tracks(target)

    with AnalysisProgressBar(total=len(tracks)) as progress:
        for track in tracks:
            result, cached = analyzer.analyze(track)
            progress.update(cached=cached, failed=result.is_error)
            progress.log(format_line(track, result))
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from rich import get_console
from rich.console import JustifyMethod, OverflowMethod
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
)
from rich.style import StyleType
from rich.text import Text
from rich.theme import Theme


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(30,215,96)",  # Spotify green
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(30,215,96)",
    "progress.percentage": "white",
})


@contextmanager
def spinner(message: str) -> Iterator[None]:
    """
    Show an animated spinner with a message while the block runs.

    The spinner animates from a background thread that only writes to the
    terminal; it is stopped before the block's result is used.
    """
    console = get_console()
    with console.status(f"[white]{message}...", spinner="dots"):
        yield


class SizedTextColumn(ProgressColumn):
    """Text column truncated (with ellipsis) to a fixed width."""

    def __init__(
        self,
        text_format: str,
        style: StyleType = "none",
        justify: JustifyMethod = "left",
        overflow: Optional[OverflowMethod] = None,
        width: int = 20,
    ) -> None:
        self.text_format = text_format
        self.style = style
        self.justify: JustifyMethod = justify
        self.overflow: Optional[OverflowMethod] = overflow
        self.width = width
        super().__init__()

    def render(self, task: Task) -> Text:
        text = Text.from_markup(
            self.text_format.format(task=task), style=self.style, justify=self.justify
        )
        text.truncate(max_width=self.width, overflow=self.overflow, pad=True)
        return text


class AnalysisProgressBar:
    """
    Progress bar for the per-track analysis loop.

    Displays:
    - Description (e.g., "Analyzing")
    - Status: ✓ analyzed, ↺ from cache, ✗ errors
    - Progress bar
    - Percentage

    Example:
        Analyzing       ✓ 12  ↺ 30  ✗ 1        ━━━━━━━━━━━━━━━━━  43%
    """

    def __init__(self, total: int, description: str = "Analyzing", status_width: int = 30):
        """
        Args:
            total: Number of tracks to analyze.
            description: Label shown on the left.
            status_width: Width of the counters column.
        """
        self.total = total
        self.description = description
        self.completed = 0
        self.analyzed = 0
        self.cached = 0
        self.errors = 0

        self.console = get_console()

        self.progress = Progress(
            SizedTextColumn("[white]{task.description}", overflow="ellipsis", width=15),
            SizedTextColumn("{task.fields[status]}", width=status_width, style="white"),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            transient=False,
            refresh_per_second=10,
        )

        self.task_id: Optional[TaskID] = None
        self._started = False

    def __enter__(self) -> "AnalysisProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.console.push_theme(PROGRESS_THEME)
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=self.description,
                total=self.total,
                status=self._get_status_text(),
            )
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self.console.pop_theme()
            self._started = False

    def log(self, message: str) -> None:
        """Print a line above the progress bar. Rich markup is rendered."""
        self.progress.console.print(message, highlight=False)

    def update(self, cached: bool, failed: bool) -> None:
        """
        Count one processed track.

        Args:
            cached: The result came from the cache.
            failed: The result is an error result.
        """
        self.completed += 1
        if failed:
            self.errors += 1
        elif cached:
            self.cached += 1
        else:
            self.analyzed += 1

        if self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=self.completed,
                status=self._get_status_text(),
            )

    def _get_status_text(self) -> str:
        parts = [
            f"[green]✓ {self.analyzed}[/green]",
            f"[cyan]↺ {self.cached}[/cyan]",
        ]
        if self.errors > 0:
            parts.append(f"[red]✗ {self.errors}[/red]")
        return "  ".join(parts)
