"""Terminal progress helpers with Rich-based rendering."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


@dataclass
class ProgressState:
    source: str
    pages: int = 0
    posts: int = 0
    last_page: int | None = None


class ProgressReporter:
    """Render page-by-page scrape progress and keep counters for the CLI.

    The number of result pages is unknown up front, so the row is a spinner
    with running counters rather than a bar.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self.state: ProgressState | None = None

    def start(self, source: str) -> None:
        self.state = ProgressState(source=source)
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console()
        if not self._console.is_terminal:
            # non-interactive output stays silent
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[source]:<8}", justify="left"),
            TextColumn("page [cyan]{task.fields[page]:>4}"),
            TextColumn("[green]{task.fields[posts]:>6} posts", justify="right"),
            TimeElapsedColumn(),
            console=self._console,
            transient=True,
            refresh_per_second=4,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "scrape", total=None, source=source, page="-", posts=0
        )

    def switch_source(self, source: str) -> None:
        if not self.state:
            raise RuntimeError("ProgressReporter.start must be called before switch_source")
        self.state.source = source
        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, source=source)

    def advance(self, page: int, page_posts: list, total: int) -> None:
        if not self.state:
            raise RuntimeError("ProgressReporter.start must be called before advance")
        self.state.pages += 1
        self.state.posts = total
        self.state.last_page = page
        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, page=page, posts=total)

    def close(self) -> None:
        if self._progress is not None:
            try:
                self._progress.stop()
            finally:
                self._progress.__exit__(None, None, None)
            self._progress = None
        self._task_id = None

    def summary(self) -> dict[str, int | str | None]:
        if not self.state:
            return {"source": None, "pages": 0, "posts": 0, "last_page": None}
        return {
            "source": self.state.source,
            "pages": self.state.pages,
            "posts": self.state.posts,
            "last_page": self.state.last_page,
        }


__all__ = ["ProgressReporter", "ProgressState"]
