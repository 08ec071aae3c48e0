"""Typer CLI entrypoint for the harvester."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, ScrapeConfig
from .infra import SQLiteManager
from .logging_conf import ERROR_LOG, HARVESTER_LOG, configure_logging, default_log_dir, tail_log
from .orchestrator import MissingIdentityError, Orchestrator, RunReport
from .ui import ProgressReporter

app = typer.Typer(
    help="Harvest every post an identity made on a FoolFuuka archive.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
progress_app = typer.Typer(
    name="progress",
    help="Inspect or clear saved scrape checkpoints.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Log viewing commands.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

USAGE_HINT = 'Usage: fuuka-harvester run --username "Name" --tripcode "!Trip" --boards x'


@dataclass
class AppState:
    repository: ConfigRepository
    orchestrator: Orchestrator
    storage: SQLiteManager


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    global_config = repository.load_global_config()
    configure_logging(verbose=verbose)
    storage = SQLiteManager()
    orchestrator = Orchestrator(global_config, storage=storage)
    return AppState(repository=repository, orchestrator=orchestrator, storage=storage)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _render_summary(report: RunReport) -> Table:
    summary = report.summary
    table = Table(title="Scrape Summary", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Total posts", str(summary.total_posts))
    table.add_row("Threads", str(summary.threads))
    table.add_row("Boards", ", ".join(summary.boards) or "unknown")
    if summary.first_date:
        table.add_row("Date range", f"{summary.first_date} → {summary.last_date}")
    table.add_row("Source", report.scrape.source + (" (fallback)" if report.fallback_used else ""))
    table.add_row("Final state", report.scrape.state.value)
    if report.scrape.skipped_pages:
        table.add_row("Skipped pages", ", ".join(str(p) for p in report.scrape.skipped_pages))
    return table


app.add_typer(progress_app, name="progress")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Scrape, normalize and export all posts for an identity.")
def run_command(
    ctx: typer.Context,
    profile: Optional[Path] = typer.Option(
        None, "--profile", help="YAML/JSON run profile; flags below override it."
    ),
    username: Optional[str] = typer.Option(None, "--username", help="Poster name to search."),
    tripcode: Optional[str] = typer.Option(None, "--tripcode", help="Tripcode, e.g. !Abc123."),
    boards: Optional[str] = typer.Option(
        None, "--boards", help="Dot-delimited board codes (pol.x.tv); empty for all boards."
    ),
    delay_ms: Optional[int] = typer.Option(None, "--delay-ms", help="Pause between pages."),
    start_page: Optional[int] = typer.Option(None, "--start-page", help="First page to fetch."),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", help="Retries per page."),
    retry_backoff_ms: Optional[int] = typer.Option(
        None, "--retry-backoff-ms", help="Base of the linear retry backoff."
    ),
    no_fallback: bool = typer.Option(
        False, "--no-fallback", help="Do not retry the scrape against HTML search pages."
    ),
    dedupe: bool = typer.Option(False, "--dedupe", help="Drop repeated post ids."),
    no_export: bool = typer.Option(False, "--no-export", help="Skip writing output files."),
    quiet: bool = typer.Option(False, "--quiet", help="Only print a one-line result."),
) -> None:
    state = _get_state(ctx)

    payload: dict[str, Any] = {}
    if profile is not None:
        try:
            payload = state.repository.load_profile(profile).model_dump()
        except (FileNotFoundError, ValueError) as exc:
            console.print(f"Could not load profile: {exc}", style="red")
            raise typer.Exit(code=2)
    overrides = {
        "username": username,
        "tripcode": tripcode,
        "boards": boards,
        "delay_ms": delay_ms,
        "start_page": start_page,
        "max_retries": max_retries,
        "retry_backoff_ms": retry_backoff_ms,
    }
    payload.update({key: value for key, value in overrides.items() if value is not None})
    if no_fallback:
        payload["markup_fallback"] = False
    if dedupe:
        payload["dedupe"] = True
    if no_export:
        payload["export"] = False

    try:
        config = ScrapeConfig.model_validate(payload)
    except ValidationError as exc:
        console.print(f"Invalid configuration:\n{exc}", style="red")
        raise typer.Exit(code=2)

    if not quiet:
        console.print(
            f"Scraping posts for: {config.username or '(any)'}{config.tripcode} "
            f"· board(s): {config.boards or 'all'}",
            style="bold",
        )
    progress = ProgressReporter(enabled=_progress_default_enabled() and not quiet)
    try:
        report = state.orchestrator.run(config, progress=progress)
    except MissingIdentityError as exc:
        console.print(str(exc), style="red")
        console.print(USAGE_HINT, style="dim")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        console.print("Interrupted. Progress up to the last page has been saved.", style="yellow")
        raise typer.Exit(code=130)

    if quiet:
        console.print(
            f"{report.summary.total_posts} posts, {report.summary.threads} threads "
            f"({report.scrape.state.value})"
        )
        return
    if not report.posts:
        console.print("No posts found. Check your username/tripcode/board settings.", style="yellow")
        return
    console.print(_render_summary(report))
    if report.exported:
        console.print(f"{len(report.exported)} files written:")
        for path in report.exported:
            console.print(f"  {path}", style="dim")


@progress_app.command("list", help="Show stored checkpoints.")
def progress_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    records = state.orchestrator.progress_store().list_records()
    if not records:
        console.print("No saved progress.", style="dim")
        return
    table = Table(title=f"Saved progress · {len(records)}", box=box.SIMPLE_HEAD)
    table.add_column("Identity", style="cyan", no_wrap=True)
    table.add_column("Boards", style="magenta")
    table.add_column("Next page", justify="right")
    table.add_column("Posts", style="green", justify="right")
    table.add_column("Saved at", style="dim")
    for record in records:
        query = record.query
        table.add_row(
            f"{query.username}{query.tripcode}" or "-",
            query.boards_param or "all",
            str(record.next_page),
            str(len(record.posts)),
            record.saved_at.isoformat(timespec="seconds"),
        )
    console.print(table)


@progress_app.command("clear", help="Delete a checkpoint, or all of them with --all.")
def progress_clear(
    ctx: typer.Context,
    username: str = typer.Option("", "--username"),
    tripcode: str = typer.Option("", "--tripcode"),
    boards: str = typer.Option("", "--boards"),
    all_records: bool = typer.Option(False, "--all", help="Remove every checkpoint."),
) -> None:
    state = _get_state(ctx)
    store = state.orchestrator.progress_store()
    if all_records:
        removed = store.clear_all()
        console.print(f"Removed {removed} checkpoint(s).", style="green")
        return
    config = ScrapeConfig(username=username, tripcode=tripcode, boards=boards)
    if not config.has_identity:
        console.print("Pass --username/--tripcode (and --boards) or --all.", style="red")
        raise typer.Exit(code=1)
    query = config.query()
    if store.load(query) is None:
        console.print("No checkpoint stored for that query.", style="yellow")
        raise typer.Exit(code=1)
    store.clear(query)
    console.print("Checkpoint removed.", style="green")


@log_app.command("show", help="Print the tail of the application log.")
def log_show(
    tail: int = typer.Option(100, "--tail", help="Show the last N lines."),
    errors: bool = typer.Option(False, "--errors", help="Read the error log instead."),
) -> None:
    path = default_log_dir() / (ERROR_LOG if errors else HARVESTER_LOG)
    lines = tail_log(path, tail)
    if not lines:
        console.print(f"{path} is empty or missing.", style="dim", soft_wrap=True)
        return
    for line in lines:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
