"""Run orchestrator wiring together sources, pagination, normalization and export."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Event
from typing import Any, Callable, Mapping

import structlog

from .config import ConfigRepository, GlobalConfig, ScrapeConfig
from .engine import (
    Fetcher,
    MarkupSource,
    PageSource,
    Post,
    ScrapeEngine,
    ScrapeResult,
    StructuredSource,
    Thread,
    dedupe_posts,
    group_by_thread,
    normalize_posts,
)
from .engine.exporter import FileExporter
from .infra import ProgressStore, SQLiteManager
from .logging_conf import configure_logging
from .ui import ProgressReporter


class MissingIdentityError(ValueError):
    """Neither a username nor a tripcode was supplied."""


@dataclass(slots=True)
class ScrapeSummary:
    total_posts: int
    threads: int
    boards: list[str]
    first_date: str | None
    last_date: str | None

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_posts": self.total_posts,
            "threads": self.threads,
            "boards": list(self.boards),
            "first_date": self.first_date,
            "last_date": self.last_date,
        }


@dataclass(slots=True)
class RunReport:
    posts: list[Post]
    threads: list[Thread]
    summary: ScrapeSummary
    scrape: ScrapeResult
    fallback_used: bool = False
    exported: list[Path] = field(default_factory=list)


def _day(seconds: int) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%d")


def summarize(posts: list[Post], threads: list[Thread]) -> ScrapeSummary:
    boards = sorted({post.board for post in posts if post.board})
    stamps = sorted(post.timestamp for post in posts if post.timestamp)
    return ScrapeSummary(
        total_posts=len(posts),
        threads=len(threads),
        boards=boards,
        first_date=_day(stamps[0]) if stamps else None,
        last_date=_day(stamps[-1]) if stamps else None,
    )


class Orchestrator:
    """Central coordinator for a single scrape run.

    The JSON API is tried first. If that pass ends with the circuit breaker
    tripped, the whole scrape is restarted once against the HTML search pages;
    the second pass resumes from the checkpoint the first one left behind.
    """

    def __init__(
        self,
        global_config: GlobalConfig,
        storage: SQLiteManager | None = None,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Event | None = None,
    ) -> None:
        self.global_config = global_config
        self.storage = storage or SQLiteManager()
        self.cancel_event = cancel_event
        self._sleep = sleep
        self.logger = configure_logging().bind(component="orchestrator")

    # ------------------------------------------------------------------
    def progress_store(self) -> ProgressStore:
        return ProgressStore(
            self.storage,
            self.global_config.progress_db_path(),
            self.global_config.progress_namespace,
            logger=self.logger.bind(component="progress"),
        )

    def run(self, config: ScrapeConfig, progress: ProgressReporter | None = None) -> RunReport:
        if not config.has_identity:
            raise MissingIdentityError(
                "You must set at least a username or tripcode in the config."
            )
        query = config.query()
        log = self.logger.bind(identity=query.display_identity, boards=query.boards_param or "all")
        log.info(
            "scrape_started",
            username=query.username,
            tripcode=query.tripcode,
            delay_ms=config.delay_ms,
            max_retries=config.max_retries,
        )

        progress = progress or ProgressReporter(enabled=False)
        store = self.progress_store()
        fetcher = self._create_fetcher()
        engine = ScrapeEngine(
            store,
            logger=log.bind(component="engine"),
            sleep=self._sleep,
            cancel_event=self.cancel_event,
            on_page=progress.advance,
        )
        structured, markup = self._build_sources(fetcher)
        fallback_used = False
        try:
            progress.start(structured.name)
            result = engine.run(query, structured, config)
            if result.circuit_broken and config.markup_fallback:
                log.warning(
                    "markup_fallback",
                    failed_source=structured.name,
                    page=result.next_page,
                    total=len(result.posts),
                )
                progress.switch_source(markup.name)
                result = engine.run(query, markup, config)
                fallback_used = True
        finally:
            progress.close()
            fetcher.close()

        posts = normalize_posts(result.posts)
        if config.dedupe:
            before = len(posts)
            posts = dedupe_posts(posts)
            log.info("posts_deduplicated", dropped=before - len(posts))
        threads = group_by_thread(posts)
        summary = summarize(posts, threads)

        exported: list[Path] = []
        if not posts:
            log.info("no_posts_found", state=result.state.value)
        elif config.export:
            exported = self._export(query.display_identity, posts, threads)

        log.info(
            "scrape_finished",
            state=result.state.value,
            source=result.source,
            fallback_used=fallback_used,
            skipped_pages=result.skipped_pages,
            **summary.as_dict(),
        )
        return RunReport(
            posts=posts,
            threads=threads,
            summary=summary,
            scrape=result,
            fallback_used=fallback_used,
            exported=exported,
        )

    # ------------------------------------------------------------------
    def _create_fetcher(self) -> Fetcher:
        return Fetcher(
            self.global_config,
            logger=self.logger.bind(component="fetcher"),
            sleep=self._sleep,
        )

    def _build_sources(self, fetcher: Fetcher) -> tuple[PageSource, PageSource]:
        return StructuredSource(fetcher), MarkupSource(fetcher)

    def _export(self, identity: str, posts: list[Post], threads: list[Thread]) -> list[Path]:
        exporter = FileExporter(
            Path(self.global_config.outputs_dir),
            self.global_config.export_prefix,
            identity,
        )
        try:
            exporter.export_many(post.to_dict() for post in posts)
            exporter.export_threads(thread.to_dict() for thread in threads)
        finally:
            exporter.close()
        for path in exporter.paths:
            self.logger.info("exported", path=str(path))
        return exporter.paths


def run(
    config: ScrapeConfig | Mapping[str, Any],
    global_config: GlobalConfig | None = None,
) -> list[Post]:
    """Scrape, normalize and export every post for one identity."""

    if not isinstance(config, ScrapeConfig):
        config = ScrapeConfig.model_validate(dict(config))
    if not config.has_identity:
        raise MissingIdentityError("You must set at least a username or tripcode in the config.")
    if global_config is None:
        global_config = ConfigRepository().load_global_config()
    return Orchestrator(global_config).run(config).posts


__all__ = [
    "MissingIdentityError",
    "Orchestrator",
    "RunReport",
    "ScrapeSummary",
    "run",
    "summarize",
]
