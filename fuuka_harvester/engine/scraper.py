"""Resumable pagination engine driving a page source."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Event
from typing import Callable

import structlog

from ..config import Query, ScrapeConfig
from ..infra import ProgressRecord, ProgressStore
from .fetcher import TransportError
from .sources import PageSource, RawPost

MAX_CONSECUTIVE_FAILURES = 5

PageCallback = Callable[[int, list[RawPost], int], None]


class ScrapeState(str, Enum):
    """States a scrape run moves through."""

    RESUMING = "resuming"
    FETCHING = "fetching"
    RETRYING = "retrying"
    PAGINATING = "paginating"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(slots=True)
class ScrapeResult:
    """Outcome of one engine run over a single source."""

    posts: list[RawPost]
    state: ScrapeState
    source: str
    start_page: int
    next_page: int
    pages_fetched: int = 0
    resumed: bool = False
    skipped_pages: list[int] = field(default_factory=list)
    consecutive_failures: int = 0
    cancelled: bool = False

    @property
    def completed(self) -> bool:
        return self.state is ScrapeState.COMPLETED

    @property
    def circuit_broken(self) -> bool:
        return self.state is ScrapeState.ABORTED and not self.cancelled


class ScrapeEngine:
    """Walk result pages one at a time until the source runs dry.

    Every successfully fetched page is appended to the accumulator and
    checkpointed before the polite inter-page delay. A failing page is retried
    with linear backoff up to ``max_retries`` times; once those are spent the
    page is skipped. Five consecutive failures, counted across pages, abort
    the run with progress left on disk for a later resume. A completed run
    removes its checkpoint.
    """

    def __init__(
        self,
        store: ProgressStore,
        logger: structlog.BoundLogger | None = None,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Event | None = None,
        on_page: PageCallback | None = None,
    ) -> None:
        self.store = store
        self.logger = logger or structlog.get_logger("fuuka_harvester.engine")
        self._sleep = sleep
        self.cancel_event = cancel_event
        self.on_page = on_page

    def run(self, query: Query, source: PageSource, config: ScrapeConfig) -> ScrapeResult:
        log = self.logger.bind(source=source.name, identity=query.display_identity)

        posts, page, resumed = self._resume(query, config, log)
        result = ScrapeResult(
            posts=posts,
            state=ScrapeState.RESUMING if resumed else ScrapeState.FETCHING,
            source=source.name,
            start_page=page,
            next_page=page,
            resumed=resumed,
        )
        consecutive = 0

        while True:
            if self._cancelled():
                log.warning("scrape_cancelled", page=page, total=len(posts))
                self._checkpoint(query, posts, page)
                result.cancelled = True
                return self._finish(result, ScrapeState.ABORTED, page, consecutive)

            page_posts: list[RawPost] | None = None
            fetched = False
            attempt = 0
            result.state = ScrapeState.FETCHING
            while True:
                try:
                    page_posts = source.fetch_page(query, page)
                    fetched = True
                    consecutive = 0
                    break
                except TransportError as exc:
                    attempt += 1
                    consecutive += 1
                    log.error(
                        "page_error",
                        page=page,
                        attempt=attempt,
                        max_attempts=config.max_retries + 1,
                        consecutive_failures=consecutive,
                        status_code=exc.status_code,
                        error=str(exc),
                    )
                    if consecutive >= MAX_CONSECUTIVE_FAILURES:
                        log.error(
                            "circuit_broken",
                            page=page,
                            total=len(posts),
                            consecutive_failures=consecutive,
                        )
                        self._checkpoint(query, posts, page)
                        return self._finish(result, ScrapeState.ABORTED, page, consecutive)
                    if attempt > config.max_retries:
                        break
                    backoff_ms = config.retry_backoff_ms * attempt
                    result.state = ScrapeState.RETRYING
                    log.info("page_retry", page=page, attempt=attempt, backoff_ms=backoff_ms)
                    self._pause(backoff_ms / 1000)

            if not fetched:
                log.warning("page_skipped", page=page, attempts=attempt)
                result.skipped_pages.append(page)
                page += 1
                continue

            if page_posts is None:
                log.info("results_exhausted", last_page=page - 1, total=len(posts))
                break

            posts.extend(page_posts)
            result.state = ScrapeState.PAGINATING
            result.pages_fetched += 1
            self._checkpoint(query, posts, page + 1)
            log.info("page_fetched", page=page, count=len(page_posts), total=len(posts))
            if self.on_page is not None:
                self.on_page(page, page_posts, len(posts))
            page += 1
            self._pause(config.delay_ms / 1000)

        self.store.clear(query)
        return self._finish(result, ScrapeState.COMPLETED, page, consecutive)

    # ------------------------------------------------------------------
    def _resume(
        self, query: Query, config: ScrapeConfig, log: structlog.BoundLogger
    ) -> tuple[list[RawPost], int, bool]:
        record = self.store.load(query)
        if record is None:
            return [], config.start_page, False
        log.info("resuming", page=record.next_page, total=len(record.posts))
        return list(record.posts), record.next_page, True

    def _checkpoint(self, query: Query, posts: list[RawPost], next_page: int) -> None:
        self.store.save(ProgressRecord(query=query, posts=list(posts), next_page=next_page))

    def _pause(self, seconds: float) -> None:
        if seconds <= 0:
            return
        if self.cancel_event is not None:
            self.cancel_event.wait(seconds)
        else:
            self._sleep(seconds)

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    @staticmethod
    def _finish(
        result: ScrapeResult, state: ScrapeState, page: int, consecutive: int
    ) -> ScrapeResult:
        result.state = state
        result.next_page = page
        result.consecutive_failures = consecutive
        return result


__all__ = [
    "MAX_CONSECUTIVE_FAILURES",
    "ScrapeEngine",
    "ScrapeResult",
    "ScrapeState",
]
