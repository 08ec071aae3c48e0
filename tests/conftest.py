"""Pytest configuration providing shared fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from fuuka_harvester.config import GlobalConfig, Query, ScrapeConfig
from fuuka_harvester.engine import TransportError
from fuuka_harvester.infra import ProgressStore, SQLiteManager


class ScriptedSource:
    """Page source replaying a fixed script of outcomes per page.

    Each page maps to a list of outcomes consumed one per call: a list of raw
    posts, ``None`` for end of results, or an exception instance to raise.
    Pages missing from the script return ``None``.
    """

    def __init__(self, script: dict[int, list[Any]], name: str = "api") -> None:
        self.name = name
        self.script = {page: list(outcomes) for page, outcomes in script.items()}
        self.calls: list[int] = []

    def fetch_page(self, query: Query, page: int):
        self.calls.append(page)
        outcomes = self.script.get(page)
        if not outcomes:
            return None
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def raw_post(num: int, thread: int = 100, timestamp: int | None = 1_600_000_000, **extra: Any) -> dict:
    post = {
        "num": str(num),
        "thread_num": str(thread),
        "board": {"shortname": "x"},
        "op": "0",
        "timestamp": timestamp,
        "name": "Bob",
        "comment": f"post {num}",
    }
    post.update(extra)
    return post


def failure(status: int = 500) -> TransportError:
    return TransportError(status, "Internal Server Error")


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("FUUKA_HARVESTER_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def sample_global_config(tmp_path: Path) -> GlobalConfig:
    return GlobalConfig(
        base_url="https://archive.example.org",
        outputs_dir=tmp_path / "outputs",
        state_dir=tmp_path / "state",
        export_prefix="test",
    )


@pytest.fixture
def sample_scrape_config() -> Callable[..., ScrapeConfig]:
    def _builder(**overrides: Any) -> ScrapeConfig:
        base: dict[str, Any] = {
            "username": "Bob",
            "boards": "x",
            "delay_ms": 1000,
            "max_retries": 3,
            "retry_backoff_ms": 500,
        }
        base.update(overrides)
        return ScrapeConfig(**base)

    return _builder


@pytest.fixture
def progress_store(tmp_path: Path) -> Iterable[ProgressStore]:
    manager = SQLiteManager()
    store = ProgressStore(manager, tmp_path / "state" / "progress.db", "test_progress")
    yield store
    manager.close_all()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_raw_post() -> Callable[..., dict]:
    return raw_post


@pytest.fixture
def scripted_source() -> Callable[..., ScriptedSource]:
    return ScriptedSource


@pytest.fixture
def transport_failure() -> Callable[..., TransportError]:
    return failure
