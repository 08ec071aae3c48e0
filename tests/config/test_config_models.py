from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from fuuka_harvester.config import GlobalConfig, Query, ScrapeConfig


def test_scrape_config_defaults() -> None:
    config = ScrapeConfig(username="Bob")

    assert config.delay_ms == 13000
    assert config.start_page == 1
    assert config.max_retries == 3
    assert config.retry_backoff_ms == 5000
    assert config.boards == ""
    assert config.markup_fallback is True
    assert config.dedupe is False


def test_identity_fields_are_stripped() -> None:
    config = ScrapeConfig(username="  Bob ", tripcode=None, boards=" x.pol ")

    assert config.username == "Bob"
    assert config.tripcode == ""
    assert config.has_identity


def test_missing_identity_is_representable() -> None:
    assert not ScrapeConfig(username="   ").has_identity


@pytest.mark.parametrize(
    "overrides",
    [{"delay_ms": -1}, {"start_page": 0}, {"max_retries": -1}, {"retry_backoff_ms": -5}],
)
def test_numeric_bounds(overrides) -> None:
    with pytest.raises(ValidationError):
        ScrapeConfig(username="Bob", **overrides)


def test_config_is_frozen() -> None:
    config = ScrapeConfig(username="Bob")
    with pytest.raises(ValidationError):
        config.username = "Alice"


def test_query_splits_boards() -> None:
    query = ScrapeConfig(username="Bob", boards="x..pol.x").query()

    assert query.boards == ("x", "pol")
    assert query.boards_param == "x.pol"
    assert query.single_board is None


def test_query_without_boards_searches_everything() -> None:
    query = ScrapeConfig(tripcode="!Trip").query()

    assert query.boards == ()
    assert query.boards_param == ""
    assert query.display_identity == "!Trip"


def test_signature_depends_on_every_field() -> None:
    base = Query(username="Bob", tripcode="", boards=("x",))
    variants = [
        Query(username="Bob", tripcode="", boards=("x",)),
        Query(username="Bob", tripcode="!t", boards=("x",)),
        Query(username="Bob", tripcode="", boards=("pol",)),
        Query(username="bob", tripcode="", boards=("x",)),
    ]

    assert variants[0].signature() == base.signature()
    assert len({q.signature() for q in variants[1:]} | {base.signature()}) == 4


def test_global_config_trims_base_url() -> None:
    config = GlobalConfig(base_url="https://archive.example.org///")

    assert config.base_url == "https://archive.example.org"
    assert config.progress_db_path() == Path("data/state") / "progress.db"


def test_global_config_rejects_empty_base_url() -> None:
    with pytest.raises(ValidationError):
        GlobalConfig(base_url="  ")
