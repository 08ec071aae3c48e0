"""Pydantic models used across the harvester configuration flow."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _split_boards(value: str) -> tuple[str, ...]:
    seen: list[str] = []
    for code in value.split("."):
        code = code.strip()
        if code and code not in seen:
            seen.append(code)
    return tuple(seen)


class Query(BaseModel):
    """Immutable identity of a scrape run.

    Used both as fetch parameters and as the key for matching stored progress.
    An empty ``boards`` tuple means every archived board.
    """

    model_config = ConfigDict(frozen=True)

    username: str = ""
    tripcode: str = ""
    boards: tuple[str, ...] = ()

    @property
    def boards_param(self) -> str:
        return ".".join(self.boards)

    @property
    def single_board(self) -> str | None:
        if len(self.boards) == 1:
            return self.boards[0]
        return None

    @property
    def display_identity(self) -> str:
        return self.username or self.tripcode or "anon"

    def signature(self) -> str:
        payload = json.dumps(self.model_dump(mode="json"), sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ScrapeConfig(BaseModel):
    """Run parameters, constructed once and threaded through every component."""

    model_config = ConfigDict(frozen=True)

    username: str = ""
    tripcode: str = ""
    boards: str = Field(default="", description="Dot-delimited board codes, empty for all boards.")
    delay_ms: int = Field(default=13000, ge=0)
    start_page: int = Field(default=1, ge=1)
    max_retries: int = Field(default=3, ge=0)
    retry_backoff_ms: int = Field(default=5000, ge=0)
    markup_fallback: bool = True
    dedupe: bool = False
    export: bool = True

    @field_validator("username", "tripcode", "boards", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @property
    def has_identity(self) -> bool:
        return bool(self.username or self.tripcode)

    def query(self) -> Query:
        return Query(
            username=self.username,
            tripcode=self.tripcode,
            boards=_split_boards(self.boards),
        )


class GlobalConfig(BaseModel):
    """Environment shared by every run: archive location, session and paths."""

    base_url: str = "https://archive.4plebs.org"
    user_agent: str = "fuuka-harvester/1.0"
    cookies: dict[str, str] = Field(default_factory=dict)
    request_timeout: float = Field(default=30.0, gt=0)
    outputs_dir: Path = Field(default=Path("data/outputs"))
    state_dir: Path = Field(default=Path("data/state"))
    export_prefix: str = "4plebs"
    progress_namespace: str = "4plebs_scrape_progress"

    @field_validator("base_url", mode="before")
    @classmethod
    def _trim_base_url(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("base_url cannot be empty")
        return text.rstrip("/")

    @field_validator("outputs_dir", "state_dir", mode="before")
    @classmethod
    def _coerce_dirs(cls, value: Any) -> Path:
        return Path(value)

    def progress_db_path(self) -> Path:
        return self.state_dir / "progress.db"


__all__ = ["GlobalConfig", "Query", "ScrapeConfig"]
