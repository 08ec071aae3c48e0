"""Map raw records from either page source onto one canonical post schema."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from selectolax.parser import HTMLParser

_WHITESPACE = re.compile(r"\s+")


@dataclass(slots=True)
class Post:
    """Canonical post record.

    ``timestamp`` and ``date_iso`` are either both set or both ``None``.
    """

    post_id: str | None
    thread_id: str | None
    board: str | None
    is_op: bool
    timestamp: int | None
    date_iso: str | None
    date_human: str | None
    name: str | None
    tripcode: str | None
    poster_id: str | None
    country: str | None
    subject: str | None
    text: str
    text_html: str | None
    has_media: bool
    media_filename: str | None
    media_url: str | None
    thumb_url: str | None
    deleted: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _flag(value: Any) -> bool:
    return value == "1" or (value == 1 and not isinstance(value, bool))


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _epoch_seconds(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return int(value)
        except (ValueError, OverflowError):
            return None
    text = str(value).strip()
    if not text:
        return None
    if text.lstrip("-").isdecimal():
        try:
            return int(text)
        except ValueError:
            return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def _iso_from_epoch(seconds: int) -> str | None:
    try:
        moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def clean_text(raw: Mapping[str, Any]) -> str:
    """Plain text of a post: sanitized comment preferred, markup reduced to text."""

    text = raw.get("comment_sanitized") or raw.get("comment") or ""
    if not isinstance(text, str):
        text = str(text)
    if "<" in text:
        text = HTMLParser(text).text(separator="")
    return _WHITESPACE.sub(" ", text).strip()


def _board(raw: Mapping[str, Any]) -> str | None:
    board = raw.get("board")
    if isinstance(board, Mapping):
        return _optional_str(board.get("shortname"))
    return _optional_str(board)


def normalize_post(raw: Mapping[str, Any]) -> Post:
    media = raw.get("media")
    media = media if isinstance(media, Mapping) and media else None

    timestamp = _epoch_seconds(raw.get("timestamp"))
    date_iso = _iso_from_epoch(timestamp) if timestamp is not None else None
    if date_iso is None:
        timestamp = None

    return Post(
        post_id=_optional_str(raw.get("num")),
        thread_id=_optional_str(raw.get("thread_num")),
        board=_board(raw),
        is_op=_flag(raw.get("op")),
        timestamp=timestamp,
        date_iso=date_iso,
        date_human=_optional_str(raw.get("fourchan_date")),
        name=_optional_str(raw.get("name")),
        tripcode=_optional_str(raw.get("trip")),
        poster_id=_optional_str(raw.get("poster_hash")),
        country=_optional_str(raw.get("poster_country")),
        subject=_optional_str(raw.get("title")),
        text=clean_text(raw),
        text_html=_optional_str(raw.get("comment_processed") or raw.get("comment_html")),
        has_media=bool(media or raw.get("media_url")),
        media_filename=_optional_str((media or {}).get("media_filename") or raw.get("media_filename")),
        media_url=_optional_str((media or {}).get("media_link") or raw.get("media_url")),
        thumb_url=_optional_str((media or {}).get("thumb_link") or raw.get("thumb_url")),
        deleted=_flag(raw.get("deleted")),
    )


def normalize_posts(raw_posts: Iterable[Mapping[str, Any]]) -> list[Post]:
    return [normalize_post(raw) for raw in raw_posts]


def dedupe_posts(posts: Iterable[Post]) -> list[Post]:
    """Keep the first occurrence of every ``post_id``; id-less posts are kept."""

    seen: set[str] = set()
    unique: list[Post] = []
    for post in posts:
        if post.post_id is not None:
            if post.post_id in seen:
                continue
            seen.add(post.post_id)
        unique.append(post)
    return unique


__all__ = ["Post", "clean_text", "dedupe_posts", "normalize_post", "normalize_posts"]
