"""Page sources: one page of search results per call, or end-of-results."""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

from ..config import Query
from .fetcher import Fetcher, MalformedPayloadError
from .parser import MarkupParser

RawPost = dict[str, Any]

SEARCH_API_PATH = "/_/api/chan/search/"


class PageSource(Protocol):
    """Fetch and parse a single results page.

    Returns the page's raw posts, or ``None`` once the archive has no more
    results. Transport failures surface as ``TransportError``.
    """

    name: str

    def fetch_page(self, query: Query, page: int) -> list[RawPost] | None:
        ...


def extract_posts_bucket(payload: Any) -> list[RawPost] | None:
    """Read the posts array out of a search API envelope.

    Two envelope shapes are accepted: an object keyed by the string ``"0"``
    (JSON object keys are always strings, so this also covers a numeric 0 on
    the server side), or an array whose first element is the bucket. An
    ``error`` member, a missing bucket, or an empty ``posts`` array all mean
    end of results.
    """

    if isinstance(payload, dict):
        if payload.get("error"):
            return None
        bucket = payload.get("0")
    elif isinstance(payload, list):
        bucket = payload[0] if payload else None
    else:
        raise MalformedPayloadError(None, f"unexpected envelope type {type(payload).__name__}")

    if not isinstance(bucket, dict):
        return None
    posts = bucket.get("posts")
    if not isinstance(posts, list) or not posts:
        return None
    return posts


class StructuredSource:
    """JSON search endpoint of a FoolFuuka archive."""

    name = "api"

    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher

    @staticmethod
    def build_params(query: Query, page: int) -> dict[str, str]:
        params: dict[str, str] = {}
        if query.boards_param:
            params["boards"] = query.boards_param
        if query.username:
            params["username"] = query.username
        if query.tripcode:
            params["tripcode"] = query.tripcode
        params["page"] = str(page)
        return params

    def fetch_page(self, query: Query, page: int) -> list[RawPost] | None:
        response = self.fetcher.get(
            SEARCH_API_PATH,
            params=self.build_params(query, page),
            headers={"Accept": "application/json"},
        )
        posts = extract_posts_bucket(response.json())
        if posts is None:
            return None
        tagged: list[RawPost] = []
        for post in posts:
            if isinstance(post, dict):
                record = dict(post)
                record.setdefault("_source", self.name)
                tagged.append(record)
        return tagged or None


class MarkupSource:
    """HTML search pages, parsed with ``MarkupParser``."""

    name = "markup"

    def __init__(self, fetcher: Fetcher, parser: MarkupParser | None = None) -> None:
        self.fetcher = fetcher
        self.parser = parser or MarkupParser()

    @staticmethod
    def build_path(query: Query, page: int) -> str:
        prefix = query.single_board or "_"
        path = f"/{quote(prefix, safe='')}/search"
        if query.username:
            path += f"/username/{quote(query.username, safe='')}"
        if query.tripcode:
            path += f"/tripcode/{quote(query.tripcode, safe='')}"
        return f"{path}/page/{page}/"

    def fetch_page(self, query: Query, page: int) -> list[RawPost] | None:
        response = self.fetcher.get(self.build_path(query, page))
        posts = self.parser.parse_page(response.text)
        return posts or None


__all__ = [
    "MarkupSource",
    "PageSource",
    "RawPost",
    "SEARCH_API_PATH",
    "StructuredSource",
    "extract_posts_bucket",
]
