"""Engine components orchestrating fetch → paginate → normalize → group → export."""

from .fetcher import FetchResponse, Fetcher, MalformedPayloadError, TransportError
from .grouping import Thread, group_by_thread
from .normalizer import Post, dedupe_posts, normalize_posts
from .parser import MarkupParser
from .scraper import MAX_CONSECUTIVE_FAILURES, ScrapeEngine, ScrapeResult, ScrapeState
from .sources import MarkupSource, PageSource, StructuredSource

__all__ = [
    "FetchResponse",
    "Fetcher",
    "MAX_CONSECUTIVE_FAILURES",
    "MalformedPayloadError",
    "MarkupParser",
    "MarkupSource",
    "PageSource",
    "Post",
    "ScrapeEngine",
    "ScrapeResult",
    "ScrapeState",
    "StructuredSource",
    "Thread",
    "TransportError",
    "dedupe_posts",
    "group_by_thread",
    "normalize_posts",
]
