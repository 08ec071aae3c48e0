"""Partition normalized posts into threads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .normalizer import Post

UNKNOWN_THREAD = "unknown"


@dataclass(slots=True)
class Thread:
    thread_id: str
    board: str | None
    posts: list[Post] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "thread_id": self.thread_id,
            "board": self.board,
            "posts": [post.to_dict() for post in self.posts],
        }


def group_by_thread(posts: Iterable[Post]) -> list[Thread]:
    """Group by ``thread_id`` and sort each thread by timestamp.

    Posts without a thread id share the ``"unknown"`` bucket. Missing
    timestamps sort as 0; the sort is stable. Threads come out in the order
    their first post was seen, which callers should not rely on.
    """

    threads: dict[str, Thread] = {}
    for post in posts:
        key = post.thread_id or UNKNOWN_THREAD
        thread = threads.get(key)
        if thread is None:
            thread = threads[key] = Thread(thread_id=key, board=post.board)
        thread.posts.append(post)

    for thread in threads.values():
        thread.posts.sort(key=lambda post: post.timestamp or 0)
    return list(threads.values())


__all__ = ["Thread", "UNKNOWN_THREAD", "group_by_thread"]
