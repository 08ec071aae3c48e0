"""DOM parsing rules for FoolFuuka search result pages.

These selectors track the archive's markup and are expected to change with it;
nothing outside ``MarkupSource`` depends on them.
"""

from __future__ import annotations

import re
from html import escape
from typing import Any

from selectolax.parser import HTMLParser, Node

POST_SELECTOR = "article.post"
DOC_ID_PREFIX = "doc_id_"
PERMALINK_PATTERN = re.compile(r"/thread/(\d+)/#(\d+)")
NUMBER_TEXT_PATTERN = re.compile(r"No\.(\d+)")
BOARD_PATTERN = re.compile(r"^/(\w+)/")
TEXT_TAG = "-text"


class MarkupParser:
    """Turn a search results document into raw post records."""

    source_tag = "markup"

    def parse_page(self, html: str) -> list[dict[str, Any]]:
        tree = HTMLParser(html)
        return [self.parse_post(node) for node in tree.css(POST_SELECTOR)]

    def parse_post(self, article: Node) -> dict[str, Any]:
        classes = (article.attributes.get("class") or "").split()

        doc_id = None
        for cls in classes:
            if cls.startswith(DOC_ID_PREFIX):
                doc_id = cls[len(DOC_ID_PREFIX):]
                break

        num = thread_num = board = None
        link = article.css_first(".post_controls a")
        if link is not None:
            href = link.attributes.get("href") or ""
            match = PERMALINK_PATTERN.search(href)
            if match:
                thread_num, num = match.group(1), match.group(2)
            else:
                text_match = NUMBER_TEXT_PATTERN.search(link.text())
                if text_match:
                    num = text_match.group(1)
            board_match = BOARD_PATTERN.match(href)
            if board_match:
                board = board_match.group(1)

        time_node = article.css_first(".time_wrap time")
        comment = article.css_first(".text")

        return {
            "doc_id": doc_id,
            "num": num,
            "thread_num": thread_num,
            "board": board,
            "op": "1" if "post_is_op" in classes else "0",
            "timestamp": time_node.attributes.get("datetime") if time_node is not None else None,
            "fourchan_date": time_node.text().strip() if time_node is not None else None,
            "name": self._text(article, ".post_author"),
            "trip": self._text(article, ".post_tripcode"),
            "title": self._text(article, ".post_title"),
            "poster_hash": self._text(article, ".poster_hash"),
            "comment": comment.text().strip() if comment is not None else None,
            "comment_html": self._inner_html(comment) if comment is not None else None,
            "media_url": self._attr(article, ".thread_image_link", "href"),
            "thumb_url": self._attr(article, ".post_image", "src"),
            "media_filename": self._text(article, ".post_file_filename"),
            "_source": self.source_tag,
        }

    @staticmethod
    def _text(article: Node, selector: str) -> str | None:
        node = article.css_first(selector)
        return node.text().strip() if node is not None else None

    @staticmethod
    def _attr(article: Node, selector: str, attribute: str) -> str | None:
        node = article.css_first(selector)
        return node.attributes.get(attribute) if node is not None else None

    @staticmethod
    def _inner_html(node: Node) -> str:
        parts: list[str] = []
        for child in node.iter(include_text=True):
            if child.tag == TEXT_TAG:
                parts.append(escape(child.text(deep=False), quote=False))
            else:
                parts.append(child.html or "")
        return "".join(parts).strip()


__all__ = ["MarkupParser", "POST_SELECTOR"]
