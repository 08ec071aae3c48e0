"""File based exporter writing flat JSON, threaded JSON and JSONL."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Iterable

from .base import BaseExporter

_SLUG_PATTERN = re.compile(r"[^A-Za-z0-9]")


def slugify_identity(identity: str) -> str:
    return _SLUG_PATTERN.sub("_", identity)


class FileExporter(BaseExporter):
    """Write one scrape's dataset as three files sharing a name stem.

    JSONL lines are streamed as records arrive; the two JSON documents are
    rewritten on every flush.
    """

    def __init__(self, output_dir: Path, prefix: str, identity: str) -> None:
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        stem = f"{prefix}_{slugify_identity(identity)}"
        self.flat_path = self.output_dir / f"{stem}_flat.json"
        self.threaded_path = self.output_dir / f"{stem}_threaded.json"
        self.jsonl_path = self.output_dir / f"{stem}_posts.jsonl"
        self._records: list[dict] = []
        self._threads: list[dict] = []
        self._jsonl = self.jsonl_path.open("w", encoding="utf-8", newline="\n")
        self._closed = False

    @property
    def paths(self) -> list[Path]:
        return [self.flat_path, self.threaded_path, self.jsonl_path]

    def export(self, record: dict) -> None:
        self._records.append(record)
        json.dump(record, self._jsonl, ensure_ascii=False)
        self._jsonl.write("\n")

    def export_threads(self, threads: Iterable[dict]) -> None:
        self._threads.extend(threads)

    def flush(self) -> None:
        self._jsonl.flush()
        self._write_json(self.flat_path, self._records)
        self._write_json(self.threaded_path, self._threads)

    def close(self) -> None:
        if self._closed:
            return
        self.flush()
        self._jsonl.close()
        self._closed = True

    @staticmethod
    def _write_json(path: Path, payload: list[dict]) -> None:
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


__all__ = ["FileExporter", "slugify_identity"]
