"""Embedding sinks: where accepted documents go after the crawl loop.

`JsonlCorpusSink` owns the on-disk corpus layout. Other modules should use
this API instead of building paths manually.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from .config import CrawlOptions
from .constants import JSON_INDENT, TEXT_HASH_PREFIX_CHARS
from .errors import EmbedError
from .types import CrawlResult, CrawlStats, ErrorRecord, JSONDict, utc_now_iso
from .url import filename_from_url, host_from_url


LOGGER = logging.getLogger(__name__)

DOC_ID_PREFIX = "WEB-"


class EmbeddingSink(Protocol):
    """Receives one accepted document at a time. Raising marks it not embedded."""

    def embed(self, result: CrawlResult) -> None:
        ...


def doc_id_for(url: str) -> str:
    """Stable corpus id derived from the document URL."""

    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
    return DOC_ID_PREFIX + digest[:TEXT_HASH_PREFIX_CHARS]


def corpus_row(result: CrawlResult, *, crawled_at: str | None = None) -> JSONDict:
    """Build the JSONL row stored for one document."""

    return {
        "id": doc_id_for(result.url),
        "title": result.title,
        "content": result.content,
        "source": result.url,
        "source_host": host_from_url(result.url),
        "filename": filename_from_url(result.url),
        "type": f"web-{result.doc_type.value}",
        "doc_type": result.doc_type.value,
        "metadata": {
            **result.metadata.to_json(),
            "crawled_at": crawled_at or utc_now_iso(),
        },
    }


def write_json_atomic(path: Path, payload: Mapping[str, Any]) -> None:
    """Replace `path` with pretty JSON without ever exposing a partial file."""

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f"{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=JSON_INDENT, sort_keys=True)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class JsonlCorpusSink:
    """Persist accepted documents under a single `output_dir` root.

    Layout::

        parsed/docs.jsonl            one row per embedded document
        parsed/errors.jsonl          one row per ErrorRecord
        manifests/crawl_config.json  options the crawl ran with
        manifests/crawl_stats.json   core stats plus runtime diagnostics
        logs/                        CLI log files
    """

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self.parsed_dir = self.output_dir / "parsed"
        self.manifests_dir = self.output_dir / "manifests"
        self.logs_dir = self.output_dir / "logs"
        for directory in (self.parsed_dir, self.manifests_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

        self.docs_path = self.parsed_dir / "docs.jsonl"
        self.errors_path = self.parsed_dir / "errors.jsonl"
        self.crawl_config_path = self.manifests_dir / "crawl_config.json"
        self.crawl_stats_path = self.manifests_dir / "crawl_stats.json"
        self._write_lock = threading.Lock()

    def embed(self, result: CrawlResult) -> None:
        """Append one document row to `parsed/docs.jsonl`."""

        try:
            self._append(self.docs_path, [corpus_row(result)])
        except (OSError, TypeError, ValueError) as exc:
            raise EmbedError(f"{type(exc).__name__}: {exc}") from exc

    def save_errors(self, errors: Iterable[ErrorRecord]) -> int:
        """Append error rows to `parsed/errors.jsonl`; returns rows written."""

        rows = [error.to_json() for error in errors]
        if rows:
            self._append(self.errors_path, rows)
        return len(rows)

    def save_crawl_config(self, options: CrawlOptions | Mapping[str, Any]) -> None:
        payload = options.to_dict() if isinstance(options, CrawlOptions) else dict(options)
        write_json_atomic(self.crawl_config_path, payload)

    def save_crawl_stats(self, stats: CrawlStats | Mapping[str, Any]) -> None:
        payload = stats.to_json() if isinstance(stats, CrawlStats) else dict(stats)
        write_json_atomic(self.crawl_stats_path, payload)

    def read_docs(self) -> list[JSONDict]:
        """Load every stored document row (skips malformed lines)."""

        if not self.docs_path.exists():
            return []
        rows: list[JSONDict] = []
        for line in self.docs_path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError:
                LOGGER.warning("Skipping malformed row in %s", self.docs_path)
        return rows

    def _append(self, path: Path, rows: list[Mapping[str, Any]]) -> None:
        text = "".join(json.dumps(row, ensure_ascii=False, sort_keys=True) + "\n" for row in rows)
        with self._write_lock, path.open("a", encoding="utf-8") as handle:
            handle.write(text)


__all__ = [
    "DOC_ID_PREFIX",
    "EmbeddingSink",
    "JsonlCorpusSink",
    "corpus_row",
    "doc_id_for",
    "write_json_atomic",
]
