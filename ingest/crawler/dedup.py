"""Two-layer content hash registry used to skip duplicate pages."""

from __future__ import annotations

import threading
from enum import Enum
from hashlib import sha256

from .constants import TEXT_HASH_PREFIX_CHARS


class HashLayer(str, Enum):
    """Dedup layers. Each layer keeps its own digest set."""

    RAW = "raw"
    TEXT = "text"


def raw_digest(payload: bytes | str) -> str:
    """Full SHA-256 hex digest of a fetched payload."""

    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    return sha256(data).hexdigest()


def text_digest(text: str) -> str:
    """Short SHA-256 prefix of extracted text, stored as `content_hash`."""

    return sha256(text.encode("utf-8")).hexdigest()[:TEXT_HASH_PREFIX_CHARS]


class ContentHashRegistry:
    """Lock-guarded digest sets for raw payloads and extracted text.

    `check_and_add_*` returns True when the digest is new (and records it),
    False when it was already seen. The two layers never share entries.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seen: dict[HashLayer, set[str]] = {
            HashLayer.RAW: set(),
            HashLayer.TEXT: set(),
        }
        self._duplicates: dict[HashLayer, int] = {
            HashLayer.RAW: 0,
            HashLayer.TEXT: 0,
        }

    def _check_and_add(self, layer: HashLayer, digest: str) -> bool:
        with self._lock:
            bucket = self._seen[layer]
            if digest in bucket:
                self._duplicates[layer] += 1
                return False
            bucket.add(digest)
            return True

    def check_and_add_raw(self, payload: bytes | str) -> bool:
        return self._check_and_add(HashLayer.RAW, raw_digest(payload))

    def check_and_add_text(self, text: str) -> tuple[bool, str]:
        """Return `(is_new, digest)` for extracted text."""

        digest = text_digest(text)
        return self._check_and_add(HashLayer.TEXT, digest), digest

    def seen_count(self, layer: HashLayer) -> int:
        with self._lock:
            return len(self._seen[layer])

    @property
    def duplicates_skipped(self) -> int:
        with self._lock:
            return sum(self._duplicates.values())

    def snapshot(self) -> dict[str, int]:
        """Return registry counters for logs/stats reporting."""

        with self._lock:
            return {
                "raw_seen": len(self._seen[HashLayer.RAW]),
                "text_seen": len(self._seen[HashLayer.TEXT]),
                "raw_duplicates": self._duplicates[HashLayer.RAW],
                "text_duplicates": self._duplicates[HashLayer.TEXT],
            }


__all__ = [
    "ContentHashRegistry",
    "HashLayer",
    "raw_digest",
    "text_digest",
]
