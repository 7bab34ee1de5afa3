"""Exception types raised by crawler components."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for crawler errors."""


class ConfigError(CrawlerError, ValueError):
    """Invalid options or seed URL. Fatal, raised before the frontier is seeded."""


class FetchError(CrawlerError):
    """Single-URL network or HTTP failure."""

    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(CrawlerError):
    """Malformed HTML/PDF payload that an extractor could not handle."""


class EmbedError(CrawlerError):
    """Embedding sink failure for one document."""


__all__ = [
    "ConfigError",
    "CrawlerError",
    "EmbedError",
    "FetchError",
    "ParseError",
]
