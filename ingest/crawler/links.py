"""Anchor extraction and keyword-based link prioritization."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable
from urllib.parse import parse_qsl, urlsplit

from bs4 import BeautifulSoup

from .constants import (
    HIGH_PRIORITY_KEYWORDS,
    INDEX_PAGE_MARKERS,
    LOW_PRIORITY_KEYWORDS,
    MEDIUM_PRIORITY_KEYWORDS,
    NAVIGATION_SELECTORS,
)
from .url import matches_file_type, resolve_url


LOGGER = logging.getLogger(__name__)

SCORE_DOCUMENT = 100
SCORE_HIGH = 75
SCORE_MEDIUM = 50
SCORE_INDEX = 30
SCORE_LOW = 25
SCORE_DROP = 0


@dataclass(frozen=True, slots=True)
class LinkCandidate:
    """Resolved anchor target with its visible text."""

    url: str
    text: str = ""


@dataclass(frozen=True, slots=True)
class ScoredLink:
    url: str
    text: str
    score: int


def _as_soup(html: str | bytes | BeautifulSoup) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return BeautifulSoup(html, "lxml")


def extract_links(
    html: str | bytes | BeautifulSoup,
    *,
    base_url: str,
    navigation_selectors: Iterable[str] = NAVIGATION_SELECTORS,
) -> list[LinkCandidate]:
    """Extract resolved anchor targets.

    Anchors inside navigation containers come first, followed by every other
    anchor in document order. The first occurrence of a URL wins.
    """

    soup = _as_soup(html)

    anchors = []
    for selector in navigation_selectors:
        try:
            anchors.extend(soup.select(selector))
        except ValueError as exc:
            LOGGER.debug("Skipping navigation selector %r: %s", selector, exc)
    anchors.extend(soup.find_all("a", href=True))

    out: list[LinkCandidate] = []
    seen: set[str] = set()

    for element in anchors:
        href = element.get("href")
        if not href:
            continue

        resolved = resolve_url(base_url, href)
        if not resolved or resolved in seen:
            continue

        seen.add(resolved)
        out.append(LinkCandidate(url=resolved, text=element.get_text(" ", strip=True)))

    return out


@dataclass(slots=True)
class LinkPrioritizerConfig:
    """Keyword sets used to score links. Matching is case-insensitive."""

    high_keywords: list[str] = field(default_factory=lambda: list(HIGH_PRIORITY_KEYWORDS))
    medium_keywords: list[str] = field(default_factory=lambda: list(MEDIUM_PRIORITY_KEYWORDS))
    low_keywords: list[str] = field(default_factory=lambda: list(LOW_PRIORITY_KEYWORDS))
    index_markers: list[str] = field(default_factory=lambda: list(INDEX_PAGE_MARKERS))
    # Match keywords against path and query only, so a brand host such as
    # "servicemanuals.example" does not lift every link on the site.
    ignore_host: bool = False


class LinkPrioritizer:
    """Score candidates and return them in descending priority.

    Keywords are looked up in the link text and in the whole lowercased URL,
    host included, unless `config.ignore_host` is set. A URL counts as a
    document when its path, or one of its query values such as
    `download.php?file=x.pdf`, ends with a configured extension.
    """

    def __init__(
        self,
        document_file_types: Iterable[str],
        config: LinkPrioritizerConfig | None = None,
    ) -> None:
        self.document_file_types = [ext.lower() for ext in document_file_types]
        self.config = config or LinkPrioritizerConfig()

    def _haystack(self, candidate: LinkCandidate) -> str:
        target = candidate.url
        if self.config.ignore_host:
            parts = urlsplit(candidate.url)
            target = parts.path + ("?" + parts.query if parts.query else "")
        return f"{candidate.text} {target}".lower()

    def _is_document(self, url: str) -> bool:
        if matches_file_type(url, self.document_file_types):
            return True
        query_values = (value.lower() for _, value in parse_qsl(urlsplit(url).query))
        return any(value.endswith(ext) for value in query_values for ext in self.document_file_types)

    @staticmethod
    def _contains_any(haystack: str, keywords: Iterable[str]) -> bool:
        return any(keyword.lower() in haystack for keyword in keywords if keyword)

    def score(self, candidate: LinkCandidate) -> int:
        if self._is_document(candidate.url):
            return SCORE_DOCUMENT

        haystack = self._haystack(candidate)
        if self._contains_any(haystack, self.config.high_keywords):
            return SCORE_HIGH
        if self._contains_any(haystack, self.config.medium_keywords):
            return SCORE_MEDIUM
        if self._contains_any(haystack, self.config.index_markers):
            return SCORE_INDEX
        if self._contains_any(haystack, self.config.low_keywords):
            return SCORE_LOW
        return SCORE_DROP

    def prioritize(
        self,
        candidates: Iterable[LinkCandidate],
        *,
        allowed: Callable[[str], bool] | None = None,
        known: Callable[[str], bool] | None = None,
    ) -> list[ScoredLink]:
        """Filter and rank candidates. Ties keep discovery order."""

        scored: list[ScoredLink] = []
        for candidate in candidates:
            if allowed is not None and not allowed(candidate.url):
                continue
            if known is not None and known(candidate.url):
                continue
            value = self.score(candidate)
            if value <= SCORE_DROP:
                continue
            scored.append(ScoredLink(url=candidate.url, text=candidate.text, score=value))

        # sorted() is stable.
        return sorted(scored, key=lambda link: link.score, reverse=True)


__all__ = [
    "LinkCandidate",
    "LinkPrioritizer",
    "LinkPrioritizerConfig",
    "SCORE_DOCUMENT",
    "SCORE_DROP",
    "SCORE_HIGH",
    "SCORE_INDEX",
    "SCORE_LOW",
    "SCORE_MEDIUM",
    "ScoredLink",
    "extract_links",
]
