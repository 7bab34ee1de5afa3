"""Title inference for non-HTML documents."""

from __future__ import annotations

import logging
import re
from typing import Protocol

from .constants import TITLE_EXCERPT_CHARS, TITLE_MIN_CONTENT_CHARS
from .url import title_from_filename


LOGGER = logging.getLogger(__name__)

MIN_TITLE_CHARS = 6
MAX_TITLE_CHARS = 199

_REFUSAL_MARKERS = ("I cannot", "Unable to")
_NOISE_LINE_RE = re.compile(r"^[\W\d_]+$")
_MARKUP_RE = re.compile(r"<[^>]+>")


class TitleInferrer(Protocol):
    """Returns a title for `text`, or '' when none can be determined."""

    def infer(self, text: str, url: str) -> str:
        ...


def is_plausible_title(title: str) -> bool:
    candidate = title.strip()
    if not (MIN_TITLE_CHARS <= len(candidate) <= MAX_TITLE_CHARS):
        return False
    return not any(marker in candidate for marker in _REFUSAL_MARKERS)


class HeuristicTitleInferrer:
    """Pick the first heading-like line of the document's opening excerpt.

    Lines that are pure punctuation or numbers (page counters, rules) are
    skipped, as are markup tags in XML payloads.
    """

    def __init__(
        self,
        *,
        excerpt_chars: int = TITLE_EXCERPT_CHARS,
        min_content_chars: int = TITLE_MIN_CONTENT_CHARS,
    ) -> None:
        self.excerpt_chars = excerpt_chars
        self.min_content_chars = min_content_chars

    def infer(self, text: str, url: str) -> str:
        if len(text or "") < self.min_content_chars:
            return ""

        excerpt = _MARKUP_RE.sub("\n", text[: self.excerpt_chars])
        for raw in excerpt.splitlines():
            line = re.sub(r"\s+", " ", raw).strip()
            if not line or _NOISE_LINE_RE.match(line):
                continue
            if line.lower().startswith(("pdf title:", "author:", "subject:", "keywords:")):
                continue
            if is_plausible_title(line):
                return line
        return ""


def resolve_title(inferrer: TitleInferrer | None, text: str, url: str) -> tuple[str, bool]:
    """Return `(title, inferred)`. Falls back to the URL filename stem."""

    if inferrer is not None:
        try:
            title = (inferrer.infer(text, url) or "").strip()
        except Exception:
            LOGGER.warning("Title inference failed for %s", url, exc_info=True)
            title = ""
        if title and is_plausible_title(title):
            return title, True
    return title_from_filename(url), False


__all__ = [
    "HeuristicTitleInferrer",
    "TitleInferrer",
    "is_plausible_title",
    "resolve_title",
]
