"""HTML extraction: title, main content, images, and outgoing links."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, FeatureNotFound
from readability import Document as ReadabilityDocument
import trafilatura

from ..constants import MAIN_CONTENT_SELECTORS, NAVIGATION_SELECTORS
from ..errors import ParseError
from ..links import LinkCandidate, extract_links
from ..types import ImageRef
from ..url import resolve_url


LOGGER = logging.getLogger(__name__)

UNTITLED = "Untitled"


@dataclass(slots=True)
class HTMLParserConfig:
    """Config for HTML extraction."""

    content_selectors: list[str] = field(default_factory=lambda: list(MAIN_CONTENT_SELECTORS))
    navigation_selectors: list[str] = field(default_factory=lambda: list(NAVIGATION_SELECTORS))
    strip_tags: tuple[str, ...] = ("script", "style", "noscript")
    use_trafilatura: bool = True
    use_readability: bool = True


@dataclass(slots=True)
class HTMLExtraction:
    """Everything the crawl loop needs from one HTML page."""

    title: str
    text: str
    images: list[ImageRef]
    links: list[LinkCandidate]
    extractor: str


class HTMLParser:
    """Parse HTML with BeautifulSoup, falling back to Trafilatura/Readability.

    Main content comes from the first content container with text
    (`main`, `article`, `.content`, ...). Pages without one go through
    Trafilatura, then Readability, then the plain body text.
    """

    def __init__(self, config: HTMLParserConfig | None = None) -> None:
        self.config = config or HTMLParserConfig()

    def parse(self, html: str | bytes, *, base_url: str) -> HTMLExtraction:
        html_text = self._coerce_html_text(html)

        try:
            soup = BeautifulSoup(html_text, "lxml")
        except (FeatureNotFound, ValueError, TypeError) as exc:
            raise ParseError(f"HTML parsing failed: {exc.__class__.__name__}: {exc}") from exc

        links = extract_links(
            soup,
            base_url=base_url,
            navigation_selectors=self.config.navigation_selectors,
        )
        images = self._extract_images(soup, base_url)
        title = self._extract_title(soup)

        for element in soup.find_all(list(self.config.strip_tags)):
            element.decompose()

        text, extractor = self._extract_main_content(soup)
        if not text:
            text, extractor = self._extract_with_trafilatura(html_text), "trafilatura"
        if not text:
            readability_text, readability_title = self._extract_with_readability(html_text)
            text, extractor = readability_text, "readability"
            if not title and readability_title:
                title = readability_title
        if not text:
            text, extractor = self._body_text(soup), "body"

        return HTMLExtraction(
            title=title or UNTITLED,
            text=text,
            images=images,
            links=links,
            extractor=extractor,
        )

    def _extract_main_content(self, soup: BeautifulSoup) -> tuple[str, str]:
        for selector in self.config.content_selectors:
            element = soup.select_one(selector)
            if element is None:
                continue
            text = self._clean_text(element.get_text("\n", strip=True))
            if text:
                return text, f"selector:{selector}"
        return "", ""

    def _extract_with_trafilatura(self, html_text: str) -> str:
        if not self.config.use_trafilatura:
            return ""

        try:
            extracted = trafilatura.extract(
                html_text,
                output_format="txt",
                include_comments=False,
                include_tables=True,
                include_images=False,
                deduplicate=True,
            )
        except Exception as exc:
            LOGGER.debug("Trafilatura extraction failed: %s: %s", exc.__class__.__name__, exc)
            return ""
        return self._clean_text(extracted or "")

    def _extract_with_readability(self, html_text: str) -> tuple[str, str | None]:
        if not self.config.use_readability:
            return "", None

        try:
            doc = ReadabilityDocument(html_text)
            title = (doc.short_title() or "").strip() or None
            summary_html = doc.summary()
        except Exception as exc:
            LOGGER.debug("Readability extraction failed: %s: %s", exc.__class__.__name__, exc)
            return "", None

        if isinstance(summary_html, bytes):
            summary_html = summary_html.decode("utf-8", errors="replace")
        if not summary_html:
            return "", title

        text = BeautifulSoup(summary_html, "lxml").get_text("\n", strip=True)
        return self._clean_text(text), title

    def _body_text(self, soup: BeautifulSoup) -> str:
        root = soup.body or soup
        return self._clean_text(root.get_text("\n", strip=True))

    @staticmethod
    def _extract_images(soup: BeautifulSoup, base_url: str) -> list[ImageRef]:
        images: list[ImageRef] = []
        for img in soup.find_all("img"):
            src = img.get("src")
            if not src:
                continue
            resolved = resolve_url(base_url, src)
            if not resolved:
                continue
            images.append(ImageRef(src=resolved, alt=(img.get("alt") or "").strip()))
        return images

    @staticmethod
    def _clean_text(text: str) -> str:
        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        normalized = re.sub(r"[ \t]+", " ", normalized)
        normalized = re.sub(r"\n\s*\n+", "\n\n", normalized)
        return normalized.strip()

    @staticmethod
    def _coerce_html_text(html: str | bytes) -> str:
        if isinstance(html, bytes):
            return html.decode("utf-8", errors="replace")
        return html

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str | None:
        if soup.title and soup.title.get_text(strip=True):
            return soup.title.get_text(" ", strip=True)
        heading = soup.find(["h1", "h2"])
        if heading:
            text = heading.get_text(" ", strip=True)
            if text:
                return text
        return None


__all__ = [
    "HTMLExtraction",
    "HTMLParser",
    "HTMLParserConfig",
    "UNTITLED",
]
