"""PDF text and document-info extraction with a pdfplumber fallback."""

from __future__ import annotations

import io
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from itertools import islice

import pdfplumber
from pypdf import PdfReader

from ..errors import ParseError


LOGGER = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"[A-Za-z0-9']+")

BOILERPLATE_LINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*page\s+\d+\s*(of\s*\d+)?\s*$", re.IGNORECASE),
    re.compile(r"^\s*\d+\s*/\s*\d+\s*$", re.IGNORECASE),
    re.compile(r"\ball rights reserved\b", re.IGNORECASE),
    re.compile(r"\bprinted on\b", re.IGNORECASE),
)

# Document-info keys prefixed to the extracted text, in this order.
INFO_FIELDS: tuple[tuple[str, str], ...] = (
    ("/Title", "Title"),
    ("/Author", "Author"),
    ("/Subject", "Subject"),
    ("/Keywords", "Keywords"),
)


@dataclass(slots=True)
class PDFParserConfig:
    """Config for PDF extraction."""

    use_pdfplumber_fallback: bool = True
    max_pages: int | None = None
    min_document_chars: int = 180
    min_document_words: int = 30
    repeated_line_threshold_ratio: float = 0.6


@dataclass(slots=True)
class PDFExtraction:
    """Cleaned page text plus the document-info dictionary."""

    text: str
    info: dict[str, str] = field(default_factory=dict)
    extractor: str = "pypdf"
    pages: int = 0

    def info_lines(self, *, skip_title: str | None = None) -> list[str]:
        lines: list[str] = []
        for _, label in INFO_FIELDS:
            value = self.info.get(label)
            if not value:
                continue
            if label == "Title":
                if skip_title and value.strip() == skip_title.strip():
                    continue
                lines.append(f"PDF Title: {value}")
                continue
            lines.append(f"{label}: {value}")
        return lines

    def with_info(self, *, skip_title: str | None = None) -> str:
        """Text with the document-info lines prefixed."""

        lines = self.info_lines(skip_title=skip_title)
        if not lines:
            return self.text
        return "\n".join(lines) + "\n\n" + self.text


def _page_lines(page_text: str) -> list[str]:
    text = (page_text or "").replace("\xa0", " ")
    return [line for line in (" ".join(raw.split()) for raw in text.splitlines()) if line]


def _repeat_key(line: str) -> str:
    return " ".join(re.sub(r"\W+", " ", line.lower()).split())


def _is_boilerplate(line: str) -> bool:
    return len(line) <= 180 and any(pattern.search(line) for pattern in BOILERPLATE_LINE_PATTERNS)


def _word_count(pages: list[str]) -> int:
    return sum(len(TOKEN_RE.findall(page)) for page in pages)


class PDFParser:
    """Extract text from a PDF payload.

    pypdf runs first; pdfplumber is tried when pypdf's output is low-signal
    (few words, common for scanned or oddly encoded manuals). Raises
    `ParseError` only when neither extractor can open the document.
    """

    def __init__(self, config: PDFParserConfig | None = None) -> None:
        self.config = config or PDFParserConfig()

    def parse(self, pdf_bytes: bytes) -> PDFExtraction:
        if not isinstance(pdf_bytes, (bytes, bytearray)):
            raise ParseError("pdf_bytes must be bytes")
        payload = bytes(pdf_bytes)

        info: dict[str, str] = {}
        pypdf_error: str | None = None
        extractor = "pypdf"
        try:
            pages, info = self._pypdf(payload)
        except Exception as exc:
            pages, pypdf_error = [], f"pypdf extraction failed: {type(exc).__name__}: {exc}"

        if self.config.use_pdfplumber_fallback and self._low_signal(pages):
            try:
                fallback = self._pdfplumber(payload)
            except Exception as exc:
                plumber_error = f"pdfplumber extraction failed: {type(exc).__name__}: {exc}"
                if pypdf_error:
                    raise ParseError(f"{pypdf_error}; {plumber_error}") from exc
                LOGGER.debug("pdfplumber fallback failed: %s", exc)
                fallback = []
            if _word_count(fallback) > _word_count(pages):
                pages, extractor = fallback, "pdfplumber"
        elif pypdf_error:
            raise ParseError(pypdf_error)

        return PDFExtraction(text=self._clean(pages), info=info, extractor=extractor, pages=len(pages))

    def _pypdf(self, payload: bytes) -> tuple[list[str], dict[str, str]]:
        reader = PdfReader(io.BytesIO(payload))
        if reader.is_encrypted and not reader.decrypt(""):
            raise ParseError("PDF is encrypted and could not be decrypted")

        metadata = reader.metadata or {}
        info = {
            label: str(metadata[key]).strip()
            for key, label in INFO_FIELDS
            if metadata.get(key) is not None and str(metadata[key]).strip()
        }
        return self._page_texts(reader.pages), info

    def _pdfplumber(self, payload: bytes) -> list[str]:
        with pdfplumber.open(io.BytesIO(payload)) as pdf:
            return self._page_texts(pdf.pages)

    def _page_texts(self, pages) -> list[str]:
        selected = islice(pages, self.config.max_pages) if self.config.max_pages else pages
        return [page.extract_text() or "" for page in selected]

    def _low_signal(self, pages: list[str]) -> bool:
        if not pages:
            return True
        chars = sum(map(len, pages))
        return _word_count(pages) < self.config.min_document_words or chars < self.config.min_document_chars

    def _clean(self, pages: list[str]) -> str:
        """Drop page-number lines and running headers repeated on most pages."""

        split_pages = [_page_lines(page) for page in pages]
        seen_on = Counter(key for lines in split_pages for key in {_repeat_key(line) for line in lines})
        threshold = max(2, int(max(1, len(split_pages)) * self.config.repeated_line_threshold_ratio))

        def keep(line: str) -> bool:
            running_header = len(line) <= 120 and seen_on[_repeat_key(line)] >= threshold
            return not running_header and not _is_boilerplate(line)

        blocks = []
        for lines in split_pages:
            kept = [line for line in lines if keep(line)]
            if kept:
                blocks.append("\n".join(kept))
        return "\n\n".join(blocks).strip()


__all__ = [
    "BOILERPLATE_LINE_PATTERNS",
    "PDFExtraction",
    "PDFParser",
    "PDFParserConfig",
]
