"""Route fetched payloads to the document, HTML, or plain-text path."""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from .types import DocType
from .url import matches_file_type, url_extension


class PageRoute(str, Enum):
    """Processing path chosen for one fetched URL."""

    DOCUMENT = "document"
    HTML = "html"
    UNKNOWN = "unknown"


# Content-type fragments that identify a document extension. Checked in order;
# "xhtml" must not be read as ".xml".
_CONTENT_TYPE_EXTENSIONS: tuple[tuple[str, str], ...] = (
    ("pdf", ".pdf"),
    ("msword", ".doc"),
    ("wordprocessingml", ".docx"),
    ("json", ".json"),
    ("csv", ".csv"),
    ("text/plain", ".txt"),
)

_EXTENSION_DOC_TYPES: dict[str, DocType] = {
    ".pdf": DocType.PDF,
    ".doc": DocType.DOC,
    ".docx": DocType.DOC,
    ".txt": DocType.TXT,
    ".xml": DocType.XML,
    ".json": DocType.JSON,
    ".csv": DocType.CSV,
    ".html": DocType.HTML,
    ".htm": DocType.HTML,
}


def _normalized_content_type(content_type: str | None) -> str:
    return (content_type or "").split(";", maxsplit=1)[0].strip().lower()


def extension_for_content_type(content_type: str | None) -> str | None:
    """Map a response content-type to a document extension, if it names one."""

    ctype = _normalized_content_type(content_type)
    if not ctype:
        return None
    for fragment, ext in _CONTENT_TYPE_EXTENSIONS:
        if fragment in ctype:
            return ext
    if "xml" in ctype and "html" not in ctype:
        return ".xml"
    return None


def classify(
    url: str,
    content_type: str | None,
    document_file_types: Iterable[str],
) -> PageRoute:
    """Decide how one fetched URL is processed.

    Precedence: a configured non-HTML document extension on the URL path or
    implied by the content-type, then any PDF content-type, then HTML or text
    content-types. Everything else is decoded best-effort as unknown.
    """

    doc_types = [ext.lower() for ext in document_file_types]
    if matches_file_type(url, doc_types):
        return PageRoute.DOCUMENT

    ext = extension_for_content_type(content_type)
    if ext is not None and ext in doc_types:
        return PageRoute.DOCUMENT

    ctype = _normalized_content_type(content_type)
    if "pdf" in ctype:
        return PageRoute.DOCUMENT
    if "html" in ctype or "text" in ctype:
        return PageRoute.HTML
    return PageRoute.UNKNOWN


def doc_type_for(url: str, content_type: str | None) -> DocType:
    """Resolve the document type of a payload on the document path.

    The URL extension wins; the content-type is consulted only when the path
    has no recognised extension.
    """

    doc_type = _EXTENSION_DOC_TYPES.get(url_extension(url))
    if doc_type is not None:
        return doc_type

    ext = extension_for_content_type(content_type)
    if ext is not None:
        return _EXTENSION_DOC_TYPES[ext]

    ctype = _normalized_content_type(content_type)
    if "html" in ctype:
        return DocType.HTML
    if "text" in ctype:
        return DocType.TXT
    return DocType.UNKNOWN


__all__ = [
    "PageRoute",
    "classify",
    "doc_type_for",
    "extension_for_content_type",
]
