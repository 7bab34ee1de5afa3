"""Parser package exports."""

from .html_parser import HTMLExtraction, HTMLParser, HTMLParserConfig
from .pdf_parser import PDFExtraction, PDFParser, PDFParserConfig

__all__ = [
    "HTMLExtraction",
    "HTMLParser",
    "HTMLParserConfig",
    "PDFExtraction",
    "PDFParser",
    "PDFParserConfig",
]
