from __future__ import annotations

import pytest

from ingest.crawler import HTMLParser, HTMLParserConfig, ParseError, PDFExtraction, PDFParser


PAGE = """
<html>
  <head><title>Pump Manual - Chapter 3</title><style>.x { color: red }</style></head>
  <body>
    <nav><a href="/manuals/">All manuals</a></nav>
    <main>
      <h1>Disassembly</h1>
      <p>Remove the   four bolts.</p>
      <script>trackPage();</script>
      <img src="img/exploded.png" alt="Exploded view">
      <img src="">
    </main>
    <footer><a href="/contact">Contact</a></footer>
  </body>
</html>
"""


def test_html_parser_uses_main_content() -> None:
    extraction = HTMLParser().parse(PAGE, base_url="https://example.com/manuals/pump/")

    assert extraction.title == "Pump Manual - Chapter 3"
    assert extraction.text == "Disassembly\nRemove the four bolts."
    assert extraction.extractor == "selector:main"
    assert [image.src for image in extraction.images] == ["https://example.com/manuals/pump/img/exploded.png"]
    assert extraction.images[0].alt == "Exploded view"
    assert [link.url for link in extraction.links] == [
        "https://example.com/manuals/",
        "https://example.com/contact",
    ]


def test_html_parser_falls_back_to_body_and_heading_title() -> None:
    parser = HTMLParser(HTMLParserConfig(use_trafilatura=False, use_readability=False))
    html = "<html><body><h2>Wiring Diagram</h2><div>Connect the red lead first.</div></body></html>"

    extraction = parser.parse(html.encode("utf-8"), base_url="https://example.com/")

    assert extraction.title == "Wiring Diagram"
    assert extraction.extractor == "body"
    assert "Connect the red lead first." in extraction.text


def test_html_parser_untitled_page() -> None:
    parser = HTMLParser(HTMLParserConfig(use_trafilatura=False, use_readability=False))
    extraction = parser.parse("<html><body><div>plain</div></body></html>", base_url="https://example.com/")
    assert extraction.title == "Untitled"


def test_pdf_parser_rejects_garbage() -> None:
    with pytest.raises(ParseError):
        PDFParser().parse(b"definitely not a pdf")


def test_pdf_info_lines() -> None:
    extraction = PDFExtraction(
        text="Body",
        info={"Title": "Pump Manual", "Author": "ACME", "Keywords": "pump, seal"},
    )

    assert extraction.info_lines() == ["PDF Title: Pump Manual", "Author: ACME", "Keywords: pump, seal"]
    assert extraction.info_lines(skip_title="Pump Manual") == ["Author: ACME", "Keywords: pump, seal"]
    assert extraction.with_info(skip_title="Pump Manual") == "Author: ACME\nKeywords: pump, seal\n\nBody"
    assert PDFExtraction(text="Body").with_info() == "Body"
