from __future__ import annotations

from ingest.crawler import HeuristicTitleInferrer
from ingest.crawler.titles import is_plausible_title, resolve_title


BODY = "\n".join(
    [
        "PDF Title: internal-build-0042",
        "---- 1 ----",
        "Hydraulic Pump Service Manual",
        "Section 1. Safety precautions before any maintenance work on the unit.",
        "Always depressurize the system first.",
    ]
)


def test_heuristic_picks_first_heading_like_line() -> None:
    inferrer = HeuristicTitleInferrer()
    assert inferrer.infer(BODY, "https://example.com/pump.pdf") == "Hydraulic Pump Service Manual"


def test_heuristic_needs_enough_content() -> None:
    inferrer = HeuristicTitleInferrer()
    assert inferrer.infer("Pump Manual", "https://example.com/pump.pdf") == ""


def test_heuristic_strips_markup() -> None:
    xml = "<?xml version='1.0'?><doc><title>Valve Assembly Guide</title>" + "<p>text</p>" * 20 + "</doc>"
    assert HeuristicTitleInferrer().infer(xml, "https://example.com/v.xml") == "Valve Assembly Guide"


def test_plausible_title_bounds() -> None:
    assert is_plausible_title("Valid title")
    assert not is_plausible_title("Short")
    assert not is_plausible_title("x" * 200)
    assert not is_plausible_title("I cannot determine a title")


class _BrokenInferrer:
    def infer(self, text: str, url: str) -> str:
        raise RuntimeError("model offline")


class _RefusingInferrer:
    def infer(self, text: str, url: str) -> str:
        return "Unable to determine the title"


def test_resolve_title_falls_back_to_filename() -> None:
    url = "https://example.com/docs/pump-manual.pdf"

    assert resolve_title(_BrokenInferrer(), BODY, url) == ("pump-manual", False)
    assert resolve_title(_RefusingInferrer(), BODY, url) == ("pump-manual", False)
    assert resolve_title(None, BODY, url) == ("pump-manual", False)
    assert resolve_title(HeuristicTitleInferrer(), BODY, url) == ("Hydraulic Pump Service Manual", True)
