"""Acceptance heuristic for extracted HTML text."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .constants import (
    DEFAULT_MIN_ACCEPT_CHARS,
    DEFAULT_MIN_CONTENT_CHARS,
    DOCUMENTATION_VOCABULARY,
    IMAGES_SECTION_HEADER,
)
from .types import ImageRef


@dataclass(slots=True)
class AcceptanceConfig:
    """Thresholds for keeping an HTML page.

    Text below `min_content_chars` is always rejected. Above that floor a page
    is kept when it is long, mentions a documentation term, or embeds images.
    """

    min_content_chars: int = DEFAULT_MIN_CONTENT_CHARS
    min_accept_chars: int = DEFAULT_MIN_ACCEPT_CHARS
    vocabulary: list[str] = field(default_factory=lambda: list(DOCUMENTATION_VOCABULARY))


def looks_like_documentation(
    text: str,
    *,
    has_images: bool = False,
    config: AcceptanceConfig | None = None,
) -> bool:
    cfg = config or AcceptanceConfig()
    stripped = (text or "").strip()
    if not stripped or len(stripped) < cfg.min_content_chars:
        return False

    if len(stripped) >= cfg.min_accept_chars:
        return True
    if has_images:
        return True

    lowered = stripped.lower()
    return any(term in lowered for term in cfg.vocabulary)


def format_images_block(images: Sequence[ImageRef]) -> str:
    """Render image references as a trailing content block ('' when none)."""

    if not images:
        return ""
    lines = [IMAGES_SECTION_HEADER]
    for index, image in enumerate(images, start=1):
        label = image.alt.strip() or "Diagram"
        lines.append(f"Image {index}: {label} ({image.src})")
    return "\n".join(lines)


def with_images(text: str, images: Sequence[ImageRef]) -> str:
    block = format_images_block(images)
    if not block:
        return text
    return f"{text.rstrip()}\n\n{block}" if text.strip() else block


__all__ = [
    "AcceptanceConfig",
    "format_images_block",
    "looks_like_documentation",
    "with_images",
]
