"""Typed crawl options with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_CRAWL_DELAY_MS,
    DEFAULT_FILE_TYPES,
    DEFAULT_FOLLOW_REDIRECTS,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_MAX_TIME_MINUTES,
    DEFAULT_MIN_ACCEPT_CHARS,
    DEFAULT_MIN_CONTENT_CHARS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_STRICT_DOMAIN_MATCH,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    DEFAULT_VERIFY_TLS,
    HTML_FILE_TYPES,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .errors import ConfigError
from .types import JSONDict, JSONValue


# camelCase keys accepted from JSON bodies posted by the hosting app.
_KEY_ALIASES: dict[str, str] = {
    "maxDepth": "max_depth",
    "maxPages": "max_pages",
    "allowedDomains": "allowed_domains",
    "fileTypes": "file_types",
    "followRedirects": "follow_redirects",
    "maxTimeMinutes": "max_time_minutes",
    "crawlDelayMs": "crawl_delay_ms",
    "crawlDelay": "crawl_delay_ms",
}


def _as_optional_int(value: Any, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid int for '{key}': {value!r}") from exc


def _as_optional_float(value: Any, key: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"Invalid float for '{key}': {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    result = _as_optional_int(value, key)
    if result is None:
        raise ConfigError(f"Missing required int for '{key}'")
    return result


def _as_float(value: Any, key: str) -> float:
    result = _as_optional_float(value, key)
    if result is None:
        raise ConfigError(f"Missing required float for '{key}'")
    return result


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value]
    raise ConfigError(f"Invalid list for '{key}': {value!r}")


def _normalize_file_type(value: str) -> str:
    ext = value.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


@dataclass(slots=True)
class CrawlOptions:
    """Session options. `None` limits mean "unbounded"."""

    max_depth: int | None = DEFAULT_MAX_DEPTH
    max_pages: int | None = DEFAULT_MAX_PAGES
    allowed_domains: list[str] = field(default_factory=list)
    file_types: list[str] = field(default_factory=lambda: list(DEFAULT_FILE_TYPES))
    follow_redirects: bool = DEFAULT_FOLLOW_REDIRECTS
    max_time_minutes: float | None = DEFAULT_MAX_TIME_MINUTES
    crawl_delay_ms: int = DEFAULT_CRAWL_DELAY_MS
    strict_domain_match: bool = DEFAULT_STRICT_DOMAIN_MATCH

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    verify_tls: bool = DEFAULT_VERIFY_TLS
    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))

    min_content_chars: int = DEFAULT_MIN_CONTENT_CHARS
    min_accept_chars: int = DEFAULT_MIN_ACCEPT_CHARS

    metadata: dict[str, JSONValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_depth is not None and self.max_depth < 0:
            raise ConfigError("max_depth must be >= 0 when set")
        if self.max_pages is not None and self.max_pages <= 0:
            raise ConfigError("max_pages must be > 0 when set")
        if self.max_time_minutes is not None and self.max_time_minutes <= 0:
            raise ConfigError("max_time_minutes must be > 0 when set")
        if self.crawl_delay_ms < 0:
            raise ConfigError("crawl_delay_ms must be >= 0")
        if self.timeout_seconds <= 0:
            raise ConfigError("timeout_seconds must be > 0")
        if self.retries < 0:
            raise ConfigError("retries must be >= 0")
        if self.retry_backoff_seconds < 0:
            raise ConfigError("retry_backoff_seconds must be >= 0")
        if self.min_content_chars < 0 or self.min_accept_chars < 0:
            raise ConfigError("acceptance thresholds must be >= 0")

        self.allowed_domains = [
            domain.strip().lower() for domain in self.allowed_domains if domain and domain.strip()
        ]

        file_types: list[str] = []
        for value in self.file_types:
            ext = _normalize_file_type(value)
            if ext and ext not in file_types:
                file_types.append(ext)
        self.file_types = file_types

    @property
    def document_file_types(self) -> list[str]:
        """Configured extensions that route to the document parser."""

        return [ext for ext in self.file_types if ext not in HTML_FILE_TYPES]

    @property
    def crawl_delay_seconds(self) -> float:
        return self.crawl_delay_ms / 1000.0

    @property
    def max_time_seconds(self) -> float | None:
        return None if self.max_time_minutes is None else self.max_time_minutes * 60.0

    def headers(self) -> dict[str, str]:
        """Return request headers with the configured user agent."""

        merged: dict[str, str] = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize options for manifests and reproducibility."""

        return {
            "max_depth": self.max_depth,
            "max_pages": self.max_pages,
            "allowed_domains": list(self.allowed_domains),
            "file_types": list(self.file_types),
            "follow_redirects": self.follow_redirects,
            "max_time_minutes": self.max_time_minutes,
            "crawl_delay_ms": self.crawl_delay_ms,
            "strict_domain_match": self.strict_domain_match,
            "timeout_seconds": self.timeout_seconds,
            "retries": self.retries,
            "retry_backoff_seconds": self.retry_backoff_seconds,
            "verify_tls": self.verify_tls,
            "user_agent": self.user_agent,
            "default_headers": dict(self.default_headers),
            "min_content_chars": self.min_content_chars,
            "min_accept_chars": self.min_accept_chars,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlOptions":
        """Build options from a parsed dictionary (snake_case or camelCase keys)."""

        data: dict[str, Any] = {}
        for key, value in payload.items():
            data[_KEY_ALIASES.get(str(key), str(key))] = value

        file_types = data.get("file_types")
        return cls(
            max_depth=_as_optional_int(data.get("max_depth", DEFAULT_MAX_DEPTH), "max_depth"),
            max_pages=_as_optional_int(data.get("max_pages", DEFAULT_MAX_PAGES), "max_pages"),
            allowed_domains=_as_str_list(data.get("allowed_domains"), "allowed_domains"),
            file_types=(
                list(DEFAULT_FILE_TYPES)
                if file_types is None
                else _as_str_list(file_types, "file_types")
            ),
            follow_redirects=_as_bool(
                data.get("follow_redirects", DEFAULT_FOLLOW_REDIRECTS),
                "follow_redirects",
            ),
            max_time_minutes=_as_optional_float(
                data.get("max_time_minutes", DEFAULT_MAX_TIME_MINUTES),
                "max_time_minutes",
            ),
            crawl_delay_ms=_as_int(
                data.get("crawl_delay_ms", DEFAULT_CRAWL_DELAY_MS),
                "crawl_delay_ms",
            ),
            strict_domain_match=_as_bool(
                data.get("strict_domain_match", DEFAULT_STRICT_DOMAIN_MATCH),
                "strict_domain_match",
            ),
            timeout_seconds=_as_float(
                data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
                "timeout_seconds",
            ),
            retries=_as_int(data.get("retries", DEFAULT_RETRIES), "retries"),
            retry_backoff_seconds=_as_float(
                data.get("retry_backoff_seconds", DEFAULT_RETRY_BACKOFF_SECONDS),
                "retry_backoff_seconds",
            ),
            verify_tls=_as_bool(data.get("verify_tls", DEFAULT_VERIFY_TLS), "verify_tls"),
            user_agent=str(data.get("user_agent", DEFAULT_USER_AGENT)),
            default_headers={
                str(k): str(v)
                for k, v in dict(data.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
            min_content_chars=_as_int(
                data.get("min_content_chars", DEFAULT_MIN_CONTENT_CHARS),
                "min_content_chars",
            ),
            min_accept_chars=_as_int(
                data.get("min_accept_chars", DEFAULT_MIN_ACCEPT_CHARS),
                "min_accept_chars",
            ),
            metadata=dict(data.get("metadata", {})),
        )

    def merged(self, overrides: Mapping[str, Any]) -> "CrawlOptions":
        """Return a copy with non-None overrides applied."""

        payload = self.to_dict()
        for key, value in overrides.items():
            if value is not None:
                payload[_KEY_ALIASES.get(key, key)] = value
        return CrawlOptions.from_dict(payload)


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_options(path: str | Path) -> CrawlOptions:
    """Load CrawlOptions from JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        try:
            payload = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON config at {config_path}: {exc}") from exc
    else:
        try:
            payload = _load_yaml(config_path)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML config at {config_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Config at {config_path} must be a mapping")

    return CrawlOptions.from_dict(payload)


def save_options(options: CrawlOptions, path: str | Path) -> None:
    """Save CrawlOptions as JSON or YAML based on file extension."""

    out_path = Path(path)
    suffix = out_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = options.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


__all__ = [
    "CrawlOptions",
    "load_options",
    "save_options",
]
