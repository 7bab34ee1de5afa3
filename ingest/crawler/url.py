"""URL normalization, domain filtering, and file-type helpers."""

from __future__ import annotations

import posixpath
import re
from typing import Iterable
from urllib.parse import (
    parse_qsl,
    quote,
    unquote,
    urlencode,
    urljoin,
    urlsplit,
    urlunsplit,
)

from .errors import ConfigError


WEB_SCHEMES = {"http": 80, "https": 443}
UNFOLLOWABLE_HREFS = ("#", "javascript:", "mailto:", "tel:", "data:")
# Click ids and campaign tags; they never change the document served.
_CAMPAIGN_KEY = re.compile(r"^(utm_.*|fbclid|gclid|mc_cid|mc_eid|mkt_tok|igshid|ref_src)$")
_REPEATED_SLASHES = re.compile(r"/{2,}")
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"


def host_from_url(url: str) -> str:
    """Extract lowercase hostname from URL ('' when absent or malformed)."""

    try:
        parsed = urlsplit(url)
    except ValueError:
        return ""
    return (parsed.hostname or "").strip().lower().strip(".")


def _bare_host(value: str) -> str:
    value = (value or "").strip().lower()
    if not value:
        return ""
    host = host_from_url(value if "://" in value else "//" + value)
    return host[4:] if host.startswith("www.") else host


def _clean_path(path: str) -> str:
    path = _REPEATED_SLASHES.sub("/", path or "/")
    trailing = path.endswith("/")
    path = posixpath.normpath(path)
    if not path.startswith("/"):
        path = "/" + path
    # normpath drops a meaningful trailing slash ("/brakes/" is not "/brakes").
    if trailing and not path.endswith("/"):
        path += "/"
    return quote(unquote(path), safe=_PATH_SAFE)


def _clean_query(query: str) -> str:
    kept = [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if not _CAMPAIGN_KEY.match(key.strip().lower())
    ]
    return urlencode(kept)


def normalize_url(url: str) -> str | None:
    """Canonicalize an absolute http(s) URL for visited/queued bookkeeping.

    The scheme and host are lowercased, default ports and the fragment are
    dropped, and campaign parameters are removed. Remaining query parameters
    keep their order: some document servers key on it. Returns `None` when
    the URL cannot be crawled.
    """

    candidate = (url or "").strip()
    if not candidate or re.search(r"\s", candidate):
        return None

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if scheme not in WEB_SCHEMES or not host:
        return None

    netloc = host if port in (None, WEB_SCHEMES[scheme]) else f"{host}:{port}"
    return urlunsplit((scheme, netloc, _clean_path(parts.path), _clean_query(parts.query), ""))


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve possibly relative link against base URL; `None` when unusable."""

    candidate = (href or "").strip()
    if not candidate or candidate.lower().startswith(UNFOLLOWABLE_HREFS):
        return None
    try:
        return normalize_url(urljoin(base_url, candidate))
    except ValueError:
        return None


def coerce_start_url(url: str) -> str:
    """Prefix `https://` to a bare host/path entered by a user."""

    candidate = (url or "").strip()
    if candidate and not candidate.lower().startswith(("http://", "https://")):
        candidate = "https://" + candidate
    return candidate


def validate_seed_url(url: str) -> str:
    """Return the normalized seed URL or raise `ConfigError`."""

    normalized = normalize_url(url) if isinstance(url, str) else None
    if normalized is None or not host_from_url(normalized):
        raise ConfigError(f"Invalid seed URL: {url!r}")
    return normalized


def matching_allowed_domain(url_or_host: str, allowed_domains: Iterable[str]) -> str | None:
    """Return the longest allowed domain equal to or a parent of the host."""

    host = _bare_host(url_or_host)
    best: str | None = None
    for domain in map(_bare_host, allowed_domains):
        if not host or not domain:
            continue
        if host != domain and not host.endswith("." + domain):
            continue
        if best is None or len(domain) > len(best):
            best = domain
    return best


class DomainFilter:
    """Allow/deny decision per discovered URL.

    With an empty allow-list every URL passes. Otherwise the hostname must
    contain one of the configured domain strings as a substring, so an entry
    "example.com" also admits "notexample.com". `strict=True` switches to
    exact-or-subdomain matching.
    """

    def __init__(self, domains: Iterable[str] = (), *, strict: bool = False) -> None:
        self.domains = [item.strip().lower() for item in domains if item and item.strip()]
        self.strict = strict

    def allowed(self, url: str) -> bool:
        if not self.domains:
            return True
        host = host_from_url(url)
        if not host:
            return False
        if self.strict:
            return matching_allowed_domain(host, self.domains) is not None
        return any(item in host for item in self.domains)

    __call__ = allowed


def url_path(url: str) -> str:
    try:
        return unquote(urlsplit(url).path or "/")
    except ValueError:
        return ""


def url_extension(url: str) -> str:
    """Lowercase extension of the URL path's last segment ('' when none)."""

    _, ext = posixpath.splitext(posixpath.basename(url_path(url)))
    return ext.lower()


def matches_file_type(url: str, file_types: Iterable[str]) -> str | None:
    """Return the configured extension the URL path ends with, if any."""

    ext = url_extension(url)
    if not ext:
        return None
    for file_type in file_types:
        if ext == file_type.lower():
            return file_type.lower()
    return None


def filename_from_url(url: str) -> str:
    """Last path segment, or the host for directory-style URLs."""

    name = posixpath.basename(url_path(url).rstrip("/"))
    return name or host_from_url(url) or "document"


def title_from_filename(url: str) -> str:
    """Filename without extension; the fallback title when inference fails."""

    stem, _ = posixpath.splitext(filename_from_url(url))
    return stem or filename_from_url(url)


__all__ = [
    "DomainFilter",
    "UNFOLLOWABLE_HREFS",
    "WEB_SCHEMES",
    "coerce_start_url",
    "filename_from_url",
    "host_from_url",
    "matches_file_type",
    "matching_allowed_domain",
    "normalize_url",
    "resolve_url",
    "title_from_filename",
    "url_extension",
    "url_path",
    "validate_seed_url",
]
