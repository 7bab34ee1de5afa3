"""Default values and keyword vocabularies shared by crawler modules."""

from __future__ import annotations


DEFAULT_FILE_TYPES: tuple[str, ...] = (
    ".pdf",
    ".doc",
    ".docx",
    ".txt",
    ".html",
    ".htm",
    ".xml",
    ".json",
    ".csv",
)
HTML_FILE_TYPES = frozenset({".html", ".htm"})

DEFAULT_MAX_DEPTH: int | None = None
DEFAULT_MAX_PAGES: int | None = None
DEFAULT_MAX_TIME_MINUTES: float | None = None
DEFAULT_CRAWL_DELAY_MS = 300
DEFAULT_FOLLOW_REDIRECTS = True
DEFAULT_STRICT_DOMAIN_MATCH = False

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRIES = 1
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
DEFAULT_VERIFY_TLS = True
DEFAULT_USER_AGENT = "ManualCrawler/1.0 (technical documentation ingestion)"
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

DEFAULT_MIN_CONTENT_CHARS = 100
DEFAULT_MIN_ACCEPT_CHARS = 500

# Job defaults used when a background crawl is started without explicit limits.
JOB_DEFAULT_MAX_PAGES = 500
JOB_DEFAULT_MAX_DEPTH = 8
JOB_DEFAULT_MAX_TIME_MINUTES = 60.0

SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
JSON_INDENT = 2

TEXT_HASH_PREFIX_CHARS = 16
TITLE_EXCERPT_CHARS = 2000
TITLE_MIN_CONTENT_CHARS = 100

HIGH_PRIORITY_KEYWORDS: tuple[str, ...] = (
    "manual",
    "service",
    "repair",
    "troubleshoot",
    "maintenance",
    "library",
    "document",
    "pdf",
    "instruction",
    "owner",
    "documentation",
    "spec",
    "guide",
    "tutorial",
    "how-to",
    "procedure",
    "component",
    "technical",
    "parts",
)
MEDIUM_PRIORITY_KEYWORDS: tuple[str, ...] = (
    "installation",
    "model",
    "series",
    "reference",
    "handbook",
    "training",
    "knowledge",
    "wiki",
    "help",
    "support",
    "resource",
    "troubleshooting",
    "diagram",
    "schematic",
    "assembly",
    "download",
    "datasheet",
    "catalog",
)
LOW_PRIORITY_KEYWORDS: tuple[str, ...] = (
    "info",
    "product",
    "warranty",
    "faq",
    "about",
    "contact",
    "news",
    "blog",
    "article",
    "home",
    "search",
    "login",
    "cart",
    "account",
)
INDEX_PAGE_MARKERS: tuple[str, ...] = ("index", "dashboard", "library", "database")

DOCUMENTATION_VOCABULARY: tuple[str, ...] = (
    "procedure",
    "step",
    "instruction",
    "guide",
    "manual",
    "warning",
    "caution",
    "specification",
    "installation",
    "maintenance",
    "troubleshoot",
    "component",
    "service",
    "repair",
    "owner",
    "technical",
    "operation",
    "safety",
    "parts",
    "diagram",
    "tutorial",
    "documentation",
    "reference",
    "torque",
    "bolt",
    "assembly",
    "disassembly",
    "replace",
    "remove",
    "install",
    "adjust",
)

NAVIGATION_SELECTORS: tuple[str, ...] = (
    "nav a",
    ".navigation a",
    ".menu a",
    ".sidebar a",
    ".breadcrumb a",
    ".toc a",
    ".table-of-contents a",
    '[class*="menu"] a',
    '[class*="nav"] a',
)
MAIN_CONTENT_SELECTORS: tuple[str, ...] = (
    "main",
    "article",
    ".content",
    "#content",
    ".documentation",
    ".manual",
)
IMAGES_SECTION_HEADER = "=== IMAGES AND DIAGRAMS ==="


__all__ = [
    "DEFAULT_CRAWL_DELAY_MS",
    "DEFAULT_FILE_TYPES",
    "DEFAULT_FOLLOW_REDIRECTS",
    "DEFAULT_HTTP_HEADERS",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_PAGES",
    "DEFAULT_MAX_TIME_MINUTES",
    "DEFAULT_MIN_ACCEPT_CHARS",
    "DEFAULT_MIN_CONTENT_CHARS",
    "DEFAULT_RETRIES",
    "DEFAULT_RETRY_BACKOFF_SECONDS",
    "DEFAULT_STRICT_DOMAIN_MATCH",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_USER_AGENT",
    "DEFAULT_VERIFY_TLS",
    "DOCUMENTATION_VOCABULARY",
    "HIGH_PRIORITY_KEYWORDS",
    "HTML_FILE_TYPES",
    "IMAGES_SECTION_HEADER",
    "INDEX_PAGE_MARKERS",
    "JOB_DEFAULT_MAX_DEPTH",
    "JOB_DEFAULT_MAX_PAGES",
    "JOB_DEFAULT_MAX_TIME_MINUTES",
    "JSON_INDENT",
    "LOW_PRIORITY_KEYWORDS",
    "MAIN_CONTENT_SELECTORS",
    "MEDIUM_PRIORITY_KEYWORDS",
    "NAVIGATION_SELECTORS",
    "SUPPORTED_CONFIG_SUFFIXES",
    "TEXT_HASH_PREFIX_CHARS",
    "TITLE_EXCERPT_CHARS",
    "TITLE_MIN_CONTENT_CHARS",
]
