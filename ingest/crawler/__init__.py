"""Technical-documentation crawler: options, shared types, and session components."""

from .acceptance import AcceptanceConfig, format_images_block, looks_like_documentation, with_images
from .classifier import PageRoute, classify, doc_type_for
from .config import CrawlOptions, load_options, save_options
from .dedup import ContentHashRegistry, HashLayer
from .errors import ConfigError, CrawlerError, EmbedError, FetchError, ParseError
from .fetcher import Fetcher
from .frontier import BudgetGovernor, EnqueueResult, EnqueueStatus, Frontier
from .jobs import CrawlJob, InMemoryJobStore, JobStatus, JobStore, summarize_jobs
from .links import (
    LinkCandidate,
    LinkPrioritizer,
    LinkPrioritizerConfig,
    ScoredLink,
    extract_links,
)
from .parsers import (
    HTMLExtraction,
    HTMLParser,
    HTMLParserConfig,
    PDFExtraction,
    PDFParser,
    PDFParserConfig,
)
from .progress import LoggingProgressObserver, ProgressObserver, ProgressReporter
from .runner import CrawlJobRunner
from .session import CrawlSession, search_manuals
from .sink import EmbeddingSink, JsonlCorpusSink, doc_id_for
from .stats import StatsCollector
from .titles import HeuristicTitleInferrer, TitleInferrer
from .types import (
    CrawlResult,
    CrawlResultMetadata,
    CrawlStage,
    CrawlStats,
    DocType,
    ErrorRecord,
    FetchResult,
    FrontierEntry,
    ImageRef,
    ProgressUpdate,
    SessionResult,
    StopReason,
    utc_now_iso,
)
from .url import (
    DomainFilter,
    coerce_start_url,
    host_from_url,
    normalize_url,
    resolve_url,
    validate_seed_url,
)

__all__ = [
    "AcceptanceConfig",
    "BudgetGovernor",
    "ConfigError",
    "ContentHashRegistry",
    "CrawlJob",
    "CrawlJobRunner",
    "CrawlOptions",
    "CrawlResult",
    "CrawlResultMetadata",
    "CrawlSession",
    "CrawlStage",
    "CrawlStats",
    "CrawlerError",
    "DocType",
    "DomainFilter",
    "EmbedError",
    "EmbeddingSink",
    "EnqueueResult",
    "EnqueueStatus",
    "ErrorRecord",
    "FetchError",
    "FetchResult",
    "Fetcher",
    "Frontier",
    "FrontierEntry",
    "HTMLExtraction",
    "HTMLParser",
    "HTMLParserConfig",
    "HashLayer",
    "HeuristicTitleInferrer",
    "ImageRef",
    "InMemoryJobStore",
    "JobStatus",
    "JobStore",
    "JsonlCorpusSink",
    "LinkCandidate",
    "LinkPrioritizer",
    "LinkPrioritizerConfig",
    "LoggingProgressObserver",
    "PDFExtraction",
    "PDFParser",
    "PDFParserConfig",
    "PageRoute",
    "ParseError",
    "ProgressObserver",
    "ProgressReporter",
    "ProgressUpdate",
    "ScoredLink",
    "SessionResult",
    "StatsCollector",
    "StopReason",
    "TitleInferrer",
    "classify",
    "coerce_start_url",
    "doc_id_for",
    "doc_type_for",
    "extract_links",
    "format_images_block",
    "host_from_url",
    "load_options",
    "looks_like_documentation",
    "normalize_url",
    "resolve_url",
    "save_options",
    "search_manuals",
    "summarize_jobs",
    "utc_now_iso",
    "validate_seed_url",
    "with_images",
]
