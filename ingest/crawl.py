"""CLI entrypoint for crawling a documentation site into a JSONL corpus."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
import threading
from typing import Any

from tqdm import tqdm

if __package__ in {None, ""}:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from ingest.crawler import (
    ConfigError,
    CrawlOptions,
    CrawlSession,
    JsonlCorpusSink,
    ProgressUpdate,
    SessionResult,
    coerce_start_url,
    load_options,
    validate_seed_url,
)


LOGGER = logging.getLogger("ingest.crawl")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a technical-documentation site into a JSONL corpus.",
    )

    parser.add_argument(
        "--seed",
        type=str,
        default=None,
        help="Start URL. A bare host gets an https:// prefix.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl options.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=Path("ingest/crawled_output"),
        help="Root output directory for parsed/manifests/logs.",
    )

    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument("--max_pages", type=int, default=None)
    parser.add_argument("--max_time_minutes", type=float, default=None)
    parser.add_argument("--crawl_delay_ms", type=int, default=None)
    parser.add_argument(
        "--allowed_domain",
        action="append",
        default=[],
        help="Allowed domain substring (repeatable). Overrides config domains if provided.",
    )
    parser.add_argument(
        "--file_type",
        action="append",
        default=[],
        help="Document extension such as .pdf (repeatable). Overrides config file types.",
    )
    parser.add_argument(
        "--no_follow_redirects",
        dest="follow_redirects",
        action="store_false",
        default=None,
        help="Treat redirects as fetch failures.",
    )
    parser.add_argument(
        "--strict_domain_match",
        action="store_true",
        default=None,
        help="Match allowed domains as exact host or parent domain instead of substring.",
    )

    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument("--retries", type=int, default=None)
    parser.add_argument("--user_agent", type=str, default=None)

    parser.add_argument(
        "--no_progress",
        action="store_true",
        help="Disable the progress bar.",
    )
    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_options(args: argparse.Namespace) -> CrawlOptions:
    options = load_options(args.config) if args.config is not None else CrawlOptions()

    overrides: dict[str, Any] = {
        "max_depth": args.max_depth,
        "max_pages": args.max_pages,
        "max_time_minutes": args.max_time_minutes,
        "crawl_delay_ms": args.crawl_delay_ms,
        "follow_redirects": args.follow_redirects,
        "strict_domain_match": args.strict_domain_match,
        "timeout_seconds": args.timeout_seconds,
        "retries": args.retries,
        "user_agent": args.user_agent,
    }
    if args.allowed_domain:
        overrides["allowed_domains"] = list(args.allowed_domain)
    if args.file_type:
        overrides["file_types"] = list(args.file_type)

    return options.merged(overrides)


def resolve_seed(args: argparse.Namespace, options: CrawlOptions) -> str:
    seed = args.seed or options.metadata.get("seed")
    if not isinstance(seed, str) or not seed.strip():
        raise ConfigError("No seed provided. Use --seed or set metadata.seed in --config.")
    return validate_seed_url(coerce_start_url(seed))


QUIET_LOGGERS = ("trafilatura", "trafilatura.core", "pdfminer", "readability")


def setup_logging(output_dir: Path, verbose: bool) -> None:
    """Log to stdout and to `<output_dir>/logs/crawl.log`."""

    level = logging.DEBUG if verbose else logging.INFO
    logs = output_dir / "logs"
    logs.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    fmt = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    for handler in (
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(logs / "crawl.log", encoding="utf-8"),
    ):
        handler.setLevel(level)
        handler.setFormatter(fmt)
        root.addHandler(handler)

    # Extractors warn on nearly every malformed page.
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)


class TqdmProgressObserver:
    """Mirror session progress onto a tqdm bar counting visited pages."""

    def __init__(self, total: int | None, *, disable: bool = False) -> None:
        self.bar = tqdm(total=total, unit="page", desc="crawl", disable=disable)

    def __call__(self, update: ProgressUpdate) -> None:
        delta = update.pages_visited - self.bar.n
        if delta > 0:
            self.bar.update(delta)
        self.bar.set_postfix(docs=update.documents_found, embedded=update.embedded)

    def close(self) -> None:
        self.bar.close()


def run_session(session: CrawlSession, seed: str) -> tuple[SessionResult, bool]:
    """Run the session on a worker thread so Ctrl-C can cancel it cleanly.

    Returns the result and whether the run was interrupted.
    """

    outcome: dict[str, Any] = {}

    def _target() -> None:
        try:
            outcome["result"] = session.run(seed)
        except BaseException as exc:  # re-raised on the main thread
            outcome["error"] = exc

    worker = threading.Thread(target=_target, name="crawl-session", daemon=True)
    worker.start()

    interrupted = False
    while worker.is_alive():
        try:
            worker.join(timeout=0.5)
        except KeyboardInterrupt:
            if interrupted:
                raise
            interrupted = True
            LOGGER.warning("Interrupted by user; stopping after the current page")
            session.cancel()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"], interrupted


def print_summary(
    result: SessionResult,
    sink: JsonlCorpusSink,
    *,
    diagnostics: dict[str, Any],
    print_stats_json: bool,
) -> None:
    stats = result.stats
    sections = {
        "Crawl Complete": {
            "output_dir": sink.output_dir,
            "docs": sink.docs_path,
            "errors": sink.errors_path,
            "stats": sink.crawl_stats_path,
        },
        "Core Stats": {
            "stop_reason": stats.stop_reason.value if stats.stop_reason else None,
            "pages_visited": stats.pages_visited,
            "documents_found": len(result.documents),
            "embedded": result.embedded,
            "errors": len(result.errors),
            "duplicates_skipped": stats.duplicates_skipped,
            "max_depth_reached": stats.max_depth_reached,
            "time_elapsed_ms": stats.time_elapsed_ms,
        },
    }
    for heading, rows in sections.items():
        print(f"\n=== {heading} ===")
        for key, value in rows.items():
            print(f"{key}: {value}")

    if print_stats_json:
        print("\n=== Full Stats JSON ===")
        print(json.dumps(diagnostics, indent=2, sort_keys=True))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.output_dir, verbose=args.verbose)

    try:
        options = build_options(args)
        seed = resolve_seed(args, options)
    except ConfigError as exc:
        logging.error("Failed to build options: %s", exc)
        return 2

    LOGGER.info(
        "Starting crawl: seed=%s, output_dir=%s, allowed_domains=%s",
        seed,
        args.output_dir,
        options.allowed_domains or "any",
    )

    progress = TqdmProgressObserver(options.max_pages, disable=args.no_progress)
    try:
        sink = JsonlCorpusSink(args.output_dir)
        sink.save_crawl_config(options)

        session = CrawlSession(options, sink=sink, observers=[progress])
        result, interrupted = run_session(session, seed)

        diagnostics = {
            **result.stats.to_json(),
            "runtime": session.stats.to_json(),
            "frontier": session.frontier.snapshot(),
            "content_hashes": session.hashes.snapshot(),
        }
        sink.save_errors(result.errors)
        sink.save_crawl_stats(diagnostics)
    except ConfigError as exc:
        logging.error("Invalid crawl configuration: %s", exc)
        return 2
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Crawl failed")
        return 1
    finally:
        progress.close()

    print_summary(
        result,
        sink,
        diagnostics=diagnostics,
        print_stats_json=args.print_stats_json,
    )
    return 130 if interrupted else 0


if __name__ == "__main__":
    raise SystemExit(main())
