"""CLI entry point for the job discovery pipeline."""

import argparse
import asyncio
import json
import logging
import sqlite3
import sys
from contextlib import AsyncExitStack

from jobscout.browser.session import BrowserSession
from jobscout.core.config import SearchConfig, Settings
from jobscout.core.db import get_scrape_run, init_db, list_scrape_logs, list_scrape_runs
from jobscout.core.schemas import PostingFilter
from jobscout.pipeline.listing import PostingPage, list_postings
from jobscout.pipeline.orchestrator import ScrapeOrchestrator, summary_payload
from jobscout.pipeline.rate_limiter import RateLimiter
from jobscout.platforms import available_platforms, build_scrapers, get_scraper
from jobscout.profile.schema import ParsedResume
from jobscout.transport.http import HttpClient
from jobscout.transport.proxy import ProxyProvider

logger = logging.getLogger(__name__)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Job discovery - scrape job boards, dedup, and rank postings",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- scrape subcommand (default) ---
    scrape_parser = subparsers.add_parser("scrape", help="Run configured (or ad-hoc) scrapes")
    _add_common(scrape_parser)
    scrape_parser.add_argument("--query", help="Ad-hoc query instead of configured searches")
    scrape_parser.add_argument(
        "--platform",
        action="append",
        choices=available_platforms(),
        help="Platform for an ad-hoc query (repeatable)",
    )
    scrape_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without any network traffic",
    )
    scrape_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export run summaries to format (json)",
    )

    # --- list subcommand ---
    list_parser = subparsers.add_parser("list", help="List stored postings")
    _add_common(list_parser)
    list_parser.add_argument("--platform", choices=available_platforms())
    list_parser.add_argument("--remote", action="store_true", default=None, help="Remote postings only")
    list_parser.add_argument("--search", help="Free-text search over title, company, description")
    list_parser.add_argument("--limit", type=int, default=20)
    list_parser.add_argument("--offset", type=int, default=0)
    list_parser.add_argument("--order-by", choices=["posted_at", "salary_max", "created_at"], default="posted_at")
    list_parser.add_argument("--asc", action="store_true", help="Ascending order")
    list_parser.add_argument("--match", action="store_true", help="Score against the configured résumé")
    list_parser.add_argument("--profiles", action="store_true", help="Filter by active search profiles")
    list_parser.add_argument("--export", choices=["json"], help="Export postings to format (json)")

    # --- runs subcommand ---
    runs_parser = subparsers.add_parser("runs", help="Show recent scrape runs")
    _add_common(runs_parser)
    runs_parser.add_argument("--limit", type=int, default=10)
    runs_parser.add_argument("--run-id", help="Show one run with its per-source logs")

    # --- backward compat: top-level flags for scrape ---
    parser.add_argument("--config", default="config/settings.yaml", help=argparse.SUPPRESS)
    parser.add_argument("--dry-run", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("--export", choices=["json"], help=argparse.SUPPRESS)
    parser.add_argument("--verbose", "-v", action="store_true", help=argparse.SUPPRESS)

    args = parser.parse_args(argv)

    # Default to scrape when no subcommand given
    if args.command is None:
        args.command = "scrape"
        args.query = None
        args.platform = None

    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def resolve_searches(settings: Settings, query: str | None, platforms: list[str] | None) -> list[SearchConfig]:
    if query:
        search = SearchConfig(query=query)
        if platforms:
            search = search.model_copy(update={"platforms": platforms})
        return [search]
    if not settings.searches:
        msg = "No searches configured; add 'searches' to the config or pass --query"
        raise ValueError(msg)
    return settings.searches


def dry_run(settings: Settings, searches: list[SearchConfig]) -> None:
    """Print what would happen without actually scraping."""
    proxy = ProxyProvider(settings.proxy)
    print(f"[DRY RUN] {len(searches)} searches configured")
    print(f"[DRY RUN] Proxy: {'configured' if proxy.is_configured else 'NOT configured'}")

    for search in searches:
        options = search.to_options()
        print(f"[DRY RUN] '{search.query}' (max {search.max_results}, within {search.posted_within})")
        for name in search.platforms:
            scraper = get_scraper(name, http=HttpClient(settings.http, proxy), rate_limiter=RateLimiter())
            blocked = scraper.fetch_mode == "proxy" and not proxy.is_configured
            status = "SKIP (needs proxy)" if blocked else scraper.fetch_mode
            print(f"  {name}: {status}")
            print(f"    {scraper.build_search_url(options, 1)}")

    print("[DRY RUN] Would write 0 postings (no network in dry-run)")


async def run(settings: Settings, searches: list[SearchConfig], export_format: str | None) -> None:
    """Run every search through the orchestrator."""
    conn = init_db(settings.database.path)
    proxy = ProxyProvider(settings.proxy)
    limiter = RateLimiter(settings.rate_limits)
    names = list(dict.fromkeys(p for s in searches for p in s.platforms))
    profiles_used = [p.name for p in settings.active_profiles()]
    payloads = []

    try:
        async with AsyncExitStack() as stack:
            http = await stack.enter_async_context(HttpClient(settings.http, proxy))
            renderer = None
            if "glassdoor" in names and proxy.is_configured:
                renderer = await stack.enter_async_context(BrowserSession(settings.browser, proxy))

            scrapers = build_scrapers(names, http=http, rate_limiter=limiter, renderer=renderer)
            orchestrator = ScrapeOrchestrator(
                conn, scrapers, source_timeout_s=settings.orchestrator.source_timeout_s,
            )
            for search in searches:
                summary = await orchestrator.scrape_all(
                    search.to_options(),
                    search.platforms,
                    trigger_type="cli",
                    profiles_used=profiles_used,
                )
                print(f"\n'{search.query}' [{summary.status}]: {summary.total_found} found, "
                      f"{summary.new_jobs} new, {summary.duplicates} duplicates, "
                      f"{len(summary.errors)} errors")
                for error in summary.errors:
                    print(f"  ! {error}")
                payloads.append(summary_payload(summary, search.platforms, search.query))
    finally:
        conn.close()

    if export_format == "json" and payloads:
        print(f"\n{json.dumps(payloads, indent=2)}")


def cmd_list(settings: Settings, args: argparse.Namespace) -> None:
    """Handle list subcommand."""
    resume = None
    if args.match:
        if not settings.resume_path:
            msg = "--match needs 'resume_path' in the config"
            raise ValueError(msg)
        resume = ParsedResume.from_yaml(settings.resume_path)

    filters = PostingFilter(
        platform=args.platform,
        is_remote=args.remote,
        search=args.search,
        limit=args.limit,
        offset=args.offset,
        order_by=args.order_by,
        order_dir="asc" if args.asc else "desc",
    )
    conn = init_db(settings.database.path)
    try:
        page = list_postings(
            conn,
            filters,
            resume=resume,
            profiles=settings.active_profiles() if args.profiles else None,
            scoring=settings.scoring,
        )
    finally:
        conn.close()

    if args.export == "json":
        print(page.model_dump_json(indent=2))
        return
    _print_page(page)


def _print_page(page: PostingPage) -> None:
    print(f"{page.total} postings (showing {len(page.items)} from offset {page.offset})")
    for item in page.items:
        p = item.posting
        score = f"[{item.match_score:5.1f}] " if item.match_score is not None else ""
        remote = " (remote)" if p.is_remote else ""
        print(f"{score}{p.title} @ {p.company} - {p.location}{remote} [{p.platform}, {item.posted_ago}]")
        if p.salary_text:
            print(f"    {p.salary_text}")
        if item.keyword_labels:
            print(f"    {'; '.join(item.keyword_labels)}")
        if item.why_good_fit:
            print(f"    {item.why_good_fit}")
        print(f"    {p.apply_url}")


def cmd_runs(settings: Settings, args: argparse.Namespace) -> None:
    """Handle runs subcommand."""
    conn = init_db(settings.database.path)
    try:
        if args.run_id:
            _print_run(conn, args.run_id)
            return
        for run in list_scrape_runs(conn, limit=args.limit):
            print(f"{run.id}  {run.started_at:%Y-%m-%d %H:%M}  {run.status:<9}  "
                  f"{run.total_found:>4} found  {run.new_jobs:>4} new  {run.errors} errors  "
                  f"{','.join(run.platforms)}")
    finally:
        conn.close()


def _print_run(conn: sqlite3.Connection, run_id: str) -> None:
    run = get_scrape_run(conn, run_id)
    if run is None:
        msg = f"Scrape run not found: {run_id}"
        raise ValueError(msg)
    print(f"Run {run.id} [{run.status}] {run.trigger_type}, {run.duration_ms or 0}ms")
    print(f"  {run.total_found} found, {run.new_jobs} new, {run.errors} errors")
    for log in list_scrape_logs(conn, run_id):
        line = f"  {log.platform:<15} {log.status:<8} {log.jobs_found:>4} jobs  {log.duration_ms}ms"
        if log.error_message:
            line += f"  {log.error_message}"
        print(line)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "list":
            cmd_list(settings, args)
        elif args.command == "runs":
            cmd_runs(settings, args)
        else:
            # scrape (default)
            searches = resolve_searches(settings, args.query, args.platform)
            if args.dry_run:
                dry_run(settings, searches)
            else:
                asyncio.run(run(settings, searches, args.export))
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
