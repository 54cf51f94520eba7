"""Orchestrator: fans a query out to source scrapers, dedups, persists, records the run.

Data flow:
  1. Record run as 'running'
  2. One task per platform (sources run concurrently, pages sequentially)
  3. One scrape log per source
  4. Merge + in-run dedup by recomputed hash (first wins)
  5. Insert-if-absent per posting (storage holds durable dedup)
  6. Finalize run: completed / partial / failed
"""

import asyncio
import json
import logging
import sqlite3
import time
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone

from jobscout.core.db import (
    create_scrape_run,
    finalize_scrape_run,
    insert_posting,
    insert_recruiter_contact,
    insert_scrape_log,
)
from jobscout.core.schemas import (
    RunStatus,
    ScrapedPosting,
    ScrapeLog,
    ScrapeOptions,
    ScrapeResult,
    ScrapeRun,
    ScrapeSummary,
)
from jobscout.pipeline.normalizer import dedup_hash
from jobscout.platforms.base import SourceScraper

logger = logging.getLogger(__name__)


class SourceOutcome:
    """What one platform task produced, with timing."""

    def __init__(self, platform: str, result: ScrapeResult, duration_ms: int, url: str) -> None:
        self.platform = platform
        self.result = result
        self.duration_ms = duration_ms
        self.url = url

    @property
    def failed(self) -> bool:
        return bool(self.result.errors) and not self.result.postings


class ScrapeOrchestrator:
    """Runs one query across many sources and records the run.

    Usage::

        orchestrator = ScrapeOrchestrator(conn, build_scrapers(names, http=..., rate_limiter=...))
        summary = await orchestrator.scrape_all(options, names)
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        scrapers: Mapping[str, SourceScraper],
        *,
        source_timeout_s: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._conn = conn
        self._scrapers = {k.lower(): v for k, v in scrapers.items()}
        self._source_timeout_s = source_timeout_s
        self._clock = clock

    async def scrape_all(
        self,
        options: ScrapeOptions,
        platforms: Iterable[str],
        *,
        requested_by: str | None = None,
        trigger_type: str = "on_demand",
        profiles_used: Iterable[str] = (),
    ) -> ScrapeSummary:
        names = list(dict.fromkeys(p.lower().strip() for p in platforms if p.strip()))
        run_id = uuid.uuid4().hex
        started = self._clock()
        self._start_run(
            ScrapeRun(
                id=run_id,
                requested_by=requested_by,
                trigger_type=trigger_type,
                status="running",
                platforms=names,
                profiles_used=list(profiles_used),
                started_at=datetime.now(timezone.utc),
            ),
        )
        logger.info("Run %s: '%s' on %s", run_id, options.search_query, ", ".join(names))

        # Until the outcomes are merged the run counts as failed, so an
        # interruption never leaves it 'running'.
        status: RunStatus = "failed"
        errors: list[str] = []
        all_postings: list[ScrapedPosting] = []
        new_jobs = duplicates = 0
        try:
            outcomes = await asyncio.gather(*(self._run_source(name, options) for name in names))
            for outcome in outcomes:
                errors.extend(outcome.result.errors)
                all_postings.extend(outcome.result.postings)
                self._record_log(run_id, outcome)
                self._save_contacts(outcome)

            unique, duplicates = dedup_postings(all_postings)
            new_jobs = self._persist(unique, run_id)
            status = run_status(outcomes)
        finally:
            duration_ms = int((self._clock() - started) * 1000)
            self._finish_run(
                run_id,
                status=status,
                total_found=len(all_postings),
                new_jobs=new_jobs,
                errors=errors,
                duration_ms=duration_ms,
            )

        logger.info(
            "Run %s %s: %d found, %d duplicates, %d new, %d errors (%dms)",
            run_id, status, len(all_postings), duplicates, new_jobs, len(errors), duration_ms,
        )
        return ScrapeSummary(
            run_id=run_id,
            status=status,
            total_found=len(all_postings),
            new_jobs=new_jobs,
            duplicates=duplicates,
            errors=errors,
        )

    def _start_run(self, run: ScrapeRun) -> None:
        try:
            create_scrape_run(self._conn, run)
        except sqlite3.Error as e:
            logger.error("Failed to record run %s: %s", run.id, e)

    def _finish_run(
        self,
        run_id: str,
        *,
        status: RunStatus,
        total_found: int,
        new_jobs: int,
        errors: list[str],
        duration_ms: int,
    ) -> None:
        try:
            finalize_scrape_run(
                self._conn,
                run_id,
                status=status,
                total_found=total_found,
                new_jobs=new_jobs,
                errors=errors,
                duration_ms=duration_ms,
                completed_at=datetime.now(timezone.utc),
            )
        except sqlite3.Error as e:
            logger.error("Failed to finalize run %s: %s", run_id, e)

    async def _run_source(self, name: str, options: ScrapeOptions) -> SourceOutcome:
        """Run one scraper; exceptions and timeouts become errors, never propagate."""
        started = self._clock()
        scraper = self._scrapers.get(name)
        if scraper is None:
            msg = f"Scraper not found for platform: {name}"
            logger.error(msg)
            return SourceOutcome(name, ScrapeResult(errors=[msg]), 0, "")

        url = ""
        try:
            url = scraper.build_search_url(options, 1)
            result = await asyncio.wait_for(scraper.scrape(options), timeout=self._source_timeout_s)
        except asyncio.TimeoutError:
            msg = f"{name}: timed out after {self._source_timeout_s:g}s"
            logger.error(msg)
            result = ScrapeResult(errors=[msg])
        except Exception as e:
            logger.exception("Unexpected failure in %s", name)
            result = ScrapeResult(errors=[f"{name}: {e}"])
        duration_ms = int((self._clock() - started) * 1000)
        return SourceOutcome(name, result, duration_ms, url)

    def _record_log(self, run_id: str, outcome: SourceOutcome) -> None:
        try:
            insert_scrape_log(
                self._conn,
                ScrapeLog(
                    run_id=run_id,
                    platform=outcome.platform,
                    status="error" if outcome.result.errors else "success",
                    url=outcome.url,
                    duration_ms=outcome.duration_ms,
                    jobs_found=len(outcome.result.postings),
                    error_message="; ".join(outcome.result.errors) or None,
                ),
            )
        except sqlite3.Error as e:
            logger.error("Failed to write scrape log for %s: %s", outcome.platform, e)

    def _save_contacts(self, outcome: SourceOutcome) -> None:
        for contact in outcome.result.recruiter_contacts:
            try:
                insert_recruiter_contact(self._conn, contact)
            except sqlite3.Error as e:
                logger.error("Failed to save recruiter contact from %s: %s", outcome.platform, e)

    def _persist(self, postings: list[ScrapedPosting], run_id: str) -> int:
        new_jobs = 0
        for posting in postings:
            try:
                if insert_posting(self._conn, posting, run_id):
                    new_jobs += 1
                else:
                    logger.debug("Already stored: %s at %s", posting.title, posting.company)
            except sqlite3.Error as e:
                logger.error("Failed to save '%s' at %s: %s", posting.title, posting.company, e)
        return new_jobs


def dedup_postings(postings: list[ScrapedPosting]) -> tuple[list[ScrapedPosting], int]:
    """Drop repeats by recomputed (title, company, location) hash. First wins."""
    seen: set[str] = set()
    unique: list[ScrapedPosting] = []
    for posting in postings:
        key = dedup_hash(posting.title, posting.company, posting.location)
        if key in seen:
            continue
        seen.add(key)
        unique.append(posting)
    return unique, len(postings) - len(unique)


def run_status(outcomes: list[SourceOutcome]) -> RunStatus:
    """completed: no errors; failed: every source failed outright; else partial."""
    if not any(o.result.errors for o in outcomes):
        return "completed"
    if outcomes and all(o.failed for o in outcomes):
        return "failed"
    return "partial"


def export_summary_json(summary: ScrapeSummary, platforms: list[str], query: str) -> str:
    """Export a run summary as a JSON string."""
    return json.dumps(summary_payload(summary, platforms, query), indent=2)


def summary_payload(summary: ScrapeSummary, platforms: list[str], query: str) -> dict[str, object]:
    return {
        "totalFound": summary.total_found,
        "newJobs": summary.new_jobs,
        "duplicates": summary.duplicates,
        "errors": summary.errors,
        "platforms": platforms,
        "query": query,
    }
