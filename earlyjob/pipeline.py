"""Job ingestion run: select sources, fetch, dedup/insert, match, report.

    START -> SELECT_SOURCE -> FETCH -> DEDUP_INSERT -> MATCH -> REPORT
    SELECT_SOURCE -> ABORT(no_capacity)
    FETCH -> ABORT(fetch_error)

Every path ends in a RunReport; nothing propagates to the caller.
"""

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

import httpx

from earlyjob.config import Settings
from earlyjob.db import JobStore
from earlyjob.dedup import insert_jobs
from earlyjob.errors import FatalError, FetchError, NoCapacityError
from earlyjob.matcher import PreferenceMatcher
from earlyjob.models import JobPost, RunReport, RunStats, utcnow
from earlyjob.rotation import RotationSelector
from earlyjob.scrapers import AdzunaScraper, GreenhouseScraper, HNHiringScraper, JSearchScraper
from earlyjob.scrapers.base import BaseScraper

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    run_id: str
    started_at: datetime
    started_monotonic: float
    stats: RunStats = field(default_factory=RunStats)
    selected: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_monotonic) * 1000)


class FetchFailed(Exception):
    """Every selected provider failed in this run"""


class IngestionPipeline:
    def __init__(
        self,
        store: JobStore,
        scrapers: dict[str, BaseScraper],
        selector: RotationSelector,
        matcher: PreferenceMatcher,
        clock: Callable[[], datetime] = utcnow,
        sources_per_run: int = 1,
        max_workers: int = 4,
    ):
        self.store = store
        self.scrapers = scrapers
        self.selector = selector
        self.matcher = matcher
        self.clock = clock
        self.sources_per_run = max(1, sources_per_run)
        self.max_workers = max_workers

    def run(self) -> RunReport:
        ctx = RunContext(
            run_id=str(uuid.uuid4()),
            started_at=self.clock(),
            started_monotonic=time.monotonic(),
        )
        logger.info("Starting job ingestion (run_id=%s)", ctx.run_id)

        try:
            names = self._select_sources(ctx)
            jobs = self._fetch(ctx, names)
            new_ids = self._dedup_insert(ctx, jobs)
            self._match(ctx, new_ids)
        except NoCapacityError as e:
            logger.warning("Aborting run: %s", e)
            return self._report(ctx, "no_capacity", error=str(e))
        except FetchFailed as e:
            logger.error("Aborting run: %s", e)
            return self._report(ctx, "fetch_error", error=str(e))
        except Exception as e:
            logger.exception("Fatal error in job ingestion")
            return RunReport(
                success=False,
                status="fatal",
                timestamp=ctx.started_at,
                error=str(e),
            )

        report = self._report(ctx, "completed")
        logger.info("Job ingestion complete: %s", report.stats.model_dump())
        return report

    def _report(self, ctx: RunContext, status: str, error: Optional[str] = None) -> RunReport:
        return RunReport(
            success=status == "completed",
            status=status,
            timestamp=ctx.started_at,
            stats=ctx.stats,
            duration_ms=ctx.elapsed_ms(),
            error=error,
        )

    def _select_sources(self, ctx: RunContext) -> list[str]:
        skipped = set()
        while len(ctx.selected) < self.sources_per_run:
            name = self.selector.select_next(exclude=set(ctx.selected) | skipped)
            if name is None:
                break
            if name not in self.scrapers:
                logger.warning("No scraper configured for %s, skipping", name)
                skipped.add(name)
                continue
            ctx.selected.append(name)

        if not ctx.selected:
            raise NoCapacityError("no API with remaining capacity")
        return ctx.selected

    def _fetch(self, ctx: RunContext, names: list[str]) -> list[JobPost]:
        """Fetch providers concurrently; the store is only touched on this thread"""
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(names))) as pool:
            futures = {name: pool.submit(self.scrapers[name].scrape) for name in names}

        jobs: list[JobPost] = []
        for name, future in futures.items():
            try:
                fetched = future.result()
            except FetchError as e:
                self._record_failure(ctx, name, e.message)
                continue
            except Exception as e:
                self._record_failure(ctx, name, f"{type(e).__name__}: {e}")
                continue

            self.selector.record_usage(name, success=True)
            ctx.stats.fetched_per_source[name] = len(fetched)
            logger.info("%s: %d jobs fetched", name, len(fetched))
            jobs.extend(fetched)

        ctx.stats.total_fetched = len(jobs)
        if len(ctx.stats.failed_sources) == len(names):
            raise FetchFailed("; ".join(f"{n}: {msg}" for n, msg in ctx.errors.items()))
        return jobs

    def _record_failure(self, ctx: RunContext, name: str, message: str):
        logger.error("%s: fetch failed: %s", name, message)
        self.selector.record_usage(name, success=False, error=message)
        ctx.stats.fetched_per_source[name] = 0
        ctx.stats.failed_sources.append(name)
        ctx.errors[name] = message

    def _dedup_insert(self, ctx: RunContext, jobs: list[JobPost]) -> list[str]:
        result = insert_jobs(self.store, jobs)
        ctx.stats.inserted = result.inserted
        ctx.stats.skipped = result.skipped
        return result.inserted_ids

    def _match(self, ctx: RunContext, job_ids: list[str]):
        alerts = self.matcher.match(job_ids)
        ctx.stats.alerts_created = len(alerts)


def build_scrapers(settings: Settings, client: Optional[httpx.Client] = None) -> dict[str, BaseScraper]:
    client = client or httpx.Client(timeout=settings.request_timeout, follow_redirects=True)
    scrapers: dict[str, BaseScraper] = {}

    if settings.adzuna.enabled:
        scrapers["adzuna"] = AdzunaScraper(
            app_id=settings.adzuna.app_id,
            app_key=settings.adzuna.app_key,
            country=settings.adzuna.country,
            results_per_page=settings.adzuna.results_per_page,
            what=settings.adzuna.what,
            client=client,
        )
    if settings.greenhouse.enabled and settings.greenhouse.feeds:
        scrapers["greenhouse"] = GreenhouseScraper(settings.greenhouse.feeds, client=client)
    if settings.jsearch.enabled:
        scrapers["jsearch"] = JSearchScraper(
            api_key=settings.jsearch.api_key,
            query=settings.jsearch.query,
            remote=settings.jsearch.remote,
            client=client,
        )
    if settings.hn_hiring.enabled:
        scrapers["hn_hiring"] = HNHiringScraper(client=client)

    if not scrapers:
        raise FatalError("No job sources enabled in settings")
    return scrapers


def build_pipeline(settings: Settings, store: JobStore, client: Optional[httpx.Client] = None) -> IngestionPipeline:
    scrapers = build_scrapers(settings, client)
    selector = RotationSelector(store, window=settings.rotation_window)
    for name in scrapers:
        limit = getattr(settings, name).monthly_limit
        selector.ensure_registered(name, limit)

    return IngestionPipeline(
        store=store,
        scrapers=scrapers,
        selector=selector,
        matcher=PreferenceMatcher(store),
        sources_per_run=settings.sources_per_run,
    )


def run_once(settings: Settings, store: Optional[JobStore] = None) -> RunReport:
    """On-demand single run; configuration problems become a failed report.

    The HTTP client, and the store unless one is passed in, are closed afterwards.
    """
    owns_store = store is None
    with httpx.Client(timeout=settings.request_timeout, follow_redirects=True) as client:
        try:
            if owns_store:
                store = JobStore(settings.db_path)
            pipeline = build_pipeline(settings, store, client)
        except Exception as e:
            logger.error("Could not start job ingestion: %s", e)
            return RunReport(success=False, status="fatal", timestamp=utcnow(), error=str(e))
        else:
            return pipeline.run()
        finally:
            if owns_store and store is not None:
                store.close()
