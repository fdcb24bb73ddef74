"""Crawl orchestrator: breadth-first site crawl with pause, cancel and resume."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from site_audit.aggregation import calculate_aggregate_stats, calculate_overall_score
from site_audit.analyzer import LinkExtractor, PageAnalyzer
from site_audit.audit_store import AuditStore
from site_audit.config import CrawlConfig
from site_audit.fetch import FetchAnalyzer
from site_audit.frontier import FrontierEntry
from site_audit.infrastructure import IntervalRateLimiter, RateLimitConfig
from site_audit.link_extractor import normalize_url
from site_audit.models import (
    Audit,
    CrawlProgress,
    CrawlState,
    CrawlStatus,
    CrawlStatusSnapshot,
)
from site_audit.persistence import CrawlStateRepository
from site_audit.storage import AbstractStorage, StorageError

logger = logging.getLogger(__name__)


class CrawlCommand(str, Enum):
    """Operations accepted by ``CrawlOrchestrator.dispatch``."""

    START = "start_crawl"
    PAUSE = "pause_crawl"
    RESUME = "resume_crawl"
    CANCEL = "cancel_crawl"
    STATUS = "get_crawl_status"


@dataclass
class Command:
    command: CrawlCommand
    start_url: Optional[str] = None


@dataclass
class CommandResponse:
    success: bool
    error: Optional[str] = None
    status: Optional[CrawlStatusSnapshot] = None


class CrawlOrchestrator:
    """Drives one crawl at a time over a single worker loop.

    The loop pops the frontier in FIFO order, so pages are processed level
    by level:
    - depth 0: the seed URL
    - depth 1: pages linked from the seed
    - ...up to ``max_depth``

    Only one page is analyzed at a time. Pause and cancel are flags on the
    crawl state, observed before each page is popped; an analysis already
    in flight always runs to completion or timeout. The state is
    checkpointed after every processed page so ``restore()`` can pick the
    crawl up after a process restart.
    """

    def __init__(
        self,
        fetch_analyzer: FetchAnalyzer,
        state_repository: CrawlStateRepository,
        audit_store: AuditStore,
        config: Optional[CrawlConfig] = None,
        rate_limiter: Optional[IntervalRateLimiter] = None,
    ):
        """Initialize the orchestrator.

        Args:
            fetch_analyzer: Per-page fetch-analyze step
            state_repository: Checkpoint storage for the live crawl
            audit_store: Destination for finished audits
            config: Crawl limits (defaults to CrawlConfig())
            rate_limiter: Request pacing (defaults to config.rate_limit)
        """
        self.config = config or CrawlConfig()
        self.fetch_analyzer = fetch_analyzer
        self.state_repository = state_repository
        self.audit_store = audit_store
        self.rate_limiter = rate_limiter or IntervalRateLimiter(
            RateLimitConfig(min_interval=self.config.rate_limit)
        )

        self._state = CrawlState()
        self._task: Optional[asyncio.Task] = None
        # Set whenever the loop may proceed: not paused, or cancelled
        self._wake = asyncio.Event()
        self._wake.set()
        self._state_durable = True
        self.last_audit: Optional[Audit] = None

    @classmethod
    def create(
        cls,
        analyzer: PageAnalyzer,
        link_extractor: LinkExtractor,
        storage: AbstractStorage,
        config: Optional[CrawlConfig] = None,
    ) -> "CrawlOrchestrator":
        """Wire an orchestrator from collaborators and a storage backend."""
        config = config or CrawlConfig()
        return cls(
            fetch_analyzer=FetchAnalyzer(
                analyzer,
                link_extractor,
                timeout=config.analyze_timeout,
                max_retries=config.max_retries,
                retry_delay=config.rate_limit,
            ),
            state_repository=CrawlStateRepository(storage),
            audit_store=AuditStore(storage, max_audits=config.max_stored_audits),
            config=config,
        )

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        """True while a crawl loop task exists and has not finished."""
        return self._task is not None and not self._task.done()

    async def dispatch(self, command: Command) -> CommandResponse:
        """Route a typed command to the matching operation."""
        if command.command is CrawlCommand.START:
            if not command.start_url:
                return CommandResponse(success=False, error="start_url is required")
            return self.start_crawl(command.start_url)
        if command.command is CrawlCommand.PAUSE:
            return self.pause_crawl()
        if command.command is CrawlCommand.RESUME:
            return self.resume_crawl()
        if command.command is CrawlCommand.CANCEL:
            return self.cancel_crawl()
        if command.command is CrawlCommand.STATUS:
            return CommandResponse(success=True, status=self.get_crawl_status())
        return CommandResponse(success=False, error=f"Unknown command: {command.command}")

    def start_crawl(self, start_url: str) -> CommandResponse:
        """Reset the crawl state and start a new crawl loop.

        Must be called from within a running event loop.
        """
        if self.is_active:
            return CommandResponse(success=False, error="A crawl is already in progress")

        start_url = normalize_url(start_url)
        self._state = CrawlState.fresh(start_url, started_at=datetime.now().isoformat())
        self._wake.set()
        self.rate_limiter.reset()
        self.last_audit = None
        self._checkpoint()

        logger.info(f"Starting site crawl from: {start_url}")
        logger.info(
            f"Max pages: {self.config.max_pages}, max depth: {self.config.max_depth}, "
            f"rate limit: {self.config.rate_limit}s between requests"
        )
        self._launch()
        return CommandResponse(success=True)

    def pause_crawl(self) -> CommandResponse:
        state = self._state
        if state.running and not state.cancelled and not state.paused:
            state.paused = True
            state.status = CrawlStatus.PAUSED
            self._wake.clear()
            self._checkpoint()
            logger.info("Crawl pause requested")
        return CommandResponse(success=True)

    def resume_crawl(self) -> CommandResponse:
        """Clear the pause flag; restart the loop if it is not running.

        A paused crawl whose loop task is still alive is merely suspended
        and wakes up on its own. A crawl that is Running/Paused with no live
        loop task (restored with ``auto_resume=False``, or whose loop died)
        is stopped and gets a new loop task.
        """
        state = self._state
        if not state.running or state.cancelled:
            return CommandResponse(success=True)

        state.paused = False
        state.status = CrawlStatus.RUNNING
        self._wake.set()
        self._checkpoint()

        if not self.is_active:
            logger.info(f"Restarting stopped crawl loop ({len(state.frontier)} URLs queued)")
            self._launch()
        else:
            logger.info("Crawl resumed")
        return CommandResponse(success=True)

    def cancel_crawl(self) -> CommandResponse:
        state = self._state
        if not state.running:
            return CommandResponse(success=True)

        state.cancelled = True
        state.paused = False
        state.status = CrawlStatus.CANCELLED
        self._wake.set()
        logger.info("Crawl cancel requested")

        if not self.is_active:
            # No loop left to observe the flag
            self._finish_cancelled(state)
        return CommandResponse(success=True)

    def get_crawl_status(self) -> CrawlStatusSnapshot:
        """Read-only snapshot of the current crawl; safe at any time."""
        state = self._state
        return CrawlStatusSnapshot(
            running=state.running,
            paused=state.paused,
            status=state.status,
            progress=replace(state.progress),
            page_results=list(state.results),
            state_durable=self._state_durable,
        )

    def restore(self, auto_resume: bool = True) -> bool:
        """Startup hook: reload an in-flight crawl from its checkpoint.

        Args:
            auto_resume: Start the crawl loop immediately

        Returns:
            True if an in-flight crawl was restored
        """
        if self.is_active:
            return False

        state = self.state_repository.load()
        if state is None:
            return False

        if not state.running or state.cancelled:
            logger.info("Discarding finished crawl checkpoint")
            self.state_repository.clear()
            return False

        self._state = state
        if state.paused:
            self._wake.clear()
        else:
            self._wake.set()

        logger.info(
            f"Restored crawl of {state.start_url}: {state.frontier.visited_count} visited, "
            f"{len(state.frontier)} queued{' (paused)' if state.paused else ''}"
        )
        if auto_resume:
            self._launch()
        return True

    async def wait_until_finished(self) -> None:
        """Wait for the current crawl loop to exit."""
        if self._task is not None:
            await self._task

    async def shutdown(self) -> None:
        """Stop the loop without touching the checkpoint, as a process exit would."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # Crawl loop
    # ------------------------------------------------------------------

    def _launch(self) -> None:
        self._task = asyncio.create_task(self._run())
        self._task.add_done_callback(self._on_loop_done)

    @staticmethod
    def _on_loop_done(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Crawl loop stopped unexpectedly: {task.exception()}")

    def _should_stop(self, state: CrawlState) -> bool:
        return (
            state.cancelled
            or len(state.frontier) == 0
            or state.frontier.visited_count >= self.config.max_pages
        )

    async def _wait_while_paused(self, state: CrawlState) -> None:
        logger.info("Crawl paused")
        while state.paused and not state.cancelled:
            self._wake.clear()
            await self._wake.wait()

    async def _run(self) -> None:
        state = self._state

        while not self._should_stop(state):
            if state.paused:
                await self._wait_while_paused(state)
                if self._should_stop(state):
                    break

            entry = state.frontier.pop()
            if state.frontier.is_visited(entry.url) or entry.depth > self.config.max_depth:
                continue

            state.frontier.mark_visited(entry.url)

            try:
                await self._process_entry(state, entry)
            except Exception as e:
                logger.exception(f"Error analyzing {entry.url}, continuing: {e}")
                state.progress = CrawlProgress(
                    completed=state.frontier.visited_count,
                    remaining=len(state.frontier),
                    message=f"Error on {entry.url}, continuing...",
                )

            self._checkpoint(state)

        if state.cancelled:
            self._finish_cancelled(state)
        else:
            self._finish_completed(state)

    async def _process_entry(self, state: CrawlState, entry: FrontierEntry) -> None:
        visited = state.frontier.visited_count

        # The first page goes out immediately
        if visited > 1:
            await self.rate_limiter.wait()

        logger.info(f"[L{entry.depth}] Crawling ({visited}/{self.config.max_pages}): {entry.url}")

        # Links found at max depth would never be followed
        extract_links = entry.depth < self.config.max_depth
        try:
            record = await self.fetch_analyzer.fetch_analyze(
                entry.url, extract_links, state.start_url
            )
        finally:
            # The pause before the next page is measured from here
            self.rate_limiter.mark()

        if record.failed:
            logger.warning(f"  ⚠️  Skipping failed page: {entry.url} ({record.error})")
            message = f"Skipped failed page, {len(state.results)} successful"
        else:
            record = replace(record, url=entry.url, depth=entry.depth)
            state.results.append(record)
            queued = state.frontier.push_all(record.links, entry.depth + 1)
            logger.info(f"  ✓ Success - score {record.score}, queued {queued} new links")
            message = f"Analyzed {visited} pages"
            if record.links:
                message += f", found {len(record.links)} links"

        state.progress = CrawlProgress(
            completed=state.frontier.visited_count,
            remaining=len(state.frontier),
            message=message,
        )

    def _checkpoint(self, state: Optional[CrawlState] = None) -> None:
        state = state or self._state
        if state.cancelled:
            return
        self._state_durable = self.state_repository.save(state)

    def _finish_cancelled(self, state: CrawlState) -> None:
        state.status = CrawlStatus.CANCELLED
        state.results.clear()
        state.progress = replace(state.progress, message="Crawl cancelled")
        self.state_repository.clear()
        logger.info(f"Crawl cancelled after {state.frontier.visited_count} pages; no audit saved")

    def _finish_completed(self, state: CrawlState) -> None:
        state.status = CrawlStatus.COMPLETED
        state.paused = False

        results = list(state.results)
        audit = Audit(
            id=uuid.uuid4().hex,
            start_url=state.start_url,
            overall_score=calculate_overall_score(results),
            page_count=len(results),
            start_time=state.started_at or datetime.now().isoformat(),
            end_time=datetime.now().isoformat(),
            pages=results,
            aggregate_stats=calculate_aggregate_stats(
                results,
                top_keywords=self.config.top_keywords,
                top_outbound_links=self.config.top_outbound_links,
            ),
        )

        try:
            self.audit_store.add(audit)
        except StorageError as e:
            logger.error(f"Failed to save audit for {state.start_url}: {e}")

        self.last_audit = audit
        self.state_repository.clear()
        state.progress = CrawlProgress(
            completed=state.frontier.visited_count,
            remaining=len(state.frontier),
            message="Crawl complete!",
        )

        logger.info(f"\n{'=' * 60}")
        logger.info(
            f"Crawl complete! Processed {len(results)} pages, overall score {audit.overall_score}"
        )
        logger.info(f"{'=' * 60}\n")
