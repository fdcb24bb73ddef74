"""Fetch-analyze step: one page, bounded by a timeout and a retry budget."""

import asyncio
import logging
from dataclasses import replace
from typing import Optional

from site_audit.analyzer import LinkExtractor, PageAnalyzer
from site_audit.constants import (
    DEFAULT_ANALYZE_TIMEOUT_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_SECONDS,
)
from site_audit.models import PageRecord

logger = logging.getLogger(__name__)


class FetchAnalyzer:
    """Runs the page analyzer (and optionally link extraction) for one URL.

    Each attempt opens the page resource, analyzes it and, when requested,
    extracts links, all inside one timeout window. The page resource is a
    context manager, so it is released on success, error and timeout alike.
    Failed attempts are retried up to ``max_retries`` times, each after a
    ``retry_delay`` pause; after that a failure record is returned instead
    of raising.
    """

    def __init__(
        self,
        analyzer: PageAnalyzer,
        link_extractor: LinkExtractor,
        timeout: float = DEFAULT_ANALYZE_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    ):
        """Initialize the fetch-analyze step.

        Args:
            analyzer: Page analyzer collaborator
            link_extractor: Link extractor collaborator
            timeout: Seconds allowed for each attempt
            max_retries: Retries after the first failed attempt
            retry_delay: Seconds to wait before each retry
        """
        self.analyzer = analyzer
        self.link_extractor = link_extractor
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def fetch_analyze(
        self,
        url: str,
        extract_links: bool,
        base_url: Optional[str],
        retry_count: int = 0,
    ) -> PageRecord:
        """Analyze a page, retrying transient failures.

        Args:
            url: URL to analyze
            extract_links: Whether to collect same-site links
            base_url: URL defining the crawl's site
            retry_count: Attempts already made

        Returns:
            The page record, or a failure record once retries are exhausted
        """
        try:
            return await asyncio.wait_for(
                self._attempt(url, extract_links, base_url),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            error = "Timeout"
        except Exception as e:
            error = str(e) or type(e).__name__

        if retry_count < self.max_retries:
            logger.info(
                f"  🔄 Retrying {url} after {error} "
                f"(attempt {retry_count + 1}/{self.max_retries})"
            )
            if self.retry_delay > 0:
                await asyncio.sleep(self.retry_delay)
            return await self.fetch_analyze(url, extract_links, base_url, retry_count + 1)

        logger.warning(f"  ❌ Failed after {retry_count} retries: {url} ({error})")
        return PageRecord.failure(url, error)

    async def _attempt(
        self, url: str, extract_links: bool, base_url: Optional[str]
    ) -> PageRecord:
        async with self.analyzer.open_page(url) as page:
            record = await self.analyzer.analyze(page)

            if extract_links and base_url:
                try:
                    links = await self.link_extractor.extract_links(page, base_url)
                except Exception as e:
                    logger.warning(f"Link extraction failed for {url}: {e}")
                    links = []
                record = replace(record, links=list(links))

        return record
