"""Same-site link discovery for the crawl frontier."""

import logging
from typing import List
from urllib.parse import urljoin, urlparse

from site_audit.analyzer import LinkExtractor, PageHandle
from site_audit.constants import NON_PAGE_EXTENSIONS

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Normalize URL by removing fragments and trailing slashes.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    parsed = urlparse(url)
    normalized = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
    if parsed.query:
        normalized += f"?{parsed.query}"
    # Remove trailing slash (except for root)
    if normalized.endswith('/') and len(parsed.path) > 1:
        normalized = normalized[:-1]
    return normalized


def should_skip_url(path: str) -> bool:
    """Check whether a URL path points at a non-page resource."""
    return path.lower().endswith(NON_PAGE_EXTENSIONS)


class SameSiteLinkExtractor(LinkExtractor):
    """Collects crawlable links that stay on the base URL's host."""

    async def extract_links(self, page: PageHandle, base_url: str) -> List[str]:
        """Extract same-host page links in document order.

        Args:
            page: Opened page handle
            base_url: URL whose host defines "same site"

        Returns:
            De-duplicated normalized URLs; empty if extraction fails
        """
        try:
            return self._extract(page, base_url)
        except Exception as e:
            logger.warning(f"Link extraction failed for {page.url}: {e}")
            return []

    def _extract(self, page: PageHandle, base_url: str) -> List[str]:
        base_host = urlparse(base_url).hostname
        seen = set()
        links: List[str] = []

        for anchor in page.soup.find_all("a", href=True):
            href = anchor["href"].strip()

            # Skip non-crawlable links
            if href.startswith(("mailto:", "tel:", "javascript:", "#")):
                continue

            try:
                absolute_url = urljoin(page.final_url, href)
                parsed = urlparse(absolute_url)
            except ValueError:
                continue

            if parsed.scheme not in ("http", "https") or parsed.hostname != base_host:
                continue
            if should_skip_url(parsed.path):
                continue

            normalized = normalize_url(absolute_url)
            if normalized not in seen:
                seen.add(normalized)
                links.append(normalized)

        return links
