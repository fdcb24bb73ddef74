"""Page analyzer collaborators used by the crawl orchestrator.

The orchestrator only depends on the two abstract interfaces here. The
httpx/BeautifulSoup implementation is what the CLI wires in.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncContextManager, AsyncIterator, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from site_audit.constants import (
    KEYWORD_MAX_PHRASE_WORDS,
    KEYWORD_MIN_OCCURRENCES,
    KEYWORD_MIN_PHRASE_WORDS,
    NO_ALT_TEXT,
    PAGE_KEYWORDS_COUNT,
    STOP_WORDS,
)
from site_audit.models import PageRecord

logger = logging.getLogger(__name__)


@dataclass
class PageHandle:
    """Transient per-page resource handed from the analyzer to link extraction."""

    url: str
    final_url: str
    status_code: int
    soup: BeautifulSoup


class PageAnalyzer(ABC):
    """Turns one URL into a PageRecord."""

    @abstractmethod
    def open_page(self, url: str) -> AsyncContextManager[Any]:
        """Acquire the per-page resource for ``url``.

        The returned async context manager must release the resource on
        exit, whether the body completed, raised, or was cancelled.
        """

    @abstractmethod
    async def analyze(self, page: Any) -> PageRecord:
        """Compute the metrics record for an opened page."""


class LinkExtractor(ABC):
    """Finds same-site links on an opened page."""

    @abstractmethod
    async def extract_links(self, page: Any, base_url: str) -> List[str]:
        """Return same-domain URLs reachable from ``page``.

        Implementations return an empty list instead of raising.
        """


class HtmlPageAnalyzer(PageAnalyzer):
    """Fetches pages over HTTP and scores their on-page SEO."""

    def __init__(
        self,
        user_agent: str = "Site-Audit-Bot/1.0",
        client: Optional[httpx.AsyncClient] = None,
        request_timeout: float = 10.0,
    ):
        """Initialize the analyzer.

        Args:
            user_agent: User agent sent with every request
            client: Optional pre-configured client (owned by the caller)
            request_timeout: Per-request timeout in seconds
        """
        self.user_agent = user_agent
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={
                "User-Agent": user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            },
            follow_redirects=True,
            timeout=request_timeout,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HtmlPageAnalyzer":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @asynccontextmanager
    async def open_page(self, url: str) -> AsyncIterator[PageHandle]:
        async with self._client.stream("GET", url) as response:
            response.raise_for_status()
            content_type = response.headers.get("content-type", "")
            if "html" not in content_type.lower():
                raise ValueError(f"Not an HTML page ({content_type or 'no content type'})")

            body = await response.aread()
            soup = BeautifulSoup(body, "html.parser")
            page = PageHandle(
                url=url,
                final_url=str(response.url),
                status_code=response.status_code,
                soup=soup,
            )
            try:
                yield page
            finally:
                soup.decompose()

    async def analyze(self, page: PageHandle) -> PageRecord:
        soup = page.soup

        title_tag = soup.find("title")
        title = title_tag.get_text(strip=True) if title_tag else None

        description_tag = soup.find("meta", attrs={"name": "description"})
        description = description_tag.get("content") if description_tag else None

        headings = {
            level: [h.get_text(strip=True) for h in soup.find_all(level)]
            for level in ("h1", "h2", "h3")
        }

        images = [
            {"src": img.get("src", ""), "alt": img.get("alt") or NO_ALT_TEXT}
            for img in soup.find_all("img")
        ]

        internal_links, outbound_links = self._classify_anchors(soup, page.final_url)
        schema = self._extract_schema(soup)

        # Text metrics ignore script and style content
        for tag in soup(["script", "style", "noscript"]):
            tag.extract()
        text = " ".join(soup.get_text(separator=" ").split())
        words = re.findall(r"[A-Za-z0-9']+", text)
        sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]

        readability = flesch_reading_ease(words, len(sentences))
        keywords = extract_keywords(words)

        score, checks = score_page(
            title=title,
            description=description,
            headings=headings,
            images=images,
            readability=readability,
            word_count=len(words),
            internal_count=len(internal_links),
            external_count=len(outbound_links),
            schema_count=len(schema),
        )

        return PageRecord(
            url=page.url,
            score=score,
            title=title,
            description=description,
            word_count=len(words),
            readability_score=readability,
            keywords=keywords,
            images=images,
            internal_links=internal_links,
            outbound_links=outbound_links,
            schema=schema,
            extra={
                "status_code": page.status_code,
                "final_url": page.final_url,
                "headings": headings,
                "seo_checks": checks,
            },
        )

    def _classify_anchors(
        self, soup: BeautifulSoup, page_url: str
    ) -> Tuple[List[Dict[str, str]], List[Dict[str, str]]]:
        """Split absolute http(s) anchors into same-host and external lists."""
        current_host = urlparse(page_url).hostname
        internal, outbound = [], []

        for anchor in soup.find_all("a", href=True):
            href = urljoin(page_url, anchor["href"])
            if not href.startswith("http"):
                continue
            entry = {"href": href, "text": anchor.get_text(strip=True)}
            if urlparse(href).hostname == current_host:
                internal.append(entry)
            else:
                outbound.append(entry)

        return internal, outbound

    def _extract_schema(self, soup: BeautifulSoup) -> List[Dict[str, Any]]:
        schemas: List[Dict[str, Any]] = []
        for script in soup.find_all("script", type="application/ld+json"):
            try:
                data = json.loads(script.string or "")
            except (json.JSONDecodeError, TypeError):
                logger.debug("Ignoring malformed JSON-LD block")
                continue
            if isinstance(data, list):
                schemas.extend(item for item in data if isinstance(item, dict))
            elif isinstance(data, dict):
                schemas.append(data)
        return schemas


def count_syllables(word: str) -> int:
    """Count syllables in a word (simple approximation)."""
    word = word.lower()
    syllable_count = 0
    previous_was_vowel = False

    for char in word:
        is_vowel = char in "aeiouy"
        if is_vowel and not previous_was_vowel:
            syllable_count += 1
        previous_was_vowel = is_vowel

    # Adjust for silent 'e'
    if word.endswith("e"):
        syllable_count -= 1

    return max(1, syllable_count)


def flesch_reading_ease(words: List[str], sentence_count: int) -> float:
    """Flesch Reading Ease clamped to 0-100, one decimal place."""
    if not words or sentence_count == 0:
        return 0.0

    syllables = sum(count_syllables(word) for word in words)
    score = 206.835 - 1.015 * (len(words) / sentence_count) - 84.6 * (syllables / len(words))
    return round(max(0.0, min(100.0, score)), 1)


def extract_keywords(words: List[str], limit: int = PAGE_KEYWORDS_COUNT) -> List[List[Any]]:
    """Find repeated multi-word phrases, favouring longer ones.

    Returns:
        [phrase, count] pairs, best first
    """
    cleaned = [w for w in (re.sub(r"[^a-z0-9]", "", w.lower()) for w in words) if w]
    frequency: Dict[str, int] = {}

    for n in range(KEYWORD_MIN_PHRASE_WORDS, KEYWORD_MAX_PHRASE_WORDS + 1):
        for i in range(len(cleaned) - n + 1):
            phrase_words = cleaned[i:i + n]
            content_words = [w for w in phrase_words if w not in STOP_WORDS and len(w) > 2]
            if len(content_words) >= (n + 1) // 2:
                phrase = " ".join(phrase_words)
                frequency[phrase] = frequency.get(phrase, 0) + 1

    ranked = sorted(
        ((phrase, count) for phrase, count in frequency.items() if count >= KEYWORD_MIN_OCCURRENCES),
        key=lambda item: item[1] * (1 + len(item[0].split()) * 0.1),
        reverse=True,
    )
    return [[phrase, count] for phrase, count in ranked[:limit]]


def score_page(
    title: Optional[str],
    description: Optional[str],
    headings: Dict[str, List[str]],
    images: List[Dict[str, Any]],
    readability: float,
    word_count: int,
    internal_count: int,
    external_count: int,
    schema_count: int,
) -> Tuple[int, List[Dict[str, Any]]]:
    """Score a page out of 100 against basic on-page SEO checks.

    Returns:
        Tuple of (score, checks) where each check records its category,
        status and the points it earned
    """
    checks: List[Dict[str, Any]] = []

    def check(category: str, points: int, max_points: int, status: str) -> None:
        checks.append({
            "category": category,
            "status": status,
            "points": points,
            "max_points": max_points,
        })

    # Title (15)
    title_len = len(title or "")
    if 30 <= title_len <= 60:
        check("Title", 15, 15, "good")
    elif title_len > 60:
        check("Title", 10, 15, "warning")
    elif title_len > 0:
        check("Title", 8, 15, "warning")
    else:
        check("Title", 0, 15, "poor")

    # H1 (10)
    h1_count = len(headings.get("h1", []))
    if h1_count == 1:
        check("H1 Tag", 10, 10, "good")
    elif h1_count > 1:
        check("H1 Tag", 5, 10, "warning")
    else:
        check("H1 Tag", 0, 10, "poor")

    # Meta description (10)
    desc_len = len(description or "")
    if 120 <= desc_len <= 160:
        check("Meta Description", 10, 10, "good")
    elif desc_len > 0:
        check("Meta Description", 5, 10, "warning")
    else:
        check("Meta Description", 0, 10, "poor")

    # Image alt text (10)
    if images:
        with_alt = sum(1 for img in images if img.get("alt") and img["alt"] != NO_ALT_TEXT)
        ratio = with_alt / len(images)
        if ratio >= 0.9:
            check("Image Alt Text", 10, 10, "good")
        elif ratio >= 0.5:
            check("Image Alt Text", 5, 10, "warning")
        else:
            check("Image Alt Text", 2, 10, "poor")
    else:
        check("Images", 5, 10, "warning")

    # Readability (15)
    if 60 <= readability <= 80:
        check("Readability", 15, 15, "good")
    elif 50 <= readability < 90:
        check("Readability", 10, 15, "warning")
    else:
        check("Readability", 5, 15, "warning")

    # Content length (10)
    if word_count >= 600:
        check("Content Length", 10, 10, "good")
    elif word_count >= 300:
        check("Content Length", 7, 10, "good")
    elif word_count >= 100:
        check("Content Length", 4, 10, "warning")
    else:
        check("Content Length", 0, 10, "poor")

    # Internal links (5)
    if internal_count >= 3:
        check("Internal Links", 5, 5, "good")
    elif internal_count > 0:
        check("Internal Links", 3, 5, "warning")
    else:
        check("Internal Links", 0, 5, "warning")

    # External links (5)
    if 1 <= external_count <= 10:
        check("External Links", 5, 5, "good")
    elif external_count > 10:
        check("External Links", 3, 5, "warning")
    else:
        check("External Links", 2, 5, "warning")

    # Structured data (10)
    if schema_count:
        check("Structured Data", 10, 10, "good")
    else:
        check("Structured Data", 0, 10, "warning")

    # Heading structure (10)
    has_h2 = bool(headings.get("h2"))
    has_h3 = bool(headings.get("h3"))
    if has_h2 and has_h3:
        check("Heading Structure", 10, 10, "good")
    elif has_h2:
        check("Heading Structure", 6, 10, "warning")
    else:
        check("Heading Structure", 2, 10, "warning")

    score = min(100, sum(c["points"] for c in checks))
    return score, checks
