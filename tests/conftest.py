"""Shared fakes for crawl tests.

FakeSite describes a small link graph; FakeAnalyzer and FakeLinkExtractor
serve it without any network access.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import pytest

from site_audit.analyzer import LinkExtractor, PageAnalyzer
from site_audit.models import Audit, PageRecord
from site_audit.storage import AbstractStorage, StorageError


class FakeSite:
    """Map of url -> outgoing same-site links."""

    def __init__(self, graph: Dict[str, List[str]], scores: Optional[Dict[str, int]] = None):
        self.graph = graph
        self.scores = scores or {}


class FakePage:
    def __init__(self, url: str):
        self.url = url
        self.closed = False


class FakeAnalyzer(PageAnalyzer):
    """Analyzer over a FakeSite that records every page it opens and closes."""

    def __init__(
        self,
        site: Optional[FakeSite] = None,
        delay: float = 0.0,
        fail_urls: Optional[set] = None,
        fail_times: int = 0,
        hang: bool = False,
    ):
        self.site = site or FakeSite({})
        self.delay = delay
        self.fail_urls = fail_urls or set()
        self.fail_times = fail_times
        self.hang = hang
        self.opened: List[str] = []
        self.open_times: List[float] = []
        self.close_times: List[float] = []
        self.pages: List[FakePage] = []
        self.analyze_calls = 0

    @asynccontextmanager
    async def open_page(self, url: str):
        loop = asyncio.get_running_loop()
        self.opened.append(url)
        self.open_times.append(loop.time())
        page = FakePage(url)
        self.pages.append(page)
        try:
            yield page
        finally:
            page.closed = True
            self.close_times.append(loop.time())

    async def analyze(self, page: FakePage) -> PageRecord:
        self.analyze_calls += 1
        if self.hang:
            await asyncio.sleep(60)
        await asyncio.sleep(self.delay)

        if page.url in self.fail_urls:
            raise RuntimeError(f"cannot analyze {page.url}")
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ValueError("boom")

        return PageRecord(
            url=page.url,
            score=self.site.scores.get(page.url, 70),
            title=f"Title of {page.url}",
            word_count=100,
            readability_score=60.0,
        )

    @property
    def all_closed(self) -> bool:
        return all(page.closed for page in self.pages)


class FakeLinkExtractor(LinkExtractor):
    def __init__(self, site: FakeSite, raise_error: bool = False):
        self.site = site
        self.raise_error = raise_error
        self.calls: List[str] = []

    async def extract_links(self, page: FakePage, base_url: str) -> List[str]:
        self.calls.append(page.url)
        if self.raise_error:
            raise RuntimeError("extraction exploded")
        return list(self.site.graph.get(page.url, []))


class MemoryStorage(AbstractStorage):
    """In-memory storage that round-trips values through JSON like the real backends."""

    def __init__(self, failing_keys: Optional[set] = None):
        self.data: Dict[str, str] = {}
        self.failing_keys = failing_keys or set()
        self.set_calls: Dict[str, int] = {}

    def get(self, key: str) -> Optional[Any]:
        if key not in self.data:
            return None
        return json.loads(self.data[key])

    def set(self, key: str, value: Any) -> None:
        self.set_calls[key] = self.set_calls.get(key, 0) + 1
        if key in self.failing_keys:
            raise StorageError(f"disk full writing {key}", key=key)
        self.data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def close(self) -> None:
        pass


def tree_site(root: str = "https://example.com/", width: int = 3, depth: int = 3) -> FakeSite:
    """Build a site where every page links to ``width`` children plus the root."""
    graph: Dict[str, List[str]] = {}
    level = [root]
    for d in range(depth):
        next_level = []
        for url in level:
            base = url.rstrip("/")
            children = [f"{base}/p{i}" for i in range(width)]
            graph[url] = children + [root]
            next_level.extend(children)
        level = next_level
    for url in level:
        graph[url] = [root]
    return FakeSite(graph)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def small_site():
    """Four pages with a cycle back to the home page."""
    return FakeSite(
        {
            "https://example.com/": ["https://example.com/about", "https://example.com/blog"],
            "https://example.com/about": ["https://example.com/", "https://example.com/team"],
            "https://example.com/blog": ["https://example.com/about"],
            "https://example.com/team": [],
        },
        scores={
            "https://example.com/": 80,
            "https://example.com/about": 60,
            "https://example.com/blog": 100,
            "https://example.com/team": 80,
        },
    )


def make_audit(index: int) -> Audit:
    return Audit(
        id=f"audit-{index}",
        start_url="https://example.com/",
        overall_score=70 + index,
        page_count=1,
        start_time=f"2024-05-01T10:{index:02d}:00",
        end_time=f"2024-05-01T10:{index:02d}:30",
        pages=[PageRecord(url="https://example.com/", score=70 + index)],
    )
