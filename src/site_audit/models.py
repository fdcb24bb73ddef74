"""Data models for site crawls and audits."""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional

from site_audit.constants import CRAWL_STATE_VERSION
from site_audit.frontier import Frontier, FrontierEntry


class CrawlStatus(str, Enum):
    """Lifecycle of a crawl."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass
class CrawlProgress:
    """Display-oriented progress view, recomputed after every page."""

    completed: int = 0
    remaining: int = 0
    message: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CrawlProgress":
        data = data or {}
        return cls(
            completed=int(data.get("completed", 0)),
            remaining=int(data.get("remaining", 0)),
            message=data.get("message", ""),
        )


@dataclass(frozen=True)
class PageRecord:
    """Outcome of analyzing one page.

    Only the fields read by the aggregation step are typed; anything else
    the page analyzer reports travels in ``extra``.
    """

    url: str
    depth: int = 0
    failed: bool = False
    error: Optional[str] = None
    score: int = 0
    title: Optional[str] = None
    description: Optional[str] = None
    word_count: int = 0
    readability_score: float = 0.0
    keywords: List[List[Any]] = field(default_factory=list)  # [phrase, count] pairs
    images: List[Dict[str, Any]] = field(default_factory=list)
    internal_links: List[Dict[str, str]] = field(default_factory=list)
    outbound_links: List[Dict[str, str]] = field(default_factory=list)
    schema: List[Dict[str, Any]] = field(default_factory=list)
    links: List[str] = field(default_factory=list)  # same-site links to crawl
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, url: str, error: str, depth: int = 0) -> "PageRecord":
        """Build a terminal failure record."""
        return cls(url=url, depth=depth, failed=True, error=error, score=0)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PageRecord":
        valid_fields = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in valid_fields})


@dataclass
class CrawlState:
    """The single mutable unit of crawl progress; this is what gets checkpointed."""

    start_url: str = ""
    status: CrawlStatus = CrawlStatus.IDLE
    frontier: Frontier = field(default_factory=Frontier)
    results: List[PageRecord] = field(default_factory=list)
    progress: CrawlProgress = field(default_factory=CrawlProgress)
    paused: bool = False
    cancelled: bool = False
    started_at: Optional[str] = None

    @classmethod
    def fresh(cls, start_url: str, started_at: str) -> "CrawlState":
        """Create the initial state for a new crawl seeded at depth 0."""
        return cls(
            start_url=start_url,
            status=CrawlStatus.RUNNING,
            frontier=Frontier(entries=[FrontierEntry(url=start_url, depth=0)]),
            progress=CrawlProgress(completed=0, remaining=1, message="Starting crawl..."),
            started_at=started_at,
        )

    @property
    def running(self) -> bool:
        return self.status in (CrawlStatus.RUNNING, CrawlStatus.PAUSED)

    @property
    def visited(self) -> set:
        return self.frontier.visited

    def to_dict(self) -> dict:
        """Serialize for checkpointing.

        Returns:
            State dictionary suitable for saving
        """
        return {
            "version": CRAWL_STATE_VERSION,
            "status": self.status.value,
            "running": self.running,
            "paused": self.paused,
            "cancelled": self.cancelled,
            "start_url": self.start_url,
            "started_at": self.started_at,
            "visited": sorted(self.frontier.visited),
            "frontier": [entry.to_dict() for entry in self.frontier.entries()],
            "results": [record.to_dict() for record in self.results],
            "progress": self.progress.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CrawlState":
        """Rebuild a state from a checkpoint dictionary.

        Raises:
            KeyError, ValueError, TypeError: If the checkpoint is malformed
        """
        return cls(
            start_url=data["start_url"],
            status=CrawlStatus(data["status"]),
            frontier=Frontier(
                entries=[FrontierEntry.from_dict(item) for item in data["frontier"]],
                visited=data["visited"],
            ),
            results=[PageRecord.from_dict(item) for item in data.get("results", [])],
            progress=CrawlProgress.from_dict(data.get("progress")),
            paused=bool(data.get("paused", False)),
            cancelled=bool(data.get("cancelled", False)),
            started_at=data.get("started_at"),
        )


@dataclass
class CrawlStatusSnapshot:
    """Read-only view of a crawl returned by status queries."""

    running: bool
    paused: bool
    status: CrawlStatus
    progress: CrawlProgress
    page_results: List[PageRecord]
    state_durable: bool = True

    def to_dict(self) -> dict:
        return {
            "running": self.running,
            "paused": self.paused,
            "status": self.status.value,
            "progress": self.progress.to_dict(),
            "page_results": [record.to_dict() for record in self.page_results],
            "state_durable": self.state_durable,
        }


@dataclass
class Averages:
    word_count: int = 0
    readability: float = 0.0
    seo_score: float = 0.0


@dataclass
class ImageStats:
    total: int = 0
    with_alt: int = 0
    without_alt: int = 0
    alt_percentage: int = 0


@dataclass
class LinkStats:
    total_internal: int = 0
    total_external: int = 0
    avg_internal_per_page: int = 0
    avg_external_per_page: int = 0


@dataclass
class AggregateStats:
    """Cross-page statistical summary of a finished crawl."""

    top_keywords: List[List[Any]] = field(default_factory=list)  # [phrase, total]
    top_outbound_links: List[List[Any]] = field(default_factory=list)  # [url, pages]
    schema_types: Dict[str, int] = field(default_factory=dict)
    averages: Averages = field(default_factory=Averages)
    median_readability: float = 0.0
    images: ImageStats = field(default_factory=ImageStats)
    links: LinkStats = field(default_factory=LinkStats)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AggregateStats":
        return cls(
            top_keywords=[list(item) for item in data.get("top_keywords", [])],
            top_outbound_links=[list(item) for item in data.get("top_outbound_links", [])],
            schema_types=dict(data.get("schema_types", {})),
            averages=Averages(**data.get("averages", {})),
            median_readability=data.get("median_readability", 0.0),
            images=ImageStats(**data.get("images", {})),
            links=LinkStats(**data.get("links", {})),
        )


@dataclass(frozen=True)
class Audit:
    """Finalized, immutable report for one completed crawl."""

    id: str
    start_url: str
    overall_score: int
    page_count: int
    start_time: str
    end_time: str
    pages: List[PageRecord] = field(default_factory=list)
    aggregate_stats: Optional[AggregateStats] = None
    completed: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start_url": self.start_url,
            "overall_score": self.overall_score,
            "page_count": self.page_count,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "pages": [page.to_dict() for page in self.pages],
            "aggregate_stats": self.aggregate_stats.to_dict() if self.aggregate_stats else None,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Audit":
        stats = data.get("aggregate_stats")
        return cls(
            id=data["id"],
            start_url=data["start_url"],
            overall_score=data["overall_score"],
            page_count=data["page_count"],
            start_time=data["start_time"],
            end_time=data["end_time"],
            pages=[PageRecord.from_dict(page) for page in data.get("pages", [])],
            aggregate_stats=AggregateStats.from_dict(stats) if stats else None,
            completed=data.get("completed", True),
        )
