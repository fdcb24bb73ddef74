"""Site-wide on-page SEO auditor with a resumable breadth-first crawler."""

__version__ = "0.1.0"

from site_audit.orchestrator import (
    CrawlOrchestrator,
    CrawlCommand,
    Command,
    CommandResponse,
)
from site_audit.fetch import FetchAnalyzer
from site_audit.frontier import Frontier, FrontierEntry
from site_audit.analyzer import (
    PageAnalyzer,
    LinkExtractor,
    HtmlPageAnalyzer,
    PageHandle,
)
from site_audit.link_extractor import SameSiteLinkExtractor
from site_audit.aggregation import calculate_aggregate_stats, calculate_overall_score
from site_audit.audit_store import AuditStore
from site_audit.persistence import CrawlStateRepository
from site_audit.storage import (
    AbstractStorage,
    JsonFileStorage,
    SqliteStorage,
    StorageError,
    get_storage,
)
from site_audit.models import (
    Audit,
    AggregateStats,
    CrawlProgress,
    CrawlState,
    CrawlStatus,
    CrawlStatusSnapshot,
    PageRecord,
)
from site_audit.config import CrawlConfig, settings

# Infrastructure
from site_audit.infrastructure import (
    IntervalRateLimiter,
    RateLimitConfig,
    RateLimiterMetrics,
)

__all__ = [
    # Core
    "CrawlOrchestrator",
    "CrawlCommand",
    "Command",
    "CommandResponse",
    "FetchAnalyzer",
    "Frontier",
    "FrontierEntry",
    # Collaborators
    "PageAnalyzer",
    "LinkExtractor",
    "HtmlPageAnalyzer",
    "PageHandle",
    "SameSiteLinkExtractor",
    # Aggregation
    "calculate_aggregate_stats",
    "calculate_overall_score",
    # Persistence
    "AuditStore",
    "CrawlStateRepository",
    "AbstractStorage",
    "JsonFileStorage",
    "SqliteStorage",
    "StorageError",
    "get_storage",
    # Models
    "Audit",
    "AggregateStats",
    "CrawlProgress",
    "CrawlState",
    "CrawlStatus",
    "CrawlStatusSnapshot",
    "PageRecord",
    "CrawlConfig",
    "settings",
    # Infrastructure
    "IntervalRateLimiter",
    "RateLimitConfig",
    "RateLimiterMetrics",
]
