# src/site_audit/constants.py
"""Centralized constants for the site auditor.

This module contains the default crawl limits and storage keys that are
used across multiple modules. For user-configurable values, see config.py
and CrawlConfig.
"""

# =============================================================================
# Crawl Limits
# =============================================================================

# Maximum number of pages visited in a single crawl
DEFAULT_MAX_PAGES = 50

# Maximum link depth from the seed URL (seed is depth 0)
DEFAULT_MAX_DEPTH = 3

# Minimum idle time between one page analysis ending and the next starting (seconds)
DEFAULT_RATE_LIMIT_SECONDS = 0.8

# Hard timeout for a single analyze attempt (seconds)
DEFAULT_ANALYZE_TIMEOUT_SECONDS = 10.0

# Retries after the first failed analyze attempt
DEFAULT_MAX_RETRIES = 2

# Pause before each retry of a failed analyze attempt (seconds)
DEFAULT_RETRY_DELAY_SECONDS = DEFAULT_RATE_LIMIT_SECONDS


# =============================================================================
# Aggregation
# =============================================================================

# Number of keyword phrases kept in the cross-page summary
TOP_KEYWORDS_COUNT = 20

# Number of external URLs kept in the cross-page summary
TOP_OUTBOUND_LINKS_COUNT = 15

# Label for structured data entries without an @type
UNKNOWN_SCHEMA_TYPE = "Unknown"

# Alt value the page analyzer records for images without alt text
NO_ALT_TEXT = "No alt text"


# =============================================================================
# Page Analyzer
# =============================================================================

# Keyword phrases kept per page
PAGE_KEYWORDS_COUNT = 10

# Keyword phrase lengths (words)
KEYWORD_MIN_PHRASE_WORDS = 2
KEYWORD_MAX_PHRASE_WORDS = 3

# A phrase must repeat at least this often to count as a keyword
KEYWORD_MIN_OCCURRENCES = 2

# Words ignored when judging whether a phrase carries content
STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "as", "is", "was", "are", "were", "be", "been",
    "being", "have", "has", "had", "do", "does", "did", "will", "would",
    "should", "could", "may", "might", "must", "can", "this", "that", "these",
    "those", "i", "you", "he", "she", "it", "we", "they", "what", "which",
    "who", "when", "where", "why", "how",
})

# Path extensions that are never crawled as pages
NON_PAGE_EXTENSIONS = (
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".zip",
    ".exe", ".doc", ".docx", ".xls", ".xlsx", ".css", ".js", ".xml",
    ".json", ".ico", ".mp3", ".mp4",
)


# =============================================================================
# Storage
# =============================================================================

# Key holding the live crawl checkpoint
CRAWL_STATE_KEY = "crawl_state"

# Key holding the audit history
AUDITS_KEY = "website_audits"

# Maximum number of audits retained (most recent first)
MAX_STORED_AUDITS = 10

# Crawl state serialization format version
CRAWL_STATE_VERSION = 1

# Attempts made for each checkpoint write (first try + one retry)
CHECKPOINT_WRITE_ATTEMPTS = 2
