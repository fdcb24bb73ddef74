"""Cross-page aggregation of a finished crawl's page records."""

import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

from site_audit.constants import (
    NO_ALT_TEXT,
    TOP_KEYWORDS_COUNT,
    TOP_OUTBOUND_LINKS_COUNT,
    UNKNOWN_SCHEMA_TYPE,
)
from site_audit.models import (
    AggregateStats,
    Averages,
    ImageStats,
    LinkStats,
    PageRecord,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _top_counts(counts: Dict[str, int], limit: int) -> List[List[Any]]:
    # sorted() is stable, so ties keep first-encounter order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [[key, count] for key, count in ranked[:limit]]


def calculate_overall_score(pages: Sequence[PageRecord]) -> int:
    """Mean page score rounded to an integer; 0 when there are no pages."""
    if not pages:
        return 0
    total = sum(page.score or 0 for page in pages)
    return round_half_up(total / len(pages))


def aggregate_keywords(pages: Iterable[PageRecord], limit: int = TOP_KEYWORDS_COUNT) -> List[List[Any]]:
    """Sum per-page keyword counts and keep the most frequent phrases."""
    frequency: Dict[str, int] = {}
    for page in pages:
        for item in page.keywords or []:
            keyword, count = item[0], item[1]
            frequency[keyword] = frequency.get(keyword, 0) + int(count)
    return _top_counts(frequency, limit)


def aggregate_outbound_links(
    pages: Iterable[PageRecord], limit: int = TOP_OUTBOUND_LINKS_COUNT
) -> List[List[Any]]:
    """Count how many distinct pages link to each external URL."""
    pages_linking: Dict[str, int] = {}
    for page in pages:
        seen_on_page = set()
        for link in page.outbound_links or []:
            url = link.get("url") or link.get("href") or ""
            if url and url not in seen_on_page:
                seen_on_page.add(url)
                pages_linking[url] = pages_linking.get(url, 0) + 1
    return _top_counts(pages_linking, limit)


def aggregate_schema_types(pages: Iterable[PageRecord]) -> Dict[str, int]:
    """Count structured data entries by @type."""
    schema_types: Dict[str, int] = {}
    for page in pages:
        for entry in page.schema or []:
            schema_type = entry.get("@type") or UNKNOWN_SCHEMA_TYPE
            if isinstance(schema_type, list):
                schema_type = ", ".join(str(t) for t in schema_type)
            schema_types[schema_type] = schema_types.get(schema_type, 0) + 1
    return schema_types


def median_readability(pages: Iterable[PageRecord]) -> float:
    """Median of the positive readability scores, to 2 decimal places."""
    scores = sorted(
        score for score in (_to_float(page.readability_score) for page in pages)
        if score > 0
    )
    if not scores:
        return 0.0

    mid = len(scores) // 2
    if len(scores) % 2 == 0:
        return round((scores[mid - 1] + scores[mid]) / 2, 2)
    return round(scores[mid], 2)


def calculate_image_stats(pages: Iterable[PageRecord]) -> ImageStats:
    total = 0
    with_alt = 0
    for page in pages:
        images = page.images or []
        total += len(images)
        with_alt += sum(
            1 for img in images if img.get("alt") and img.get("alt") != NO_ALT_TEXT
        )

    return ImageStats(
        total=total,
        with_alt=with_alt,
        without_alt=total - with_alt,
        alt_percentage=round_half_up(with_alt / total * 100) if total else 0,
    )


def calculate_link_stats(pages: Sequence[PageRecord]) -> LinkStats:
    total_internal = sum(len(page.internal_links or []) for page in pages)
    total_external = sum(len(page.outbound_links or []) for page in pages)
    page_count = len(pages)

    return LinkStats(
        total_internal=total_internal,
        total_external=total_external,
        avg_internal_per_page=round_half_up(total_internal / page_count) if page_count else 0,
        avg_external_per_page=round_half_up(total_external / page_count) if page_count else 0,
    )


def calculate_aggregate_stats(
    pages: Sequence[PageRecord],
    top_keywords: int = TOP_KEYWORDS_COUNT,
    top_outbound_links: int = TOP_OUTBOUND_LINKS_COUNT,
) -> Optional[AggregateStats]:
    """Build the cross-page summary for a finished crawl.

    Averages include pages with zero or missing values. The median
    readability only considers pages with a positive score.

    Args:
        pages: Successful page records in completion order
        top_keywords: Number of keyword phrases to keep
        top_outbound_links: Number of external URLs to keep

    Returns:
        AggregateStats, or None when there are no pages
    """
    if not pages:
        return None

    page_count = len(pages)
    averages = Averages(
        word_count=round_half_up(sum(page.word_count or 0 for page in pages) / page_count),
        readability=round(
            sum(_to_float(page.readability_score) for page in pages) / page_count, 2
        ),
        seo_score=round(sum(page.score or 0 for page in pages) / page_count, 2),
    )

    return AggregateStats(
        top_keywords=aggregate_keywords(pages, top_keywords),
        top_outbound_links=aggregate_outbound_links(pages, top_outbound_links),
        schema_types=aggregate_schema_types(pages),
        averages=averages,
        median_readability=median_readability(pages),
        images=calculate_image_stats(pages),
        links=calculate_link_stats(pages),
    )
