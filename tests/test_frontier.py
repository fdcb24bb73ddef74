"""Tests for the crawl frontier and crawl state models."""

from site_audit.frontier import Frontier, FrontierEntry
from site_audit.models import CrawlState, CrawlStatus, CrawlStatusSnapshot, CrawlProgress, PageRecord


class TestFrontier:
    """Test cases for Frontier."""

    def test_fifo_order(self):
        frontier = Frontier()
        frontier.push("https://example.com/a", 1)
        frontier.push("https://example.com/b", 1)
        frontier.push("https://example.com/c", 2)

        assert [frontier.pop().url for _ in range(3)] == [
            "https://example.com/a",
            "https://example.com/b",
            "https://example.com/c",
        ]
        assert len(frontier) == 0

    def test_push_skips_visited(self):
        frontier = Frontier(visited=["https://example.com/"])
        assert frontier.push("https://example.com/", 1) is False
        assert frontier.push_all(["https://example.com/", "https://example.com/a"], 1) == 1
        assert frontier.entries() == [FrontierEntry("https://example.com/a", 1)]

    def test_duplicates_allowed_until_visited(self):
        """Test a URL may be queued twice before it is popped."""
        frontier = Frontier()
        frontier.push("https://example.com/a", 1)
        frontier.push("https://example.com/a", 2)
        assert len(frontier) == 2

        entry = frontier.pop()
        frontier.mark_visited(entry.url)
        assert frontier.is_visited(frontier.pop().url)

    def test_visited_count(self):
        frontier = Frontier()
        frontier.mark_visited("https://example.com/")
        frontier.mark_visited("https://example.com/")
        assert frontier.visited_count == 1

    def test_entry_round_trip(self):
        entry = FrontierEntry("https://example.com/a", 2)
        assert FrontierEntry.from_dict(entry.to_dict()) == entry


class TestCrawlState:
    """Test cases for CrawlState."""

    def test_fresh_state(self):
        state = CrawlState.fresh("https://example.com/", started_at="2024-05-01T10:00:00")

        assert state.status == CrawlStatus.RUNNING
        assert state.running is True
        assert state.paused is False
        assert state.frontier.entries() == [FrontierEntry("https://example.com/", 0)]
        assert state.visited == set()
        assert state.progress.remaining == 1

    def test_idle_state_not_running(self):
        state = CrawlState()
        assert state.running is False
        assert state.status == CrawlStatus.IDLE

    def test_paused_counts_as_running(self):
        state = CrawlState(status=CrawlStatus.PAUSED, paused=True)
        assert state.running is True

    def test_serialized_shape(self):
        state = CrawlState.fresh("https://example.com/", started_at="2024-05-01T10:00:00")
        state.frontier.mark_visited("https://example.com/b")
        state.frontier.mark_visited("https://example.com/a")
        data = state.to_dict()

        assert data["version"] == 1
        assert data["status"] == "running"
        assert data["running"] is True
        assert data["visited"] == ["https://example.com/a", "https://example.com/b"]
        assert data["frontier"] == [{"url": "https://example.com/", "depth": 0}]

        restored = CrawlState.from_dict(data)
        assert restored.visited == state.visited
        assert restored.frontier.entries() == state.frontier.entries()


class TestPageRecord:
    """Test cases for PageRecord."""

    def test_failure_record(self):
        record = PageRecord.failure("https://example.com/", "Timeout")
        assert record.failed is True
        assert record.error == "Timeout"
        assert record.score == 0

    def test_from_dict_ignores_unknown_fields(self):
        record = PageRecord.from_dict({"url": "https://example.com/", "score": 50, "legacy": True})
        assert record.score == 50

    def test_snapshot_to_dict(self):
        snapshot = CrawlStatusSnapshot(
            running=True,
            paused=False,
            status=CrawlStatus.RUNNING,
            progress=CrawlProgress(completed=1, remaining=2, message="Analyzed 1 pages"),
            page_results=[PageRecord(url="https://example.com/", score=90)],
        )
        data = snapshot.to_dict()
        assert data["status"] == "running"
        assert data["progress"]["remaining"] == 2
        assert data["page_results"][0]["score"] == 90
        assert data["state_durable"] is True
