"""Tests for storage backends, crawl state checkpoints and audit history."""

import pytest

from conftest import MemoryStorage, make_audit
from site_audit.audit_store import AuditStore
from site_audit.constants import CRAWL_STATE_KEY
from site_audit.frontier import FrontierEntry
from site_audit.models import CrawlState, CrawlStatus, PageRecord
from site_audit.persistence import CrawlStateRepository
from site_audit.storage import JsonFileStorage, SqliteStorage, StorageError, get_storage

@pytest.fixture(params=["json", "sqlite"])
def backend(request, tmp_path):
    """Each real storage backend rooted in a temp directory."""
    if request.param == "json":
        store = JsonFileStorage(directory=str(tmp_path / "state"))
    else:
        store = SqliteStorage(db_path=str(tmp_path / "state.db"))
    yield store
    store.close()

class TestStorageBackends:
    """Behaviour shared by JSON and SQLite storage."""

    def test_missing_key(self, backend):
        assert backend.get("nothing") is None

    def test_set_get_replace(self, backend):
        backend.set("crawl_state", {"visited": ["a"], "paused": False})
        backend.set("crawl_state", {"visited": ["a", "b"], "paused": True})
        assert backend.get("crawl_state") == {"visited": ["a", "b"], "paused": True}

    def test_delete(self, backend):
        backend.set("key", [1, 2, 3])
        backend.delete("key")
        backend.delete("key")
        assert backend.get("key") is None

    def test_unserializable_value(self, backend):
        with pytest.raises(StorageError):
            backend.set("key", {"bad": object()})

    def test_corrupt_json_file(self, tmp_path):
        """Test an unreadable file surfaces as StorageError."""
        store = JsonFileStorage(directory=str(tmp_path))
        (tmp_path / "crawl_state.json").write_text("{not json")
        with pytest.raises(StorageError) as exc_info:
            store.get("crawl_state")
        assert exc_info.value.key == "crawl_state"

    def test_json_write_leaves_no_temp_files(self, tmp_path):
        store = JsonFileStorage(directory=str(tmp_path))
        store.set("website_audits", [{"id": "a"}])
        assert [p.name for p in tmp_path.iterdir()] == ["website_audits.json"]

class TestGetStorage:
    """Test cases for the backend factory."""

    def test_json_backend(self, tmp_path):
        assert isinstance(get_storage("json", directory=str(tmp_path)), JsonFileStorage)

    def test_sqlite_backend(self, tmp_path):
        store = get_storage("sqlite", db_path=str(tmp_path / "audit.db"))
        assert isinstance(store, SqliteStorage)
        store.close()

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            get_storage("redis")

class TestCrawlStateRepository:
    """Test cases for crawl state checkpoints."""

    def _state(self):
        state = CrawlState.fresh("https://example.com/", started_at="2024-05-01T10:00:00")
        state.frontier.pop()
        state.frontier.mark_visited("https://example.com/")
        state.frontier.push_all(["https://example.com/a", "https://example.com/b"], 1)
        state.results.append(PageRecord(url="https://example.com/", score=88, keywords=[["seo tips", 2]]))
        state.paused = True
        state.status = CrawlStatus.PAUSED
        return state

    def test_save_and_load(self, tmp_path):
        repository = CrawlStateRepository(JsonFileStorage(directory=str(tmp_path)))
        assert repository.save(self._state()) is True

        loaded = repository.load()
        assert loaded.start_url == "https://example.com/"
        assert loaded.status == CrawlStatus.PAUSED
        assert loaded.paused is True
        assert loaded.visited == {"https://example.com/"}
        assert loaded.frontier.entries() == [
            FrontierEntry("https://example.com/a", 1),
            FrontierEntry("https://example.com/b", 1),
        ]
        assert loaded.results[0].score == 88
        assert loaded.started_at == "2024-05-01T10:00:00"

    def test_load_absent(self, storage):
        assert CrawlStateRepository(storage).load() is None

    def test_load_corrupt_file(self, tmp_path):
        """Test a corrupt checkpoint is treated as absent."""
        (tmp_path / "crawl_state.json").write_text("garbage")
        repository = CrawlStateRepository(JsonFileStorage(directory=str(tmp_path)))
        assert repository.load() is None

    def test_load_non_object(self, storage):
        """Test valid JSON that is not an object is treated as absent."""
        storage.set(CRAWL_STATE_KEY, [1, 2, 3])
        assert CrawlStateRepository(storage).load() is None

        storage.set(CRAWL_STATE_KEY, "running")
        assert CrawlStateRepository(storage).load() is None

    def test_load_wrong_version(self, storage):
        storage.set(CRAWL_STATE_KEY, {"version": 99, "start_url": "https://example.com/"})
        assert CrawlStateRepository(storage).load() is None

    def test_load_malformed(self, storage):
        storage.set(CRAWL_STATE_KEY, {"version": 1, "status": "running"})
        assert CrawlStateRepository(storage).load() is None

    def test_save_retries_once_then_reports_failure(self):
        storage = MemoryStorage(failing_keys={CRAWL_STATE_KEY})
        repository = CrawlStateRepository(storage)

        assert repository.save(self._state()) is False
        assert storage.set_calls[CRAWL_STATE_KEY] == 2

    def test_clear(self, storage):
        repository = CrawlStateRepository(storage)
        repository.save(self._state())
        repository.clear()
        assert repository.load() is None

class TestAuditStore:
    """Test cases for audit history."""

    def test_most_recent_first(self, storage):
        store = AuditStore(storage)
        store.add(make_audit(1))
        store.add(make_audit(2))

        assert [audit.id for audit in store.list()] == ["audit-2", "audit-1"]
        assert store.latest().id == "audit-2"

    def test_capped_at_ten(self, storage):
        """Test the oldest audits are dropped beyond the cap."""
        store = AuditStore(storage)
        for i in range(12):
            store.add(make_audit(i))

        ids = [audit.id for audit in store.list()]
        assert len(store) == 10
        assert ids[0] == "audit-11"
        assert ids[-1] == "audit-2"

    def test_get_and_delete(self, storage):
        store = AuditStore(storage)
        store.add(make_audit(1))
        store.add(make_audit(2))

        assert store.get("audit-1").overall_score == 71
        assert store.get("missing") is None
        assert store.delete("audit-1") is True
        assert store.delete("audit-1") is False
        assert [audit.id for audit in store.list()] == ["audit-2"]

    def test_empty(self, storage):
        store = AuditStore(storage)
        assert store.list() == []
        assert store.latest() is None

    def test_clear(self, storage):
        store = AuditStore(storage)
        store.add(make_audit(1))
        store.clear()
        assert len(store) == 0

    def test_write_failure_propagates(self):
        store = AuditStore(MemoryStorage(failing_keys={"website_audits"}))
        with pytest.raises(StorageError):
            store.add(make_audit(1))
