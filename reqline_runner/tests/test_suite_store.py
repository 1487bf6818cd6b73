"""
Tests for the suite store.

Covers the base origin rules for endpoints, persistence through the
SQLite-backed storage, TTL expiry, and vault and request history
bookkeeping.
"""

from contextlib import contextmanager
from datetime import timezone

import pytest
from hypothesis import given, strategies as st, settings
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from reqline_runner import models  # noqa: F401
from reqline_runner.database import Base
from reqline_runner.models.storage_entry import StorageEntry, utc_now
from reqline_runner.exceptions import (
    OriginExtractionError,
    OriginMismatchError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
)
from reqline_runner.schemas.suite import EndpointDraft, EndpointUpdate, SuiteUpdate
from reqline_runner.schemas.vault import VaultItemCreate
from reqline_runner.services.request_line import extract_origin
from reqline_runner.services.storage import SqlStorage
from reqline_runner.services.suite_store import (
    CURRENT_SUITE_KEY,
    SUITES_KEY,
    SuiteStore,
)


# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_suite_store.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

HOUR_MS = 60 * 60 * 1000
TTL_SECONDS = 4 * 60 * 60
START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced clock returning milliseconds."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class MemoryStorage:
    """Dictionary-backed storage."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def remove(self, key):
        self.data.pop(key, None)


class FailingStorage:
    """Storage whose every operation fails."""

    def get(self, key):
        raise StorageError(f"Failed to read {key}")

    def set(self, key, value):
        raise StorageError(f"Failed to save {key}")

    def remove(self, key):
        raise StorageError(f"Failed to remove {key}")


@contextmanager
def sql_storage():
    """Context manager yielding SQL storage over a fresh database."""
    Base.metadata.create_all(bind=engine)
    try:
        yield SqlStorage(TestingSessionLocal)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage():
    with sql_storage() as s:
        yield s


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(storage, clock):
    return SuiteStore(storage, ttl_seconds=TTL_SECONDS, clock=clock)


def draft(request_line: str, title: str = "Endpoint") -> EndpointDraft:
    return EndpointDraft(title=title, description="", request_line=request_line)


class TestSuiteLifecycle:
    """Tests for creating, updating and archiving suites."""

    def test_create_suite_defaults(self, store, clock):
        suite = store.create_suite()
        assert suite.title == "API Test Suite"
        assert suite.description == "Test suite for multiple API endpoints"
        assert suite.base_origin == ""
        assert suite.endpoints == []
        assert suite.created_at == clock.now
        assert suite.expires_at == clock.now + TTL_SECONDS * 1000
        assert store.current is suite
        assert store.history == []

    def test_empty_suites_stay_out_of_history(self, store, storage):
        for _ in range(3):
            store.archive_current(skip_empty=True)
            store.create_suite()

        assert store.history == []
        assert storage.get(SUITES_KEY) is None

    def test_first_endpoint_adds_suite_to_history(self, store):
        suite = store.create_suite()
        store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/x"))
        assert [s.id for s in store.history] == [suite.id]

    def test_explicit_archive_keeps_empty_suite(self, store):
        suite = store.create_suite()
        store.archive_current()
        assert [s.id for s in store.history] == [suite.id]

    def test_create_suite_with_initial_origin(self, store):
        suite = store.create_suite(initial_origin="https://api.example.com")
        assert suite.base_origin == "https://api.example.com"

    def test_update_suite_sanitizes_and_persists(self, store, storage, clock):
        suite = store.create_suite()
        store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/x"))
        clock.advance(1000)
        store.update_suite(suite, SuiteUpdate(title="<b>Users</b> API"))

        assert store.current.title == "Users API"
        assert store.current.updated_at == clock.now
        assert storage.get(CURRENT_SUITE_KEY)["title"] == "Users API"
        assert storage.get(SUITES_KEY)[0]["title"] == "Users API"

    def test_archive_current(self, store):
        suite = store.create_suite()
        store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/x"))

        archived = store.archive_current()
        assert archived.id == suite.id
        assert store.current is None
        assert len(store.history) == 1
        assert len(store.history[0].endpoints) == 1

    def test_archive_current_without_suite(self, store):
        assert store.archive_current() is None

    def test_load_from_history(self, store):
        first = store.create_suite(title="First")
        store.archive_current()
        store.create_suite(title="Second")

        loaded = store.load_from_history(first.id)
        assert loaded.title == "First"
        assert store.current.id == first.id

    def test_load_missing_suite_from_history(self, store):
        with pytest.raises(ResourceNotFoundError):
            store.load_from_history("missing")

    def test_delete_from_history_clears_current(self, store):
        suite = store.create_suite()
        store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/x"))
        store.delete_from_history(suite.id)
        assert store.current is None
        assert store.history == []

    def test_delete_missing_suite_from_history(self, store):
        with pytest.raises(ResourceNotFoundError):
            store.delete_from_history("missing")


class TestEndpointOrigin:
    """Tests for the shared base origin of a suite's endpoints."""

    def test_first_endpoint_sets_base_origin(self, store):
        suite = store.create_suite()
        endpoint = store.attach_endpoint(suite, draft("HTTP GET | URL https://api.x.com/users"))

        assert suite.base_origin == "https://api.x.com"
        assert endpoint.status == "pending"
        assert endpoint.result is None
        assert endpoint.error_message is None
        assert endpoint.executed_at is None

    def test_same_origin_is_accepted(self, store):
        suite = store.create_suite()
        store.attach_endpoint(suite, draft("HTTP GET | URL https://api.x.com/users"))
        store.attach_endpoint(suite, draft("HTTP POST | URL https://API.x.com:443/posts"))
        assert len(suite.endpoints) == 2

    def test_different_origin_is_rejected(self, store):
        suite = store.create_suite()
        store.attach_endpoint(suite, draft("HTTP GET | URL https://api.x.com/users"))

        with pytest.raises(OriginMismatchError) as exc_info:
            store.attach_endpoint(suite, draft("HTTP GET | URL https://api.y.com/posts"))

        message = exc_info.value.detail
        assert "https://api.x.com" in message
        assert "https://api.y.com" in message
        assert len(suite.endpoints) == 1

    def test_port_is_part_of_origin(self, store):
        suite = store.create_suite()
        store.attach_endpoint(suite, draft("HTTP GET | URL http://localhost:8000/a"))
        with pytest.raises(OriginMismatchError):
            store.attach_endpoint(suite, draft("HTTP GET | URL http://localhost:9000/a"))

    def test_empty_suite_adopts_new_origin(self, store):
        suite = store.create_suite(initial_origin="https://old.example.com")
        store.attach_endpoint(suite, draft("HTTP GET | URL https://new.example.com/a"))
        assert suite.base_origin == "https://new.example.com"

    def test_missing_url_directive(self, store):
        suite = store.create_suite()
        with pytest.raises(OriginExtractionError):
            store.attach_endpoint(suite, draft("HTTP GET"))
        assert suite.endpoints == []

    def test_disallowed_scheme(self, store):
        suite = store.create_suite()
        with pytest.raises(ValidationError) as exc_info:
            store.attach_endpoint(suite, draft("HTTP GET | URL ftp://x.com/file"))
        assert exc_info.value.detail == "Only HTTP and HTTPS protocols are allowed"

    def test_blank_request_line(self, store):
        suite = store.create_suite()
        with pytest.raises(ValidationError):
            store.attach_endpoint(suite, draft("   "))

    def test_attach_without_suite_creates_one(self, store):
        endpoint = store.attach_endpoint(None, draft("HTTP GET | URL https://a.com/x"))
        assert store.current is not None
        assert store.current.base_origin == "https://a.com"
        assert store.current.endpoints[0].id == endpoint.id

    def test_attach_sanitizes_fields(self, store):
        suite = store.create_suite()
        endpoint = store.attach_endpoint(suite, EndpointDraft(
            title="<script>x</script>List",
            description="<b>All</b> users",
            request_line="HTTP GET | URL https://a.com/users\x00",
        ))
        assert endpoint.title == "List"
        assert endpoint.description == "All users"
        assert endpoint.request_line == "HTTP GET | URL https://a.com/users"

    @given(hosts=st.lists(
        st.sampled_from(["a.com", "b.com", "A.com", "a.com:8443", "c.org"]),
        min_size=1,
        max_size=8,
    ))
    @settings(max_examples=30, deadline=None)
    def test_all_endpoints_share_base_origin(self, hosts):
        store = SuiteStore(MemoryStorage(), clock=FakeClock())
        suite = store.create_suite()
        for host in hosts:
            try:
                store.attach_endpoint(suite, draft(f"HTTP GET | URL https://{host}/path"))
            except OriginMismatchError:
                pass

        assert suite.endpoints
        assert all(extract_origin(e.request_line) == suite.base_origin for e in suite.endpoints)


class TestEndpointEdits:
    """Tests for updating, editing and removing endpoints."""

    def test_update_endpoint_result_clears_error(self, store):
        suite = store.create_suite()
        endpoint = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/x"))
        store.update_endpoint(suite, endpoint.id, {"status": "failed", "error_message": "nope"})

        updated = store.update_endpoint(
            suite, endpoint.id, {"status": "completed", "result": {"ok": True}}
        )
        assert updated.result == {"ok": True}
        assert updated.error_message is None

    def test_update_endpoint_error_clears_result(self, store):
        suite = store.create_suite()
        endpoint = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/x"))
        store.update_endpoint(suite, endpoint.id, {"status": "completed", "result": [1]})

        updated = store.update_endpoint(
            suite, endpoint.id, {"status": "failed", "error_message": "boom"}
        )
        assert updated.result is None
        assert updated.error_message == "boom"

    def test_update_missing_endpoint(self, store):
        suite = store.create_suite()
        assert store.update_endpoint(suite, "missing", {"status": "running"}) is None

    def test_reset_endpoints(self, store):
        suite = store.create_suite()
        first = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/1"))
        second = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/2"))
        store.update_endpoint(suite, first.id, {"status": "completed", "result": {"a": 1}})
        store.update_endpoint(suite, second.id, {"status": "failed", "error_message": "x"})

        store.reset_endpoints(suite)
        assert [e.status for e in suite.endpoints] == ["pending", "pending"]
        assert all(e.result is None and e.error_message is None for e in suite.endpoints)

    def test_edit_endpoint_checks_origin(self, store):
        suite = store.create_suite()
        first = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/1"))
        store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/2"))

        with pytest.raises(OriginMismatchError):
            store.edit_endpoint(
                suite, first.id, EndpointUpdate(request_line="HTTP GET | URL https://b.com/1")
            )

        edited = store.edit_endpoint(
            suite, first.id, EndpointUpdate(request_line="HTTP GET | URL https://a.com/3")
        )
        assert edited.request_line == "HTTP GET | URL https://a.com/3"

    def test_edit_only_endpoint_moves_origin(self, store):
        suite = store.create_suite()
        endpoint = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/1"))
        store.edit_endpoint(
            suite, endpoint.id, EndpointUpdate(request_line="HTTP GET | URL https://b.com/1")
        )
        assert suite.base_origin == "https://b.com"

    def test_edit_title(self, store):
        suite = store.create_suite()
        endpoint = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/1"))
        edited = store.edit_endpoint(suite, endpoint.id, EndpointUpdate(title="<i>Renamed</i>"))
        assert edited.title == "Renamed"
        assert edited.request_line == "HTTP GET | URL https://a.com/1"

    def test_edit_missing_endpoint(self, store):
        suite = store.create_suite()
        with pytest.raises(ResourceNotFoundError):
            store.edit_endpoint(suite, "missing", EndpointUpdate(title="x"))

    def test_remove_endpoint(self, store):
        suite = store.create_suite()
        endpoint = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/1"))
        assert store.remove_endpoint(suite, endpoint.id) is True
        assert suite.endpoints == []
        assert store.remove_endpoint(suite, endpoint.id) is False


class TestPersistence:
    """Tests for reloading state from durable storage."""

    def test_state_survives_restart(self, storage, clock):
        store = SuiteStore(storage, clock=clock)
        suite = store.create_suite(title="Users")
        endpoint = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/users"))
        store.update_endpoint(suite, endpoint.id, {"status": "completed", "result": {"n": 1}})

        reloaded = SuiteStore(storage, clock=clock)
        assert reloaded.current.id == suite.id
        assert reloaded.current.title == "Users"
        assert reloaded.current.base_origin == "https://a.com"
        assert reloaded.current.endpoints[0].result == {"n": 1}
        assert [s.id for s in reloaded.history] == [suite.id]

    def test_cleared_current_suite_survives_restart(self, storage, clock):
        store = SuiteStore(storage, clock=clock)
        store.create_suite()
        store.archive_current()

        assert storage.get(CURRENT_SUITE_KEY) is None
        assert SuiteStore(storage, clock=clock).current is None

    def test_malformed_document_is_discarded(self, clock):
        storage = MemoryStorage()
        storage.set(SUITES_KEY, [{"not": "a suite"}])
        store = SuiteStore(storage, clock=clock)
        assert store.history == []

    def test_storage_failures_keep_state_in_memory(self, clock):
        store = SuiteStore(FailingStorage(), clock=clock)
        assert store.current is None

        suite = store.create_suite()
        endpoint = store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/x"))
        assert store.current.endpoints[0].id == endpoint.id
        assert store.history[0].id == suite.id


class TestSqlStorage:
    """Tests for the SQLite-backed key-value storage."""

    def test_set_stamps_update_time(self, storage):
        storage.set("some-key", {"a": 1})
        assert storage.get("some-key") == {"a": 1}

        db = TestingSessionLocal()
        try:
            entry = db.get(StorageEntry, "some-key")
            assert entry.updated_at is not None
        finally:
            db.close()

    def test_update_time_is_timezone_aware(self):
        assert utc_now().tzinfo is timezone.utc

    def test_remove_missing_key(self, storage):
        storage.remove("never-set")
        assert storage.get("never-set") is None


class TestExpiry:
    """Tests for TTL sweeping."""

    def test_expired_suites_are_dropped_on_load(self, storage, clock):
        store = SuiteStore(storage, ttl_seconds=TTL_SECONDS, clock=clock)
        suite = store.create_suite()
        store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/x"))

        clock.advance(4 * HOUR_MS + 1)
        reloaded = SuiteStore(storage, ttl_seconds=TTL_SECONDS, clock=clock)
        assert reloaded.current is None
        assert reloaded.history == []
        assert storage.get(SUITES_KEY) == []
        assert storage.get(CURRENT_SUITE_KEY) is None
        assert suite.id not in [s.id for s in reloaded.history]

    def test_suite_is_kept_until_expiry(self, storage, clock):
        store = SuiteStore(storage, ttl_seconds=TTL_SECONDS, clock=clock)
        suite = store.create_suite()

        clock.advance(4 * HOUR_MS)
        reloaded = SuiteStore(storage, ttl_seconds=TTL_SECONDS, clock=clock)
        assert reloaded.current.id == suite.id

    def test_sweep_returns_removed_count(self, clock):
        store = SuiteStore(MemoryStorage(), ttl_seconds=TTL_SECONDS, clock=clock)
        suite = store.create_suite()
        store.attach_endpoint(suite, draft("HTTP GET | URL https://a.com/x"))
        store.add_vault_item(VaultItemCreate(name="token", value="abc"))
        store.record_request("HTTP GET | URL https://a.com", success=True, executed_at=clock.now)

        # current suite, its history entry, one vault item, one history entry
        assert store.sweep_expired(clock.now + 4 * HOUR_MS + 1) == 4
        assert store.sweep_expired(clock.now + 4 * HOUR_MS + 1) == 0

    @given(offsets=st.lists(st.integers(min_value=0, max_value=8 * HOUR_MS), min_size=1, max_size=6))
    @settings(max_examples=30, deadline=None)
    def test_expired_suites_never_reappear(self, offsets):
        storage = MemoryStorage()
        clock = FakeClock()
        store = SuiteStore(storage, ttl_seconds=TTL_SECONDS, clock=clock)

        created = []
        for offset in sorted(offsets):
            clock.now = START_MS + offset
            created.append(store.create_suite())
            store.archive_current()

        sweep_time = START_MS + 8 * HOUR_MS
        clock.now = sweep_time
        reloaded = SuiteStore(storage, ttl_seconds=TTL_SECONDS, clock=clock)

        expected = [s.id for s in created if sweep_time <= s.expires_at]
        assert [s.id for s in reloaded.history] == expected
        assert all(not s.is_expired(sweep_time) for s in reloaded.history)


class TestVaultAndRequestHistory:
    """Tests for vault items and ad-hoc request history."""

    def test_add_and_remove_vault_item(self, store, storage, clock):
        item = store.add_vault_item(VaultItemCreate(
            name="  <b>token</b> ", value="abc123", description="API token"
        ))
        assert item.name == "token"
        assert [i.id for i in store.list_vault_items()] == [item.id]

        reloaded = SuiteStore(storage, clock=clock)
        assert [i.name for i in reloaded.list_vault_items()] == ["token"]

        store.remove_vault_item(item.id)
        assert store.list_vault_items() == []
        with pytest.raises(ResourceNotFoundError):
            store.remove_vault_item(item.id)

    def test_request_history_is_newest_first(self, store, clock):
        store.record_request("HTTP GET | URL https://a.com/1", success=True, executed_at=clock.now)
        store.record_request(
            "HTTP GET | URL https://a.com/2",
            success=False,
            executed_at=clock.now + 10,
            error_message="Server error. Please try again later.",
        )

        entries = store.list_request_history()
        assert [e.request_line for e in entries] == [
            "HTTP GET | URL https://a.com/2",
            "HTTP GET | URL https://a.com/1",
        ]
        assert entries[0].outcome == "error"
        assert entries[1].outcome == "success"

    def test_clear_request_history(self, store, storage, clock):
        store.record_request("HTTP GET | URL https://a.com", success=True, executed_at=clock.now)
        store.clear_request_history()
        assert store.list_request_history() == []
        assert SuiteStore(storage, clock=clock).request_history == []
