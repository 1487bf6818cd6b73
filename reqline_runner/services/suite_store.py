"""
Suite store: persisted test suites, vault items and request history.

The store owns the current suite, the suite history list, vault items and
ad-hoc request history, and is the only writer of durable state. Each
collection lives as one JSON document in the key-value storage. Expired
records are dropped lazily whenever the store loads.

Storage failures never abort an operation: they are logged and the change
stays in memory.
"""

import logging
import time
import uuid
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as SchemaValidationError

from ..config import DEFAULT_PERSISTED_TTL_SECONDS
from ..exceptions import (
    OriginExtractionError,
    OriginMismatchError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
)
from ..schemas.history import RequestHistoryEntry
from ..schemas.suite import Endpoint, EndpointDraft, EndpointUpdate, Suite, SuiteUpdate
from ..schemas.vault import VaultItem, VaultItemCreate
from .request_line import extract_url, origin_of
from .sanitizer import sanitize
from .validator import validate_request_line_length, validate_url

logger = logging.getLogger(__name__)


# Storage keys
CURRENT_SUITE_KEY = "reqline-test-current-suite"
SUITES_KEY = "reqline-test-suites"
VAULT_KEY = "reqline-vault-items"
REQUEST_HISTORY_KEY = "reqline-request-history"

_suite_adapter = TypeAdapter(Suite)
_suite_list_adapter = TypeAdapter(list[Suite])
_vault_list_adapter = TypeAdapter(list[VaultItem])
_history_list_adapter = TypeAdapter(list[RequestHistoryEntry])


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def generate_id() -> str:
    return uuid.uuid4().hex


class SuiteStore:
    """Persisted suites and their endpoints, plus vault and request history."""

    def __init__(
        self,
        storage,
        ttl_seconds: int = DEFAULT_PERSISTED_TTL_SECONDS,
        clock: Callable[[], int] = now_ms
    ):
        """
        Initialize the store and load persisted state.

        Args:
            storage: Object with get(key), set(key, value) and remove(key)
            ttl_seconds: Lifetime of suites, vault items and history entries
            clock: Returns the current time in milliseconds
        """
        self.storage = storage
        self.ttl_ms = ttl_seconds * 1000
        self._clock = clock

        self.current: Suite | None = None
        self.history: list[Suite] = []
        self.vault_items: list[VaultItem] = []
        self.request_history: list[RequestHistoryEntry] = []

        self.load()

    # Persistence

    def _read(self, key: str, adapter: TypeAdapter, default: Any) -> Any:
        try:
            raw = self.storage.get(key)
        except StorageError:
            logger.error("Could not load %s; starting empty", key)
            return default

        if raw is None:
            return default

        try:
            return adapter.validate_python(raw)
        except SchemaValidationError:
            logger.warning("Discarding malformed %s document", key)
            return default

    def _write(self, key: str, value: Any) -> None:
        try:
            if value is None:
                self.storage.remove(key)
            else:
                self.storage.set(key, value)
        except StorageError:
            logger.error("Could not persist %s; change kept in memory only", key)

    def _save_current(self) -> None:
        if self.current is None:
            self._write(CURRENT_SUITE_KEY, None)
        else:
            self._write(CURRENT_SUITE_KEY, self.current.model_dump(mode="json"))

    def _save_history(self) -> None:
        self._write(SUITES_KEY, [suite.model_dump(mode="json") for suite in self.history])

    def _save_vault(self) -> None:
        self._write(VAULT_KEY, [item.model_dump(mode="json") for item in self.vault_items])

    def _save_request_history(self) -> None:
        self._write(
            REQUEST_HISTORY_KEY,
            [entry.model_dump(mode="json") for entry in self.request_history]
        )

    def _persist_suite(self, suite: Suite) -> None:
        """
        Write ``suite`` as the current suite (if it is) and into history.

        A suite missing from history is added once it has endpoints.
        """
        if self.current is not None and self.current.id == suite.id:
            self.current = suite
            self._save_current()

        if any(s.id == suite.id for s in self.history):
            self.history = [suite if s.id == suite.id else s for s in self.history]
        elif suite.endpoints:
            self.history.append(suite)
        else:
            return
        self._save_history()

    def load(self) -> None:
        """Read all collections from storage and sweep expired records."""
        self.current = self._read(CURRENT_SUITE_KEY, _suite_adapter, None)
        self.history = self._read(SUITES_KEY, _suite_list_adapter, [])
        self.vault_items = self._read(VAULT_KEY, _vault_list_adapter, [])
        self.request_history = self._read(REQUEST_HISTORY_KEY, _history_list_adapter, [])

        self.sweep_expired(self._clock())

    def sweep_expired(self, now: int) -> int:
        """
        Drop suites, vault items and history entries whose TTL has passed.

        Filtered collections are written back to storage.

        Args:
            now: Current time in milliseconds

        Returns:
            Number of records removed
        """
        removed = 0

        if self.current is not None and self.current.is_expired(now):
            self.current = None
            self._save_current()
            removed += 1

        suites = [s for s in self.history if not s.is_expired(now)]
        if len(suites) != len(self.history):
            removed += len(self.history) - len(suites)
            self.history = suites
            self._save_history()

        items = [i for i in self.vault_items if now <= i.expires_at]
        if len(items) != len(self.vault_items):
            removed += len(self.vault_items) - len(items)
            self.vault_items = items
            self._save_vault()

        entries = [e for e in self.request_history if now <= e.expires_at]
        if len(entries) != len(self.request_history):
            removed += len(self.request_history) - len(entries)
            self.request_history = entries
            self._save_request_history()

        if removed:
            logger.info("Swept %d expired record(s)", removed)
        return removed

    # Suites

    def create_suite(
        self,
        initial_origin: str | None = None,
        title: str | None = None,
        description: str | None = None
    ) -> Suite:
        """
        Create an empty suite and make it the current suite.

        The suite joins history once it gets its first endpoint or is
        archived explicitly.
        """
        now = self._clock()
        suite = Suite(
            id=generate_id(),
            base_origin=initial_origin or "",
            created_at=now,
            updated_at=now,
            expires_at=now + self.ttl_ms,
        )
        if title is not None:
            suite.title = sanitize(title)
        if description is not None:
            suite.description = sanitize(description)

        self.current = suite
        self._save_current()

        logger.info("Created suite %s", suite.id)
        return suite

    def update_suite(self, suite: Suite, patch: SuiteUpdate) -> Suite:
        """Change a suite's title or description."""
        for field, value in patch.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(suite, field, sanitize(value))
        suite.updated_at = self._clock()
        self._persist_suite(suite)
        return suite

    def archive_current(self, skip_empty: bool = False) -> Suite | None:
        """
        Move the current suite to history and clear it.

        Args:
            skip_empty: Leave history untouched when the suite has no endpoints

        Returns:
            The archived suite, or None if there was no current suite
        """
        suite = self.current
        if suite is None:
            return None

        if suite.endpoints or not skip_empty:
            if any(s.id == suite.id for s in self.history):
                self.history = [suite if s.id == suite.id else s for s in self.history]
            else:
                self.history.append(suite)
            self._save_history()

        self.current = None
        self._save_current()
        return suite

    def load_from_history(self, suite_id: str) -> Suite:
        """Make a suite from history the current suite."""
        for suite in self.history:
            if suite.id == suite_id:
                self.current = suite
                self._save_current()
                return suite
        raise ResourceNotFoundError("Suite", suite_id)

    def delete_from_history(self, suite_id: str) -> None:
        """Delete a suite, together with its endpoints, from history."""
        if not any(s.id == suite_id for s in self.history):
            raise ResourceNotFoundError("Suite", suite_id)

        self.history = [s for s in self.history if s.id != suite_id]
        self._save_history()

        if self.current is not None and self.current.id == suite_id:
            self.current = None
            self._save_current()

    # Endpoints

    def _resolve_origin(self, request_line: str) -> str:
        check = validate_request_line_length(request_line)
        if not check.valid:
            raise ValidationError(check.reason, code=check.code)

        url = extract_url(request_line)
        if url is None:
            raise OriginExtractionError()

        check = validate_url(url)
        if not check.valid:
            raise ValidationError(check.reason, code=check.code)

        origin = origin_of(url)
        if origin is None:
            raise OriginExtractionError()
        return origin

    def attach_endpoint(self, suite: Suite | None, draft: EndpointDraft) -> Endpoint:
        """
        Append a new pending endpoint to a suite.

        The first endpoint of a suite sets its base origin; later endpoints
        must share it. With ``suite=None`` the current suite is used, or a
        new one is created.

        Raises:
            ValidationError: The request line or its URL is invalid
            OriginExtractionError: The request line has no URL directive
            OriginMismatchError: The URL's origin differs from the suite's
        """
        request_line = sanitize(draft.request_line)
        origin = self._resolve_origin(request_line)

        if suite is None:
            suite = self.current or self.create_suite(initial_origin=origin)

        if not suite.endpoints:
            suite.base_origin = origin
        elif origin != suite.base_origin:
            raise OriginMismatchError(suite.base_origin, origin)

        now = self._clock()
        endpoint = Endpoint(
            id=generate_id(),
            title=sanitize(draft.title),
            description=sanitize(draft.description),
            request_line=request_line,
            status="pending",
            created_at=now,
        )
        suite.endpoints = [*suite.endpoints, endpoint]
        suite.updated_at = now
        self._persist_suite(suite)
        return endpoint

    def _merge(self, endpoint: Endpoint, changes: Mapping[str, Any]) -> Endpoint:
        changes = dict(changes)
        changes.pop("id", None)
        if changes.get("result") is not None and "error_message" not in changes:
            changes["error_message"] = None
        if changes.get("error_message") is not None and "result" not in changes:
            changes["result"] = None
        return Endpoint.model_validate({**endpoint.model_dump(), **changes})

    def update_endpoint(
        self,
        suite: Suite,
        endpoint_id: str,
        patch: Mapping[str, Any] | BaseModel
    ) -> Endpoint | None:
        """
        Merge fields into one endpoint.

        Setting ``result`` clears ``error_message`` and vice versa.

        Returns:
            The updated endpoint, or None if the suite has no such endpoint
        """
        if isinstance(patch, BaseModel):
            patch = patch.model_dump(exclude_unset=True)

        updated = None
        endpoints = []
        for endpoint in suite.endpoints:
            if endpoint.id == endpoint_id:
                updated = self._merge(endpoint, patch)
                endpoints.append(updated)
            else:
                endpoints.append(endpoint)

        if updated is None:
            return None

        suite.endpoints = endpoints
        suite.updated_at = self._clock()
        self._persist_suite(suite)
        return updated

    def update_endpoints(
        self,
        suite: Suite,
        patch: Mapping[str, Any],
        where: Callable[[Endpoint], bool] | None = None
    ) -> list[Endpoint]:
        """Apply one patch to every matching endpoint as a single write."""
        changed = []
        endpoints = []
        for endpoint in suite.endpoints:
            if where is None or where(endpoint):
                endpoint = self._merge(endpoint, patch)
                changed.append(endpoint)
            endpoints.append(endpoint)

        suite.endpoints = endpoints
        suite.updated_at = self._clock()
        self._persist_suite(suite)
        return changed

    def reset_endpoints(self, suite: Suite) -> None:
        """Return every endpoint to pending with no result or error."""
        self.update_endpoints(
            suite, {"status": "pending", "result": None, "error_message": None}
        )

    def edit_endpoint(self, suite: Suite, endpoint_id: str, patch: EndpointUpdate) -> Endpoint:
        """
        Apply a user edit to an endpoint.

        A new request line must still resolve to the suite's base origin,
        unless the endpoint is the only one in the suite.
        """
        endpoint = suite.get_endpoint(endpoint_id)
        if endpoint is None:
            raise ResourceNotFoundError("Endpoint", endpoint_id)

        changes = {
            field: sanitize(value)
            for field, value in patch.model_dump(exclude_unset=True).items()
            if value is not None
        }

        if "request_line" in changes:
            origin = self._resolve_origin(changes["request_line"])
            if len(suite.endpoints) == 1:
                suite.base_origin = origin
            elif origin != suite.base_origin:
                raise OriginMismatchError(suite.base_origin, origin)

        return self.update_endpoint(suite, endpoint_id, changes)

    def remove_endpoint(self, suite: Suite, endpoint_id: str) -> bool:
        """Delete an endpoint; returns False if it did not exist."""
        endpoints = [e for e in suite.endpoints if e.id != endpoint_id]
        if len(endpoints) == len(suite.endpoints):
            return False

        suite.endpoints = endpoints
        suite.updated_at = self._clock()
        self._persist_suite(suite)
        return True

    # Vault

    def list_vault_items(self) -> list[VaultItem]:
        return list(self.vault_items)

    def add_vault_item(self, data: VaultItemCreate) -> VaultItem:
        now = self._clock()
        item = VaultItem(
            id=generate_id(),
            name=sanitize(data.name),
            value=sanitize(data.value),
            description=sanitize(data.description) or None,
            created_at=now,
            expires_at=now + self.ttl_ms,
        )
        self.vault_items.append(item)
        self._save_vault()
        return item

    def remove_vault_item(self, item_id: str) -> None:
        items = [i for i in self.vault_items if i.id != item_id]
        if len(items) == len(self.vault_items):
            raise ResourceNotFoundError("Vault item", item_id)
        self.vault_items = items
        self._save_vault()

    # Request history

    def list_request_history(self) -> list[RequestHistoryEntry]:
        """Return request history ordered by execution time (descending)."""
        return sorted(self.request_history, key=lambda e: e.executed_at, reverse=True)

    def record_request(
        self,
        request_line: str,
        success: bool,
        executed_at: int,
        http_status: int | None = None,
        duration: int | None = None,
        error_message: str | None = None
    ) -> RequestHistoryEntry:
        """Append one ad-hoc execution to request history."""
        entry = RequestHistoryEntry(
            id=generate_id(),
            request_line=request_line,
            outcome="success" if success else "error",
            http_status=http_status,
            duration=duration,
            error_message=error_message,
            executed_at=executed_at,
            expires_at=executed_at + self.ttl_ms,
        )
        self.request_history.append(entry)
        self._save_request_history()
        return entry

    def clear_request_history(self) -> None:
        self.request_history = []
        self._save_request_history()
