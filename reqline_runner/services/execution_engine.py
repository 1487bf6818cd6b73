"""
Execution engine for suite endpoints and ad-hoc request lines.

Every execution passes the rate limiter before any network call, response
payloads are sanitized before they are stored, and failures are reduced to
safe messages by the error classifier. Endpoint state is only ever written
through the suite store.

Batches run strictly one endpoint at a time. Stopping a batch is
cooperative: each batch holds a generation number that stop_all and any
newer batch invalidate, and the batch checks it between endpoints. A call
that is already in flight completes and still records its outcome.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..exceptions import RateLimitError, ValidationError
from ..schemas.execute import ExecuteResponse
from ..schemas.suite import Endpoint, Suite
from .error_classifier import classify
from .rate_limiter import RateLimiter
from .reqline_client import ReqlineClient
from .sanitizer import sanitize, sanitize_deep
from .suite_store import SuiteStore, now_ms
from .validator import validate_request_line_length

logger = logging.getLogger(__name__)


# Pause between consecutive endpoints of a batch, in seconds
DEFAULT_INTER_CALL_DELAY = 0.5


def _response_metadata(payload: Any) -> tuple[int | None, int | None]:
    """Pull ``http_status`` and ``duration`` out of an execution API payload."""
    if not isinstance(payload, dict):
        return None, None
    response = payload.get("response")
    if not isinstance(response, dict):
        return None, None

    status = response.get("http_status")
    duration = response.get("duration")
    return (
        status if isinstance(status, int) else None,
        duration if isinstance(duration, int) else None,
    )


class ExecutionEngine:
    """Runs endpoints of a suite, singly or as a sequential batch."""

    def __init__(
        self,
        store: SuiteStore,
        rate_limiter: RateLimiter,
        client: ReqlineClient,
        identifier: str = "user",
        inter_call_delay: float = DEFAULT_INTER_CALL_DELAY,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.client = client
        self.identifier = identifier
        self.inter_call_delay = inter_call_delay
        self._clock = clock
        self._sleep = sleep

        self.is_running = False
        # Bumped by stop_all and by every new batch; a batch runs only while current
        self._generation = 0

    async def execute_one(self, suite: Suite, endpoint_id: str) -> Endpoint | None:
        """
        Execute a single endpoint and record its outcome.

        Args:
            suite: Suite owning the endpoint
            endpoint_id: Endpoint to execute

        Returns:
            The endpoint in its final state, or None if it does not exist
        """
        endpoint = self.store.update_endpoint(
            suite, endpoint_id, {"status": "running", "result": None, "error_message": None}
        )
        if endpoint is None:
            return None

        decision = self.rate_limiter.allow(self.identifier)
        if not decision.allowed:
            return self.store.update_endpoint(suite, endpoint_id, {
                "status": "failed",
                "error_message": RateLimitError(decision.retry_after_seconds).detail,
            })

        logger.info("Executing endpoint %s of suite %s", endpoint_id, suite.id)
        try:
            payload = await self.client.execute(endpoint.request_line)
        except Exception as exc:
            message = classify(exc)
            logger.warning(
                "Endpoint %s failed (%s)", endpoint_id, exc.__class__.__name__
            )
            return self.store.update_endpoint(suite, endpoint_id, {
                "status": "failed",
                "error_message": message,
                "executed_at": self._clock(),
            })

        return self.store.update_endpoint(suite, endpoint_id, {
            "status": "completed",
            "result": sanitize_deep(payload),
            "executed_at": self._clock(),
        })

    async def execute_all(self, suite: Suite) -> Suite:
        """
        Reset every endpoint to pending and execute them in order.

        Endpoints run one after another with a fixed delay between calls.
        The batch ends early once stop_all has been called.
        """
        if not suite.endpoints:
            return suite

        self._generation += 1
        generation = self._generation
        self.is_running = True
        self.store.reset_endpoints(suite)

        endpoint_ids = [endpoint.id for endpoint in suite.endpoints]
        logger.info("Running %d endpoint(s) of suite %s", len(endpoint_ids), suite.id)

        try:
            for index, endpoint_id in enumerate(endpoint_ids):
                if generation != self._generation:
                    logger.info("Batch for suite %s stopped", suite.id)
                    break

                await self.execute_one(suite, endpoint_id)

                if index < len(endpoint_ids) - 1:
                    await self._sleep(self.inter_call_delay)
        finally:
            if generation == self._generation:
                self.is_running = False

        return suite

    def stop_all(self, suite: Suite) -> Suite:
        """
        Halt the current batch and return running endpoints to pending.

        In-flight calls are not aborted.
        """
        self._generation += 1
        self.is_running = False
        self.store.update_endpoints(
            suite, {"status": "pending"}, where=lambda e: e.status == "running"
        )
        return suite

    async def execute_request_line(self, text: str) -> ExecuteResponse:
        """
        Execute a request line that is not attached to any suite.

        The outcome is appended to request history.

        Raises:
            ValidationError: The request line is missing, blank or too long
            RateLimitError: The rate limiter rejected the call
        """
        request_line = sanitize(text)
        check = validate_request_line_length(request_line)
        if not check.valid:
            raise ValidationError(check.reason, code=check.code)

        decision = self.rate_limiter.allow(self.identifier)
        if not decision.allowed:
            raise RateLimitError(decision.retry_after_seconds)

        request_line = request_line.strip()
        try:
            payload = await self.client.execute(request_line)
        except Exception as exc:
            message = classify(exc)
            executed_at = self._clock()
            logger.warning("Request line execution failed (%s)", exc.__class__.__name__)
            self.store.record_request(
                request_line,
                success=False,
                executed_at=executed_at,
                http_status=getattr(exc, "http_status", None),
                error_message=message,
            )
            return ExecuteResponse(success=False, error_message=message, executed_at=executed_at)

        result = sanitize_deep(payload)
        executed_at = self._clock()
        http_status, duration = _response_metadata(result)
        self.store.record_request(
            request_line,
            success=True,
            executed_at=executed_at,
            http_status=http_status,
            duration=duration,
        )
        return ExecuteResponse(success=True, result=result, executed_at=executed_at)
