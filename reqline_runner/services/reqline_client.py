"""
Client for the remote reqline execution API.

The API accepts ``{"reqline": "<request line>"}`` as a JSON POST body,
performs the described HTTP call and answers with the request it sent and
the response it received. Transport failures are translated into the
package's NetworkError, TimeoutError and HttpStatusError.
"""

import logging
import time
from typing import Any

import httpx

from ..exceptions import APIException, HttpStatusError, NetworkError, TimeoutError


# Default timeout in seconds
DEFAULT_TIMEOUT = 30.0

logger = logging.getLogger(__name__)


class ReqlineClient:
    """Async HTTP client for the execution API."""

    def __init__(
        self,
        api_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        """
        Args:
            api_url: Execution API endpoint
            timeout: Per-call timeout in seconds
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
        """
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    async def execute(self, request_line: str) -> Any:
        """
        Send a request line to the execution API.

        Args:
            request_line: The request line to execute

        Returns:
            The decoded JSON payload returned by the API

        Raises:
            TimeoutError: The call exceeded the timeout
            NetworkError: The API could not be reached
            HttpStatusError: The API answered with a 4xx/5xx status
            APIException: The API answered with a body that is not JSON
        """
        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    json={"reqline": request_line},
                    headers={"Content-Type": "application/json"}
                )
        except httpx.TimeoutException as exc:
            raise TimeoutError(f"timeout of {int(self.timeout * 1000)}ms exceeded") from exc
        except httpx.HTTPError as exc:
            raise NetworkError("Network connection failed") from exc

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug("Execution API answered %d in %dms", response.status_code, elapsed_ms)

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            raise HttpStatusError(response.status_code, data)

        if data is None:
            raise APIException(
                detail="Execution API returned an unreadable response",
                status_code=502,
                error_code="INVALID_RESPONSE"
            )

        return data
