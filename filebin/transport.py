"""HTTP transport adapter for the filebin service."""

import json
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

import httpx

from common.logging_config import get_logger
from filebin.config import Config
from filebin.exceptions import MalformedResponseError, TransportError

logger = get_logger(__name__)


@dataclass
class TransportResponse:
    """Status, headers and fully read body of one request."""
    status_code: int
    reason: str
    headers: httpx.Headers
    content: bytes

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """
        Parse the body as JSON.

        Raises:
            MalformedResponseError: If the body is not valid JSON
        """
        try:
            return json.loads(self.content)
        except ValueError as e:
            raise MalformedResponseError(f"Response body is not JSON (status={self.status_code})") from e


class StreamingResponse:
    """Response whose body is consumed incrementally."""

    def __init__(self, response: httpx.Response):
        self._response = response
        self.status_code = response.status_code
        self.reason = response.reason_phrase
        self.headers = response.headers

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def iter_bytes(self, chunk_size: int) -> Iterator[bytes]:
        """
        Yield body pieces as the network delivers them.

        Raises:
            TransportError: If the connection fails mid-body
        """
        try:
            yield from self._response.iter_bytes(chunk_size=chunk_size)
        except httpx.RequestError as e:
            raise TransportError(f"Connection failed while reading body: {e}") from e

    def close(self) -> None:
        self._response.close()


class Transport:
    """
    Issues single requests against the service and returns raw outcomes.

    Status codes are not interpreted here; each session operation applies
    its own table. Requests are never retried.
    """

    def __init__(self, config: Optional[Config] = None, client: Optional[httpx.Client] = None):
        """
        Initialize transport.

        Args:
            config: Configuration instance (defaults are used if omitted)
            client: Preconfigured httpx client, e.g. one with a mock transport
        """
        self.config = config or Config()
        self.client = client or httpx.Client(
            base_url=self.config.get_base_url(),
            timeout=self.config.get_timeout(),
        )
        logger.debug(f"Initialized Transport [base_url={self.client.base_url}]")

    def request(
        self,
        method: str,
        path: str,
        headers: Optional[dict] = None,
        content: Optional[Iterable[bytes]] = None,
        follow_redirects: bool = False,
    ) -> TransportResponse:
        """
        Perform one request and read the full response body.

        Args:
            method: HTTP method
            path: Path relative to the service base URL
            headers: Request headers
            content: Request body as bytes or an iterator of byte pieces
            follow_redirects: Whether to follow 3xx responses

        Returns:
            TransportResponse with status, headers and body

        Raises:
            TransportError: On any network-level failure
        """
        logger.debug(f"Making request: {method} {path}")
        try:
            response = self.client.request(
                method,
                path,
                headers=headers,
                content=content,
                follow_redirects=follow_redirects,
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error: {method} {path} error={type(e).__name__}")
            raise TransportError(f"Request {method} {path} failed: {e}") from e

        logger.debug(f"Response received: {method} {path} status={response.status_code}")
        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            headers=response.headers,
            content=response.content,
        )

    @contextmanager
    def stream(
        self,
        method: str,
        path: str,
        headers: Optional[dict] = None,
        follow_redirects: bool = True,
    ) -> Iterator[StreamingResponse]:
        """
        Perform one request whose response body is streamed.

        The connection is released when the context exits, on every path.

        Raises:
            TransportError: On any network-level failure before the body
        """
        logger.debug(f"Opening stream: {method} {path}")
        try:
            with self.client.stream(
                method,
                path,
                headers=headers,
                follow_redirects=follow_redirects,
            ) as response:
                logger.debug(f"Stream opened: {method} {path} status={response.status_code}")
                yield StreamingResponse(response)
        except httpx.RequestError as e:
            logger.warning(f"Network error: {method} {path} error={type(e).__name__}")
            raise TransportError(f"Request {method} {path} failed: {e}") from e

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    def __enter__(self) -> 'Transport':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
