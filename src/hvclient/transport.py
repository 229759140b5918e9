"""HttpTransport: an httpx client with bounded retry on transient failures."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import httpx

from hvclient.config import RetryPolicy
from hvclient.errors import TransportError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

logger = logging.getLogger(__name__)


def is_transient_status(status_code: int) -> bool:
    """Return True for server-side failures worth retrying."""
    return status_code >= 500


def raise_for_status(response: httpx.Response) -> None:
    """Raise TransportError unless the response has a 2xx status."""
    if response.is_success:
        return
    try:
        url: str | None = str(response.request.url)
    except RuntimeError:
        url = None
    msg = f"HTTP {response.status_code} from {url or 'service'}"
    raise TransportError(msg, status_code=response.status_code, url=url)


class HttpTransport:
    """Synchronous HTTP transport shared by the XML connection, REST client and blob transfers.

    A response with a 5xx status is retried ``retry.count`` times with
    ``retry.sleep_seconds`` between attempts; the last response is returned
    as-is so callers decide how to interpret it. Timeouts are retried only
    when the policy allows it. Other httpx failures surface as
    ``TransportError``.
    """

    def __init__(
        self,
        *,
        retry: RetryPolicy | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize with a retry policy, default timeout and optional preconfigured httpx client."""
        self._retry = retry if retry is not None else RetryPolicy()
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)
        self._sleep = sleep

    @property
    def retry(self) -> RetryPolicy:
        """Retry policy applied to every request."""
        return self._retry

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send one request, retrying transient failures per the policy."""
        effective_timeout = timeout if timeout is not None else self._timeout
        attempts = self._retry.count + 1

        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            try:
                response = self._client.request(
                    method,
                    url,
                    headers=dict(headers or {}),
                    content=content,
                    timeout=effective_timeout,
                )
            except httpx.TimeoutException as exc:
                if self._retry.retry_on_timeout and not last_attempt:
                    logger.warning("Timeout on %s %s, retrying (attempt %d/%d)", method, url, attempt + 1, attempts)
                    self._sleep(self._retry.sleep_seconds)
                    continue
                msg = f"Timed out sending {method} {url}"
                raise TransportError(msg, url=url) from exc
            except httpx.HTTPError as exc:
                msg = f"HTTP transport failure sending {method} {url}: {exc}"
                raise TransportError(msg, url=url) from exc

            if is_transient_status(response.status_code) and not last_attempt:
                logger.warning(
                    "HTTP %d on %s %s, retrying (attempt %d/%d)",
                    response.status_code,
                    method,
                    url,
                    attempt + 1,
                    attempts,
                )
                response.close()
                self._sleep(self._retry.sleep_seconds)
                continue
            logger.debug("%s %s -> %d", method, url, response.status_code)
            return response

        msg = f"No response for {method} {url}"
        raise TransportError(msg, url=url)

    def close(self) -> None:
        """Close the underlying httpx client when this transport created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpTransport:
        """Enter a context that closes the transport on exit."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Close the transport."""
        self.close()
