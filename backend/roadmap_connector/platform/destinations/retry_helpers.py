"""Retry helpers for Graph ingestion calls.

Graph throttles with 429 (and occasionally 503) and sends a Retry-After
header; transient 5xx responses and timeouts are retried with exponential
backoff.
"""

import httpx
from tenacity import retry_if_exception, wait_exponential

_TRANSIENT_STATUS_CODES = {500, 502, 503, 504}


def should_retry_on_rate_limit(exception: BaseException) -> bool:
    """Check if exception is a retryable rate limit (429)."""
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code == 429
    return False


def should_retry_on_transient_error(exception: BaseException) -> bool:
    """Check if exception is a transient server error or timeout."""
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in _TRANSIENT_STATUS_CODES
    return isinstance(exception, (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.ConnectError))


def should_retry_graph_call(exception: BaseException) -> bool:
    """Combined retry condition for Graph calls.

    Example:
        @retry(
            stop=stop_after_attempt(5),
            retry=retry_if_graph_call_failed,
            wait=wait_retry_after_with_backoff,
            reraise=True,
        )
        async def _send(self, method, url, **kwargs):
            ...
    """
    return should_retry_on_rate_limit(exception) or should_retry_on_transient_error(exception)


def wait_retry_after_with_backoff(retry_state) -> float:
    """Wait strategy that respects Retry-After on 429/503, exponential backoff otherwise.

    Args:
        retry_state: tenacity retry state

    Returns:
        Number of seconds to wait before retry
    """
    exception = retry_state.outcome.exception()

    if isinstance(exception, httpx.HTTPStatusError) and exception.response.status_code in (
        429,
        503,
    ):
        retry_after = exception.response.headers.get("Retry-After")
        if retry_after:
            try:
                # At least 1s so retries do not burn through attempts before the window clears
                return min(max(float(retry_after), 1.0), 120.0)
            except (ValueError, TypeError):
                pass
        return wait_exponential(multiplier=1, min=2, max=30)(retry_state)

    return wait_exponential(multiplier=1, min=2, max=10)(retry_state)


retry_if_graph_call_failed = retry_if_exception(should_retry_graph_call)
