"""
Retrying HTTP helper shared by every Chronicler client.

Responses with status >= 500 or 429 and transport errors are retried with
capped exponential backoff. Other 4xx responses are handed back to the
caller untouched.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Optional

import httpx

from ..errors import RetryExhaustedError
from ..observability import EventLog, get_event_log


@dataclass
class RetryOptions:
    """
    Retry budget for a single request.
    """
    attempts: int = 3
    base_delay_ms: int = 400
    max_delay_ms: int = 2000


def compute_backoff_delay(attempt: int, options: RetryOptions) -> int:
    """Delay in milliseconds after the given zero-based attempt."""
    return min(options.max_delay_ms, options.base_delay_ms * 2 ** attempt)


def is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    headers: Optional[Mapping[str, str]] = None,
    options: Optional[RetryOptions] = None,
    label: Optional[str] = None,
    log: Optional[EventLog] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> httpx.Response:
    """
    GET a URL, retrying server errors, rate limiting and transport failures.

    Args:
        client: The async HTTP client to use
        url: Absolute URL to request
        headers: Request headers
        options: Retry budget (defaults to 3 attempts, 400ms base, 2s cap)
        label: Correlation label for log lines (defaults to "GET <url>")
        log: Structured log sink
        sleep: Coroutine used to wait between attempts

    Returns:
        The first response that is neither a 5xx nor a 429

    Raises:
        RetryExhaustedError: If every attempt failed
    """
    options = options or RetryOptions()
    log = log or get_event_log("http")
    label = label or f"GET {url}"
    attempts = max(1, options.attempts)

    last_status: Optional[int] = None
    last_error: Optional[BaseException] = None

    for attempt in range(attempts):
        log.debug("http-attempt", request=label, attempt=attempt + 1, attempts=attempts)
        try:
            response = await client.get(url, headers=dict(headers or {}))
        except httpx.TransportError as e:
            last_error = e
            last_status = None
            log.warning("http-transport-error", request=label, attempt=attempt + 1,
                        attempts=attempts, error=str(e))
        else:
            if not is_retryable_status(response.status_code):
                return response
            last_status = response.status_code
            last_error = None
            log.warning("http-retryable-status", request=label, attempt=attempt + 1,
                        attempts=attempts, status=response.status_code)

        if attempt + 1 < attempts:
            await sleep(compute_backoff_delay(attempt, options) / 1000)

    log.error("http-retries-exhausted", request=label, attempts=attempts, status=last_status)
    raise RetryExhaustedError(label, attempts, status_code=last_status, cause=last_error)
