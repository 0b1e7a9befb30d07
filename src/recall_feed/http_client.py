"""HTTP transport and bounded retry controller for feed refreshes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from .logging_config import get_logger
from .models import FetchStats

logger = get_logger("http_client")

DEFAULT_USER_AGENT = "RecallFeed/1.0"

FetchFn = Callable[[str, float], Awaitable[Any]]
SleepFn = Callable[[float], Awaitable[None]]

class FetchError(RuntimeError):
    """Raised once every attempt for a URL has failed."""

    def __init__(self, url: str, attempts: int, last_cause: Optional[BaseException]) -> None:
        self.url = url
        self.attempts = attempts
        self.last_cause = last_cause
        super().__init__(f"GET {url} failed after {attempts} attempt(s): {last_cause!r}")


@dataclass
class RetryPolicy:
    """Attempt count, per-attempt timeout and backoff curve for one source."""

    max_attempts: int = 3
    timeout_seconds: float = 30.0
    backoff_base_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.backoff_base_seconds < 0:
            raise ValueError("backoff_base_seconds cannot be negative")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after a failed attempt (1-based): 2x, 4x, ... base."""
        return 2 * attempt * self.backoff_base_seconds


class HTTPClient:
    """Async JSON GET over httpx."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, headers: Optional[Dict[str, str]] = None) -> None:
        self.headers = {
            "Accept": "application/json",
            "User-Agent": user_agent,
            **(headers or {}),
        }

    def _timeout(self, seconds: float) -> httpx.Timeout:
        return httpx.Timeout(seconds, connect=min(seconds, 10.0))

    async def get_json(self, url: str, timeout: float) -> Any:
        """GET url and decode its JSON body.

        Raises httpx.HTTPStatusError on non-2xx responses and ValueError
        on a body that is not JSON.
        """
        async with httpx.AsyncClient(
            timeout=self._timeout(timeout),
            follow_redirects=True,
        ) as client:
            response = await client.get(url, headers=self.headers)
            response.raise_for_status()
            return response.json()


async def fetch_with_retry(
    url: str,
    policy: RetryPolicy,
    *,
    fetch: FetchFn,
    parse: Optional[Callable[[Any], Any]] = None,
    sleep: SleepFn = asyncio.sleep,
    stats: Optional[FetchStats] = None,
) -> Any:
    """Fetch url under policy, returning the (optionally parsed) response.

    Each attempt is cancelled once policy.timeout_seconds elapses. parse
    runs inside the attempt, so a malformed payload counts as a failed
    attempt. Any exception fails the attempt; cancellation still
    propagates. After the last failure a single FetchError is raised.
    """
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        if stats:
            stats.attempts += 1
        try:
            payload = await asyncio.wait_for(
                fetch(url, policy.timeout_seconds),
                timeout=policy.timeout_seconds,
            )
            return parse(payload) if parse else payload

        except Exception as exc:
            last_error = exc
            if isinstance(exc, asyncio.TimeoutError):
                message = f"timeout after {policy.timeout_seconds:.0f}s"
            else:
                message = f"{type(exc).__name__}: {exc}"
            if stats:
                stats.add_error(f"attempt {attempt}: {message}")

            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                if stats:
                    stats.retries += 1
                logger.warning(
                    "GET %s failed (%s). Retrying in %.2fs (attempt %s/%s)",
                    url,
                    message,
                    delay,
                    attempt,
                    policy.max_attempts,
                )
                await sleep(delay)
                continue

            logger.error(
                "GET %s failed after %s attempt(s): %s",
                url,
                attempt,
                message,
            )

    raise FetchError(url, policy.max_attempts, last_error)
