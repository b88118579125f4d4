import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from logger import get_logger, log_event


logger = get_logger(__name__)

# Explorer endpoints are always read fresh
NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}

NO_TRANSACTIONS = "no transactions found"


class FetchError(RuntimeError):
    """A source could not be fetched within the retry ceiling."""

    def __init__(self, url: str, attempts: int, reason: str):
        self.url = url
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Failed to fetch data from {url} after {attempts} attempts: {reason}"
        )


class UpstreamError(Exception):
    """Retryable upstream condition (rate limit, 5xx, malformed or NOTOK body)."""


# ── Tagged fetch result ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class Success:
    data: Any

    def unwrap(self) -> Any:
        return self.data


@dataclass(frozen=True)
class Empty:
    def unwrap(self) -> None:
        return None


@dataclass(frozen=True)
class Failure:
    error: FetchError

    @property
    def reason(self) -> str:
        return self.error.reason

    def unwrap(self):
        raise self.error


FetchResult = Union[Success, Empty, Failure]


# ── Retrying fetcher ──────────────────────────────────────────────────────────


@dataclass
class RetryingFetcher:
    client: httpx.AsyncClient
    max_retries: int = 8
    initial_delay: float = 1.0
    timeout: float = 30.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    async def fetch(self, url: str) -> FetchResult:
        reason = "no attempts made"
        for attempt in range(self.max_retries):
            try:
                return await self._attempt(url)
            except (httpx.HTTPError, ValueError, UpstreamError) as e:
                reason = str(e) or type(e).__name__

            if attempt == self.max_retries - 1:
                break

            wait = self.initial_delay * 2 ** attempt
            log_event(logger, "fetch_retry", {
                "url": url,
                "attempt": attempt + 1,
                "max_retries": self.max_retries,
                "wait_seconds": wait,
                "reason": reason,
            }, level=logging.WARNING)
            await self.sleep(wait)

        error = FetchError(url, self.max_retries, reason)
        log_event(logger, "fetch_failed", {
            "url": url,
            "attempts": self.max_retries,
            "reason": reason,
        }, level=logging.ERROR)
        return Failure(error)

    async def _attempt(self, url: str) -> FetchResult:
        resp = await self.client.get(url, headers=NO_CACHE_HEADERS, timeout=self.timeout)

        if not resp.is_success:
            if resp.status_code == 429 or resp.status_code >= 500:
                raise UpstreamError(f"HTTP Status {resp.status_code}")
            return Empty()

        wrapper = resp.json()
        if not isinstance(wrapper, dict):
            raise UpstreamError("Invalid API response structure")

        # Empty {} or [] still counts as present; result_rows() reads it as no rows
        data = wrapper.get("data")
        if data is None:
            # Unwrapped explorer shape: {status, message, result}
            if wrapper.get("status") and wrapper.get("message"):
                return Success(wrapper)
            raise UpstreamError("Invalid API response structure")

        if isinstance(data, dict) and data.get("status") == "0" and data.get("message") == "NOTOK":
            result = data.get("result")
            if isinstance(result, str) and NO_TRANSACTIONS in result.lower():
                return Success({"result": []})
            raise UpstreamError(f"API Error: {result}")

        return Success(data)


# ── Explorer source ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExplorerSource:
    """An explorer endpoint; the address is appended to ``base_url``."""

    name: str
    base_url: str

    def url_for(self, address: str) -> str:
        return f"{self.base_url}{address}"


def result_rows(data: Optional[Any]) -> list[dict]:
    """The list under ``result``, or [] for anything else."""
    if not isinstance(data, dict):
        return []
    rows = data.get("result")
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]
