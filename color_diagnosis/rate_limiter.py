"""
Rate Limiting Module for the Color Diagnosis Service

Provides IP-based rate limiting for the diagnosis endpoint to prevent abuse.
Uses a fixed window per client: the first request opens a window, and the
count resets once the window has expired.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from fastapi import Request

from .errors import RateLimited
from .structured_logging import StructuredLogger, mask_ip

logger = StructuredLogger(__name__)


@dataclass
class RateRecord:
    window_start: float
    count: int


class RateLimiter:
    """
    Per-client fixed-window rate limiter.

    The clock is injectable so window expiry can be driven from tests.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            max_requests: Maximum requests allowed per window
            window_seconds: Window length in seconds
            clock: Time source returning seconds
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.records: dict[str, RateRecord] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def _expired(self, record: RateRecord, now: float) -> bool:
        return now - record.window_start > self.window_seconds

    def admit(self, identifier: str) -> bool:
        """
        Check whether a request from identifier is admitted, counting it if so.

        Args:
            identifier: IP address or other stable caller identifier

        Returns:
            True if the request is within the limit, False otherwise
        """
        now = self.clock()
        with self._lock:
            record = self.records.get(identifier)
            if record is None or self._expired(record, now):
                self.records[identifier] = RateRecord(window_start=now, count=1)
                return True
            if record.count >= self.max_requests:
                return False
            record.count += 1
            return True

    def retry_after(self, identifier: str) -> int:
        """Seconds until the identifier's current window resets."""
        now = self.clock()
        with self._lock:
            record = self.records.get(identifier)
            if record is None or self._expired(record, now):
                return 0
            return int(record.window_start + self.window_seconds - now) + 1

    def reset(self, identifier: str):
        """Reset rate limit for identifier."""
        with self._lock:
            self.records.pop(identifier, None)

    def sweep(self) -> int:
        """Delete every record whose window has expired. Returns the count removed."""
        now = self.clock()
        with self._lock:
            stale = [ip for ip, record in self.records.items() if self._expired(record, now)]
            for ip in stale:
                del self.records[ip]
        if stale:
            logger.debug("Rate limit records swept", removed=len(stale), remaining=len(self.records))
        return len(stale)

    async def _sweep_forever(self, interval_seconds: float):
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

    def start_sweeper(self, interval_seconds: float = 600) -> asyncio.Task:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever(interval_seconds))
        return self._sweeper

    async def stop_sweeper(self):
        """Cancel the periodic sweep and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None


def client_identifier(request: Request, trusted_proxies: Iterable[str] = ()) -> str:
    """
    Resolve the caller's IP.

    The socket peer is the identifier. The first X-Forwarded-For hop is used
    only when the peer is one of trusted_proxies ("*" trusts every peer).
    Untrusted peers cannot change their key by sending the header.
    """
    peer = request.client.host if request.client else "unknown"
    trusted = set(trusted_proxies)
    if "*" not in trusted and peer not in trusted:
        return peer
    first_hop = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    return first_hop or peer


def check_rate_limit(limiter: RateLimiter, identifier: str) -> None:
    """
    Admit a request or raise.

    Raises:
        RateLimited: with a Retry-After header when the limit is exceeded
    """
    if limiter.admit(identifier):
        return
    retry_after = limiter.retry_after(identifier)
    logger.warning(
        "Rate limit exceeded",
        client_ip=mask_ip(identifier),
        limit=limiter.max_requests,
        window_seconds=limiter.window_seconds,
        retry_after=retry_after,
    )
    raise RateLimited(headers={"Retry-After": str(retry_after)})
