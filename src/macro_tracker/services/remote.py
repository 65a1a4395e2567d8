"""Guarded calls to the remote store."""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from macro_tracker.errors import MacroTrackerError, RemoteFailure

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

_logger = logging.getLogger(__name__)


@dataclass
class RemoteCall:
    """Applies a timeout to every remote call and a short retry to reads.

    Timeouts and client errors are raised as ``RemoteFailure``; domain errors
    raised by the wrapped call pass through untouched.
    """

    timeout_seconds: float = 10.0
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def read(self, func: "Callable[[], Awaitable[T]]", *, action: str) -> T:
        """Run an idempotent read, retrying on failure."""
        return await self._run(func, action=action, retries=self.retry_attempts)

    async def write(self, func: "Callable[[], Awaitable[T]]", *, action: str) -> T:
        """Run a write once."""
        return await self._run(func, action=action, retries=0)

    async def _run(
        self, func: "Callable[[], Awaitable[T]]", *, action: str, retries: int
    ) -> T:
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(func(), timeout=self.timeout_seconds)
            except MacroTrackerError:
                raise
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "Remote %s failed (attempt %s/%s, status=%s): %r",
                    action,
                    attempt,
                    retries + 1,
                    _status_code_from_exception(exc),
                    exc,
                )
                if attempt > retries:
                    raise RemoteFailure(action, exc) from exc
                await asyncio.sleep(self.retry_delay_seconds)


def _status_code_from_exception(exc: Exception) -> str:
    """Extract a status code from a client exception, if available."""
    code = getattr(exc, "code", None)
    if isinstance(code, str | int):
        return str(code)
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
