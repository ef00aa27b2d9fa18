# =============================================================================
# synka_core/data/remote.py
# Remote Data Service Contract, Retry Policies and Call Wrapper
# =============================================================================
"""
The sync hooks talk to the backend only through ``RemoteDataService``. Any
failure of an implementation surfaces as ``RemoteServiceError``.

``call_remote`` is the single place every remote await goes through, so the
optional timeout and the retry policy apply uniformly to reads, writes and
seeding.
"""

from __future__ import annotations
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, TypeVar, Union
import logging

from synka_core.errors import RemoteServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = Dict[str, Any]
Filters = Dict[str, Any]


class RemoteDataService(Protocol):
    """Async table access. Filters are column == value equality matches."""

    async def list(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
        columns: str = "*",
    ) -> List[Row]:
        ...

    async def list_in(
        self,
        table: str,
        column: str,
        values: Sequence[Any],
        columns: str = "*",
    ) -> List[Row]:
        ...

    async def insert(self, table: str, rows: Union[Row, List[Row]]) -> List[Row]:
        ...

    async def update(self, table: str, filters: Filters, values: Row) -> List[Row]:
        ...

    async def delete(self, table: str, filters: Filters) -> None:
        ...


# =============================================================================
# RETRY POLICIES
# =============================================================================

class RetryPolicy:
    """
    Decides how often a failed remote call is attempted.

    Subclasses override ``run``. The sync layer is best-effort, so the
    configured default is ``NoRetry``.
    """

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "") -> T:
        raise NotImplementedError


class NoRetry(RetryPolicy):
    """Call exactly once."""

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "") -> T:
        return await operation()


class ExponentialBackoff(RetryPolicy):
    """
    Retry RemoteServiceError with exponential backoff.

    Args:
        max_retries: Attempts after the first one
        base_delay: Seconds before the first retry, doubled each time
    """

    def __init__(self, max_retries: int = 3, base_delay: float = 0.1):
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "") -> T:
        for attempt in range(self.max_retries + 1):
            try:
                return await operation()
            except RemoteServiceError as e:
                if attempt >= self.max_retries:
                    logger.error(f"{label or 'Remote call'} failed after {attempt + 1} attempts: {e}")
                    raise
                delay = self.base_delay * (2 ** attempt)
                logger.warning(
                    f"{label or 'Remote call'} failed, retrying in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
        raise RuntimeError("unreachable")


# =============================================================================
# CALL WRAPPER
# =============================================================================

async def call_remote(
    operation: Callable[[], Awaitable[T]],
    label: str,
    timeout: Optional[float] = None,
    retry: Optional[RetryPolicy] = None,
) -> T:
    """
    Await one remote operation under the configured timeout and retry policy.

    Args:
        operation: Zero-argument coroutine factory (a fresh coroutine per attempt)
        label: Human-readable description for logs and errors
        timeout: Seconds per attempt, or None to wait indefinitely
        retry: Retry policy (default: NoRetry)

    Raises:
        RemoteServiceError: on failure or timeout
    """
    policy = retry or NoRetry()

    async def attempt() -> T:
        if timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise RemoteServiceError(
                f"{label} timed out after {timeout}s",
                operation=label,
            ) from e

    return await policy.run(attempt, label)
