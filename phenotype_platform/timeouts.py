"""
Timeout helpers for outbound calls and database queries.

Keeps a hung dependency from pinning a request (or a health probe)
forever.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")

# Standard budgets per operation type, in seconds.
TIMEOUTS: dict[str, float] = {
    "database_query": 10.0,
    "health_ping": 5.0,
}


class ProbeTimeoutError(TimeoutError):
    """An awaited operation exceeded its time budget."""

    def __init__(self, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            f"Operation '{operation}' timed out after {timeout * 1000:.0f}ms"
        )


async def with_timeout(
    awaitable: Awaitable[T],
    timeout: float,
    operation: str = "unknown operation",
) -> T:
    """Await *awaitable*, cancelling it after *timeout* seconds.

    Raises:
        ProbeTimeoutError: If the deadline passes first.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ProbeTimeoutError(operation, timeout) from exc
