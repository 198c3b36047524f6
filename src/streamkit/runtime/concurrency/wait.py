"""Wait strategies for concurrent operations.

Patterns for waiting on a batch of async operations:
    - gather_settled: Wait for all regardless of errors
    - settle_all: Wait for all to settle, then raise the first failure

Stream combinators release their sources with settle_all: every cancel in the
batch runs concurrently, none is abandoned when a sibling fails, and a failure
still reaches the caller.

Example:
    >>> await settle_all(*(reader.cancel("done") for reader in readers))
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from streamkit.runtime.observability.logging import get_logger

T = TypeVar("T")

_log = get_logger("streamkit.wait")


class SettledStatus(StrEnum):
    """Status of a settled operation."""
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass(slots=True, frozen=True)
class Settled(Generic[T]):
    """Result of a settled operation (success or failure).

    Attributes:
        status: 'fulfilled' or 'rejected'
        value: Result value if fulfilled
        error: Exception if rejected
    """

    status: SettledStatus
    value: T | None = None
    error: BaseException | None = None

    @property
    def is_rejected(self) -> bool:
        return self.status == SettledStatus.REJECTED

    def unwrap(self) -> T:
        """Get value or raise stored error."""
        if self.is_rejected:
            raise self.error or RuntimeError("Rejected with no error")
        return self.value  # type: ignore[return-value]


def _fulfilled(value: T) -> Settled[T]:
    return Settled(SettledStatus.FULFILLED, value=value)


def _rejected(error: BaseException) -> Settled[T]:
    return Settled(SettledStatus.REJECTED, error=error)


async def gather_settled(*aws: Awaitable[T]) -> list[Settled[T]]:
    """Gather all results, never raising.

    Returns Settled objects indicating success or failure, in input order.
    Cancellation of the caller still propagates.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    return [
        _rejected(r) if isinstance(r, BaseException) else _fulfilled(r)
        for r in results
    ]


async def settle_all(*aws: Awaitable[T]) -> list[T]:
    """Run awaitables concurrently, wait for every one to settle, then fail on the first error.

    Unlike asyncio.gather, a failure does not return control while siblings are
    still running. When several fail, the lowest-index error is raised and the
    rest are logged.

    Returns:
        Results in input order when every awaitable succeeded

    Raises:
        BaseException: First failure in input order
    """
    settled = await gather_settled(*aws)
    errors = [(i, s.error) for i, s in enumerate(settled) if s.is_rejected]
    if not errors:
        return [s.value for s in settled]  # type: ignore[misc]
    for idx, err in errors[1:]:
        _log.warning("additional failure in settled batch", index=idx, error=repr(err))
    raise errors[0][1]  # type: ignore[misc]
