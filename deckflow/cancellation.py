"""Caller-supplied cancellation and deadlines for network-bound calls.

Every suspension point of the transfer orchestrator and the analysis
pipeline (storage put, registry create, analyzer request) is awaited
through :func:`guarded`. When the signal fires, the pending call is
cancelled and :class:`OperationCancelled` is raised so the caller can mark
the affected item or run as cancelled.
"""

import asyncio
import time
from typing import Awaitable, Optional, TypeVar

import structlog

from deckflow.errors import OperationCancelled

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CancellationSignal:
    """Cancellation token with an optional deadline.

    Args:
        timeout: Seconds from construction after which the signal counts as
            cancelled. None means no deadline.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = asyncio.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    @property
    def reason(self) -> str:
        if self._reason:
            return self._reason
        if self.expired:
            return "deadline exceeded"
        return "cancelled"

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the signal fires first."""
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelled(self.reason)

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("operation_cancelled", reason=self.reason)
        raise OperationCancelled(self.reason)


async def guarded(awaitable: Awaitable[T], signal: Optional[CancellationSignal]) -> T:
    """Await through ``signal`` when one is given."""
    if signal is None:
        return await awaitable
    return await signal.guard(awaitable)
