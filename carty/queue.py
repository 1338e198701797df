"""
Mutation Queue - serializes cart operations.

Every operation runs to completion (store I/O included) before the next
one starts. A failing operation only rejects its own future; the queue
keeps going with the next one.

Usage:
    queue = MutationQueue()
    first = queue.enqueue(save_a)
    second = queue.enqueue(save_b)   # starts after save_a settled
    await second
"""

import asyncio
from collections import deque
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from carty.logging import get_logger

logger = get_logger(__name__)

Operation = Callable[[], Awaitable[Any]]


class QueueState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class MutationQueue:
    """Single-worker FIFO of coroutine operations."""

    def __init__(self, name: str = "cart"):
        self.name = name
        self._pending: deque[tuple[Operation, asyncio.Future]] = deque()
        self._worker: Optional[asyncio.Task] = None

    @property
    def state(self) -> QueueState:
        if self._worker is None or self._worker.done():
            return QueueState.IDLE
        return QueueState.RUNNING

    @property
    def pending(self) -> int:
        """Operations waiting for their turn (the running one excluded)."""
        return len(self._pending)

    def enqueue(self, op: Operation) -> asyncio.Future:
        """
        Append an operation and return the future of its result.

        Must be called from a running event loop. The worker is started
        when the queue is idle.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending.append((op, future))

        if self.state is QueueState.IDLE:
            logger.debug(f"Queue '{self.name}' running")
            self._worker = loop.create_task(self._drain(), name=f"carty-queue-{self.name}")

        return future

    async def join(self) -> None:
        """Wait until every operation enqueued so far has settled."""
        await asyncio.shield(self.enqueue(_noop))

    async def _drain(self) -> None:
        while self._pending:
            op, future = self._pending.popleft()

            if future.cancelled():
                continue

            try:
                result = await op()
            except asyncio.CancelledError:
                future.cancel()
                self._cancel_pending()
                raise
            except Exception as e:
                if not future.cancelled():
                    future.set_exception(e)
            else:
                if not future.cancelled():
                    future.set_result(result)

        logger.debug(f"Queue '{self.name}' idle")

    def _cancel_pending(self) -> None:
        while self._pending:
            _, future = self._pending.popleft()
            future.cancel()


async def _noop() -> None:
    return None
