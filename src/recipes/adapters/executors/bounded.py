import asyncio
from typing import Any, Optional, Set

from recipes.runtime.bus import MessageBus
from recipes.runtime.events import ExecutorDrained, OperationBlocked, OperationFinished
from recipes.spec.protocols import WorkItem


def _mark_retrieved(future: "asyncio.Future[Any]") -> None:
    # Errors are reported through OperationFinished; callers need not await.
    if not future.cancelled():
        future.exception()


class BoundedExecutor:
    """
    Starts resource operations on behalf of the engine, never more than
    `capacity` at a time. Work is submitted unstarted, so the bound applies
    to actual execution and not only to bookkeeping.
    """

    def __init__(
        self, bus: MessageBus, run_id: Optional[str] = None, capacity: int = 5
    ):
        if capacity < 1:
            raise ValueError(f"Executor capacity must be at least 1, got {capacity}.")
        self.bus = bus
        self.run_id = run_id
        self.capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._tasks: Set["asyncio.Task[None]"] = set()
        self._outstanding = 0

    @property
    def outstanding(self) -> int:
        """Operations submitted and not yet finished, queued or running."""
        return self._outstanding

    def submit(self, operation_id: str, work: WorkItem) -> "asyncio.Future[Any]":
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._outstanding += 1
        if self._outstanding > self.capacity:
            self.bus.publish(
                OperationBlocked(run_id=self.run_id, operation_id=operation_id)
            )
        task = loop.create_task(self._run(operation_id, work, future))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        future.add_done_callback(_mark_retrieved)
        return future

    async def _run(
        self, operation_id: str, work: WorkItem, future: "asyncio.Future[Any]"
    ) -> None:
        status, error = "Succeeded", None
        try:
            async with self._semaphore:
                result = await work()
        except asyncio.CancelledError:
            self._outstanding -= 1
            future.cancel()
            raise
        except Exception as e:
            status, error = "Failed", f"{type(e).__name__}: {e}"
            future.set_exception(e)
        else:
            future.set_result(result)

        self._outstanding -= 1
        self.bus.publish(
            OperationFinished(
                run_id=self.run_id,
                operation_id=operation_id,
                status=status,
                error=error,
            )
        )
        # Handlers of OperationFinished may have submitted new work.
        if self._outstanding == 0:
            self.bus.publish(ExecutorDrained(run_id=self.run_id))

    async def wait_idle(self) -> None:
        while self._tasks:
            done, _ = await asyncio.wait(list(self._tasks))
            self._tasks.difference_update(done)
