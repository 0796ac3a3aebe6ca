"""Blocking wait on remote tasks."""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from vappsync.errors import RemoteTaskFault
from vappsync.inventory.types import ObjectRef, RemoteFault, TaskHandle, TaskState


logger = logging.getLogger(__name__)


class TaskOutcome(Enum):
    """Terminal state of a waited task."""
    SUCCESS = "success"
    FAULT = "fault"
    TIMEOUT = "timeout"


@dataclass
class TaskResult:
    """Result of waiting for a task to reach a terminal state."""
    task: TaskHandle
    outcome: TaskOutcome
    fault: Optional[RemoteFault] = None
    result: Optional[ObjectRef] = None

    @property
    def ok(self) -> bool:
        return self.outcome == TaskOutcome.SUCCESS

    def raise_for_fault(self, operation: str) -> "TaskResult":
        """Raise RemoteTaskFault unless the task succeeded."""
        if self.outcome == TaskOutcome.FAULT:
            raise RemoteTaskFault(operation, self.fault)
        if self.outcome == TaskOutcome.TIMEOUT:
            raise RemoteTaskFault(
                operation, RemoteFault("Timeout", f"task {self.task.id} did not finish")
            )
        return self


class TaskWaiter:
    """Polls a task through the inventory client until it finishes.

    ``sleep`` and ``clock`` are injectable so tests can run without real time
    passing. ``timeout`` of None waits forever; the caller owns any overall
    deadline.
    """

    def __init__(
        self,
        client,
        poll_interval: float = 1.0,
        timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize task waiter."""
        self.client = client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock

    async def wait(self, task: TaskHandle) -> TaskResult:
        """Wait for a task and classify how it ended."""
        started = self._clock()
        while True:
            info = await self.client.get_task_info(task)

            if info.state == TaskState.SUCCESS:
                return TaskResult(task, TaskOutcome.SUCCESS, result=info.result)
            if info.state == TaskState.ERROR:
                fault = info.error or RemoteFault("UnknownFault", "task failed without a fault")
                logger.debug(f"Task {task.id} failed: {fault}")
                return TaskResult(task, TaskOutcome.FAULT, fault=fault)

            if self.timeout is not None and self._clock() - started >= self.timeout:
                logger.warning(f"Task {task.id} still {info.state.value} after {self.timeout}s")
                return TaskResult(task, TaskOutcome.TIMEOUT)

            logger.debug(f"Task {task.id} is {info.state.value}, polling again")
            await self._sleep(self.poll_interval)

    async def run(self, task: TaskHandle, operation: str) -> TaskResult:
        """Wait for a task and raise RemoteTaskFault if it did not succeed."""
        result = await self.wait(task)
        return result.raise_for_fault(operation)
