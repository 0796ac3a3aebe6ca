"""Remote inventory interface, session context and task waiting."""

from vappsync.inventory.client import InventoryClient
from vappsync.inventory.session import Session
from vappsync.inventory.tasks import TaskOutcome, TaskResult, TaskWaiter

__all__ = [
    "InventoryClient",
    "Session",
    "TaskOutcome",
    "TaskResult",
    "TaskWaiter",
]
