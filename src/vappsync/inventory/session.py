"""Per-cycle session context."""

import logging
from typing import Optional

from vappsync.inventory.client import InventoryClient
from vappsync.inventory.tasks import TaskWaiter
from vappsync.inventory.types import DatacenterInfo
from vappsync.models.config import VAppSyncConfig


logger = logging.getLogger(__name__)


class Session:
    """Everything a reconcile cycle needs to talk to the remote inventory.

    One session is opened per cycle and handed to each component, so no
    component reaches for a shared client or datacenter on its own.
    """

    def __init__(
        self,
        client: InventoryClient,
        datacenter: DatacenterInfo,
        waiter: TaskWaiter,
        config: Optional[VAppSyncConfig] = None,
    ):
        """Initialize session."""
        self.client = client
        self.datacenter = datacenter
        self.waiter = waiter
        self.config = config or VAppSyncConfig()

    @classmethod
    async def open(
        cls,
        client: InventoryClient,
        datacenter: Optional[str],
        config: Optional[VAppSyncConfig] = None,
        waiter: Optional[TaskWaiter] = None,
    ) -> "Session":
        """Resolve the datacenter and build a session around it."""
        config = config or VAppSyncConfig()
        dc = await client.find_datacenter(datacenter)
        logger.debug(f"Opened session on datacenter {dc.name} ({dc.ref})")
        if waiter is None:
            waiter = TaskWaiter(
                client,
                poll_interval=config.tasks.poll_interval,
                timeout=config.tasks.timeout,
            )
        return cls(client, dc, waiter, config)

    async def wait(self, task, operation: str):
        """Wait for a task, raising RemoteTaskFault on failure."""
        return await self.waiter.run(task, operation)
