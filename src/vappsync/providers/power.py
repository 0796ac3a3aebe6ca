"""vApp power control."""

import logging

from vappsync.errors import RemoteTaskFault
from vappsync.inventory.session import Session
from vappsync.inventory.types import ContainerHandle


logger = logging.getLogger(__name__)


class PowerController:
    """Powers vApps on and off, tolerating "already in that state"."""

    def __init__(self, session: Session):
        """Initialize power controller."""
        self.session = session

    async def power_on(self, handle: ContainerHandle) -> bool:
        """Power on the vApp if it has members. Returns whether power-on was issued."""
        config = await self.session.client.get_vapp_config(handle.ref)
        if not config.entity_config:
            # The remote side faults on powering on an empty vApp
            logger.info(f"vApp {handle.path} has no entities to power on")
            return False

        logger.info(f"Powering on vApp {handle.path}")
        task = await self.session.client.power_on_vapp(handle.ref)
        try:
            await self.session.wait(task, f"power on vApp {handle.path}")
        except RemoteTaskFault as e:
            if not e.is_invalid_power_state:
                raise
            logger.debug(f"vApp {handle.path} already powered on")
        return True

    async def power_off(self, handle: ContainerHandle) -> None:
        """Power off the vApp; already off counts as success."""
        logger.info(f"Powering off vApp {handle.path}")
        task = await self.session.client.power_off_vapp(handle.ref, force=False)
        try:
            await self.session.wait(task, f"power off vApp {handle.path}")
        except RemoteTaskFault as e:
            if not e.is_invalid_power_state:
                logger.error(f"Failed to power off vApp {handle.path}: {e}")
                raise
            logger.debug(f"vApp {handle.path} already powered off")
