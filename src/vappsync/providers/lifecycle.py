"""vApp container creation, lookup and destruction."""

import logging
from typing import List, Optional

from vappsync.errors import NotFoundError
from vappsync.inventory.session import Session
from vappsync.inventory.types import (
    CloneSpec,
    ContainerHandle,
    NetworkMappingPair,
    ResourceAllocation,
    ResourceConfigSpec,
    SharesLevel,
    VAppConfigSpec,
)
from vappsync.models.container import VAppSpec
from vappsync.providers.location import Location


logger = logging.getLogger(__name__)


def default_resource_allocation() -> ResourceAllocation:
    """Reservation 1, unlimited, normal shares, expandable."""
    return ResourceAllocation(
        reservation=1,
        limit=-1,
        shares=SharesLevel.NORMAL,
        expandable_reservation=True,
    )


class ContainerLifecycleManager:
    """Creates vApps by plain create or by clone, and destroys them."""

    def __init__(self, session: Session):
        """Initialize lifecycle manager."""
        self.session = session

    async def create(self, spec: VAppSpec, location: Location) -> ContainerHandle:
        """Create the vApp, cloning when a template is declared."""
        if spec.is_clone:
            logger.debug(f"Creating vApp {spec.name} via clone of {spec.template.name}")
            return await self._clone(spec, location)
        logger.debug(f"Creating vApp {spec.name} via create")
        return await self._create(spec, location)

    async def find(self, spec: VAppSpec) -> ContainerHandle:
        """Look up an existing vApp by its inventory path."""
        path = spec.inventory_path
        found = await self.session.client.find_virtual_app(self.session.datacenter, path)
        return ContainerHandle(ref=found.ref, path=found.path or path)

    async def find_optional(self, spec: VAppSpec) -> Optional[ContainerHandle]:
        try:
            return await self.find(spec)
        except NotFoundError:
            return None

    async def destroy(self, handle: ContainerHandle) -> None:
        """Destroy the vApp."""
        logger.info(f"Destroying vApp {handle.path}")
        task = await self.session.client.destroy(handle.ref)
        await self.session.wait(task, f"destroy vApp {handle.path}")

    async def _clone(self, spec: VAppSpec, location: Location) -> ContainerHandle:
        client = self.session.client
        dc = self.session.datacenter
        template = spec.template

        source = await client.find_virtual_app(dc, template.name)
        mappings = await self._network_mappings(spec)

        clone_spec = CloneSpec(
            location=location.datastore.ref,
            provisioning=template.disk_provisioning,
            network_mapping=mappings,
        )
        # Nesting supplies the folder implicitly
        if not spec.parent_vapp:
            clone_spec.vm_folder = location.folder.ref
        logger.debug(f"Clone spec for {spec.name}: {clone_spec}")

        task = await client.clone_vapp(source.ref, spec.name, location.resource_pool.ref, clone_spec)
        await self.session.wait(task, f"clone vApp {template.name} to {spec.name}")

        handle = await self.find(spec)
        logger.info(f"Cloned vApp {template.name} to {handle.path}")
        return handle

    async def _network_mappings(self, spec: VAppSpec) -> List[NetworkMappingPair]:
        """Resolve every declared source/destination network label."""
        client = self.session.client
        dc = self.session.datacenter
        pairs = []
        for mapping in spec.template.network_mappings:
            source = await client.find_network(dc, mapping.source_network_label)
            destination = await client.find_network(dc, mapping.destination_network_label)
            pairs.append(NetworkMappingPair(source=source.ref, destination=destination.ref))
        return pairs

    async def _create(self, spec: VAppSpec, location: Location) -> ContainerHandle:
        client = self.session.client

        resource_spec = ResourceConfigSpec(
            cpu=default_resource_allocation(),
            memory=default_resource_allocation(),
        )
        # A child vApp must not name a folder
        folder = None if spec.parent_vapp else location.folder.ref
        logger.debug(f"Resource spec for {spec.name}: {resource_spec}, folder: {folder}")

        task = await client.create_vapp(
            location.resource_pool.ref, spec.name, resource_spec, VAppConfigSpec(), folder
        )
        result = await self.session.wait(task, f"create vApp {spec.name}")

        if result.result is None:
            handle = await self.find(spec)
        else:
            path = await client.element_path(result.result)
            handle = ContainerHandle(ref=result.result, path=path or spec.inventory_path)
        logger.info(f"Created vApp {handle.path}")
        return handle
