"""Placement resolution for new vApps."""

import logging
from dataclasses import dataclass
from typing import Optional

from vappsync.errors import AmbiguousConfigError, ConfigurationError, NotFoundError
from vappsync.inventory.session import Session
from vappsync.inventory.types import (
    STORAGE_POD,
    InventoryObject,
    ObjectRef,
    StoragePlacementSpec,
)
from vappsync.models.container import VAppSpec


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    """Where a new vApp goes."""
    resource_pool: InventoryObject
    folder: InventoryObject
    datastore: Optional[InventoryObject] = None


class LocationResolver:
    """Computes the (resource pool, folder, datastore) triple for a vApp."""

    def __init__(self, session: Session):
        """Initialize location resolver."""
        self.session = session

    async def resolve(self, spec: VAppSpec) -> Location:
        """Resolve placement, failing fast on the first missing object."""
        self._check_hints(spec)

        resource_pool = await self.resolve_resource_pool(spec)
        folder = await self.resolve_folder(spec)
        datastore = await self.resolve_datastore(spec, resource_pool, folder)

        logger.debug(
            f"Location for vApp {spec.name}: pool={resource_pool.path or resource_pool.ref} "
            f"folder={folder.path or folder.ref} datastore={datastore.ref if datastore else None}"
        )
        return Location(resource_pool=resource_pool, folder=folder, datastore=datastore)

    def _check_hints(self, spec: VAppSpec):
        """Reject hints that cannot both apply."""
        if spec.parent_vapp and spec.folder:
            raise AmbiguousConfigError(
                f"vApp {spec.name}: folder '{spec.folder}' cannot be combined with "
                f"parent_vapp '{spec.parent_vapp}'; a nested vApp takes its parent's folder"
            )

        if spec.template:
            destinations = {}
            for mapping in spec.template.network_mappings:
                src = mapping.source_network_label
                dst = mapping.destination_network_label
                if src in destinations and destinations[src] != dst:
                    raise AmbiguousConfigError(
                        f"vApp {spec.name}: network '{src}' is mapped to both "
                        f"'{destinations[src]}' and '{dst}'"
                    )
                destinations[src] = dst

    async def resolve_resource_pool(self, spec: VAppSpec) -> InventoryObject:
        """Pick the resource pool: parent vApp, explicit path, cluster, then default."""
        client = self.session.client
        dc = self.session.datacenter

        if spec.parent_vapp:
            # A vApp is its own resource pool
            parent = await client.find_virtual_app(dc, spec.parent_vapp)
            logger.debug(f"Using parent vApp {spec.parent_vapp} as resource pool")
            return parent

        if spec.resource_pool:
            return await client.find_resource_pool(dc, spec.resource_pool)

        if spec.cluster:
            return await client.find_resource_pool(dc, f"*{spec.cluster}/Resources")

        return await client.default_resource_pool(dc)

    async def resolve_folder(self, spec: VAppSpec) -> InventoryObject:
        """Explicit folder under the datacenter VM folder, or the VM folder itself."""
        dc = self.session.datacenter
        if not spec.folder:
            return dc.vm_folder

        path = f"{dc.path.strip('/')}/vm/{spec.folder.strip('/')}"
        folder = await self.session.client.find_by_inventory_path(path)
        if folder is None:
            raise NotFoundError("folder", spec.folder, f"no object at {path}")
        return folder

    async def resolve_datastore(
        self, spec: VAppSpec, resource_pool: InventoryObject, folder: InventoryObject
    ) -> Optional[InventoryObject]:
        """Resolve the target datastore, going through storage placement for pods."""
        client = self.session.client
        dc = self.session.datacenter

        if not spec.datastore:
            if spec.is_clone:
                return await client.default_datastore(dc)
            return None

        try:
            return await client.find_datastore(dc, spec.datastore)
        except NotFoundError:
            logger.debug(f"{spec.datastore} is not a datastore, checking storage pods")

        storage = await client.find_storage_object(dc, spec.datastore)
        if storage.ref.type != STORAGE_POD:
            return storage

        if not spec.is_clone:
            raise ConfigurationError(
                f"vApp {spec.name}: datastore '{spec.datastore}' is a storage pod; "
                f"storage pods are only supported when cloning from a template vApp"
            )

        return await self._place_in_storage_pod(spec, storage, resource_pool, folder)

    async def _place_in_storage_pod(
        self,
        spec: VAppSpec,
        pod: InventoryObject,
        resource_pool: InventoryObject,
        folder: InventoryObject,
    ) -> InventoryObject:
        """Ask storage placement for a concrete datastore inside a pod."""
        client = self.session.client
        probe = await self._representative_vm(spec)

        placement = StoragePlacementSpec(
            storage_pod=pod.ref,
            vm=probe,
            resource_pool=resource_pool.ref,
            folder=folder.ref,
        )
        logger.debug(f"Storage placement request: {placement}")
        recommendations = await client.recommend_datastores(placement)
        if not recommendations:
            raise NotFoundError(
                "datastore", spec.datastore, "storage placement returned no recommendation"
            )

        chosen = recommendations[0]
        path = await client.element_path(chosen)
        logger.info(f"Storage pod {spec.datastore} placed vApp {spec.name} on {path or chosen}")
        return InventoryObject(ref=chosen, path=path)

    async def _representative_vm(self, spec: VAppSpec) -> ObjectRef:
        """Last member of the source vApp, used to drive storage placement."""
        client = self.session.client
        source = await client.find_virtual_app(self.session.datacenter, spec.template.name)
        config = await client.get_vapp_config(source.ref)
        if not config.entity_config:
            raise NotFoundError(
                "virtual machine", spec.template.name,
                "source vApp has no members to drive storage placement",
            )
        return config.entity_config[-1].key
