"""Remote inventory client interface.

The reconciliation core never talks to the virtualization API directly; it
drives an implementation of :class:`InventoryClient`. Finders raise
:class:`vappsync.errors.NotFoundError` when a name does not resolve.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from vappsync.inventory.types import (
    CloneSpec,
    DatacenterInfo,
    InventoryObject,
    ObjectRef,
    ResourceConfigSpec,
    StoragePlacementSpec,
    TaskHandle,
    TaskInfo,
    VAppConfigInfo,
    VAppConfigSpec,
)


class InventoryClient(ABC):
    """Interface every remote inventory backend must implement."""

    # Lookup

    @abstractmethod
    async def find_datacenter(self, name: Optional[str]) -> DatacenterInfo:
        """Resolve a datacenter by name, or the default one when name is empty."""
        pass

    @abstractmethod
    async def find_virtual_app(self, datacenter: DatacenterInfo, path: str) -> InventoryObject:
        """Resolve a vApp by path relative to the datacenter."""
        pass

    @abstractmethod
    async def find_virtual_machine(self, datacenter: DatacenterInfo, path: str) -> InventoryObject:
        """Resolve a virtual machine by path relative to the datacenter."""
        pass

    @abstractmethod
    async def find_resource_pool(self, datacenter: DatacenterInfo, path: str) -> InventoryObject:
        """Resolve a resource pool by path or pattern."""
        pass

    @abstractmethod
    async def default_resource_pool(self, datacenter: DatacenterInfo) -> InventoryObject:
        """Return the datacenter's default resource pool."""
        pass

    @abstractmethod
    async def find_datastore(self, datacenter: DatacenterInfo, name: str) -> InventoryObject:
        """Resolve a concrete datastore by name."""
        pass

    @abstractmethod
    async def find_storage_object(self, datacenter: DatacenterInfo, name: str) -> InventoryObject:
        """Resolve a datastore or storage pod by name; the ref type tells which."""
        pass

    @abstractmethod
    async def default_datastore(self, datacenter: DatacenterInfo) -> InventoryObject:
        """Return the datacenter's default datastore."""
        pass

    @abstractmethod
    async def find_network(self, datacenter: DatacenterInfo, label: str) -> InventoryObject:
        """Resolve a network by label."""
        pass

    @abstractmethod
    async def find_by_inventory_path(self, path: str) -> Optional[InventoryObject]:
        """Search the inventory index by absolute path; None when nothing matches."""
        pass

    @abstractmethod
    async def element_path(self, ref: ObjectRef) -> str:
        """Return the inventory path of a reference."""
        pass

    @abstractmethod
    async def get_resource_pool(self, vm: ObjectRef) -> ObjectRef:
        """Return the resource pool a virtual machine currently lives in."""
        pass

    @abstractmethod
    async def get_parent(self, ref: ObjectRef) -> ObjectRef:
        """Return the parent of an inventory object."""
        pass

    @abstractmethod
    async def get_vapp_config(self, vapp: ObjectRef) -> VAppConfigInfo:
        """Read back a vApp's configuration."""
        pass

    @abstractmethod
    async def recommend_datastores(self, spec: StoragePlacementSpec) -> List[ObjectRef]:
        """Ask storage placement for datastores inside a storage pod."""
        pass

    # Mutation

    @abstractmethod
    async def create_vapp(
        self,
        resource_pool: ObjectRef,
        name: str,
        resource_spec: ResourceConfigSpec,
        config_spec: VAppConfigSpec,
        folder: Optional[ObjectRef],
    ) -> TaskHandle:
        """Create an empty vApp; the task result is the new vApp reference.

        ``folder`` must be None for a vApp nested in another vApp.
        """
        pass

    @abstractmethod
    async def clone_vapp(
        self, source: ObjectRef, name: str, target: ObjectRef, spec: CloneSpec
    ) -> TaskHandle:
        """Clone a vApp into a target resource pool."""
        pass

    @abstractmethod
    async def update_vapp_config(self, vapp: ObjectRef, spec: VAppConfigSpec) -> TaskHandle:
        """Reconfigure a vApp."""
        pass

    @abstractmethod
    async def power_on_vapp(self, vapp: ObjectRef) -> TaskHandle:
        """Power on a vApp."""
        pass

    @abstractmethod
    async def power_off_vapp(self, vapp: ObjectRef, force: bool = False) -> TaskHandle:
        """Power off a vApp."""
        pass

    @abstractmethod
    async def destroy(self, ref: ObjectRef) -> TaskHandle:
        """Destroy an inventory object."""
        pass

    @abstractmethod
    async def move_into_resource_pool(self, resource_pool: ObjectRef, refs: List[ObjectRef]) -> None:
        """Move entities into a resource pool (or vApp) in one call."""
        pass

    @abstractmethod
    async def move_into_folder(self, folder: ObjectRef, refs: List[ObjectRef]) -> TaskHandle:
        """Move entities into a folder."""
        pass

    @abstractmethod
    async def get_task_info(self, task: TaskHandle) -> TaskInfo:
        """Poll a task."""
        pass
