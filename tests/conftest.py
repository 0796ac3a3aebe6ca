"""Shared fixtures and an in-memory inventory backend."""

import itertools
import posixpath
from typing import Dict, List, Optional

import pytest

from vappsync.errors import NotFoundError
from vappsync.inventory.client import InventoryClient
from vappsync.inventory.session import Session
from vappsync.inventory.tasks import TaskWaiter
from vappsync.inventory.types import (
    DATASTORE,
    INVALID_POWER_STATE,
    STORAGE_POD,
    DatacenterInfo,
    EntityConfigRecord,
    InventoryObject,
    ObjectRef,
    RemoteFault,
    TaskHandle,
    TaskInfo,
    TaskState,
    VAppConfigInfo,
)


DC_PATH = "/dc1"
VM_ROOT = f"{DC_PATH}/vm"
HOST_ROOT = f"{DC_PATH}/host"


async def no_sleep(_seconds):
    return None


class FakeInventoryClient(InventoryClient):
    """Inventory held in dictionaries; every call is recorded in ``calls``.

    Member ordering follows the remote whole-list semantics: a reconfigure
    with an entity list replaces every stored ordering record.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self.objects: Dict[ObjectRef, InventoryObject] = {}
        self.parents: Dict[ObjectRef, ObjectRef] = {}
        self.ordering: Dict[ObjectRef, Dict[ObjectRef, EntityConfigRecord]] = {}
        self.annotations: Dict[ObjectRef, Optional[str]] = {}
        self.powered_on: set = set()
        self.networks: Dict[str, InventoryObject] = {}
        self.storage: Dict[str, InventoryObject] = {}
        self.recommendations: Optional[List[ObjectRef]] = None
        self.tasks: Dict[str, TaskInfo] = {}
        self.faults: Dict[str, RemoteFault] = {}
        self.calls: List[tuple] = []

        vm_folder = self.add_folder("")
        self.datacenter = DatacenterInfo(
            name="dc1",
            ref=ObjectRef("Datacenter", "datacenter-1"),
            path=DC_PATH,
            vm_folder=vm_folder,
        )
        self.default_pool = self.add_pool("cluster1/Resources")
        self.default_store = self.add_datastore("datastore1")

    # Inventory builders

    def _new_ref(self, type_name: str, prefix: str) -> ObjectRef:
        return ObjectRef(type_name, f"{prefix}-{next(self._ids)}")

    def _register(self, ref: ObjectRef, path: str) -> InventoryObject:
        obj = InventoryObject(ref=ref, path=path)
        self.objects[ref] = obj
        return obj

    def add_folder(self, rel: str) -> InventoryObject:
        path = f"{VM_ROOT}/{rel}".rstrip("/")
        return self._register(self._new_ref("Folder", "group-v"), path)

    def add_pool(self, rel: str) -> InventoryObject:
        return self._register(self._new_ref("ResourcePool", "resgroup"), f"{HOST_ROOT}/{rel}")

    def add_vm(self, rel: str, pool: Optional[InventoryObject] = None) -> InventoryObject:
        vm = self._register(self._new_ref("VirtualMachine", "vm"), f"{VM_ROOT}/{rel}")
        self.parents[vm.ref] = (pool or self.default_pool).ref
        return vm

    def add_vapp(
        self,
        rel: str,
        pool: Optional[InventoryObject] = None,
        members: Optional[List[InventoryObject]] = None,
    ) -> InventoryObject:
        vapp = self._register(self._new_ref("VirtualApp", "resgroup-v"), f"{VM_ROOT}/{rel}")
        self.parents[vapp.ref] = (pool or self.default_pool).ref
        self.ordering[vapp.ref] = {}
        for member in members or []:
            self.parents[member.ref] = vapp.ref
        return vapp

    def add_datastore(self, name: str, pod: bool = False) -> InventoryObject:
        if pod:
            ref = self._new_ref(STORAGE_POD, "group-p")
        else:
            ref = self._new_ref(DATASTORE, "datastore")
        obj = self._register(ref, f"{DC_PATH}/datastore/{name}")
        self.storage[name] = obj
        return obj

    def add_network(self, label: str) -> InventoryObject:
        net = self._register(self._new_ref("Network", "network"), f"{DC_PATH}/network/{label}")
        self.networks[label] = net
        return net

    def fail(self, operation: str, kind: str = "SystemError", message: str = ""):
        """Make the next task of ``operation`` end with a fault."""
        self.faults[operation] = RemoteFault(kind, message)

    # Inspection helpers

    def calls_to(self, name: str) -> List[tuple]:
        return [args for call_name, args in self.calls if call_name == name]

    def members_of(self, vapp: ObjectRef) -> List[ObjectRef]:
        return [ref for ref, parent in self.parents.items() if parent == vapp]

    def lookup_path(self, path: str) -> Optional[InventoryObject]:
        wanted = "/" + path.strip("/")
        for obj in self.objects.values():
            if obj.path == wanted:
                return obj
        return None

    def _task(self, operation: str, result: Optional[ObjectRef] = None) -> TaskHandle:
        handle = TaskHandle(f"task-{next(self._ids)}")
        fault = self.faults.pop(operation, None)
        if fault is not None:
            self.tasks[handle.id] = TaskInfo(TaskState.ERROR, error=fault)
        else:
            self.tasks[handle.id] = TaskInfo(TaskState.SUCCESS, result=result)
        return handle

    def _find(self, type_name: str, kind: str, path: str) -> InventoryObject:
        obj = self.lookup_path(f"{VM_ROOT}/{path}")
        if obj is None or obj.ref.type != type_name:
            raise NotFoundError(kind, path)
        return obj

    # Lookup

    async def find_datacenter(self, name):
        self.calls.append(("find_datacenter", (name,)))
        if name not in (None, "", "dc1"):
            raise NotFoundError("datacenter", name)
        return self.datacenter

    async def find_virtual_app(self, datacenter, path):
        self.calls.append(("find_virtual_app", (path,)))
        return self._find("VirtualApp", "vApp", path)

    async def find_virtual_machine(self, datacenter, path):
        self.calls.append(("find_virtual_machine", (path,)))
        return self._find("VirtualMachine", "virtual machine", path)

    async def find_resource_pool(self, datacenter, path):
        self.calls.append(("find_resource_pool", (path,)))
        for obj in self.objects.values():
            if obj.ref.type != "ResourcePool":
                continue
            if path.startswith("*") and obj.path.endswith(path[1:]):
                return obj
            if obj.path == f"{HOST_ROOT}/{path.strip('/')}":
                return obj
        raise NotFoundError("resource pool", path)

    async def default_resource_pool(self, datacenter):
        self.calls.append(("default_resource_pool", ()))
        return self.default_pool

    async def find_datastore(self, datacenter, name):
        self.calls.append(("find_datastore", (name,)))
        obj = self.storage.get(name)
        if obj is None or obj.ref.type != DATASTORE:
            raise NotFoundError("datastore", name)
        return obj

    async def find_storage_object(self, datacenter, name):
        self.calls.append(("find_storage_object", (name,)))
        if name not in self.storage:
            raise NotFoundError("datastore or storage pod", name)
        return self.storage[name]

    async def default_datastore(self, datacenter):
        self.calls.append(("default_datastore", ()))
        return self.default_store

    async def find_network(self, datacenter, label):
        self.calls.append(("find_network", (label,)))
        if label not in self.networks:
            raise NotFoundError("network", label)
        return self.networks[label]

    async def find_by_inventory_path(self, path):
        self.calls.append(("find_by_inventory_path", (path,)))
        return self.lookup_path(path)

    async def element_path(self, ref):
        return self.objects[ref].path

    async def get_resource_pool(self, vm):
        return self.parents[vm]

    async def get_parent(self, ref):
        return self.parents[ref]

    async def get_vapp_config(self, vapp):
        self.calls.append(("get_vapp_config", (vapp,)))
        ordering = self.ordering.get(vapp, {})
        records = [
            ordering.get(ref, EntityConfigRecord(key=ref)) for ref in self.members_of(vapp)
        ]
        return VAppConfigInfo(
            instance_uuid=f"uuid-{vapp.value}",
            annotation=self.annotations.get(vapp),
            entity_config=records,
        )

    async def recommend_datastores(self, spec):
        self.calls.append(("recommend_datastores", (spec,)))
        if self.recommendations is not None:
            return list(self.recommendations)
        return [self.default_store.ref]

    # Mutation

    async def create_vapp(self, resource_pool, name, resource_spec, config_spec, folder):
        self.calls.append(("create_vapp", (resource_pool, name, resource_spec, config_spec, folder)))
        if "create_vapp" in self.faults:
            return self._task("create_vapp")
        base = self.objects[folder or resource_pool].path
        vapp = self._register(self._new_ref("VirtualApp", "resgroup-v"), f"{base}/{name}")
        self.parents[vapp.ref] = resource_pool
        self.ordering[vapp.ref] = {}
        return self._task("create_vapp", result=vapp.ref)

    async def clone_vapp(self, source, name, target, spec):
        self.calls.append(("clone_vapp", (source, name, target, spec)))
        if "clone_vapp" in self.faults:
            return self._task("clone_vapp")
        base = self.objects[spec.vm_folder or target].path
        vapp = self._register(self._new_ref("VirtualApp", "resgroup-v"), f"{base}/{name}")
        self.parents[vapp.ref] = target
        self.ordering[vapp.ref] = {}
        for member in self.members_of(source):
            copy = self.add_vm(f"{name}-{posixpath.basename(self.objects[member].path)}")
            self.parents[copy.ref] = vapp.ref
        return self._task("clone_vapp", result=vapp.ref)

    async def update_vapp_config(self, vapp, spec):
        self.calls.append(("update_vapp_config", (vapp, spec)))
        task = self._task("update_vapp_config")
        if self.tasks[task.id].state == TaskState.SUCCESS:
            if spec.annotation is not None:
                self.annotations[vapp] = spec.annotation
            if spec.entity_config is not None:
                self.ordering[vapp] = {record.key: record for record in spec.entity_config}
        return task

    async def power_on_vapp(self, vapp):
        self.calls.append(("power_on_vapp", (vapp,)))
        if vapp in self.powered_on and "power_on_vapp" not in self.faults:
            self.fail("power_on_vapp", INVALID_POWER_STATE, "The attempted operation cannot be performed in the current state (Powered on).")
        task = self._task("power_on_vapp")
        if self.tasks[task.id].state == TaskState.SUCCESS:
            self.powered_on.add(vapp)
        return task

    async def power_off_vapp(self, vapp, force=False):
        self.calls.append(("power_off_vapp", (vapp, force)))
        if vapp not in self.powered_on and "power_off_vapp" not in self.faults:
            self.fail("power_off_vapp", INVALID_POWER_STATE, "The vApp is already in requested power state")
        task = self._task("power_off_vapp")
        if self.tasks[task.id].state == TaskState.SUCCESS:
            self.powered_on.discard(vapp)
        return task

    async def destroy(self, ref):
        self.calls.append(("destroy", (ref,)))
        task = self._task("destroy")
        if self.tasks[task.id].state == TaskState.SUCCESS:
            for member in self.members_of(ref):
                self.objects.pop(member, None)
                self.parents.pop(member, None)
            self.objects.pop(ref, None)
            self.parents.pop(ref, None)
            self.ordering.pop(ref, None)
        return task

    async def move_into_resource_pool(self, resource_pool, refs):
        self.calls.append(("move_into_resource_pool", (resource_pool, list(refs))))
        for ref in refs:
            self.parents[ref] = resource_pool

    async def move_into_folder(self, folder, refs):
        self.calls.append(("move_into_folder", (folder, list(refs))))
        task = self._task("move_into_folder")
        if self.tasks[task.id].state == TaskState.SUCCESS:
            base = self.objects[folder].path
            for ref in refs:
                name = posixpath.basename(self.objects[ref].path)
                self._register(ref, f"{base}/{name}")
        return task

    async def get_task_info(self, task):
        return self.tasks[task.id]


@pytest.fixture
def client():
    """In-memory inventory with one datacenter, cluster pool and datastore."""
    return FakeInventoryClient()


@pytest.fixture
def session(client):
    """Session over the fake inventory that never sleeps between polls."""
    return Session(client, client.datacenter, TaskWaiter(client, sleep=no_sleep))
