"""Value types exchanged with the remote inventory client."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


INVALID_POWER_STATE = "InvalidPowerState"
ALREADY_IN_STATE_MESSAGE = "already in requested power state"

STORAGE_POD = "StoragePod"
DATASTORE = "Datastore"


@dataclass(frozen=True)
class ObjectRef:
    """Stable reference to a remote managed object."""
    type: str
    value: str

    def __str__(self) -> str:
        return f"{self.type}:{self.value}"


@dataclass(frozen=True)
class InventoryObject:
    """A resolved object together with its inventory path."""
    ref: ObjectRef
    path: str = ""

    @property
    def name(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True)
class DatacenterInfo:
    """Datacenter reference and the folders a reconcile cycle needs."""
    name: str
    ref: ObjectRef
    path: str
    vm_folder: InventoryObject


@dataclass(frozen=True)
class ContainerHandle:
    """Resolved remote reference to a vApp container.

    A vApp is also a resource pool, so ``ref`` is the target of entity moves.
    """
    ref: ObjectRef
    path: str


class TaskState(Enum):
    """Remote task states as reported by the client."""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class TaskHandle:
    """Handle to a submitted long-running operation."""
    id: str


@dataclass(frozen=True)
class RemoteFault:
    """Fault carried by a failed task."""
    kind: str
    message: str = ""

    @property
    def is_invalid_power_state(self) -> bool:
        return (
            self.kind == INVALID_POWER_STATE
            or ALREADY_IN_STATE_MESSAGE in self.message.lower()
        )

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind}: {self.message}"
        return self.kind


@dataclass
class TaskInfo:
    """Snapshot of a task's progress."""
    state: TaskState
    error: Optional[RemoteFault] = None
    result: Optional[ObjectRef] = None


@dataclass(frozen=True)
class EntityConfigRecord:
    """Ordering and power settings for one vApp member, keyed by reference."""
    key: ObjectRef
    start_order: int = 0
    start_delay: int = 0
    start_action: Optional[str] = None
    stop_delay: int = 0
    stop_action: Optional[str] = None
    waiting_for_guest: Optional[bool] = None
    destroy_with_parent: Optional[bool] = None


@dataclass
class VAppConfigSpec:
    """Reconfiguration request for a vApp.

    ``entity_config`` replaces the whole member list on the remote side;
    ``None`` leaves it untouched.
    """
    annotation: Optional[str] = None
    entity_config: Optional[List[EntityConfigRecord]] = None


@dataclass
class VAppConfigInfo:
    """Current vApp configuration as read back from the remote side."""
    instance_uuid: Optional[str] = None
    annotation: Optional[str] = None
    entity_config: List[EntityConfigRecord] = field(default_factory=list)


class SharesLevel(Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ResourceAllocation:
    """CPU or memory allocation policy."""
    reservation: int = 1
    limit: int = -1
    shares: SharesLevel = SharesLevel.NORMAL
    expandable_reservation: bool = True


@dataclass(frozen=True)
class ResourceConfigSpec:
    cpu: ResourceAllocation
    memory: ResourceAllocation


@dataclass(frozen=True)
class NetworkMappingPair:
    source: ObjectRef
    destination: ObjectRef


@dataclass
class CloneSpec:
    """Parameters of a vApp clone request."""
    location: ObjectRef
    provisioning: str
    network_mapping: List[NetworkMappingPair] = field(default_factory=list)
    vm_folder: Optional[ObjectRef] = None


@dataclass
class StoragePlacementSpec:
    """Storage placement query for an aggregate storage pod."""
    storage_pod: ObjectRef
    vm: ObjectRef
    resource_pool: ObjectRef
    folder: ObjectRef
    type: str = "clone"
    clone_name: str = "placement-probe"
