"""vApp member (entity) models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


INT32_MAX = 2**31 - 1

COMPUTED_FIELDS = frozenset({"moid", "folder_path", "resource_pool_path"})


class EntityKind(str, Enum):
    """Kinds of objects a vApp can contain."""
    VIRTUAL_MACHINE = "VirtualMachine"
    VIRTUAL_APP = "VirtualApp"


_KIND_ALIASES = {
    "vm": EntityKind.VIRTUAL_MACHINE,
    "vapp": EntityKind.VIRTUAL_APP,
}


class EntitySpec(BaseModel):
    """One member of a vApp with its start/stop ordering.

    ``moid``, ``folder_path`` and ``resource_pool_path`` are computed when the
    entity is attached and record where it lived before, so it can be put
    back on detach.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(..., min_length=1, description="Entity name")
    kind: EntityKind = Field(..., description="VirtualMachine or VirtualApp")
    folder: Optional[str] = Field(None, description="Sub-folder the entity lives in")
    start_order: int = Field(default=0, ge=0, le=INT32_MAX)
    start_delay: int = Field(default=0, ge=0, le=INT32_MAX)
    start_action: Optional[Literal["none", "powerOn"]] = None
    stop_delay: int = Field(default=0, ge=0, le=INT32_MAX)
    stop_action: Optional[Literal["none", "powerOff", "guestShutdown", "suspend"]] = None
    waiting_for_guest: Optional[bool] = None
    destroy_with_parent: Optional[bool] = None

    # Computed after a successful attach
    moid: Optional[str] = None
    folder_path: Optional[str] = None
    resource_pool_path: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v):
        """Accept the short vm/vapp spellings."""
        if isinstance(v, str) and v.lower() in _KIND_ALIASES:
            return _KIND_ALIASES[v.lower()]
        return v

    @property
    def key(self) -> Tuple[str, EntityKind]:
        """Identity of the entity within its vApp."""
        return (self.name, self.kind)

    @property
    def key_str(self) -> str:
        return f"{self.kind.value}:{self.name}"

    @property
    def inventory_name(self) -> str:
        """Path used to look the entity up: folder/name, or just name."""
        if self.folder:
            return f"{self.folder.rstrip('/')}/{self.name}"
        return self.name

    @property
    def is_attached(self) -> bool:
        return bool(self.moid)

    def declared_fields(self) -> Dict[str, Any]:
        """Attributes supplied by the user, without computed state."""
        return self.model_dump(exclude=set(COMPUTED_FIELDS))

    def with_computed(self, other: "EntitySpec") -> "EntitySpec":
        """Copy of this entity carrying other's computed fields."""
        return self.model_copy(
            update={
                "moid": other.moid,
                "folder_path": other.folder_path,
                "resource_pool_path": other.resource_pool_path,
            }
        )

    def without_computed(self) -> "EntitySpec":
        return self.model_copy(
            update={"moid": None, "folder_path": None, "resource_pool_path": None}
        )


@dataclass
class ReconciliationDelta:
    """Classification of declared vs previous entities for one update."""
    added: List[EntitySpec] = field(default_factory=list)
    removed: List[EntitySpec] = field(default_factory=list)
    modified: List[EntitySpec] = field(default_factory=list)
    unchanged: List[EntitySpec] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)