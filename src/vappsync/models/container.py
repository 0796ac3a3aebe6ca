"""vApp container specification models."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vappsync.models.entity import EntitySpec


DEFAULT_DESCRIPTION = "Managed by vappsync"


class NetworkMappingSpec(BaseModel):
    """Source to destination network label pair used when cloning."""
    model_config = ConfigDict(extra="forbid")

    source_network_label: str = Field(..., min_length=1)
    destination_network_label: str = Field(..., min_length=1)


class CloneTemplateSpec(BaseModel):
    """Existing vApp to clone from."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, description="Source vApp name")
    disk_provisioning: Literal["sameAsSource", "thin", "thick"] = Field(default="sameAsSource")
    network_mappings: List[NetworkMappingSpec] = Field(default_factory=list)


class VAppSpec(BaseModel):
    """vApp container specification."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, description="vApp name")
    ensure: Literal["present", "absent"] = Field(default="present")
    description: str = Field(default=DEFAULT_DESCRIPTION)
    datacenter: Optional[str] = None
    datastore: Optional[str] = Field(None, description="Datastore or storage pod name")
    cluster: Optional[str] = None
    resource_pool: Optional[str] = Field(None, description="Resource pool path")
    folder: Optional[str] = Field(None, description="VM folder path under the datacenter")
    parent_vapp: Optional[str] = Field(None, description="Path of the vApp to nest into")
    template: Optional[CloneTemplateSpec] = None
    entities: List[EntitySpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_entities(self):
        """Entity identity (name, kind) must be unique."""
        seen = set()
        for entity in self.entities:
            if entity.key in seen:
                raise ValueError(
                    f"Duplicate entity {entity.kind.value} '{entity.name}' in vApp {self.name}"
                )
            seen.add(entity.key)
        return self

    @property
    def inventory_path(self) -> str:
        """Path of the vApp relative to its datacenter."""
        parent = self.parent_vapp or self.folder
        if parent:
            return f"{parent.rstrip('/')}/{self.name}"
        return self.name

    @property
    def is_clone(self) -> bool:
        return self.template is not None

    def with_computed_from(self, previous: List[EntitySpec]) -> "VAppSpec":
        """Copy carrying persisted computed fields onto matching entities."""
        by_key = {e.key: e for e in previous}
        entities = [
            e.with_computed(by_key[e.key]) if e.key in by_key else e
            for e in self.entities
        ]
        return self.model_copy(update={"entities": entities})
