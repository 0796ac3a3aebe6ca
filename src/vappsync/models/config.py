"""Configuration models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MetadataPushPolicy(str, Enum):
    """Which entities go into the whole-list entity config push.

    ``changed`` sends only added and modified entities. ``all`` also sends
    unchanged ones so their ordering is restated on every push.
    """
    CHANGED = "changed"
    ALL = "all"


class ReconcilerSettings(BaseModel):
    """Reconciler configuration."""
    log_level: str = Field(default="INFO")
    state_dir: str = Field(default="./state")
    metadata_push_policy: MetadataPushPolicy = Field(default=MetadataPushPolicy.CHANGED)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class TaskSettings(BaseModel):
    """Remote task polling configuration."""
    poll_interval: float = Field(default=1.0, gt=0)
    timeout: Optional[float] = Field(default=None, gt=0)


class VAppSyncConfig(BaseModel):
    """Main configuration model."""
    model_config = ConfigDict(extra="ignore")

    reconciler: ReconcilerSettings = Field(default_factory=ReconcilerSettings)
    tasks: TaskSettings = Field(default_factory=TaskSettings)
