"""Persisted reconciliation state."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from vappsync.models.entity import EntitySpec


class AttachmentPhase(str, Enum):
    """Progress of one entity through the attach sequence."""
    PENDING = "pending"
    MOVED = "moved"
    METADATA_PUSHED = "metadata_pushed"
    COMMITTED = "committed"


class DetachmentPhase(str, Enum):
    """Progress of one entity through the two-step detach."""
    PENDING = "pending"
    POOL_RESTORED = "pool_restored"
    FOLDER_RESTORED = "folder_restored"


class AttachmentEntry(BaseModel):
    entity: EntitySpec
    phase: AttachmentPhase = AttachmentPhase.PENDING


class DetachmentEntry(BaseModel):
    entity: EntitySpec
    phase: DetachmentPhase = DetachmentPhase.PENDING


class OperationJournal(BaseModel):
    """In-flight attach/detach steps, keyed by entity identity.

    Entries survive a failed cycle so the retry can resume where the
    previous attempt stopped. A cycle that finishes clears the journal.
    """
    attachments: Dict[str, AttachmentEntry] = Field(default_factory=dict)
    detachments: Dict[str, DetachmentEntry] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.attachments and not self.detachments


class ContainerState(BaseModel):
    """Baseline persisted after every mutating cycle."""
    model_config = ConfigDict(extra="ignore")

    name: str
    id: Optional[str] = Field(None, description="Inventory path of the vApp")
    uuid: Optional[str] = None
    description: Optional[str] = None
    entities: List[EntitySpec] = Field(default_factory=list)
    journal: OperationJournal = Field(default_factory=OperationJournal)
