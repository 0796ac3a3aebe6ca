"""Pydantic models for configuration and validation."""

from vappsync.models.config import (
    MetadataPushPolicy,
    ReconcilerSettings,
    TaskSettings,
    VAppSyncConfig,
)
from vappsync.models.container import CloneTemplateSpec, NetworkMappingSpec, VAppSpec
from vappsync.models.entity import EntityKind, EntitySpec, ReconciliationDelta
from vappsync.models.state import (
    AttachmentPhase,
    ContainerState,
    DetachmentPhase,
    OperationJournal,
)

__all__ = [
    "VAppSyncConfig",
    "ReconcilerSettings",
    "TaskSettings",
    "MetadataPushPolicy",
    "VAppSpec",
    "CloneTemplateSpec",
    "NetworkMappingSpec",
    "EntityKind",
    "EntitySpec",
    "ReconciliationDelta",
    "AttachmentPhase",
    "DetachmentPhase",
    "OperationJournal",
    "ContainerState",
]
