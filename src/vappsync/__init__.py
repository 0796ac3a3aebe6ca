"""
vappsync - Declarative vApp container reconciliation.

Converges vSphere-style vApp containers and their member VMs and nested
vApps to a declared state, tracking the previously applied state so updates
stay differential.
"""

__version__ = "1.0.0"
__author__ = "vappsync Development Team"

# Re-export key components for easier access
from vappsync.models.config import VAppSyncConfig
from vappsync.models.container import VAppSpec
from vappsync.models.entity import EntityKind, EntitySpec
from vappsync.models.state import ContainerState

__all__ = [
    "VAppSyncConfig",
    "VAppSpec",
    "EntityKind",
    "EntitySpec",
    "ContainerState",
]
