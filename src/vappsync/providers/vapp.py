"""vApp provider: create, read, update and delete cycles."""

import logging
from typing import Optional

from vappsync.errors import ConfigurationError
from vappsync.inventory.session import Session
from vappsync.inventory.types import ContainerHandle
from vappsync.models.config import MetadataPushPolicy, VAppSyncConfig
from vappsync.models.container import VAppSpec
from vappsync.models.entity import EntityKind, ReconciliationDelta
from vappsync.models.state import ContainerState, OperationJournal
from vappsync.providers import backpopulate
from vappsync.providers.base import BaseProvider, Checkpoint, ProviderStatus
from vappsync.providers.entities import (
    EntityReconciler,
    diff,
    metadata_targets,
    resume_journal,
)
from vappsync.providers.lifecycle import ContainerLifecycleManager
from vappsync.providers.location import LocationResolver
from vappsync.providers.power import PowerController


logger = logging.getLogger(__name__)


async def _no_checkpoint():
    return None


class VAppProvider(BaseProvider):
    """Provider for managing vApp containers and their members.

    Sequences within a cycle are not transactional: each remote step is
    atomic on its own, and the journal in ``ContainerState`` lets a failed
    cycle be retried as a whole.
    """

    def __init__(self):
        """Initialize vApp provider."""
        self.metadata_push_policy = MetadataPushPolicy.CHANGED

    async def initialize(self, config: VAppSyncConfig):
        """Initialize provider with configuration."""
        self.metadata_push_policy = config.reconciler.metadata_push_policy
        logger.debug(f"Metadata push policy: {self.metadata_push_policy.value}")

    async def validate_spec(self, spec: VAppSpec) -> bool:
        """Validate vApp specification."""
        for entity in spec.entities:
            if entity.kind == EntityKind.VIRTUAL_APP and entity.inventory_name == spec.inventory_path:
                logger.error(f"vApp {spec.name} cannot contain itself")
                return False

        return True

    async def status(self, session: Session, spec: VAppSpec) -> ProviderStatus:
        """Check if the vApp exists."""
        handle = await ContainerLifecycleManager(session).find_optional(spec)
        return ProviderStatus.PRESENT if handle else ProviderStatus.ABSENT

    async def read(
        self, session: Session, spec: VAppSpec, state: ContainerState
    ) -> Optional[ContainerState]:
        """Refresh the baseline from the remote vApp; None when it is gone."""
        handle = await ContainerLifecycleManager(session).find_optional(spec)
        if handle is None:
            logger.info(f"vApp {spec.inventory_path} no longer exists")
            return None
        await self._refresh(session, handle, state)
        return state

    async def present(
        self,
        session: Session,
        spec: VAppSpec,
        state: ContainerState,
        checkpoint: Optional[Checkpoint] = None,
    ) -> ContainerState:
        """Create the vApp if missing, otherwise converge it to spec."""
        checkpoint = checkpoint or _no_checkpoint
        lifecycle = ContainerLifecycleManager(session)

        handle = await lifecycle.find_optional(spec)
        if handle is None:
            return await self.create(session, spec, state, checkpoint)
        return await self.update(session, spec, state, handle, checkpoint)

    async def create(
        self,
        session: Session,
        spec: VAppSpec,
        state: ContainerState,
        checkpoint: Checkpoint,
    ) -> ContainerState:
        """Create → attach entities → push metadata → power on."""
        logger.info(f"Creating vApp {spec.inventory_path}")

        location = await LocationResolver(session).resolve(spec)
        handle = await ContainerLifecycleManager(session).create(spec, location)
        state.id = handle.path
        if not state.journal.is_empty():
            # Recorded steps belonged to a vApp that no longer exists
            logger.warning(f"Discarding unfinished steps recorded for a previous vApp {spec.inventory_path}")
            state.journal = OperationJournal()
        await checkpoint()

        reconciler = EntityReconciler(session, state.journal, checkpoint)
        declared = [e.without_computed() for e in spec.entities]
        attached = await reconciler.attach(handle, declared)
        await reconciler.push_metadata(handle, attached, description=spec.description)

        await PowerController(session).power_on(handle)

        state.entities = backpopulate.merge(spec.entities, attached)
        state.description = spec.description
        await reconciler.commit(attached)
        await self._refresh(session, handle, state)
        return state

    async def update(
        self,
        session: Session,
        spec: VAppSpec,
        state: ContainerState,
        handle: ContainerHandle,
        checkpoint: Checkpoint,
    ) -> ContainerState:
        """Apply the entity delta and description change to an existing vApp."""
        state.id = handle.path
        delta = resume_journal(diff(state.entities, spec.entities), state.journal)
        logger.debug(
            f"vApp {handle.path} delta: added={[e.key_str for e in delta.added]} "
            f"removed={[e.key_str for e in delta.removed]} "
            f"modified={[e.key_str for e in delta.modified]}"
        )

        reconciler = EntityReconciler(session, state.journal, checkpoint)
        attached = await reconciler.attach(handle, delta.added)

        if delta.removed:
            await reconciler.detach(delta.removed)
            await reconciler.verify_detached(handle, delta.removed)

        description = None
        if state.description != spec.description:
            description = spec.description

        targets = []
        if attached or delta.modified:
            targets = metadata_targets(delta, attached, self.metadata_push_policy)
        await reconciler.push_metadata(handle, targets, description=description)

        if attached:
            await PowerController(session).power_on(handle)

        reconciled = list(delta.unchanged) + list(delta.modified) + list(attached)
        state.entities = backpopulate.merge(spec.entities, reconciled)
        state.description = spec.description
        await reconciler.commit(attached)
        await self._refresh(session, handle, state)

        if delta.has_changes or description is not None:
            logger.info(f"Updated vApp {handle.path}")
        else:
            logger.debug(f"vApp {handle.path} already up to date")
        return state

    async def absent(
        self,
        session: Session,
        spec: VAppSpec,
        state: Optional[ContainerState],
        checkpoint: Optional[Checkpoint] = None,
    ) -> None:
        """Power off → detach entities → destroy."""
        checkpoint = checkpoint or _no_checkpoint
        lifecycle = ContainerLifecycleManager(session)

        handle = await lifecycle.find_optional(spec)
        if handle is None:
            logger.debug(f"vApp {spec.inventory_path} already absent")
            return

        if state is None:
            config = await session.client.get_vapp_config(handle.ref)
            if config.entity_config:
                raise ConfigurationError(
                    f"vApp {handle.path} has {len(config.entity_config)} members but no recorded "
                    f"baseline; refusing to destroy it and its members"
                )
            state = ContainerState(name=spec.name, id=handle.path)

        logger.info(f"Removing vApp {handle.path}")
        await PowerController(session).power_off(handle)

        reconciler = EntityReconciler(session, state.journal, checkpoint)
        members = ReconciliationDelta(removed=[e for e in state.entities if e.is_attached])
        await reconciler.detach(resume_journal(members, state.journal).removed)

        await lifecycle.destroy(handle)

    async def _refresh(self, session: Session, handle: ContainerHandle, state: ContainerState):
        config = await session.client.get_vapp_config(handle.ref)
        state.uuid = config.instance_uuid
