"""Entity diffing and attach/detach/metadata operations."""

import logging
import posixpath
from typing import List, Optional, Tuple

from vappsync.errors import (
    ConfigurationError,
    NotFoundError,
    PartialApplicationError,
    RemoteTaskFault,
)
from vappsync.inventory.session import Session
from vappsync.inventory.types import (
    ContainerHandle,
    EntityConfigRecord,
    ObjectRef,
    VAppConfigSpec,
)
from vappsync.models.config import MetadataPushPolicy
from vappsync.models.entity import EntityKind, EntitySpec, ReconciliationDelta
from vappsync.models.state import (
    AttachmentEntry,
    AttachmentPhase,
    DetachmentEntry,
    DetachmentPhase,
    OperationJournal,
)
from vappsync.providers.base import Checkpoint


logger = logging.getLogger(__name__)


def diff(previous: List[EntitySpec], declared: List[EntitySpec]) -> ReconciliationDelta:
    """Classify entities into added, removed, modified and unchanged.

    Entries are compared on their declared attributes. A declared-only entry
    and a previous-only entry sharing (name, kind) collapse into one modified
    entry: declared attributes win, computed fields come from the previous
    entry.
    """
    previous_only = [
        p for p in previous
        if not any(p.declared_fields() == d.declared_fields() for d in declared)
    ]
    delta = ReconciliationDelta()

    for entity in declared:
        same = next(
            (p for p in previous if p.declared_fields() == entity.declared_fields()),
            None,
        )
        if same is not None:
            delta.unchanged.append(entity.with_computed(same))
            continue

        counterpart = next((p for p in previous_only if p.key == entity.key), None)
        if counterpart is not None:
            previous_only.remove(counterpart)
            delta.modified.append(entity.with_computed(counterpart))
        else:
            delta.added.append(entity.without_computed())

    delta.removed.extend(previous_only)
    return delta


def metadata_targets(
    delta: ReconciliationDelta,
    attached: List[EntitySpec],
    policy: MetadataPushPolicy,
) -> List[EntitySpec]:
    """Entities to include in the whole-list entity config push.

    ``attached`` is the added list after attach, carrying computed fields.
    """
    targets = list(delta.modified) + list(attached)
    if policy == MetadataPushPolicy.ALL:
        targets = list(delta.unchanged) + targets
    return targets


def resume_journal(delta: ReconciliationDelta, journal: OperationJournal) -> ReconciliationDelta:
    """Fold steps left by an interrupted cycle into the delta.

    A declared entity with an unfinished step is attached again from its
    recorded provenance. A journaled entity that is no longer declared is
    detached, whether it was being attached or detached.
    """
    declared = {e.key_str for e in delta.added + delta.modified + delta.unchanged}

    for key, entry in list(journal.detachments.items()):
        if key in declared:
            logger.info(f"Entity {key} is declared again, re-attaching it")
            del journal.detachments[key]
            journal.attachments[key] = AttachmentEntry(entity=entry.entity)

    interrupted = {key for key in journal.attachments if key in declared}
    resumed = ReconciliationDelta(
        added=list(delta.added) + [
            e for e in delta.modified + delta.unchanged if e.key_str in interrupted
        ],
        removed=list(delta.removed),
        modified=[e for e in delta.modified if e.key_str not in interrupted],
        unchanged=[e for e in delta.unchanged if e.key_str not in interrupted],
    )

    removing = {e.key_str for e in resumed.removed}
    leftovers = list(journal.attachments.items()) + list(journal.detachments.items())
    for key, entry in leftovers:
        if key in declared or key in removing:
            continue
        logger.info(f"Entity {key} has an unfinished step and is no longer declared, detaching it")
        resumed.removed.append(entry.entity)
        removing.add(key)
    return resumed


def entity_ref(entity: EntitySpec) -> ObjectRef:
    """Remote reference rebuilt from an attached entity's moid."""
    if not entity.moid:
        raise ConfigurationError(
            f"Entity {entity.kind.value} '{entity.name}' has no object id; it was never attached"
        )
    return ObjectRef(type=entity.kind.value, value=entity.moid)


def entity_config_record(entity: EntitySpec) -> EntityConfigRecord:
    return EntityConfigRecord(
        key=entity_ref(entity),
        start_order=entity.start_order,
        start_delay=entity.start_delay,
        start_action=entity.start_action,
        stop_delay=entity.stop_delay,
        stop_action=entity.stop_action,
        waiting_for_guest=entity.waiting_for_guest,
        destroy_with_parent=entity.destroy_with_parent,
    )


async def _no_checkpoint():
    return None


class EntityReconciler:
    """Moves entities into and out of a vApp and pushes their ordering.

    Every step is recorded in the operation journal and persisted through
    ``checkpoint`` before the next remote call, so a cycle that fails midway
    can be retried and resumes from the recorded step.
    """

    def __init__(
        self,
        session: Session,
        journal: Optional[OperationJournal] = None,
        checkpoint: Optional[Checkpoint] = None,
    ):
        """Initialize entity reconciler."""
        self.session = session
        self.journal = journal if journal is not None else OperationJournal()
        self._checkpoint = checkpoint or _no_checkpoint

    async def attach(self, handle: ContainerHandle, entities: List[EntitySpec]) -> List[EntitySpec]:
        """Move entities into the vApp, returning them with computed fields.

        All entities are resolved before anything moves; one missing entity
        aborts the whole batch.
        """
        if not entities:
            return []

        attached: List[EntitySpec] = []
        to_move: List[Tuple[EntitySpec, ObjectRef]] = []

        for entity in entities:
            entry = self.journal.attachments.get(entity.key_str)
            if entry is not None:
                # Provenance was captured before the earlier attempt moved anything
                captured = entity.with_computed(entry.entity)
                logger.debug(f"Resuming attach of {entity.key_str} at phase {entry.phase.value}")
                if entry.phase == AttachmentPhase.PENDING:
                    to_move.append((captured, entity_ref(captured)))
            else:
                captured = await self._capture(entity)
                to_move.append((captured, entity_ref(captured)))
            attached.append(captured)

        if not to_move:
            return attached

        for captured, _ in to_move:
            self.journal.attachments[captured.key_str] = AttachmentEntry(entity=captured)
        await self._checkpoint()

        refs = [ref for _, ref in to_move]
        logger.info(f"Moving {len(refs)} entities into vApp {handle.path}")
        logger.debug(f"Entities moved into {handle.ref}: {[str(r) for r in refs]}")
        await self.session.client.move_into_resource_pool(handle.ref, refs)

        for captured, _ in to_move:
            self.journal.attachments[captured.key_str].phase = AttachmentPhase.MOVED
        await self._checkpoint()
        return attached

    async def _capture(self, entity: EntitySpec) -> EntitySpec:
        """Resolve an entity and record where it currently lives."""
        client = self.session.client
        dc = self.session.datacenter

        if entity.kind == EntityKind.VIRTUAL_MACHINE:
            found = await client.find_virtual_machine(dc, entity.inventory_name)
            owner = await client.get_resource_pool(found.ref)
        else:
            found = await client.find_virtual_app(dc, entity.inventory_name)
            owner = await client.get_parent(found.ref)

        folder_path = posixpath.dirname(found.path)
        pool_path = await client.element_path(owner)
        logger.debug(
            f"Entity {entity.key_str}: ref={found.ref} folder={folder_path} pool={pool_path}"
        )
        return entity.model_copy(
            update={
                "moid": found.ref.value,
                "folder_path": folder_path,
                "resource_pool_path": pool_path,
            }
        )

    async def detach(self, entities: List[EntitySpec]) -> None:
        """Move entities back to the resource pool and folder they came from."""
        for entity in entities:
            if not entity.is_attached:
                logger.warning(f"Entity {entity.key_str} was never attached, nothing to detach")
                continue
            await self._detach_one(entity)

    async def _detach_one(self, entity: EntitySpec) -> None:
        client = self.session.client
        key = entity.key_str
        ref = entity_ref(entity)

        entry = self.journal.detachments.get(key)
        if entry is None:
            entry = DetachmentEntry(entity=entity)
            self.journal.detachments[key] = entry
            self.journal.attachments.pop(key, None)
            await self._checkpoint()

        if entry.phase == DetachmentPhase.PENDING:
            pool = await self._lookup("resource pool", entity.resource_pool_path)
            logger.info(f"Moving {key} back to resource pool {entity.resource_pool_path}")
            await client.move_into_resource_pool(pool.ref, [ref])
            entry.phase = DetachmentPhase.POOL_RESTORED
            await self._checkpoint()

        if entry.phase == DetachmentPhase.POOL_RESTORED:
            try:
                folder = await self._lookup("folder", entity.folder_path)
                logger.info(f"Moving {key} back to folder {entity.folder_path}")
                task = await client.move_into_folder(folder.ref, [ref])
                await self.session.wait(task, f"move {key} into folder {entity.folder_path}")
            except (NotFoundError, RemoteTaskFault) as e:
                logger.error(f"Entity {key} left in resource pool without its folder: {e}")
                raise PartialApplicationError(
                    f"detach {key}",
                    [f"moved to resource pool {entity.resource_pool_path}"],
                    e,
                ) from e
            entry.phase = DetachmentPhase.FOLDER_RESTORED

        del self.journal.detachments[key]
        await self._checkpoint()

    async def _lookup(self, kind: str, path: Optional[str]):
        if not path:
            raise NotFoundError(kind, "<unset>", "no recorded path to restore")
        found = await self.session.client.find_by_inventory_path(path)
        if found is None:
            raise NotFoundError(kind, path)
        return found

    async def verify_detached(self, handle: ContainerHandle, entities: List[EntitySpec]) -> None:
        """Read the vApp back and fail if a detached entity is still a member."""
        if not entities:
            return
        config = await self.session.client.get_vapp_config(handle.ref)
        members = {record.key for record in config.entity_config}
        leftover = [e.key_str for e in entities if e.is_attached and entity_ref(e) in members]
        if leftover:
            raise PartialApplicationError(
                f"detach from vApp {handle.path}",
                [],
                RuntimeError(f"still members after detach: {', '.join(leftover)}"),
            )

    async def push_metadata(
        self,
        handle: ContainerHandle,
        entities: List[EntitySpec],
        description: Optional[str] = None,
    ) -> None:
        """Send ordering for entities, plus the annotation, in one reconfigure.

        The remote side replaces its whole member config with this list.
        """
        spec = VAppConfigSpec(annotation=description)
        if entities:
            spec.entity_config = [entity_config_record(e) for e in entities]

        if spec.annotation is None and spec.entity_config is None:
            logger.debug(f"Nothing to reconfigure on vApp {handle.path}")
            return

        logger.debug(f"Reconfiguring vApp {handle.path}: {spec}")
        task = await self.session.client.update_vapp_config(handle.ref, spec)
        try:
            await self.session.wait(task, f"reconfigure vApp {handle.path}")
        except RemoteTaskFault as e:
            moved = [
                key for key, entry in self.journal.attachments.items()
                if entry.phase == AttachmentPhase.MOVED
            ]
            if moved:
                raise PartialApplicationError(
                    f"reconfigure vApp {handle.path}",
                    [f"moved {key} into vApp" for key in moved],
                    e,
                ) from e
            raise

        for entity in entities:
            entry = self.journal.attachments.get(entity.key_str)
            if entry is not None:
                entry.phase = AttachmentPhase.METADATA_PUSHED
        await self._checkpoint()

    async def commit(self, entities: List[EntitySpec]) -> None:
        """Mark the attachments of ``entities`` done and drop their entries.

        Entries of other entities stay for a later cycle to finish.
        """
        for entity in entities:
            entry = self.journal.attachments.pop(entity.key_str, None)
            if entry is not None:
                entry.phase = AttachmentPhase.COMMITTED
                logger.debug(f"Attachment of {entity.key_str} committed")

        if not self.journal.is_empty():
            logger.warning(
                f"Unfinished steps left in journal: "
                f"{sorted(self.journal.attachments) + sorted(self.journal.detachments)}"
            )
        await self._checkpoint()
