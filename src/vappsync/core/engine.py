"""State reconciliation engine."""

import asyncio
import contextlib
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from vappsync.core.config import ConfigManager
from vappsync.core.store import StateStore
from vappsync.errors import ConfigurationError
from vappsync.inventory.client import InventoryClient
from vappsync.inventory.session import Session
from vappsync.models.config import VAppSyncConfig
from vappsync.models.container import VAppSpec
from vappsync.models.state import ContainerState
from vappsync.providers import ProviderStatus, VAppProvider
from vappsync.utils.logging import setup_logging


logger = logging.getLogger(__name__)


class StateEngine:
    """Drives one reconcile cycle per declared vApp.

    Cycles for the same vApp are serialized; different vApps reconcile
    independently.
    """

    def __init__(
        self,
        client: InventoryClient,
        store: StateStore,
        config: Optional[VAppSyncConfig] = None,
        provider: Optional[VAppProvider] = None,
    ):
        """Initialize state engine."""
        self.client = client
        self.store = store
        self.config = config or VAppSyncConfig()
        self.provider = provider or VAppProvider()
        self.last_reconciliation: Optional[datetime] = None
        self._initialized = False
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    async def initialize(self):
        """Initialize the provider with the engine configuration."""
        try:
            await self.provider.initialize(self.config)
        except Exception as e:
            logger.error(f"Failed to initialize vApp provider: {e}")
            raise
        self._initialized = True

    @classmethod
    async def from_config_dir(cls, client: InventoryClient, config_dir: Path) -> "StateEngine":
        """Load config.yaml, set up logging and build an engine with its state store."""
        config_manager = ConfigManager(config_dir)
        config = await config_manager.load()
        setup_logging(config.reconciler.log_level)

        store = StateStore(Path(config.reconciler.state_dir))
        engine = cls(client, store, config)
        await engine.initialize()
        logger.info(f"State engine initialized with state directory {store.state_dir}")
        return engine

    @contextlib.asynccontextmanager
    async def _locked(self, name: str):
        """Hold the lock of one vApp; the lock is dropped once nobody waits on it."""
        lock = self._locks.setdefault(name, asyncio.Lock())
        self._lock_users[name] = self._lock_users.get(name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[name] -= 1
            if not self._lock_users[name]:
                del self._lock_users[name]
                del self._locks[name]

    async def open_session(self, spec: VAppSpec) -> Session:
        return await Session.open(self.client, spec.datacenter, self.config)

    async def reconcile(self, spec: VAppSpec) -> Optional[ContainerState]:
        """Converge one vApp to spec and persist the new baseline.

        Returns the stored state, or None once the vApp has been removed.
        """
        if not self._initialized:
            await self.initialize()

        async with self._locked(spec.name):
            start_time = datetime.now()
            logger.info(f"Starting reconciliation of vApp {spec.name} (ensure={spec.ensure})")

            if not await self.provider.validate_spec(spec):
                raise ConfigurationError(f"Invalid vApp configuration for {spec.name}")

            previous = await self.store.load(spec.name)
            try:
                session = await self.open_session(spec)
                if spec.ensure == "present":
                    result = await self._ensure_present(session, spec, previous)
                else:
                    result = await self._ensure_absent(session, spec, previous)
            except Exception as e:
                logger.error(f"Reconciliation of vApp {spec.name} failed: {e}", exc_info=True)
                raise

            self.last_reconciliation = datetime.now()
            duration = (self.last_reconciliation - start_time).total_seconds()
            logger.info(f"Reconciliation of vApp {spec.name} completed in {duration:.2f}s")
            return result

    async def _ensure_present(
        self, session: Session, spec: VAppSpec, previous: Optional[ContainerState]
    ) -> ContainerState:
        state = previous or ContainerState(name=spec.name)
        declared = spec.with_computed_from(state.entities)

        async def checkpoint():
            await self.store.save(state)

        state = await self.provider.present(session, declared, state, checkpoint)
        await self.store.save(state)
        return state

    async def _ensure_absent(
        self, session: Session, spec: VAppSpec, previous: Optional[ContainerState]
    ) -> None:
        async def checkpoint():
            if previous is not None:
                await self.store.save(previous)

        await self.provider.absent(session, spec, previous, checkpoint)
        await self.store.delete(spec.name)
        return None

    async def reconcile_all(
        self, specs: List[VAppSpec]
    ) -> Dict[str, Union[Optional[ContainerState], BaseException]]:
        """Reconcile several vApps concurrently; failures are reported per vApp."""
        results = await asyncio.gather(
            *(self.reconcile(spec) for spec in specs), return_exceptions=True
        )
        outcome = {}
        for spec, result in zip(specs, results):
            if isinstance(result, BaseException):
                logger.error(f"Failed to reconcile vApp {spec.name}: {result}")
            outcome[spec.name] = result
        return outcome

    async def refresh(self, spec: VAppSpec) -> Optional[ContainerState]:
        """Re-read the remote vApp into the stored baseline."""
        async with self._locked(spec.name):
            state = await self.store.load(spec.name)
            if state is None:
                return None
            session = await self.open_session(spec)
            refreshed = await self.provider.read(session, spec, state)
            if refreshed is None:
                await self.store.delete(spec.name)
                return None
            await self.store.save(refreshed)
            return refreshed

    async def get_status(self, spec: VAppSpec) -> Dict[str, Any]:
        """Get detailed status for a vApp."""
        session = await self.open_session(spec)
        status = await self.provider.status(session, spec)
        state = await self.store.load(spec.name)

        return {
            "name": spec.name,
            "path": spec.inventory_path,
            "exists": status == ProviderStatus.PRESENT,
            "ensure": spec.ensure,
            "uuid": state.uuid if state else None,
            "entities": [e.key_str for e in state.entities] if state else [],
            "pending_steps": 0 if state is None else (
                len(state.journal.attachments) + len(state.journal.detachments)
            ),
        }
