"""Persistence of per-vApp reconciliation baselines."""

import asyncio
import io
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from ruamel.yaml import YAML

from vappsync.models.state import ContainerState


logger = logging.getLogger(__name__)


class StateStore:
    """Stores one YAML document per vApp under a state directory."""

    def __init__(self, state_dir: Path):
        """Initialize state store."""
        self.state_dir = Path(state_dir)
        self.yaml = YAML()
        self.yaml.default_flow_style = False

    def path_for(self, name: str) -> Path:
        return self.state_dir / f"{name}.yaml"

    async def load(self, name: str) -> Optional[ContainerState]:
        """Load the stored baseline for a vApp, or None if there is none."""
        state_file = self.path_for(name)
        if not await asyncio.to_thread(state_file.exists):
            return None

        content = await asyncio.to_thread(state_file.read_text)
        data = self.yaml.load(content) or {}
        try:
            return ContainerState(**data)
        except ValidationError as e:
            logger.error(f"Invalid state file {state_file}: {e}")
            raise

    async def save(self, state: ContainerState) -> None:
        """Write the baseline, replacing the previous file atomically."""
        await asyncio.to_thread(lambda: self.state_dir.mkdir(parents=True, exist_ok=True))

        stream = io.StringIO()
        self.yaml.dump(state.model_dump(mode="json"), stream)

        state_file = self.path_for(state.name)
        tmp_file = state_file.with_suffix(".yaml.tmp")
        await asyncio.to_thread(tmp_file.write_text, stream.getvalue())
        await asyncio.to_thread(os.replace, tmp_file, state_file)
        logger.debug(f"Saved state for vApp {state.name} to {state_file}")

    async def delete(self, name: str) -> None:
        """Forget the baseline of a vApp."""
        state_file = self.path_for(name)
        if await asyncio.to_thread(state_file.exists):
            await asyncio.to_thread(state_file.unlink)
            logger.debug(f"Removed state file {state_file}")
