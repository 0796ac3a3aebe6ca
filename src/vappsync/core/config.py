"""Configuration loading."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError
from ruamel.yaml import YAML

from vappsync.models.config import VAppSyncConfig


logger = logging.getLogger(__name__)


class ConfigManager:
    """Loads the reconciler configuration file."""

    def __init__(self, config_dir: Path):
        """Initialize configuration manager."""
        self.config_dir = Path(config_dir)
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.config: Optional[VAppSyncConfig] = None

    @property
    def config_file(self) -> Path:
        return self.config_dir / "config.yaml"

    async def load(self) -> VAppSyncConfig:
        """Load config.yaml from the configuration directory."""
        config_file = self.config_file
        logger.info(f"Loading configuration from {config_file}")
        if not config_file.exists():
            raise FileNotFoundError(f"Main config not found: {config_file}")

        try:
            data = await self._read_yaml(config_file)
            self.config = VAppSyncConfig(**(data or {}))
        except ValidationError as e:
            logger.error(f"Invalid main config: {e}")
            raise

        self._resolve_state_dir()
        logger.debug(f"Loaded main config: {config_file}")
        return self.config

    def _resolve_state_dir(self):
        """Make a relative state_dir relative to the config directory."""
        state_dir = Path(self.config.reconciler.state_dir)
        if not state_dir.is_absolute():
            self.config.reconciler.state_dir = str(self.config_dir / state_dir)

    async def _read_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse YAML file."""
        content = await asyncio.to_thread(file_path.read_text)
        return self.yaml.load(content)
