"""Tests for configuration models."""

import pytest
from pydantic import ValidationError

from vappsync.models.config import MetadataPushPolicy, VAppSyncConfig


class TestVAppSyncConfig:
    """Test VAppSyncConfig model."""

    def test_defaults(self):
        """Test default configuration."""
        config = VAppSyncConfig()

        assert config.reconciler.log_level == "INFO"
        assert config.reconciler.state_dir == "./state"
        assert config.reconciler.metadata_push_policy == MetadataPushPolicy.CHANGED
        assert config.tasks.poll_interval == 1.0
        assert config.tasks.timeout is None

    def test_log_level_normalized(self):
        """Test that log level is upper-cased."""
        config = VAppSyncConfig(reconciler={"log_level": "debug"})
        assert config.reconciler.log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            VAppSyncConfig(reconciler={"log_level": "LOUD"})

    def test_policy_from_string(self):
        """Test selecting the push policy by name."""
        config = VAppSyncConfig(reconciler={"metadata_push_policy": "all"})
        assert config.reconciler.metadata_push_policy == MetadataPushPolicy.ALL

    def test_invalid_poll_interval(self):
        """Test that poll interval must be positive."""
        with pytest.raises(ValidationError):
            VAppSyncConfig(tasks={"poll_interval": 0})

    def test_unknown_sections_ignored(self):
        """Test that unknown top-level keys are ignored."""
        config = VAppSyncConfig(agent={"socket_path": "x"})
        assert not hasattr(config, "agent")
