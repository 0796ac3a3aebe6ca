"""Tests for state persistence."""

import pytest
from pydantic import ValidationError

from vappsync.core.store import StateStore
from vappsync.models.entity import EntitySpec
from vappsync.models.state import AttachmentEntry, AttachmentPhase, ContainerState


@pytest.mark.asyncio
class TestStateStore:
    """Test StateStore."""

    async def test_missing_state(self, tmp_path):
        store = StateStore(tmp_path / "state")
        assert await store.load("shop") is None

    async def test_save_and_load(self, tmp_path):
        """Test that a saved baseline, journal included, loads back equal."""
        store = StateStore(tmp_path / "state")
        web = EntitySpec(name="web", kind="vm", start_order=3, moid="vm-1", folder_path="/dc1/vm")
        state = ContainerState(name="shop", id="/dc1/vm/shop", uuid="u-1", entities=[web])
        state.journal.attachments[web.key_str] = AttachmentEntry(entity=web, phase=AttachmentPhase.MOVED)

        await store.save(state)
        loaded = await store.load("shop")

        assert loaded == state
        assert store.path_for("shop").exists()
        assert not store.path_for("shop").with_suffix(".yaml.tmp").exists()

    async def test_file_is_yaml(self, tmp_path):
        store = StateStore(tmp_path)
        await store.save(ContainerState(name="shop", description="Managed"))

        content = store.path_for("shop").read_text()
        assert "name: shop" in content
        assert "description: Managed" in content

    async def test_delete(self, tmp_path):
        store = StateStore(tmp_path)
        await store.save(ContainerState(name="shop"))

        await store.delete("shop")
        await store.delete("shop")

        assert await store.load("shop") is None

    async def test_invalid_state_file(self, tmp_path):
        """Test that a corrupt state file is reported rather than ignored."""
        store = StateStore(tmp_path)
        store.path_for("shop").write_text("name: shop\nentities:\n  - name: web\n    kind: printer\n")

        with pytest.raises(ValidationError):
            await store.load("shop")
