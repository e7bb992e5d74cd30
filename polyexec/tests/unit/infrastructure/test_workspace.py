"""
Unit tests for per-run workspaces.
"""

import pytest

from polyexec.infrastructure.workspace import temporary_workspace


class TestTemporaryWorkspace:
    @pytest.mark.asyncio
    async def test_file_written_and_directory_removed(self, tmp_path):
        async with temporary_workspace(str(tmp_path)) as workspace:
            path = workspace.write_file("main.py", "print('hi')")
            assert path.read_text() == "print('hi')"
            assert path.parent == workspace.path.resolve()
            created = workspace.path

        assert not created.exists()

    @pytest.mark.asyncio
    async def test_directory_removed_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            async with temporary_workspace(str(tmp_path)) as workspace:
                workspace.write_file("main.py", "")
                created = workspace.path
                raise RuntimeError("container failed")

        assert not created.exists()

    @pytest.mark.asyncio
    async def test_creates_missing_root(self, tmp_path):
        root = tmp_path / "runs"

        async with temporary_workspace(str(root)) as workspace:
            assert workspace.path.parent == root

    @pytest.mark.asyncio
    async def test_filename_cannot_escape(self, tmp_path):
        async with temporary_workspace(str(tmp_path)) as workspace:
            with pytest.raises(ValueError):
                workspace.write_file("../outside.py", "")

        assert not (tmp_path / "outside.py").exists()
