from __future__ import annotations

import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from catalog_extract.workspace import Workspace, WorkspaceError


class TestWorkspace(unittest.TestCase):
    def setUp(self) -> None:
        self.parent = Path(tempfile.mkdtemp(prefix="catalog_ws_parent_"))
        self.addCleanup(shutil.rmtree, self.parent, True)

    def test_create_allocates_unique_directories(self) -> None:
        a = Workspace.create(parent=self.parent, prefix="run-")
        b = Workspace.create(parent=self.parent, prefix="run-")

        self.assertNotEqual(a.path, b.path)
        self.assertTrue(a.path.is_dir())
        self.assertTrue(a.path.name.startswith("run-"))
        self.assertEqual(a.path.parent, self.parent)

    def test_cleanup_is_idempotent(self) -> None:
        ws = Workspace.create(parent=self.parent)
        (ws.path / "page_001.png").write_bytes(b"x")
        (ws.path / "figures").mkdir()

        self.assertTrue(ws.cleanup())
        self.assertFalse(ws.path.exists())
        self.assertTrue(ws.cleanup())
        self.assertTrue(ws.cleaned)

    def test_context_manager_removes_directory_when_body_raises(self) -> None:
        captured: list[Path] = []
        with self.assertRaises(RuntimeError):
            with Workspace.create(parent=self.parent) as ws:
                captured.append(ws.path)
                (ws.path / "img_1.png").write_bytes(b"x")
                raise RuntimeError("boom")

        self.assertFalse(captured[0].exists())

    def test_cleanup_failure_is_logged_not_raised(self) -> None:
        ws = Workspace.create(parent=self.parent)
        with patch("catalog_extract.workspace.shutil.rmtree", side_effect=OSError("device busy")):
            with self.assertLogs("catalog_extract.workspace", level="WARNING") as logs:
                self.assertFalse(ws.cleanup())

        self.assertIn("device busy", "\n".join(logs.output))
        self.assertFalse(ws.cleaned)
        self.assertTrue(ws.cleanup())

    def test_create_failure_raises_workspace_error(self) -> None:
        blocker = self.parent / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")

        with self.assertRaises(WorkspaceError):
            Workspace.create(parent=blocker)


if __name__ == "__main__":
    unittest.main()
