"""Pytest configuration and fixtures for contextweave tests."""

from pathlib import Path
from typing import Optional

import pytest

from contextweave.config import Config
from contextweave.context import MemoryFile, MemoryLoadResult


class FakeMemorySource:
    """Deterministic tier source returning canned file lists.

    jit maps an accessed path to the files its upward walk would reach.
    With honor_loaded=False the JIT loader ignores loaded_paths, leaving
    dedup entirely to the caller.
    """

    def __init__(
        self,
        global_files: Optional[list[MemoryFile]] = None,
        extension_files: Optional[list[MemoryFile]] = None,
        project_files: Optional[list[MemoryFile]] = None,
        jit: Optional[dict[str, list[MemoryFile]]] = None,
        honor_loaded: bool = True,
    ) -> None:
        self.global_files = global_files or []
        self.extension_files = extension_files or []
        self.project_files = project_files or []
        self.jit = jit or {}
        self.honor_loaded = honor_loaded
        self.calls: list[str] = []
        self.jit_loaded_paths: list[frozenset] = []
        self.fail_on: Optional[str] = None

    def _maybe_fail(self, tier: str) -> None:
        self.calls.append(tier)
        if self.fail_on == tier:
            raise OSError(f"{tier} loader failed")

    async def load_global(self, debug=False):
        self._maybe_fail("global")
        return MemoryLoadResult(files=list(self.global_files))

    async def load_extensions(self, extension_loader, debug=False):
        self._maybe_fail("extension")
        return MemoryLoadResult(files=list(self.extension_files))

    async def load_environment(self, directories, debug=False):
        self._maybe_fail("environment")
        return MemoryLoadResult(files=list(self.project_files))

    async def load_jit(self, accessed_path, trusted_roots, loaded_paths, debug=False):
        self._maybe_fail("jit")
        self.jit_loaded_paths.append(frozenset(loaded_paths))
        files = self.jit.get(accessed_path, [])
        if self.honor_loaded:
            files = [f for f in files if f.path not in loaded_paths]
        return MemoryLoadResult(files=list(files))


def make_config(trusted: bool = True, working_dir: str = "/proj") -> Config:
    config = Config()
    config.workspace.working_dir = working_dir
    config.workspace.trust_enabled = True
    config.workspace.trusted_folders = [working_dir] if trusted else []
    return config


@pytest.fixture
def trusted_config() -> Config:
    return make_config(trusted=True)


@pytest.fixture
def untrusted_config() -> Config:
    return make_config(trusted=False)


@pytest.fixture
def temp_config(tmp_path: Path) -> Path:
    """Create temporary config file.

    Returns:
        Path to config file.
    """
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
debug: true
memory:
  filenames: [AGENTS.md, INSTRUCTIONS.md]
  global_dir: /tmp/cw-global
workspace:
  working_dir: /srv/project
  trust_enabled: true
  trusted_folders: [/srv]
extensions:
  dirs: [/opt/cw/extensions]
mcp:
  servers:
    - name: docs
      command: docs-server
      args: [--stdio]
logging:
  level: DEBUG
"""
    )
    return config_path
