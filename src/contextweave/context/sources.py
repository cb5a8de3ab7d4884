"""Tier sources: where memory files come from.

ContextManager only talks to the MemorySource protocol. The filesystem
implementation here discovers memory files by name; tests and embedders can
substitute any object with the same four coroutines.
"""

import asyncio
import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, AbstractSet, Optional, Protocol

from .types import ContextError, MemoryFile, MemoryLoadResult

if TYPE_CHECKING:
    from .extensions import ExtensionLoader

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_FILENAMES: tuple[str, ...] = ("INSTRUCTIONS.md",)
PROJECT_ROOT_MARKER = ".git"


class MemoryReadError(ContextError):
    """Raised when a memory file exists but cannot be read."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Failed to read memory file {path}: {cause}")
        self.path = path
        self.cause = cause


class MemorySource(Protocol):
    """One loader per tier. Every method may raise; errors propagate."""

    async def load_global(self, debug: bool = False) -> MemoryLoadResult: ...

    async def load_extensions(
        self, extension_loader: Optional["ExtensionLoader"], debug: bool = False
    ) -> MemoryLoadResult: ...

    async def load_environment(
        self, directories: Sequence[str], debug: bool = False
    ) -> MemoryLoadResult: ...

    async def load_jit(
        self,
        accessed_path: str,
        trusted_roots: Sequence[str],
        loaded_paths: AbstractSet[str],
        debug: bool = False,
    ) -> MemoryLoadResult: ...


def default_global_dir() -> Path:
    """XDG config directory holding the user's global memory files."""
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "contextweave"


def _resolve(path: str) -> Path:
    return Path(os.path.expanduser(path)).resolve()


def _unique(paths: Iterable[Path]) -> list[Path]:
    seen: set[Path] = set()
    ordered = []
    for path in paths:
        if path not in seen:
            seen.add(path)
            ordered.append(path)
    return ordered


def find_project_root(start: Path) -> Optional[Path]:
    """Nearest ancestor (inclusive) containing a .git entry."""
    for candidate in (start, *start.parents):
        if (candidate / PROJECT_ROOT_MARKER).exists():
            return candidate
    return None


class FilesystemMemorySource:
    """Discovers memory files on the local filesystem.

    Tiers:
      Global:      memory files in the global config directory
      Extension:   context files declared by active extensions
      Environment: each workspace dir and its ancestors up to the project root
      JIT:         accessed path upward to the nearest trusted root
    """

    def __init__(
        self,
        filenames: Sequence[str] = DEFAULT_MEMORY_FILENAMES,
        global_dir: Optional[str] = None,
    ) -> None:
        if not filenames:
            raise ValueError("At least one memory filename is required")
        self._filenames = tuple(filenames)
        self._global_dir = _resolve(global_dir) if global_dir else default_global_dir()

    @property
    def filenames(self) -> tuple[str, ...]:
        return self._filenames

    async def load_global(self, debug: bool = False) -> MemoryLoadResult:
        candidates = [self._global_dir / name for name in self._filenames]
        return await self._load("global", candidates, debug)

    async def load_extensions(
        self, extension_loader: Optional["ExtensionLoader"], debug: bool = False
    ) -> MemoryLoadResult:
        if extension_loader is None:
            return MemoryLoadResult()
        candidates = [
            path
            for ext in extension_loader.get_active_extensions()
            for path in ext.context_file_paths()
        ]
        return await self._load("extension", candidates, debug)

    async def load_environment(
        self, directories: Sequence[str], debug: bool = False
    ) -> MemoryLoadResult:
        candidates: list[Path] = []
        for directory in directories:
            start = _resolve(directory)
            root = find_project_root(start) or start
            chain = [start]
            if root != start:
                chain.extend(p for p in start.parents if root == p or root in p.parents)
            for folder in reversed(chain):
                candidates.extend(self._memory_paths_in(folder))
        return await self._load("environment", candidates, debug)

    async def load_jit(
        self,
        accessed_path: str,
        trusted_roots: Sequence[str],
        loaded_paths: AbstractSet[str],
        debug: bool = False,
    ) -> MemoryLoadResult:
        start = _resolve(accessed_path)
        if start.is_file():
            start = start.parent
        roots = {_resolve(r) for r in trusted_roots}

        if not any(start == r or r in start.parents for r in roots):
            logger.debug(f"JIT path outside trusted roots, skipping: {start}")
            return MemoryLoadResult()

        chain: list[Path] = []
        current = start
        while True:
            chain.append(current)
            if current in roots or current.parent == current:
                break
            current = current.parent

        candidates = [
            path
            for folder in reversed(chain)
            for path in self._memory_paths_in(folder)
            if path.as_posix() not in loaded_paths
        ]
        return await self._load("jit", candidates, debug)

    def _memory_paths_in(self, folder: Path) -> list[Path]:
        return [folder / name for name in self._filenames]

    async def _load(self, tier: str, candidates: Iterable[Path], debug: bool) -> MemoryLoadResult:
        existing = [p for p in _unique(candidates) if p.is_file()]
        contents = await asyncio.gather(*(asyncio.to_thread(self._read, p) for p in existing))
        files = [
            MemoryFile(path=path.as_posix(), content=content)
            for path, content in zip(existing, contents)
            if content is not None
        ]
        if debug:
            for f in files:
                logger.debug(f"[{tier}] loaded {f.path} ({len(f.content)} chars)")
        return MemoryLoadResult(files=files)

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            # Removed between the existence check and the read
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise MemoryReadError(path.as_posix(), e) from e
