"""Hierarchical memory composition for an agent session."""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional, Protocol

from .events import MemoryChangedNotifier, MemoryListener
from .flatten import concatenate_instructions, flatten_memory
from .registry import LoadedPathRegistry
from .sources import MemorySource
from .types import MemoryChangedEvent, MemoryFile, Tier

if TYPE_CHECKING:
    from ..tools.mcp_manager import MCPManager
    from .extensions import ExtensionLoader

logger = logging.getLogger(__name__)


class ContextConfig(Protocol):
    """Read-only configuration accessors the manager relies on."""

    def get_working_dir(self) -> str: ...

    def get_debug_mode(self) -> bool: ...

    def is_trusted_folder(self) -> bool: ...

    def get_workspace_directories(self) -> list[str]: ...

    def get_extension_loader(self) -> Optional["ExtensionLoader"]: ...

    def get_mcp_client_manager(self) -> Optional["MCPManager"]: ...

    def create_memory_source(self) -> MemorySource: ...


class ContextManager:
    """Loads and composes memory tiers for one agent session.

    Session tiers (Global, Extension, Project) are rebuilt wholesale on
    refresh(). JIT context is loaded per accessed path by discover_context()
    and handed straight back to the caller. Every file incorporated since
    the last refresh is tracked so nothing is loaded twice.

    Both loading operations hold an instance lock, so concurrent calls on
    the same manager run one after another.
    """

    def __init__(
        self,
        config: ContextConfig,
        source: Optional[MemorySource] = None,
    ) -> None:
        self._config = config
        self._source = source if source is not None else config.create_memory_source()
        self._loaded_paths = LoadedPathRegistry()
        self._notifier = MemoryChangedNotifier()
        self._lock = asyncio.Lock()

        self._global_memory = ""
        self._extension_memory = ""
        self._project_memory = ""

    async def refresh(self) -> None:
        """Reload global, extension and project memory, then notify listeners.

        Tiers are loaded into locals and committed together with the new
        registry only once every loader has succeeded. Any loader error
        propagates immediately, leaving the previous tiers and registry
        intact; remaining tiers are not attempted and no notification is sent.
        """
        async with self._lock:
            global_files, global_memory = await self._load_global_memory()
            extension_files, extension_memory = await self._load_extension_memory()
            project_files, project_memory = await self._load_project_memory()

            self._loaded_paths.clear()
            for files in (global_files, extension_files, project_files):
                self._mark_as_loaded(files)
            self._global_memory = global_memory
            self._extension_memory = extension_memory
            self._project_memory = project_memory

            file_count = len(self._loaded_paths)
            logger.info(
                f"Memory refreshed: {file_count} files",
                extra={"ctx": self.get_status()},
            )
            self._notifier.emit(MemoryChangedEvent(file_count=file_count))

    async def discover_context(self, accessed_path: str, trusted_roots: list[str]) -> str:
        """Load JIT context for a path the agent just touched.

        Walks upward from accessed_path to the nearest trusted root, skipping
        files already loaded this session.

        Returns:
            The flattened text of newly found files, or "" if there are none
            or the workspace is untrusted.
        """
        if not self._config.is_trusted_folder():
            return ""

        async with self._lock:
            result = await self._source.load_jit(
                accessed_path,
                trusted_roots,
                self._loaded_paths.view(),
                self._config.get_debug_mode(),
            )
            files = self._unseen(result.files)
            if not files:
                logger.debug(f"No new JIT context for {accessed_path}")
                return ""

            self._mark_as_loaded(files)
            logger.info(
                f"Discovered {len(files)} JIT memory file(s) for {accessed_path}",
                extra={"ctx": {"tier": "jit", "paths": [f.path for f in files]}},
            )
            return self._concatenate(files)

    def on_memory_changed(self, callback: MemoryListener) -> None:
        """Register a callback invoked with MemoryChangedEvent after each refresh."""
        self._notifier.subscribe(callback)

    def remove_listener(self, callback: MemoryListener) -> None:
        self._notifier.unsubscribe(callback)

    def get_global_memory(self) -> str:
        return self._global_memory

    def get_extension_memory(self) -> str:
        return self._extension_memory

    def get_environment_memory(self) -> str:
        return self._project_memory

    def get_memory(self) -> str:
        """All session tiers flattened into the final instruction payload."""
        return flatten_memory({
            Tier.GLOBAL: self._global_memory,
            Tier.EXTENSION: self._extension_memory,
            Tier.PROJECT: self._project_memory,
        })

    def get_loaded_paths(self) -> frozenset[str]:
        return self._loaded_paths.view()

    def get_status(self) -> dict:
        """Status dict for the CLI / debugging."""
        return {
            "file_count": len(self._loaded_paths),
            "trusted": self._config.is_trusted_folder(),
            "global_chars": len(self._global_memory),
            "extension_chars": len(self._extension_memory),
            "project_chars": len(self._project_memory),
            "listeners": len(self._notifier),
        }

    async def _load_global_memory(self) -> tuple[list[MemoryFile], str]:
        result = await self._source.load_global(self._config.get_debug_mode())
        logger.debug(f"Global tier: {len(result.files)} files")
        return result.files, self._concatenate(result.files)

    async def _load_extension_memory(self) -> tuple[list[MemoryFile], str]:
        result = await self._source.load_extensions(
            self._config.get_extension_loader(),
            self._config.get_debug_mode(),
        )
        logger.debug(f"Extension tier: {len(result.files)} files")
        return result.files, self._concatenate(result.files)

    async def _load_project_memory(self) -> tuple[list[MemoryFile], str]:
        if not self._config.is_trusted_folder():
            logger.debug("Workspace not trusted, skipping project tier")
            return [], ""

        result = await self._source.load_environment(
            list(self._config.get_workspace_directories()),
            self._config.get_debug_mode(),
        )
        project_memory = self._concatenate(result.files)
        logger.debug(f"Project tier: {len(result.files)} files")

        # MCP instructions have no path and bypass the registry
        mcp_manager = self._config.get_mcp_client_manager()
        mcp_instructions = mcp_manager.get_mcp_instructions() if mcp_manager else ""
        return result.files, "\n\n".join(
            part for part in (project_memory, (mcp_instructions or "").lstrip()) if part
        )

    def _unseen(self, files: list[MemoryFile]) -> list[MemoryFile]:
        fresh: list[MemoryFile] = []
        seen: set[str] = set()
        for f in files:
            if f.path in self._loaded_paths or f.path in seen:
                continue
            seen.add(f.path)
            fresh.append(f)
        return fresh

    def _mark_as_loaded(self, files: list[MemoryFile]) -> None:
        self._loaded_paths.add(f.path for f in files)

    def _concatenate(self, files: list[MemoryFile]) -> str:
        return concatenate_instructions(files, self._config.get_working_dir())
