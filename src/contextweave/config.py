"""Configuration loading and validation for contextweave."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional
import os

import yaml

if TYPE_CHECKING:
    from .context.extensions import ExtensionLoader
    from .context.sources import MemorySource
    from .tools.mcp_manager import MCPManager


@dataclass
class MemoryConfig:
    """Memory file discovery configuration."""

    filenames: list[str] = field(default_factory=lambda: ["INSTRUCTIONS.md"])
    global_dir: Optional[str] = None  # Default: $XDG_CONFIG_HOME/contextweave


@dataclass
class WorkspaceConfig:
    """Workspace and folder trust configuration."""

    working_dir: str = "."
    directories: list[str] = field(default_factory=list)  # Empty: just working_dir
    trust_enabled: bool = False  # When off, every folder counts as trusted
    trusted_folders: list[str] = field(default_factory=list)


@dataclass
class ExtensionsConfig:
    """Extension discovery configuration."""

    dirs: list[str] = field(default_factory=lambda: ["~/.config/contextweave/extensions"])


@dataclass
class MCPServerConfig:
    """Configuration for a single MCP server."""

    name: str = ""
    command: str = ""
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class MCPConfig:
    """MCP server configuration."""

    servers: list[MCPServerConfig] = field(default_factory=list)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    debug_to_file: bool = False  # Write JSON debug logs to ~/.local/share/contextweave/logs/
    use_colors: bool = True  # ANSI colors in console output


def _is_within(path: Path, folder: Path) -> bool:
    return path == folder or folder in path.parents


@dataclass
class Config:
    """Main configuration container.

    Also serves as the read-only handle ContextManager queries for the
    working directory, trust, workspace directories and collaborators.
    """

    debug: bool = False
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    extensions: ExtensionsConfig = field(default_factory=ExtensionsConfig)
    mcp: MCPConfig = field(default_factory=MCPConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        # Runtime collaborators, not part of the serialized config
        self._extension_loader: Optional["ExtensionLoader"] = None
        self._mcp_manager: Optional["MCPManager"] = None

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load configuration from file.

        Args:
            path: Optional path to config file. If not provided, searches
                  XDG config locations.

        Returns:
            Loaded configuration with defaults for missing values.
        """
        config_path: Optional[Path] = None

        if path:
            config_path = Path(path)
        else:
            # Try XDG config first
            xdg_config = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
            user_config = Path(xdg_config) / "contextweave" / "config.yaml"

            if user_config.exists():
                config_path = user_config
            else:
                # Try system config
                system_config = Path("/etc/contextweave/config.yaml")
                if system_config.exists():
                    config_path = system_config

        if config_path and config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            return cls._from_dict(data)

        return cls()

    @staticmethod
    def _parse_mcp(data: dict) -> MCPConfig:
        """Parse mcp config, handling the nested servers list."""
        return MCPConfig(servers=[MCPServerConfig(**s) for s in data.get("servers", [])])

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        return cls(
            debug=bool(data.get("debug", False)),
            memory=MemoryConfig(**data.get("memory", {})),
            workspace=WorkspaceConfig(**data.get("workspace", {})),
            extensions=ExtensionsConfig(**data.get("extensions", {})),
            mcp=cls._parse_mcp(data.get("mcp", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def get_working_dir(self) -> str:
        return os.path.abspath(os.path.expanduser(self.workspace.working_dir))

    def get_debug_mode(self) -> bool:
        return self.debug

    def is_trusted_folder(self) -> bool:
        """Whether project and JIT memory may be loaded for the working dir."""
        if not self.workspace.trust_enabled:
            return True
        working_dir = Path(self.get_working_dir()).resolve()
        return any(
            _is_within(working_dir, Path(os.path.expanduser(folder)).resolve())
            for folder in self.workspace.trusted_folders
        )

    def get_workspace_directories(self) -> list[str]:
        if not self.workspace.directories:
            return [self.get_working_dir()]
        return [
            os.path.abspath(os.path.expanduser(d)) for d in self.workspace.directories
        ]

    def get_extension_loader(self) -> "ExtensionLoader":
        if self._extension_loader is None:
            from .context.extensions import ExtensionLoader
            self._extension_loader = ExtensionLoader(self.extensions.dirs)
        return self._extension_loader

    def get_mcp_client_manager(self) -> Optional["MCPManager"]:
        return self._mcp_manager

    def set_mcp_client_manager(self, manager: Optional["MCPManager"]) -> None:
        """Attach a started MCP manager whose instructions join project memory."""
        self._mcp_manager = manager

    def create_memory_source(self) -> "MemorySource":
        from .context.sources import FilesystemMemorySource
        return FilesystemMemorySource(
            filenames=self.memory.filenames,
            global_dir=self.memory.global_dir,
        )
