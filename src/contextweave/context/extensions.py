"""Discovery of installed extensions and their context files."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .types import ContextError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "extension.yaml"
DEFAULT_CONTEXT_FILES = ["INSTRUCTIONS.md"]


class ExtensionManifestError(ContextError):
    """Raised when an extension manifest cannot be parsed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Invalid extension manifest {path}: {reason}")
        self.path = path


@dataclass
class Extension:
    """An installed extension."""

    name: str
    path: Path
    version: str = ""
    enabled: bool = True
    context_files: list[str] = field(default_factory=lambda: list(DEFAULT_CONTEXT_FILES))

    def context_file_paths(self) -> list[Path]:
        """Absolute paths of the declared context files (may not exist)."""
        return [self.path / name for name in self.context_files]


class ExtensionLoader:
    """Scans extension directories for manifests.

    Each extension lives in its own subdirectory holding an extension.yaml:

        name: my-extension
        version: 1.0.0
        enabled: true
        context_files:
          - INSTRUCTIONS.md
    """

    def __init__(self, extension_dirs: Optional[list[str]] = None) -> None:
        self._extension_dirs = [
            Path(os.path.expanduser(d)) for d in (extension_dirs or [])
        ]
        self._extensions: Optional[list[Extension]] = None

    def get_extensions(self) -> list[Extension]:
        """All installed extensions, sorted by name. Scanned once."""
        if self._extensions is None:
            self._extensions = self._scan()
        return list(self._extensions)

    def get_active_extensions(self) -> list[Extension]:
        return [ext for ext in self.get_extensions() if ext.enabled]

    def reload(self) -> None:
        """Forget the cached scan so the next lookup rescans."""
        self._extensions = None

    def _scan(self) -> list[Extension]:
        extensions: list[Extension] = []
        for base in self._extension_dirs:
            if not base.is_dir():
                logger.debug(f"Extension dir not found: {base}")
                continue
            for child in sorted(base.iterdir()):
                manifest = child / MANIFEST_NAME
                if child.is_dir() and manifest.is_file():
                    extensions.append(self._load_manifest(manifest))

        extensions.sort(key=lambda ext: ext.name)
        logger.debug(
            f"Found {len(extensions)} extensions "
            f"({sum(1 for e in extensions if e.enabled)} active)"
        )
        return extensions

    @staticmethod
    def _load_manifest(manifest: Path) -> Extension:
        try:
            with open(manifest, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ExtensionManifestError(manifest, str(e)) from e

        if not isinstance(data, dict):
            raise ExtensionManifestError(manifest, "expected a mapping")

        context_files = data.get("context_files", DEFAULT_CONTEXT_FILES)
        if isinstance(context_files, str):
            context_files = [context_files]
        if not isinstance(context_files, list) or not all(
            isinstance(name, str) for name in context_files
        ):
            raise ExtensionManifestError(manifest, "context_files must be a list of names")

        return Extension(
            name=str(data.get("name") or manifest.parent.name),
            path=manifest.parent.resolve(),
            version=str(data.get("version", "")),
            enabled=bool(data.get("enabled", True)),
            context_files=list(context_files),
        )
