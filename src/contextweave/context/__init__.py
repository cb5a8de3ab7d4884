"""Hierarchical memory: tier loading, dedup and composition."""

from .events import MemoryChangedNotifier
from .extensions import Extension, ExtensionLoader, ExtensionManifestError
from .flatten import concatenate_instructions, flatten_memory
from .manager import ContextManager
from .registry import LoadedPathRegistry
from .sources import FilesystemMemorySource, MemoryReadError, MemorySource
from .types import (
    ContextError,
    MemoryChangedEvent,
    MemoryFile,
    MemoryLoadResult,
    Tier,
)

__all__ = [
    "ContextError",
    "ContextManager",
    "Extension",
    "ExtensionLoader",
    "ExtensionManifestError",
    "FilesystemMemorySource",
    "LoadedPathRegistry",
    "MemoryChangedEvent",
    "MemoryChangedNotifier",
    "MemoryFile",
    "MemoryLoadResult",
    "MemoryReadError",
    "MemorySource",
    "Tier",
    "concatenate_instructions",
    "flatten_memory",
]
