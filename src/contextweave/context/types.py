"""Core data types shared by the context tiers."""

from dataclasses import dataclass, field
from enum import Enum


class Tier(str, Enum):
    """Scopes a memory file can be loaded from."""

    GLOBAL = "global"
    EXTENSION = "extension"
    PROJECT = "project"
    JIT = "jit"  # Loaded on demand, never during refresh

    @property
    def label(self) -> str:
        """Display form used in section headers."""
        return self.value.capitalize()


# Load order for refresh(); JIT is deliberately absent
SESSION_TIERS: tuple[Tier, ...] = (Tier.GLOBAL, Tier.EXTENSION, Tier.PROJECT)


class ContextError(Exception):
    """Base class for errors raised while gathering context."""


@dataclass(frozen=True)
class MemoryFile:
    """A single memory file and its raw (untrimmed) content."""

    path: str
    content: str


@dataclass
class MemoryLoadResult:
    """Files returned by one tier loader."""

    files: list[MemoryFile] = field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.files]


@dataclass(frozen=True)
class MemoryChangedEvent:
    """Published after every successful refresh."""

    file_count: int
