"""Session-scoped record of memory files already incorporated."""

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)


class LoadedPathRegistry:
    """Set of memory file paths loaded since the last refresh.

    Owned by a single ContextManager. Callers outside the manager only ever
    see the frozen snapshot returned by view().
    """

    def __init__(self) -> None:
        self._paths: set[str] = set()

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def add(self, paths: Iterable[str]) -> int:
        """Register paths, returning how many were new."""
        before = len(self._paths)
        self._paths.update(paths)
        added = len(self._paths) - before
        if added:
            logger.debug(f"Registered {added} path(s), {len(self._paths)} total")
        return added

    def clear(self) -> None:
        self._paths.clear()

    def view(self) -> frozenset[str]:
        """Read-only snapshot of the registered paths."""
        return frozenset(self._paths)
