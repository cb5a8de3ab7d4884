"""Pure text composition for memory tiers.

Two layers, both following the same rule: headers appear only when more
than one non-empty block is present.

- concatenate_instructions: files of one tier -> tier string
- flatten_memory: tier strings -> final payload
"""

import os
from collections.abc import Iterable, Mapping
from typing import Optional, Union

from .types import SESSION_TIERS, MemoryFile, Tier

TierKey = Union[Tier, str]
MemoryInput = Union[Mapping[TierKey, Optional[str]], str, None]


def _normalize_tier(key: TierKey) -> Tier:
    try:
        tier = key if isinstance(key, Tier) else Tier(str(key).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown memory tier: {key!r}") from None
    if tier not in SESSION_TIERS:
        raise ValueError(f"Tier {tier.label} cannot be flattened with session tiers")
    return tier


def flatten_memory(memory: MemoryInput) -> str:
    """Flatten per-tier text into one string.

    Args:
        memory: Mapping of tier -> raw text. A bare string is returned
            trimmed; None yields an empty string.

    Returns:
        "" when no tier has content, the trimmed text alone when exactly one
        does, otherwise "--- <Label> ---" sections in Global, Extension,
        Project order separated by a blank line.
    """
    if memory is None:
        return ""
    if isinstance(memory, str):
        return memory.strip()

    blocks: dict[Tier, str] = {}
    for key, value in memory.items():
        tier = _normalize_tier(key)
        text = (value or "").strip()
        if text:
            blocks[tier] = text

    if not blocks:
        return ""
    if len(blocks) == 1:
        return next(iter(blocks.values()))

    sections = [
        f"--- {tier.label} ---\n\n{blocks[tier]}"
        for tier in SESSION_TIERS
        if tier in blocks
    ]
    return "\n\n".join(sections)


def _display_path(path: str, working_dir: Optional[str]) -> str:
    if not working_dir or not os.path.isabs(path):
        return path
    try:
        rel = os.path.relpath(path, working_dir)
    except ValueError:
        # Different drive on Windows
        return path
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        return path
    return rel


def concatenate_instructions(
    files: Iterable[MemoryFile],
    working_dir: Optional[str] = None,
) -> str:
    """Join the files of a single tier into that tier's string.

    A lone non-empty file is returned as its trimmed content. With several,
    each is wrapped in "Context from" markers naming its path relative to
    working_dir.
    """
    entries = [(f.path, f.content.strip()) for f in files]
    entries = [(path, text) for path, text in entries if text]

    if not entries:
        return ""
    if len(entries) == 1:
        return entries[0][1]

    blocks = []
    for path, text in entries:
        shown = _display_path(path, working_dir)
        blocks.append(
            f"--- Context from: {shown} ---\n{text}\n--- End of Context from: {shown} ---"
        )
    return "\n\n".join(blocks)
