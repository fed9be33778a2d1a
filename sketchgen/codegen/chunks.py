"""Default segmentation of sketch source into storage chunks."""

from __future__ import annotations

from typing import List

DEFAULT_CHUNK_SIZE = 512


def segment_source(text: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """Split ``text`` into consecutive slices of at most ``max_chunk_size`` characters."""
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    return [text[start : start + max_chunk_size] for start in range(0, len(text), max_chunk_size)]


__all__ = ["DEFAULT_CHUNK_SIZE", "segment_source"]
