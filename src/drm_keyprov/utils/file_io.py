from __future__ import annotations

from pathlib import Path


def read_file_to_bytes(path: str) -> bytes:
    """Read a whole file. Raises OSError if it cannot be read."""
    return Path(path).read_bytes()
