"""Utility functions."""
import os
from pathlib import Path
from typing import Optional

from errors import NotFound

# largest value SQLite stores as INTEGER
MAX_SQL_INT = 2**63 - 1


def base_name(name: str) -> str:
    """Strip any directory component from a client-supplied name."""
    return os.path.basename(name.replace("\\", "/"))


def resolve_under_root(root: Path, name: str) -> Path:
    """Resolve ``root / base_name(name)`` ensuring it's strictly under root."""
    base = base_name(name)
    if base in ("", ".", ".."):
        raise NotFound("Not found")
    root = root.resolve()
    real = (root / base).resolve()
    if real.parent != root:
        raise NotFound("Not found")
    return real


def atoi_default(value: Optional[str], default: int) -> int:
    """Parse a positive int that fits SQLite, falling back to ``default`` otherwise."""
    if not value:
        return default
    try:
        number = int(value)
    except ValueError:
        return default
    if number <= 0 or number > MAX_SQL_INT:
        return default
    return number
