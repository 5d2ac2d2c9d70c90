"""
longscribe.io - Atomic file writes for transcript output.

Output is staged in a sibling temp file and moved over the destination,
so an interrupted run never leaves a half-written transcript behind.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any


def atomic_write(path: Path, content: str) -> None:
    """Replace path with content in one rename.

    Args:
        path: Destination path; parent directories are created
        content: Text written as UTF-8
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_text(path: Path, content: str) -> None:
    atomic_write(path, content)


def write_json(path: Path, data: dict[str, Any], indent: int = 2) -> None:
    """Serialize data first, so a TypeError never touches the filesystem."""
    atomic_write(path, json.dumps(data, indent=indent, ensure_ascii=False) + "\n")
