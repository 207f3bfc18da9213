from __future__ import annotations
import os
from pathlib import Path
from typing import Set

PRINTABLE_FILE_TYPES = ("step", "3mf", "stl", "obj")


class PathError(RuntimeError):
    """Raised when an output location exists but cannot be used as a directory."""

    def __init__(self, path: str | Path, reason: str = "is not accessible"):
        self.path = Path(path)
        super().__init__(f"File or directory `{path}` {reason}")


def is_printable_file(name: str) -> bool:
    suffix = Path(name.lower()).suffix
    return bool(suffix) and suffix[1:] in PRINTABLE_FILE_TYPES


def list_existing_swatches(root: str | Path) -> Set[str]:
    """Return basenames of every printable file anywhere below ``root``.

    The scan only looks at names, so a swatch counts as rendered no matter which
    subdirectory it was moved to. A missing root yields an empty set.
    """
    found: Set[str] = set()
    for _dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            if is_printable_file(name):
                found.add(name)
    return found


def create_output_dir(path: str | Path) -> Path:
    p = Path(path)
    if p.exists() and not p.is_dir():
        raise PathError(p, "exists and is not a directory")
    try:
        # workers may race to create the same leaf
        p.mkdir(parents=True, exist_ok=True)
    except (FileExistsError, NotADirectoryError) as exc:
        raise PathError(p, "exists and is not a directory") from exc
    return p
