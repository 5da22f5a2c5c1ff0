"""File-system helpers used by the storage layer."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike


def ensure_directory_exists(path: PathLike) -> bool:
    """Create the directory and its parents if missing.

    Returns True when the path is (now) a directory, False when it names
    something else or cannot be created.
    """
    target = Path(path)
    try:
        if target.exists():
            return target.is_dir()
        target.mkdir(parents=True)
        return True
    except OSError as exc:
        logger.error("Failed to create directory %s: %s", path, exc)
        return False


def is_valid_database_path(path: PathLike) -> bool:
    """True when a database file could be written at the path.

    Missing parent directories are created. A file created only for the
    check is removed again.
    """
    target = Path(path)
    parent = target.parent
    if str(parent) not in ("", ".") and not parent.exists():
        if not ensure_directory_exists(parent):
            return False
    try:
        with open(target, "ab"):
            pass
        if target.stat().st_size == 0:
            target.unlink()
        return True
    except OSError:
        return False


def get_directory_size(path: PathLike) -> int:
    """Total size in bytes of all regular files below the directory."""
    total = 0

    def report(exc: OSError) -> None:
        logger.error("Error calculating directory size: %s", exc)

    for root, _dirs, files in os.walk(path, onerror=report):
        for name in files:
            file_path = os.path.join(root, name)
            try:
                if os.path.isfile(file_path):
                    total += os.path.getsize(file_path)
            except OSError as exc:
                report(exc)
    return total


def secure_delete_file(path: PathLike) -> bool:
    """Overwrite a file with random bytes, then remove it.

    Returns False when the file does not exist or cannot be handled.
    """
    target = Path(path)
    try:
        size = target.stat().st_size
        if not target.is_file():
            return False
        with open(target, "r+b") as handle:
            handle.write(os.urandom(size))
            handle.flush()
        target.unlink()
        return True
    except OSError as exc:
        logger.error("Secure delete failed: %s", exc)
        return False