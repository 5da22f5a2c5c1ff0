"""Layout of the application's working directories and helpers to maintain them."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from workstudy.fsutils import ensure_directory_exists

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike

DATA_DIR = "data"
CONFIG_DIR = "config"
LOGS_DIR = "logs"
CACHE_DIR = "cache"
MODELS_DIR = "models"
TEMP_DIR = "temp"
SCREENSHOTS_DIR = "screenshots"
OCR_RESULTS_DIR = "ocr_results"
AI_ANALYSIS_DIR = "ai_analysis"
BACKUP_DIR = "backup"

_WRITE_TEST_FILE = ".write_test_tmp"


@dataclass
class DirectoryStats:
    """File count, total size and the oldest and newest files below a directory."""

    total_files: int = 0
    total_size_bytes: int = 0
    oldest_file: str = ""
    newest_file: str = ""


def create_directory_if_not_exists(path: PathLike) -> bool:
    """Create the directory and its parents; True when the path is a directory."""
    return ensure_directory_exists(path)


def ensure_directory_writable(path: PathLike) -> bool:
    """True when a file can be written to and removed from the directory."""
    directory = Path(path)
    if not directory.exists():
        return False
    probe = directory / _WRITE_TEST_FILE
    try:
        probe.write_text("test\n")
        probe.unlink()
    except OSError as exc:
        logger.error("Error testing directory writability %s: %s", path, exc)
        return False
    return True


def join_path(base: PathLike, sub: PathLike) -> str:
    """Join two path parts; an absolute second part replaces the first."""
    return os.path.join(os.fspath(base), os.fspath(sub))


def unique_filename(directory: PathLike, prefix: str, extension: str) -> str:
    """A file name of the form prefix_YYYYmmdd_HHMMSS_mmm[_n]extension not yet in the directory."""
    now = datetime.now()
    stem = f"{prefix}_{now.strftime('%Y%m%d_%H%M%S')}_{now.microsecond // 1000:03d}"
    filename = f"{stem}{extension}"
    counter = 1
    while os.path.exists(join_path(directory, filename)):
        filename = f"{stem}_{counter}{extension}"
        counter += 1
    return filename


def is_valid_path(path: str) -> bool:
    """True when the path is non-empty and holds no NUL character."""
    return bool(path) and "\0" not in path


def _regular_files(root: Path):
    for dirpath, _dirs, files in os.walk(root):
        for name in files:
            candidate = Path(dirpath) / name
            if candidate.is_file():
                yield candidate


def directory_stats(path: PathLike) -> DirectoryStats:
    """Statistics over all regular files below the directory; empty when it is missing."""
    stats = DirectoryStats()
    root = Path(path)
    if not root.is_dir():
        return stats
    oldest: float | None = None
    newest: float | None = None
    try:
        for file_path in _regular_files(root):
            info = file_path.stat()
            stats.total_files += 1
            stats.total_size_bytes += info.st_size
            if oldest is None or info.st_mtime < oldest:
                oldest = info.st_mtime
                stats.oldest_file = str(file_path)
            if newest is None or info.st_mtime > newest:
                newest = info.st_mtime
                stats.newest_file = str(file_path)
    except OSError as exc:
        logger.error("Error getting directory stats for %s: %s", path, exc)
    return stats


def list_files(directory: PathLike, extension: str = "") -> list[str]:
    """Sorted names of the regular files directly in the directory ending with extension."""
    root = Path(directory)
    if not root.is_dir():
        return []
    return sorted(
        entry.name
        for entry in root.iterdir()
        if entry.is_file() and entry.name.endswith(extension)
    )


@dataclass
class DirectoryManager:
    """The working directory tree rooted at base_path."""

    base_path: str = "."
    initialized: bool = field(default=False, init=False)

    @property
    def data_dir(self) -> str:
        return join_path(self.base_path, DATA_DIR)

    @property
    def config_dir(self) -> str:
        return join_path(self.base_path, CONFIG_DIR)

    @property
    def logs_dir(self) -> str:
        return join_path(self.base_path, LOGS_DIR)

    @property
    def cache_dir(self) -> str:
        return join_path(self.base_path, CACHE_DIR)

    @property
    def models_dir(self) -> str:
        return join_path(self.base_path, MODELS_DIR)

    @property
    def temp_dir(self) -> str:
        return join_path(self.base_path, TEMP_DIR)

    @property
    def screenshots_dir(self) -> str:
        return join_path(self.data_dir, SCREENSHOTS_DIR)

    @property
    def ocr_results_dir(self) -> str:
        return join_path(self.data_dir, OCR_RESULTS_DIR)

    @property
    def ai_analysis_dir(self) -> str:
        return join_path(self.data_dir, AI_ANALYSIS_DIR)

    @property
    def backup_dir(self) -> str:
        return join_path(self.data_dir, BACKUP_DIR)

    @property
    def required_directories(self) -> list[str]:
        """Every directory the tree must contain."""
        return [
            self.data_dir,
            self.config_dir,
            self.logs_dir,
            self.cache_dir,
            self.models_dir,
            self.temp_dir,
            self.screenshots_dir,
            self.ocr_results_dir,
            self.ai_analysis_dir,
            self.backup_dir,
        ]

    def initialize(self) -> None:
        """Create the whole tree and check it is writable; raises OSError on failure."""
        self.initialized = False
        if not create_directory_if_not_exists(self.base_path):
            raise OSError(f"failed to create base directory: {self.base_path}")
        failed = [
            path
            for path in self.required_directories
            if not create_directory_if_not_exists(path)
        ]
        unwritable = [
            path
            for path in self.required_directories
            if path not in failed and not ensure_directory_writable(path)
        ]
        if failed or unwritable:
            problems = [f"cannot create {p}" for p in failed]
            problems += [f"not writable {p}" for p in unwritable]
            raise OSError("directory setup failed: " + "; ".join(problems))
        self.initialized = True
        logger.info("Directory structure initialized in: %s", self.base_path)

    def cleanup_temp_files(self, max_age_hours: float = 24) -> int:
        """Delete files in the temp directory older than the given age; returns how many."""
        temp = Path(self.temp_dir)
        if not temp.exists():
            return 0
        cutoff = time.time() - max_age_hours * 3600
        deleted = 0
        for entry in temp.iterdir():
            if not entry.is_file():
                continue
            if entry.stat().st_mtime < cutoff:
                try:
                    entry.unlink()
                    deleted += 1
                except OSError as exc:
                    logger.error("Failed to delete temp file %s: %s", entry, exc)
        if deleted:
            logger.info("Cleaned up %d temporary files", deleted)
        return deleted

    def cleanup_cache_files(self, max_size_mb: float = 1024) -> int:
        """Delete the oldest cache files until the cache fits the size limit; returns how many."""
        cache = Path(self.cache_dir)
        if not cache.exists():
            return 0
        files = []
        for file_path in _regular_files(cache):
            info = file_path.stat()
            files.append((info.st_mtime, info.st_size, file_path))
        total = sum(size for _mtime, size, _path in files)
        limit = max_size_mb * 1024 * 1024
        if total <= limit:
            return 0
        deleted = 0
        for _mtime, size, file_path in sorted(files, key=lambda item: item[0]):
            if total <= limit:
                break
            try:
                file_path.unlink()
            except OSError as exc:
                logger.error("Failed to delete cache file %s: %s", file_path, exc)
                continue
            total -= size
            deleted += 1
        if deleted:
            logger.info("Cleaned up %d cache files", deleted)
        return deleted