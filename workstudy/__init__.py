"""Activity records, SQLite storage, directory layout and configuration for a work and study assistant."""

__version__ = "1.0.0"

__all__ = [
    "common_types",
    "codec",
    "fsutils",
    "records",
    "storage_engine",
    "directory_manager",
    "config_manager",
]