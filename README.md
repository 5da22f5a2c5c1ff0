# workstudy

The storage layer of a work and study activity assistant. It keeps window
activity, content analyses and screen captures in a local SQLite
database. It also sets up the working directory tree on disk and reads and
writes an INI-style configuration file.

It uses only the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `workstudy.common_types` holds the shared value types as dataclasses:
  `WindowInfo`, `WindowEvent`, `CaptureFrame`, `TextBlock` (also named
  `OCRResult`), `OCRDocument` and `ContentAnalysis`. It also holds the
  enumerations `ContentType`, `WorkCategory`, `ActivityPriority`,
  `ImageFormat` and `WindowEventType`.
  - `CaptureFrame.data_size()` gives the byte count the frame's dimensions
    call for. `CaptureFrame.is_valid()` checks that the frame has positive
    dimensions and enough data.
  - `OCRDocument.ordered_text()` returns `full_text`. When that is empty,
    it returns the blocks' text joined by spaces.
- `workstudy.codec` holds byte-level helpers:
  - `encrypt_data` / `decrypt_data` apply an XOR keyed from a password
    and an optional salt.
  - `compress_data` / `decompress_data` do run-length coding as
    (count, value) byte pairs.
  - `calculate_checksum` / `verify_checksum` use hex SHA-256.
  - `format_timestamp` / `parse_timestamp` handle UTC ISO 8601 with
    milliseconds, such as `2024-01-02T03:04:05.678Z`. Text that
    `parse_timestamp` cannot parse gives the current time.
  - `generate_session_id` returns `session_<hex seconds>_<hex random>`.
- `workstudy.fsutils` holds file helpers: `ensure_directory_exists`,
  `is_valid_database_path`, `get_directory_size` and `secure_delete_file`.
  `secure_delete_file` overwrites a file with random bytes, then removes it.
- `workstudy.records` holds the stored record types:
  - `RecordType` and `SecurityLevel`.
  - `DataRecord`, a generic record of typed, timestamped bytes with
    string metadata.
  - `StorageConfig` and `QueryParams`.
  - `WindowActivityRecord` and `ContentAnalysisRecord`. Each has `to_json`
    / `from_json` and `to_data_record` / `from_data_record`.
  String fields go into the JSON without escaping.
  `ContentAnalysisRecord.from_json` does not read keywords back.
- `workstudy.storage_engine` provides the storage engine:
  - `SQLiteStorageEngine` works on records. It stores, batch-stores (in
    one transaction), fetches, queries, deletes and does text search.
  - For whole files it has backup and restore.
  - For upkeep it has vacuum, reindex, an integrity check, retention
    cleanup and statistics.
  - Failures raise `StorageError`. `delete_records` always refuses bulk
    deletion.
  - The factory `create_engine` builds only `EngineType.SQLITE_ENCRYPTED`.
    Other types raise `StorageError`. `available_engines()` lists what
    it can build.
- `workstudy.directory_manager` lays out the working directories:
  - `DirectoryManager(base_path)` exposes the tree as properties such as
    `data_dir`, `config_dir`, `temp_dir`, `cache_dir` and
    `screenshots_dir`.
  - `initialize()` creates the tree and checks it is writable. It raises
    `OSError` on failure.
  - `cleanup_temp_files(max_age_hours)` and
    `cleanup_cache_files(max_size_mb)` return how many files they deleted.
  - Helpers: `join_path`, `unique_filename`, `is_valid_path`,
    `directory_stats`, `list_files`, `create_directory_if_not_exists` and
    `ensure_directory_writable`.
- `workstudy.config_manager` reads and writes `work_assistant.conf`:
  - `ConfigManager` sets defaults for the `app`, `ocr`, `ai`, `storage`,
    `web` and `monitor` sections.
  - It has typed getters and setters and `validate()`.
  - It can also be used as a context manager that saves on exit.
  - Failures raise `ConfigError`.
  - Line-level helpers: `parse_config_line`, `escape_value` and
    `unescape_value`.

## Example

```python
from datetime import datetime, timezone

from workstudy.records import SecurityLevel, StorageConfig, WindowActivityRecord
from workstudy.storage_engine import EngineType, create_engine

config = StorageConfig(
    storage_path="data",
    database_name="activity.db",
    security_level=SecurityLevel.NONE,
)
with create_engine(EngineType.SQLITE_ENCRYPTED) as engine:
    engine.initialize(config)
    engine.create_database()

    activity = WindowActivityRecord(
        timestamp=datetime.now(timezone.utc),
        window_title="notes.txt",
        application_name="editor",
    )
    record_id = engine.store_window_activity(activity)
    stored = engine.get_record(record_id)
    print(WindowActivityRecord.from_data_record(stored).window_title)
```

Configuration:

```python
from workstudy.config_manager import ConfigManager

config = ConfigManager()
config.initialize("config")
port = config.get_int("web", "port", 8080)
config.set_bool("app", "auto_start", True)
config.save()
```

## What it does not do

This package is storage only. It has no command-line program. It does not
monitor windows, capture the screen, recognise text or classify content.
It stores and reads back the values such components produce. It runs no
web or WebSocket server.

The XOR and run-length codecs only keep data out of plain sight. They are
not strong encryption or efficient compression. This holds whatever
`engine_info()` reports.