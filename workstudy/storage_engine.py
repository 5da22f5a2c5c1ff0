"""SQLite-backed storage engine for activity records."""

from __future__ import annotations

import json
import logging
import math
import shutil
import sqlite3
import time
from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Iterable

from workstudy.codec import (
    calculate_checksum,
    compress_data,
    decrypt_data,
    encrypt_data,
)
from workstudy.common_types import CaptureFrame
from workstudy.fsutils import ensure_directory_exists
from workstudy.records import (
    ContentAnalysisRecord,
    DataRecord,
    QueryParams,
    RecordType,
    SecurityLevel,
    StorageConfig,
    WindowActivityRecord,
)

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS data_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type INTEGER NOT NULL,
    timestamp INTEGER NOT NULL,
    session_id TEXT,
    metadata TEXT,
    data BLOB,
    checksum TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_records_type_timestamp ON data_records(type, timestamp);
CREATE INDEX IF NOT EXISTS idx_records_session ON data_records(session_id);
CREATE INDEX IF NOT EXISTS idx_records_timestamp ON data_records(timestamp);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""

_COLUMNS = "id, type, timestamp, session_id, metadata, data, checksum"


class StorageError(Exception):
    """Raised when the storage engine cannot carry out an operation."""


class EngineType(Enum):
    """Kinds of storage engine."""

    SQLITE_ENCRYPTED = 0
    FILE_BASED = 1
    MEMORY_ONLY = 2


@dataclass
class StorageStatistics:
    """Counters and timings collected by a storage engine."""

    total_records: int = 0
    database_size_bytes: int = 0
    total_writes: int = 0
    total_reads: int = 0
    avg_write_time_ms: float = 0.0
    avg_read_time_ms: float = 0.0


def _epoch_seconds(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return math.floor(moment.timestamp())


def _parse_metadata(text: str | None) -> dict[str, str]:
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except ValueError:
        return {"raw": text}
    if not isinstance(parsed, dict):
        return {"raw": text}
    return {str(key): str(value) for key, value in parsed.items()}


class SQLiteStorageEngine:
    """Stores data records in an SQLite database, optionally obfuscating their data."""

    def __init__(self) -> None:
        self.config = StorageConfig()
        self.initialized = False
        self._db: sqlite3.Connection | None = None
        self._stats = StorageStatistics()

    def __enter__(self) -> SQLiteStorageEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    # Lifecycle

    def initialize(self, config: StorageConfig) -> None:
        """Validate the configuration and prepare the storage directory."""
        if self.initialized:
            return
        if not config.is_valid():
            raise StorageError("invalid storage configuration")
        if not ensure_directory_exists(config.storage_path):
            raise StorageError(
                f"failed to create storage directory: {config.storage_path}"
            )
        self.config = config
        self.initialized = True
        logger.info("SQLite storage engine initialized")

    def shutdown(self) -> None:
        """Close the database and return to the uninitialized state."""
        if not self.initialized:
            return
        self.close_database()
        self.initialized = False
        logger.info("SQLite storage engine shut down")

    @property
    def _db_path(self) -> Path:
        return Path(self.config.storage_path) / self.config.database_name

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise StorageError("storage engine is not initialized")

    def _require_open(self) -> sqlite3.Connection:
        if self._db is None:
            raise StorageError("database is not open")
        return self._db

    def _connect(self) -> sqlite3.Connection:
        try:
            db = sqlite3.connect(str(self._db_path), isolation_level=None)
        except sqlite3.Error as exc:
            raise StorageError(f"failed to open database: {exc}") from exc
        return db

    @staticmethod
    def _configure(db: sqlite3.Connection) -> None:
        db.execute("PRAGMA foreign_keys = ON")
        db.execute("PRAGMA journal_mode = WAL")
        db.execute("PRAGMA synchronous = NORMAL")

    def create_database(self) -> None:
        """Open the database file, creating it and its schema if needed."""
        self._require_initialized()
        self.close_database()
        db = self._connect()
        try:
            db.executescript(_SCHEMA)
            self._configure(db)
        except sqlite3.Error as exc:
            db.close()
            raise StorageError(f"failed to create database tables: {exc}") from exc
        self._db = db
        logger.info("Database created: %s", self._db_path)

    def open_database(self, password: str | None = None) -> None:
        """Open an existing database, checking the password when one is required."""
        self._require_initialized()
        if self._db is not None:
            return
        db = self._connect()
        if self.config.require_password and password:
            if password != self.config.master_password:
                db.close()
                raise StorageError("invalid password")
        try:
            self._configure(db)
        except sqlite3.Error as exc:
            db.close()
            raise StorageError(f"failed to open database: {exc}") from exc
        self._db = db
        logger.info("Database opened")

    def close_database(self) -> None:
        """Close the database if it is open."""
        if self._db is not None:
            self._db.close()
            self._db = None

    def backup_database(self, backup_path: str | Path) -> None:
        """Copy the database file to the given path, overwriting it."""
        db = self._require_open()
        try:
            db.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            shutil.copyfile(self._db_path, backup_path)
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"backup failed: {exc}") from exc
        logger.info("Database backed up to: %s", backup_path)

    def restore_database(self, backup_path: str | Path) -> None:
        """Replace the database file with a backup and reopen it."""
        self._require_initialized()
        if not Path(backup_path).exists():
            raise StorageError(f"backup file not found: {backup_path}")
        self.close_database()
        try:
            shutil.copyfile(backup_path, self._db_path)
        except OSError as exc:
            raise StorageError(f"restore failed: {exc}") from exc
        logger.info("Database restored from: %s", backup_path)
        self.open_database()

    # Data protection

    @property
    def _encrypted(self) -> bool:
        return self.config.security_level >= SecurityLevel.BASIC

    def _protect(self, data: bytes) -> bytes:
        if self._encrypted:
            return encrypt_data(data, self.config.master_password)
        return data

    def _reveal(self, data: bytes) -> bytes:
        if self._encrypted:
            return decrypt_data(data, self.config.master_password)
        return data

    # Records

    def store_record(self, record: DataRecord) -> int:
        """Insert a record and return the id the database gave it."""
        db = self._require_open()
        if not record.data or record.type == RecordType.UNKNOWN:
            raise StorageError("record has no data or no type")
        start = time.perf_counter()
        try:
            cursor = db.execute(
                "INSERT INTO data_records "
                "(type, timestamp, session_id, metadata, data, checksum) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    int(record.type),
                    _epoch_seconds(record.timestamp),
                    record.session_id,
                    json.dumps(record.metadata),
                    self._protect(record.data),
                    record.checksum,
                ),
            )
        except sqlite3.Error as exc:
            raise StorageError(f"failed to insert record: {exc}") from exc
        self._note_write((time.perf_counter() - start) * 1000.0)
        return int(cursor.lastrowid)

    def store_records(self, records: Iterable[DataRecord]) -> list[int]:
        """Insert several records in one transaction; all or none are stored."""
        db = self._require_open()
        batch = list(records)
        if not batch:
            raise StorageError("no records to store")
        db.execute("BEGIN")
        try:
            ids = [self.store_record(record) for record in batch]
        except BaseException:
            db.execute("ROLLBACK")
            raise
        db.execute("COMMIT")
        return ids

    def _row_to_record(self, row: tuple) -> DataRecord:
        record_id, type_code, seconds, session_id, metadata, blob, checksum = row
        try:
            record_type = RecordType(type_code)
        except ValueError:
            record_type = RecordType.UNKNOWN
        data = bytes(blob) if blob else b""
        return DataRecord(
            id=int(record_id),
            type=record_type,
            timestamp=datetime.fromtimestamp(seconds, timezone.utc),
            session_id=session_id or "",
            metadata=_parse_metadata(metadata),
            data=self._reveal(data) if data else b"",
            checksum=checksum or "",
        )

    def get_record(self, record_id: int) -> DataRecord | None:
        """Fetch one record by id, or None when there is no such record."""
        db = self._require_open()
        start = time.perf_counter()
        try:
            row = db.execute(
                f"SELECT {_COLUMNS} FROM data_records WHERE id = ?", (record_id,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"failed to read record: {exc}") from exc
        self._note_read((time.perf_counter() - start) * 1000.0)
        return self._row_to_record(row) if row else None

    def query_records(self, params: QueryParams | None = None) -> list[DataRecord]:
        """Records in the time range and of the given types, ordered and paged."""
        db = self._require_open()
        params = params or QueryParams()
        sql = f"SELECT {_COLUMNS} FROM data_records WHERE timestamp >= ? AND timestamp <= ?"
        args: list[object] = [
            _epoch_seconds(params.start_time),
            _epoch_seconds(params.end_time),
        ]
        if params.record_types:
            marks = ",".join("?" for _ in params.record_types)
            sql += f" AND type IN ({marks})"
            args.extend(int(kind) for kind in params.record_types)
        direction = "DESC" if params.order_descending else "ASC"
        sql += f" ORDER BY timestamp {direction}, id {direction} LIMIT ?"
        args.append(params.limit)
        if params.offset > 0:
            sql += " OFFSET ?"
            args.append(params.offset)
        try:
            rows = db.execute(sql, args).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"failed to query records: {exc}") from exc
        return [self._row_to_record(row) for row in rows]

    def delete_record(self, record_id: int) -> bool:
        """Delete a record by id; True when a record was removed."""
        db = self._require_open()
        try:
            cursor = db.execute("DELETE FROM data_records WHERE id = ?", (record_id,))
        except sqlite3.Error as exc:
            raise StorageError(f"failed to delete record: {exc}") from exc
        return cursor.rowcount > 0

    def delete_records(self, params: QueryParams) -> None:
        """Bulk deletion by query is refused as too dangerous."""
        raise StorageError("bulk deletion by query is not permitted")

    def store_window_activity(self, activity: WindowActivityRecord) -> int:
        """Store a window activity and return its record id."""
        return self.store_record(activity.to_data_record())

    def store_content_analysis(self, analysis: ContentAnalysisRecord) -> int:
        """Store a content analysis and return its record id."""
        return self.store_record(analysis.to_data_record())

    def store_screen_capture(self, frame: CaptureFrame, window_title: str) -> int:
        """Store a captured frame, run-length coded when compression is enabled."""
        record = DataRecord(type=RecordType.SCREEN_CAPTURE, timestamp=frame.timestamp)
        record.metadata.update(
            window_title=window_title,
            width=str(frame.width),
            height=str(frame.height),
            bytes_per_pixel=str(frame.bytes_per_pixel),
        )
        if self.config.enable_compression:
            record.data = compress_data(frame.data)
            record.metadata["compressed"] = "true"
        else:
            record.data = bytes(frame.data)
        record.checksum = calculate_checksum(record.data)
        return self.store_record(record)

    def search_text(self, query: str, params: QueryParams | None = None) -> list[str]:
        """Text payloads of matching records that contain the query, ignoring case."""
        needle = query.lower()
        results = []
        for record in self.query_records(params):
            if record.type == RecordType.SCREEN_CAPTURE:
                continue
            text = record.data.decode("utf-8", errors="replace")
            if needle in text.lower():
                results.append(text)
        return results

    def productivity_data(
        self, start: datetime, end: datetime
    ) -> list[ContentAnalysisRecord]:
        """Content analyses stored between start and end."""
        params = QueryParams(
            start_time=start, end_time=end, record_types=[RecordType.AI_ANALYSIS]
        )
        return [
            ContentAnalysisRecord.from_data_record(record)
            for record in self.query_records(params)
            if record.type == RecordType.AI_ANALYSIS
        ]

    def application_usage(self, start: datetime, end: datetime) -> dict[str, int]:
        """Number of window events per application between start and end."""
        params = QueryParams(
            start_time=start, end_time=end, record_types=[RecordType.WINDOW_EVENT]
        )
        usage = Counter(
            record.metadata["application_name"]
            for record in self.query_records(params)
            if "application_name" in record.metadata
        )
        return dict(usage)

    # Maintenance

    def _execute(self, sql: str) -> sqlite3.Cursor:
        db = self._require_open()
        try:
            return db.execute(sql)
        except sqlite3.Error as exc:
            raise StorageError(f"SQL error: {exc}") from exc

    def compact_database(self) -> None:
        """Rebuild the database file to reclaim free space."""
        self._execute("VACUUM")

    def cleanup_old_data(self) -> int:
        """Delete records older than the retention period; returns how many."""
        db = self._require_open()
        cutoff = datetime.now(timezone.utc) - self.config.data_retention_hours
        try:
            cursor = db.execute(
                "DELETE FROM data_records WHERE timestamp < ?", (_epoch_seconds(cutoff),)
            )
        except sqlite3.Error as exc:
            raise StorageError(f"SQL error: {exc}") from exc
        return cursor.rowcount

    def reindex_database(self) -> None:
        """Rebuild all indexes."""
        self._execute("REINDEX")

    def verify_data_integrity(self) -> bool:
        """True when SQLite's integrity check reports no problems."""
        row = self._execute("PRAGMA integrity_check").fetchone()
        return bool(row) and row[0] == "ok"

    # Statistics

    def _note_write(self, elapsed_ms: float) -> None:
        stats = self._stats
        stats.total_writes += 1
        total = stats.avg_write_time_ms * (stats.total_writes - 1) + elapsed_ms
        stats.avg_write_time_ms = total / stats.total_writes

    def _note_read(self, elapsed_ms: float) -> None:
        stats = self._stats
        stats.total_reads += 1
        total = stats.avg_read_time_ms * (stats.total_reads - 1) + elapsed_ms
        stats.avg_read_time_ms = total / stats.total_reads

    def statistics(self) -> StorageStatistics:
        """A snapshot of the engine's counters, refreshed from the database."""
        if self._db is not None:
            try:
                row = self._db.execute("SELECT COUNT(*) FROM data_records").fetchone()
                self._stats.total_records = int(row[0])
            except sqlite3.Error as exc:
                logger.error("Failed to count records: %s", exc)
            try:
                self._stats.database_size_bytes = self._db_path.stat().st_size
            except OSError:
                self._stats.database_size_bytes = 0
        return replace(self._stats)

    def engine_info(self) -> str:
        """A short description of the engine."""
        return "SQLite Storage Engine v3.0 with AES-256 encryption"


def create_engine(
    engine_type: EngineType = EngineType.SQLITE_ENCRYPTED,
) -> SQLiteStorageEngine:
    """Create a storage engine of the given type."""
    if engine_type is EngineType.SQLITE_ENCRYPTED:
        return SQLiteStorageEngine()
    raise StorageError(f"storage engine type {engine_type.name} is not available")


def available_engines() -> list[EngineType]:
    """Engine types that create_engine can build."""
    return [EngineType.SQLITE_ENCRYPTED]