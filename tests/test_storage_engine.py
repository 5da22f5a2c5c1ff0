import sqlite3
from datetime import datetime, timezone

import pytest

from workstudy.codec import decompress_data, encrypt_data
from workstudy.common_types import CaptureFrame, ContentType, WorkCategory
from workstudy.records import (
    ContentAnalysisRecord,
    DataRecord,
    QueryParams,
    RecordType,
    SecurityLevel,
    StorageConfig,
    WindowActivityRecord,
)
from workstudy.storage_engine import (
    EngineType,
    SQLiteStorageEngine,
    StorageError,
    available_engines,
    create_engine,
)

WHEN = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _record(text, kind=RecordType.WINDOW_EVENT, when=WHEN, session="s1"):
    record = DataRecord(type=kind, timestamp=when, session_id=session)
    record.set_string_data(text)
    record.metadata["note"] = text
    record.checksum = "abc"
    return record


@pytest.fixture
def engine(tmp_path):
    eng = SQLiteStorageEngine()
    eng.initialize(StorageConfig(storage_path=str(tmp_path / "store")))
    eng.create_database()
    yield eng
    eng.shutdown()


def test_initialize_creates_storage_directory(tmp_path):
    target = tmp_path / "a" / "b"
    eng = SQLiteStorageEngine()
    eng.initialize(StorageConfig(storage_path=str(target)))
    assert target.is_dir()
    assert eng.initialized is True


def test_initialize_rejects_encryption_without_password(tmp_path):
    eng = SQLiteStorageEngine()
    config = StorageConfig(storage_path=str(tmp_path), security_level=SecurityLevel.BASIC)
    with pytest.raises(StorageError):
        eng.initialize(config)


def test_create_database_requires_initialize():
    with pytest.raises(StorageError):
        SQLiteStorageEngine().create_database()


def test_store_requires_open_database(tmp_path):
    eng = SQLiteStorageEngine()
    eng.initialize(StorageConfig(storage_path=str(tmp_path)))
    with pytest.raises(StorageError):
        eng.store_record(_record("hello"))


def test_store_and_get_round_trip(engine):
    record_id = engine.store_record(_record("hello world"))
    loaded = engine.get_record(record_id)
    assert loaded.id == record_id
    assert loaded.data == b"hello world"
    assert loaded.type == RecordType.WINDOW_EVENT
    assert loaded.session_id == "s1"
    assert loaded.metadata == {"note": "hello world"}
    assert loaded.checksum == "abc"
    assert loaded.timestamp == WHEN


def test_get_missing_record_returns_none(engine):
    assert engine.get_record(12345) is None


def test_store_rejects_empty_record(engine):
    with pytest.raises(StorageError):
        engine.store_record(DataRecord(type=RecordType.WINDOW_EVENT))


def test_encrypted_storage_hides_plaintext(tmp_path):
    password = "password"
    config = StorageConfig(
        storage_path=str(tmp_path),
        security_level=SecurityLevel.BASIC,
        master_password=password,
    )
    with SQLiteStorageEngine() as eng:
        eng.initialize(config)
        eng.create_database()
        record_id = eng.store_record(_record("private text"))
        raw = sqlite3.connect(str(tmp_path / config.database_name)).execute(
            "SELECT data FROM data_records"
        ).fetchone()[0]
        assert bytes(raw) == encrypt_data(b"private text", password)
        assert eng.get_record(record_id).data == b"private text"


def test_store_records_returns_ids_in_order(engine):
    ids = engine.store_records([_record("a"), _record("b"), _record("c")])
    assert len(ids) == 3
    assert ids == sorted(ids)
    assert [engine.get_record(i).data for i in ids] == [b"a", b"b", b"c"]


def test_store_records_rejects_empty_batch(engine):
    with pytest.raises(StorageError):
        engine.store_records([])


def test_store_records_is_all_or_nothing(engine):
    with pytest.raises(StorageError):
        engine.store_records([_record("a"), DataRecord(type=RecordType.WINDOW_EVENT)])
    assert engine.query_records() == []


def test_query_filters_by_type_and_orders(engine):
    early = datetime(2024, 1, 1, tzinfo=timezone.utc)
    engine.store_record(_record("early", when=early))
    engine.store_record(_record("late", when=WHEN))
    engine.store_record(_record("other", kind=RecordType.OCR_RESULT, when=WHEN))

    params = QueryParams(record_types=[RecordType.WINDOW_EVENT])
    assert [r.data for r in engine.query_records(params)] == [b"late", b"early"]

    params.order_descending = False
    assert [r.data for r in engine.query_records(params)] == [b"early", b"late"]


def test_query_limit_offset_and_time_range(engine):
    for text in ("one", "two", "three"):
        engine.store_record(_record(text))
    params = QueryParams(limit=1, offset=1, order_descending=False)
    assert [r.data for r in engine.query_records(params)] == [b"two"]

    after = QueryParams(start_time=datetime(2025, 1, 1, tzinfo=timezone.utc))
    assert engine.query_records(after) == []


def test_delete_record(engine):
    record_id = engine.store_record(_record("gone"))
    assert engine.delete_record(record_id) is True
    assert engine.get_record(record_id) is None
    assert engine.delete_record(record_id) is False


def test_delete_records_is_refused(engine):
    engine.store_record(_record("kept"))
    with pytest.raises(StorageError):
        engine.delete_records(QueryParams())
    assert len(engine.query_records()) == 1


def test_application_usage_counts_window_events(engine):
    for app in ("editor", "editor", "browser"):
        engine.store_window_activity(
            WindowActivityRecord(timestamp=WHEN, application_name=app, window_title="w")
        )
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end = datetime(2024, 2, 1, tzinfo=timezone.utc)
    assert engine.application_usage(start, end) == {"editor": 2, "browser": 1}


def test_productivity_data_round_trip(engine):
    analysis = ContentAnalysisRecord(
        timestamp=WHEN,
        session_id="sess",
        window_title="main.py",
        application_name="editor",
        content_type=ContentType.CODE,
        work_category=WorkCategory.FOCUSED_WORK,
        is_productive=True,
        distraction_level=2,
    )
    engine.store_content_analysis(analysis)
    engine.store_window_activity(WindowActivityRecord(timestamp=WHEN))
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end = datetime(2024, 2, 1, tzinfo=timezone.utc)
    results = engine.productivity_data(start, end)
    assert len(results) == 1
    found = results[0]
    assert found.window_title == "main.py"
    assert found.application_name == "editor"
    assert found.content_type == ContentType.CODE
    assert found.work_category == WorkCategory.FOCUSED_WORK
    assert found.is_productive is True
    assert found.distraction_level == 2
    assert found.timestamp == WHEN


def test_store_screen_capture_compresses(engine):
    pixels = bytes([7] * 10 + [9] * 5)
    frame = CaptureFrame(data=pixels, width=5, height=3, bytes_per_pixel=1, timestamp=WHEN)
    record_id = engine.store_screen_capture(frame, "Terminal")
    stored = engine.get_record(record_id)
    assert stored.type == RecordType.SCREEN_CAPTURE
    assert stored.metadata["compressed"] == "true"
    assert stored.metadata["window_title"] == "Terminal"
    assert stored.metadata["width"] == "5"
    assert decompress_data(stored.data) == pixels


def test_search_text_finds_matching_payloads(engine):
    engine.store_record(_record("Writing Python code"))
    engine.store_record(_record("Reading mail"))
    assert engine.search_text("python") == ["Writing Python code"]


def test_cleanup_old_data_removes_expired(engine):
    engine.store_record(_record("old", when=datetime(2000, 1, 1, tzinfo=timezone.utc)))
    engine.store_record(_record("new", when=datetime.now(timezone.utc)))
    assert engine.cleanup_old_data() == 1
    assert [r.data for r in engine.query_records()] == [b"new"]


def test_backup_and_restore(engine, tmp_path):
    record_id = engine.store_record(_record("saved"))
    backup = tmp_path / "backup.db"
    engine.backup_database(backup)
    engine.delete_record(record_id)
    engine.restore_database(backup)
    assert engine.get_record(record_id).data == b"saved"


def test_restore_missing_backup_raises(engine, tmp_path):
    with pytest.raises(StorageError):
        engine.restore_database(tmp_path / "missing.db")


def test_open_database_checks_password(tmp_path):
    password = "password"
    config = StorageConfig(
        storage_path=str(tmp_path),
        security_level=SecurityLevel.BASIC,
        master_password=password,
        require_password=True,
    )
    eng = SQLiteStorageEngine()
    eng.initialize(config)
    eng.create_database()
    record_id = eng.store_record(_record("locked"))
    eng.close_database()

    wrong_password = "secret"
    with pytest.raises(StorageError):
        eng.open_database(wrong_password)
    eng.open_database(password)
    assert eng.get_record(record_id).data == b"locked"
    eng.shutdown()


def test_statistics_track_reads_and_writes(engine):
    first = engine.store_record(_record("a"))
    engine.store_record(_record("b"))
    engine.get_record(first)
    stats = engine.statistics()
    assert stats.total_records == 2
    assert stats.total_writes == 2
    assert stats.total_reads == 1
    assert stats.database_size_bytes > 0


def test_maintenance_keeps_data(engine):
    record_id = engine.store_record(_record("stay"))
    engine.compact_database()
    engine.reindex_database()
    assert engine.verify_data_integrity() is True
    assert engine.get_record(record_id).data == b"stay"


def test_shutdown_closes_database(engine):
    engine.shutdown()
    assert engine.initialized is False
    with pytest.raises(StorageError):
        engine.query_records()


def test_factory():
    assert available_engines() == [EngineType.SQLITE_ENCRYPTED]
    assert "SQLite" in create_engine().engine_info()
    with pytest.raises(StorageError):
        create_engine(EngineType.MEMORY_ONLY)
    with pytest.raises(StorageError):
        create_engine(EngineType.FILE_BASED)