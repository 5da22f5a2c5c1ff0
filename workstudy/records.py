"""Stored record types and their conversion to and from generic data records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum

from workstudy.codec import calculate_checksum, format_timestamp, parse_timestamp
from workstudy.common_types import (
    EPOCH,
    ActivityPriority,
    ContentType,
    WorkCategory,
)

_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_VALUE_END = re.compile(r"[,\n}]")


class RecordType(IntEnum):
    """Kind of payload a data record carries."""

    UNKNOWN = 0
    WINDOW_EVENT = 1
    SCREEN_CAPTURE = 2
    OCR_RESULT = 3
    AI_ANALYSIS = 4


class SecurityLevel(IntEnum):
    """How strongly stored data is protected."""

    NONE = 0
    BASIC = 1
    STANDARD = 2
    HIGH = 3


@dataclass
class DataRecord:
    """A generic stored record: typed, timestamped bytes with string metadata."""

    id: int = 0
    type: RecordType = RecordType.UNKNOWN
    timestamp: datetime = EPOCH
    session_id: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    data: bytes = b""
    checksum: str = ""

    def set_string_data(self, text: str) -> None:
        """Store the text as the record's data."""
        self.data = text.encode("utf-8")

    def set_json_data(self, json_text: str) -> None:
        """Store JSON text as the record's data and mark its content type."""
        self.set_string_data(json_text)
        self.metadata["content_type"] = "application/json"

    def is_valid(self) -> bool:
        """True when the record has an id, data and a known type."""
        return self.id > 0 and len(self.data) > 0 and self.type != RecordType.UNKNOWN


@dataclass
class StorageConfig:
    """Where and how the storage engine keeps its data."""

    storage_path: str = "data"
    database_name: str = "work_assistant.db"
    security_level: SecurityLevel = SecurityLevel.NONE
    master_password: str = ""
    require_password: bool = False
    enable_compression: bool = True
    data_retention_hours: timedelta = timedelta(hours=24 * 30)

    def is_valid(self) -> bool:
        """True when paths are set and encryption, if used, has a password."""
        if not self.storage_path or not self.database_name:
            return False
        if self.security_level >= SecurityLevel.BASIC and not self.master_password:
            return False
        return True


@dataclass
class QueryParams:
    """Filters, ordering and paging for a record query."""

    start_time: datetime = EPOCH
    end_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    record_types: list[RecordType] = field(default_factory=list)
    limit: int = 1000
    offset: int = 0
    order_descending: bool = True


def _find_value(text: str, key: str) -> str:
    search = f'"{key}": '
    pos = text.find(search)
    if pos == -1:
        return ""
    pos += len(search)
    if pos < len(text) and text[pos] == '"':
        end = text.find('"', pos + 1)
        return text[pos + 1:end] if end != -1 else ""
    match = _VALUE_END.search(text, pos)
    return text[pos:match.start()] if match else ""


def _to_int(text: str, key: str) -> int:
    match = _INT_PREFIX.match(text)
    if not match:
        raise ValueError(f"invalid integer for {key!r}: {text!r}")
    return int(match.group())


def _to_float(text: str, key: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    if match:
        return float(match.group())
    try:
        return float(text.strip())
    except ValueError:
        raise ValueError(f"invalid number for {key!r}: {text!r}") from None


def _millis(duration: timedelta) -> int:
    return duration // timedelta(milliseconds=1)


@dataclass
class WindowActivityRecord:
    """A window event as it is stored."""

    id: int = 0
    timestamp: datetime = EPOCH
    window_title: str = ""
    application_name: str = ""
    process_id: int = 0
    event_type: str = ""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    duration: timedelta = timedelta(0)

    def to_json(self) -> str:
        """Serialise to the record's JSON text; string fields are written unescaped."""
        return (
            "{\n"
            f'  "id": {self.id},\n'
            f'  "timestamp": "{format_timestamp(self.timestamp)}",\n'
            f'  "window_title": "{self.window_title}",\n'
            f'  "application_name": "{self.application_name}",\n'
            f'  "process_id": {self.process_id},\n'
            f'  "event_type": "{self.event_type}",\n'
            f'  "x": {self.x},\n'
            f'  "y": {self.y},\n'
            f'  "width": {self.width},\n'
            f'  "height": {self.height},\n'
            f'  "duration_ms": {_millis(self.duration)}\n'
            "}"
        )

    @classmethod
    def from_json(cls, text: str) -> WindowActivityRecord:
        """Parse text written by to_json; raises ValueError on a missing or bad number."""
        return cls(
            id=_to_int(_find_value(text, "id"), "id"),
            window_title=_find_value(text, "window_title"),
            application_name=_find_value(text, "application_name"),
            process_id=_to_int(_find_value(text, "process_id"), "process_id"),
            event_type=_find_value(text, "event_type"),
            x=_to_int(_find_value(text, "x"), "x"),
            y=_to_int(_find_value(text, "y"), "y"),
            width=_to_int(_find_value(text, "width"), "width"),
            height=_to_int(_find_value(text, "height"), "height"),
            duration=timedelta(
                milliseconds=_to_int(_find_value(text, "duration_ms"), "duration_ms")
            ),
            timestamp=parse_timestamp(_find_value(text, "timestamp")),
        )

    def to_data_record(self) -> DataRecord:
        """Wrap the activity in a WINDOW_EVENT data record with searchable metadata."""
        record = DataRecord(type=RecordType.WINDOW_EVENT, timestamp=self.timestamp)
        record.metadata.update(
            window_title=self.window_title,
            application_name=self.application_name,
            process_id=str(self.process_id),
            event_type=self.event_type,
            x=str(self.x),
            y=str(self.y),
            width=str(self.width),
            height=str(self.height),
        )
        record.set_json_data(self.to_json())
        record.checksum = calculate_checksum(record.data)
        return record

    @classmethod
    def from_data_record(cls, record: DataRecord) -> WindowActivityRecord:
        """Rebuild the activity; a record of another type yields an empty activity."""
        if record.type != RecordType.WINDOW_EVENT:
            return cls()
        return cls.from_json(record.data.decode("utf-8", errors="replace"))


@dataclass
class ContentAnalysisRecord:
    """An AI content analysis as it is stored."""

    id: int = 0
    timestamp: datetime = EPOCH
    session_id: str = ""
    window_title: str = ""
    application_name: str = ""
    extracted_text: str = ""
    ocr_confidence: float = 0.0
    content_type: ContentType = ContentType.UNKNOWN
    work_category: WorkCategory = WorkCategory.UNKNOWN
    priority: ActivityPriority = ActivityPriority.MEDIUM
    is_productive: bool = False
    is_focused_work: bool = False
    ai_confidence: float = 0.0
    distraction_level: int = 0
    processing_time: timedelta = timedelta(0)
    keywords: list[str] = field(default_factory=list)

    def to_json(self) -> str:
        """Serialise to the record's JSON text; string fields are written unescaped."""
        keywords = ", ".join(f'"{word}"' for word in self.keywords)
        return (
            "{\n"
            f'  "id": {self.id},\n'
            f'  "timestamp": "{format_timestamp(self.timestamp)}",\n'
            f'  "session_id": "{self.session_id}",\n'
            f'  "window_title": "{self.window_title}",\n'
            f'  "application_name": "{self.application_name}",\n'
            f'  "extracted_text": "{self.extracted_text}",\n'
            f'  "ocr_confidence": {self.ocr_confidence:g},\n'
            f'  "content_type": {int(self.content_type)},\n'
            f'  "work_category": {int(self.work_category)},\n'
            f'  "priority": {int(self.priority)},\n'
            f'  "is_productive": {"true" if self.is_productive else "false"},\n'
            f'  "is_focused_work": {"true" if self.is_focused_work else "false"},\n'
            f'  "ai_confidence": {self.ai_confidence:g},\n'
            f'  "distraction_level": {self.distraction_level},\n'
            f'  "processing_time_ms": {_millis(self.processing_time)},\n'
            f'  "keywords": [{keywords}]\n'
            "}"
        )

    @classmethod
    def from_json(cls, text: str) -> ContentAnalysisRecord:
        """Parse text written by to_json; keywords are not read back.

        Raises ValueError on a missing or bad number.
        """
        return cls(
            id=_to_int(_find_value(text, "id"), "id"),
            session_id=_find_value(text, "session_id"),
            window_title=_find_value(text, "window_title"),
            application_name=_find_value(text, "application_name"),
            extracted_text=_find_value(text, "extracted_text"),
            ocr_confidence=_to_float(_find_value(text, "ocr_confidence"), "ocr_confidence"),
            content_type=ContentType(
                _to_int(_find_value(text, "content_type"), "content_type")
            ),
            work_category=WorkCategory(
                _to_int(_find_value(text, "work_category"), "work_category")
            ),
            priority=ActivityPriority(_to_int(_find_value(text, "priority"), "priority")),
            is_productive=_find_value(text, "is_productive") == "true",
            is_focused_work=_find_value(text, "is_focused_work") == "true",
            ai_confidence=_to_float(_find_value(text, "ai_confidence"), "ai_confidence"),
            distraction_level=_to_int(
                _find_value(text, "distraction_level"), "distraction_level"
            ),
            processing_time=timedelta(
                milliseconds=_to_int(
                    _find_value(text, "processing_time_ms"), "processing_time_ms"
                )
            ),
            timestamp=parse_timestamp(_find_value(text, "timestamp")),
        )

    def to_data_record(self) -> DataRecord:
        """Wrap the analysis in an AI_ANALYSIS data record with searchable metadata."""
        record = DataRecord(
            type=RecordType.AI_ANALYSIS,
            timestamp=self.timestamp,
            session_id=self.session_id,
        )
        record.metadata.update(
            window_title=self.window_title,
            application_name=self.application_name,
            content_type=str(int(self.content_type)),
            work_category=str(int(self.work_category)),
            is_productive="true" if self.is_productive else "false",
        )
        record.set_json_data(self.to_json())
        record.checksum = calculate_checksum(record.data)
        return record

    @classmethod
    def from_data_record(cls, record: DataRecord) -> ContentAnalysisRecord:
        """Rebuild the analysis; a record of another type yields an empty analysis."""
        if record.type != RecordType.AI_ANALYSIS:
            return cls()
        return cls.from_json(record.data.decode("utf-8", errors="replace"))