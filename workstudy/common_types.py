"""Core value types shared by the capture, OCR, analysis and storage layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum, IntEnum
from typing import Any

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class WindowEventType(Enum):
    """Kinds of window lifecycle events."""

    WINDOW_CREATED = 0
    WINDOW_DESTROYED = 1
    WINDOW_FOCUSED = 2
    WINDOW_MINIMIZED = 3
    WINDOW_RESTORED = 4


class ContentType(IntEnum):
    """What kind of content a window shows."""

    UNKNOWN = 0
    DOCUMENT = 1
    CODE = 2
    EMAIL = 3
    WEB_BROWSING = 4
    SOCIAL_MEDIA = 5
    CHAT = 6
    VIDEO = 7
    GAME = 8
    PRODUCTIVITY = 9
    ENTERTAINMENT = 10
    COMMUNICATION = 11
    DEVELOPMENT = 12
    DESIGN = 13
    EDUCATION = 14
    FINANCE = 15
    SETTINGS = 16


class WorkCategory(IntEnum):
    """What kind of work an activity belongs to."""

    UNKNOWN = 0
    FOCUSED_WORK = 1
    COMMUNICATION = 2
    RESEARCH = 3
    BREAK = 4
    MEETING = 5
    LEARNING = 6
    BREAK_TIME = 7
    PLANNING = 8
    ADMINISTRATIVE = 9
    CREATIVE = 10
    ANALYSIS = 11
    COLLABORATION = 12


class ActivityPriority(IntEnum):
    """How urgent an activity is."""

    VERY_LOW = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    VERY_HIGH = 5
    URGENT = 6


class ImageFormat(IntEnum):
    """Pixel layout of a captured frame."""

    UNKNOWN = 0
    RGB = 1
    RGBA = 2
    BGR = 3
    BGRA = 4
    GRAY = 5


@dataclass
class WindowInfo:
    """Description of a top-level window at a point in time."""

    window_handle: Any = None
    title: str = ""
    class_name: str = ""
    process_name: str = ""
    process_id: int = 0
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    is_visible: bool = False
    timestamp: datetime = EPOCH


@dataclass
class WindowEvent:
    """A window event together with the window it concerns."""

    type: WindowEventType
    timestamp: datetime = EPOCH
    window_info: WindowInfo = field(default_factory=WindowInfo)


@dataclass
class CaptureFrame:
    """Raw pixels of one screen capture."""

    data: bytes = b""
    width: int = 0
    height: int = 0
    bytes_per_pixel: int = 4
    stride: int = 0
    format: ImageFormat = ImageFormat.RGBA
    timestamp: datetime = EPOCH

    def data_size(self) -> int:
        """Number of bytes the frame's dimensions call for."""
        row = self.stride if self.stride > 0 else self.width * self.bytes_per_pixel
        return self.height * row

    def is_valid(self) -> bool:
        """True when the frame has positive dimensions and enough pixel data."""
        return (
            self.width > 0
            and self.height > 0
            and len(self.data) > 0
            and len(self.data) >= self.data_size()
        )


@dataclass
class TextBlock:
    """One recognised piece of text and where it was found."""

    text: str = ""
    confidence: float = 0.0
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0


OCRResult = TextBlock


@dataclass
class OCRDocument:
    """The full result of recognising text in one frame."""

    text_blocks: list[TextBlock] = field(default_factory=list)
    full_text: str = ""
    overall_confidence: float = 0.0
    processing_time: timedelta = timedelta(0)
    timestamp: datetime = EPOCH

    def ordered_text(self) -> str:
        """The full text, or the blocks' text joined by spaces when there is none."""
        if self.full_text:
            return self.full_text
        return " ".join(block.text for block in self.text_blocks)


@dataclass
class ContentAnalysis:
    """The classification of one window's content."""

    timestamp: datetime = EPOCH
    title: str = ""
    application: str = ""
    extracted_text: str = ""
    keywords: list[str] = field(default_factory=list)
    content_type: ContentType = ContentType.UNKNOWN
    work_category: WorkCategory = WorkCategory.UNKNOWN
    priority: ActivityPriority = ActivityPriority.MEDIUM
    is_productive: bool = False
    is_focused_work: bool = False
    requires_attention: bool = False
    classification_confidence: float = 0.0
    priority_confidence: float = 0.0
    category_confidence: float = 0.0
    distraction_level: int = 0
    processing_time: timedelta = timedelta(0)