from datetime import timedelta

import pytest

from workstudy.common_types import (
    EPOCH,
    ActivityPriority,
    CaptureFrame,
    ContentAnalysis,
    ContentType,
    ImageFormat,
    OCRDocument,
    TextBlock,
    WindowEvent,
    WindowEventType,
    WindowInfo,
    WorkCategory,
)


def test_ordered_text_uses_full_text():
    doc = OCRDocument(full_text="Test text")
    assert doc.ordered_text() == "Test text"


def test_ordered_text_joins_blocks_when_full_text_empty():
    doc = OCRDocument(text_blocks=[TextBlock(text="Hello"), TextBlock(text="world")])
    assert doc.ordered_text() == "Hello world"


def test_ordered_text_prefers_full_text_over_blocks():
    doc = OCRDocument(full_text="Test text", text_blocks=[TextBlock(text="other")])
    assert doc.ordered_text() == "Test text"


def test_ordered_text_empty_document():
    assert OCRDocument().ordered_text() == ""


def test_capture_frame_data_size_without_stride():
    frame = CaptureFrame(width=800, height=600, bytes_per_pixel=4)
    assert frame.data_size() == 800 * 600 * 4


def test_capture_frame_data_size_with_stride():
    frame = CaptureFrame(width=10, height=3, bytes_per_pixel=3, stride=32)
    assert frame.data_size() == 96


def test_capture_frame_valid_when_data_fills_frame():
    frame = CaptureFrame(data=bytes([128]) * (800 * 600 * 4), width=800, height=600)
    assert frame.is_valid() is True


@pytest.mark.parametrize(
    "frame",
    [
        CaptureFrame(),
        CaptureFrame(data=b"\x00" * 16, width=0, height=4),
        CaptureFrame(data=b"\x00" * 15, width=2, height=2),
        CaptureFrame(data=b"", width=2, height=2),
    ],
)
def test_capture_frame_invalid(frame):
    assert frame.is_valid() is False


def test_capture_frame_defaults():
    frame = CaptureFrame()
    assert frame.bytes_per_pixel == 4
    assert frame.format is ImageFormat.RGBA
    assert frame.timestamp == EPOCH


def test_content_analysis_defaults():
    analysis = ContentAnalysis()
    assert analysis.content_type is ContentType.UNKNOWN
    assert analysis.work_category is WorkCategory.UNKNOWN
    assert analysis.priority is ActivityPriority.MEDIUM
    assert analysis.keywords == []
    assert analysis.processing_time == timedelta(0)


def test_content_analysis_keywords_not_shared():
    first = ContentAnalysis()
    second = ContentAnalysis()
    first.keywords.append("code")
    assert second.keywords == []


def test_enum_values_match_storage_codes():
    assert int(ContentType.CODE) == 2
    assert int(WorkCategory.FOCUSED_WORK) == 1
    assert int(ActivityPriority.URGENT) == 6
    assert ContentType(16) is ContentType.SETTINGS


def test_window_event_carries_info():
    info = WindowInfo(title="Editor", process_id=42)
    event = WindowEvent(type=WindowEventType.WINDOW_FOCUSED, window_info=info)
    assert event.window_info.title == "Editor"
    assert event.type.value == 2