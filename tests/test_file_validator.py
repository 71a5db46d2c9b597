"""
Pure unit tests for sentinell/core/file_validator.py.

Image content validation decodes a real in-memory JPEG.
"""

import pytest

from sentinell.config import settings
from sentinell.core.errors import ValidationError
from sentinell.core.file_validator import (
    accepts_media_type,
    sanitize_log_message,
    validate_evidence,
    validate_media_type,
    validate_size,
)
from sentinell.schemas.analysis import AnalysisMode
from tests.conftest import make_audio_bytes, make_tiny_jpeg


# ---------------------------------------------------------------------------
# Media type vs. mode
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("media_type", ["audio/mpeg", "audio/wav", "audio/x-wav", "audio/ogg", "AUDIO/WEBM"])
def test_audio_mode_accepts_audio_types(media_type):
    assert accepts_media_type(AnalysisMode.AUDIO, media_type)


@pytest.mark.parametrize("media_type", ["image/png", "image/jpeg", "image/webp"])
def test_image_mode_accepts_image_types(media_type):
    assert accepts_media_type(AnalysisMode.IMAGE, media_type)


@pytest.mark.parametrize(
    "mode, media_type",
    [
        (AnalysisMode.AUDIO, "image/png"),
        (AnalysisMode.AUDIO, "video/mp4"),
        (AnalysisMode.AUDIO, ""),
        (AnalysisMode.IMAGE, "audio/mpeg"),
        (AnalysisMode.IMAGE, "application/pdf"),
        (AnalysisMode.IMAGE, "text/plain"),
    ],
)
def test_mismatched_media_type_raises_415(mode, media_type):
    with pytest.raises(ValidationError) as exc:
        validate_media_type(mode, media_type)
    assert exc.value.status_code == 415


def test_rejection_messages_name_the_expected_kind():
    with pytest.raises(ValidationError) as audio_exc:
        validate_media_type(AnalysisMode.AUDIO, "image/png")
    with pytest.raises(ValidationError) as image_exc:
        validate_media_type(AnalysisMode.IMAGE, "audio/wav")

    assert "audio file" in audio_exc.value.message
    assert "image file" in image_exc.value.message


# ---------------------------------------------------------------------------
# Size
# ---------------------------------------------------------------------------


def test_audio_too_large_raises_413():
    with pytest.raises(ValidationError) as exc:
        validate_size(AnalysisMode.AUDIO, settings.max_audio_upload_bytes + 1)
    assert exc.value.status_code == 413


def test_image_too_large_raises_413():
    with pytest.raises(ValidationError) as exc:
        validate_size(AnalysisMode.IMAGE, settings.max_image_upload_bytes + 1)
    assert exc.value.status_code == 413


def test_empty_file_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_size(AnalysisMode.AUDIO, 0)
    assert exc.value.status_code == 400


# ---------------------------------------------------------------------------
# Full evidence validation
# ---------------------------------------------------------------------------


def test_valid_image_passes():
    assert validate_evidence(AnalysisMode.IMAGE, "photo.jpg", "image/jpeg", make_tiny_jpeg()) is True


def test_valid_audio_passes_without_decoding():
    assert validate_evidence(AnalysisMode.AUDIO, "call.wav", "audio/wav", make_audio_bytes()) is True


def test_corrupted_image_raises_400():
    with pytest.raises(ValidationError) as exc:
        validate_evidence(AnalysisMode.IMAGE, "fake.jpg", "image/jpeg", b"not an image at all")
    assert exc.value.status_code == 400
    assert exc.value.message == "Invalid file content or format mismatch."


# ---------------------------------------------------------------------------
# sanitize_log_message
# ---------------------------------------------------------------------------


def test_sanitize_log_message_strips_temp_path():
    msg = "Processing /tmp/tmpABCDEF/uploaded_file.jpg successfully"
    sanitized = sanitize_log_message(msg)
    assert "/tmp/tmpABCDEF" not in sanitized


def test_sanitize_log_message_keeps_non_path_content():
    msg = "No issues found"
    assert sanitize_log_message(msg) == msg
