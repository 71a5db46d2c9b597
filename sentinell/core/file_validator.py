"""
Evidence validation and log sanitization utilities.

Sets PIL.Image.MAX_IMAGE_PIXELS to prevent decompression-bomb attacks.
"""

import io
import re
import logging

from PIL import Image

from sentinell.config import settings
from sentinell.core.errors import ValidationError
from sentinell.schemas.analysis import AnalysisMode

Image.MAX_IMAGE_PIXELS = settings.pil_max_image_pixels

logger = logging.getLogger(__name__)

# mode -> (accepted media-type prefix, user-facing rejection message)
_ACCEPTED_MEDIA = {
    AnalysisMode.AUDIO: ("audio/", "Invalid file type. Please upload an audio file (.mp3, .wav)."),
    AnalysisMode.IMAGE: ("image/", "Invalid file type. Please upload an image file (PNG, JPG)."),
}


def accepts_media_type(mode: AnalysisMode, media_type: str) -> bool:
    prefix, _ = _ACCEPTED_MEDIA[mode]
    return (media_type or "").lower().startswith(prefix)


def validate_media_type(mode: AnalysisMode, media_type: str) -> None:
    """Reject evidence whose declared media type does not belong to the mode."""
    if not accepts_media_type(mode, media_type):
        _, message = _ACCEPTED_MEDIA[mode]
        logger.info(f"[INTAKE] Rejected media type {media_type!r} for {mode.value} mode")
        raise ValidationError(message, status_code=415)


def max_upload_bytes(mode: AnalysisMode) -> int:
    if mode is AnalysisMode.AUDIO:
        return settings.max_audio_upload_bytes
    return settings.max_image_upload_bytes


def validate_size(mode: AnalysisMode, filesize: int) -> None:
    limit = max_upload_bytes(mode)
    if filesize > limit:
        raise ValidationError(
            f"File too large. Max {limit // 1024 // 1024}MB allowed.",
            status_code=413,
        )
    if filesize == 0:
        raise ValidationError("Failed to read file.")


def verify_image_content(data: bytes, filename: str) -> None:
    """Check that image bytes actually decode, using PIL's structural verify."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except Exception as e:
        logger.error(sanitize_log_message(f"Corrupted or mislabeled image ({filename}): {e}"))
        raise ValidationError("Invalid file content or format mismatch.")


def validate_evidence(mode: AnalysisMode, filename: str, media_type: str, data: bytes) -> bool:
    """Media type, size and (for images) content integrity, in that order."""
    validate_media_type(mode, media_type)
    validate_size(mode, len(data))
    if mode is AnalysisMode.IMAGE:
        verify_image_content(data, filename)
    return True


def sanitize_log_message(message: str) -> str:
    """Strip sensitive file paths from log messages."""
    msg = re.sub(r'\/[^\s]+\/tmp[a-zA-Z0-9_]+', '[TEMP_FILE]', message)
    msg = re.sub(r'\/[^\s]+\/([^\/\s]+)', r'.../\1', msg)
    return msg
