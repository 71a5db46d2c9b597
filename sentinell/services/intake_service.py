"""
Evidence intake: uploaded files, URLs and base64 data URIs become EvidenceFile
payloads after validation against the active analysis mode. Also hosts the
memory-usage logger used around analyses.
"""

import base64
import binascii
import logging
import mimetypes
import os
from urllib.parse import urlparse

import aiohttp
import psutil
from fastapi import UploadFile

from sentinell.config import settings
from sentinell.core.errors import ValidationError
from sentinell.core.file_validator import validate_evidence, validate_media_type
from sentinell.integrations import http_client as http_module
from sentinell.schemas.analysis import AnalysisMode, EvidenceFile

logger = logging.getLogger(__name__)

_GENERIC_TYPES = ("", "application/octet-stream", "binary/octet-stream")


def log_memory(stage: str) -> None:
    """Log current process and system memory usage. Only runs when DEBUG logging is active."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    process = psutil.Process(os.getpid())
    mem_info = process.memory_info()
    sys_mem = psutil.virtual_memory()
    logger.debug(
        f"[MEMORY] {stage} | "
        f"PID: {os.getpid()} | "
        f"Process RSS: {mem_info.rss / 1024 / 1024:.2f} MB | "
        f"System Available: {sys_mem.available / 1024 / 1024:.2f} MB / {sys_mem.total / 1024 / 1024:.2f} MB"
    )


def build_evidence(data: bytes, filename: str, media_type: str, mode: AnalysisMode) -> EvidenceFile:
    """Validate raw bytes for the mode and encode them into a transport-ready payload."""
    validate_evidence(mode, filename, media_type, data)
    return EvidenceFile(
        file_name=filename,
        media_type=media_type,
        size=len(data),
        payload=base64.b64encode(data).decode("ascii"),
    )


async def read_upload(upload: UploadFile, mode: AnalysisMode) -> EvidenceFile:
    """Reads a multipart upload. The media type is checked before the body is read."""
    filename = upload.filename or "uploaded_file"
    media_type = (upload.content_type or "").lower()
    validate_media_type(mode, media_type)

    try:
        data = await upload.read()
    except Exception as e:
        logger.error(f"[INTAKE] Failed to read upload {filename}: {e}")
        raise ValidationError("Failed to read file.") from e

    logger.info(f"[INTAKE] Received {filename} ({media_type}, {len(data)} bytes) for {mode.value}")
    return build_evidence(data, filename, media_type, mode)


def _guess_media_type(name: str) -> str:
    guessed, _ = mimetypes.guess_type(name)
    return guessed or ""


def _filename_for(stem: str, media_type: str) -> str:
    ext = mimetypes.guess_extension(media_type) or ""
    return f"{stem}{ext}"


def _decode_data_uri(url: str, mode: AnalysisMode, max_size: int) -> EvidenceFile:
    try:
        header, data_str = url.split(",", 1)
    except ValueError:
        raise ValidationError("Invalid data URI")
    if ";base64" not in header:
        raise ValidationError("Only base64 data URIs are supported")

    media_type = header[len("data:"):].split(";")[0].lower()
    validate_media_type(mode, media_type)

    try:
        content = base64.b64decode(data_str, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Failed to read file.")
    if len(content) > max_size:
        raise ValidationError(f"File too large (max {max_size // (1024 * 1024)}MB)", status_code=413)

    return build_evidence(content, _filename_for("pasted_evidence", media_type), media_type, mode)


async def download_evidence(
    url: str,
    mode: AnalysisMode,
    max_size: int = settings.max_download_bytes,
) -> EvidenceFile:
    """Fetches evidence from an http(s) URL or decodes a base64 data URI."""
    if url.startswith("data:"):
        return _decode_data_uri(url, mode, max_size)

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValidationError("Only http(s) URLs and base64 data URIs are supported")

    async with http_module.request_session() as session:
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise ValidationError(f"Failed to fetch evidence from URL: Status {response.status}")

                media_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
                if media_type in _GENERIC_TYPES:
                    media_type = _guess_media_type(parsed.path)
                validate_media_type(mode, media_type)

                content = await response.read()
                if len(content) > max_size:
                    raise ValidationError(
                        f"File too large (max {max_size // (1024 * 1024)}MB)",
                        status_code=413,
                    )
        except aiohttp.ClientError as e:
            raise ValidationError(f"Error fetching evidence: {e}")

    filename = os.path.basename(parsed.path) or _filename_for("downloaded_media", media_type)
    logger.info(f"[INTAKE] Downloaded {filename} ({media_type}, {len(content)} bytes) for {mode.value}")
    return build_evidence(content, filename, media_type, mode)
