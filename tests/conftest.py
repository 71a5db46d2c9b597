"""
Shared pytest fixtures for all test modules.

IMPORTANT: GEMINI_API_KEY must be set before sentinell is imported, because
settings are read once at import time. Real API calls never happen in tests;
every Gemini entry point is mocked.
"""

import io
import os

os.environ.setdefault("GEMINI_API_KEY", "stub-key-for-tests")

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from tests.mocks.redis_mock import MockRedis

# App import happens AFTER the environment is prepared above.
from sentinell.main import app  # noqa: E402
from sentinell.schemas.analysis import AudioAnalysisResult, VisualAnalysisResult  # noqa: E402


# ---------------------------------------------------------------------------
# Core infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_state():
    """Sessions and in-memory rate-limit counters never leak between tests."""
    from sentinell.core import rate_limiter
    from sentinell.services.session_service import session_store

    session_store.clear()
    rate_limiter.reset()
    yield
    session_store.clear()
    rate_limiter.reset()


@pytest.fixture
def mock_redis(monkeypatch):
    """Replace redis_client.client with an in-memory MockRedis."""
    from sentinell.integrations import redis_client as rc

    mock_rc = MockRedis()
    monkeypatch.setattr(rc, "client", mock_rc)
    return mock_rc


@pytest.fixture
def client(mock_redis):
    """
    FastAPI TestClient with mocked Redis.

    redis initialize() is patched to a no-op so it can't overwrite the mock
    or attempt a real network connection during lifespan startup.
    """
    with patch("sentinell.integrations.redis_client.initialize"):
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c


# ---------------------------------------------------------------------------
# Shared test-data helpers
# ---------------------------------------------------------------------------


def make_tiny_jpeg(size=(10, 10), color=(128, 128, 128)) -> bytes:
    """Create a minimal JPEG in memory, fast and valid."""
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="JPEG")
    return buf.getvalue()


def make_audio_bytes() -> bytes:
    """Audio content is not decoded locally; any non-empty bytes will do."""
    return b"RIFF\x24\x00\x00\x00WAVEfmt " + b"\x00" * 32


AUDIO_RESULT = {
    "analysis_timestamp": "0:12",
    "audio_artifacts": [
        {
            "name": "Spectral Discontinuity",
            "description": "Abrupt cutoff above 16 kHz consistent with a neural vocoder.",
            "timestamp": "0:12",
            "severity": "HIGH",
        }
    ],
    "human_likelihood_score": "4%",
    "verdict": "SYNTHETIC AI",
    "explanation": "Vocoder artifacts dominate the recording.",
}

VISUAL_RESULT = {
    "verdict": "SYNTHETIC AI",
    "risk_score": 85,
    "confidence": "92%",
    "visual_artifacts": [
        {
            "name": "Asymmetrical Eyes",
            "description": "Specular highlights differ between the eyes.",
            "severity": "HIGH",
            "box_2d": [100, 200, 300, 400],
        },
        {
            "name": "Warped Text",
            "description": "Background lettering is not legible.",
            "severity": "MEDIUM",
        },
    ],
    "metadata_analysis": {
        "exif_integrity": "STRIPPED",
        "software_traces": "None detected",
        "lighting_consistency": "ARTIFICIAL/MISMATCHED",
    },
    "explanation": "Multiple generative artifacts around the face.",
}


def audio_result(**overrides) -> AudioAnalysisResult:
    return AudioAnalysisResult.model_validate({**AUDIO_RESULT, **overrides})


def visual_result(**overrides) -> VisualAnalysisResult:
    return VisualAnalysisResult.model_validate({**VISUAL_RESULT, **overrides})
