"""
Gemini API client: request construction, inference calls and response parsing.

The SDK client is created lazily on the first call so a missing credential
fails fast with ConfigurationError before anything is sent upstream.
`analyze_audio`, `analyze_image`, `transcribe_audio` and `check_scam_risk`
are the public entry points; none of them retry.
"""

import asyncio
import base64
import binascii
import logging
from typing import Any, TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from sentinell.config import settings
from sentinell.core.errors import ConfigurationError, ServiceError, ValidationError
from sentinell.integrations.gemini.prompts import (
    AUDIO_PROMPT,
    AUDIO_SYSTEM_INSTRUCTION,
    LIVE_SYSTEM_INSTRUCTION,
    TRANSCRIPTION_PROMPT,
    VISUAL_PROMPT,
    VISUAL_SYSTEM_INSTRUCTION,
    get_scam_risk_prompt,
)
from sentinell.schemas.analysis import (
    AnalysisMode,
    AnalysisRequest,
    AudioAnalysisResult,
    VisualAnalysisResult,
)
from sentinell.schemas.live import ScamRiskResult, TranscriptionResult

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_client: genai.Client | None = None
_client_key: str | None = None

# mode -> (system instruction, task prompt, response schema)
_MODE_CONTRACTS = {
    AnalysisMode.AUDIO: (AUDIO_SYSTEM_INSTRUCTION, AUDIO_PROMPT, AudioAnalysisResult),
    AnalysisMode.IMAGE: (VISUAL_SYSTEM_INSTRUCTION, VISUAL_PROMPT, VisualAnalysisResult),
}


def get_client() -> genai.Client:
    """Returns the shared SDK client, raising ConfigurationError when no key is set."""
    global _client, _client_key

    api_key = settings.gemini_api_key
    if not api_key:
        raise ConfigurationError("API Key is missing")

    if _client is None or _client_key != api_key:
        _client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=settings.gemini_http_timeout_ms),
        )
        _client_key = api_key
    return _client


def build_analysis_request(mode: AnalysisMode, payload: str, media_type: str) -> AnalysisRequest:
    system_instruction, prompt, schema = _MODE_CONTRACTS[mode]
    return AnalysisRequest(
        mode=mode,
        payload=payload,
        media_type=media_type,
        system_instruction=system_instruction,
        prompt=prompt,
        response_schema=schema,
    )


def _decode_payload(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Evidence payload is not valid base64.")


def _parse_response(response: Any, schema: type[T], label: str) -> T:
    text = getattr(response, "text", None)
    if not text:
        logger.error(f"[GEMINI] {label}: empty response")
        raise ServiceError("No response from AI")

    try:
        return schema.model_validate_json(text)
    except SchemaValidationError as e:
        logger.error(f"[GEMINI] {label}: response does not match schema: {e.error_count()} errors | {text[:200]!r}")
        raise ServiceError("Analysis failed to produce valid JSON.") from e


async def _generate(
    model: str,
    contents: Any,
    config: types.GenerateContentConfig,
    schema: type[T],
    label: str,
) -> T:
    client = get_client()

    try:
        response = await asyncio.to_thread(
            client.models.generate_content,
            model=model,
            contents=contents,
            config=config,
        )
    except Exception as e:
        logger.error(f"[GEMINI] {label} upstream error: {e}")
        raise ServiceError(f"Analysis request failed: {e}") from e

    if getattr(response, "usage_metadata", None):
        logger.info(
            f"[GEMINI] {label} usage: prompt={response.usage_metadata.prompt_token_count} "
            f"completion={response.usage_metadata.candidates_token_count}"
        )

    return _parse_response(response, schema, label)


async def run_analysis(request: AnalysisRequest) -> BaseModel:
    """Sends one forensic AnalysisRequest and returns its validated result."""
    media_part = types.Part.from_bytes(
        data=_decode_payload(request.payload),
        mime_type=request.media_type,
    )
    config = types.GenerateContentConfig(
        system_instruction=request.system_instruction,
        response_mime_type="application/json",
        response_schema=request.response_schema,
    )
    return await _generate(
        settings.analysis_model,
        [media_part, request.prompt],
        config,
        request.response_schema,
        f"analyze_{request.mode.value.lower()}",
    )


async def analyze_audio(payload: str, media_type: str) -> AudioAnalysisResult:
    return await run_analysis(build_analysis_request(AnalysisMode.AUDIO, payload, media_type))


async def analyze_image(payload: str, media_type: str) -> VisualAnalysisResult:
    return await run_analysis(build_analysis_request(AnalysisMode.IMAGE, payload, media_type))


async def transcribe_audio(payload: str, media_type: str) -> TranscriptionResult:
    media_part = types.Part.from_bytes(data=_decode_payload(payload), mime_type=media_type)
    config = types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=TranscriptionResult,
    )
    return await _generate(
        settings.fast_model,
        [media_part, TRANSCRIPTION_PROMPT],
        config,
        TranscriptionResult,
        "transcribe_audio",
    )


async def check_scam_risk(text: str) -> ScamRiskResult:
    config = types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=ScamRiskResult,
    )
    return await _generate(
        settings.fast_model,
        get_scam_risk_prompt(text),
        config,
        ScamRiskResult,
        "check_scam_risk",
    )


def get_live_config() -> types.LiveConnectConfig:
    return types.LiveConnectConfig(
        response_modalities=[types.Modality.AUDIO],
        speech_config=types.SpeechConfig(
            voice_config=types.VoiceConfig(
                prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=settings.live_voice_name)
            )
        ),
        system_instruction=LIVE_SYSTEM_INSTRUCTION,
        input_audio_transcription=types.AudioTranscriptionConfig(),
        output_audio_transcription=types.AudioTranscriptionConfig(),
    )


def connect_live_session():
    """
    Opens the bidirectional live session.

    Returns the SDK's async context manager; use as
    `async with connect_live_session() as session: ...`.
    """
    client = get_client()
    return client.aio.live.connect(model=settings.live_model, config=get_live_config())
