"""
Central application configuration.

Every tunable value lives here as a typed, documented field.
Any field can be overridden at runtime via an environment variable of the
same name (case-insensitive), e.g.:

    GEMINI_API_KEY=... uvicorn sentinell.main:app
    export SCAM_CHECK_DEBOUNCE_SEC=2.5          # slower live alerts

A `.env` file at the project root is loaded automatically.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,   # GEMINI_API_KEY == gemini_api_key
        extra="ignore",         # silently drop unknown env vars
    )

    # ------------------------------------------------------------------ #
    # Gemini credential & models                                          #
    # ------------------------------------------------------------------ #
    gemini_api_key: str = Field(
        "", description="Credential for the Gemini API (required at first model call)"
    )
    analysis_model: str = Field(
        "gemini-3-pro-preview", description="Model for audio and image forensics"
    )
    fast_model: str = Field(
        "gemini-3-flash-preview", description="Model for transcription and scam-risk checks"
    )
    live_model: str = Field(
        "gemini-2.5-flash-native-audio-preview-12-2025",
        description="Native-audio model for the live monitor session",
    )
    live_voice_name: str = Field(
        "Zephyr", description="Prebuilt voice used for spoken live-monitor replies"
    )
    gemini_http_timeout_ms: Optional[int] = Field(
        None, description="HTTP client timeout (ms); None keeps the transport default"
    )

    # ------------------------------------------------------------------ #
    # File Size Limits                                                    #
    # ------------------------------------------------------------------ #
    max_audio_upload_mb: int = Field(
        20, description="Max MB for audio evidence"
    )
    max_image_upload_mb: int = Field(
        10, description="Max MB for image evidence"
    )
    max_download_mb: int = Field(
        50, description="Max MB for URL / data-URI evidence downloads"
    )
    pil_max_image_pixels: int = Field(
        20_000_000, description="PIL decompression-bomb guard (pixels)"
    )

    # ------------------------------------------------------------------ #
    # Live Monitor                                                        #
    # ------------------------------------------------------------------ #
    live_input_sample_rate: int = Field(
        16_000, description="Sample rate (Hz) of microphone frames sent upstream"
    )
    live_output_sample_rate: int = Field(
        24_000, description="Sample rate (Hz) of model audio returned downstream"
    )
    live_frame_queue_size: int = Field(
        32, description="Capacity of the capture → uplink frame channel"
    )
    scam_check_debounce_sec: float = Field(
        1.5, description="Quiet period before transcript text is risk-checked"
    )
    scam_check_min_chars: int = Field(
        10, description="Transcripts this short or shorter are never risk-checked"
    )

    # ------------------------------------------------------------------ #
    # Sessions                                                            #
    # ------------------------------------------------------------------ #
    session_store_max: int = Field(
        1000, description="Max in-memory analysis sessions before the oldest is evicted"
    )

    # ------------------------------------------------------------------ #
    # Rate Limiting                                                       #
    # ------------------------------------------------------------------ #
    rate_limit_request_window_sec: int = Field(
        60, description="Sliding window for per-client request rate (seconds)"
    )
    rate_limit_max_requests: int = Field(
        10, description="Max model-bound requests allowed within the window"
    )
    rate_limit_memory_limit: int = Field(
        1000, description="Max keys before in-memory rate-limit map is pruned"
    )

    # ------------------------------------------------------------------ #
    # Report Branding                                                     #
    # ------------------------------------------------------------------ #
    report_brand: str = Field(
        "SENTINELL", description="Brand printed in the report header"
    )
    app_version: str = Field(
        "v2.6.0", description="Version printed in the report footer"
    )

    # ------------------------------------------------------------------ #
    # Derived byte-level properties (computed from MB fields)             #
    # ------------------------------------------------------------------ #
    @property
    def max_audio_upload_bytes(self) -> int:
        return self.max_audio_upload_mb * 1024 * 1024

    @property
    def max_image_upload_bytes(self) -> int:
        return self.max_image_upload_mb * 1024 * 1024

    @property
    def max_download_bytes(self) -> int:
        return self.max_download_mb * 1024 * 1024


# Single shared instance, import this everywhere.
settings = Settings()
