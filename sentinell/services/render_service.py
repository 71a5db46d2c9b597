"""
Result renderer: maps a tagged AnalysisOutcome to one of two display layouts.

  - Audio layout  → AudioView (verdict banner, tiles, chronological evidence log)
  - Image layout  → CockpitView (risk-banded banner, gauge, overlays, metadata)

Risk banding (0–20 authentic / 21–70 suspicious / 71–100 synthetic) is a
presentation decision shared with the report exporter. The "forensic layer"
is a cosmetic filter, not a real error-level analysis.
"""

import io
import math
import re
from typing import Optional, Sequence, Union

from PIL import Image, ImageEnhance, ImageOps

from sentinell.core.errors import ValidationError
from sentinell.schemas.analysis import (
    AnalysisMode,
    AudioAnalysisResult,
    AudioOutcome,
    ImageOutcome,
    VisualAnalysisResult,
)
from sentinell.schemas.views import (
    AudioView,
    Banner,
    CockpitView,
    ForensicLayer,
    Gauge,
    LogEntry,
    MetadataRow,
    Overlay,
    PixelBox,
    RiskBand,
    Tile,
)

AUTHENTIC_MAX = 20
SUSPICIOUS_MAX = 70
BOX_SCALE = 1000

EMERALD = "#10b981"
YELLOW = "#eab308"
RED = "#ef4444"

BAND_COLORS = {
    RiskBand.AUTHENTIC: EMERALD,
    RiskBand.SUSPICIOUS: YELLOW,
    RiskBand.SYNTHETIC: RED,
}
BAND_TONES = {
    RiskBand.AUTHENTIC: "emerald",
    RiskBand.SUSPICIOUS: "yellow",
    RiskBand.SYNTHETIC: "red",
}
SEVERITY_COLORS = {"LOW": EMERALD, "MEDIUM": YELLOW, "HIGH": RED}

GAUGE_RADIUS = 80
GAUGE_STROKE = 20

ELA_FILTER = "contrast(150%) brightness(90%) grayscale(100%) invert(100%)"
HEATMAP_FILTER = "contrast(200%) hue-rotate(180deg) saturate(300%)"
HIGH_CONTRAST_FILTER = "contrast(200%) brightness(120%) grayscale(100%)"
INVERT_FILTER = "invert(100%)"

FORENSIC_STYLES = ("ela", "heatmap", "high-contrast", "invert")

_TIMESTAMP_RE = re.compile(r"^\s*(?:(\d+):)?(\d{1,2}):(\d{2})\s*$")


def clamp_score(score: Union[int, float]) -> int:
    return int(min(max(round(score), 0), 100))


def classify_risk(score: Union[int, float]) -> RiskBand:
    score = clamp_score(score)
    if score <= AUTHENTIC_MAX:
        return RiskBand.AUTHENTIC
    if score <= SUSPICIOUS_MAX:
        return RiskBand.SUSPICIOUS
    return RiskBand.SYNTHETIC


def is_real_verdict(verdict: str) -> bool:
    return verdict == "REAL HUMAN"


def parse_timestamp(value: str) -> Optional[int]:
    """'M:SS' or 'H:MM:SS' → seconds; anything else (e.g. 'N/A') → None."""
    match = _TIMESTAMP_RE.match(value or "")
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours or 0) * 3600 + int(minutes) * 60 + int(seconds)


def scale_box(box_2d: Sequence[float], width: float, height: float) -> PixelBox:
    """[ymin, xmin, ymax, xmax] on the 0–1000 scale → pixel box of a width×height render."""
    ymin, xmin, ymax, xmax = box_2d
    return PixelBox(
        top=ymin / BOX_SCALE * height,
        left=xmin / BOX_SCALE * width,
        width=(xmax - xmin) / BOX_SCALE * width,
        height=(ymax - ymin) / BOX_SCALE * height,
    )


def gauge_geometry(score: Union[int, float], color: str) -> Gauge:
    score = clamp_score(score)
    arc_length = math.pi * GAUGE_RADIUS
    return Gauge(
        score=score,
        radius=GAUGE_RADIUS,
        stroke_width=GAUGE_STROKE,
        arc_length=arc_length,
        dash_offset=arc_length - (score / 100) * arc_length,
        color=color,
    )


# --------------------------------------------------------------------------- #
# Audio layout                                                                 #
# --------------------------------------------------------------------------- #


def render_audio_view(result: AudioAnalysisResult) -> AudioView:
    real = is_real_verdict(result.verdict)
    entries = [
        LogEntry(
            name=artifact.name,
            description=artifact.description,
            severity=artifact.severity,
            badge_color=SEVERITY_COLORS[artifact.severity],
            timestamp=artifact.timestamp,
            seconds=parse_timestamp(artifact.timestamp),
        )
        for artifact in result.audio_artifacts
    ]
    # chronological; unparseable timestamps keep their order at the end
    entries.sort(key=lambda e: (e.seconds is None, e.seconds or 0))

    return AudioView(
        banner=Banner(
            verdict=result.verdict,
            tone="emerald" if real else "red",
            color=EMERALD if real else RED,
            subtitle=f"{AnalysisMode.AUDIO.value} ANALYSIS COMPLETE",
        ),
        tiles=[
            Tile(label="Human Likelihood", value=result.human_likelihood_score),
            Tile(label="Artifact Timestamp", value=result.analysis_timestamp),
        ],
        evidence_log=entries,
        explanation=result.explanation,
    )


# --------------------------------------------------------------------------- #
# Image / cockpit layout                                                       #
# --------------------------------------------------------------------------- #


def render_cockpit_view(result: VisualAnalysisResult, width: float, height: float) -> CockpitView:
    band = classify_risk(result.risk_score)
    color = BAND_COLORS[band]

    overlays = []
    for artifact in result.visual_artifacts:
        if not artifact.box_2d or len(artifact.box_2d) != 4:
            continue
        overlays.append(Overlay(
            name=artifact.name,
            severity=artifact.severity,
            pixels=scale_box(artifact.box_2d, width, height),
            percent=scale_box(artifact.box_2d, 100, 100),
        ))

    meta = result.metadata_analysis
    return CockpitView(
        banner=Banner(
            verdict=result.verdict,
            tone=BAND_TONES[band],
            color=color,
            subtitle=f"AI PROBABILITY: {clamp_score(result.risk_score)}%",
        ),
        band=band,
        gauge=gauge_geometry(result.risk_score, color),
        forensic_layer=ForensicLayer(
            ela_filter=ELA_FILTER,
            heatmap_filter=HEATMAP_FILTER,
            high_contrast_filter=HIGH_CONTRAST_FILTER,
            invert_filter=INVERT_FILTER,
        ),
        overlays=overlays,
        generic_overlay=band is RiskBand.SYNTHETIC and not overlays,
        metadata=[
            MetadataRow(label="EXIF Structure", value=meta.exif_integrity),
            MetadataRow(label="Software Signatures", value=meta.software_traces),
            MetadataRow(label="Lighting Physics", value=meta.lighting_consistency),
        ],
        artifacts=[
            LogEntry(
                name=artifact.name,
                description=artifact.description,
                severity=artifact.severity,
                badge_color=SEVERITY_COLORS[artifact.severity],
            )
            for artifact in result.visual_artifacts
        ],
        explanation=result.explanation,
    )


def render_view(
    outcome: Union[AudioOutcome, ImageOutcome],
    width: float = BOX_SCALE,
    height: float = BOX_SCALE,
) -> Union[AudioView, CockpitView]:
    """Selects the layout from the outcome's mode tag. Never mutates the result."""
    if outcome.mode is AnalysisMode.AUDIO:
        return render_audio_view(outcome.result)
    return render_cockpit_view(outcome.result, width, height)


# --------------------------------------------------------------------------- #
# Forensic layer raster                                                        #
# --------------------------------------------------------------------------- #


def _rotate_hue(img: Image.Image, degrees: float) -> Image.Image:
    shift = int(round(degrees / 360 * 256))
    h, s, v = img.convert("HSV").split()
    h = h.point(lambda x: (x + shift) % 256)
    return Image.merge("HSV", (h, s, v)).convert("RGB")


def render_forensic_layer(image_bytes: bytes, style: str = "ela") -> bytes:
    """Applies one of the FORENSIC_STYLES display filters and returns a PNG."""
    if style not in FORENSIC_STYLES:
        raise ValidationError(f"Unknown forensic layer style: {style}")

    try:
        with Image.open(io.BytesIO(image_bytes)) as src:
            img = src.convert("RGB")
    except Exception:
        raise ValidationError("Invalid file content or format mismatch.")

    if style == "ela":
        img = ImageEnhance.Contrast(img).enhance(1.5)
        img = ImageEnhance.Brightness(img).enhance(0.9)
        img = ImageOps.grayscale(img).convert("RGB")
        img = ImageOps.invert(img)
    elif style == "heatmap":
        img = ImageEnhance.Contrast(img).enhance(2.0)
        img = _rotate_hue(img, 180)
        img = ImageEnhance.Color(img).enhance(3.0)
    elif style == "high-contrast":
        img = ImageEnhance.Contrast(img).enhance(2.0)
        img = ImageEnhance.Brightness(img).enhance(1.2)
        img = ImageOps.grayscale(img).convert("RGB")
    else:
        img = ImageOps.invert(img)

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
