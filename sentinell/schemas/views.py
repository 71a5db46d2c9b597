"""
Display view-models produced by the result renderer.

These carry everything the front-end needs to draw either forensic layout
(colors, bands, gauge geometry, pixel-space overlays) without re-deriving it.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel


class RiskBand(str, Enum):
    AUTHENTIC = "authentic"
    SUSPICIOUS = "suspicious"
    SYNTHETIC = "synthetic"


class Banner(BaseModel):
    verdict: str
    tone: str       # "emerald" | "yellow" | "red"
    color: str      # hex
    subtitle: str


class Tile(BaseModel):
    label: str
    value: str


class LogEntry(BaseModel):
    name: str
    description: str
    severity: str
    badge_color: str
    timestamp: Optional[str] = None
    seconds: Optional[int] = None


class Gauge(BaseModel):
    score: int
    radius: float
    stroke_width: float
    arc_length: float
    dash_offset: float
    color: str


class PixelBox(BaseModel):
    top: float
    left: float
    width: float
    height: float


class Overlay(BaseModel):
    name: str
    severity: str
    pixels: PixelBox
    percent: PixelBox


class ForensicLayer(BaseModel):
    ela_filter: str
    heatmap_filter: str
    high_contrast_filter: str
    invert_filter: str
    ela_label: str = "ERROR LEVEL ANALYSIS (ELA)"
    heatmap_label: str = "GRAD-CAM HEATMAP"


class MetadataRow(BaseModel):
    label: str
    value: str


class AudioView(BaseModel):
    kind: Literal["audio"] = "audio"
    banner: Banner
    tiles: List[Tile]
    evidence_log: List[LogEntry]
    explanation: str


class CockpitView(BaseModel):
    kind: Literal["image"] = "image"
    banner: Banner
    band: RiskBand
    gauge: Gauge
    forensic_layer: ForensicLayer
    overlays: List[Overlay]
    generic_overlay: bool
    metadata: List[MetadataRow]
    artifacts: List[LogEntry]
    explanation: str
