"""
Forensic report export.

Lays out an A4 report in millimetres on Pillow pages and saves them as one
multi-page PDF. Nothing leaves the process: the bytes are handed back to the
route for download.

Layout, top to bottom:
  header band → verdict headline → evidence exhibit + donut chart →
  file-info box → executive summary → metadata table (images) →
  artifact list (page-breaks as needed) → footer on every page
"""

import io
import logging
import re
import secrets
import string
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import List, Optional, Union

from PIL import Image, ImageDraw, ImageFont

from sentinell.config import settings
from sentinell.core.errors import ExportDegradation
from sentinell.schemas.analysis import (
    AnalysisMode,
    AudioAnalysisResult,
    AudioOutcome,
    EvidenceFile,
    ImageOutcome,
    VisualAnalysisResult,
)
from sentinell.schemas.views import RiskBand
from sentinell.services.render_service import (
    BAND_COLORS,
    EMERALD,
    RED,
    clamp_score,
    classify_risk,
    is_real_verdict,
)

logger = logging.getLogger(__name__)

PAGE_WIDTH_MM = 210
PAGE_HEIGHT_MM = 297
PX_PER_MM = 5
MARGIN_MM = 20
PT_TO_MM = 0.3528

CHART_SIZE_PX = 400

SLATE_900 = (15, 23, 42)
SLATE_800 = (30, 41, 59)
SLATE_700 = (51, 65, 85)
SLATE_600 = (71, 85, 105)
SLATE_500 = (100, 116, 139)
SLATE_400 = (148, 163, 184)
SLATE_300 = (203, 213, 225)
SLATE_200 = (226, 232, 240)
SLATE_50 = (248, 250, 252)
CYAN = (34, 211, 238)
SEVERITY_RED = (220, 38, 38)

_HEADLINES = {
    RiskBand.SYNTHETIC: "SYNTHETIC / AI GENERATED",
    RiskBand.SUSPICIOUS: "SUSPICIOUS / EDITED",
    RiskBand.AUTHENTIC: "REAL / AUTHENTIC",
}


@dataclass(frozen=True)
class ChartSpec:
    score: int
    center_label: str
    caption: str
    color: str


@dataclass(frozen=True)
class ExportedReport:
    filename: str
    content: bytes
    page_count: int
    media_type: str = "application/pdf"


# --------------------------------------------------------------------------- #
# Chart                                                                        #
# --------------------------------------------------------------------------- #


def chart_spec(score: Union[int, float], caption: str = "RISK SCORE", color: Optional[str] = None) -> ChartSpec:
    score = clamp_score(score)
    return ChartSpec(
        score=score,
        center_label=f"{score}%",
        caption=caption,
        color=color or BAND_COLORS[classify_risk(score)],
    )


@lru_cache(maxsize=32)
def _font(size_px: int) -> ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=size_px)


def render_chart(spec: ChartSpec) -> Image.Image:
    """Donut chart: the score slice runs clockwise from 12 o'clock."""
    img = Image.new("RGB", (CHART_SIZE_PX, CHART_SIZE_PX), "white")
    draw = ImageDraw.Draw(img)
    cx = cy = CHART_SIZE_PX / 2
    r = 150

    outer = (cx - r, cy - r, cx + r, cy + r)
    draw.ellipse(outer, fill="#f1f5f9")
    if spec.score > 0:
        draw.pieslice(outer, start=-90, end=-90 + spec.score / 100 * 360, fill=spec.color)

    hole = r * 0.6
    draw.ellipse((cx - hole, cy - hole, cx + hole, cy + hole), fill="#ffffff")

    draw.text((cx, cy), spec.center_label, font=_font(60), fill="#0f172a", anchor="mm")
    draw.text((cx, cy + 45), spec.caption, font=_font(24), fill="#64748b", anchor="mm")
    return img


# --------------------------------------------------------------------------- #
# Page canvas                                                                  #
# --------------------------------------------------------------------------- #


def _px(mm: float) -> int:
    return int(round(mm * PX_PER_MM))


def _font_pt(size_pt: float) -> ImageFont.FreeTypeFont:
    return _font(max(1, _px(size_pt * PT_TO_MM)))


class ReportCanvas:
    """A stack of A4 pages with a vertical cursor `y` in millimetres."""

    def __init__(self):
        self.pages: List[Image.Image] = []
        self.draw: Optional[ImageDraw.ImageDraw] = None
        self.y = MARGIN_MM
        self.add_page()

    def add_page(self) -> None:
        page = Image.new("RGB", (_px(PAGE_WIDTH_MM), _px(PAGE_HEIGHT_MM)), "white")
        self.pages.append(page)
        self.draw = ImageDraw.Draw(page)
        self.y = MARGIN_MM

    def ensure_space(self, bottom_reserve_mm: float) -> None:
        if self.y > PAGE_HEIGHT_MM - bottom_reserve_mm:
            self.add_page()

    def text(self, x: float, y: float, value: str, size_pt: float, color, align: str = "left") -> None:
        anchor = {"left": "ls", "right": "rs", "center": "ms"}[align]
        self.draw.text((_px(x), _px(y)), value, font=_font_pt(size_pt), fill=color, anchor=anchor)

    def rect(self, x: float, y: float, w: float, h: float, fill=None, outline=None) -> None:
        self.draw.rectangle((_px(x), _px(y), _px(x + w), _px(y + h)), fill=fill, outline=outline, width=2)

    def line(self, x1: float, y1: float, x2: float, y2: float, color) -> None:
        self.draw.line((_px(x1), _px(y1), _px(x2), _px(y2)), fill=color, width=1)

    def paste(self, image: Image.Image, x: float, y: float, w: float, h: float) -> None:
        fitted = image.copy()
        fitted.thumbnail((_px(w), _px(h)))
        self.pages[-1].paste(fitted, (_px(x), _px(y)))

    def wrap(self, value: str, size_pt: float, max_width_mm: float) -> List[str]:
        """Greedy word wrap measured with the actual font."""
        font = _font_pt(size_pt)
        limit = _px(max_width_mm)
        lines: List[str] = []
        for paragraph in (value or "").splitlines() or [""]:
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}".strip()
                if current and font.getlength(candidate) > limit:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            lines.append(current)
        return lines

    def to_pdf(self, footer: str) -> bytes:
        for page in self.pages:
            draw = ImageDraw.Draw(page)
            draw.text(
                (_px(PAGE_WIDTH_MM / 2), _px(PAGE_HEIGHT_MM - 10)),
                footer,
                font=_font_pt(8),
                fill=SLATE_400,
                anchor="ms",
            )
        buf = io.BytesIO()
        self.pages[0].save(
            buf,
            format="PDF",
            save_all=True,
            append_images=self.pages[1:],
            resolution=PX_PER_MM * 25.4,
        )
        return buf.getvalue()


# --------------------------------------------------------------------------- #
# Report sections                                                              #
# --------------------------------------------------------------------------- #


def _generate_case_id(length: int = 9) -> str:
    alphabet = string.ascii_uppercase + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def _hex_to_rgb(value: str) -> tuple:
    value = value.lstrip("#")
    return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))


def _parse_percent(value: str) -> int:
    match = re.search(r"\d+(?:\.\d+)?", value or "")
    return clamp_score(float(match.group())) if match else 0


def _load_evidence_image(evidence: EvidenceFile) -> Image.Image:
    try:
        with Image.open(io.BytesIO(evidence.data)) as img:
            return img.convert("RGB")
    except Exception as e:
        raise ExportDegradation(f"Evidence image could not be decoded: {e}") from e


def _draw_header(canvas: ReportCanvas, title: str) -> None:
    canvas.rect(0, 0, PAGE_WIDTH_MM, 40, fill=SLATE_900)
    canvas.text(MARGIN_MM, 20, settings.report_brand, 22, CYAN)
    canvas.text(MARGIN_MM, 26, title, 10, CYAN)
    right = PAGE_WIDTH_MM - MARGIN_MM
    canvas.text(right, 20, f"DATE: {date.today().strftime('%m/%d/%Y')}", 10, "white", align="right")
    canvas.text(right, 26, f"CASE ID: {_generate_case_id()}", 10, "white", align="right")
    canvas.y = 55


def _draw_verdict(canvas: ReportCanvas, headline: str, color) -> None:
    canvas.text(MARGIN_MM, canvas.y, "ANALYSIS VERDICT:", 12, SLATE_500)
    canvas.y += 10
    canvas.text(MARGIN_MM, canvas.y, headline, 28, color)
    canvas.y += 20


def _draw_exhibit(canvas: ReportCanvas, evidence: Optional[EvidenceFile], chart: ChartSpec, with_image: bool) -> None:
    top = canvas.y
    if with_image and evidence is not None:
        canvas.text(MARGIN_MM, canvas.y, "EVIDENCE EXHIBIT A:", 10, "black")
        image_y = canvas.y + 5
        try:
            canvas.paste(_load_evidence_image(evidence), MARGIN_MM, image_y, 100, 75)
        except ExportDegradation as e:
            logger.warning(f"[REPORT] {e.message}; drawing placeholder")
            canvas.rect(MARGIN_MM, image_y, 100, 75, outline=SLATE_400)
            canvas.text(MARGIN_MM + 50, image_y + 38, "IMAGE UNAVAILABLE", 10, SLATE_400, align="center")

    chart_img = render_chart(chart)
    canvas.paste(chart_img, PAGE_WIDTH_MM - MARGIN_MM - 70, top + 5, 70, 70)
    canvas.y = top + 90


def _draw_file_box(canvas: ReportCanvas, lines: List[str]) -> None:
    width = PAGE_WIDTH_MM - MARGIN_MM * 2
    height = 6 + 7 * len(lines)
    canvas.rect(MARGIN_MM, canvas.y, width, height, fill=SLATE_50, outline=SLATE_300)
    for i, line in enumerate(lines):
        canvas.text(MARGIN_MM + 5, canvas.y + 8 + 7 * i, line, 10, SLATE_600)
    canvas.y += height + 10


def _draw_summary(canvas: ReportCanvas, explanation: str) -> None:
    canvas.text(MARGIN_MM, canvas.y, "EXECUTIVE SUMMARY", 12, SLATE_800)
    canvas.y += 8
    for line in canvas.wrap(explanation, 10, PAGE_WIDTH_MM - MARGIN_MM * 2):
        canvas.ensure_space(30)
        canvas.text(MARGIN_MM, canvas.y, line, 10, SLATE_800)
        canvas.y += 5
    canvas.y += 15
    canvas.ensure_space(60)


def _draw_metadata(canvas: ReportCanvas, result: VisualAnalysisResult) -> None:
    canvas.text(MARGIN_MM, canvas.y, "METADATA INTEGRITY", 12, SLATE_800)
    canvas.y += 8
    right = PAGE_WIDTH_MM - MARGIN_MM
    meta = result.metadata_analysis
    for label, value in (
        ("EXIF Structure", meta.exif_integrity),
        ("Software Signatures", meta.software_traces),
        ("Lighting Physics", meta.lighting_consistency),
    ):
        canvas.text(MARGIN_MM, canvas.y, label, 10, SLATE_800)
        canvas.text(right, canvas.y, value, 10, SLATE_800, align="right")
        canvas.line(MARGIN_MM, canvas.y + 2, right, canvas.y + 2, SLATE_200)
        canvas.y += 10
    canvas.y += 15


def _draw_artifacts(canvas: ReportCanvas, items: List[tuple]) -> None:
    """`items` is a list of (title, description) pairs."""
    canvas.ensure_space(40)
    canvas.text(MARGIN_MM, canvas.y, "DETECTED ARTIFACTS", 12, SLATE_800)
    canvas.y += 10

    if not items:
        canvas.text(MARGIN_MM, canvas.y, "No artifacts detected.", 10, SLATE_700)
        canvas.y += 10
        return

    for title, description in items:
        canvas.ensure_space(40)
        canvas.text(MARGIN_MM, canvas.y, f"• {title}", 11, SEVERITY_RED)
        canvas.y += 5
        for line in canvas.wrap(description, 10, PAGE_WIDTH_MM - MARGIN_MM - 30):
            canvas.ensure_space(25)
            canvas.text(MARGIN_MM + 5, canvas.y, line, 10, SLATE_700)
            canvas.y += 5
        canvas.y += 8


def _image_report(canvas: ReportCanvas, result: VisualAnalysisResult, evidence: Optional[EvidenceFile], file_name: str) -> None:
    band = classify_risk(result.risk_score)
    _draw_header(canvas, "FORENSIC IMAGE ANALYSIS REPORT")
    _draw_verdict(canvas, _HEADLINES[band], _hex_to_rgb(BAND_COLORS[band]))
    _draw_exhibit(canvas, evidence, chart_spec(result.risk_score), with_image=True)
    _draw_file_box(canvas, [f"FILE: {file_name}", f"CONFIDENCE: {result.confidence}"])
    _draw_summary(canvas, result.explanation)
    _draw_metadata(canvas, result)
    _draw_artifacts(canvas, [(f"{a.name} ({a.severity})", a.description) for a in result.visual_artifacts])


def _audio_report(canvas: ReportCanvas, result: AudioAnalysisResult, file_name: str) -> None:
    real = is_real_verdict(result.verdict)
    color = EMERALD if real else RED
    _draw_header(canvas, "FORENSIC AUDIO ANALYSIS REPORT")
    _draw_verdict(canvas, result.verdict, _hex_to_rgb(color))
    spec = chart_spec(_parse_percent(result.human_likelihood_score), caption="HUMAN LIKELIHOOD", color=color)
    _draw_exhibit(canvas, None, spec, with_image=False)
    _draw_file_box(canvas, [
        f"FILE: {file_name}",
        f"HUMAN LIKELIHOOD: {result.human_likelihood_score}",
        f"PRIMARY ANOMALY: {result.analysis_timestamp}",
    ])
    _draw_summary(canvas, result.explanation)
    _draw_artifacts(canvas, [
        (f"{a.name} ({a.severity}) @ {a.timestamp}", a.description) for a in result.audio_artifacts
    ])


def report_filename(file_name: str) -> str:
    return f"Sentinell_Report_{file_name}.pdf"


def export_report(
    outcome: Union[AudioOutcome, ImageOutcome],
    evidence: Optional[EvidenceFile] = None,
) -> ExportedReport:
    """Renders the displayed outcome into a PDF. Never raises for undecodable evidence."""
    file_name = evidence.file_name if evidence else "Unknown_Evidence"
    canvas = ReportCanvas()

    if outcome.mode is AnalysisMode.IMAGE:
        _image_report(canvas, outcome.result, evidence, file_name)
    else:
        _audio_report(canvas, outcome.result, file_name)

    footer = f"Generated by Sentinell AI Forensics System {settings.app_version} | Confidential Forensic Report"
    content = canvas.to_pdf(footer)
    logger.info(f"[REPORT] Exported {len(canvas.pages)} page(s) for {file_name}")
    return ExportedReport(
        filename=report_filename(file_name),
        content=content,
        page_count=len(canvas.pages),
    )
