"""
Unit tests for sentinell/services/report_service.py.

PDFs are checked structurally (header bytes, page count); the chart raster is
sampled at known pixel positions.
"""

import base64
import math
from unittest.mock import patch

from sentinell.schemas.analysis import AudioOutcome, EvidenceFile, ImageOutcome
from sentinell.services.render_service import EMERALD, RED
from sentinell.services.report_service import chart_spec, export_report, render_chart, report_filename
from tests.conftest import audio_result, make_tiny_jpeg, visual_result


def _rgb(hex_color: str) -> tuple:
    return tuple(int(hex_color[i:i + 2], 16) for i in (1, 3, 5))


def _evidence(data: bytes, name="face.jpg") -> EvidenceFile:
    return EvidenceFile(
        file_name=name,
        media_type="image/jpeg",
        size=len(data),
        payload=base64.b64encode(data).decode(),
    )


# ---------------------------------------------------------------------------
# Chart
# ---------------------------------------------------------------------------


def test_chart_spec_for_high_risk():
    spec = chart_spec(85)
    assert spec.center_label == "85%"
    assert spec.color == RED
    assert spec.caption == "RISK SCORE"


def test_chart_slice_starts_at_twelve_oclock():
    img = render_chart(chart_spec(85))
    assert img.size == (400, 400)

    # 3 o'clock lies inside an 85% slice
    assert img.getpixel((320, 200)) == _rgb(RED)

    # 240° (clockwise from 3 o'clock) is past the slice end at 216°
    angle = math.radians(240)
    x, y = 200 + 120 * math.cos(angle), 200 + 120 * math.sin(angle)
    assert img.getpixel((round(x), round(y))) == _rgb("#f1f5f9")

    # the hole stays white
    assert img.getpixel((200, 150)) == (255, 255, 255)


def test_zero_score_has_no_slice():
    img = render_chart(chart_spec(0))
    assert img.getpixel((320, 200)) == _rgb("#f1f5f9")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def test_image_report_is_pdf():
    report = export_report(ImageOutcome(result=visual_result()), _evidence(make_tiny_jpeg(size=(64, 48))))

    assert report.content.startswith(b"%PDF")
    assert report.filename == "Sentinell_Report_face.jpg.pdf"
    assert report.media_type == "application/pdf"
    assert report.page_count >= 1


def test_audio_report_charts_human_likelihood():
    with patch("sentinell.services.report_service.render_chart", wraps=render_chart) as chart:
        report = export_report(AudioOutcome(result=audio_result()))

    spec = chart.call_args.args[0]
    assert spec.center_label == "4%"
    assert spec.caption == "HUMAN LIKELIHOOD"
    assert spec.color == RED
    assert report.filename == "Sentinell_Report_Unknown_Evidence.pdf"


def test_real_audio_chart_is_emerald():
    with patch("sentinell.services.report_service.render_chart", wraps=render_chart) as chart:
        export_report(AudioOutcome(result=audio_result(verdict="REAL HUMAN", human_likelihood_score="97%")))
    assert chart.call_args.args[0].color == EMERALD


def test_undecodable_evidence_degrades_to_placeholder():
    report = export_report(ImageOutcome(result=visual_result()), _evidence(b"definitely not a jpeg"))
    assert report.content.startswith(b"%PDF")


def test_long_artifact_list_paginates():
    artifacts = [
        {"name": f"Artifact {i}", "description": "Inconsistent texture detail. " * 12, "severity": "MEDIUM"}
        for i in range(30)
    ]
    report = export_report(ImageOutcome(result=visual_result(visual_artifacts=artifacts)))
    assert report.page_count >= 2


def test_report_filename():
    assert report_filename("call.wav") == "Sentinell_Report_call.wav.pdf"
