"""
Analysis session routes.

Evidence is accepted as multipart/form-data with a 'file' or 'url' field, or
as a JSON payload { "url": "https://..." | "data:...;base64,..." }. Submission
analyzes immediately; the response is the session view in SUCCESS or ERROR.
"""

import json
import logging
import re
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from sentinell.core.errors import SessionBusyError
from sentinell.core.rate_limiter import check_rate_limit, client_identifier
from sentinell.schemas.analysis import AnalysisMode
from sentinell.schemas.session import CreateSessionRequest, ModeRequest, SessionState, SessionView
from sentinell.services.intake_service import download_evidence, read_upload
from sentinell.services.render_service import render_forensic_layer, render_view
from sentinell.services.report_service import export_report
from sentinell.services.session_service import session_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name plus the RFC 5987 UTF-8 form."""
    fallback = re.sub(r'[^\x20-\x7e]|["\\]', "_", filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def _require_success(session):
    if session.snapshot.state is not SessionState.SUCCESS:
        raise SessionBusyError("No analysis result is available for this session.")
    return session.snapshot


@router.post("", response_model=SessionView, status_code=201)
async def create_session(body: Optional[CreateSessionRequest] = None):
    mode = body.mode if body else AnalysisMode.AUDIO
    return session_store.create(mode).view()


@router.get("/{session_id}", response_model=SessionView)
async def get_session(session_id: str):
    return session_store.get(session_id).view()


@router.put("/{session_id}/mode", response_model=SessionView)
async def select_mode(session_id: str, body: ModeRequest):
    session = session_store.get(session_id)
    session.select_mode(body.mode)
    return session.view()


@router.post("/{session_id}/reset", response_model=SessionView)
async def reset_session(session_id: str):
    session = session_store.get(session_id)
    session.reset()
    return session.view()


@router.post("/{session_id}/evidence", response_model=SessionView)
async def submit_evidence(session_id: str, request: Request):
    session = session_store.get(session_id)
    mode = session.snapshot.mode
    if session.snapshot.state is SessionState.ANALYZING:
        raise SessionBusyError("An analysis is already in progress for this session.")

    check_rate_limit(client_identifier(request))

    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        url = payload.get("url") if isinstance(payload, dict) else None
        if not url:
            raise HTTPException(status_code=400, detail="Missing 'url' in JSON body")
        evidence = await download_evidence(url, mode)

    elif "multipart/form-data" in content_type:
        form = await request.form()
        file_obj = form.get("file")
        url_obj = form.get("url")

        if file_obj is not None and not isinstance(file_obj, str):
            evidence = await read_upload(file_obj, mode)
        elif isinstance(url_obj, str) and url_obj:
            evidence = await download_evidence(url_obj, mode)
        else:
            raise HTTPException(status_code=400, detail="Must provide 'file' or 'url' in form data")

    else:
        raise HTTPException(
            status_code=415,
            detail="Unsupported Media Type. Use multipart/form-data or application/json",
        )

    await session.submit(evidence)
    return session.view()


@router.get("/{session_id}/view")
async def get_result_view(
    session_id: str,
    width: float = Query(1000, gt=0),
    height: float = Query(1000, gt=0),
):
    """Display model for the current result; overlay boxes are scaled to width × height."""
    snapshot = _require_success(session_store.get(session_id))
    return render_view(snapshot.outcome, width, height)


@router.get("/{session_id}/forensic-layer")
async def get_forensic_layer(session_id: str, style: str = Query("ela", pattern="^(ela|heatmap|high-contrast|invert)$")):
    snapshot = session_store.get(session_id).snapshot
    if snapshot.mode is not AnalysisMode.IMAGE or snapshot.evidence is None:
        raise SessionBusyError("No image evidence is available for this session.")
    png = await run_in_threadpool(render_forensic_layer, snapshot.evidence.data, style)
    return Response(content=png, media_type="image/png")


@router.get("/{session_id}/report")
async def download_report(session_id: str):
    snapshot = _require_success(session_store.get(session_id))
    report = await run_in_threadpool(export_report, snapshot.outcome, snapshot.evidence)
    return Response(
        content=report.content,
        media_type=report.media_type,
        headers={"Content-Disposition": content_disposition(report.filename)},
    )
