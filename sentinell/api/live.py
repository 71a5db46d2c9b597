"""
Live-path routes: one-shot transcription, one-shot scam-risk check, and the
/ws/live monitor socket.

The socket carries binary float32 microphone frames (16 kHz mono) upstream
and JSON events downstream. A text message {"action": "STOP"} ends capture.
"""

import asyncio
import json
import logging

from fastapi import APIRouter, File, Request, UploadFile, WebSocket, WebSocketDisconnect

from sentinell.core.errors import SentinellError
from sentinell.core.rate_limiter import check_rate_limit, client_identifier
from sentinell.integrations.gemini import client as gemini_client
from sentinell.schemas.analysis import AnalysisMode
from sentinell.schemas.live import ScamRiskRequest, ScamRiskResult, TranscriptionResult
from sentinell.services.intake_service import read_upload
from sentinell.services.live_service import LiveMonitorSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Live"])


@router.post("/transcribe", response_model=TranscriptionResult)
async def transcribe(request: Request, file: UploadFile = File(...)):
    check_rate_limit(client_identifier(request))
    evidence = await read_upload(file, AnalysisMode.AUDIO)
    return await gemini_client.transcribe_audio(evidence.payload, evidence.media_type)


@router.post("/scam-risk", response_model=ScamRiskResult)
async def scam_risk(request: Request, body: ScamRiskRequest):
    check_rate_limit(client_identifier(request))
    return await gemini_client.check_scam_risk(body.text)


@router.websocket("/ws/live")
async def live_monitor(websocket: WebSocket):
    await websocket.accept()
    monitor = LiveMonitorSession(websocket.send_json)
    logger.info("[LIVE] Client connected")

    async def receive_from_client():
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            if message.get("bytes") is not None:
                monitor.push_frame(message["bytes"])
                continue

            try:
                msg = json.loads(message.get("text") or "")
            except json.JSONDecodeError:
                logger.warning("[LIVE] Invalid JSON received from client. Skipping message.")
                continue
            if isinstance(msg, dict) and msg.get("action") == "STOP":
                monitor.stop()
                return

    try:
        async with gemini_client.connect_live_session() as session:
            await websocket.send_json({"type": "connected"})

            tasks = [
                asyncio.create_task(receive_from_client()),
                asyncio.create_task(monitor.uplink(session)),
                asyncio.create_task(monitor.downlink(session)),
            ]
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

            # STOP drains the queue: let the uplink finish what was captured
            if tasks[0] in done and tasks[1] not in done:
                done_up, _ = await asyncio.wait([tasks[1]], timeout=2)
                done |= done_up
                pending -= done_up

            for task in done:
                try:
                    task.result()
                except WebSocketDisconnect:
                    pass
                except Exception as e:
                    logger.error(f"[LIVE] Task finished with unexpected exception: {e}", exc_info=True)

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    except WebSocketDisconnect:
        logger.info("[LIVE] Client disconnected")
    except SentinellError as e:
        logger.error(f"[LIVE] Could not start live session: {e.message}")
        try:
            await websocket.send_json({"type": "error", "message": e.message})
        except Exception as send_error:
            logger.debug(f"[LIVE] Could not report error to client: {send_error}")
    except Exception as e:
        logger.error(f"[LIVE] Critical error: {e}", exc_info=True)
    finally:
        await monitor.close()
        logger.info(f"[LIVE] Session ended after {len(monitor.transcript)} turn(s)")
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"[LIVE] Error closing websocket: {e}")
