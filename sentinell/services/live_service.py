"""
Live monitor: relays a browser microphone stream to the native-audio model and
streams transcripts, spoken replies and scam-risk alerts back.

    browser ──float32 frames──▶ push_frame ──▶ [bounded queue] ──▶ uplink ──▶ model
    browser ◀──JSON events──── downlink ◀──────────────────────────────────── model

The user's side of each turn is also fed to a ScamRiskDebouncer, which runs
the fast risk check once speech pauses.
"""

import asyncio
import base64
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional

import numpy as np
from google.genai import types

from sentinell.config import settings
from sentinell.integrations.gemini import client as gemini_client
from sentinell.schemas.live import ScamRiskResult, TranscriptTurn

logger = logging.getLogger(__name__)

SendJson = Callable[[dict], Awaitable[None]]


def float32_to_pcm16(frame: bytes) -> bytes:
    """Little-endian float32 samples in [-1, 1] → 16-bit PCM. Trailing partial samples are dropped."""
    usable = len(frame) - len(frame) % 4
    samples = np.frombuffer(frame[:usable], dtype="<f4")
    return (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2").tobytes()


def pcm16_duration(data: bytes, sample_rate: int) -> float:
    return len(data) / 2 / sample_rate


class PlaybackScheduler:
    """Back-to-back playback cursor. The cursor never moves backwards."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.cursor = 0.0

    def schedule(self, duration: float) -> float:
        start = max(self.cursor, self._clock())
        self.cursor = start + duration
        return start


class ScamRiskDebouncer:
    """
    Runs `check(text)` once no new text has arrived for `delay` seconds.

    Each feed cancels whatever is pending. Results replace `latest` and are
    handed to `on_result`; failures are logged and otherwise ignored.
    """

    def __init__(
        self,
        check: Callable[[str], Awaitable[ScamRiskResult]],
        on_result: Callable[[ScamRiskResult], Awaitable[None]],
        delay: float = settings.scam_check_debounce_sec,
        min_chars: int = settings.scam_check_min_chars,
    ):
        self.check = check
        self.on_result = on_result
        self.delay = delay
        self.min_chars = min_chars
        self.latest: Optional[ScamRiskResult] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def feed(self, text: str) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._run(text))

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()

    async def aclose(self) -> None:
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"[LIVE] Pending scam risk check ended with an error: {e}")

    async def _run(self, text: str) -> None:
        await asyncio.sleep(self.delay)
        if len(text) <= self.min_chars:
            return
        try:
            result = await self.check(text)
        except Exception as e:
            logger.warning(f"[LIVE] Scam risk check failed: {e}")
            return
        self.latest = result
        try:
            await self.on_result(result)
        except Exception as e:
            logger.warning(f"[LIVE] Could not deliver scam risk result: {e}")


class LiveMonitorSession:
    """One browser connection's worth of live-monitor state."""

    def __init__(
        self,
        send_json: SendJson,
        check: Optional[Callable[[str], Awaitable[ScamRiskResult]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.send_json = send_json
        self.frames: asyncio.Queue = asyncio.Queue(maxsize=settings.live_frame_queue_size)
        self.scheduler = PlaybackScheduler(clock)
        self.debouncer = ScamRiskDebouncer(check or gemini_client.check_scam_risk, self._on_risk)
        self.transcript: List[TranscriptTurn] = []
        self.current = TranscriptTurn()
        self.dropped_frames = 0
        self._clock = clock
        self._epoch = clock()

    # -- capture side ------------------------------------------------------ #

    def push_frame(self, frame: bytes) -> bool:
        """Queues one microphone frame; when the uplink lags, the newest frame is dropped."""
        try:
            self.frames.put_nowait(float32_to_pcm16(frame))
            return True
        except asyncio.QueueFull:
            self.dropped_frames += 1
            if self.dropped_frames % 50 == 1:
                logger.warning(f"[LIVE] Uplink lagging, dropped {self.dropped_frames} frame(s)")
            return False

    def stop(self) -> None:
        """Ends the uplink after the frames already queued."""
        try:
            self.frames.put_nowait(None)
        except asyncio.QueueFull:
            self.frames.get_nowait()
            self.frames.put_nowait(None)

    # -- uplink / downlink ------------------------------------------------- #

    async def uplink(self, session: Any) -> None:
        mime_type = f"audio/pcm;rate={settings.live_input_sample_rate}"
        while True:
            pcm = await self.frames.get()
            if pcm is None:
                logger.info("[LIVE] Capture stopped")
                return
            await session.send_realtime_input(audio=types.Blob(data=pcm, mime_type=mime_type))

    async def downlink(self, session: Any) -> None:
        # receive() ends at every turn boundary
        while True:
            async for message in session.receive():
                await self.handle_message(message)

    async def handle_message(self, message: Any) -> None:
        content = getattr(message, "server_content", None)
        if content is None:
            return

        if content.input_transcription and content.input_transcription.text:
            self.current = self.current.model_copy(
                update={"user": self.current.user + content.input_transcription.text}
            )
            self.debouncer.feed(self.current.user)
            await self.send_json({"type": "transcript", "role": "user", "text": self.current.user})

        if content.output_transcription and content.output_transcription.text:
            self.current = self.current.model_copy(
                update={"model": self.current.model + content.output_transcription.text}
            )
            await self.send_json({"type": "transcript", "role": "model", "text": self.current.model})

        if content.model_turn:
            for part in content.model_turn.parts or []:
                if part.inline_data and part.inline_data.data:
                    await self._play(part.inline_data.data)

        if content.turn_complete:
            turn = self.current
            self.transcript.append(turn)
            self.current = TranscriptTurn()
            await self.send_json({"type": "turn_complete", "turn": turn.model_dump()})

    async def _play(self, pcm: bytes) -> None:
        duration = pcm16_duration(pcm, settings.live_output_sample_rate)
        start = self.scheduler.schedule(duration)
        await self.send_json({
            "type": "audio",
            "data": base64.b64encode(pcm).decode("ascii"),
            "sample_rate": settings.live_output_sample_rate,
            "start_at": round(start - self._epoch, 4),
            "duration": round(duration, 4),
        })

    async def _on_risk(self, result: ScamRiskResult) -> None:
        logger.info(f"[LIVE] Scam risk {result.risk_level} ({result.risk_score})")
        if result.risk_level != "LOW":
            await self.send_json({"type": "scam_alert", "risk": result.model_dump()})

    async def close(self) -> None:
        await self.debouncer.aclose()
