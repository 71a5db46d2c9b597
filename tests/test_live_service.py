"""
Unit tests for sentinell/services/live_service.py.

The live model session is a small fake; clocks are injected so scheduling is
deterministic.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import numpy as np
import pytest

from sentinell.schemas.live import ScamRiskResult
from sentinell.services.live_service import (
    LiveMonitorSession,
    PlaybackScheduler,
    ScamRiskDebouncer,
    float32_to_pcm16,
    pcm16_duration,
)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def _risk(level="HIGH", score=80) -> ScamRiskResult:
    return ScamRiskResult(risk_score=score, risk_level=level, warning_message="careful", detected_patterns=["urgency"])


def _message(user=None, model=None, audio=None, turn_complete=False):
    parts = [SimpleNamespace(inline_data=SimpleNamespace(data=audio))] if audio else None
    return SimpleNamespace(server_content=SimpleNamespace(
        input_transcription=SimpleNamespace(text=user) if user else None,
        output_transcription=SimpleNamespace(text=model) if model else None,
        model_turn=SimpleNamespace(parts=parts) if parts else None,
        turn_complete=turn_complete,
    ))


# ---------------------------------------------------------------------------
# PCM helpers
# ---------------------------------------------------------------------------


def test_float32_to_pcm16_scales_and_clips():
    frame = np.array([0.0, 1.0, -1.0, 2.0, 0.5], dtype="<f4").tobytes()
    pcm = np.frombuffer(float32_to_pcm16(frame), dtype="<i2")
    assert pcm.tolist() == [0, 32767, -32767, 32767, 16383]


def test_float32_to_pcm16_drops_partial_sample():
    frame = np.array([0.25], dtype="<f4").tobytes() + b"\x01\x02"
    assert len(float32_to_pcm16(frame)) == 2


def test_pcm16_duration():
    assert pcm16_duration(b"\x00" * 48000, 24000) == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# PlaybackScheduler
# ---------------------------------------------------------------------------


def test_segments_play_back_to_back():
    clock = FakeClock(10.0)
    scheduler = PlaybackScheduler(clock)

    assert scheduler.schedule(0.5) == 10.0
    assert scheduler.schedule(0.5) == 10.5
    clock.now = 10.2
    assert scheduler.schedule(1.0) == 11.0


def test_cursor_jumps_forward_after_silence():
    clock = FakeClock(0.0)
    scheduler = PlaybackScheduler(clock)
    scheduler.schedule(1.0)
    clock.now = 5.0
    assert scheduler.schedule(1.0) == 5.0
    assert scheduler.cursor == 6.0


def test_cursor_is_monotonic():
    clock = FakeClock(0.0)
    scheduler = PlaybackScheduler(clock)
    cursors = []
    for now, duration in [(0.0, 0.3), (0.1, 0.2), (0.05, 0.4), (2.0, 0.1), (1.0, 0.1)]:
        clock.now = now
        scheduler.schedule(duration)
        cursors.append(scheduler.cursor)
    assert cursors == sorted(cursors)


# ---------------------------------------------------------------------------
# ScamRiskDebouncer
# ---------------------------------------------------------------------------


async def test_burst_collapses_into_one_check():
    check = AsyncMock(return_value=_risk())
    on_result = AsyncMock()
    debouncer = ScamRiskDebouncer(check, on_result, delay=0.02, min_chars=10)

    for text in ["Hello this", "Hello this is your", "Hello this is your bank calling"]:
        debouncer.feed(text)
        await asyncio.sleep(0)
    await asyncio.sleep(0.06)

    check.assert_awaited_once_with("Hello this is your bank calling")
    on_result.assert_awaited_once()
    assert debouncer.latest.risk_level == "HIGH"


async def test_short_text_is_not_checked():
    check = AsyncMock(return_value=_risk())
    debouncer = ScamRiskDebouncer(check, AsyncMock(), delay=0.01, min_chars=10)

    debouncer.feed("0123456789")
    await asyncio.sleep(0.04)

    check.assert_not_called()


async def test_check_failure_is_swallowed_and_logged():
    check = AsyncMock(side_effect=RuntimeError("upstream down"))
    on_result = AsyncMock()
    debouncer = ScamRiskDebouncer(check, on_result, delay=0.01, min_chars=0)

    debouncer.feed("anything at all")
    await asyncio.sleep(0.04)

    on_result.assert_not_called()
    assert debouncer.latest is None


async def test_aclose_cancels_pending_check():
    check = AsyncMock(return_value=_risk())
    debouncer = ScamRiskDebouncer(check, AsyncMock(), delay=5, min_chars=0)
    debouncer.feed("long enough text")
    await debouncer.aclose()

    assert not debouncer.pending
    check.assert_not_called()


# ---------------------------------------------------------------------------
# LiveMonitorSession
# ---------------------------------------------------------------------------


async def test_transcripts_accumulate_into_turns():
    sent = []

    async def send_json(payload):
        sent.append(payload)

    monitor = LiveMonitorSession(send_json, check=AsyncMock(return_value=_risk("LOW", 5)))
    await monitor.handle_message(_message(user="Hi "))
    await monitor.handle_message(_message(user="there"))
    await monitor.handle_message(_message(model="Hello!"))
    await monitor.handle_message(_message(turn_complete=True))
    await monitor.close()

    assert len(monitor.transcript) == 1
    assert monitor.transcript[0].user == "Hi there"
    assert monitor.transcript[0].model == "Hello!"
    assert monitor.current.user == ""
    assert sent[-1] == {"type": "turn_complete", "turn": {"user": "Hi there", "model": "Hello!"}}


async def test_model_audio_is_scheduled_back_to_back():
    sent = []

    async def send_json(payload):
        sent.append(payload)

    monitor = LiveMonitorSession(send_json, clock=FakeClock(0.0))
    half_second = b"\x00" * 24000  # 0.5 s at 24 kHz, 16-bit
    await monitor.handle_message(_message(audio=half_second))
    await monitor.handle_message(_message(audio=half_second))

    audio = [p for p in sent if p["type"] == "audio"]
    assert [p["start_at"] for p in audio] == [0.0, 0.5]
    assert all(p["duration"] == 0.5 for p in audio)


async def test_only_non_low_risk_is_pushed_as_alert():
    sent = []

    async def send_json(payload):
        sent.append(payload)

    monitor = LiveMonitorSession(send_json)
    await monitor._on_risk(_risk("LOW", 3))
    await monitor._on_risk(_risk("CRITICAL", 95))

    alerts = [p for p in sent if p["type"] == "scam_alert"]
    assert len(alerts) == 1
    assert alerts[0]["risk"]["risk_level"] == "CRITICAL"


async def test_uplink_forwards_frames_until_stop():
    monitor = LiveMonitorSession(AsyncMock())
    session = SimpleNamespace(send_realtime_input=AsyncMock())

    frame = np.zeros(160, dtype="<f4").tobytes()
    assert monitor.push_frame(frame)
    assert monitor.push_frame(frame)
    monitor.stop()

    await asyncio.wait_for(monitor.uplink(session), timeout=1)

    assert session.send_realtime_input.await_count == 2
    blob = session.send_realtime_input.call_args.kwargs["audio"]
    assert blob.mime_type == "audio/pcm;rate=16000"
    assert len(blob.data) == 320


async def test_full_queue_drops_newest_frame():
    monitor = LiveMonitorSession(AsyncMock())
    frame = np.zeros(4, dtype="<f4").tobytes()
    for _ in range(monitor.frames.maxsize):
        assert monitor.push_frame(frame)

    assert monitor.push_frame(frame) is False
    assert monitor.dropped_frames == 1


async def test_failed_delivery_does_not_escape_close():
    check = AsyncMock(return_value=_risk())
    on_result = AsyncMock(side_effect=RuntimeError("websocket already closed"))
    debouncer = ScamRiskDebouncer(check, on_result, delay=0.01, min_chars=0)

    debouncer.feed("transfer the money now")
    await asyncio.sleep(0.04)
    await debouncer.aclose()

    on_result.assert_awaited_once()
    assert debouncer.latest.risk_level == "HIGH"


async def test_monitor_close_survives_failed_alert():
    async def send_json(payload):
        raise RuntimeError("websocket already closed")

    monitor = LiveMonitorSession(send_json, check=AsyncMock(return_value=_risk("CRITICAL", 95)))
    monitor.debouncer.delay = 0.01
    monitor.debouncer.feed("this is your bank, read me the code")
    await asyncio.sleep(0.04)

    await monitor.close()
    assert monitor.debouncer.latest.risk_level == "CRITICAL"
