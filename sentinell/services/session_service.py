"""
Analysis sessions: one per browser UI session, held in memory only.

`AnalysisSession.submit` drives a selected EvidenceFile through
FILE_SELECTED → ANALYZING → SUCCESS/ERROR, invoking exactly one Gemini
operation chosen by the session's mode. Concurrent submissions are refused
by the state machine itself; resets abandon (never cancel) in-flight calls.

The Gemini client module is referenced at call time so tests can patch
`sentinell.integrations.gemini.client.analyze_audio` / `analyze_image`.
"""

import logging
import time
import uuid
from collections import OrderedDict
from typing import Awaitable, Callable

from sentinell.config import settings
from sentinell.core.errors import SentinellError, SessionNotFoundError
from sentinell.core.file_validator import sanitize_log_message
from sentinell.core.state_machine import (
    AnalysisFailed,
    AnalysisSucceeded,
    BeginAnalysis,
    Reset,
    SelectFile,
    SelectMode,
    SessionSnapshot,
    transition,
)
from sentinell.integrations.gemini import client as gemini_client
from sentinell.schemas.analysis import AnalysisMode, EvidenceFile, EvidenceSummary, make_outcome
from sentinell.schemas.session import SessionView
from sentinell.services.intake_service import log_memory

logger = logging.getLogger(__name__)


def _analyzer_for(mode: AnalysisMode) -> Callable[[str, str], Awaitable]:
    if mode is AnalysisMode.AUDIO:
        return gemini_client.analyze_audio
    return gemini_client.analyze_image


class AnalysisSession:
    def __init__(self, session_id: str, mode: AnalysisMode = AnalysisMode.AUDIO):
        self.session_id = session_id
        self.snapshot = SessionSnapshot(mode=mode)

    def dispatch(self, event) -> SessionSnapshot:
        previous = self.snapshot.state
        self.snapshot = transition(self.snapshot, event)
        if self.snapshot.state is not previous:
            logger.info(
                f"[SESSION] {self.session_id}: {previous.value} -> {self.snapshot.state.value} "
                f"({type(event).__name__})"
            )
        return self.snapshot

    def select_mode(self, mode: AnalysisMode) -> SessionSnapshot:
        return self.dispatch(SelectMode(mode))

    def reset(self) -> SessionSnapshot:
        return self.dispatch(Reset())

    async def submit(self, evidence: EvidenceFile) -> SessionSnapshot:
        """Selects the evidence and analyzes it immediately; returns the resulting snapshot."""
        self.dispatch(SelectFile(evidence))
        self.dispatch(BeginAnalysis())

        mode = self.snapshot.mode
        generation = self.snapshot.generation
        analyze = _analyzer_for(mode)

        log_memory(f"Pre-Analyze: {evidence.file_name}")
        start_time = time.time()
        try:
            result = await analyze(evidence.payload, evidence.media_type)
        except SentinellError as e:
            logger.error(sanitize_log_message(f"[SESSION] {self.session_id}: analysis of {evidence.file_name} failed: {e.message}"))
            return self.dispatch(AnalysisFailed(generation, e.message))
        except Exception as e:
            logger.error(
                sanitize_log_message(f"[SESSION] {self.session_id}: unexpected failure on {evidence.file_name}: {e}"),
                exc_info=True,
            )
            return self.dispatch(AnalysisFailed(generation, str(e)))

        logger.info(
            f"[SESSION] {self.session_id}: analyzed {evidence.file_name} in {time.time() - start_time:.2f}s"
        )
        log_memory(f"Post-Analyze: {evidence.file_name}")
        return self.dispatch(AnalysisSucceeded(generation, make_outcome(mode, result)))

    def view(self) -> SessionView:
        snap = self.snapshot
        return SessionView(
            session_id=self.session_id,
            mode=snap.mode,
            state=snap.state,
            evidence=EvidenceSummary.from_evidence(snap.evidence) if snap.evidence else None,
            outcome=snap.outcome,
            error=snap.error,
        )


class SessionStore:
    """Bounded in-memory registry; the least recently used session is evicted first."""

    def __init__(self, max_sessions: int = settings.session_store_max):
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, AnalysisSession]" = OrderedDict()

    def create(self, mode: AnalysisMode = AnalysisMode.AUDIO) -> AnalysisSession:
        session = AnalysisSession(uuid.uuid4().hex, mode)
        self._sessions[session.session_id] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info(f"[SESSION] Evicted idle session {evicted}")
        return session

    def get(self, session_id: str) -> AnalysisSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError("Session not found or expired.")
        self._sessions.move_to_end(session_id)
        return session

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)


session_store = SessionStore()
