"""
Analysis session state machine.

A session is an immutable `SessionSnapshot`; `transition(snapshot, event)`
is the only way to produce the next one.

    IDLE ──SelectFile──▶ FILE_SELECTED ──BeginAnalysis──▶ ANALYZING
                                                          │
                         SUCCESS ◀──AnalysisSucceeded─────┤
                         ERROR   ◀──AnalysisFailed────────┘

`Reset` returns to IDLE from anywhere, `SelectMode` does the same in the new
mode. Both, like `SelectFile`, bump `generation`: completion events carry the
generation they were started under and are dropped once it is stale.
"""

from dataclasses import dataclass, replace
from typing import Optional, Union

from sentinell.core.errors import SessionBusyError
from sentinell.schemas.analysis import AnalysisMode, AudioOutcome, EvidenceFile, ImageOutcome
from sentinell.schemas.session import SessionState

GENERIC_ERROR_MESSAGE = "An unexpected error occurred during analysis."


@dataclass(frozen=True)
class SessionSnapshot:
    mode: AnalysisMode = AnalysisMode.AUDIO
    state: SessionState = SessionState.IDLE
    evidence: Optional[EvidenceFile] = None
    outcome: Optional[Union[AudioOutcome, ImageOutcome]] = None
    error: Optional[str] = None
    generation: int = 0


@dataclass(frozen=True)
class SelectMode:
    mode: AnalysisMode


@dataclass(frozen=True)
class SelectFile:
    evidence: EvidenceFile


@dataclass(frozen=True)
class BeginAnalysis:
    pass


@dataclass(frozen=True)
class AnalysisSucceeded:
    generation: int
    outcome: Union[AudioOutcome, ImageOutcome]


@dataclass(frozen=True)
class AnalysisFailed:
    generation: int
    message: Optional[str] = None


@dataclass(frozen=True)
class Reset:
    pass


Event = Union[SelectMode, SelectFile, BeginAnalysis, AnalysisSucceeded, AnalysisFailed, Reset]

_SELECTABLE = (SessionState.IDLE, SessionState.SUCCESS, SessionState.ERROR)


def _idle(snapshot: SessionSnapshot, mode: AnalysisMode) -> SessionSnapshot:
    return SessionSnapshot(mode=mode, generation=snapshot.generation + 1)


def transition(snapshot: SessionSnapshot, event: Event) -> SessionSnapshot:
    """Returns the snapshot that follows `event`. Raises SessionBusyError on illegal moves."""
    if isinstance(event, Reset):
        return _idle(snapshot, snapshot.mode)

    if isinstance(event, SelectMode):
        return _idle(snapshot, event.mode)

    if isinstance(event, SelectFile):
        if snapshot.state not in _SELECTABLE:
            raise SessionBusyError("An analysis is already in progress for this session.")
        return SessionSnapshot(
            mode=snapshot.mode,
            state=SessionState.FILE_SELECTED,
            evidence=event.evidence,
            generation=snapshot.generation + 1,
        )

    if isinstance(event, BeginAnalysis):
        if snapshot.state is not SessionState.FILE_SELECTED:
            raise SessionBusyError("No evidence is waiting to be analyzed.")
        return replace(snapshot, state=SessionState.ANALYZING)

    if isinstance(event, (AnalysisSucceeded, AnalysisFailed)):
        # Late completion after a reset / mode switch / new file: drop it.
        if event.generation != snapshot.generation or snapshot.state is not SessionState.ANALYZING:
            return snapshot

        if isinstance(event, AnalysisFailed):
            return replace(
                snapshot,
                state=SessionState.ERROR,
                error=event.message or GENERIC_ERROR_MESSAGE,
            )

        if event.outcome.mode is not snapshot.mode:
            return snapshot
        return replace(snapshot, state=SessionState.SUCCESS, outcome=event.outcome)

    raise TypeError(f"Unknown session event: {event!r}")
