from enum import Enum
from typing import Optional

from pydantic import BaseModel

from sentinell.schemas.analysis import AnalysisMode, AnalysisOutcome, EvidenceSummary


class SessionState(str, Enum):
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    ANALYZING = "analyzing"
    SUCCESS = "success"
    ERROR = "error"


class CreateSessionRequest(BaseModel):
    mode: AnalysisMode = AnalysisMode.AUDIO


class ModeRequest(BaseModel):
    mode: AnalysisMode


class SessionView(BaseModel):
    session_id: str
    mode: AnalysisMode
    state: SessionState
    evidence: Optional[EvidenceSummary] = None
    outcome: Optional[AnalysisOutcome] = None
    error: Optional[str] = None
