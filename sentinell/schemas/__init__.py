from sentinell.schemas.analysis import (
    AnalysisMode,
    AnalysisOutcome,
    AnalysisRequest,
    AudioAnalysisResult,
    AudioOutcome,
    EvidenceFile,
    ImageOutcome,
    VisualAnalysisResult,
)
from sentinell.schemas.live import ScamRiskResult, TranscriptionResult
from sentinell.schemas.session import SessionState, SessionView
from sentinell.schemas.views import AudioView, CockpitView, RiskBand

__all__ = [
    "AnalysisMode",
    "AnalysisOutcome",
    "AnalysisRequest",
    "AudioAnalysisResult",
    "AudioOutcome",
    "EvidenceFile",
    "ImageOutcome",
    "VisualAnalysisResult",
    "ScamRiskResult",
    "TranscriptionResult",
    "SessionState",
    "SessionView",
    "AudioView",
    "CockpitView",
    "RiskBand",
]
