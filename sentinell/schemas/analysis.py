"""
Analysis data model.

The result models double as the Gemini structured-output schemas: field
names, `Literal` enums and the required-field list are what the model is
asked to conform to, and what responses are validated against.
"""

import base64
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["LOW", "MEDIUM", "HIGH"]
Verdict = Literal["REAL HUMAN", "SYNTHETIC AI"]


class AnalysisMode(str, Enum):
    AUDIO = "AUDIO"
    IMAGE = "IMAGE"


# --------------------------------------------------------------------------- #
# Evidence                                                                     #
# --------------------------------------------------------------------------- #


class EvidenceFile(BaseModel):
    """User-submitted evidence, held in memory as a base64 payload."""
    file_name: str
    media_type: str
    size: int
    payload: str  # base64 text, transport-ready

    @property
    def data(self) -> bytes:
        return base64.b64decode(self.payload)

    @property
    def size_label(self) -> str:
        return f"{self.size / 1024 / 1024:.2f} MB"


class EvidenceSummary(BaseModel):
    file_name: str
    media_type: str
    size: int
    size_label: str

    @classmethod
    def from_evidence(cls, evidence: EvidenceFile) -> "EvidenceSummary":
        return cls(
            file_name=evidence.file_name,
            media_type=evidence.media_type,
            size=evidence.size,
            size_label=evidence.size_label,
        )


# --------------------------------------------------------------------------- #
# Audio forensics                                                              #
# --------------------------------------------------------------------------- #


class AudioArtifact(BaseModel):
    name: str = Field(description="Technical name of artifact (e.g. 'Phase Continuity Error')")
    description: str = Field(description="Detailed explanation of the acoustic anomaly")
    timestamp: str = Field(description="MM:SS where this occurs")
    severity: Severity


class AudioAnalysisResult(BaseModel):
    """Gemini structured output schema for audio evidence."""
    analysis_timestamp: str = Field(
        description="Timestamp of the most significant artifact (MM:SS) or 'N/A'"
    )
    audio_artifacts: List[AudioArtifact] = Field(description="List of detected acoustic artifacts")
    human_likelihood_score: str = Field(description="0-100%")
    verdict: Verdict
    explanation: str = Field(description="One-sentence executive summary")


# --------------------------------------------------------------------------- #
# Image forensics                                                              #
# --------------------------------------------------------------------------- #


class VisualArtifact(BaseModel):
    name: str = Field(description="Short name of artifact (e.g. 'Asymmetrical Eyes')")
    description: str = Field(description="Explanation of why this indicates AI")
    severity: Severity
    box_2d: Optional[List[float]] = Field(
        None, description="[ymin, xmin, ymax, xmax] on 0-1000 scale. Optional."
    )


class MetadataAnalysis(BaseModel):
    exif_integrity: Literal["INTACT", "STRIPPED", "INCONSISTENT"]
    software_traces: str = Field(description="e.g. 'None detected' or 'Adobe Photoshop'")
    lighting_consistency: Literal["NATURAL", "ARTIFICIAL/MISMATCHED"]


class VisualAnalysisResult(BaseModel):
    """Gemini structured output schema for image evidence."""
    verdict: Verdict
    risk_score: int = Field(description="0-100 probability of being AI")
    confidence: str = Field(description="String representation (e.g. '98%')")
    visual_artifacts: List[VisualArtifact] = Field(
        description="List of specific visual artifacts detected"
    )
    metadata_analysis: MetadataAnalysis
    explanation: str = Field(description="Detailed forensic summary.")


# --------------------------------------------------------------------------- #
# Tagged outcome: the discriminant is the mode the request was made in        #
# --------------------------------------------------------------------------- #


class AudioOutcome(BaseModel):
    mode: Literal[AnalysisMode.AUDIO] = AnalysisMode.AUDIO
    result: AudioAnalysisResult


class ImageOutcome(BaseModel):
    mode: Literal[AnalysisMode.IMAGE] = AnalysisMode.IMAGE
    result: VisualAnalysisResult


AnalysisOutcome = Annotated[Union[AudioOutcome, ImageOutcome], Field(discriminator="mode")]


def make_outcome(mode: AnalysisMode, result: BaseModel) -> Union[AudioOutcome, ImageOutcome]:
    if mode is AnalysisMode.AUDIO:
        return AudioOutcome(result=result)
    return ImageOutcome(result=result)


# --------------------------------------------------------------------------- #
# Request                                                                      #
# --------------------------------------------------------------------------- #


class AnalysisRequest(BaseModel):
    """One stateless upstream request: evidence plus the fixed prompt contract."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    mode: AnalysisMode
    payload: str
    media_type: str
    system_instruction: str
    prompt: str
    response_schema: type[BaseModel]
