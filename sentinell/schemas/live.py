from pydantic import BaseModel, Field
from typing import List, Literal


class ScamRiskResult(BaseModel):
    """Gemini structured output schema for the live-monitor risk check."""
    risk_score: int = Field(description="0-100")
    risk_level: Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
    warning_message: str
    detected_patterns: List[str]


class TranscriptionResult(BaseModel):
    """Gemini structured output schema for one recorded audio clip."""
    transcript: str
    detected_language: str
    summary: str


class ScamRiskRequest(BaseModel):
    text: str


class TranscriptTurn(BaseModel):
    user: str = ""
    model: str = ""
