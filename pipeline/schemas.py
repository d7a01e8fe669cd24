"""
Pydantic schemas for the analysis pipeline.

Request models (what the pipeline sends to the model service):
    - TextSegment / MediaSegment: one unit of a multi-modal request
    - AnalysisRequest: ordered segments plus the selected capability tier

Result models (what comes back and what gets persisted):
    - AnalysisResult: the structured risk assessment
    - HistoryItem: one persisted entry of the analysis history

Result models keep the service's camelCase names as aliases so that
the JSON on the wire and on disk matches what the model produces,
while Python code uses snake_case attributes.
"""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MediaClass(str, Enum):
    """Kind of inline binary attached to a request."""
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"


class CapabilityTier(str, Enum):
    """Backend profile used for a request."""
    STANDARD = "standard"
    EXTENDED = "extended"


class RiskLevel(str, Enum):
    """Categorical risk level of an analysis."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ============================================================================
# REQUEST MODELS (Pipeline -> model service)
# ============================================================================

class TextSegment(BaseModel):
    """Plain text content (task description or modality instruction)."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str


class MediaSegment(BaseModel):
    """Inline binary content with its declared media kind."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["inline_media"] = "inline_media"
    media_class: MediaClass
    mime_type: str
    data: bytes

    @field_validator("mime_type")
    @classmethod
    def mime_well_formed(cls, v: str) -> str:
        v = v.strip().lower()
        if "/" not in v:
            raise ValueError(f"Invalid MIME type: {v!r}")
        return v

    @model_validator(mode="after")
    def segment_consistent(self) -> "MediaSegment":
        if not self.data:
            raise ValueError("Media segment must carry at least one byte")
        if not self.mime_type.startswith(self.media_class.value + "/"):
            raise ValueError(
                f"MIME type {self.mime_type!r} does not match media class {self.media_class.value!r}"
            )
        return self


ContentSegment = Annotated[Union[TextSegment, MediaSegment], Field(discriminator="kind")]


def segments_have_media(segments, media_class: MediaClass) -> bool:
    return any(isinstance(s, MediaSegment) and s.media_class is media_class for s in segments)


class AnalysisRequest(BaseModel):
    """A fully assembled, immutable request for a single inference call."""
    model_config = ConfigDict(frozen=True)

    segments: Tuple[ContentSegment, ...]
    capability_tier: CapabilityTier
    extended_reasoning: bool = False
    reasoning_budget: Optional[int] = Field(default=None, gt=0)

    @field_validator("segments")
    @classmethod
    def at_least_one_segment(cls, v):
        if not v:
            raise ValueError("Request must contain at least one segment")
        return v

    @model_validator(mode="after")
    def budget_only_when_extended(self) -> "AnalysisRequest":
        if self.extended_reasoning and self.reasoning_budget is None:
            raise ValueError("Extended reasoning requires a reasoning budget")
        if not self.extended_reasoning and self.reasoning_budget is not None:
            raise ValueError("Reasoning budget is only allowed with extended reasoning")
        return self

    def has_media(self, media_class: MediaClass) -> bool:
        return segments_have_media(self.segments, media_class)


# ============================================================================
# RESULT MODELS (model service -> caller / history)
# ============================================================================

class AnalysisResult(BaseModel):
    """Structured fraud / social-engineering assessment.

    scam_likelihood and vibe_score are independent axes; only their range
    is enforced. timestamp is stamped locally after a successful call and
    is never accepted from the remote service.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    verdict: str
    scam_likelihood: float = Field(..., ge=0, le=100, alias="scamLikelihood")
    vibe_score: float = Field(..., ge=0, le=100, alias="vibeScore")
    risk_level: RiskLevel = Field(..., alias="riskLevel")
    scam_type: str = Field(..., alias="scamType")
    sender_intent: str = Field(..., alias="senderIntent")
    summary: str
    red_flags: List[str] = Field(..., alias="redFlags")
    green_flags: List[str] = Field(..., alias="greenFlags")
    advice: str
    transcription: Optional[str] = None
    content_analysis: Optional[str] = Field(default=None, alias="contentAnalysis")
    thought_process: Optional[str] = Field(default=None, alias="thoughtProcess")
    timestamp: Optional[int] = None

    def to_json_dict(self) -> dict:
        """Wire/disk representation (camelCase, enums as strings)."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class HistoryItem(BaseModel):
    """One entry of the persisted analysis history. Never mutated."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    timestamp: int
    snippet: str
    result: AnalysisResult
    has_image: bool = Field(default=False, alias="hasImage")
    has_audio: bool = Field(default=False, alias="hasAudio")
    has_video: bool = Field(default=False, alias="hasVideo")

    def to_json_dict(self) -> dict:
        data = self.model_dump(by_alias=True, mode="json", exclude={"result"})
        data["result"] = self.result.to_json_dict()
        return data
