from __future__ import annotations

import base64
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


NEUTRAL_SCORE = 0.5
NEUTRAL_ISSUE = "Unable to analyze frame"


class Verdict(str, Enum):
    REAL = "real"
    AI_GENERATED = "ai-generated"


class AnalysisStep(str, Enum):
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    COMPUTING = "computing"
    GENERATING = "generating"


@dataclass(frozen=True)
class VideoSource:
    data: bytes = field(repr=False)
    duration: float
    width: int
    height: int
    fps: float
    frame_count: int
    name: Optional[str] = None


@dataclass(frozen=True)
class Frame:
    index: int
    timestamp: float
    image: bytes = field(repr=False)
    width: int = 0
    height: int = 0

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.image).decode("ascii")
        return f"data:image/jpeg;base64,{encoded}"


@dataclass(frozen=True)
class FrameVerdict:
    frame_index: int
    is_artificial: bool
    confidence: float
    face_score: float
    lighting_score: float
    artifact_score: float
    quality_score: float
    issues: Tuple[str, ...] = ()

    @classmethod
    def neutral(cls, frame_index: int) -> "FrameVerdict":
        """Fallback used when an oracle reply cannot be parsed."""
        return cls(
            frame_index=frame_index,
            is_artificial=False,
            confidence=NEUTRAL_SCORE,
            face_score=NEUTRAL_SCORE,
            lighting_score=NEUTRAL_SCORE,
            artifact_score=NEUTRAL_SCORE,
            quality_score=NEUTRAL_SCORE,
            issues=(NEUTRAL_ISSUE,),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["issues"] = list(self.issues)
        return data


@dataclass(frozen=True)
class AnalysisDetails:
    face_consistency: float
    temporal_coherence: float
    artifact_score: float
    compression_analysis: float


@dataclass(frozen=True)
class AnalysisResult:
    confidence: float
    verdict: Verdict
    details: AnalysisDetails
    frames_analyzed: int
    processing_time: float
    frame_verdicts: Tuple[FrameVerdict, ...]
    config_version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["verdict"] = self.verdict.value
        data["frame_verdicts"] = [v.to_dict() for v in self.frame_verdicts]
        return data


@dataclass(frozen=True)
class ProgressEvent:
    step: AnalysisStep
    progress: float
    message: Optional[str] = None
