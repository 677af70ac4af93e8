from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from .config import AggregationConfig, Config
from .errors import EmptyInputError
from .types import AnalysisDetails, AnalysisResult, FrameVerdict, Verdict
from .utils.logging import get_logger

logger = get_logger(__name__)


def aggregate(
    verdicts: Sequence[FrameVerdict],
    frames_analyzed: Optional[int] = None,
    elapsed: float = 0.0,
    config: Optional[Config] = None,
) -> AnalysisResult:
    """
    Combine per-frame verdicts into one result.

    The label is a strict majority vote over frames (a tie is Real). The
    confidence is the share of frames agreeing with the label times the mean
    self-reported confidence, clamped so it never drops below a coin flip or
    claims certainty. Sub-scores are plain means of the per-frame scores.
    """
    if not verdicts:
        raise EmptyInputError()

    cfg = config or Config()
    agg: AggregationConfig = cfg.aggregation
    total = frames_analyzed if frames_analyzed is not None else len(verdicts)
    if total <= 0:
        raise EmptyInputError("frames_analyzed must be at least 1.")

    artificial = sum(1 for v in verdicts if v.is_artificial)
    avg_confidence = float(np.mean([v.confidence for v in verdicts]))
    avg_face = float(np.mean([v.face_score for v in verdicts]))
    avg_lighting = float(np.mean([v.lighting_score for v in verdicts]))
    avg_artifact = float(np.mean([v.artifact_score for v in verdicts]))
    avg_quality = float(np.mean([v.quality_score for v in verdicts]))

    is_ai = artificial > total / 2
    agreeing = artificial if is_ai else total - artificial
    raw_confidence = (agreeing / total) * avg_confidence
    confidence = float(min(agg.max_confidence, max(agg.min_confidence, raw_confidence)))
    verdict = Verdict.AI_GENERATED if is_ai else Verdict.REAL

    logger.info(
        f"Aggregate: artificial={artificial}/{total}, avg_conf={avg_confidence:.3f}, "
        f"raw={raw_confidence:.3f}, final={confidence:.3f}, verdict={verdict.value}"
    )

    return AnalysisResult(
        confidence=confidence,
        verdict=verdict,
        details=AnalysisDetails(
            face_consistency=avg_face,
            temporal_coherence=avg_lighting,
            artifact_score=avg_artifact,
            compression_analysis=avg_quality,
        ),
        frames_analyzed=total,
        processing_time=float(elapsed),
        frame_verdicts=tuple(sorted(verdicts, key=lambda v: v.frame_index)),
        config_version=cfg.config_version,
    )
