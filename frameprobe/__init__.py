from pathlib import Path
from typing import Optional, Union

from .config import Config, load_config
from .errors import (
    EmptyInputError,
    FrameProbeError,
    InvalidVideoError,
    NoFramesExtractedError,
    QuotaExhaustedError,
    RateLimitedError,
    TransportError,
)
from .types import AnalysisResult, AnalysisStep, Frame, FrameVerdict, ProgressEvent, Verdict, VideoSource
from .policy import recommended_frame_count
from .sampling import extract_frames, load_video_source, open_video_source
from .oracle import FrameClassifier, RemoteClassifier
from .batch import classify_all
from .aggregate import aggregate
from .pipeline import AnalysisPipeline, ProgressListener


def analyze_video(
    source: Union[str, Path, bytes, VideoSource],
    config: Optional[Config] = None,
    classifier: Optional[FrameClassifier] = None,
    on_progress: Optional[ProgressListener] = None,
) -> AnalysisResult:
    """
    Public entrypoint for the frameprobe engine.

    Sample frames from the video, classify each with the oracle, and return the
    aggregated AnalysisResult. Raises a FrameProbeError subclass on failure.
    """
    if isinstance(source, (str, Path)):
        source = open_video_source(str(source))
    pipeline = AnalysisPipeline(config, classifier=classifier, on_progress=on_progress)
    return pipeline.run(source)


__all__ = [
    "analyze_video",
    "AnalysisPipeline",
    "Config",
    "load_config",
    "AnalysisResult",
    "AnalysisStep",
    "Frame",
    "FrameVerdict",
    "ProgressEvent",
    "Verdict",
    "VideoSource",
    "recommended_frame_count",
    "extract_frames",
    "load_video_source",
    "open_video_source",
    "FrameClassifier",
    "RemoteClassifier",
    "classify_all",
    "aggregate",
    "FrameProbeError",
    "InvalidVideoError",
    "NoFramesExtractedError",
    "TransportError",
    "RateLimitedError",
    "QuotaExhaustedError",
    "EmptyInputError",
]
