from __future__ import annotations

import time
from typing import Callable, List, Optional, Union

from .aggregate import aggregate
from .batch import classify_all
from .config import Config
from .errors import FrameProbeError
from .oracle import FrameClassifier, RemoteClassifier
from .policy import recommended_frame_count
from .sampling import extract_frames, load_video_source
from .types import AnalysisResult, AnalysisStep, Frame, ProgressEvent, VideoSource
from .utils.logging import get_logger, log_params

logger = get_logger(__name__)

ProgressListener = Callable[[ProgressEvent], None]

# Overall progress bands per step
EXTRACT_END = 25.0
ANALYZE_START = 30.0
ANALYZE_END = 80.0
COMPUTE_AT = 85.0
DONE_AT = 100.0


class AnalysisPipeline:
    """
    Drives one analysis: sample frames, classify them, aggregate the verdicts.

    The pipeline is the only writer of its state (`step`, `progress`,
    `frames`, `result`, `error`). Listeners get a ProgressEvent for every change.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        classifier: Optional[FrameClassifier] = None,
        on_progress: Optional[ProgressListener] = None,
    ) -> None:
        self.config = config or Config()
        self._classifier = classifier
        self._listeners: List[ProgressListener] = []
        if on_progress is not None:
            self._listeners.append(on_progress)
        self.reset()

    def subscribe(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    @property
    def classifier(self) -> FrameClassifier:
        if self._classifier is None:
            self._classifier = RemoteClassifier(self.config.oracle)
        return self._classifier

    def reset(self) -> None:
        self.step = AnalysisStep.EXTRACTING
        self.progress = 0.0
        self.is_processing = False
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[str] = None
        self.frames: List[Frame] = []

    def _report(self, step: AnalysisStep, progress: float, message: Optional[str] = None) -> None:
        self.step = step
        self.progress = max(0.0, min(DONE_AT, progress))
        event = ProgressEvent(step=step, progress=self.progress, message=message)
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("Progress listener failed; continuing")

    def run(self, video: Union[VideoSource, bytes], name: Optional[str] = None) -> AnalysisResult:
        return self._execute(lambda start: self._run(video, name, start))

    def run_frames(self, frames: List[Frame]) -> AnalysisResult:
        """Classify and aggregate frames sampled elsewhere."""
        return self._execute(lambda start: self._classify_and_aggregate(frames, start))

    def _execute(self, body: Callable[[float], AnalysisResult]) -> AnalysisResult:
        self.reset()
        self.is_processing = True
        start = time.monotonic()
        try:
            result = body(start)
        except Exception as exc:
            self.result = None
            self.frames = []
            self.error = exc.user_message if isinstance(exc, FrameProbeError) else str(exc)
            self.is_processing = False
            logger.error("Analysis failed: %s: %s", exc.__class__.__name__, exc)
            raise
        self.result = result
        self.is_processing = False
        return result

    def _run(self, video: Union[VideoSource, bytes], name: Optional[str], start: float) -> AnalysisResult:
        self._report(AnalysisStep.EXTRACTING, 0.0, "Loading video")
        source = video if isinstance(video, VideoSource) else load_video_source(video, name)

        sampling = self.config.sampling
        frame_count = sampling.max_frames or recommended_frame_count(source.duration)
        log_params(
            logger,
            "pipeline",
            {
                "video": source.name,
                "duration": source.duration,
                "frame_count": frame_count,
                "concurrency_limit": self.config.batch.concurrency_limit,
            },
        )

        frames: List[Frame] = extract_frames(
            source,
            frame_count,
            quality=sampling.quality,
            max_dimension=sampling.max_dimension,
            on_progress=lambda pct: self._report(
                AnalysisStep.EXTRACTING, pct / 100.0 * EXTRACT_END
            ),
        )

        return self._classify_and_aggregate(frames, start)

    def _classify_and_aggregate(self, frames: List[Frame], start: float) -> AnalysisResult:
        self.frames = list(frames)
        self._report(AnalysisStep.ANALYZING, ANALYZE_START, f"Analyzing {len(frames)} frames")
        verdicts = classify_all(
            frames,
            self.classifier,
            concurrency_limit=self.config.batch.concurrency_limit,
            on_group=lambda done, total: self._report(
                AnalysisStep.ANALYZING,
                ANALYZE_START + (ANALYZE_END - ANALYZE_START) * done / total,
            ),
        )

        self._report(AnalysisStep.COMPUTING, COMPUTE_AT, "Computing final score")
        result = aggregate(
            verdicts,
            frames_analyzed=len(frames),
            elapsed=time.monotonic() - start,
            config=self.config,
        )

        self._report(AnalysisStep.GENERATING, DONE_AT, "Analysis complete")
        logger.info(
            "Analysis complete: %s (%.1f%% confidence)",
            result.verdict.value,
            result.confidence * 100,
        )
        return result

