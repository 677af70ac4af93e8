from __future__ import annotations

import concurrent.futures
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from .oracle import FrameClassifier
from .types import Frame, FrameVerdict
from .utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 3

GroupCallback = Callable[[int, int], None]


def _aligned(frame: Frame, verdict: FrameVerdict) -> FrameVerdict:
    if verdict.frame_index == frame.index:
        return verdict
    logger.warning(
        "Classifier returned index %d for frame %d; re-keying",
        verdict.frame_index,
        frame.index,
    )
    return replace(verdict, frame_index=frame.index)


def classify_all(
    frames: Sequence[Frame],
    classifier: FrameClassifier,
    concurrency_limit: int = DEFAULT_CONCURRENCY,
    on_group: Optional[GroupCallback] = None,
) -> List[FrameVerdict]:
    """
    Classify frames in fixed-size groups.

    Calls inside a group run concurrently on a thread pool; groups run one
    after another so at most `concurrency_limit` oracle calls are in flight.
    Results keep the input order. The first failure in a group is re-raised
    once the whole group has settled, and no partial result is returned.
    """
    if concurrency_limit <= 0:
        raise ValueError("concurrency_limit must be positive")

    verdicts: List[FrameVerdict] = []
    total = len(frames)
    if total == 0:
        return verdicts

    logger.info(
        "Classifying %d frames in groups of %d", total, concurrency_limit
    )
    with concurrent.futures.ThreadPoolExecutor(max_workers=concurrency_limit) as executor:
        for start in range(0, total, concurrency_limit):
            group = frames[start:start + concurrency_limit]
            futures = [executor.submit(classifier.classify, frame) for frame in group]
            concurrent.futures.wait(futures)
            # future.result() re-raises the call's exception
            verdicts.extend(
                _aligned(frame, future.result()) for frame, future in zip(group, futures)
            )
            if on_group is not None:
                on_group(len(verdicts), total)

    return verdicts
