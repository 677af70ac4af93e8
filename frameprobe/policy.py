from __future__ import annotations

from typing import Tuple

# (upper duration bound in seconds, frames to sample)
FRAME_COUNT_STEPS: Tuple[Tuple[float, int], ...] = (
    (10.0, 5),
    (30.0, 8),
    (60.0, 10),
    (180.0, 12),
)
MAX_FRAME_COUNT = 15


def recommended_frame_count(duration_seconds: float) -> int:
    """Number of frames to sample for a video of the given duration."""
    for bound, count in FRAME_COUNT_STEPS:
        if duration_seconds <= bound:
            return count
    return MAX_FRAME_COUNT
