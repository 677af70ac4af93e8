from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional

import cv2
import numpy as np
import pytest

from frameprobe.types import Frame, FrameVerdict


def make_synthetic_video(
    path: Path, num_frames: int = 90, fps: int = 30, size: tuple = (64, 64)
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    width, height = size
    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
    out = cv2.VideoWriter(str(path), fourcc, fps, (width, height))
    for i in range(num_frames):
        img = np.full((height, width, 3), (i * 2) % 255, dtype=np.uint8)
        cv2.putText(
            img,
            str(i),
            (10, height // 2),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.5,
            (255, 255, 255),
            1,
            cv2.LINE_AA,
        )
        out.write(img)
    out.release()
    return path


def jpeg_bytes(width: int = 32, height: int = 32) -> bytes:
    img = np.zeros((height, width, 3), dtype=np.uint8)
    ok, buf = cv2.imencode(".jpg", img)
    assert ok
    return buf.tobytes()


def make_frames(count: int) -> list:
    image = jpeg_bytes()
    return [
        Frame(index=i, timestamp=float(i + 1), image=image, width=32, height=32)
        for i in range(count)
    ]


def verdict(
    index: int,
    is_artificial: bool = False,
    confidence: float = 0.8,
    score: float = 0.7,
) -> FrameVerdict:
    return FrameVerdict(
        frame_index=index,
        is_artificial=is_artificial,
        confidence=confidence,
        face_score=score,
        lighting_score=score,
        artifact_score=score,
        quality_score=score,
    )


class StubClassifier:
    """In-process classifier: verdicts come from `decide(frame)`."""

    def __init__(
        self,
        decide: Optional[Callable[[Frame], FrameVerdict]] = None,
        delays: Optional[Dict[int, float]] = None,
    ) -> None:
        self.decide = decide or (lambda frame: verdict(frame.index))
        self.delays = delays or {}
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def classify(self, frame: Frame) -> FrameVerdict:
        with self._lock:
            self.calls.append(frame.index)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            time.sleep(self.delays.get(frame.index, 0.0))
            return self.decide(frame)
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def synthetic_video(tmp_path: Path) -> Path:
    return make_synthetic_video(tmp_path / "synthetic.mp4", num_frames=90, fps=30)
