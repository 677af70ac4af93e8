from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

import cv2
import numpy as np


DEFAULT_MAX_DIM = 1280
DEFAULT_SUFFIX = ".mp4"


def scaled_size(width: int, height: int, max_dim: Optional[int] = DEFAULT_MAX_DIM) -> Tuple[int, int]:
    """
    Output size for a frame, keeping the aspect ratio.

    The larger side is capped at `max_dim`; smaller sources keep their size.
    """
    if max_dim is None or max(width, height) <= max_dim:
        return int(width), int(height)
    scale = max_dim / max(width, height)
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


@contextmanager
def spooled_capture(data: bytes, suffix: str = DEFAULT_SUFFIX) -> Iterator[cv2.VideoCapture]:
    """
    Open an in-memory video with OpenCV.

    VideoCapture only reads from paths, so the bytes are written to a temporary
    file that lives as long as the capture. Both are released on exit.
    """
    fd, path = tempfile.mkstemp(prefix="frameprobe_", suffix=suffix or DEFAULT_SUFFIX)
    cap = None
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        cap = cv2.VideoCapture(path)
        if not cap.isOpened():
            raise ValueError("Cannot open video")
        yield cap
    finally:
        if cap is not None:
            cap.release()
        try:
            os.unlink(path)
        except OSError:
            pass


def probe_capture(cap: cv2.VideoCapture) -> Dict[str, float]:
    fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
    if fps <= 0:
        fps = 30.0
    width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
    height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
    frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
    if frame_count <= 0:
        # Some containers do not report a frame count; walk the stream instead.
        frame_count = 0
        while True:
            ret, _ = cap.read()
            if not ret:
                break
            frame_count += 1
        cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
    return {
        "fps": float(fps),
        "width": width,
        "height": height,
        "frame_count": frame_count,
        "duration": frame_count / fps if frame_count else 0.0,
    }


def read_frame_at(cap: cv2.VideoCapture, timestamp: float, fps: float, frame_count: int) -> Optional[np.ndarray]:
    """Seek to `timestamp` seconds and decode one frame, or None on failure."""
    target = int(timestamp * fps)
    if frame_count > 0:
        target = min(target, frame_count - 1)
    if not cap.set(cv2.CAP_PROP_POS_FRAMES, max(target, 0)):
        return None
    ret, frame = cap.read()
    if not ret or frame is None:
        return None
    return frame


def encode_jpeg(frame: np.ndarray, quality: float) -> bytes:
    """JPEG-encode a BGR frame; `quality` is in (0, 1]."""
    q = int(np.clip(round(quality * 100), 1, 100))
    ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, q])
    if not ok:
        raise ValueError("JPEG encoding failed")
    return buf.tobytes()


def decode_image(data: bytes) -> np.ndarray:
    arr = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("Cannot decode image")
    return img
