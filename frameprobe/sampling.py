from __future__ import annotations

import base64
import binascii
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

import cv2

from .errors import InvalidVideoError, NoFramesExtractedError
from .types import Frame, VideoSource
from .utils.logging import get_logger, log_params
from .utils.video import (
    DEFAULT_MAX_DIM,
    decode_image,
    encode_jpeg,
    probe_capture,
    read_frame_at,
    scaled_size,
    spooled_capture,
)


logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]


def _suffix(name: Optional[str]) -> str:
    if name:
        suffix = Path(name).suffix
        if suffix:
            return suffix
    return ".mp4"


def load_video_source(data: bytes, name: Optional[str] = None) -> VideoSource:
    """Probe raw video bytes and wrap them in a VideoSource."""
    if not data:
        raise InvalidVideoError("Video file is empty.")
    try:
        with spooled_capture(data, _suffix(name)) as cap:
            info = probe_capture(cap)
    except ValueError as exc:
        raise InvalidVideoError(f"Failed to load video file: {exc}") from exc

    if info["duration"] <= 0 or info["width"] <= 0 or info["height"] <= 0:
        raise InvalidVideoError("Failed to load video file: no decodable frames.")

    source = VideoSource(
        data=data,
        duration=float(info["duration"]),
        width=int(info["width"]),
        height=int(info["height"]),
        fps=float(info["fps"]),
        frame_count=int(info["frame_count"]),
        name=name,
    )
    logger.info(
        "Loaded video %s: %.2fs, %dx%d @ %.2f fps",
        name or "<bytes>",
        source.duration,
        source.width,
        source.height,
        source.fps,
    )
    return source


def open_video_source(path: str) -> VideoSource:
    p = Path(path)
    if not p.is_file():
        raise InvalidVideoError(f"Video file not found: {path}")
    return load_video_source(p.read_bytes(), name=p.name)


def sample_timestamps(duration: float, max_frames: int) -> List[float]:
    """
    Evenly spaced interior timestamps.

    Never t=0 or t=duration, which are often black lead-in/lead-out frames.
    """
    interval = duration / (max_frames + 1)
    return [interval * i for i in range(1, max_frames + 1)]


def output_size(width: int, height: int, max_dimension: int = DEFAULT_MAX_DIM) -> Tuple[int, int]:
    return scaled_size(width, height, max_dimension)


@contextmanager
def video_capture(video: VideoSource) -> Iterator[cv2.VideoCapture]:
    """
    Decode/seek handle for a VideoSource, released on exit.

    Only a failure to open the capture becomes InvalidVideoError; errors
    raised inside the caller's block pass through unchanged.
    """
    with ExitStack() as stack:
        try:
            cap = stack.enter_context(spooled_capture(video.data, _suffix(video.name)))
        except ValueError as exc:
            raise InvalidVideoError(f"Failed to load video file: {exc}") from exc
        yield cap


def extract_frames(
    video: VideoSource,
    max_frames: int,
    quality: float = 0.8,
    on_progress: Optional[ProgressCallback] = None,
    max_dimension: int = DEFAULT_MAX_DIM,
) -> List[Frame]:
    if max_frames <= 0:
        raise ValueError("max_frames must be positive")
    if not 0.0 < quality <= 1.0:
        raise ValueError("quality must be in (0, 1]")

    timestamps = sample_timestamps(video.duration, max_frames)
    width, height = output_size(video.width, video.height, max_dimension)
    log_params(
        logger,
        "sampling",
        {
            "duration": video.duration,
            "max_frames": max_frames,
            "quality": quality,
            "output_size": [width, height],
        },
    )

    frames: List[Frame] = []
    with video_capture(video) as cap:
        for i, ts in enumerate(timestamps):
            try:
                image = read_frame_at(cap, ts, video.fps, video.frame_count)
                if image is None:
                    raise ValueError(f"Failed to seek to {ts:.3f}s")
                if (image.shape[1], image.shape[0]) != (width, height):
                    image = cv2.resize(image, (width, height), interpolation=cv2.INTER_AREA)
                encoded = encode_jpeg(image, quality)
            except (ValueError, cv2.error) as exc:
                logger.warning("Failed to capture frame at %.3fs: %s", ts, exc)
                continue

            frames.append(
                Frame(
                    index=len(frames),
                    timestamp=ts,
                    image=encoded,
                    width=width,
                    height=height,
                )
            )
            if on_progress is not None:
                on_progress((i + 1) / len(timestamps) * 100.0)

    if not frames:
        raise NoFramesExtractedError()

    logger.info("Extracted %d/%d frames", len(frames), len(timestamps))
    return frames


def frame_from_data_uri(index: int, uri: str) -> Frame:
    """
    Build a Frame from a `data:image/...;base64,` URI.

    Used for callers that sample frames themselves and only submit images.
    """
    _, sep, payload = uri.partition(",")
    if not sep:
        payload = uri
    try:
        raw = base64.b64decode(payload, validate=True)
        if not raw:
            raise ValueError("empty image payload")
        image = decode_image(raw)
    except (binascii.Error, ValueError, cv2.error) as exc:
        raise InvalidVideoError(f"Frame {index + 1} is not a valid image: {exc}") from exc
    if not raw.startswith(b"\xff\xd8"):
        # Frames are always sent to the oracle as JPEG.
        raw = encode_jpeg(image, 0.95)
    return Frame(
        index=index,
        timestamp=0.0,
        image=raw,
        width=int(image.shape[1]),
        height=int(image.shape[0]),
    )
