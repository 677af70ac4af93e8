from __future__ import annotations

from typing import Optional


class FrameProbeError(Exception):
    """Base class for every failure the pipeline surfaces to its caller."""

    default_message = "Video analysis failed."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        return str(self)


class ConfigError(FrameProbeError):
    default_message = "Invalid configuration."


class InvalidVideoError(FrameProbeError):
    default_message = "Failed to load video file."


class NoFramesExtractedError(FrameProbeError):
    default_message = "Failed to extract any frames from video."


class EmptyInputError(FrameProbeError):
    default_message = "No frame verdicts to aggregate."


class TransportError(FrameProbeError):
    default_message = "Classification service request failed."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(TransportError):
    default_message = "Rate limit exceeded. Please try again in a moment."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message, status_code=429)


class QuotaExhaustedError(TransportError):
    default_message = "AI credits exhausted. Please add credits to continue."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message, status_code=402)
