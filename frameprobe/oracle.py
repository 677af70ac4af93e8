from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional, Protocol, Tuple

import requests

from .config import OracleConfig
from .errors import ConfigError, QuotaExhaustedError, RateLimitedError, TransportError
from .types import NEUTRAL_SCORE, Frame, FrameVerdict
from .utils.logging import get_logger


logger = get_logger(__name__)


FORENSIC_RUBRIC = """You are an expert AI forensics analyst specializing in detecting AI-generated and manipulated videos (deepfakes).

Analyze this video frame for signs of AI generation or manipulation. Look for:

1. **Face Artifacts**: Unnatural skin texture, blurring around face edges, asymmetric features, uncanny valley effects
2. **Lighting Inconsistencies**: Shadows that don't match light sources, uneven illumination across the face
3. **Temporal Artifacts**: Blending seams, warping around hair/ears/neck boundaries
4. **Detail Anomalies**: Missing or duplicated details, unnatural eye reflections, teeth irregularities
5. **Compression Artifacts**: Unusual patterns that suggest manipulation followed by re-encoding
6. **Background Coherence**: Mismatched backgrounds, floating elements, perspective errors

Respond with a JSON object (no markdown, just raw JSON):
{
  "isArtificial": boolean,
  "confidence": number (0-1, how confident you are in your assessment),
  "faceScore": number (0-1, face naturalness, 1 = natural),
  "lightingScore": number (0-1, lighting consistency, 1 = consistent),
  "artifactScore": number (0-1, absence of artifacts, 1 = no artifacts),
  "qualityScore": number (0-1, overall quality/naturalness, 1 = high quality real),
  "issues": string[] (list of specific issues found, empty if none)
}"""

_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```")
_ERROR_BODY_LIMIT = 300


class FrameClassifier(Protocol):
    """Anything that turns one frame into a FrameVerdict."""

    def classify(self, frame: Frame) -> FrameVerdict:
        ...


def strip_code_fences(content: str) -> str:
    return _FENCE_RE.sub("", content).strip()


def _score(value: Any, default: float = NEUTRAL_SCORE) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError("boolean is not a score")
    score = float(value)
    if score != score:  # NaN
        raise ValueError("score is NaN")
    return min(1.0, max(0.0, score))


def _flag(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"isArtificial is not a boolean: {value!r}")


def _issues(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    raise ValueError(f"issues is not a list: {value!r}")


def parse_verdict(content: str, frame_index: int) -> FrameVerdict:
    """
    Turn the oracle's reply text into a FrameVerdict.

    Replies that are not a JSON object with usable fields fall back to the
    neutral verdict so one bad reply never sinks the batch.
    """
    try:
        data = json.loads(strip_code_fences(content or ""))
        if not isinstance(data, dict):
            raise ValueError("reply is not a JSON object")
        return FrameVerdict(
            frame_index=frame_index,
            is_artificial=_flag(data.get("isArtificial")),
            confidence=_score(data.get("confidence")),
            face_score=_score(data.get("faceScore")),
            lighting_score=_score(data.get("lightingScore")),
            artifact_score=_score(data.get("artifactScore")),
            quality_score=_score(data.get("qualityScore")),
            issues=_issues(data.get("issues")),
        )
    except (ValueError, TypeError) as exc:
        logger.warning(
            "Failed to parse oracle reply for frame %d (%s): %r",
            frame_index,
            exc,
            (content or "")[:_ERROR_BODY_LIMIT],
        )
        return FrameVerdict.neutral(frame_index)


class RemoteClassifier:
    """
    Classify frames with a chat-completions style vision model over HTTP.
    """

    def __init__(self, config: OracleConfig, session: Optional[requests.Session] = None) -> None:
        api_key = config.resolve_api_key()
        if not api_key:
            raise ConfigError(
                f"Missing API key: set {config.api_key_env} or oracle.api_key"
            )
        self.config = config
        self._api_key = api_key
        # requests.Session is not thread-safe; without an injected session each
        # call opens and closes its own.
        self._session = session

    def build_request(self, frame: Frame) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": FORENSIC_RUBRIC},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": f"Analyze frame {frame.index + 1} for deepfake indicators:",
                        },
                        {"type": "image_url", "image_url": {"url": frame.to_data_uri()}},
                    ],
                },
            ],
            "max_tokens": self.config.max_tokens,
        }

    def _post(self, headers: Dict[str, str], body: Dict[str, Any]) -> requests.Response:
        if self._session is not None:
            return self._session.post(
                self.config.endpoint, headers=headers, json=body, timeout=self.config.timeout_seconds
            )
        with requests.Session() as session:
            return session.post(
                self.config.endpoint, headers=headers, json=body, timeout=self.config.timeout_seconds
            )

    def classify(self, frame: Frame) -> FrameVerdict:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self._post(headers, self.build_request(frame))
        except requests.RequestException as exc:
            logger.error("Oracle request for frame %d failed: %s", frame.index, exc)
            raise TransportError(f"Classification service unreachable: {exc}") from exc

        status = response.status_code
        if status == 429:
            raise RateLimitedError()
        if status == 402:
            raise QuotaExhaustedError()
        if not 200 <= status < 300:
            body = (response.text or "")[:_ERROR_BODY_LIMIT]
            logger.error("Oracle error for frame %d: %s %s", frame.index, status, body)
            raise TransportError(f"AI gateway error: {status}", status_code=status)

        try:
            payload = response.json()
            content = payload["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError):
            content = ""
        return parse_verdict(content, frame.index)
