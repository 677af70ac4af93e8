from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class SamplingConfig:
    # None = pick the frame count from the video duration
    max_frames: Optional[int] = None
    quality: float = 0.8
    max_dimension: int = 1280


@dataclass
class OracleConfig:
    endpoint: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    model: str = "google/gemini-2.5-flash"
    max_tokens: int = 500
    timeout_seconds: float = 60.0
    api_key: Optional[str] = None
    api_key_env: str = "FRAMEPROBE_API_KEY"

    def resolve_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        value = os.getenv(self.api_key_env, "").strip()
        return value or None


@dataclass
class BatchConfig:
    concurrency_limit: int = 3


@dataclass
class AggregationConfig:
    min_confidence: float = 0.5
    max_confidence: float = 0.99


@dataclass
class EvidenceConfig:
    enable_plots: bool = True  # per-frame confidence chart
    save_frames: bool = True  # sampled frames as JPEGs


@dataclass
class Config:
    """
    Top-level configuration for the frameprobe pipeline.
    """

    config_version: str = "0.1.0"
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    evidence: EvidenceConfig = field(default_factory=EvidenceConfig)
    extra: Dict[str, Any] = field(default_factory=dict)


_SECTIONS = ("sampling", "oracle", "batch", "aggregation", "evidence")


def load_config(config_path: Optional[str]) -> Config:
    """
    Build a Config from an optional JSON file.

    The file holds one object per section ("sampling", "oracle", ...); keys the
    section does not know are ignored.
    """
    cfg = Config()
    if not config_path:
        return cfg
    p = Path(config_path)
    if not p.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    data: Dict[str, Any] = json.loads(p.read_text(encoding="utf-8"))
    for name in _SECTIONS:
        overrides = data.get(name)
        if not overrides:
            continue
        section = getattr(cfg, name)
        for key, value in overrides.items():
            if hasattr(section, key):
                setattr(section, key, value)
    if "extra" in data:
        cfg.extra.update(data["extra"])
    return cfg
