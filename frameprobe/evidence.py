from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from .config import Config  # noqa: E402
from .types import AnalysisResult, Frame  # noqa: E402
from .utils.logging import get_logger  # noqa: E402

logger = get_logger(__name__)


def _plot_frame_confidence(result: AnalysisResult, path: Path) -> None:
    verdicts = result.frame_verdicts
    x = np.arange(1, len(verdicts) + 1)
    conf = np.asarray([v.confidence for v in verdicts], dtype=float)
    colors = ["tab:red" if v.is_artificial else "tab:green" for v in verdicts]

    plt.figure()
    plt.bar(x, conf, color=colors)
    plt.axhline(result.confidence, color="black", linestyle="--", linewidth=1)
    plt.ylim(0.0, 1.0)
    plt.xticks(x)
    plt.xlabel("Frame")
    plt.ylabel("Confidence")
    plt.title(f"Per-frame verdicts (red = artificial) - {result.verdict.value}")
    plt.tight_layout()
    plt.savefig(path)
    plt.close()


def write_evidence(
    out_dir: str,
    result: AnalysisResult,
    config: Config,
    frames: Optional[Sequence[Frame]] = None,
) -> Dict[str, Any]:
    """
    Write evidence artifacts for a finished analysis into out_dir.

    Writes:
      - summary.json with the full result
      - frames/frame_XX.jpg, the sampled frames sent to the oracle
      - plots/frame_confidence.png, per-frame confidence coloured by label
      - index.json listing artifacts
    """
    root = Path(out_dir)
    root.mkdir(parents=True, exist_ok=True)

    artifacts: Dict[str, Any] = {}

    summary_path = root / "summary.json"
    summary_path.write_text(
        json.dumps(result.to_dict(), indent=2, sort_keys=True), encoding="utf-8"
    )
    artifacts["summary"] = "summary.json"

    if config.evidence.save_frames and frames:
        frames_dir = root / "frames"
        frames_dir.mkdir(exist_ok=True)
        saved: List[str] = []
        for frame in frames:
            name = f"frame_{frame.index + 1:02d}.jpg"
            (frames_dir / name).write_bytes(frame.image)
            saved.append(f"frames/{name}")
        artifacts["frames"] = saved

    if config.evidence.enable_plots and result.frame_verdicts:
        plots_dir = root / "plots"
        plots_dir.mkdir(exist_ok=True)
        _plot_frame_confidence(result, plots_dir / "frame_confidence.png")
        artifacts["frame_confidence_plot"] = "plots/frame_confidence.png"

    index = {"config_version": config.config_version, "artifacts": artifacts}
    (root / "index.json").write_text(json.dumps(index, indent=2, sort_keys=True), encoding="utf-8")
    logger.info("Evidence written to %s: %s", root, sorted(artifacts))
    return artifacts
