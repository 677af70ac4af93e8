from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict


LOG_LEVEL_ENV = "FRAMEPROBE_LOG_LEVEL"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    level = os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    logger.setLevel(getattr(logging, level, logging.INFO))
    return logger


def log_params(logger: logging.Logger, step: str, params: Dict[str, Any]) -> None:
    logger.info("%s params: %s", step, json.dumps(params, sort_keys=True, default=str))
