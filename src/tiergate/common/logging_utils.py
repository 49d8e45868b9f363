from __future__ import annotations

import logging
from pathlib import Path


LOG_FILE_NAME = "tiergate.log"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_level(level: str) -> int:
    return getattr(logging, str(level or "").upper(), logging.INFO)


def configure_logging(log_dir: Path, level: str = "INFO") -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    # force replaces handlers a host process may already have installed.
    logging.basicConfig(
        level=resolve_level(level),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8"),
            logging.StreamHandler(),
        ],
        force=True,
    )
