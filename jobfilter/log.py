"""Process logging: stdout plus one file per day next to the JSON journals."""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
# HTTP client chatter drowns out the cycle log at INFO.
_NOISY = ("httpx", "httpcore", "openai", "urllib3")
_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; the first call sets up the root handlers."""
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def log_file_path(now: datetime | None = None) -> Path:
    log_dir = Path(os.environ.get("LOG_DIR", "").strip() or "./data/logs")
    return log_dir / f"jobfilter_{(now or datetime.now()).strftime('%Y-%m-%d')}.log"


def _configure() -> None:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    for name in _NOISY:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if root.handlers:
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    path = log_file_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        root.warning("File logging disabled, cannot open %s: %s", path, exc)
        return
    fh.setFormatter(formatter)
    root.addHandler(fh)
