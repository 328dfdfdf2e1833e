from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - [%(name)s] - %(levelname)s - %(message)s"


def setup_logging(level: str | int = "INFO", *, log_dir: Optional[str | Path] = "logs") -> None:
    """Console logging plus a rotating ``app.log`` under ``log_dir``.

    Passing ``log_dir=None`` keeps logging on the console only.
    """
    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)

    # replace whatever handlers the host (flask, pytest) installed
    if root.hasHandlers():
        root.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(stdout_handler)

    if log_dir is not None:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        # 5 MB per file, 5 backups
        file_handler = RotatingFileHandler(path / "app.log", maxBytes=5 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)
