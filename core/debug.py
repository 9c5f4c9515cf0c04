# core/debug.py
import logging
import os
from pathlib import Path
from typing import Optional

from platformdirs import user_log_dir

from .config import APP_DIR_NAME

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def debug_enabled(debug: bool = False) -> bool:
    return debug or os.getenv("PRP_DEBUG") == "1"


def log_path() -> Path:
    return Path(user_log_dir(APP_DIR_NAME)) / "prp_debug.log"


def setup_logging(debug: bool = False) -> Optional[Path]:
    """
    Configure the root logger. In debug mode lines also go to a log file,
    whose path is returned.
    """
    verbose = debug_enabled(debug)
    handlers = [logging.StreamHandler()]
    path = None

    if verbose:
        path = log_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(path, encoding="utf-8"))
        except OSError:
            path = None

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )
    # urllib3 and the asyncio loop under pypresence are chatty at debug level
    logging.getLogger("urllib3").setLevel(logging.INFO)
    logging.getLogger("asyncio").setLevel(logging.INFO)
    return path
