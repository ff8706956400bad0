"""
Logging helpers.

The command line tool appends to a per-user rotating log file, so the Newton
iterations of a failed transform can be read back after the run.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
import threading
from pathlib import Path
from typing import Hashable, Optional

APP_NAME = "confmap"
ENV_LOG_LEVEL = "CONFMAP_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-7s %(threadName)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 2 * 1024 * 1024
LOG_BACKUPS = 3

_seen_keys: set = set()
_seen_lock = threading.Lock()


def _state_home() -> Path:
    if os.name == "nt":
        for name in ("LOCALAPPDATA", "APPDATA"):
            value = os.environ.get(name)
            if value:
                return Path(value)
        return Path.home()
    value = os.environ.get("XDG_STATE_HOME")
    return Path(value) if value else Path.home() / ".local" / "state"


def default_log_dir() -> Path:
    """Per-user log directory (XDG state home, LOCALAPPDATA on Windows)."""
    return _state_home() / APP_NAME / "logs"


def _resolve_level(level) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    # getLevelName gives "Level X" for unknown names
    return resolved if isinstance(resolved, int) else logging.INFO


def _confmap_handler(root: logging.Logger) -> Optional[logging.FileHandler]:
    for handler in root.handlers:
        if getattr(handler, "confmap_log", False):
            return handler
    return None


def setup_logging(
    *,
    log_level="INFO",
    log_dir=None,
    filename: str = f"{APP_NAME}.log",
) -> Optional[Path]:
    """
    로그 파일 핸들러를 루트 로거에 연결

    ``CONFMAP_LOG_LEVEL`` overrides ``log_level``. Calling it again returns
    the path of the handler attached first. Returns None when the log file
    cannot be opened; the transform itself never depends on logging.
    """
    root = logging.getLogger()
    existing = _confmap_handler(root)
    if existing is not None:
        return Path(existing.baseFilename)

    level = _resolve_level(os.environ.get(ENV_LOG_LEVEL) or log_level)
    log_path = (Path(log_dir) if log_dir is not None else default_log_dir()) / filename
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(log_path), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
        )
    except OSError:
        return None

    handler.confmap_log = True
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root.setLevel(level)
    root.addHandler(handler)
    logging.captureWarnings(True)
    root.info("%s logging to %s (level=%s)", APP_NAME, log_path, logging.getLevelName(level))
    return log_path


def format_exception_message(prefix: str, message: str, *, log_path: Optional[Path]) -> str:
    """User-facing error line, pointing at the log file when there is one."""
    text = f"{prefix}: {message}"
    if log_path is not None:
        text += f"\n(log file: {log_path})"
    return text


def log_once(logger: logging.Logger, key: Hashable, level: int, msg: str, *args, exc_info=None) -> bool:
    """
    Log ``msg`` only the first time ``key`` is seen in this process.

    Returns True when the record was emitted. Layout warnings use it so a
    badly converged mesh warns once instead of once per triangle.
    """
    with _seen_lock:
        if key in _seen_keys:
            return False
        _seen_keys.add(key)
    logger.log(level, msg, *args, exc_info=exc_info)
    return True


def forget_log_once(key: Hashable) -> None:
    """Allow ``key`` to be logged again."""
    with _seen_lock:
        _seen_keys.discard(key)
