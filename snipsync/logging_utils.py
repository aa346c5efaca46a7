"""Logging setup for snipsync runs."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from typing import Any, Dict, Union

LOG_SUBPATH = Path("logs") / "snipsync.log"
STRUCTURED_LOG_SUBPATH = Path("logs") / "snipsync.jsonl"
MAX_BYTES = 5 * 1024 * 1024  # 5 MB per log segment
BACKUP_COUNT = 3
REPO_ROOT = Path(__file__).resolve().parent.parent
FALLBACK_ROOT = REPO_ROOT / ".snipsync_runtime"
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
QUIET_LOGGERS = ("httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers and ``jq``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        snippet = getattr(record, "snippet", None)
        if snippet:
            entry["snippet"] = snippet
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(
    workspace_dir: Path,
    level: Union[str, int] = logging.WARNING,
    structured: bool = True,
    console: bool = True,
) -> Path:
    """Route the ``snipsync`` logger tree to rotating files under the workspace.

    Args:
        workspace_dir: Workspace directory that holds the ``logs`` folder.
        level: Logging level (string name or int constant).
        structured: Also write JSON lines to ``logs/snipsync.jsonl``.
        console: Echo records to stderr.

    Returns:
        Path to the text log file.

    Calling it again replaces the handlers installed by the previous call.
    """
    logger = logging.getLogger("snipsync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    text_formatter = logging.Formatter(TEXT_FORMAT)
    log_path = _writable_path(workspace_dir, LOG_SUBPATH)
    logger.addHandler(_rotating_handler(log_path, text_formatter))

    if structured:
        json_path = _writable_path(workspace_dir, STRUCTURED_LOG_SUBPATH)
        logger.addHandler(_rotating_handler(json_path, JSONFormatter()))

    if console:
        stream = logging.StreamHandler()
        stream.setFormatter(text_formatter)
        logger.addHandler(stream)

    logger.setLevel(_level_number(level))
    logger.propagate = False

    for name in QUIET_LOGGERS:
        # httpx logs every request at INFO.
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_path


def _rotating_handler(path: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    handler.setFormatter(formatter)
    return handler


def _level_number(level: Union[str, int]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return int(level)


def _writable_path(workspace_dir: Path, subpath: Path) -> Path:
    """``workspace_dir/subpath`` with its parent created, or the repo-local fallback."""
    target = workspace_dir / subpath
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        target = FALLBACK_ROOT / subpath
        target.parent.mkdir(parents=True, exist_ok=True)
        print(
            f"[config] Cannot write logs under '{workspace_dir}'; using '{target.parent}' instead.",
            file=sys.stderr,
        )
    return target


__all__ = ["setup_logging", "JSONFormatter", "LOG_SUBPATH", "STRUCTURED_LOG_SUBPATH", "FALLBACK_ROOT"]
