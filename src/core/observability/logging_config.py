"""
Logging configuration — central setup for the installer.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Two sinks:
    console: ``[LEVEL] message``, colored per level through click
              (colors are stripped when the stream is not a terminal)
    file:    ``[YYYY-mm-dd HH:MM] [LEVEL] message``, plain text, one
              file per run
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

# ── Format strings ──────────────────────────────────────────────

_FMT_CONSOLE = "[%(level_label)s] %(message)s"
_FMT_FILE = "[%(asctime)s] [%(level_label)s] %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M"

_LEVEL_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "ERROR",
}

_LEVEL_COLORS = {
    logging.DEBUG: "blue",
    logging.INFO: "green",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


class _LevelLabelFormatter(logging.Formatter):
    """Adds ``level_label`` (WARNING → WARN) to the record."""

    def format(self, record: logging.LogRecord) -> str:
        record.level_label = _LEVEL_LABELS.get(record.levelno, record.levelname)
        return super().format(record)


class ColorFormatter(_LevelLabelFormatter):
    """Console formatter: whole line in the level's color."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        return click.style(line, fg=color) if color else line


class ClickEchoHandler(logging.Handler):
    """Writes records with ``click.echo`` to stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    log_file_level: str = "DEBUG",
) -> Path | None:
    """Configure Python logging for the entire process.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Per-run log file; its directory is created if needed.
        log_file_level: Level for the log file (default: everything).

    Returns:
        The log file path, or None when logging to console only.
    """
    numeric_level = _parse_level(level)

    console = ClickEchoHandler()
    console.setLevel(numeric_level)
    console.setFormatter(ColorFormatter(_FMT_CONSOLE))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)

    effective_level = numeric_level

    path: Path | None = None
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_level = _parse_level(log_file_level)
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(_LevelLabelFormatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    logging.raiseExceptions = False
    return path


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
