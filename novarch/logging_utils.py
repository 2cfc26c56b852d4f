from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

DEFAULT_LOG_PATH = "/var/log/novarch.log"


def fallback_log_path() -> str:
    state_home = os.environ.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return str(Path(state_home) / "novarch" / "novarch.log")


# Records logged with extra={"shown": True} were already printed as a status line.
def _not_shown(record: logging.LogRecord) -> bool:
    return not getattr(record, "shown", False)


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
    console_level: int = logging.WARNING,
) -> str:
    """Configure logging.

    Every command and reconciliation decision goes to the log file; the
    console only gets warnings and errors unless console_level is lowered.

    /var/log is usually root-only and novarch normally runs as the user, so
    when the requested file cannot be opened we fall back to
    $XDG_STATE_HOME/novarch/novarch.log.

    Returns the actual file path being used.
    """

    logger = logging.getLogger()
    logger.setLevel(min(level, console_level))

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_novarch_configured", False):
        return getattr(logger, "_novarch_log_path", log_path)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: Optional[logging.Handler] = None
    chosen_path = log_path
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        chosen_path = fallback_log_path()
        Path(chosen_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    file_handler.setLevel(level)
    logger.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        console.setLevel(console_level)
        console.addFilter(_not_shown)
        logger.addHandler(console)

    setattr(logger, "_novarch_configured", True)
    setattr(logger, "_novarch_log_path", chosen_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
