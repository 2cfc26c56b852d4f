from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .command import CommandRunner

logger = logging.getLogger(__name__)


def has_section(conf_path: str, section: str) -> bool:
    """True if a line exactly matching ``[section]`` is present."""

    marker = f"[{section}]"
    p = Path(conf_path)
    try:
        lines = p.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return False
    return any(line.strip() == marker for line in lines)


def option(conf_path: str, key: str, default: str) -> str:
    """Value of ``key = value`` from pacman.conf, ignoring comments."""

    try:
        lines = Path(conf_path).read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return default
    for line in lines:
        line = line.split("#", 1)[0].strip()
        k, sep, v = line.partition("=")
        if sep and k.strip() == key:
            return v.strip()
    return default


def section_text(section: str, include: str) -> str:
    return f"\n[{section}]\nInclude = {include}\n"


def append_section(
    runner: CommandRunner,
    conf_path: str,
    section: str,
    include: str,
) -> None:
    """Append a repository section to pacman.conf (as root via tee -a)."""

    argv: Sequence[str] = ["tee", "-a", conf_path]
    runner.run(argv, sudo=True, capture=True, input_text=section_text(section, include))
    logger.info("Added [%s] to %s", section, conf_path)
