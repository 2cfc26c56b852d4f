from __future__ import annotations

import contextlib
import fcntl
import logging
import os
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


class AlreadyRunning(RuntimeError):
    pass


def _open_lock_file(path: Path) -> int:
    # Read-only is enough for flock, so a lock file created by root still opens
    # for a user run. Only create when missing: O_CREAT on another user's file
    # in a sticky directory is refused under fs.protected_regular.
    try:
        return os.open(path, os.O_RDONLY)
    except FileNotFoundError:
        fd = os.open(path, os.O_RDONLY | os.O_CREAT, 0o644)
        with contextlib.suppress(OSError):
            os.fchmod(fd, 0o644)
        return fd


@contextlib.contextmanager
def exclusive_lock(path: str) -> Iterator[None]:
    """Hold an flock for the whole reconcile-and-persist sequence.

    One fixed path whoever runs us (root or the user), so a ``sudo novarch``
    and a plain ``novarch`` exclude each other. Non-blocking: a second
    instance fails immediately instead of queueing behind pacman's own lock.
    """

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd = _open_lock_file(p)
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise AlreadyRunning(f"another novarch process holds {path}") from e
        logger.debug("Acquired lock %s", path)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)
