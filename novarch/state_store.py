from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional

import yaml

from .lib.command import CommandAborted, CommandRunner

logger = logging.getLogger(__name__)


class ConfigNotFound(FileNotFoundError):
    """No state file yet: first run."""


class ConfigParseError(ValueError):
    pass


class PersistError(RuntimeError):
    pass


def _unique(names: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    out: List[str] = []
    for n in names:
        if n not in seen:
            seen.add(n)
            out.append(n)
    return out


@dataclass
class TrackedState:
    """Packages this tool is responsible for, plus where the manifests live."""

    folder: str = ""
    packages: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.packages = _unique(self.packages)

    def track(self, names: Iterable[str]) -> List[str]:
        """Append names not yet tracked (in the given order). Returns what was added."""
        added = [n for n in _unique(names) if n not in self.packages]
        self.packages.extend(added)
        return added

    def untrack(self, names: Iterable[str]) -> List[str]:
        drop = set(names)
        removed = [n for n in self.packages if n in drop]
        self.packages = [n for n in self.packages if n not in drop]
        return removed

    def to_dict(self) -> dict[str, Any]:
        return {"folder": self.folder, "packages": list(self.packages)}

    @classmethod
    def from_dict(cls, data: Any) -> "TrackedState":
        if not isinstance(data, dict):
            raise ConfigParseError(f"State must be a mapping, got {type(data).__name__}")
        folder = data.get("folder")
        packages = data.get("packages")
        if packages is None:
            packages = []
        if not isinstance(folder, str):
            raise ConfigParseError("State field 'folder' must be a string")
        if not isinstance(packages, list) or not all(isinstance(p, str) for p in packages):
            raise ConfigParseError("State field 'packages' must be a list of strings")
        return cls(folder=folder, packages=packages)


def dump_state(state: TrackedState) -> str:
    return yaml.safe_dump(state.to_dict(), sort_keys=False, default_flow_style=False)


def write_atomic(path: Path, text: str) -> None:
    """Write text to a sibling temp file, then rename over path."""

    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, 0o644)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        raise


class StateStore:
    """Loads and saves TrackedState at a fixed (usually root-owned) path.

    When the directory is not writable by us, the same temp-then-rename dance
    is done through ``sudo`` via the command runner.
    """

    def __init__(
        self,
        path: str,
        *,
        runner: Optional[CommandRunner] = None,
        dry_run: bool = False,
    ) -> None:
        self.path = Path(path)
        self.runner = runner
        self.dry_run = dry_run

    def load(self) -> TrackedState:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ConfigNotFound(str(self.path)) from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigParseError(f"{self.path}: {e}") from e

        state = TrackedState.from_dict(data)
        logger.debug("Loaded state %s (%d packages)", self.path, len(state.packages))
        return state

    def save(self, state: TrackedState) -> None:
        text = dump_state(state)
        if self.dry_run:
            logger.info("Would save state %s (%d packages)", self.path, len(state.packages))
            return
        try:
            if self._writable():
                self.path.parent.mkdir(parents=True, exist_ok=True)
                write_atomic(self.path, text)
            else:
                self._save_elevated(text)
        except (OSError, CommandAborted) as e:
            raise PersistError(f"Failed to write {self.path}: {e}") from e
        logger.info("Saved state %s (%d packages)", self.path, len(state.packages))

    def _writable(self) -> bool:
        d = self.path.parent
        while not d.exists():
            if d.parent == d:
                break
            d = d.parent
        return os.access(d, os.W_OK)

    def _save_elevated(self, text: str) -> None:
        if self.runner is None:
            raise PermissionError(f"{self.path.parent} is not writable")
        tmp = f"{self.path}.tmp"
        self.runner.run(["mkdir", "-p", str(self.path.parent)], sudo=True)
        self.runner.run(["tee", tmp], sudo=True, capture=True, input_text=text)
        self.runner.run(["mv", "-f", tmp, str(self.path)], sudo=True)
