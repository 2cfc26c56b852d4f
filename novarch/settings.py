from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .lib.env import PATHS


@dataclass(frozen=True)
class Settings:
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def state_path(self) -> str:
        return str(self.raw.get("state_path") or PATHS.state_default)

    @property
    def log_path(self) -> str:
        return str(self.raw.get("log_path") or PATHS.log_default)

    @property
    def lock_path(self) -> str:
        return str(self.raw.get("lock_path") or PATHS.lock_default)

    @property
    def aur_helper(self) -> str:
        return str(self.raw.get("aur_helper") or "paru")

    @property
    def strict_manifests(self) -> bool:
        return bool(self.raw.get("strict_manifests", False))

    @property
    def max_attempts(self) -> int:
        return int(((self.raw.get("retry") or {}).get("max_attempts")) or 3)

    @property
    def backoff_seconds(self) -> float:
        v = (self.raw.get("retry") or {}).get("backoff_seconds")
        return float(5 if v is None else v)

    @property
    def extra_retry_patterns(self) -> List[str]:
        return [str(p) for p in ((self.raw.get("retry") or {}).get("extra_patterns") or [])]

    @property
    def mirrors_latest(self) -> int:
        return int(((self.raw.get("mirrors") or {}).get("latest")) or 10)

    @property
    def mirrors_protocol(self) -> str:
        return str(((self.raw.get("mirrors") or {}).get("protocol")) or "https")

    @property
    def mirrors_sort(self) -> str:
        return str(((self.raw.get("mirrors") or {}).get("sort")) or "rate")


def load_settings(path: str) -> Settings:
    """Load optional settings; a missing file means all defaults."""

    p = Path(path)
    if not p.exists():
        return Settings()

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"{path}: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")

    return Settings(raw=raw)
