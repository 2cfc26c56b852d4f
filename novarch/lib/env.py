from __future__ import annotations

import os
import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


@dataclass(frozen=True)
class Paths:
    state_default: str = "/var/lib/novarch/system.yaml"
    log_default: str = "/var/log/novarch.log"
    settings_default: str = "/etc/novarch/settings.yaml"
    pacman_conf: str = "/etc/pacman.conf"
    mirrorlist: str = "/etc/pacman.d/mirrorlist"
    lock_default: str = "/run/lock/novarch.lock"


PATHS = Paths()


@dataclass(frozen=True)
class Context:
    """Who invoked us, resolved once at startup."""

    user: str
    home: str
    is_root: bool = False

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "Context":
        env = os.environ if environ is None else environ
        # Under sudo we still want the real user's home for ~ paths.
        user = env.get("SUDO_USER") or env.get("USER") or env.get("LOGNAME")
        if not user:
            raise RuntimeError("Could not determine current user (USER/LOGNAME unset)")

        try:
            home = pwd.getpwnam(user).pw_dir
        except KeyError:
            home = f"/home/{user}"

        return cls(user=user, home=home, is_root=os.geteuid() == 0)

    def expand_path(self, raw: str) -> str:
        raw = raw.strip()
        if raw == "~":
            return self.home
        if raw.startswith("~/"):
            return str(Path(self.home) / raw[2:])
        return raw
