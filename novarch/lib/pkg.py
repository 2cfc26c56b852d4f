from __future__ import annotations

import logging
from typing import Sequence

from . import pacman_conf as conf
from .command import CommandRunner
from .env import PATHS
from .pacman_db import LocalDatabase

logger = logging.getLogger(__name__)


class PackageManager:
    """pacman + AUR helper behind a narrow interface.

    Installs go through the AUR helper (it elevates itself and refuses to run
    as root under sudo), removals and repo operations through pacman.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        aur_helper: str = "paru",
        pacman_conf: str = PATHS.pacman_conf,
    ) -> None:
        self.runner = runner
        self.aur_helper = aur_helper
        self.pacman_conf = pacman_conf

    def query_installed(self) -> LocalDatabase:
        return LocalDatabase.query(
            root=conf.option(self.pacman_conf, "RootDir", "/"),
            dbpath=conf.option(self.pacman_conf, "DBPath", "/var/lib/pacman"),
        )

    def is_installed(self, name: str) -> bool:
        r = self.runner.probe(["pacman", "-Qi", name])
        return r.returncode == 0

    def install(self, names: Sequence[str], *, noconfirm: bool = True) -> None:
        if not names:
            return
        argv = [self.aur_helper, "-S", "--needed"]
        if noconfirm:
            argv.append("--noconfirm")
        self.runner.run([*argv, "--", *names])

    def remove(self, names: Sequence[str], *, noconfirm: bool = True) -> None:
        if not names:
            return
        argv = ["pacman", "-Rns"]
        if noconfirm:
            argv.append("--noconfirm")
        self.runner.run([*argv, "--", *names], sudo=True)

    def ensure_installed(self, name: str) -> bool:
        """Install a repo package with pacman if missing. Returns True if it installed."""
        if self.is_installed(name):
            return False
        logger.warning("%s not installed, installing now", name)
        self.runner.run(["pacman", "-S", "--noconfirm", name], sudo=True)
        return True

    def ensure_aur_helper(self) -> bool:
        return self.ensure_installed(self.aur_helper)

    def sync(self, *, upgrade: bool = True, noconfirm: bool = False) -> None:
        flags = "-Syu" if upgrade else "-Sy"
        argv = ["pacman", flags]
        if noconfirm:
            argv.append("--noconfirm")
        self.runner.run(argv, sudo=True)

    def upgrade(self) -> None:
        """Full system upgrade including AUR packages."""
        self.runner.run([self.aur_helper, "-Syu", "--noconfirm"])

    def install_files(self, urls: Sequence[str]) -> None:
        self.runner.run(["pacman", "-U", "--noconfirm", *urls], sudo=True)

    def refresh_mirrors(
        self,
        mirrorlist: str,
        *,
        latest: int = 10,
        protocol: str = "https",
        sort: str = "rate",
    ) -> None:
        self.ensure_installed("reflector")
        self.runner.run(
            [
                "reflector",
                "--latest",
                str(latest),
                "--protocol",
                protocol,
                "--sort",
                sort,
                "--save",
                mirrorlist,
            ],
            sudo=True,
        )

    def init_keyring(self) -> None:
        self.runner.run(["pacman-key", "--init"], sudo=True)
        self.runner.run(["pacman", "-Sy", "--noconfirm", "archlinux-keyring"], sudo=True)

    def trust_key(self, key_id: str, keyserver: str) -> None:
        self.runner.run(["pacman-key", "--recv-key", key_id, "--keyserver", keyserver], sudo=True)
        self.runner.run(["pacman-key", "--lsign-key", key_id], sudo=True)
