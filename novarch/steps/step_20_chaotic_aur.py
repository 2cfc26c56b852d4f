from __future__ import annotations

import logging

from ..lib import console
from ..lib.pacman_conf import append_section, has_section
from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)

CHAOTIC_KEY_ID = "3056513887B78AEB"
CHAOTIC_KEYSERVER = "keyserver.ubuntu.com"
CHAOTIC_PACKAGES = [
    "https://cdn-mirror.chaotic.cx/chaotic-aur/chaotic-keyring.pkg.tar.zst",
    "https://cdn-mirror.chaotic.cx/chaotic-aur/chaotic-mirrorlist.pkg.tar.zst",
]
CHAOTIC_MIRRORLIST = "/etc/pacman.d/chaotic-mirrorlist"


class ChaoticAurStep:
    """Import the Chaotic-AUR signing key and add its repository."""

    step_id = "20_chaotic_aur"

    def is_done(self, ctx: BootstrapContext) -> bool:
        return has_section(ctx.pacman_conf, "chaotic-aur")

    def run(self, ctx: BootstrapContext) -> None:
        console.step("Configuring Chaotic-AUR")
        pm = ctx.pm
        pm.sync(upgrade=True)
        pm.init_keyring()
        pm.trust_key(CHAOTIC_KEY_ID, CHAOTIC_KEYSERVER)
        pm.install_files(CHAOTIC_PACKAGES)
        append_section(ctx.runner, ctx.pacman_conf, "chaotic-aur", CHAOTIC_MIRRORLIST)
        pm.sync(upgrade=True, noconfirm=True)
        console.ok("Chaotic-AUR added")
