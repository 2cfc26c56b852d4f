from __future__ import annotations

import logging

from ..lib.pacman_conf import append_section, has_section
from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class EnableMultilibStep:
    step_id = "10_enable_multilib"

    def is_done(self, ctx: BootstrapContext) -> bool:
        return has_section(ctx.pacman_conf, "multilib")

    def run(self, ctx: BootstrapContext) -> None:
        append_section(ctx.runner, ctx.pacman_conf, "multilib", ctx.mirrorlist)
        logger.info("multilib repository enabled")
