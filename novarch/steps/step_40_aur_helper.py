from __future__ import annotations

import logging

from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class AurHelperStep:
    step_id = "40_aur_helper"

    def is_done(self, ctx: BootstrapContext) -> bool:
        return ctx.pm.is_installed(ctx.pm.aur_helper)

    def run(self, ctx: BootstrapContext) -> None:
        ctx.pm.ensure_aur_helper()
