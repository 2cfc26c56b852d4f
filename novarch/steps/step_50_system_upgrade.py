from __future__ import annotations

import logging

from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class SystemUpgradeStep:
    step_id = "50_system_upgrade"

    def is_done(self, ctx: BootstrapContext) -> bool:
        return False

    def run(self, ctx: BootstrapContext) -> None:
        ctx.pm.upgrade()
        logger.info("System upgraded with %s", ctx.pm.aur_helper)
