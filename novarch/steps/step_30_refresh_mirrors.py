from __future__ import annotations

import logging

from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class RefreshMirrorsStep:
    step_id = "30_refresh_mirrors"

    def is_done(self, ctx: BootstrapContext) -> bool:
        # Mirror speed changes over time; always refresh.
        return False

    def run(self, ctx: BootstrapContext) -> None:
        s = ctx.settings
        ctx.pm.refresh_mirrors(
            ctx.mirrorlist,
            latest=s.mirrors_latest,
            protocol=s.mirrors_protocol,
            sort=s.mirrors_sort,
        )
        logger.info("Mirrorlist refreshed (%s)", ctx.mirrorlist)
