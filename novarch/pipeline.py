from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from .lib.command import CommandRunner
from .lib.env import PATHS
from .lib.pkg import PackageManager
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BootstrapContext:
    runner: CommandRunner
    pm: PackageManager
    settings: Settings
    pacman_conf: str = PATHS.pacman_conf
    mirrorlist: str = PATHS.mirrorlist


class Step(Protocol):
    """A single idempotent bootstrap step."""

    step_id: str

    def is_done(self, ctx: BootstrapContext) -> bool:
        ...

    def run(self, ctx: BootstrapContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]
    skipped_steps: List[str]


def run_pipeline(
    *,
    ctx: BootstrapContext,
    steps: Sequence[Step],
) -> PipelineResult:
    """Run steps in order, skipping those whose check says they are already done.

    There is no rollback: a failure propagates and the whole pipeline is meant
    to be re-run, which is safe because every step re-checks first.
    """

    ran: List[str] = []
    skipped: List[str] = []

    for step in steps:
        if step.is_done(ctx):
            logger.info("Skipping step %s (already done)", step.step_id)
            skipped.append(step.step_id)
        else:
            logger.info("Running step %s", step.step_id)
            step.run(ctx)
            ran.append(step.step_id)

    return PipelineResult(ran_steps=ran, skipped_steps=skipped)
