from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Callable, List

from .lib import console
from .lib.pacman_db import LocalDatabase
from .lib.pkg import PackageManager
from .manifests import load_desired
from .state_store import StateStore, TrackedState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Plan:
    """What a reconciliation pass proposes. Sets carry no ordering."""

    to_install: frozenset[str] = frozenset()
    to_remove: frozenset[str] = frozenset()
    # Tracked, no longer desired, and already gone from the system.
    stale: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (self.to_install or self.to_remove or self.stale)


def compute_plan(desired: AbstractSet[str], tracked: AbstractSet[str], db: LocalDatabase) -> Plan:
    """Pure: desired vs tracked vs installed.

    to_install = desired - tracked
    to_remove  = (tracked - desired) & installed, minus anything another
                 installed package still requires or optionally uses
    """

    installed = db.installed_names()
    unwanted = set(tracked) - set(desired)
    return Plan(
        to_install=frozenset(set(desired) - set(tracked)),
        to_remove=frozenset(p for p in unwanted & installed if not db.is_referenced(p)),
        stale=frozenset(unwanted - installed),
    )


@dataclass
class ReconcileResult:
    plan: Plan
    installed: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    forgotten: List[str] = field(default_factory=list)


class Reconciler:
    """Applies a Plan: confirm, run the package manager, persist on success.

    Tracked state is only changed after the corresponding command succeeded;
    a failed command raises out of the runner and leaves the file untouched.
    """

    def __init__(
        self,
        store: StateStore,
        pm: PackageManager,
        *,
        confirm: Callable[[str], bool],
        strict_manifests: bool = False,
    ) -> None:
        self.store = store
        self.pm = pm
        self.confirm = confirm
        self.strict_manifests = strict_manifests

    def plan(self, state: TrackedState) -> Plan:
        desired = load_desired(state.folder, strict=self.strict_manifests)
        db = self.pm.query_installed()
        return compute_plan(desired, set(state.packages), db)

    def reconcile(self) -> ReconcileResult:
        state = self.store.load()
        plan = self.plan(state)
        result = ReconcileResult(plan=plan)
        logger.info(
            "Plan: install=%d remove=%d stale=%d",
            len(plan.to_install),
            len(plan.to_remove),
            len(plan.stale),
        )

        if plan.stale:
            result.forgotten = state.untrack(plan.stale)
            logger.info("Forgetting packages no longer installed: %s", ", ".join(sorted(plan.stale)))
            self.store.save(state)

        if plan.to_install:
            names = sorted(plan.to_install)
            console.show_packages("Packages to install", names)
            if self.confirm("Do you want to proceed installing the above packages?"):
                self.pm.install(names)
                state.track(names)
                self.store.save(state)
                result.installed = names
                console.ok("All packages installed")
            else:
                logger.info("Install declined by user")
        else:
            console.ok("No package to install")

        if plan.to_remove:
            names = sorted(plan.to_remove)
            console.show_packages("Packages to remove", names)
            if self.confirm("Do you want to proceed removing the above packages?"):
                self.pm.remove(names)
                state.untrack(names)
                self.store.save(state)
                result.removed = names
                console.ok("Packages removed")
            else:
                logger.info("Removal declined by user")
        else:
            console.ok("No package to remove")

        return result

    def prune_orphans(self) -> List[str]:
        """Remove dependency-only packages nothing refers to any more."""

        db = self.pm.query_installed()
        orphans = sorted(db.orphans())
        if not orphans:
            console.ok("No orphan packages")
            return []

        console.show_packages("Orphan packages", orphans)
        if not self.confirm("Do you want to remove the orphan packages?"):
            logger.info("Orphan removal declined by user")
            return []

        self.pm.remove(orphans)
        state = self.store.load()
        if state.untrack(orphans):
            self.store.save(state)
        console.ok("Orphans removed")
        return orphans
