from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .lib import console
from .lib.command import CommandAborted, CommandRunner, ErrorClassifier
from .lib.env import PATHS, Context
from .lib.lock import AlreadyRunning, exclusive_lock
from .lib.pacman_db import DatabaseError
from .lib.pkg import PackageManager
from .logging_utils import configure_logging
from .manifests import FolderUnreadable, ManifestError, record_manual, strip_from_manifests
from .pipeline import BootstrapContext, run_pipeline
from .reconcile import Reconciler
from .settings import Settings, load_settings
from .state_store import ConfigNotFound, ConfigParseError, PersistError, StateStore, TrackedState
from .steps import (
    AurHelperStep,
    ChaoticAurStep,
    EnableMultilibStep,
    RefreshMirrorsStep,
    SystemUpgradeStep,
)

logger = logging.getLogger(__name__)


@dataclass
class App:
    context: Context
    settings: Settings
    runner: CommandRunner
    pm: PackageManager
    store: StateStore
    reconciler: Reconciler
    dry_run: bool = False

    def bootstrap_context(self) -> BootstrapContext:
        return BootstrapContext(runner=self.runner, pm=self.pm, settings=self.settings)


def build_app(args: argparse.Namespace) -> App:
    context = Context.from_environ()
    settings = load_settings(args.settings)

    configure_logging(
        log_path=args.log or settings.log_path,
        console_level=logging.DEBUG if args.verbose else logging.WARNING,
    )

    runner = CommandRunner(
        context,
        confirm_retry=console.retry_confirmer(),
        classifier=ErrorClassifier().with_extra(settings.extra_retry_patterns),
        max_attempts=settings.max_attempts,
        backoff_unit=settings.backoff_seconds,
        dry_run=args.dry_run,
    )
    pm = PackageManager(runner, aur_helper=settings.aur_helper)
    store = StateStore(args.state or settings.state_path, runner=runner, dry_run=args.dry_run)
    reconciler = Reconciler(
        store,
        pm,
        confirm=console.plan_confirmer(args.yes),
        strict_manifests=settings.strict_manifests,
    )
    return App(
        context=context,
        settings=settings,
        runner=runner,
        pm=pm,
        store=store,
        reconciler=reconciler,
        dry_run=args.dry_run,
    )


def setup_folder(
    app: App,
    folder: Optional[str] = None,
    *,
    reader: Callable[[str], str] = input,
) -> TrackedState:
    """Point the state at a packages folder, creating the state file if needed.

    An existing state keeps its tracked packages; an empty answer keeps the
    current folder.
    """

    try:
        state = app.store.load()
    except ConfigNotFound:
        console.warn("System file does not exist, starting fresh...")
        state = TrackedState()

    raw = folder if folder is not None else console.ask_text("Enter path for packages folder", reader=reader)
    if raw:
        path = app.context.expand_path(raw)
        if Path(path).is_dir():
            state.folder = path
        else:
            console.warn(f"{path} is not a directory")

    if not state.folder or not Path(state.folder).is_dir():
        raise FolderUnreadable(f"No usable packages folder configured ({state.folder or 'unset'})")

    app.store.save(state)
    logger.info("Packages folder: %s", state.folder)
    return state


def cmd_init(app: App, args: argparse.Namespace) -> int:
    console.step("Initializing...")
    setup_folder(app, args.folder)
    run_pipeline(
        ctx=app.bootstrap_context(),
        steps=[
            EnableMultilibStep(),
            ChaoticAurStep(),
            RefreshMirrorsStep(),
            AurHelperStep(),
            SystemUpgradeStep(),
        ],
    )
    app.reconciler.reconcile()
    return 0


def cmd_install(app: App, args: argparse.Namespace) -> int:
    console.step("Installing...")
    run_pipeline(ctx=app.bootstrap_context(), steps=[AurHelperStep()])
    app.reconciler.reconcile()
    return 0


def cmd_update(app: App, args: argparse.Namespace) -> int:
    console.step("Updating...")
    run_pipeline(
        ctx=app.bootstrap_context(),
        steps=[RefreshMirrorsStep(), AurHelperStep(), SystemUpgradeStep()],
    )
    app.reconciler.reconcile()
    app.reconciler.prune_orphans()
    return 0


def cmd_info(app: App, args: argparse.Namespace) -> int:
    state = app.store.load()
    print(f"\nPackages folder : {state.folder}")
    print(f"No of packages installed : {len(state.packages)}")
    return 0


def cmd_add(app: App, args: argparse.Namespace) -> int:
    console.step("Adding packages...")
    if not args.packages:
        console.warn("No packages provided")
        return 0

    state = app.store.load()
    app.pm.install(args.packages, noconfirm=False)
    console.ok("Packages installed successfully")

    added = state.track(args.packages)
    app.store.save(state)
    if added and not app.dry_run:
        record_manual(state.folder, added)
    return 0


def cmd_remove(app: App, args: argparse.Namespace) -> int:
    console.step("Removing packages...")
    if not args.packages:
        console.warn("No packages provided")
        return 0

    state = app.store.load()
    app.pm.remove(args.packages, noconfirm=False)

    state.untrack(args.packages)
    app.store.save(state)
    if not app.dry_run:
        edit = strip_from_manifests(state.folder, args.packages)
        for p in edit.deleted:
            console.ok(f"Deleted empty file: {p.name}")
        for p in edit.updated:
            console.ok(f"Updated {p.name}")
    console.ok("Package removal complete")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="novarch",
        description="Manage Arch Linux packages declaratively",
    )
    p.add_argument("--settings", default=PATHS.settings_default, help="Settings file (YAML)")
    p.add_argument("--state", default=None, help="Path to the tracked-state file")
    p.add_argument("--log", default=None, help="Path to the log file")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask before installing/removing")
    p.add_argument("-v", "--verbose", action="store_true", help="Show debug logging on the console")

    sub = p.add_subparsers(dest="subcmd", required=True)

    sp = sub.add_parser("init", help="Bootstrap repositories and install the declared packages")
    sp.add_argument("--folder", default=None, help="Packages folder (prompted if omitted)")
    sp.set_defaults(func=cmd_init, locked=True)

    sp = sub.add_parser("install", help="Install/remove packages to match the folder")
    sp.set_defaults(func=cmd_install, locked=True)

    sp = sub.add_parser("update", help="Refresh mirrors, upgrade, reconcile and prune orphans")
    sp.set_defaults(func=cmd_update, locked=True)

    sp = sub.add_parser("info", help="Show packages folder and tracked package count")
    sp.set_defaults(func=cmd_info, locked=False)

    sp = sub.add_parser("add", help="Install packages now and record them")
    sp.add_argument("packages", nargs="*", help="Package names to add")
    sp.set_defaults(func=cmd_add, locked=True)

    sp = sub.add_parser("remove", help="Uninstall packages now and drop them from every manifest")
    sp.add_argument("packages", nargs="*", help="Package names to remove")
    sp.set_defaults(func=cmd_remove, locked=True)

    return p


def main(
    argv: Optional[list[str]] = None,
    *,
    app_factory: Callable[[argparse.Namespace], App] = build_app,
) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    try:
        app = app_factory(args)
    except (RuntimeError, ValueError) as e:
        console.error(str(e))
        return 1

    try:
        if args.locked:
            with exclusive_lock(app.settings.lock_path):
                return int(args.func(app, args))
        return int(args.func(app, args))
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        return 130
    except ConfigNotFound as e:
        logger.error("No state file at %s; run `novarch init` first", e, extra={"shown": True})
        console.error(f"No state file at {e}; run `novarch init` first")
        return 1
    except (
        ConfigParseError,
        PersistError,
        FolderUnreadable,
        ManifestError,
        CommandAborted,
        AlreadyRunning,
        DatabaseError,
        OSError,
    ) as e:
        logger.error("%s", e, extra={"shown": True})
        console.error(str(e))
        return 1
