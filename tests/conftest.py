from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import pytest
import yaml

from novarch.lib.command import CmdResult
from novarch.lib.env import Context
from novarch.lib.pacman_db import InstalledPackage, LocalDatabase
from novarch.state_store import StateStore, TrackedState


def pkg(name: str, *, explicit: bool = True, required_by: Sequence[str] = (), optional_for: Sequence[str] = ()) -> InstalledPackage:
    return InstalledPackage(
        name=name,
        explicit=explicit,
        required_by=tuple(required_by),
        optional_for=tuple(optional_for),
    )


def db_of(*packages: InstalledPackage | str) -> LocalDatabase:
    return LocalDatabase.from_packages(p if isinstance(p, InstalledPackage) else pkg(p) for p in packages)


def write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class FakePackageManager:
    """Stands in for PackageManager; install/remove mutate its own database."""

    aur_helper = "paru"

    def __init__(self, packages: Iterable[InstalledPackage] = ()) -> None:
        self.packages = {p.name: p for p in packages}
        self.calls: List[tuple] = []
        self.fail_with: Optional[BaseException] = None
        self.query_error: Optional[BaseException] = None

    def query_installed(self) -> LocalDatabase:
        self.calls.append(("query",))
        if self.query_error is not None:
            raise self.query_error
        return LocalDatabase(packages=dict(self.packages))

    def is_installed(self, name: str) -> bool:
        return name in self.packages

    def install(self, names, *, noconfirm: bool = True) -> None:
        self.calls.append(("install", list(names)))
        if self.fail_with is not None:
            raise self.fail_with
        for n in names:
            self.packages.setdefault(n, pkg(n))

    def remove(self, names, *, noconfirm: bool = True) -> None:
        self.calls.append(("remove", list(names)))
        if self.fail_with is not None:
            raise self.fail_with
        for n in names:
            self.packages.pop(n, None)

    def commands(self) -> List[tuple]:
        return [c for c in self.calls if c[0] != "query"]


class ScriptedExecute:
    """Replacement for run_cmd that replays canned (returncode, stderr) pairs."""

    def __init__(self, outcomes: Sequence[tuple[int, str]]) -> None:
        self.outcomes = list(outcomes)
        self.calls: List[dict] = []

    def __call__(self, argv, *, capture_stdout=False, input_text=None, dry_run=False) -> CmdResult:
        self.calls.append({"argv": list(argv), "input_text": input_text, "capture": capture_stdout})
        rc, stderr = self.outcomes.pop(0) if self.outcomes else (0, "")
        return CmdResult(argv=list(argv), returncode=rc, stdout="", stderr=stderr)


class RecordingRunner:
    """Minimal CommandRunner double: records run() argv, canned probe() results."""

    def __init__(self, probe_results: Optional[dict] = None) -> None:
        self.runs: List[dict] = []
        self.probes: List[list] = []
        self.probe_results = probe_results or {}

    def run(self, argv, *, sudo=False, capture=False, input_text=None) -> CmdResult:
        self.runs.append({"argv": list(argv), "sudo": sudo, "input_text": input_text})
        return CmdResult(argv=list(argv), returncode=0, stdout="", stderr="")

    def probe(self, argv, *, env=None) -> CmdResult:
        self.probes.append(list(argv))
        rc, out = self.probe_results.get(tuple(argv), (0, ""))
        return CmdResult(argv=list(argv), returncode=rc, stdout=out, stderr="")

    def argvs(self) -> List[list]:
        return [r["argv"] for r in self.runs]


@pytest.fixture
def context() -> Context:
    return Context(user="alice", home="/home/alice", is_root=False)


@pytest.fixture
def folder(tmp_path: Path) -> Path:
    d = tmp_path / "packages"
    d.mkdir()
    return d


@pytest.fixture
def store(tmp_path: Path) -> StateStore:
    return StateStore(str(tmp_path / "lib" / "system.yaml"))


@pytest.fixture
def seeded_store(store: StateStore, folder: Path):
    def _seed(packages: Sequence[str]) -> StateStore:
        store.save(TrackedState(folder=str(folder), packages=list(packages)))
        return store

    return _seed
