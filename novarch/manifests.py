from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence

import yaml

from .state_store import write_atomic

logger = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml")
MANUAL_MANIFEST = "manual-install.yaml"


class FolderUnreadable(NotADirectoryError):
    pass


class ManifestError(ValueError):
    pass


@dataclass
class ManifestEdit:
    updated: List[Path] = field(default_factory=list)
    deleted: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)


def manifest_files(folder: str) -> List[Path]:
    """Immediate manifest files in folder, sorted by name."""

    d = Path(folder)
    if not d.is_dir():
        raise FolderUnreadable(f"Packages folder does not exist or is not a directory: {folder}")
    try:
        entries = list(d.iterdir())
    except OSError as e:
        raise FolderUnreadable(f"Cannot read packages folder {folder}: {e}") from e
    return sorted(p for p in entries if p.is_file() and p.suffix.lower() in MANIFEST_SUFFIXES)


def read_manifest(path: Path) -> List[str]:
    """A manifest is a YAML list of package names; an empty file is an empty list."""

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(f"{path}: {e}") from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise ManifestError(f"{path}: expected a list of package names, got {type(data).__name__}")

    names: List[str] = []
    for item in data:
        if not isinstance(item, str) or not item.strip():
            raise ManifestError(f"{path}: invalid package entry {item!r}")
        names.append(item.strip())
    return names


def write_manifest(path: Path, names: Sequence[str]) -> None:
    write_atomic(path, yaml.safe_dump(list(names), default_flow_style=False))


def load_desired(folder: str, *, strict: bool = False) -> frozenset[str]:
    """Union of the package lists in every manifest of folder.

    Malformed manifests are skipped with a warning unless strict is set, in
    which case the first one raises ManifestError.
    """

    desired: set[str] = set()
    for path in manifest_files(folder):
        try:
            names = read_manifest(path)
        except ManifestError as e:
            if strict:
                raise
            logger.warning("Skipping malformed manifest %s", e)
            continue
        logger.debug("Manifest %s: %d packages", path.name, len(names))
        desired.update(names)

    logger.info("Desired set: %d packages from %s", len(desired), folder)
    return frozenset(desired)


def record_manual(folder: str, names: Iterable[str]) -> List[str]:
    """Append names to the manual-install manifest. Returns the names appended."""

    path = Path(folder) / MANUAL_MANIFEST
    current = read_manifest(path) if path.exists() else []
    added = [n for n in dict.fromkeys(names) if n not in current]
    if added:
        write_manifest(path, [*current, *added])
        logger.info("Recorded %d packages in %s", len(added), path)
    return added


def strip_from_manifests(folder: str, names: Iterable[str]) -> ManifestEdit:
    """Remove names from every manifest; manifests left empty are deleted."""

    drop = set(names)
    edit = ManifestEdit()
    for path in manifest_files(folder):
        try:
            current = read_manifest(path)
        except ManifestError as e:
            logger.warning("Not editing malformed manifest %s", e)
            edit.skipped.append(path)
            continue

        kept = [n for n in current if n not in drop]
        if len(kept) == len(current):
            continue
        if kept:
            write_manifest(path, kept)
            edit.updated.append(path)
            logger.info("Updated %s", path)
        else:
            path.unlink()
            edit.deleted.append(path)
            logger.info("Deleted empty manifest %s", path)
    return edit
