from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

# alpm_pkgreason_t: ALPM_PKG_REASON_EXPLICIT
PKG_REASON_EXPLICIT = 0


class DatabaseError(RuntimeError):
    """The local package database could not be opened."""


@dataclass(frozen=True)
class InstalledPackage:
    name: str
    explicit: bool
    required_by: tuple[str, ...] = ()
    optional_for: tuple[str, ...] = ()

    @property
    def referenced(self) -> bool:
        return bool(self.required_by or self.optional_for)

    @classmethod
    def from_alpm(cls, pkg: Any) -> "InstalledPackage":
        return cls(
            name=pkg.name,
            explicit=pkg.reason == PKG_REASON_EXPLICIT,
            required_by=tuple(pkg.compute_requiredby()),
            optional_for=tuple(pkg.compute_optionalfor()),
        )


@dataclass(frozen=True)
class LocalDatabase:
    """Snapshot of the local package database.

    Queried once per reconciliation pass so install and remove decisions see
    the same state.
    """

    packages: Mapping[str, InstalledPackage] = field(default_factory=dict)

    @classmethod
    def from_packages(cls, pkgs: Iterable[InstalledPackage]) -> "LocalDatabase":
        return cls(packages={p.name: p for p in pkgs})

    @classmethod
    def from_localdb(cls, localdb: Any) -> "LocalDatabase":
        """Build from a pyalpm database (anything with a ``pkgcache``)."""
        return cls.from_packages(InstalledPackage.from_alpm(p) for p in localdb.pkgcache)

    @classmethod
    def query(cls, *, root: str = "/", dbpath: str = "/var/lib/pacman") -> "LocalDatabase":
        try:
            import pyalpm
        except ImportError as e:
            raise DatabaseError("pyalpm is required to read the package database") from e

        try:
            # Handle only takes strings, not Paths
            handle = pyalpm.Handle(str(root), str(dbpath))
            db = cls.from_localdb(handle.get_localdb())
        except pyalpm.error as e:
            raise DatabaseError(f"Cannot read package database at {dbpath}: {e}") from e
        logger.info("Local database: %d packages installed", len(db.packages))
        return db

    def installed_names(self) -> frozenset[str]:
        return frozenset(self.packages)

    def is_installed(self, name: str) -> bool:
        return name in self.packages

    def is_referenced(self, name: str) -> bool:
        pkg = self.packages.get(name)
        return pkg is not None and pkg.referenced

    def orphans(self) -> frozenset[str]:
        return frozenset(p.name for p in self.packages.values() if not p.explicit and not p.referenced)
