"""Installed-state detection.

There is no install database: what is installed at a plugin's base path
is read back from the filesystem on every operation.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from acp.paths import ENTRY_FILENAME


@dataclass(frozen=True)
class Absent:
    """Nothing is installed at the base path."""

    base_path: Path


@dataclass(frozen=True)
class Symlinked:
    """The base path is a symlink created by ``acp link``."""

    base_path: Path
    link_target: str


@dataclass(frozen=True)
class Flat:
    """The base path holds the entry file directly (dev-mode or legacy install)."""

    base_path: Path


@dataclass(frozen=True)
class Versioned:
    """The base path holds one directory per installed version.

    ``versions`` may be empty when the directory exists but contains no
    recognizable install.
    """

    base_path: Path
    versions: tuple[str, ...]

    def has_version(self, version: str | None) -> bool:
        """Return True if the given version is installed."""
        return version is not None and version in self.versions


InstallState = Absent | Symlinked | Flat | Versioned


def probe_install_state(base_path: Path) -> InstallState:
    """Detect what kind of install occupies base_path.

    A symlink is reported as Symlinked even when it is dangling. A
    regular file at base_path is reported as Absent.

    Args:
        base_path: A plugin's base install path.

    Returns:
        The detected install state.
    """
    if base_path.is_symlink():
        return Symlinked(base_path=base_path, link_target=os.readlink(base_path))

    if not base_path.is_dir():
        return Absent(base_path=base_path)

    if (base_path / ENTRY_FILENAME).is_file():
        return Flat(base_path=base_path)

    versions = tuple(
        sorted(
            child.name
            for child in base_path.iterdir()
            if child.is_dir() and (child / ENTRY_FILENAME).is_file()
        )
    )
    return Versioned(base_path=base_path, versions=versions)
