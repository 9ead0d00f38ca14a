"""Plugin uninstall for acp.

acp keeps no record of what it installed, so uninstalling fetches the
same package again to recover its publisher, plugin name and version,
then inspects the target directory to decide what to remove.
"""

import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from acp.errors import InstallIOError
from acp.install import describe_manifest
from acp.manifest import read_plugin_manifest
from acp.package_source import PackageSource, fetch_package
from acp.paths import install_base_path
from acp.progress import Reporter, noop_report
from acp.state import Absent, Flat, Symlinked, Versioned, probe_install_state


class UninstallOutcome(str, Enum):
    """What an uninstall removed."""

    UNLINKED = "unlinked"
    REMOVED_ALL = "removed-all"
    REMOVED_VERSION = "removed-version"
    NOT_FOUND = "not-found"


@dataclass
class UninstallResult:
    """Result of uninstalling a plugin."""

    plugin: str
    outcome: UninstallOutcome
    base_path: Path
    version: str | None = None

    @property
    def removed(self) -> bool:
        """Return True if anything was removed from the target directory."""
        return self.outcome != UninstallOutcome.NOT_FOUND


def prune_empty_dir(path: Path) -> bool:
    """Remove path if it is an empty real directory. Returns True if removed."""
    if path.is_dir() and not path.is_symlink() and not any(path.iterdir()):
        path.rmdir()
        return True
    return False


def remove_installed(
    base_path: Path, version: str | None, all_versions: bool
) -> UninstallOutcome:
    """Remove the install of a plugin found at base_path.

    A dev link is unlinked and a flat install is removed as a whole,
    regardless of all_versions. From a versioned install either the
    given version or, with all_versions, every version is removed, but
    only if the given version is installed. Empty plugin and publisher
    directories left behind are pruned.

    Args:
        base_path: The plugin's base install path.
        version: Version to remove from a versioned install.
        all_versions: Remove every installed version.

    Returns:
        What was removed.
    """
    match probe_install_state(base_path):
        case Symlinked():
            base_path.unlink()
            outcome = UninstallOutcome.UNLINKED
        case Flat():
            shutil.rmtree(base_path)
            outcome = UninstallOutcome.REMOVED_ALL
        case Versioned() as state if state.has_version(version) and all_versions:
            shutil.rmtree(base_path)
            outcome = UninstallOutcome.REMOVED_ALL
        case Versioned() as state if state.has_version(version):
            assert version is not None
            shutil.rmtree(base_path / version)
            prune_empty_dir(base_path)
            outcome = UninstallOutcome.REMOVED_VERSION
        case Versioned() | Absent():
            return UninstallOutcome.NOT_FOUND

    prune_empty_dir(base_path.parent)
    return outcome


def uninstall_plugin(
    target_dir: Path,
    identifier: str,
    work_dir: Path,
    source: PackageSource,
    all_versions: bool = False,
    report: Reporter = noop_report,
) -> UninstallResult:
    """Uninstall a plugin package from target_dir.

    Args:
        target_dir: Plugin target root, as given to install.
        identifier: The package identifier the plugin was installed from.
        work_dir: Scratch directory for this identifier, released by the caller.
        source: Package source used to fetch the package.
        all_versions: Remove all installed versions instead of just this one.
        report: Progress callback.

    Returns:
        UninstallResult; a NOT_FOUND outcome means nothing matched and
        nothing was changed.

    Raises:
        SourceResolutionFailed: If the package cannot be fetched.
        ManifestMissing: If the package has no package.json.
        ManifestInvalid: If package.json is not a valid plugin manifest.
        InvalidName: If the publisher or plugin name is invalid.
        InstallIOError: If removing files fails.
    """
    package_dir = fetch_package(source, identifier, work_dir, report)

    manifest = read_plugin_manifest(package_dir)
    report(describe_manifest(manifest))

    base_path = install_base_path(target_dir, manifest.publisher, manifest.plugin_name)
    try:
        outcome = remove_installed(base_path, manifest.version, all_versions)
    except OSError as e:
        raise InstallIOError(base_path, e) from e

    return UninstallResult(
        plugin=manifest.display_name,
        outcome=outcome,
        base_path=base_path,
        version=manifest.version,
    )
