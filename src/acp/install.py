"""Plugin install for acp.

Fetches a plugin package, builds it if it has no bundle yet, and copies
its bundle directory to ``<target>/<publisher>/<plugin-name>[/<version>]``
with the entry file renamed to index.js.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path

from acp.build import BuildToolchain, ensure_built
from acp.errors import InstallIOError
from acp.manifest import PluginManifest, read_plugin_manifest
from acp.package_source import PackageSource, fetch_package
from acp.paths import ENTRY_FILENAME, SOURCE_MAP_SUFFIX, install_base_path, versioned_path
from acp.progress import Reporter, noop_report
from acp.state import Absent, Flat, Symlinked, Versioned, probe_install_state


@dataclass
class InstallResult:
    """Result of installing a plugin."""

    plugin: str
    version: str | None
    install_path: Path
    dev_mode: bool


def describe_manifest(manifest: PluginManifest) -> str:
    """Return the one-line identity summary printed after resolving a package.

    Fields the manifest does not declare are left out.
    """
    parts = [f'plugin: "{manifest.display_name}"']
    if manifest.version:
        parts.append(f"version: {manifest.version}")
    if manifest.registry_name:
        parts.append(f'npm: "{manifest.registry_name}"')
    return f"Resolved plugin spec ({', '.join(parts)})."


def remove_path(path: Path) -> None:
    """Remove a symlink, file or directory tree at path, if anything is there."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def clear_stale_install(base_path: Path, dev_mode: bool) -> None:
    """Remove whatever at base_path would conflict with a new install.

    A dev link is always replaced. A flat install (dev-mode or from
    before versioned installs) is always replaced. Versioned installs are
    replaced only by a dev-mode install; otherwise other versions stay.
    """
    match probe_install_state(base_path):
        case Symlinked():
            base_path.unlink()
        case Flat():
            shutil.rmtree(base_path)
        case Versioned() if dev_mode:
            shutil.rmtree(base_path)
        case Versioned() | Absent():
            pass


def rename_entry_file(install_path: Path, main_filename: str) -> None:
    """Rename the entry file and its source map to the canonical index.js names."""
    if main_filename == ENTRY_FILENAME:
        return

    (install_path / main_filename).replace(install_path / ENTRY_FILENAME)

    source_map = install_path / (main_filename + SOURCE_MAP_SUFFIX)
    if source_map.exists():
        source_map.replace(install_path / (ENTRY_FILENAME + SOURCE_MAP_SUFFIX))


def install_plugin(
    target_dir: Path,
    identifier: str,
    work_dir: Path,
    source: PackageSource,
    toolchain: BuildToolchain,
    dev_mode: bool = False,
    report: Reporter = noop_report,
) -> InstallResult:
    """Install a plugin package into target_dir.

    Args:
        target_dir: Plugin target root.
        identifier: Package identifier (registry spec, git reference or local path).
        work_dir: Scratch directory for this identifier, released by the caller.
        source: Package source used to fetch the package.
        toolchain: Toolchain used when the package must be built from source.
        dev_mode: Install directly at the base path, replacing every other version.
        report: Progress callback.

    Returns:
        InstallResult describing what was installed where.

    Raises:
        SourceResolutionFailed: If the package cannot be fetched.
        ManifestMissing: If the package has no package.json.
        ManifestInvalid: If package.json is not a valid plugin manifest.
        InvalidName: If the publisher or plugin name is invalid.
        BuildFailed: If building from source produced no entry file.
        InstallIOError: If copying or renaming files fails.
    """
    package_dir = fetch_package(source, identifier, work_dir, report)

    manifest = read_plugin_manifest(package_dir)
    report(describe_manifest(manifest))

    version = None if dev_mode else manifest.require_version(package_dir)

    ensure_built(package_dir, manifest, toolchain, report)

    base_path = install_base_path(target_dir, manifest.publisher, manifest.plugin_name)
    install_path = base_path if version is None else versioned_path(base_path, version, dev_mode)

    try:
        clear_stale_install(base_path, dev_mode)

        report("Copying plugin distributables to target directory...")
        shutil.copytree(package_dir / manifest.dist_dir, install_path, symlinks=True, dirs_exist_ok=True)

        rename_entry_file(install_path, manifest.main_filename)
    except OSError as e:
        raise InstallIOError(install_path, e) from e

    return InstallResult(
        plugin=manifest.display_name,
        version=manifest.version,
        install_path=install_path,
        dev_mode=dev_mode,
    )
