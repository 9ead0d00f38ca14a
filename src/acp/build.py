"""Build fallback for packages fetched from source.

Packages published to the registry ship their built bundle. Packages
fetched from git or a local checkout usually do not, so acp installs
their dependencies and runs their build before giving up.
"""

import subprocess
import sys
from pathlib import Path
from typing import Protocol

from acp.errors import BuildFailed
from acp.manifest import PluginManifest
from acp.progress import Reporter, noop_report


def npm_executable() -> str:
    """Return the npm executable name for the current platform."""
    return "npm.cmd" if sys.platform == "win32" else "npm"


class BuildToolchain(Protocol):
    """Runs a package's dependency install and build steps."""

    def install_dependencies(self, package_dir: Path) -> int:
        """Install the package's dependencies and return the exit code."""
        ...

    def run_build_script(self, package_dir: Path) -> int:
        """Run the package's "build" script and return the exit code."""
        ...


class NpmToolchain:
    """Builds packages with npm, streaming npm's output to the terminal."""

    def install_dependencies(self, package_dir: Path) -> int:
        """Run ``npm install`` in package_dir."""
        return self._run_npm(["install"], package_dir)

    def run_build_script(self, package_dir: Path) -> int:
        """Run ``npm run build`` in package_dir."""
        return self._run_npm(["run", "build"], package_dir)

    def _run_npm(self, args: list[str], cwd: Path) -> int:
        result = subprocess.run([npm_executable(), *args], cwd=cwd)
        return result.returncode


def ensure_built(
    package_dir: Path,
    manifest: PluginManifest,
    toolchain: BuildToolchain,
    report: Reporter = noop_report,
) -> Path:
    """Make sure the package's entry file exists, building it if needed.

    When the entry file is missing, dependencies are installed. A
    "prepare" script runs as part of that, so "build" is only invoked
    explicitly for packages that have a "build" script but no "prepare"
    script. Exit codes are not checked; the entry file is probed again
    afterwards instead.

    Args:
        package_dir: Fetched package directory.
        manifest: The package's plugin manifest.
        toolchain: Toolchain used to install dependencies and build.
        report: Progress callback.

    Returns:
        Path to the entry file.

    Raises:
        BuildFailed: If the entry file is still missing after building,
            or the toolchain cannot be started.
    """
    entry_path = manifest.entry_path(package_dir)
    if entry_path.is_file():
        return entry_path

    relative_entry = f"{manifest.dist_dir}/{manifest.main_filename}"
    report(f"No main JS file found in plugin package at '{relative_entry}'. Building the plugin from source...")

    try:
        report("Running npm install...")
        toolchain.install_dependencies(package_dir)
        if not manifest.has_prepare_script and manifest.has_build_script:
            report("Plugin doesn't seem to have a \"prepare\" script. Doing \"npm run build\" instead...")
            toolchain.run_build_script(package_dir)
    except FileNotFoundError as e:
        raise BuildFailed(entry_path, f"build tool not found: {e.filename or e}") from e

    if not entry_path.is_file():
        raise BuildFailed(entry_path)

    return entry_path
