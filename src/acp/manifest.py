"""Plugin manifest reading.

A plugin is an npm-style package whose package.json carries, next to
the usual npm fields, a ``publisher`` handle and optionally a
``pluginName``. This module reads that file and derives the plugin's
identity and the location of its built distributable.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from acp.errors import ManifestInvalid, ManifestMissing, format_validation_errors
from acp.names import validate_plugin_name, validate_publisher

MANIFEST_FILENAME = "package.json"

# Optional directory part followed by the bundle filename, e.g. "dist/plugin.js"
MAIN_PATTERN = re.compile(r"(?:(.+)/)?([^/]+\.js)\Z")

# Version strings become a directory name, so keep them to a single safe path segment
VERSION_PATTERN = re.compile(r"[0-9A-Za-z][0-9A-Za-z.+-]*")


class PackageJson(BaseModel):
    """The package.json fields acp consumes. Other fields are kept but ignored."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str | None = None
    plugin_name: str | None = Field(default=None, alias="pluginName")
    publisher: str | None = None
    main: str | None = None
    version: str | None = None
    scripts: dict[str, Any] | None = None


@dataclass(frozen=True)
class PluginManifest:
    """Identity and layout of a plugin package.

    Attributes:
        registry_name: The npm package name, if any.
        plugin_name: The plugin name used by the CMS and for the install directory.
        publisher: The publisher handle.
        version: The package version, if declared.
        dist_dir: Package-relative directory holding the built entry file.
        main_filename: File name of the built entry file inside dist_dir.
        has_prepare_script: Whether package.json declares a "prepare" script.
        has_build_script: Whether package.json declares a "build" script.
    """

    registry_name: str | None
    plugin_name: str
    publisher: str
    version: str | None
    dist_dir: str
    main_filename: str
    has_prepare_script: bool
    has_build_script: bool

    @property
    def display_name(self) -> str:
        """Return the plugin reference as publisher/plugin-name."""
        return f"{self.publisher}/{self.plugin_name}"

    def entry_path(self, package_dir: Path) -> Path:
        """Return the path of the built entry file inside package_dir."""
        return package_dir / self.dist_dir / self.main_filename

    def require_version(self, package_dir: Path) -> str:
        """Return the version, failing if package.json does not declare one.

        Raises:
            ManifestInvalid: If the version is missing.
        """
        if not self.version:
            raise ManifestInvalid(package_dir / MANIFEST_FILENAME, 'Missing "version" field in package.json.')
        return self.version


def _load_package_json(manifest_path: Path) -> PackageJson:
    """Parse and type-check package.json."""
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestInvalid(manifest_path, f"Invalid JSON in '{manifest_path}': {e}") from e

    if not isinstance(data, dict):
        raise ManifestInvalid(manifest_path, f"Invalid manifest '{manifest_path}': expected a JSON object")

    try:
        return PackageJson.model_validate(data)
    except ValidationError as e:
        clean_errors = format_validation_errors(e)
        raise ManifestInvalid(manifest_path, f"Invalid manifest '{manifest_path}': {clean_errors}") from e


def read_plugin_manifest(package_dir: Path) -> PluginManifest:
    """Read and validate the plugin manifest of a package directory.

    Rules are applied in order and the first violation is reported:
    a missing pluginName falls back to the npm name (not allowed for
    scoped packages), publisher and main are required, main must point
    into a subdirectory inside the package, and both names must match their grammars.

    Args:
        package_dir: Directory containing package.json.

    Returns:
        The derived PluginManifest.

    Raises:
        ManifestMissing: If package.json does not exist.
        ManifestInvalid: If a required field is missing or malformed.
        InvalidName: If the publisher or plugin name fails its grammar.
    """
    manifest_path = package_dir / MANIFEST_FILENAME
    if not manifest_path.is_file():
        raise ManifestMissing(manifest_path)

    package = _load_package_json(manifest_path)

    plugin_name = package.plugin_name
    if not plugin_name:
        if not package.name:
            msg = 'Plugins without a "name" field must define a "pluginName" field instead in package.json.'
            raise ManifestInvalid(manifest_path, msg)
        if package.name.startswith("@"):
            msg = 'Scoped packages must define a custom "pluginName" field in package.json.'
            raise ManifestInvalid(manifest_path, msg)
        plugin_name = package.name

    if not package.publisher:
        raise ManifestInvalid(manifest_path, 'Missing "publisher" field in package.json.')

    if not package.main:
        raise ManifestInvalid(manifest_path, 'Missing "main" field in package.json.')

    main_match = MAIN_PATTERN.search(package.main)
    if main_match is None:
        raise ManifestInvalid(manifest_path, 'Couldn\'t resolve plugin "main" field in package.json.')

    dist_dir, main_filename = main_match.groups()
    if not dist_dir:
        msg = (
            "Couldn't resolve plugin js bundle dir. \"main\" field in package.json must point to "
            "a package subdirectory containing only the js bundle and its public dependencies."
        )
        raise ManifestInvalid(manifest_path, msg)

    dist_path = PurePosixPath(dist_dir)
    if dist_path.is_absolute() or ".." in dist_path.parts or PureWindowsPath(dist_dir).drive:
        msg = f"\"main\" field in package.json must point inside the package, got '{package.main}'."
        raise ManifestInvalid(manifest_path, msg)

    if package.version is not None and not VERSION_PATTERN.fullmatch(package.version):
        raise ManifestInvalid(manifest_path, f"Invalid \"version\" field in package.json: '{package.version}'")

    validate_plugin_name(plugin_name)
    validate_publisher(package.publisher)

    scripts = package.scripts or {}

    return PluginManifest(
        registry_name=package.name,
        plugin_name=plugin_name,
        publisher=package.publisher,
        version=package.version,
        dist_dir=dist_dir or ".",
        main_filename=main_filename,
        has_prepare_script=bool(scripts.get("prepare")),
        has_build_script=bool(scripts.get("build")),
    )
