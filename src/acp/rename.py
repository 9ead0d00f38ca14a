"""Plugin rename for acp.

Rewrites the identity of an existing plugin project: the publisher,
plugin name and npm name in package.json, and the bundle's global
library name in webpack.config.js.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path

from acp.build import BuildToolchain
from acp.errors import ManifestInvalid, ManifestMissing
from acp.manifest import MANIFEST_FILENAME
from acp.names import validate_plugin_name, validate_publisher, validate_registry_name
from acp.progress import Reporter, noop_report

WEBPACK_CONFIG_FILENAME = "webpack.config.js"

# Placeholder left in package.json "author" by plugin project templates
AUTHOR_PLACEHOLDER = "<publisher>"

WEBPACK_LIBRARY_PATTERN = re.compile(r'(output:\s+\{[\s\S]*library:\s*)"([^"]+)"')


@dataclass
class RenameResult:
    """Result of renaming a plugin project."""

    plugin: str
    library_name: str


def webpack_library_name(publisher: str, plugin_name: str) -> str:
    """Return the global variable name the CMS expects a plugin bundle to export.

    ``acme.io/my-plugin`` becomes ``__acme_io__myPlugin``.
    """
    name = f"{publisher}/{plugin_name}".replace(".", "_").replace("/", "__")
    name = re.sub(r"-([a-z])", lambda m: m.group(1).upper(), name, flags=re.IGNORECASE)
    return "__" + name


def _patch_package_json(
    package_json_path: Path, publisher: str, plugin_name: str, registry_name: str | None
) -> None:
    try:
        package = json.loads(package_json_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestInvalid(package_json_path, f"Invalid JSON in '{package_json_path}': {e}") from e

    if not isinstance(package, dict):
        raise ManifestInvalid(package_json_path, f"Invalid manifest '{package_json_path}': expected a JSON object")

    if registry_name and "name" not in package:
        # Keep "name" as the first field
        package = {"name": registry_name, **package}
    elif registry_name:
        package["name"] = registry_name
    else:
        package.pop("name", None)

    package["publisher"] = publisher
    package["pluginName"] = plugin_name

    if package.get("author") == AUTHOR_PLACEHOLDER:
        package["author"] = publisher

    package_json_path.write_text(json.dumps(package, indent=2) + "\n", encoding="utf-8")


def _patch_webpack_config(webpack_config_path: Path, library_name: str) -> None:
    content = webpack_config_path.read_text(encoding="utf-8")
    content = WEBPACK_LIBRARY_PATTERN.sub(lambda m: f'{m.group(1)}"{library_name}"', content)
    webpack_config_path.write_text(content, encoding="utf-8")


def rename_plugin(
    plugin_dir: Path,
    publisher: str,
    plugin_name: str,
    registry_name: str | None,
    toolchain: BuildToolchain,
    report: Reporter = noop_report,
) -> RenameResult:
    """Rename the plugin project in plugin_dir.

    All names are validated before any file is touched. After patching,
    dependencies are reinstalled so generated files pick up the new name.

    Args:
        plugin_dir: Plugin project directory.
        publisher: New publisher handle.
        plugin_name: New plugin name.
        registry_name: New npm package name. Empty or None drops the "name" field.
        toolchain: Toolchain used to reinstall dependencies.
        report: Progress callback.

    Returns:
        RenameResult with the new plugin reference and webpack library name.

    Raises:
        InvalidName: If any of the names is invalid.
        ManifestMissing: If package.json or webpack.config.js is missing.
        ManifestInvalid: If package.json cannot be decoded or is not a JSON object.
    """
    if registry_name:
        validate_registry_name(registry_name)
    validate_publisher(publisher)
    validate_plugin_name(plugin_name)

    package_json_path = plugin_dir / MANIFEST_FILENAME
    webpack_config_path = plugin_dir / WEBPACK_CONFIG_FILENAME
    for required in (package_json_path, webpack_config_path):
        if not required.is_file():
            raise ManifestMissing(required)

    library_name = webpack_library_name(publisher, plugin_name)
    _patch_package_json(package_json_path, publisher, plugin_name, registry_name)
    _patch_webpack_config(webpack_config_path, library_name)
    report(f'Updated "{MANIFEST_FILENAME}" and "{WEBPACK_CONFIG_FILENAME}".')

    report("Running npm install...")
    toolchain.install_dependencies(plugin_dir)

    return RenameResult(plugin=f"{publisher}/{plugin_name}", library_name=library_name)
