"""Plugin dev links for acp.

Linking points a plugin's base install path straight at the bundle
directory of a local checkout, so rebuilding the plugin is enough to
pick up changes.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from acp.errors import BuildOutputMissing, InstallIOError, NonCanonicalEntryName
from acp.install import remove_path
from acp.manifest import read_plugin_manifest
from acp.paths import ENTRY_FILENAME, install_base_path


@dataclass
class LinkResult:
    """Result of linking a plugin."""

    plugin: str
    link_path: Path
    link_target: Path


def link_plugin(target_dir: Path, plugin_dir: Path) -> LinkResult:
    """Symlink a local plugin's bundle directory into target_dir.

    Any install or link already at the plugin's base path is replaced,
    so linking the same plugin twice leaves a single identical link.

    Args:
        target_dir: Plugin target root.
        plugin_dir: Local plugin checkout containing package.json.

    Returns:
        LinkResult with the link location and what it points to.

    Raises:
        ManifestMissing: If plugin_dir has no package.json.
        ManifestInvalid: If package.json is not a valid plugin manifest.
        InvalidName: If the publisher or plugin name is invalid.
        NonCanonicalEntryName: If the entry file is not named index.js.
        BuildOutputMissing: If the plugin has not been built yet.
        InstallIOError: If the link cannot be created.
    """
    plugin_dir = plugin_dir.resolve()
    manifest = read_plugin_manifest(plugin_dir)

    if manifest.main_filename != ENTRY_FILENAME:
        raise NonCanonicalEntryName(manifest.main_filename, ENTRY_FILENAME)

    entry_path = manifest.entry_path(plugin_dir)
    if not entry_path.is_file():
        raise BuildOutputMissing(entry_path)

    link_target = (plugin_dir / manifest.dist_dir).resolve()
    link_path = install_base_path(target_dir, manifest.publisher, manifest.plugin_name)

    try:
        link_path.parent.mkdir(parents=True, exist_ok=True)
        remove_path(link_path)
        os.symlink(link_target, link_path, target_is_directory=True)
    except OSError as e:
        raise InstallIOError(link_path, e) from e

    return LinkResult(plugin=manifest.display_name, link_path=link_path, link_target=link_target)
