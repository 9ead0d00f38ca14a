"""Install path layout.

Plugins live at ``<target>/<publisher>/<plugin-name>``. Regular installs
nest one directory per version below that; dev-mode installs and dev
links occupy the base path itself.
"""

from pathlib import Path

# The CMS loads every plugin through this file name
ENTRY_FILENAME = "index.js"
SOURCE_MAP_SUFFIX = ".map"

DEFAULT_TARGET = Path("dist") / "plugins"


def install_base_path(target_dir: Path, publisher: str, plugin_name: str) -> Path:
    """Return the directory that holds every install of a plugin."""
    return target_dir / publisher / plugin_name


def versioned_path(base_path: Path, version: str, dev_mode: bool) -> Path:
    """Return where a given version is installed below base_path."""
    return base_path if dev_mode else base_path / version
