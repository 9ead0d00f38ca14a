"""Naming rules for plugin publishers, plugin names and npm package names.

Publisher and plugin names end up as directory names under the plugin
target root and in plugin:// references inside the CMS, so both are
restricted to lowercase groups where a separator is always followed by
a letter.
"""

import re
from urllib.parse import quote

from acp.errors import InvalidName

PUBLISHER_GRAMMAR = "publisher"
PLUGIN_NAME_GRAMMAR = "plugin name"
REGISTRY_NAME_GRAMMAR = "npm package name"

# Lowercase alphanumeric groups joined by "-" or "."; no digit right after a separator
PUBLISHER_PATTERN = re.compile(r"[a-z0-9]+([-.][a-z][a-z0-9]*)*")

# Lowercase alphanumeric groups joined by "-"; no digit right after a hyphen
PLUGIN_NAME_PATTERN = re.compile(r"[a-z0-9]+(-[a-z][a-z0-9]*)*")

SCOPED_PACKAGE_PATTERN = re.compile(r"@([^/]+)/(.+)")

MAX_PACKAGE_NAME_LENGTH = 214

_RESERVED_PACKAGE_NAMES = frozenset({"node_modules", "favicon.ico"})


def is_valid_publisher(publisher: str) -> bool:
    """Return True if publisher matches the publisher grammar."""
    return PUBLISHER_PATTERN.fullmatch(publisher) is not None


def is_valid_plugin_name(plugin_name: str) -> bool:
    """Return True if plugin_name matches the plugin name grammar."""
    return PLUGIN_NAME_PATTERN.fullmatch(plugin_name) is not None


def validate_publisher(publisher: str) -> None:
    """Validate a publisher handle.

    Raises:
        InvalidName: If the handle does not match the publisher grammar.
    """
    if not is_valid_publisher(publisher):
        msg = (
            f"Publisher name '{publisher}' can consist only of lowercase letter and number groups "
            "separated by hyphens (-) or dots (.). Numbers are not allowed immediately after "
            "a hyphen (-) or a dot (.)."
        )
        raise InvalidName(publisher, PUBLISHER_GRAMMAR, msg)


def validate_plugin_name(plugin_name: str) -> None:
    """Validate a plugin name.

    Raises:
        InvalidName: If the name does not match the plugin name grammar.
    """
    if not is_valid_plugin_name(plugin_name):
        msg = (
            f"Plugin name '{plugin_name}' must contain only lowercase letters, numbers and "
            "hyphens (-). Numbers are not allowed immediately after a hyphen."
        )
        raise InvalidName(plugin_name, PLUGIN_NAME_GRAMMAR, msg)


def registry_name_problems(name: str) -> list[str]:
    """List the reasons name cannot be used for a newly published npm package.

    Args:
        name: Candidate package name, optionally scoped (``@scope/name``).

    Returns:
        A list of problems; empty if the name is acceptable.
    """
    problems: list[str] = []

    if not name:
        return ["name length must be greater than zero"]

    if name != name.strip():
        problems.append("name cannot contain leading or trailing spaces")
    if name.startswith("."):
        problems.append("name cannot start with a period")
    if name.startswith("_"):
        problems.append("name cannot start with an underscore")
    if name.lower() in _RESERVED_PACKAGE_NAMES:
        problems.append(f"{name} is a blacklisted name")
    if len(name) > MAX_PACKAGE_NAME_LENGTH:
        problems.append(f"name can no longer contain more than {MAX_PACKAGE_NAME_LENGTH} characters")
    if name.lower() != name:
        problems.append("name can no longer contain capital letters")
    if re.search(r"[~'!()*]", name.split("/")[-1]):
        problems.append('name can no longer contain special characters ("~\'!()*")')

    if quote(name, safe="") != name:
        scoped = SCOPED_PACKAGE_PATTERN.fullmatch(name)
        if scoped is None or any(quote(part, safe="") != part for part in scoped.groups()):
            problems.append("name can only contain URL-friendly characters")

    return problems


def validate_registry_name(name: str) -> None:
    """Validate a package name for use in a new package.json.

    Raises:
        InvalidName: If the name is not valid for a new npm package.
    """
    problems = registry_name_problems(name)
    if problems:
        raise InvalidName(name, REGISTRY_NAME_GRAMMAR, f"Invalid npm package name '{name}': {'; '.join(problems)}")
