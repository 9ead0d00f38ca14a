"""Error types and error formatting utilities for acp.

Every failure the tool anticipates is a PluginToolError subclass. These
are user-facing: the CLI prints their message without a traceback.
Anything else reaching the CLI boundary is an internal failure and is
reported with full diagnostic detail.
"""

import subprocess
from pathlib import Path

import yaml
from pydantic import ValidationError

from acp import cli_logger, exit_codes


class PluginToolError(Exception):
    """Base class for anticipated, user-facing acp errors."""

    exit_code = exit_codes.GENERAL_ERROR


class SourceResolutionFailed(PluginToolError):
    """Raised when a package identifier cannot be resolved or fetched."""

    exit_code = exit_codes.SOURCE_NOT_FOUND

    def __init__(self, identifier: str, reason: str) -> None:
        """Initialize with the identifier and why it could not be resolved."""
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Could not resolve plugin package '{identifier}': {reason}")


class ManifestMissing(PluginToolError):
    """Raised when a package has no package.json manifest."""

    exit_code = exit_codes.PLUGIN_INVALID

    def __init__(self, path: Path) -> None:
        """Initialize with the manifest path that was checked."""
        self.path = path
        super().__init__(f"No package.json manifest found at local path '{path}'")


class ManifestInvalid(PluginToolError):
    """Raised when package.json is present but violates a plugin manifest rule."""

    exit_code = exit_codes.PLUGIN_INVALID

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize with the manifest path and the violated rule."""
        self.path = path
        self.reason = reason
        super().__init__(reason)


class InvalidName(PluginToolError):
    """Raised when a publisher, plugin or registry name fails its naming grammar."""

    exit_code = exit_codes.PLUGIN_INVALID

    def __init__(self, name: str, grammar: str, message: str) -> None:
        """Initialize with the offending name and the grammar it failed."""
        self.name = name
        self.grammar = grammar
        super().__init__(message)


class BuildFailed(PluginToolError):
    """Raised when building a package from source did not produce its entry file."""

    exit_code = exit_codes.BUILD_ERROR

    def __init__(self, entry_path: Path, reason: str | None = None) -> None:
        """Initialize with the entry file that is still missing."""
        self.entry_path = entry_path
        message = f"Couldn't resolve plugin main JS file at '{entry_path}'"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class BuildOutputMissing(PluginToolError):
    """Raised when linking a plugin whose build output does not exist yet."""

    exit_code = exit_codes.PLUGIN_INVALID

    def __init__(self, entry_path: Path) -> None:
        """Initialize with the entry file that was expected."""
        self.entry_path = entry_path
        super().__init__(
            f"Couldn't resolve plugin main JS file at '{entry_path}'. Build the plugin before linking it."
        )


class NonCanonicalEntryName(PluginToolError):
    """Raised when linking a plugin whose entry file is not named index.js."""

    exit_code = exit_codes.PLUGIN_INVALID

    def __init__(self, filename: str, canonical: str) -> None:
        """Initialize with the actual and the required entry file names."""
        self.filename = filename
        self.canonical = canonical
        super().__init__(
            f"The plugin can only be linked if its main js file is named '{canonical}' "
            f"(main js: '{filename}')."
        )


class InstallIOError(PluginToolError):
    """Raised when copying or renaming files into the target directory fails."""

    exit_code = exit_codes.INSTALL_IO_ERROR

    def __init__(self, path: Path, error: OSError) -> None:
        """Initialize with the install path and the underlying OS error."""
        self.path = path
        self.error = error
        detail = error.strerror or str(error)
        if error.filename:
            detail = f"{detail}: {error.filename}"
        super().__init__(f"Failed to install plugin files to '{path}': {detail}")


class ConfigError(PluginToolError):
    """Raised when the acp.yaml project configuration is unreadable or invalid."""

    exit_code = exit_codes.INVALID_ARGS


def format_validation_errors(error: ValidationError) -> str:
    """Format Pydantic ValidationError into clean, user-friendly message.

    Removes Pydantic-specific URLs and technical jargon, producing a message
    suitable for CLI output.

    Args:
        error: The Pydantic ValidationError to format.

    Returns:
        A clean, human-readable error message.
    """
    messages = []

    for err in error.errors():
        # Get the field path (e.g., "scripts.build" or just "publisher")
        loc = ".".join(str(part) for part in err["loc"])

        error_type = err["type"]
        msg = err["msg"]

        if error_type == "missing":
            messages.append(f"'{loc}': field is required")
        elif error_type == "string_type":
            messages.append(f"'{loc}': expected string")
        elif error_type in ("dict_type", "model_type"):
            messages.append(f"'{loc}': expected object")
        elif error_type == "bool_type":
            messages.append(f"'{loc}': expected boolean")
        else:
            clean_msg = msg.lower()
            messages.append(f"'{loc}': {clean_msg}")

    if len(messages) == 1:
        return messages[0]

    return "; ".join(messages)


def handle_cli_error(error: Exception) -> int:
    """Handle an unhandled exception at the CLI boundary.

    Tool errors and well-known failure types get a clean one-line
    message. Anything else is an internal failure and is printed with
    its traceback.

    Args:
        error: The exception to handle.

    Returns:
        An exit code from exit_codes.
    """
    if isinstance(error, PluginToolError):
        cli_logger.error(f"Error: {error}")
        return error.exit_code

    if isinstance(error, ValidationError):
        cli_logger.error(f"Invalid configuration: {format_validation_errors(error)}")
        return exit_codes.PLUGIN_INVALID

    if isinstance(error, subprocess.CalledProcessError):
        cmd_str = " ".join(str(c) for c in error.cmd) if isinstance(error.cmd, list) else str(error.cmd)
        cli_logger.error(f"Command failed (exit code {error.returncode}): {cmd_str}")
        return exit_codes.GENERAL_ERROR

    if isinstance(error, OSError):
        if error.filename:
            cli_logger.error(f"{error.strerror}: {error.filename}")
        else:
            cli_logger.error(str(error))
        return exit_codes.GENERAL_ERROR

    if isinstance(error, yaml.YAMLError):
        cli_logger.error(f"Invalid YAML: {error}")
        return exit_codes.GENERAL_ERROR

    cli_logger.error(f"Unexpected error: {error}")
    cli_logger.exception()
    return exit_codes.GENERAL_ERROR
