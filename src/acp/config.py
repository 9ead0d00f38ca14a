"""Target directory configuration for acp.

The plugin target root is resolved in this order:
1. The --target command line option
2. ACP_TARGET environment variable (if set)
3. ``target`` in an acp.yaml file in the current directory
4. Default: dist/plugins
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from acp.errors import ConfigError, format_validation_errors
from acp.paths import DEFAULT_TARGET

# Environment variable for a custom target directory
ACP_TARGET_ENV_VAR = "ACP_TARGET"

CONFIG_FILENAME = "acp.yaml"


class ProjectConfig(BaseModel):
    """Schema for acp.yaml files."""

    model_config = ConfigDict(extra="forbid")

    target: str | None = Field(
        default=None,
        description="Plugin target directory, relative to the config file",
    )


def load_project_config(directory: Path) -> ProjectConfig | None:
    """Load acp.yaml from directory, if there is one.

    Args:
        directory: Directory to look for acp.yaml in.

    Returns:
        The validated config, or None if the file does not exist.

    Raises:
        ConfigError: If the file is not valid YAML or fails validation.
    """
    config_path = directory / CONFIG_FILENAME
    if not config_path.is_file():
        return None

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        msg = f"Invalid YAML in '{config_path}': {e}"
        raise ConfigError(msg) from e

    if data is None:
        return ProjectConfig()

    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        clean_errors = format_validation_errors(e)
        msg = f"Invalid config '{config_path}': {clean_errors}"
        raise ConfigError(msg) from e


def get_target_dir(option: Path | None = None, cwd: Path | None = None) -> Path:
    """Resolve the plugin target directory.

    Args:
        option: Value of the --target option, if given.
        cwd: Directory relative paths are resolved against. Defaults to the
            current working directory.

    Returns:
        Absolute path of the target directory.

    Raises:
        ConfigError: If acp.yaml has to be consulted and is invalid.
    """
    base = cwd or Path.cwd()

    if option is not None:
        return (base / option.expanduser()).resolve()

    env_value = os.environ.get(ACP_TARGET_ENV_VAR)
    if env_value:
        return (base / Path(env_value).expanduser()).resolve()

    config = load_project_config(base)
    if config is not None and config.target:
        return (base / Path(config.target).expanduser()).resolve()

    return (base / DEFAULT_TARGET).resolve()
