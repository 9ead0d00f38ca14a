"""Exit codes for acp CLI commands."""

# Success
SUCCESS = 0

# Errors
GENERAL_ERROR = 1
INVALID_ARGS = 2
SOURCE_NOT_FOUND = 4
PLUGIN_INVALID = 5
BUILD_ERROR = 6
INSTALL_IO_ERROR = 7
