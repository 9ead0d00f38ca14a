"""acp CLI entry point."""

import sys
from pathlib import Path
from typing import Annotated

import typer

from acp import __version__, cli_logger, exit_codes
from acp.batch import BatchResult, run_batch
from acp.build import BuildToolchain, NpmToolchain
from acp.config import get_target_dir
from acp.errors import ConfigError, PluginToolError, handle_cli_error
from acp.install import InstallResult, install_plugin
from acp.link import LinkResult, link_plugin
from acp.package_source import NpmPackageSource, PackageSource
from acp.rename import rename_plugin
from acp.uninstall import UninstallOutcome, UninstallResult, uninstall_plugin

app = typer.Typer(
    name="acp",
    help="Alethio CMS Plugin tool - install, link and remove CMS plugins in a local folder.",
    no_args_is_help=True,
)

TargetOption = Annotated[
    Path | None,
    typer.Option(
        "--target",
        "-t",
        help="Plugin target directory. Defaults to ACP_TARGET, acp.yaml 'target', or dist/plugins.",
    ),
]


def get_package_source() -> PackageSource:
    """Return the package source used by install and uninstall."""
    return NpmPackageSource()


def get_toolchain() -> BuildToolchain:
    """Return the build toolchain used to build plugins from source."""
    return NpmToolchain()


def require_target_dir(option: Path | None) -> Path:
    """Resolve the target directory or exit with INVALID_ARGS.

    Raises:
        typer.Exit: With INVALID_ARGS if acp.yaml is invalid.
    """
    try:
        return get_target_dir(option)
    except ConfigError as e:
        cli_logger.error(str(e))
        raise typer.Exit(exit_codes.INVALID_ARGS) from e


def _report_failure(identifier: str, error: PluginToolError) -> None:
    cli_logger.error(f"Error: {error}")


def _exit_for_batch(result: BatchResult) -> None:
    """Exit with success, or with the exit code of the first failure."""
    if result.all_succeeded:
        raise typer.Exit(exit_codes.SUCCESS)

    if len(result.succeeded) + len(result.failed) > 1:
        cli_logger.error(
            f"{len(result.failed)} of {len(result.succeeded) + len(result.failed)} failed: "
            + ", ".join(f.identifier for f in result.failed)
        )
    raise typer.Exit(result.failed[0].error.exit_code)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        cli_logger.info(f"acp {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show acp version and exit.",
    ),
) -> None:
    """Alethio CMS Plugin tool - install, link and remove CMS plugins in a local folder."""


@app.command("install")
@app.command("i", hidden=True)
def install(
    packages: Annotated[
        list[str],
        typer.Argument(
            help="Anything npm recognizes: registry package, git reference, local path.",
        ),
    ],
    target: TargetOption = None,
    dev: Annotated[
        bool,
        typer.Option(
            "--dev",
            "-d",
            help="Install in dev mode (no <plugin>/<version> folder nesting).",
        ),
    ] = False,
) -> None:
    """Install one or more plugins in a local folder.

    Each package is fetched, built from source if it has no bundle, and its
    bundle directory copied to <target>/<publisher>/<plugin>/<version>.
    """
    target_dir = require_target_dir(target)
    source = get_package_source()
    toolchain = get_toolchain()

    def _install(identifier: str, work_dir: Path) -> InstallResult:
        return install_plugin(
            target_dir, identifier, work_dir, source, toolchain, dev_mode=dev, report=cli_logger.info
        )

    def _installed(identifier: str, result: InstallResult) -> None:
        cli_logger.success(f'Successfully installed plugin "{result.plugin}" to "{result.install_path}".')

    result = run_batch(
        packages,
        _install,
        on_start=lambda identifier: cli_logger.heading(f'Install plugin "{identifier}":'),
        on_success=_installed,
        on_failure=_report_failure,
    )
    _exit_for_batch(result)


@app.command()
def link(
    plugin_dirs: Annotated[
        list[Path],
        typer.Argument(
            help="A local folder that contains a plugin manifest.",
        ),
    ],
    target: TargetOption = None,
) -> None:
    """Install one or more plugins via symlinks for development purposes.

    The plugin must already be built and its main JS file named index.js.
    """
    target_dir = require_target_dir(target)

    def _link(identifier: str, work_dir: Path) -> LinkResult:
        return link_plugin(target_dir, Path(identifier))

    def _linked(identifier: str, result: LinkResult) -> None:
        cli_logger.success(f'Symlinked plugin "{result.plugin}" to "{result.link_path}".')

    result = run_batch(
        [str(plugin_dir) for plugin_dir in plugin_dirs],
        _link,
        on_start=lambda identifier: cli_logger.heading(f'Link plugin "{identifier}":'),
        on_success=_linked,
        on_failure=_report_failure,
    )
    _exit_for_batch(result)


@app.command("uninstall")
@app.command("remove", hidden=True)
def uninstall(
    packages: Annotated[
        list[str],
        typer.Argument(
            help="The package identifiers the plugins were installed from.",
        ),
    ],
    target: TargetOption = None,
    all_versions: Annotated[
        bool,
        typer.Option(
            "--all",
            "-a",
            help="Remove all installed plugin versions, instead of just one.",
        ),
    ] = False,
) -> None:
    """Uninstall one or more plugins from the target folder.

    Each package is fetched again to find out which plugin and version it
    is. Linked plugins are unlinked. Finding nothing to remove is only a
    warning.
    """
    target_dir = require_target_dir(target)
    source = get_package_source()

    def _uninstall(identifier: str, work_dir: Path) -> UninstallResult:
        return uninstall_plugin(
            target_dir, identifier, work_dir, source, all_versions=all_versions, report=cli_logger.info
        )

    def _uninstalled(identifier: str, result: UninstallResult) -> None:
        match result.outcome:
            case UninstallOutcome.UNLINKED:
                cli_logger.success(f'Unlinked plugin "{result.plugin}".')
            case UninstallOutcome.REMOVED_ALL:
                cli_logger.success(f'Uninstalled plugin "{result.plugin}".')
            case UninstallOutcome.REMOVED_VERSION:
                cli_logger.success(f'Uninstalled plugin "{result.plugin}" (version: {result.version}).')
            case UninstallOutcome.NOT_FOUND:
                cli_logger.warning(f'No plugin installation found at "{result.base_path}"')

    result = run_batch(
        packages,
        _uninstall,
        on_start=lambda identifier: cli_logger.heading(f'Uninstall plugin "{identifier}":'),
        on_success=_uninstalled,
        on_failure=_report_failure,
    )
    _exit_for_batch(result)


@app.command()
def rename(
    publisher: Annotated[
        str,
        typer.Argument(help="A handle identifying the publisher of the plugin, e.g. a domain name."),
    ],
    plugin_name: Annotated[
        str,
        typer.Argument(help="The name the CMS references the plugin by, together with the publisher."),
    ],
    npm_package_name: Annotated[
        str,
        typer.Argument(help="Package name to use in package.json, if the plugin is distributed via npm."),
    ] = "",
) -> None:
    """Rename the plugin in the current folder.

    Updates the plugin manifest (package.json) and the library name in
    webpack.config.js, then reinstalls dependencies.
    """
    cli_logger.heading(f'Rename target plugin to "{publisher}/{plugin_name}":')
    try:
        rename_plugin(
            Path.cwd(),
            publisher,
            plugin_name,
            npm_package_name or None,
            get_toolchain(),
            report=cli_logger.info,
        )
    except PluginToolError as e:
        cli_logger.error(f"Error: {e}")
        raise typer.Exit(e.exit_code) from e

    cli_logger.success("Done.")
    raise typer.Exit(exit_codes.SUCCESS)


def main_cli() -> None:
    """CLI entry point with top-level exception handling.

    Wraps the Typer app to catch any unhandled exceptions and format them
    as clean error messages instead of raw tracebacks.
    """
    try:
        app()
    except Exception as e:
        sys.exit(handle_cli_error(e))


if __name__ == "__main__":
    main_cli()
