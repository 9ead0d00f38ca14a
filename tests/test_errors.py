"""Tests for error types and error formatting utilities."""

import subprocess
from pathlib import Path

import pytest
import typer
import yaml
from pydantic import ValidationError

from acp import exit_codes
from acp.cli import require_target_dir
from acp.config import ProjectConfig
from acp.errors import (
    BuildFailed,
    InstallIOError,
    ManifestMissing,
    SourceResolutionFailed,
    format_validation_errors,
    handle_cli_error,
)
from acp.manifest import PackageJson


class TestFormatValidationErrors:
    """Tests for format_validation_errors function."""

    def test_wrong_type(self) -> None:
        """Verify type errors produce clean message."""
        # Given
        try:
            PackageJson.model_validate({"name": "my-plugin", "publisher": 42})
            pytest.fail("Expected ValidationError")
        except ValidationError as e:
            # When
            result = format_validation_errors(e)

        # Then
        assert result == "'publisher': expected string"
        assert "pydantic.dev" not in result

    def test_multiple_errors(self) -> None:
        # Given
        try:
            PackageJson.model_validate({"main": ["dist/index.js"], "scripts": "webpack"})
            pytest.fail("Expected ValidationError")
        except ValidationError as e:
            # When
            result = format_validation_errors(e)

        # Then
        assert "'main': expected string" in result
        assert "'scripts': expected object" in result
        assert "; " in result

    def test_extra_field(self) -> None:
        try:
            ProjectConfig.model_validate({"tagret": "dist"})
            pytest.fail("Expected ValidationError")
        except ValidationError as e:
            result = format_validation_errors(e)

        assert result.startswith("'tagret': ")
        assert "For further information" not in result


class TestErrorTypes:
    """Tests for the tool error hierarchy."""

    @pytest.mark.parametrize(
        ("error", "exit_code"),
        [
            (SourceResolutionFailed("x", "404"), exit_codes.SOURCE_NOT_FOUND),
            (ManifestMissing(Path("package.json")), exit_codes.PLUGIN_INVALID),
            (BuildFailed(Path("dist/index.js")), exit_codes.BUILD_ERROR),
            (InstallIOError(Path("out"), PermissionError(13, "Permission denied")), exit_codes.INSTALL_IO_ERROR),
        ],
    )
    def test_exit_codes(self, error: Exception, exit_code: int) -> None:
        assert error.exit_code == exit_code

    def test_install_io_error_message(self) -> None:
        error = InstallIOError(Path("/plugins/acme"), PermissionError(13, "Permission denied", "/plugins/acme"))

        assert str(error) == "Failed to install plugin files to '/plugins/acme': Permission denied: /plugins/acme"

    def test_build_failed_with_reason(self) -> None:
        error = BuildFailed(Path("dist/index.js"), "build tool not found: npm")

        assert str(error) == "Couldn't resolve plugin main JS file at 'dist/index.js' (build tool not found: npm)"


class TestHandleCliError:
    """Tests for handle_cli_error."""

    def test_tool_error_uses_its_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = handle_cli_error(SourceResolutionFailed("my-plugin", "404 Not Found"))

        assert code == exit_codes.SOURCE_NOT_FOUND
        assert "Error: Could not resolve plugin package 'my-plugin': 404 Not Found" in capsys.readouterr().out

    def test_called_process_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = handle_cli_error(subprocess.CalledProcessError(1, ["npm", "install"]))

        assert code == exit_codes.GENERAL_ERROR
        assert "Command failed (exit code 1): npm install" in capsys.readouterr().out

    def test_os_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = handle_cli_error(PermissionError(13, "Permission denied", "/plugins"))

        assert code == exit_codes.GENERAL_ERROR
        assert "Permission denied: /plugins" in capsys.readouterr().out

    def test_yaml_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = handle_cli_error(yaml.YAMLError("bad"))

        assert code == exit_codes.GENERAL_ERROR
        assert "Invalid YAML" in capsys.readouterr().out

    def test_unexpected_error_shows_traceback(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Internal failures keep their diagnostic detail."""
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            code = handle_cli_error(e)

        output = capsys.readouterr().out
        assert code == exit_codes.GENERAL_ERROR
        assert "Unexpected error: boom" in output
        assert "Traceback" in output


class TestRequireTargetDir:
    """Tests for require_target_dir helper."""

    def test_returns_target(self, tmp_path: Path) -> None:
        assert require_target_dir(tmp_path / "out") == (tmp_path / "out").resolve()

    def test_exits_on_invalid_config(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Given
        (tmp_path / "acp.yaml").write_text("target: 42\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("ACP_TARGET", raising=False)

        # When/Then
        with pytest.raises(typer.Exit) as exc_info:
            require_target_dir(None)

        assert exc_info.value.exit_code == exit_codes.INVALID_ARGS
