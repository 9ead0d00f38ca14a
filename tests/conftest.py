"""Shared test fixtures for acp tests."""

import json
import os
import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any, NamedTuple

import pytest
from typer.testing import CliRunner

from acp.errors import SourceResolutionFailed
from acp.package_source import PackageInfo

GIT_ENV = {
    **os.environ,
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@test.com",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@test.com",
}

BUNDLE_CONTENT = "module.exports = {};\n"


def write_package_json(package_dir: Path, **fields: Any) -> Path:
    """Write a package.json with the given fields into package_dir."""
    package_dir.mkdir(parents=True, exist_ok=True)
    path = package_dir / "package.json"
    path.write_text(json.dumps(fields, indent=2))
    return path


def create_plugin_package(
    package_dir: Path,
    *,
    name: str | None = "my-plugin",
    plugin_name: str | None = None,
    publisher: str = "acme",
    version: str = "1.0.0",
    main: str = "dist/plugin.js",
    built: bool = True,
    source_map: bool = False,
    scripts: dict[str, str] | None = None,
) -> Path:
    """Create a plugin package directory with package.json and, optionally, its bundle.

    Returns:
        The package directory.
    """
    fields: dict[str, Any] = {"version": version, "publisher": publisher, "main": main}
    if name is not None:
        fields["name"] = name
    if plugin_name is not None:
        fields["pluginName"] = plugin_name
    if scripts is not None:
        fields["scripts"] = scripts
    write_package_json(package_dir, **fields)

    if built:
        write_bundle(package_dir, main, source_map=source_map)

    return package_dir


def write_bundle(package_dir: Path, main: str, source_map: bool = False) -> Path:
    """Write the bundle file named by main (and optionally its source map)."""
    bundle = package_dir / main
    bundle.parent.mkdir(parents=True, exist_ok=True)
    bundle.write_text(BUNDLE_CONTENT)
    if source_map:
        bundle.with_name(bundle.name + ".map").write_text('{"version": 3}')
    (bundle.parent / "styles.css").write_text("body {}\n")
    return bundle


class FakePackageSource:
    """PackageSource that serves packages from local directories keyed by identifier."""

    def __init__(self, packages: dict[str, Path] | None = None) -> None:
        self.packages: dict[str, Path] = dict(packages or {})
        self.fetched: list[tuple[str, Path]] = []

    def add(self, identifier: str, package_dir: Path) -> None:
        self.packages[identifier] = package_dir

    def resolve_manifest(self, identifier: str) -> PackageInfo:
        if identifier not in self.packages:
            raise SourceResolutionFailed(identifier, "404 Not Found")
        manifest_path = self.packages[identifier] / "package.json"
        if not manifest_path.is_file():
            return PackageInfo(name=None, version=None)
        data = json.loads(manifest_path.read_text())
        return PackageInfo(name=data.get("name"), version=data.get("version"))

    def fetch(self, identifier: str, destination: Path, cache_dir: Path) -> None:
        if identifier not in self.packages:
            raise SourceResolutionFailed(identifier, "404 Not Found")
        cache_dir.mkdir(parents=True, exist_ok=True)
        (cache_dir / "fetched.txt").write_text(identifier)
        shutil.copytree(self.packages[identifier], destination)
        self.fetched.append((identifier, destination))


class FakeToolchain:
    """BuildToolchain that records calls and can simulate a build.

    ``on_install`` and ``on_build`` are called with the package directory
    to mimic what npm would produce.
    """

    def __init__(
        self,
        on_install: Callable[[Path], None] | None = None,
        on_build: Callable[[Path], None] | None = None,
    ) -> None:
        self.on_install = on_install
        self.on_build = on_build
        self.calls: list[tuple[str, Path]] = []

    def install_dependencies(self, package_dir: Path) -> int:
        self.calls.append(("install", package_dir))
        if self.on_install is not None:
            self.on_install(package_dir)
        return 0

    def run_build_script(self, package_dir: Path) -> int:
        self.calls.append(("build", package_dir))
        if self.on_build is not None:
            self.on_build(package_dir)
        return 0

    @property
    def steps(self) -> list[str]:
        return [step for step, _ in self.calls]


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    """Plugin target root (not created up front, like a fresh project)."""
    return tmp_path / "dist" / "plugins"


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Per-identifier scratch directory."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def package_source() -> FakePackageSource:
    """Empty fake package source; tests register packages on it."""
    return FakePackageSource()


@pytest.fixture
def toolchain() -> FakeToolchain:
    """Fake toolchain that builds nothing."""
    return FakeToolchain()


class FakeGitRepo(NamedTuple):
    """Result of creating a fake git repo for testing."""

    url: str
    commit_hash: str


def git_commit_all(work_dir: Path, message: str) -> str:
    """Stage all changes, commit, and return the new commit hash."""
    subprocess.run(["git", "add", "-A"], cwd=work_dir, check=True, capture_output=True)
    subprocess.run(
        ["git", "commit", "-m", message],
        cwd=work_dir, check=True, capture_output=True, env=GIT_ENV,
    )
    return subprocess.run(
        ["git", "rev-parse", "HEAD"],
        cwd=work_dir, check=True, capture_output=True, text=True,
    ).stdout.strip()


def create_fake_git_repo(tmp_path: Path, tag: str | None = None) -> FakeGitRepo:
    """Create a local git repo holding an unbuilt plugin package.

    Returns a FakeGitRepo with a git+file:// URL and the commit hash.
    """
    repo_dir = tmp_path / "plugin-repo"
    create_plugin_package(repo_dir, name="git-plugin", built=False, scripts={"build": "webpack"})
    subprocess.run(["git", "init"], cwd=repo_dir, check=True, capture_output=True)
    commit_hash = git_commit_all(repo_dir, "Initial plugin")
    if tag is not None:
        subprocess.run(["git", "tag", tag], cwd=repo_dir, check=True, capture_output=True)
    return FakeGitRepo(url="git+" + repo_dir.as_uri(), commit_hash=commit_hash)
