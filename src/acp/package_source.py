"""Package fetching for acp.

A PackageSource turns a package identifier into a local directory with
the package contents. The default NpmPackageSource understands local
paths, git references and npm registry specs.
"""

import hashlib
import json
import shutil
import subprocess
import tarfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol

from acp.build import npm_executable
from acp.errors import SourceResolutionFailed
from acp.git import git_ls_remote, shallow_clone
from acp.manifest import MANIFEST_FILENAME
from acp.progress import Reporter, noop_report
from acp.source import ResolvedSource, SourceType, resolve_source

# Not copied when fetching from a local directory
LOCAL_COPY_IGNORE = ("node_modules", ".git")


@dataclass(frozen=True)
class PackageInfo:
    """Package metadata known before the package is fetched."""

    name: str | None
    version: str | None


class PackageSource(Protocol):
    """Resolves and fetches packages by identifier."""

    def resolve_manifest(self, identifier: str) -> PackageInfo:
        """Resolve identifier to package metadata without fully fetching it."""
        ...

    def fetch(self, identifier: str, destination: Path, cache_dir: Path) -> None:
        """Materialize the package contents at destination.

        cache_dir is scratch space owned by the caller and released after
        the operation on this identifier completes.
        """
        ...


def _classify(identifier: str) -> ResolvedSource:
    try:
        return resolve_source(identifier)
    except ValueError as e:
        raise SourceResolutionFailed(identifier, str(e)) from e


def _command_error(e: subprocess.CalledProcessError) -> str:
    """Extract a readable message from a failed subprocess."""
    output = e.stderr or e.stdout or b""
    if isinstance(output, bytes):
        output = output.decode(errors="replace")
    output = output.strip()
    return output.splitlines()[-1] if output else f"exit code {e.returncode}"


def _extract_package_tarball(identifier: str, tarball: Path, destination: Path) -> None:
    """Extract an npm tarball, dropping its top-level "package/" directory."""
    destination.mkdir(parents=True, exist_ok=True)
    with tarfile.open(tarball, "r:*") as archive:
        members = []
        for member in archive.getmembers():
            parts = PurePosixPath(member.name).parts
            if len(parts) < 2 or not (member.isfile() or member.isdir()):
                continue
            relative = PurePosixPath(*parts[1:])
            if relative.is_absolute() or ".." in relative.parts:
                raise SourceResolutionFailed(identifier, f"unsafe path in package tarball: {member.name}")
            member.name = str(relative)
            members.append(member)
        archive.extractall(destination, members=members, filter="data")


class NpmPackageSource:
    """Fetches packages from local directories, git and the npm registry."""

    def resolve_manifest(self, identifier: str) -> PackageInfo:
        """Resolve identifier to its package name and version.

        Git references are only checked for reachability; their name is
        not known until the repository is cloned.

        Raises:
            SourceResolutionFailed: If the identifier cannot be resolved.
        """
        resolved = _classify(identifier)

        if resolved.source_type == SourceType.LOCAL:
            assert resolved.path is not None
            return self._resolve_local(identifier, resolved.path)

        if resolved.source_type == SourceType.GIT:
            assert resolved.url is not None
            try:
                git_ls_remote(resolved.url)
            except FileNotFoundError as e:
                raise SourceResolutionFailed(identifier, "git is not available") from e
            except subprocess.CalledProcessError as e:
                raise SourceResolutionFailed(identifier, _command_error(e)) from e
            except ValueError as e:
                raise SourceResolutionFailed(identifier, str(e)) from e
            return PackageInfo(name=None, version=None)

        assert resolved.spec is not None
        return self._resolve_registry(identifier, resolved.spec)

    def fetch(self, identifier: str, destination: Path, cache_dir: Path) -> None:
        """Fetch the package contents into destination.

        Raises:
            SourceResolutionFailed: If the package cannot be fetched.
        """
        resolved = _classify(identifier)

        try:
            if resolved.source_type == SourceType.LOCAL:
                assert resolved.path is not None
                shutil.copytree(
                    resolved.path,
                    destination,
                    symlinks=True,
                    ignore=shutil.ignore_patterns(*LOCAL_COPY_IGNORE),
                )
            elif resolved.source_type == SourceType.GIT:
                assert resolved.url is not None
                shallow_clone(resolved.url, destination, resolved.ref)
            else:
                assert resolved.spec is not None
                self._fetch_registry(identifier, resolved.spec, destination, cache_dir)
        except FileNotFoundError as e:
            raise SourceResolutionFailed(identifier, f"command or path not found: {e.filename or e}") from e
        except subprocess.CalledProcessError as e:
            raise SourceResolutionFailed(identifier, _command_error(e)) from e
        except (OSError, tarfile.TarError) as e:
            raise SourceResolutionFailed(identifier, str(e)) from e

    def _resolve_local(self, identifier: str, path: Path) -> PackageInfo:
        if not path.is_dir():
            raise SourceResolutionFailed(identifier, f"'{path}' is not a directory")

        manifest_path = path / MANIFEST_FILENAME
        if not manifest_path.is_file():
            # The manifest reader reports the missing file once the package is fetched
            return PackageInfo(name=None, version=None)

        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SourceResolutionFailed(identifier, f"unreadable {MANIFEST_FILENAME}: {e}") from e

        if not isinstance(data, dict):
            return PackageInfo(name=None, version=None)
        name = data.get("name")
        version = data.get("version")
        return PackageInfo(
            name=name if isinstance(name, str) else None,
            version=version if isinstance(version, str) else None,
        )

    def _resolve_registry(self, identifier: str, spec: str) -> PackageInfo:
        try:
            result = subprocess.run(
                [npm_executable(), "view", spec, "name", "version", "--json"],
                check=True,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise SourceResolutionFailed(identifier, "npm is not available") from e
        except subprocess.CalledProcessError as e:
            raise SourceResolutionFailed(identifier, _command_error(e)) from e

        output = result.stdout.strip()
        if not output:
            raise SourceResolutionFailed(identifier, "no matching version found in the registry")

        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise SourceResolutionFailed(identifier, f"unexpected npm output: {output[:200]}") from e

        # A range matching several versions yields one object per version, oldest first
        if isinstance(data, list):
            if not data:
                raise SourceResolutionFailed(identifier, "no matching version found in the registry")
            data = data[-1]

        if not isinstance(data, dict):
            raise SourceResolutionFailed(identifier, f"unexpected npm output: {output[:200]}")

        return PackageInfo(name=data.get("name"), version=data.get("version"))

    def _fetch_registry(self, identifier: str, spec: str, destination: Path, cache_dir: Path) -> None:
        cache_dir.mkdir(parents=True, exist_ok=True)
        result = subprocess.run(
            [npm_executable(), "pack", spec, "--json", "--pack-destination", str(cache_dir)],
            check=True,
            capture_output=True,
            text=True,
            cwd=cache_dir,
        )

        try:
            packed = json.loads(result.stdout)
            filename = packed[0]["filename"]
        except (json.JSONDecodeError, LookupError, TypeError) as e:
            raise SourceResolutionFailed(identifier, "npm pack did not report a tarball") from e

        # Scoped packages are packed as "scope-name-1.0.0.tgz" but reported as "@scope/name-1.0.0.tgz"
        tarball = cache_dir / filename
        if not tarball.is_file():
            tarball = cache_dir / filename.lstrip("@").replace("/", "-")
        _extract_package_tarball(identifier, tarball, destination)


def package_dir_name(identifier: str, info: PackageInfo) -> Path:
    """Return the relative directory a fetched package is placed in.

    Named packages use their name (scoped names nest one level); unnamed
    ones use the md5 digest of the identifier.
    """
    if info.name:
        return Path(*info.name.split("/"))
    return Path(hashlib.md5(identifier.encode()).hexdigest())


def fetch_package(
    source: PackageSource,
    identifier: str,
    work_dir: Path,
    report: Reporter = noop_report,
) -> Path:
    """Resolve and fetch a package into work_dir.

    Args:
        source: Package source to fetch from.
        identifier: Package identifier.
        work_dir: Per-identifier scratch directory.
        report: Progress callback.

    Returns:
        The directory holding the fetched package.

    Raises:
        SourceResolutionFailed: If the package cannot be resolved or fetched.
    """
    report("Loading plugin manifest...")
    info = source.resolve_manifest(identifier)

    package_dir = work_dir / "package" / package_dir_name(identifier, info)
    package_dir.parent.mkdir(parents=True, exist_ok=True)
    source.fetch(identifier, package_dir, work_dir / "cache")
    return package_dir
