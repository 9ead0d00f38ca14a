"""Package identifier classification.

Determines whether a package identifier given to ``acp install`` or
``acp uninstall`` is a local path, a git reference or an npm registry
spec.

Resolution order:
1. Explicit path indicators (./  ../  /  ~/  file:) → local
2. Path exists on disk → local
3. Matches a git URL pattern → git
4. Otherwise → registry spec
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class SourceType(str, Enum):
    """Type of package source."""

    LOCAL = "local"
    REGISTRY = "registry"
    GIT = "git"


@dataclass(frozen=True)
class ResolvedSource:
    """Result of identifier classification.

    Exactly one of path, url, or spec is set depending on source_type.
    """

    source_type: SourceType

    # LOCAL: filesystem path
    path: Path | None = None

    # GIT: clonable URL and optional ref to check out
    url: str | None = None
    ref: str | None = None

    # REGISTRY: npm spec, e.g. "my-plugin" or "@scope/my-plugin@^1.2.0"
    spec: str | None = None


GIT_HOST_SHORTCUTS = {
    "github:": "https://github.com/",
    "gitlab:": "https://gitlab.com/",
    "bitbucket:": "https://bitbucket.org/",
}


def _is_explicit_path(identifier: str) -> bool:
    """Check if the identifier is syntactically a filesystem path.

    These indicators mean "local" regardless of whether the path exists:
    - Starts with ./  or  ../  (relative)
    - Starts with /  (absolute)
    - Starts with ~  (home directory)
    - Starts with file:  (npm file spec)
    """
    return identifier.startswith(("./", "../", "/", "~/", "~\\", ".\\", "..\\", "file:"))


def _is_git_url(identifier: str) -> bool:
    """Check if the identifier looks like a git URL.

    Recognized patterns:
    - git+https://host/org/repo, git://host/org/repo
    - https://host/org/repo[.git]
    - git@host:org/repo[.git]
    - github:org/repo (and the gitlab:/bitbucket: equivalents)
    - host.tld/org/repo  (shorthand, e.g. github.com/org/repo)
    """
    if identifier.startswith(("git+", "git://")):
        return True

    # SSH URLs: git@host:path
    if identifier.startswith("git@") and ":" in identifier[4:]:
        return True

    if identifier.startswith(("https://", "http://")):
        return True

    if identifier.startswith(tuple(GIT_HOST_SHORTCUTS)):
        return True

    # Shorthand: contains a dot before the first slash (domain.tld/path).
    # Scoped npm specs (@scope/name) never qualify.
    if "/" in identifier and not identifier.startswith("@"):
        host_part = identifier.split("/", 1)[0]
        if "." in host_part:
            return True

    return False


def normalize_git_url(url: str) -> str:
    """Normalize a git reference into a form git can clone.

    ``git+https://...`` loses its ``git+`` prefix, host shortcuts such as
    ``github:org/repo`` expand to https URLs, and shorthand like
    ``github.com/org/repo`` gets an https scheme. SSH URLs and URLs that
    already have a scheme are returned unchanged.

    Args:
        url: Git reference without any ``#ref`` suffix.

    Returns:
        A URL suitable for ``git clone``.
    """
    if url.startswith("git+"):
        return url[len("git+"):]

    for shortcut, prefix in GIT_HOST_SHORTCUTS.items():
        if url.startswith(shortcut):
            return prefix + url[len(shortcut):]

    # SSH: git@host:path is already valid
    if url.startswith("git@"):
        return url

    if url.startswith(("https://", "http://", "git://", "ssh://", "file://")):
        return url

    return f"https://{url}"


def _local_path(identifier: str) -> Path:
    """Turn a local identifier into a filesystem path."""
    if identifier.startswith("file:"):
        identifier = identifier[len("file:"):]
    return Path(identifier).expanduser()


def resolve_source(identifier: str) -> ResolvedSource:
    """Classify a package identifier as local path, git URL, or registry spec.

    Args:
        identifier: Raw package identifier from the command line.

    Returns:
        ResolvedSource with the classification and parsed details.

    Raises:
        ValueError: If identifier is empty or whitespace-only.
    """
    identifier = identifier.strip()
    if not identifier:
        msg = "Package identifier cannot be empty"
        raise ValueError(msg)

    # 1. Explicit path syntax → local (even if path doesn't exist)
    if _is_explicit_path(identifier):
        return ResolvedSource(source_type=SourceType.LOCAL, path=_local_path(identifier))

    # 2. Directory exists on disk → local
    candidate = Path(identifier)
    if candidate.is_dir():
        return ResolvedSource(source_type=SourceType.LOCAL, path=candidate)

    # 3. URL pattern → git, with an optional "#<ref>" suffix
    if _is_git_url(identifier):
        url, _, ref = identifier.partition("#")
        return ResolvedSource(source_type=SourceType.GIT, url=normalize_git_url(url), ref=ref or None)

    # 4. Everything else → registry spec
    return ResolvedSource(source_type=SourceType.REGISTRY, spec=identifier)
