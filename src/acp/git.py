"""Git operations for acp.

Thin wrappers around the git command line used to fetch plugin
packages from git references.
"""

import subprocess
from pathlib import Path


def git_ls_remote(url: str, ref: str = "HEAD") -> str:
    """Get the commit hash a remote ref points to without cloning.

    Uses ``git ls-remote`` which only contacts the remote for ref info,
    making it much cheaper than a full clone or fetch.

    Args:
        url: Git URL of the remote repository.
        ref: Ref name to look up.

    Returns:
        The full 40-char commit hash of the ref.

    Raises:
        subprocess.CalledProcessError: If the remote is unreachable or git fails.
        ValueError: If the remote has no such ref.
    """
    result = subprocess.run(
        ["git", "ls-remote", url, ref],
        check=True,
        capture_output=True,
        text=True,
    )
    # Output format: "<hash>\t<ref>\n"
    output = result.stdout.strip()
    if not output:
        msg = f"Remote '{url}' returned no '{ref}' ref"
        raise ValueError(msg)
    return output.split("\t")[0]


def shallow_clone(url: str, clone_dir: Path, ref: str | None = None) -> None:
    """Clone a repo into clone_dir, checking out ref if one is given.

    Branches and tags are cloned with ``--depth 1``. Any other ref
    (typically a commit hash) needs the full history, so the repo is
    cloned in full and the ref checked out afterwards.

    Args:
        url: Git URL to clone.
        clone_dir: Target directory for the clone.
        ref: Branch, tag or commit to check out. Defaults to the remote HEAD.

    Raises:
        subprocess.CalledProcessError: If git clone or checkout fails.
    """
    if ref is None:
        subprocess.run(
            ["git", "clone", "--depth", "1", url, str(clone_dir)],
            check=True,
            capture_output=True,
        )
        return

    result = subprocess.run(
        ["git", "clone", "--depth", "1", "--branch", ref, url, str(clone_dir)],
        capture_output=True,
    )
    if result.returncode == 0:
        return

    subprocess.run(
        ["git", "clone", url, str(clone_dir)],
        check=True,
        capture_output=True,
    )
    subprocess.run(
        ["git", "checkout", ref],
        cwd=clone_dir,
        check=True,
        capture_output=True,
    )

