"""Progress reporting callbacks passed into long-running operations."""

from collections.abc import Callable

Reporter = Callable[[str], None]


def noop_report(_message: str) -> None:
    """Discard progress messages."""
