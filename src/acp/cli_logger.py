"""CLI output utilities for consistent messaging."""

from rich.console import Console

# Paths in messages must stay copy-pasteable, so lines are never wrapped
_console = Console()


def success(message: str) -> None:
    """Print a success message with green checkmark."""
    _console.print(f"[green]✓[/green] {message}", soft_wrap=True)


def error(message: str) -> None:
    """Print an error message with red X."""
    _console.print(f"[red]✗[/red] {message}", soft_wrap=True)


def warning(message: str) -> None:
    """Print a warning message with yellow exclamation."""
    _console.print(f"[yellow]![/yellow] {message}", soft_wrap=True)


def info(message: str) -> None:
    """Print an info message (no prefix)."""
    _console.print(message, highlight=False, soft_wrap=True)


def heading(message: str) -> None:
    """Print a bold section heading preceded by a blank line."""
    _console.print()
    _console.print(f"[bold]> {message}[/bold]", soft_wrap=True)


def exception() -> None:
    """Print the traceback of the exception currently being handled."""
    _console.print_exception()
