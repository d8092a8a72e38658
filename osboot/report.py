"""Operator-facing progress output.

Stages report what they are doing through a Reporter rather than the
logging tree, so the menu keeps its coloured [INFO]/[WARNING]/[ERROR]
lines regardless of the configured log level.
"""

from rich.console import Console
from rich.markup import escape

RULE = "=" * 40


class Reporter:
    """Prints section headers and status lines to a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def section(self, title: str) -> None:
        self.console.print()
        self.console.print(f"[blue]{RULE}[/blue]")
        self.console.print(f"[blue] {escape(title)}[/blue]")
        self.console.print(f"[blue]{RULE}[/blue]")
        self.console.print()

    def status(self, message: str) -> None:
        self.console.print(f"[green]\\[INFO][/green] {escape(message)}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]\\[WARNING][/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]\\[ERROR][/red] {escape(message)}")


__all__ = ["Reporter"]
