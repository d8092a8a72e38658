"""Interactive numbered menu."""

from __future__ import annotations

import logging
from collections.abc import Callable

from rich.console import Console

from osboot.pipeline import Pipeline, Selection

logger = logging.getLogger(__name__)

MENU_TITLE = "OS Booting Automation Menu"
MENU_RULE = "=" * 34


def render_menu(console: Console) -> None:
    console.print()
    console.print(f"[blue]{MENU_TITLE}[/blue]")
    console.print(MENU_RULE)
    for selection in Selection:
        console.print(f"{selection.value}. {selection.label}", markup=False)
    console.print(MENU_RULE)


def run_menu(
    pipeline: Pipeline,
    console: Console,
    read: Callable[[str], str] | None = None,
    pause: bool = True,
) -> None:
    """Show the menu and dispatch choices until exit or end of input.

    Invalid choices print an error and redisplay the menu. Errors other
    than missing inputs propagate out of the loop.

    Args:
        pipeline: Pipeline the choices are dispatched to.
        console: Console the menu is printed on.
        read: Prompt function (defaults to console.input).
        pause: Wait for Enter after each selection.
    """
    read = read or console.input
    last = len(Selection)

    while True:
        render_menu(console)
        try:
            raw = read(f"Enter your choice [1-{last}]: ")
        except (EOFError, KeyboardInterrupt):
            console.print()
            logger.debug("Input closed, leaving menu")
            return

        selection = Selection.parse(raw)
        if selection is None:
            pipeline.reporter.error(
                f"Invalid choice. Please enter a number between 1-{last}."
            )
            continue

        if not pipeline.dispatch(selection):
            return

        if pause:
            try:
                read("\nPress Enter to continue...")
            except (EOFError, KeyboardInterrupt):
                console.print()
                return


__all__ = ["MENU_TITLE", "render_menu", "run_menu"]
