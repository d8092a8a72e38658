"""Host dependency installation through apt."""

from __future__ import annotations

import logging

from osboot.runner import CommandRunner

logger = logging.getLogger(__name__)


def compose_install_commands(packages: list[str]) -> list[list[str]]:
    """Return the apt commands that install packages, in order."""
    return [
        ["apt", "-y", "update"],
        ["apt", "-y", "install", *packages],
    ]


def install_dependencies(runner: CommandRunner, packages: list[str]) -> None:
    """Update package lists and install packages.

    No version pinning and no rollback: the first failing apt call raises.

    Raises:
        CommandExecutionError: If apt fails.
        ValueError: If packages is empty.
    """
    if not packages:
        raise ValueError("No packages configured for installation")

    logger.info("Installing %d host packages", len(packages))
    for cmd in compose_install_commands(packages):
        runner.run(cmd, privileged=True)


__all__ = ["compose_install_commands", "install_dependencies"]
