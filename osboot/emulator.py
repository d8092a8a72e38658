"""QEMU launcher.

Boots either the kernel + ramdisk pair or a packaged ISO with a fixed
virtual hardware profile. The emulator runs in the foreground and the
call blocks until it exits; nothing is spawned when an input is missing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from osboot.artifacts import require_artifact
from osboot.layout import Layout
from osboot.runner import CommandRunner
from osboot.types import CommandResult, FsVariant

logger = logging.getLogger(__name__)

EXIT_HINT = "Press Ctrl+A then X to exit QEMU"


@dataclass(frozen=True)
class MachineProfile:
    """Virtual hardware for the guest."""

    binary: str = "qemu-system-x86_64"
    smp: int = 2
    memory_mb: int = 256
    display: str = "curses"
    vga: str = "std"

    def base_command(self) -> list[str]:
        return [
            self.binary,
            "-smp",
            str(self.smp),
            "-m",
            str(self.memory_mb),
            "-display",
            self.display,
            "-vga",
            self.vga,
        ]


def compose_initrd_command(
    profile: MachineProfile, kernel: Path, initrd: Path
) -> list[str]:
    return [*profile.base_command(), "-kernel", str(kernel), "-initrd", str(initrd)]


def compose_iso_command(profile: MachineProfile, iso: Path) -> list[str]:
    return [*profile.base_command(), "-cdrom", str(iso)]


def boot_ramdisk(
    runner: CommandRunner,
    layout: Layout,
    variant: FsVariant,
    profile: MachineProfile,
    on_start: Callable[[], None] | None = None,
) -> CommandResult:
    """Boot bzImage with the variant's ramdisk.

    on_start is called once both inputs are found, right before QEMU starts.

    Raises:
        ArtifactNotFoundError: If the ramdisk or kernel image is missing.
        CommandExecutionError: If QEMU fails.
    """
    initrd = require_artifact(layout.ramdisk(variant), label="Initrd file")
    kernel = require_artifact(layout.kernel_image, label="Kernel image")

    logger.info("Booting %s ramdisk %s", variant.value, initrd)
    if on_start is not None:
        on_start()
    return runner.run(compose_initrd_command(profile, kernel, initrd), cwd=layout.work_dir)


def boot_iso(
    runner: CommandRunner,
    layout: Layout,
    variant: FsVariant,
    profile: MachineProfile,
    on_start: Callable[[], None] | None = None,
) -> CommandResult:
    """Boot the variant's ISO from the virtual CD-ROM drive.

    Raises:
        ArtifactNotFoundError: If the ISO is missing.
        CommandExecutionError: If QEMU fails.
    """
    iso = require_artifact(layout.iso(variant), label="ISO file")

    logger.info("Booting ISO %s", iso)
    if on_start is not None:
        on_start()
    return runner.run(compose_iso_command(profile, iso), cwd=layout.work_dir)


__all__ = [
    "EXIT_HINT",
    "MachineProfile",
    "boot_iso",
    "boot_ramdisk",
    "compose_initrd_command",
    "compose_iso_command",
]
