"""Bootable ISO packaging with grub-mkrescue.

The staging directory is rebuilt from scratch for every ISO so a previous
variant's files never leak into the next image.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from osboot.artifacts import require_artifact
from osboot.layout import KERNEL_IMAGE_NAME, Layout
from osboot.runner import CommandRunner
from osboot.types import FsVariant

logger = logging.getLogger(__name__)

ISO_RAMDISK_NAME = "myramdisk.gz"


def render_grub_cfg(
    variant: FsVariant,
    timeout: int = 5,
    kernel_name: str = KERNEL_IMAGE_NAME,
    ramdisk_name: str = ISO_RAMDISK_NAME,
) -> str:
    """Render a grub.cfg with a single boot entry."""
    return f"""set timeout={timeout}
set default=0

menuentry "MyLinux ({variant.value} user)" {{
    linux /boot/{kernel_name}
    initrd /boot/{ramdisk_name}
}}
"""


def stage_iso_tree(layout: Layout, variant: FsVariant, timeout: int = 5) -> Path:
    """Rebuild the ISO staging tree for variant.

    Raises:
        ArtifactNotFoundError: If the kernel image or the ramdisk is missing.
    """
    kernel = require_artifact(layout.kernel_image, label="Kernel image")
    ramdisk = require_artifact(layout.ramdisk(variant), label="Initrd file")

    staging = layout.iso_staging
    if staging.exists():
        shutil.rmtree(staging)
    boot_dir = staging / "boot"
    grub_dir = boot_dir / "grub"
    grub_dir.mkdir(parents=True)

    logger.info("Copying kernel and initrd into %s", boot_dir)
    shutil.copyfile(kernel, boot_dir / KERNEL_IMAGE_NAME)
    shutil.copyfile(ramdisk, boot_dir / ISO_RAMDISK_NAME)

    (grub_dir / "grub.cfg").write_text(render_grub_cfg(variant, timeout))
    return staging


def package_iso(
    runner: CommandRunner,
    layout: Layout,
    variant: FsVariant,
    timeout: int = 5,
) -> Path:
    """Build mylinux_<variant>.iso from the kernel and the variant's ramdisk.

    Returns:
        Path to the ISO.

    Raises:
        ArtifactNotFoundError: If an input artifact is missing.
        CommandExecutionError: If grub-mkrescue fails.
    """
    staging = stage_iso_tree(layout, variant, timeout)
    iso = layout.iso(variant)
    runner.run(["grub-mkrescue", "-o", str(iso), str(staging)], cwd=layout.work_dir)
    logger.info("ISO created: %s", iso)
    return iso


__all__ = ["ISO_RAMDISK_NAME", "package_iso", "render_grub_cfg", "stage_iso_tree"]
