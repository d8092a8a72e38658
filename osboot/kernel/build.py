"""Kernel configuration and compilation.

This module handles:
- Composing `make` commands for the kernel tree
- Generating a tinyconfig baseline plus the fixed feature fragment
- Compiling with all available workers and copying bzImage out
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from osboot.errors import KERNEL_BUILD_ERROR, OsbootError
from osboot.runner import CommandRunner

logger = logging.getLogger(__name__)

# Options appended to the tinyconfig baseline, in order. This list is the
# contract with the kernel build system: virtio drivers, block and
# filesystem support, console/TTY, procfs/sysfs, cgroups and networking.
KERNEL_CONFIG_OPTIONS: tuple[tuple[str, str], ...] = (
    ("CONFIG_64BIT", "y"),
    ("CONFIG_PRINTK", "y"),
    ("CONFIG_FUTEX", "y"),
    ("CONFIG_INITRAMFS_SOURCE", '""'),
    ("CONFIG_CGROUPS", "y"),
    ("CONFIG_BLOCK", "y"),
    ("CONFIG_BLK_DEV_BSG", "y"),
    ("CONFIG_PARTITION_ADVANCED", "y"),
    ("CONFIG_TTY", "y"),
    ("CONFIG_VIRTIO_CONSOLE", "y"),
    ("CONFIG_DEVMEM", "y"),
    ("CONFIG_VIRTIO_NET", "y"),
    ("CONFIG_ATA", "y"),
    ("CONFIG_VIRTIO_BLK", "y"),
    ("CONFIG_BLK_DEV_LOOP", "y"),
    ("CONFIG_BLK_DEV_RAM", "y"),
    ("CONFIG_VIRTIO_DRIVERS", "y"),
    ("CONFIG_VIRT_DRIVERS", "y"),
    ("CONFIG_DEVTMPFS", "y"),
    ("CONFIG_DEVTMPFS_MOUNT", "y"),
    ("CONFIG_BINFMT_ELF", "y"),
    ("CONFIG_BINFMT_SCRIPT", "y"),
    ("CONFIG_FUSE_FS", "y"),
    ("CONFIG_EXT3_FS", "y"),
    ("CONFIG_EXT4_FS", "y"),
    ("CONFIG_EXT2_FS", "y"),
    ("CONFIG_VIRTIO_FS", "y"),
    ("CONFIG_AUTOFS4_FS", "y"),
    ("CONFIG_PROC_FS", "y"),
    ("CONFIG_PROC_SYSCTL", "y"),
    ("CONFIG_SYSFS", "y"),
    ("CONFIG_UNIX", "y"),
    ("CONFIG_INET", "y"),
    ("CONFIG_NET", "y"),
)

# Where x86 builds leave the compressed kernel image
BZIMAGE_RELPATH = Path("arch") / "x86" / "boot" / "bzImage"


class KernelBuildError(OsbootError):
    """Raised when the kernel build does not produce an image."""

    def __init__(self, message: str, code: str = KERNEL_BUILD_ERROR) -> None:
        super().__init__(message, code=code)


def render_config_fragment(
    options: tuple[tuple[str, str], ...] = KERNEL_CONFIG_OPTIONS,
) -> str:
    """Render config options as .config lines."""
    return "".join(f"{name}={value}\n" for name, value in options)


def compose_make_command(target: str | None = None, jobs: int | None = None) -> list[str]:
    """Compose a make command for the kernel tree.

    Args:
        target: Make target (None = default target).
        jobs: Parallel job count for -j.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = ["make"]
    if jobs is not None:
        cmd.append(f"-j{jobs}")
    if target:
        cmd.append(target)
    return cmd


def default_jobs() -> int:
    """Return the number of available CPUs (nproc)."""
    return os.cpu_count() or 1


def configure_kernel(runner: CommandRunner, source_dir: Path) -> Path:
    """Generate a minimal kernel configuration.

    Runs tinyconfig, appends the feature fragment and lets olddefconfig
    resolve the result to a consistent state. Always runs in full.

    Returns:
        Path to the resulting .config.
    """
    config_path = source_dir / ".config"

    logger.info("Creating minimal kernel configuration in %s", source_dir)
    runner.run(compose_make_command("tinyconfig"), cwd=source_dir)

    logger.info("Appending %d kernel options", len(KERNEL_CONFIG_OPTIONS))
    with config_path.open("a") as f:
        f.write(render_config_fragment())

    runner.run(compose_make_command("olddefconfig"), cwd=source_dir)
    return config_path


def compile_kernel(
    runner: CommandRunner,
    source_dir: Path,
    output_path: Path,
    jobs: int | None = None,
) -> Path:
    """Compile the kernel and copy bzImage to output_path.

    Args:
        runner: Command runner.
        source_dir: Configured kernel source tree.
        output_path: Where the kernel image is copied (overwritten).
        jobs: Parallel make jobs (None = CPU count).

    Returns:
        output_path.

    Raises:
        CommandExecutionError: If make fails.
        KernelBuildError: If make succeeded but no bzImage exists.
    """
    effective_jobs = jobs or default_jobs()
    logger.info("Compiling kernel with %d jobs", effective_jobs)
    runner.run(compose_make_command(jobs=effective_jobs), cwd=source_dir)

    image = source_dir / BZIMAGE_RELPATH
    if not image.is_file():
        raise KernelBuildError(f"Kernel build finished but {image} is missing")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(image, output_path)
    logger.info("Copied kernel image to %s", output_path)
    return output_path


__all__ = [
    "BZIMAGE_RELPATH",
    "KERNEL_CONFIG_OPTIONS",
    "KernelBuildError",
    "compile_kernel",
    "compose_make_command",
    "configure_kernel",
    "default_jobs",
    "render_config_fragment",
]
