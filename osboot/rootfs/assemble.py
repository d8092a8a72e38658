"""Ramdisk root filesystem assembly.

This module handles:
- Recreating the staging directory from scratch on every run
- Copying host device nodes and installing static busybox
- Writing init and, for the multi-user variant, account files
- Packing the staging tree into myramdisk_<variant>.gz

Device-node copies are the only privileged step; the archive records
every entry as owned by root.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from osboot.errors import ArtifactNotFoundError
from osboot.layout import Layout
from osboot.rootfs.templates import (
    DEFAULT_ACCOUNTS,
    render_group,
    render_hostname,
    render_multi_init,
    render_passwd,
    render_single_init,
)
from osboot.runner import CommandRunner
from osboot.types import FsVariant

logger = logging.getLogger(__name__)

SINGLE_DIRS = ("bin", "dev", "proc", "sys")
MULTI_DIRS = SINGLE_DIRS + ("etc", "root", "home/user1")

REQUIRED_DEVICE_NODES = ("null", "zero", "console")
TTY_PATTERN = "tty*"

INIT_MODE = 0o755


def staging_subdirs(variant: FsVariant) -> tuple[str, ...]:
    return SINGLE_DIRS if variant is FsVariant.SINGLE else MULTI_DIRS


def reset_staging(staging: Path, subdirs: tuple[str, ...]) -> Path:
    """Delete staging if present and recreate it with subdirs.

    Nothing from a previous run survives this call.
    """
    if staging.exists():
        logger.info("Removing existing staging directory %s", staging)
        shutil.rmtree(staging)
    for sub in subdirs:
        (staging / sub).mkdir(parents=True, exist_ok=True)
    return staging


def copy_device_nodes(runner: CommandRunner, device_dir: Path, dest: Path) -> None:
    """Copy the minimal device nodes into dest with `cp -a`.

    null, zero and console are required. TTY nodes are best effort: a failed
    copy is logged and ignored.
    """
    required = [str(device_dir / name) for name in REQUIRED_DEVICE_NODES]
    runner.run(["cp", "-a", *required, str(dest)], privileged=True)

    ttys = sorted(str(p) for p in device_dir.glob(TTY_PATTERN))
    if not ttys:
        logger.warning("No %s nodes found in %s", TTY_PATTERN, device_dir)
        return
    result = runner.run(["cp", "-a", *ttys, str(dest)], privileged=True, check=False)
    if not result.success:
        logger.warning(
            "Copying tty devices exited with %d, continuing", result.exit_code
        )


def install_busybox(runner: CommandRunner, busybox_path: Path, bin_dir: Path) -> Path:
    """Copy busybox into bin_dir and install its applet links next to it.

    Raises:
        ArtifactNotFoundError: If busybox_path does not exist.
    """
    if not busybox_path.is_file():
        raise ArtifactNotFoundError(str(busybox_path), label="BusyBox binary")

    target = bin_dir / "busybox"
    shutil.copy2(busybox_path, target)
    target.chmod(0o755)
    runner.run(["./busybox", "--install", "."], cwd=bin_dir)
    return target


def write_file(path: Path, content: str, mode: int | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mode is not None:
        path.chmod(mode)
    return path


def generate_password_hash(runner: CommandRunner, password: str) -> str:
    """Hash password with `openssl passwd -1`, reading it from stdin.

    Raises:
        CommandExecutionError: If openssl fails.
        ValueError: If openssl printed nothing.
    """
    output = runner.capture(["openssl", "passwd", "-1", "-stdin"], input_text=f"{password}\n")
    password_hash = output.strip()
    if not password_hash:
        raise ValueError("openssl returned an empty password hash")
    return password_hash


def write_account_files(etc_dir: Path, password_hash: str, hostname: str) -> None:
    """Write passwd, group and hostname into etc_dir."""
    write_file(etc_dir / "passwd", render_passwd(password_hash, DEFAULT_ACCOUNTS))
    write_file(etc_dir / "group", render_group())
    write_file(etc_dir / "hostname", render_hostname(hostname))


def build_rootfs(
    runner: CommandRunner,
    layout: Layout,
    variant: FsVariant,
    *,
    busybox_path: Path,
    device_dir: Path = Path("/dev"),
    password: str | None = None,
    hostname: str = "multilinux",
    getty_retries: int = 5,
) -> Path:
    """Assemble and pack the ramdisk for one variant.

    Only the variant's own staging directory and ramdisk are touched.

    Args:
        runner: Command runner.
        layout: Work directory layout.
        variant: Which ramdisk to build.
        busybox_path: Static busybox binary on the host.
        device_dir: Host device directory.
        password: Account password (required for the multi-user variant).
        hostname: Hostname written to etc/hostname (multi-user only).
        getty_retries: getty respawn bound in the multi-user init.

    Returns:
        Path to the compressed ramdisk.

    Raises:
        ValueError: If the multi-user variant is built without a password.
        ArtifactNotFoundError: If busybox is missing.
        CommandExecutionError: If any host tool fails.
    """
    if variant is FsVariant.MULTI and not password:
        raise ValueError("A password is required for the multi-user ramdisk")

    # Hash first so a missing openssl fails before the staging dir is touched.
    password_hash = (
        generate_password_hash(runner, password)
        if variant is FsVariant.MULTI and password
        else None
    )

    staging = layout.staging_dir(variant)
    logger.info("Assembling %s ramdisk in %s", variant.value, staging)
    layout.work_dir.mkdir(parents=True, exist_ok=True)
    reset_staging(staging, staging_subdirs(variant))

    copy_device_nodes(runner, device_dir, staging / "dev")
    install_busybox(runner, busybox_path, staging / "bin")

    if password_hash is not None:
        write_account_files(staging / "etc", password_hash, hostname)
        init = render_multi_init(DEFAULT_ACCOUNTS, getty_retries=getty_retries)
    else:
        init = render_single_init()
    write_file(staging / "init", init, mode=INIT_MODE)

    output = layout.ramdisk(variant)
    runner.archive_tree(staging, output)
    logger.info("%s filesystem created: %s", variant.title, output)
    return output


__all__ = [
    "MULTI_DIRS",
    "REQUIRED_DEVICE_NODES",
    "SINGLE_DIRS",
    "build_rootfs",
    "copy_device_nodes",
    "generate_password_hash",
    "install_busybox",
    "reset_staging",
    "staging_subdirs",
    "write_account_files",
]
