"""Pipeline orchestrator.

This module provides the stage dispatcher:
- Selection: the finite set of menu commands
- Pipeline: one method per stage, all paths taken from a Layout
- dispatch(): run a selection once, classify failures

Failure handling:
- PreconditionError (missing input artifact) is reported and the
  selection ends; the caller may continue with the next selection.
- Any other OsbootError (a host tool exiting non-zero, a failed download)
  propagates to the caller, which ends the process.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from osboot.cleanup import cleanup_workspace
from osboot.deps import install_dependencies
from osboot.emulator import EXIT_HINT, MachineProfile, boot_iso, boot_ramdisk
from osboot.errors import PreconditionError
from osboot.iso import package_iso
from osboot.kernel.build import compile_kernel, configure_kernel
from osboot.kernel.fetch import ensure_source_archive, ensure_source_tree
from osboot.layout import Layout
from osboot.report import Reporter
from osboot.rootfs.assemble import build_rootfs
from osboot.runner import CommandRunner
from osboot.types import FsVariant

if TYPE_CHECKING:
    from osboot.config import Settings

logger = logging.getLogger(__name__)


class Selection(str, Enum):
    """Menu selections, valued by their menu number."""

    FULL_SETUP = "1"
    INSTALL_DEPS = "2"
    BUILD_KERNEL = "3"
    CREATE_SINGLE_FS = "4"
    CREATE_MULTI_FS = "5"
    BOOT_SINGLE = "6"
    BOOT_MULTI = "7"
    PACKAGE_SINGLE_ISO = "8"
    PACKAGE_MULTI_ISO = "9"
    BOOT_SINGLE_ISO = "10"
    BOOT_MULTI_ISO = "11"
    CLEANUP = "12"
    EXIT = "13"

    @property
    def slug(self) -> str:
        return self.name.lower().replace("_", "-")

    @property
    def label(self) -> str:
        return SELECTION_LABELS[self]

    @classmethod
    def parse(cls, raw: str) -> Selection | None:
        """Resolve a menu number or slug; None if it names nothing."""
        value = raw.strip().lower()
        for selection in cls:
            if value in (selection.value, selection.slug):
                return selection
        return None


SELECTION_LABELS = {
    Selection.FULL_SETUP: (
        "Full Setup (Install deps + Build kernel + Create filesystems + Create ISOs)"
    ),
    Selection.INSTALL_DEPS: "Install Dependencies Only",
    Selection.BUILD_KERNEL: "Build Kernel Only",
    Selection.CREATE_SINGLE_FS: "Create Single User Filesystem",
    Selection.CREATE_MULTI_FS: "Create Multi User Filesystem",
    Selection.BOOT_SINGLE: "Test Single User with QEMU",
    Selection.BOOT_MULTI: "Test Multi User with QEMU",
    Selection.PACKAGE_SINGLE_ISO: "Create Single User ISO",
    Selection.PACKAGE_MULTI_ISO: "Create Multi User ISO",
    Selection.BOOT_SINGLE_ISO: "Test Single User ISO with QEMU",
    Selection.BOOT_MULTI_ISO: "Test Multi User ISO with QEMU",
    Selection.CLEANUP: "Cleanup",
    Selection.EXIT: "Exit",
}


class Pipeline:
    """Runs the OS-boot stages against one work directory."""

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner | None = None,
        reporter: Reporter | None = None,
        client_factory: Callable[[], httpx.Client] | None = None,
    ) -> None:
        self.settings = settings
        self.layout = Layout.from_settings(settings)
        self.runner = runner or CommandRunner(use_sudo=settings.use_sudo)
        self.reporter = reporter or Reporter()
        self.client_factory = client_factory or (
            lambda: httpx.Client(follow_redirects=True)
        )
        self.machine = MachineProfile(
            binary=settings.qemu_binary,
            smp=settings.qemu_smp,
            memory_mb=settings.qemu_memory_mb,
            display=settings.qemu_display,
        )
        self._handlers: dict[Selection, Callable[[], None]] = {
            Selection.FULL_SETUP: self.full_setup,
            Selection.INSTALL_DEPS: self.install_dependencies,
            Selection.BUILD_KERNEL: self.build_kernel,
            Selection.CREATE_SINGLE_FS: lambda: self.create_rootfs(FsVariant.SINGLE),
            Selection.CREATE_MULTI_FS: lambda: self.create_rootfs(FsVariant.MULTI),
            Selection.BOOT_SINGLE: lambda: self.boot_rootfs(FsVariant.SINGLE),
            Selection.BOOT_MULTI: lambda: self.boot_rootfs(FsVariant.MULTI),
            Selection.PACKAGE_SINGLE_ISO: lambda: self.package_iso(FsVariant.SINGLE),
            Selection.PACKAGE_MULTI_ISO: lambda: self.package_iso(FsVariant.MULTI),
            Selection.BOOT_SINGLE_ISO: lambda: self.boot_iso(FsVariant.SINGLE),
            Selection.BOOT_MULTI_ISO: lambda: self.boot_iso(FsVariant.MULTI),
            Selection.CLEANUP: self.cleanup,
        }

    # Dispatch

    def dispatch(self, selection: Selection) -> bool:
        """Run selection once.

        Returns:
            False for the exit selection, True otherwise (including when the
            stage stopped on a missing input).

        Raises:
            OsbootError: Any non-precondition failure, unchanged.
        """
        if selection is Selection.EXIT:
            self.reporter.status("Exiting automation script. Goodbye!")
            return False

        try:
            self.run_stage(selection)
        except PreconditionError as e:
            logger.debug("Selection %s stopped: %s", selection.slug, e.code)
            self.reporter.error(e.message)
        return True

    def run_stage(self, selection: Selection) -> None:
        """Run the stage behind selection, letting every error propagate.

        Raises:
            ValueError: For the exit selection, which has no stage.
        """
        handler = self._handlers.get(selection)
        if handler is None:
            raise ValueError(f"Selection {selection.slug} has no stage")
        logger.debug("Running selection %s (%s)", selection.value, selection.slug)
        handler()

    # Stages

    def ensure_work_dir(self) -> Path:
        work_dir = self.layout.work_dir
        if not work_dir.is_dir():
            work_dir.mkdir(parents=True)
            self.reporter.status(f"Project directory created: {work_dir}")
        return work_dir

    def install_dependencies(self) -> None:
        self.reporter.section("Installing Dependencies")
        self.reporter.status("Installing required packages...")
        install_dependencies(self.runner, self.settings.packages)
        self.reporter.status("Dependencies installed successfully!")

    def download_kernel(self) -> Path:
        self.reporter.section("Downloading Linux Kernel")
        self.ensure_work_dir()
        version = self.settings.kernel_version

        with self.client_factory() as client:
            archive, downloaded = ensure_source_archive(
                client,
                version,
                self.layout.work_dir,
                base_url=self.settings.kernel_base_url,
                verify_checksum=self.settings.verify_checksum,
                timeout=self.settings.download_timeout,
            )
        if downloaded:
            self.reporter.status(f"Downloaded Linux kernel {version}")
        else:
            self.reporter.status("Kernel archive already exists, skipping download")

        source_dir, extracted = ensure_source_tree(archive, self.layout.source_dir)
        if extracted:
            self.reporter.status("Kernel source extracted")
        else:
            self.reporter.status("Kernel source already extracted")
        return source_dir

    def build_kernel(self) -> None:
        source_dir = self.download_kernel()

        self.reporter.section("Configuring Linux Kernel")
        configure_kernel(self.runner, source_dir)
        self.reporter.status("Kernel configuration finalized")

        self.reporter.section("Compiling Linux Kernel")
        self.reporter.status("Starting kernel compilation (this may take a while)...")
        compile_kernel(
            self.runner,
            source_dir,
            self.layout.kernel_image,
            jobs=self.settings.build_jobs,
        )
        self.reporter.status("Kernel compilation completed! bzImage created.")

    def create_rootfs(self, variant: FsVariant) -> None:
        self.reporter.section(f"Creating {variant.title} Root Filesystem")
        if variant is FsVariant.MULTI:
            self.reporter.status("Generating password hash...")
        output = build_rootfs(
            self.runner,
            self.layout,
            variant,
            busybox_path=self.settings.busybox_path,
            device_dir=self.settings.device_dir,
            password=self.settings.root_password.get_secret_value(),
            hostname=self.settings.hostname,
            getty_retries=self.settings.getty_retries,
        )
        self.reporter.status(f"{variant.title} root filesystem created: {output.name}")
        if variant is FsVariant.MULTI:
            self.reporter.status(
                "Default credentials - Username: root/user1, "
                "Password: see OSBOOT_ROOT_PASSWORD (default password123)"
            )

    def boot_rootfs(self, variant: FsVariant) -> None:
        self.reporter.section("Testing with QEMU")
        boot_ramdisk(
            self.runner,
            self.layout,
            variant,
            self.machine,
            on_start=lambda: self._announce_boot(
                f"Testing {variant.title} System with QEMU..."
            ),
        )

    def package_iso(self, variant: FsVariant) -> None:
        self.reporter.section("Creating Bootable ISO")
        iso = package_iso(
            self.runner, self.layout, variant, timeout=self.settings.grub_timeout
        )
        self.reporter.status(f"ISO created: {iso.name}")

    def boot_iso(self, variant: FsVariant) -> None:
        self.reporter.section("Testing ISO with QEMU")
        boot_iso(
            self.runner,
            self.layout,
            variant,
            self.machine,
            on_start=lambda: self._announce_boot(
                f"Starting QEMU with ISO: {variant.iso_name}"
            ),
        )

    def cleanup(self) -> None:
        self.reporter.section("Cleanup")
        self.reporter.status("Removing temporary files...")
        removed = cleanup_workspace(self.layout)
        self.reporter.status(f"Cleanup completed! ({len(removed)} item(s) removed)")

    def full_setup(self) -> None:
        """All stages in fixed order; the first failure stops the rest."""
        self.install_dependencies()
        self.ensure_work_dir()
        self.build_kernel()
        self.create_rootfs(FsVariant.SINGLE)
        self.create_rootfs(FsVariant.MULTI)
        self.package_iso(FsVariant.SINGLE)
        self.package_iso(FsVariant.MULTI)
        self.reporter.status("Full setup completed!")

    def _announce_boot(self, message: str) -> None:
        self.reporter.status(message)
        self.reporter.warning(EXIT_HINT)
        self.reporter.warning("Or run 'pkill -f qemu' from another terminal")


def running_as_root() -> bool:
    return os.geteuid() == 0


__all__ = ["SELECTION_LABELS", "Pipeline", "Selection", "running_as_root"]
