"""Shared type definitions for osboot.

This module contains enums and dataclasses shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum


class FsVariant(str, Enum):
    """Ramdisk root filesystem variant."""

    SINGLE = "single"
    MULTI = "multi"

    @property
    def staging_name(self) -> str:
        return f"myramdisk_{self.value}"

    @property
    def ramdisk_name(self) -> str:
        return f"myramdisk_{self.value}.gz"

    @property
    def iso_name(self) -> str:
        return f"mylinux_{self.value}.iso"

    @property
    def title(self) -> str:
        return "Single User" if self is FsVariant.SINGLE else "Multi User"


@dataclass
class CommandResult:
    """Result of an external command.

    Attributes:
        command: The shell-quoted command line that was executed.
        exit_code: Process exit code.
    """

    command: str
    exit_code: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass
class ArtifactInfo:
    """Information about a final artifact in the work directory."""

    name: str
    path: str
    exists: bool
    size_bytes: int | None = None
    sha256: str | None = None


__all__ = ["ArtifactInfo", "CommandResult", "FsVariant"]
