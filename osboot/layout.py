"""Work directory layout.

Maps a work directory and kernel version to the fixed artifact names
every stage reads and writes. Stages receive a Layout instead of relying
on the process working directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from osboot.types import FsVariant

if TYPE_CHECKING:
    from osboot.config import Settings

KERNEL_IMAGE_NAME = "bzImage"
ISO_STAGING_NAME = "mylinuxiso"

# Left behind by the shell version of this workflow; removed by cleanup.
LEGACY_SCRIPT_NAMES = ("create_single_user.sh", "create_multi_user.sh")


@dataclass(frozen=True)
class Layout:
    """Paths of every artifact under a work directory."""

    work_dir: Path
    kernel_version: str

    def __post_init__(self) -> None:
        # Tools run with cwd=work_dir, so every derived path must be absolute.
        object.__setattr__(self, "work_dir", Path(self.work_dir).expanduser().resolve())

    @classmethod
    def from_settings(cls, settings: Settings) -> Layout:
        return cls(work_dir=settings.work_dir, kernel_version=settings.kernel_version)

    @property
    def source_archive(self) -> Path:
        return self.work_dir / f"linux-{self.kernel_version}.tar.xz"

    @property
    def source_dir(self) -> Path:
        return self.work_dir / f"linux-{self.kernel_version}"

    @property
    def kernel_image(self) -> Path:
        return self.work_dir / KERNEL_IMAGE_NAME

    @property
    def iso_staging(self) -> Path:
        return self.work_dir / ISO_STAGING_NAME

    def staging_dir(self, variant: FsVariant) -> Path:
        return self.work_dir / variant.staging_name

    def ramdisk(self, variant: FsVariant) -> Path:
        return self.work_dir / variant.ramdisk_name

    def iso(self, variant: FsVariant) -> Path:
        return self.work_dir / variant.iso_name

    def intermediates(self) -> list[Path]:
        """Generated scripts and staging directories, never final artifacts."""
        paths = [self.work_dir / name for name in LEGACY_SCRIPT_NAMES]
        paths.extend(self.staging_dir(v) for v in FsVariant)
        paths.append(self.iso_staging)
        return paths

    def final_artifacts(self) -> list[Path]:
        paths = [self.source_archive, self.kernel_image]
        paths.extend(self.ramdisk(v) for v in FsVariant)
        paths.extend(self.iso(v) for v in FsVariant)
        return paths


__all__ = ["ISO_STAGING_NAME", "KERNEL_IMAGE_NAME", "LEGACY_SCRIPT_NAMES", "Layout"]
