"""Tests for shared types and the work directory layout."""

from pathlib import Path

from osboot.config import Settings
from osboot.layout import Layout
from osboot.types import CommandResult, FsVariant


class TestFsVariant:
    """Tests for FsVariant names."""

    def test_single_names(self):
        """Should derive the single-user artifact names."""
        assert FsVariant.SINGLE.staging_name == "myramdisk_single"
        assert FsVariant.SINGLE.ramdisk_name == "myramdisk_single.gz"
        assert FsVariant.SINGLE.iso_name == "mylinux_single.iso"
        assert FsVariant.SINGLE.title == "Single User"

    def test_multi_names(self):
        """Should derive the multi-user artifact names."""
        assert FsVariant.MULTI.ramdisk_name == "myramdisk_multi.gz"
        assert FsVariant.MULTI.iso_name == "mylinux_multi.iso"
        assert FsVariant.MULTI.title == "Multi User"


class TestCommandResult:
    """Tests for CommandResult."""

    def test_success(self):
        assert CommandResult(command="true", exit_code=0).success is True
        assert CommandResult(command="false", exit_code=1).success is False


class TestLayout:
    """Tests for Layout paths."""

    def test_paths(self):
        """Should place every artifact directly in the work directory."""
        layout = Layout(work_dir=Path("/w"), kernel_version="6.1.1")

        assert layout.source_archive == Path("/w/linux-6.1.1.tar.xz")
        assert layout.source_dir == Path("/w/linux-6.1.1")
        assert layout.kernel_image == Path("/w/bzImage")
        assert layout.iso_staging == Path("/w/mylinuxiso")
        assert layout.staging_dir(FsVariant.MULTI) == Path("/w/myramdisk_multi")

    def test_intermediates_and_finals_disjoint(self):
        """Should never list a final artifact as an intermediate."""
        layout = Layout(work_dir=Path("/w"), kernel_version="6.1.1")

        assert not set(layout.intermediates()) & set(layout.final_artifacts())
        assert layout.source_dir not in layout.intermediates()

    def test_from_settings(self, tmp_path):
        """Should take the work dir and version from settings."""
        settings = Settings(work_dir=tmp_path, kernel_version="5.15.1")
        layout = Layout.from_settings(settings)

        assert layout.work_dir == tmp_path
        assert layout.source_archive.name == "linux-5.15.1.tar.xz"
