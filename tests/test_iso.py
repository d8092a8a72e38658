"""Tests for iso.py module."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from osboot.errors import ArtifactNotFoundError
from osboot.iso import ISO_RAMDISK_NAME, package_iso, render_grub_cfg, stage_iso_tree
from osboot.layout import Layout
from osboot.runner import CommandRunner
from osboot.types import FsVariant


@pytest.fixture
def layout(tmp_path) -> Layout:
    """Create a work directory holding a kernel and both ramdisks."""
    layout = Layout(work_dir=tmp_path, kernel_version="6.1.1")
    layout.kernel_image.write_bytes(b"kernel")
    layout.ramdisk(FsVariant.SINGLE).write_bytes(b"single ramdisk")
    layout.ramdisk(FsVariant.MULTI).write_bytes(b"multi ramdisk")
    return layout


class TestRenderGrubCfg:
    """Tests for render_grub_cfg function."""

    def test_single_entry(self):
        """Should render one menu entry for the variant."""
        cfg = render_grub_cfg(FsVariant.MULTI, timeout=5)

        assert cfg.startswith("set timeout=5\nset default=0\n")
        assert cfg.count("menuentry") == 1
        assert 'menuentry "MyLinux (multi user)"' in cfg
        assert "linux /boot/bzImage" in cfg
        assert f"initrd /boot/{ISO_RAMDISK_NAME}" in cfg

    def test_custom_timeout(self):
        """Should honour the timeout."""
        assert "set timeout=0" in render_grub_cfg(FsVariant.SINGLE, timeout=0)


class TestStageIsoTree:
    """Tests for stage_iso_tree function."""

    def test_layout(self, layout):
        """Should copy kernel and ramdisk under boot with grub.cfg."""
        staging = stage_iso_tree(layout, FsVariant.SINGLE)

        assert staging == layout.iso_staging
        assert (staging / "boot" / "bzImage").read_bytes() == b"kernel"
        assert (staging / "boot" / ISO_RAMDISK_NAME).read_bytes() == b"single ramdisk"
        assert "(single user)" in (staging / "boot" / "grub" / "grub.cfg").read_text()

    def test_rebuilt_between_variants(self, layout):
        """Should not carry files from the previous variant's staging."""
        staging = stage_iso_tree(layout, FsVariant.SINGLE)
        (staging / "boot" / "stray").write_text("left over")

        stage_iso_tree(layout, FsVariant.MULTI)

        assert not (staging / "boot" / "stray").exists()
        assert (staging / "boot" / ISO_RAMDISK_NAME).read_bytes() == b"multi ramdisk"
        assert "(multi user)" in (staging / "boot" / "grub" / "grub.cfg").read_text()

    def test_missing_ramdisk(self, layout):
        """Should fail before touching staging when the ramdisk is missing."""
        layout.ramdisk(FsVariant.MULTI).unlink()

        with pytest.raises(ArtifactNotFoundError) as exc_info:
            stage_iso_tree(layout, FsVariant.MULTI)

        assert "myramdisk_multi.gz not found" in str(exc_info.value)
        assert not layout.iso_staging.exists()

    def test_missing_kernel(self, layout):
        """Should fail when the kernel image is missing."""
        layout.kernel_image.unlink()

        with pytest.raises(ArtifactNotFoundError):
            stage_iso_tree(layout, FsVariant.SINGLE)


class TestPackageIso:
    """Tests for package_iso function."""

    def test_runs_grub_mkrescue(self, layout):
        """Should call grub-mkrescue with the ISO and staging paths."""
        runner = MagicMock(spec=CommandRunner)

        iso = package_iso(runner, layout, FsVariant.SINGLE)

        assert iso == layout.work_dir / "mylinux_single.iso"
        runner.run.assert_called_once_with(
            ["grub-mkrescue", "-o", str(iso), str(layout.iso_staging)],
            cwd=layout.work_dir,
        )

    def test_missing_input_spawns_nothing(self, layout):
        """Should not run grub-mkrescue when an input is missing."""
        runner = MagicMock(spec=CommandRunner)
        layout.kernel_image.unlink()

        with pytest.raises(ArtifactNotFoundError):
            package_iso(runner, layout, FsVariant.SINGLE)

        runner.run.assert_not_called()

    def test_relative_work_dir(self, tmp_path, monkeypatch):
        """Should give grub-mkrescue paths that resolve from its cwd."""
        monkeypatch.chdir(tmp_path)
        layout = Layout(work_dir=Path("osboot"), kernel_version="6.1.1")
        layout.work_dir.mkdir()
        layout.kernel_image.write_bytes(b"kernel")
        layout.ramdisk(FsVariant.SINGLE).write_bytes(b"ramdisk")
        runner = MagicMock(spec=CommandRunner)

        package_iso(runner, layout, FsVariant.SINGLE)

        cmd = runner.run.call_args.args[0]
        cwd = runner.run.call_args.kwargs["cwd"]
        assert (cwd / cmd[-1] / "boot" / "bzImage").is_file()
        assert Path(cmd[2]).parent == tmp_path / "osboot"
