"""Tests for kernel/build.py module.

Uses a mocked runner; make is never executed.
"""

from unittest.mock import MagicMock, call

import pytest

from osboot.kernel.build import (
    BZIMAGE_RELPATH,
    KERNEL_CONFIG_OPTIONS,
    KernelBuildError,
    compile_kernel,
    compose_make_command,
    configure_kernel,
    render_config_fragment,
)
from osboot.runner import CommandExecutionError, CommandRunner


@pytest.fixture
def runner() -> MagicMock:
    """Create a mocked command runner."""
    return MagicMock(spec=CommandRunner)


@pytest.fixture
def source_dir(tmp_path):
    """Create an empty kernel source tree."""
    path = tmp_path / "linux-6.1.1"
    path.mkdir()
    return path


class TestComposeMakeCommand:
    """Tests for compose_make_command function."""

    def test_target_only(self):
        """Should compose make with a target."""
        assert compose_make_command("tinyconfig") == ["make", "tinyconfig"]

    def test_jobs_only(self):
        """Should compose make -jN."""
        assert compose_make_command(jobs=8) == ["make", "-j8"]

    def test_bare(self):
        """Should compose bare make."""
        assert compose_make_command() == ["make"]


class TestConfigFragment:
    """Tests for the kernel config fragment."""

    def test_all_lines_rendered(self):
        """Should render one line per option."""
        lines = render_config_fragment().splitlines()
        assert len(lines) == len(KERNEL_CONFIG_OPTIONS)

    def test_contract_options(self):
        """Should enable virtio, filesystems, tty, cgroups and networking."""
        fragment = render_config_fragment()
        for expected in (
            "CONFIG_64BIT=y",
            "CONFIG_VIRTIO_BLK=y",
            "CONFIG_EXT4_FS=y",
            "CONFIG_TTY=y",
            "CONFIG_CGROUPS=y",
            "CONFIG_DEVTMPFS_MOUNT=y",
            "CONFIG_NET=y",
        ):
            assert expected in fragment
        assert 'CONFIG_INITRAMFS_SOURCE=""' in fragment

    def test_order_preserved(self):
        """Should keep the fixed order."""
        lines = render_config_fragment().splitlines()
        assert lines[0] == "CONFIG_64BIT=y"
        assert lines[-1] == "CONFIG_NET=y"


class TestConfigureKernel:
    """Tests for configure_kernel function."""

    def test_tinyconfig_fragment_olddefconfig(self, runner, source_dir):
        """Should run tinyconfig, append the fragment, then olddefconfig."""

        def fake_run(cmd, cwd=None, **kwargs):
            if cmd == ["make", "tinyconfig"]:
                (cwd / ".config").write_text("CONFIG_BASE=y\n")

        runner.run.side_effect = fake_run

        config = configure_kernel(runner, source_dir)

        assert runner.run.call_args_list == [
            call(["make", "tinyconfig"], cwd=source_dir),
            call(["make", "olddefconfig"], cwd=source_dir),
        ]
        content = config.read_text()
        assert content.startswith("CONFIG_BASE=y\n")
        assert content.endswith(render_config_fragment())

    def test_reruns_every_time(self, runner, source_dir):
        """Should re-run configuration on every call."""
        configure_kernel(runner, source_dir)
        configure_kernel(runner, source_dir)
        assert runner.run.call_count == 4

    def test_failure_stops(self, runner, source_dir):
        """Should not run olddefconfig when tinyconfig fails."""
        runner.run.side_effect = CommandExecutionError("boom", command="make tinyconfig", exit_code=2)

        with pytest.raises(CommandExecutionError):
            configure_kernel(runner, source_dir)

        assert runner.run.call_count == 1
        assert not (source_dir / ".config").exists()


class TestCompileKernel:
    """Tests for compile_kernel function."""

    def test_copies_image(self, runner, source_dir, tmp_path):
        """Should run make -jN and copy bzImage out."""
        image = source_dir / BZIMAGE_RELPATH
        image.parent.mkdir(parents=True)
        image.write_bytes(b"kernel")
        output = tmp_path / "bzImage"

        result = compile_kernel(runner, source_dir, output, jobs=4)

        runner.run.assert_called_once_with(["make", "-j4"], cwd=source_dir)
        assert result == output
        assert output.read_bytes() == b"kernel"

    def test_default_jobs_uses_cpu_count(self, runner, source_dir, tmp_path, monkeypatch):
        """Should use the CPU count when jobs is not set."""
        monkeypatch.setattr("osboot.kernel.build.os.cpu_count", lambda: 6)
        image = source_dir / BZIMAGE_RELPATH
        image.parent.mkdir(parents=True)
        image.write_bytes(b"kernel")

        compile_kernel(runner, source_dir, tmp_path / "bzImage")

        runner.run.assert_called_once_with(["make", "-j6"], cwd=source_dir)

    def test_overwrites_previous_image(self, runner, source_dir, tmp_path):
        """Should overwrite an image from a previous build."""
        image = source_dir / BZIMAGE_RELPATH
        image.parent.mkdir(parents=True)
        image.write_bytes(b"new")
        output = tmp_path / "bzImage"
        output.write_bytes(b"old")

        compile_kernel(runner, source_dir, output, jobs=1)

        assert output.read_bytes() == b"new"

    def test_missing_image(self, runner, source_dir, tmp_path):
        """Should raise when make leaves no bzImage."""
        with pytest.raises(KernelBuildError):
            compile_kernel(runner, source_dir, tmp_path / "bzImage", jobs=1)
