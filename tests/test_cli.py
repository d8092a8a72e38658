"""Smoke tests for the CLI.

These tests verify basic CLI functionality without requiring
network access, root privileges, or external tools.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from osboot import __version__
from osboot.cli import app

runner = CliRunner()


@pytest.fixture
def work_env(tmp_path) -> dict[str, str]:
    """Point the work directory at an empty temp dir."""
    return {"OSBOOT_WORK_DIR": str(tmp_path), "OSBOOT_LOG_LEVEL": "WARNING"}


class TestCLIHelp:
    """Test CLI help and version commands."""

    def test_help_returns_zero(self) -> None:
        """CLI --help should return exit code 0."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "OS Boot Automation" in result.stdout

    def test_version_flag(self) -> None:
        """CLI --version should print version and exit 0."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_short_version_flag(self) -> None:
        """CLI -V should print version and exit 0."""
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestCLIMenu:
    """Test the interactive menu entry point."""

    def test_no_args_shows_menu(self, work_env) -> None:
        """CLI with no args should show the menu and stop at end of input."""
        result = runner.invoke(app, [], input="", env=work_env)
        assert result.exit_code == 0
        assert "OS Booting Automation Menu" in result.stdout
        assert "13. Exit" in result.stdout

    def test_exit_choice(self, work_env) -> None:
        """Choosing 13 should say goodbye and exit 0."""
        result = runner.invoke(app, ["menu"], input="13\n", env=work_env)
        assert result.exit_code == 0
        assert "Goodbye" in result.stdout

    def test_missing_input_resumes_menu(self, work_env) -> None:
        """A missing ramdisk should be reported and the menu shown again."""
        with patch("subprocess.run") as mock_run:
            result = runner.invoke(app, ["menu"], input="6\n\n13\n", env=work_env)

        assert result.exit_code == 0
        assert "myramdisk_single.gz not found" in result.stdout
        assert result.stdout.count("OS Booting Automation Menu") == 2
        mock_run.assert_not_called()


class TestCLIRun:
    """Test CLI run command."""

    def test_unknown_selection(self, work_env) -> None:
        """Unknown selections should exit 2."""
        result = runner.invoke(app, ["run", "99"], env=work_env)
        assert result.exit_code == 2
        assert "Unknown selection" in result.stdout

    def test_missing_ramdisk_exits_one(self, work_env) -> None:
        """Booting without a ramdisk should fail without spawning QEMU."""
        with patch("subprocess.run") as mock_run:
            result = runner.invoke(app, ["run", "boot-single"], env=work_env)

        assert result.exit_code == 1
        assert "myramdisk_single.gz not found" in result.stdout
        mock_run.assert_not_called()

    def test_cleanup_by_number(self, work_env, tmp_path) -> None:
        """Selection 12 should remove staging directories."""
        (tmp_path / "myramdisk_single" / "bin").mkdir(parents=True)
        (tmp_path / "bzImage").write_bytes(b"k")

        result = runner.invoke(app, ["run", "12"], env=work_env)

        assert result.exit_code == 0
        assert not (tmp_path / "myramdisk_single").exists()
        assert (tmp_path / "bzImage").exists()

    def test_relative_work_dir_boot(self, tmp_path, monkeypatch) -> None:
        """Booting from a relative work dir should hand QEMU usable paths."""
        monkeypatch.chdir(tmp_path)
        work_dir = tmp_path / "osboot"
        work_dir.mkdir()
        (work_dir / "bzImage").write_bytes(b"k")
        (work_dir / "myramdisk_single.gz").write_bytes(b"r")
        env = {"OSBOOT_WORK_DIR": "./osboot", "OSBOOT_LOG_LEVEL": "WARNING"}

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)
            result = runner.invoke(app, ["run", "boot-single"], env=env)

        assert result.exit_code == 0
        cmd = mock_run.call_args.args[0]
        cwd = Path(mock_run.call_args.kwargs["cwd"])
        for flag in ("-kernel", "-initrd"):
            arg = cmd[cmd.index(flag) + 1]
            assert Path(arg).is_absolute()
            assert (cwd / arg).is_file()

    def test_empty_password_reported(self, work_env) -> None:
        """An empty password should give a clean error, not a traceback."""
        env = {**work_env, "OSBOOT_ROOT_PASSWORD": ""}

        with patch("subprocess.run") as mock_run:
            result = runner.invoke(app, ["run", "create-multi-fs"], env=env)

        assert result.exit_code == 2
        assert not isinstance(result.exception, ValueError)
        assert "Invalid configuration" in result.stdout
        assert "root_password" in result.stdout
        mock_run.assert_not_called()

    def test_exit_selection_is_noop(self, work_env) -> None:
        """The exit selection should do nothing."""
        result = runner.invoke(app, ["run", "exit"], env=work_env)
        assert result.exit_code == 0


class TestCLIStatus:
    """Test CLI status command."""

    def test_status_lists_artifacts(self, work_env, tmp_path) -> None:
        """Status should mark present and missing artifacts."""
        (tmp_path / "bzImage").write_bytes(b"k" * 2048)

        result = runner.invoke(app, ["status"], env=work_env)

        assert result.exit_code == 0
        assert "bzImage (2.0 KiB)" in result.stdout
        assert "mylinux_multi.iso (missing)" in result.stdout

    def test_status_json(self, work_env, tmp_path) -> None:
        """Status --json --hash should output JSON with digests."""
        (tmp_path / "bzImage").write_bytes(b"k")

        result = runner.invoke(app, ["status", "--json", "--hash"], env=work_env)

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        by_name = {a["name"]: a for a in data}
        assert by_name["bzImage"]["exists"] is True
        assert len(by_name["bzImage"]["sha256"]) == 64
        assert by_name["myramdisk_multi.gz"]["exists"] is False


class TestCLIConfig:
    """Test CLI config command."""

    def test_config_command_shows_all_sections(self, work_env) -> None:
        """CLI config should show every section."""
        result = runner.invoke(app, ["config"], env=work_env)
        assert result.exit_code == 0
        for heading in ("Paths:", "Kernel:", "Ramdisk:", "Emulator:", "Operational:"):
            assert heading in result.stdout
        assert "Work directory" in result.stdout
        assert "6.1.1" in result.stdout

    def test_config_json(self, work_env, tmp_path) -> None:
        """CLI config --json should output JSON with the password masked."""
        result = runner.invoke(app, ["config", "--json"], env=work_env)
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["work_dir"] == str(tmp_path)
        assert "password123" not in result.stdout
