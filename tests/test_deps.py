"""Tests for deps.py module."""

from unittest.mock import MagicMock, call

import pytest

from osboot.config import DEFAULT_PACKAGES
from osboot.deps import compose_install_commands, install_dependencies
from osboot.runner import CommandExecutionError, CommandRunner


class TestInstallDependencies:
    """Tests for apt installation."""

    def test_compose(self):
        """Should update then install all packages in one call."""
        assert compose_install_commands(["wget", "qemu-system"]) == [
            ["apt", "-y", "update"],
            ["apt", "-y", "install", "wget", "qemu-system"],
        ]

    def test_runs_privileged(self):
        """Should run both apt calls with privilege."""
        runner = MagicMock(spec=CommandRunner)

        install_dependencies(runner, list(DEFAULT_PACKAGES))

        assert runner.run.call_args_list == [
            call(["apt", "-y", "update"], privileged=True),
            call(["apt", "-y", "install", *DEFAULT_PACKAGES], privileged=True),
        ]

    def test_update_failure_stops(self):
        """Should not install when the update fails."""
        runner = MagicMock(spec=CommandRunner)
        runner.run.side_effect = CommandExecutionError(
            "apt failed", command="apt -y update", exit_code=100
        )

        with pytest.raises(CommandExecutionError):
            install_dependencies(runner, ["wget"])

        assert runner.run.call_count == 1

    def test_empty_list(self):
        """Should reject an empty package list."""
        with pytest.raises(ValueError):
            install_dependencies(MagicMock(spec=CommandRunner), [])
