"""Command runner for executing host tools.

This module handles:
- Composing privileged commands (sudo prefix when not root)
- Executing external tools with subprocess, blocking until they exit
- Raising on non-zero exit codes (fail-fast, no retry)
- The file-list -> cpio -> gzip pipeline used to pack ramdisks

Every invocation is logged with its shell-quoted command line.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shlex
import subprocess
from pathlib import Path

from osboot.errors import COMMAND_FAILED, EXECUTION_ERROR, OsbootError
from osboot.types import CommandResult

logger = logging.getLogger(__name__)

CPIO_COMMAND = ["cpio", "-o", "-H", "newc", "-R", "0:0"]
GZIP_COMMAND = ["gzip"]


class CommandExecutionError(OsbootError):
    """Raised when an external command fails or cannot be started."""

    def __init__(
        self,
        message: str,
        command: str,
        exit_code: int | None = None,
        code: str = COMMAND_FAILED,
    ) -> None:
        super().__init__(message, code=code)
        self.command = command
        self.exit_code = exit_code


def list_tree(root: Path) -> list[str]:
    """List a directory tree the way `find .` does, relative to root.

    Args:
        root: Directory to walk.

    Returns:
        Entries starting with "." followed by "./"-prefixed paths, parents
        before children. Symlinked directories are listed but not followed.
    """
    entries = ["."]
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        rel = Path(dirpath).relative_to(root)
        for name in sorted(dirnames + filenames):
            entries.append(f"./{(rel / name).as_posix()}")
    return entries


def _feed_stdin(proc: subprocess.Popen[bytes], data: bytes) -> None:
    """Write data to proc's stdin and close it.

    A reader that exits early is not an error here; its exit code is.
    """
    if proc.stdin is None:
        return
    try:
        proc.stdin.write(data)
        proc.stdin.flush()
    except BrokenPipeError:
        logger.debug("%s stopped reading its input early", proc.args[0])
    with contextlib.suppress(BrokenPipeError):
        proc.stdin.close()


def _reap(procs: list[subprocess.Popen[bytes]]) -> None:
    """Kill and wait for any process still running."""
    for proc in procs:
        if proc.poll() is None:
            proc.kill()
        proc.wait()


class CommandRunner:
    """Runs host commands synchronously.

    Attributes:
        use_sudo: Prefix privileged commands with sudo when not running as root.
        env_override: Extra environment variables for every command.
    """

    def __init__(
        self,
        use_sudo: bool = True,
        env_override: dict[str, str] | None = None,
    ) -> None:
        self.use_sudo = use_sudo
        self.env_override = env_override

    def _env(self) -> dict[str, str] | None:
        if not self.env_override:
            return None
        env = dict(os.environ)
        env.update(self.env_override)
        return env

    def compose(self, cmd: list[str], privileged: bool = False) -> list[str]:
        """Return the argv actually executed for cmd."""
        if privileged and self.use_sudo and os.geteuid() != 0:
            return ["sudo", *cmd]
        return list(cmd)

    def run(
        self,
        cmd: list[str],
        cwd: Path | None = None,
        *,
        privileged: bool = False,
        check: bool = True,
        input_text: str | None = None,
    ) -> CommandResult:
        """Run a command with inherited stdout/stderr.

        Args:
            cmd: Command as list of strings.
            cwd: Working directory (None = current directory).
            privileged: Run with elevated privileges.
            check: Raise on non-zero exit code.
            input_text: Optional text fed to stdin instead of the terminal.

        Returns:
            CommandResult with the exit code.

        Raises:
            CommandExecutionError: If the command cannot be started, or exits
                non-zero while check is set.
        """
        argv = self.compose(cmd, privileged=privileged)
        cmd_str = shlex.join(argv)
        logger.info("Executing: %s", cmd_str)
        if cwd is not None:
            logger.debug("Working directory: %s", cwd)

        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                input=input_text,
                text=input_text is not None,
                env=self._env(),
                check=False,
            )
        except OSError as e:
            raise CommandExecutionError(
                f"Failed to execute {argv[0]}: {e}",
                command=cmd_str,
                code=EXECUTION_ERROR,
            ) from e

        if check and result.returncode != 0:
            message = f"Command failed with exit code {result.returncode}: {cmd_str}"
            logger.error(message)
            raise CommandExecutionError(
                message, command=cmd_str, exit_code=result.returncode
            )

        return CommandResult(command=cmd_str, exit_code=result.returncode)

    def capture(
        self,
        cmd: list[str],
        cwd: Path | None = None,
        *,
        input_text: str | None = None,
    ) -> str:
        """Run a command and return its stdout.

        Raises:
            CommandExecutionError: If the command fails.
        """
        cmd_str = shlex.join(cmd)
        logger.info("Executing: %s", cmd_str)

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                input=input_text,
                capture_output=True,
                text=True,
                env=self._env(),
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise CommandExecutionError(
                f"Command failed with exit code {e.returncode}: {cmd_str}: "
                f"{(e.stderr or '').strip()}",
                command=cmd_str,
                exit_code=e.returncode,
            ) from e
        except OSError as e:
            raise CommandExecutionError(
                f"Failed to execute {cmd[0]}: {e}",
                command=cmd_str,
                code=EXECUTION_ERROR,
            ) from e

        return result.stdout

    def archive_tree(self, tree: Path, output: Path) -> CommandResult:
        """Pack a directory into a gzip-compressed newc cpio archive.

        Equivalent to `cd tree && find . | cpio -oHnewc -R 0:0 | gzip > output`.
        Entries are recorded as owned by root so the archiver itself does not
        need elevated privileges. A failed pipeline removes the partial output.

        Raises:
            CommandExecutionError: If either side of the pipeline fails.
        """
        cmd_str = (
            f"find . | {shlex.join(CPIO_COMMAND)} | {shlex.join(GZIP_COMMAND)}"
            f" > {shlex.quote(str(output))}"
        )
        logger.info("Executing: %s", cmd_str)
        logger.debug("Working directory: %s", tree)

        file_list = "\n".join(list_tree(tree)) + "\n"

        procs: list[subprocess.Popen[bytes]] = []
        try:
            with output.open("wb") as out:
                cpio = subprocess.Popen(
                    CPIO_COMMAND,
                    cwd=tree,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    env=self._env(),
                )
                procs.append(cpio)
                gz = subprocess.Popen(
                    GZIP_COMMAND, stdin=cpio.stdout, stdout=out, env=self._env()
                )
                procs.append(gz)
                # gzip owns the read end now
                if cpio.stdout is not None:
                    cpio.stdout.close()
                _feed_stdin(cpio, file_list.encode())
                cpio_code = cpio.wait()
                gzip_code = gz.wait()
        except OSError as e:
            _reap(procs)
            output.unlink(missing_ok=True)
            raise CommandExecutionError(
                f"Failed to archive {tree}: {e}",
                command=cmd_str,
                code=EXECUTION_ERROR,
            ) from e

        exit_code = cpio_code or gzip_code
        if exit_code != 0:
            output.unlink(missing_ok=True)
            message = (
                f"Archive pipeline failed (cpio={cpio_code}, gzip={gzip_code}): "
                f"{cmd_str}"
            )
            logger.error(message)
            raise CommandExecutionError(message, command=cmd_str, exit_code=exit_code)

        logger.info("Wrote %s (%d bytes)", output, output.stat().st_size)
        return CommandResult(command=cmd_str, exit_code=0)


__all__ = [
    "CPIO_COMMAND",
    "GZIP_COMMAND",
    "CommandExecutionError",
    "CommandRunner",
    "list_tree",
]
