"""Thin CLI wrapper for osboot.

This module provides the command-line interface using Typer.
All stage logic is delegated to osboot.pipeline.
"""

import json
import logging
from dataclasses import asdict
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from osboot import __version__
from osboot.config import Settings, get_settings, print_settings_json
from osboot.errors import OsbootError, PreconditionError
from osboot.pipeline import Pipeline, Selection, running_as_root

app = typer.Typer(
    name="osboot",
    help="OS Boot Automation - build a tiny kernel and ramdisk and boot them in QEMU",
    invoke_without_command=True,
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich, once per process."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"osboot version {__version__}")
        raise typer.Exit()


def _exit_code(error: OsbootError) -> int:
    exit_code = getattr(error, "exit_code", None)
    return exit_code if isinstance(exit_code, int) and exit_code > 0 else 1


def _build_pipeline(settings: Settings) -> Pipeline:
    return Pipeline(settings)


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """OS Boot Automation - interactive menu when run without a command."""
    try:
        settings = get_settings()
    except ValidationError as e:
        console.print("[red]Invalid configuration:[/red]")
        console.print(str(e), markup=False)
        raise typer.Exit(code=2) from None
    configure_logging(settings.log_level)
    if ctx.invoked_subcommand is None:
        _run_menu(settings)


def _run_menu(settings: Settings) -> None:
    from osboot.menu import run_menu

    pipeline = _build_pipeline(settings)
    pipeline.reporter.section("OS Booting Automation Script")
    pipeline.reporter.status("Starting automation for Operating System Booting module")
    pipeline.reporter.status(f"Work directory: {settings.work_dir}")
    if running_as_root():
        pipeline.reporter.warning(
            "Script is running as root. This is needed for some operations."
        )

    try:
        run_menu(pipeline, console)
    except OsbootError as e:
        pipeline.reporter.error(e.message)
        raise typer.Exit(code=_exit_code(e)) from None


@app.command()
def menu() -> None:
    """Show the interactive numbered menu."""
    _run_menu(get_settings())


@app.command()
def run(
    selection: Annotated[
        str,
        typer.Argument(help="Menu number or name, e.g. 4 or create-single-fs"),
    ],
) -> None:
    """Run one menu selection without the interactive loop."""
    choice = Selection.parse(selection)
    if choice is None:
        names = ", ".join(s.slug for s in Selection)
        console.print(f"[red]Unknown selection: {selection}[/red]")
        console.print(f"Valid values: 1-{len(Selection)} or {names}")
        raise typer.Exit(code=2)
    if choice is Selection.EXIT:
        return

    pipeline = _build_pipeline(get_settings())
    try:
        pipeline.run_stage(choice)
    except PreconditionError as e:
        pipeline.reporter.error(e.message)
        raise typer.Exit(code=1) from None
    except OsbootError as e:
        pipeline.reporter.error(e.message)
        raise typer.Exit(code=_exit_code(e)) from None


@app.command()
def status(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    include_hash: Annotated[
        bool,
        typer.Option("--hash", help="Compute SHA-256 of present artifacts"),
    ] = False,
) -> None:
    """Show which final artifacts exist in the work directory."""
    from osboot.artifacts import collect_artifacts, format_size
    from osboot.layout import Layout

    settings = get_settings()
    artifacts = collect_artifacts(Layout.from_settings(settings), include_hash)

    if json_output:
        console.print(json.dumps([asdict(a) for a in artifacts], indent=2), soft_wrap=True)
        return

    console.print(f"[bold]Artifacts in {settings.work_dir}:[/bold]")
    console.print()
    for a in artifacts:
        if a.exists and a.size_bytes is not None:
            console.print(f"  [green]✓[/green] {a.name} ({format_size(a.size_bytes)})")
            if a.sha256:
                console.print(f"    SHA-256: {a.sha256}")
        else:
            console.print(f"  [dim]✗ {a.name} (missing)[/dim]")


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True)
        return

    jobs_display = str(settings.build_jobs) if settings.build_jobs else "(CPU count)"
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Work directory:      {settings.work_dir}")
    console.print(f"  BusyBox binary:      {settings.busybox_path}")
    console.print(f"  Device directory:    {settings.device_dir}")
    console.print()
    console.print("[bold]Kernel:[/bold]")
    console.print(f"  Version:             {settings.kernel_version}")
    console.print(f"  Mirror:              {settings.kernel_base_url}")
    console.print(f"  Verify checksum:     {settings.verify_checksum}")
    console.print(f"  Build jobs:          {jobs_display}")
    console.print()
    console.print("[bold]Ramdisk:[/bold]")
    console.print(f"  Hostname:            {settings.hostname}")
    console.print(f"  Getty retries:       {settings.getty_retries}")
    console.print()
    console.print("[bold]Emulator:[/bold]")
    console.print(f"  Binary:              {settings.qemu_binary}")
    console.print(f"  CPUs:                {settings.qemu_smp}")
    console.print(f"  Memory (MiB):        {settings.qemu_memory_mb}")
    console.print(f"  Display:             {settings.qemu_display}")
    console.print(f"  GRUB timeout:        {settings.grub_timeout}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Use sudo:            {settings.use_sudo}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Download timeout:    {settings.download_timeout}")


__all__ = ["app", "configure_logging"]
