"""Click CLI interface for BitLocker remediation."""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bitlocker_remediation import __version__
from bitlocker_remediation.collectors.bitlocker import BitLockerError, PowerShellBitLocker
from bitlocker_remediation.config import Config
from bitlocker_remediation.engine import Engine
from bitlocker_remediation.models import TARGET_NAMES, DriveType, RunMode
from bitlocker_remediation.platform import is_windows
from bitlocker_remediation.reporters import console_reporter, json_reporter

console = Console()


def _load_config(config_path: str | None) -> Config:
    if config_path:
        return Config.from_yaml(config_path)
    return Config.from_defaults()


def _run(config: Config, mode: RunMode) -> None:
    """Run the engine, write reports, print the summary line, and exit.

    The per-volume console table is printed only with --verbose; the
    summary line is always printed.
    """
    if not is_windows():
        console.print("[yellow]BitLocker cmdlets are only available on Windows; expect platform errors.[/yellow]")

    engine = Engine(config)
    result = engine.run(mode)

    for fmt in config.output_formats:
        if fmt == "console" and config.verbose:
            console_reporter.generate(result, config.output_directory)
        elif fmt == "json":
            path = json_reporter.generate(result, config.output_directory)
            console.print(f"Report written: {escape(path)}")

    console_reporter.print_summary(result, console)
    sys.exit(result.exit_code())


@click.group()
@click.version_option(version=__version__, prog_name="bitlocker-remediation")
def main():
    """BitLocker key protector detection and remediation."""


@main.command()
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Path to config YAML")
@click.option("--output-dir", default=None, help="Output directory for reports (default: ./reports)")
@click.option("--format", "formats", default=None, help="Output formats: console,json (default: console)")
@click.option("--verbose", is_flag=True, help="Print each step of the scan")
def detect(
    config_path: str | None,
    output_dir: str | None,
    formats: str | None,
    verbose: bool,
):
    """Report whether any fixed volume carries the non-compliant protector.

    Exits 1 at the first non-compliant volume, 0 otherwise. Never changes
    anything.
    """
    config = _load_config(config_path)
    config.apply_overrides(
        mode=RunMode.DETECT.value,
        output_dir=output_dir,
        formats=formats,
        verbose=verbose,
    )
    _run(config, RunMode.DETECT)


@main.command()
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Path to config YAML")
@click.option("--target", default=None, type=click.Choice(list(TARGET_NAMES), case_sensitive=False), help="Protector to install (default: TPM)")
@click.option("--secret-env", default=None, help="Environment variable holding the PIN or recovery password")
@click.option("--safety-protector", is_flag=True, help="Keep a temporary recovery password while protectors are swapped")
@click.option("--continue-on-failure", is_flag=True, help="Keep going after a failed volume update (exit code stays 1)")
@click.option("--output-dir", default=None, help="Output directory for reports (default: ./reports)")
@click.option("--format", "formats", default=None, help="Output formats: console,json (default: console)")
@click.option("--verbose", is_flag=True, help="Print each step of the scan")
def remediate(
    config_path: str | None,
    target: str | None,
    secret_env: str | None,
    safety_protector: bool,
    continue_on_failure: bool,
    output_dir: str | None,
    formats: str | None,
    verbose: bool,
):
    """Replace non-compliant protector sets and resume encryption.

    Exits 1 on missing rights, enumeration failure or a failed update;
    warnings exit 0.
    """
    config = _load_config(config_path)
    config.apply_overrides(
        mode=RunMode.REMEDIATE.value,
        target=target,
        secret_env=secret_env,
        output_dir=output_dir,
        formats=formats,
        safety_protector=safety_protector,
        continue_on_failure=continue_on_failure,
        verbose=verbose,
    )
    _run(config, RunMode.REMEDIATE)


@main.command()
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Path to config YAML")
def volumes(config_path: str | None):
    """List volumes with their protection status and key protectors."""
    config = _load_config(config_path)
    surface = PowerShellBitLocker(timeout=config.timeout)

    if not surface.is_elevated():
        console.print("[bold red]ERROR: administrator privileges are required to query BitLocker.[/bold red]")
        sys.exit(1)

    try:
        found = surface.list_volumes()
    except BitLockerError as exc:
        console.print(f"[bold red]ERROR: {escape(str(exc))}[/bold red]")
        sys.exit(1)

    table = Table(title=f"Volumes ({len(found)} total)")
    table.add_column("Volume", style="cyan", width=8)
    table.add_column("Drive Type")
    table.add_column("Protection")
    table.add_column("Key Protectors")

    for volume in found:
        if not volume.drive_letter:
            continue
        protection = "-"
        protectors = "-"
        if volume.drive_type == DriveType.FIXED:
            try:
                status = volume.protection_status or surface.get_protection_status(volume.mount_point)
                protection = status.value if status else "none"
                protectors = ", ".join(
                    p.protector_type.value
                    for p in surface.list_key_protectors(volume.mount_point)
                ) or "none"
            except BitLockerError as exc:
                protectors = f"[magenta]error: {escape(str(exc))}[/magenta]"
        table.add_row(volume.mount_point, volume.drive_type.value, protection, protectors)

    console.print(table)
