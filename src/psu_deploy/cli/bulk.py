"""Bulk PSU sensor deployment across all matching PRTG devices.

Examples:
    psu-deploy --server prtg01.example.com --whatIf
    psu-deploy --server prtg01.example.com --maxDevices 5
    psu-deploy --server https://prtg01:8443 --reportPath reports/run.csv
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer

from psu_deploy.cli.common import (
    build_client,
    build_options,
    console,
    default_report_path,
    init_run,
    print_banner,
)
from psu_deploy.core.exceptions import PrtgApiError
from psu_deploy.core.settings import settings
from psu_deploy.driver import DeploymentDriver

logger = logging.getLogger("psu_deploy.cli.bulk")

app = typer.Typer(
    name="psu-deploy",
    help="Create ENTITY-STATE power supply sensors on every matching PRTG device",
    add_completion=False,
)


@app.command()
def deploy(
    server: str = typer.Option(..., "--server", "-s", help="PRTG server hostname or URL"),
    what_if: bool = typer.Option(
        False, "--whatIf", "--what-if", help="Discover and report only, create nothing"
    ),
    report_path: Path | None = typer.Option(
        None, "--reportPath", "--report-path", help="CSV report path (default: derived from server)"
    ),
    max_devices: int | None = typer.Option(
        None, "--maxDevices", "--max-devices", min=1, help="Process only the first N devices by name"
    ),
    name_filter: list[str] | None = typer.Option(
        None, "--nameFilter", "--name-filter", help="Device name glob (repeatable)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Deploy PSU sensors to all devices matching the name filters."""
    credentials = init_run(settings, verbose)
    print_banner("PSU Sensor Deployment", server, what_if)

    filters = name_filter or settings.device_name_filters
    options = build_options(settings, dry_run=what_if, max_devices=max_devices)

    with build_client(server, credentials, settings) as client:
        try:
            devices = client.list_devices(filters)
        except PrtgApiError as e:
            console.print(f"[bold red]❌ Could not list devices: {e}[/bold red]")
            raise typer.Exit(1) from None

        logger.info(f"Found {len(devices)} device(s) matching {', '.join(filters)}")
        reporter = DeploymentDriver(client, options).run(devices)

    reporter.render_summary(console, dry_run=what_if)

    if what_if:
        console.print("[yellow]WhatIf mode: report not written[/yellow]")
        return

    path = reporter.write_csv(report_path or default_report_path(server, settings))
    console.print(f"[green]Report written to {path}[/green]")


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
