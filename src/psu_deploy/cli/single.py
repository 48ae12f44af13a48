"""Deploy PSU sensors to one PRTG device.

Examples:
    psu-deploy-device --server prtg01 --deviceId 2045 --whatIf
    psu-deploy-device --server prtg01 --deviceId 2045 --psuCount 2
"""

from __future__ import annotations

import sys

import typer
from rich.markup import escape

from psu_deploy.cli.common import build_client, build_options, console, init_run, print_banner
from psu_deploy.core.exceptions import DeviceNotFoundError, PrtgApiError
from psu_deploy.core.settings import settings
from psu_deploy.driver import DeploymentDriver

app = typer.Typer(
    name="psu-deploy-device",
    help="Create ENTITY-STATE power supply sensors on a single PRTG device",
    add_completion=False,
)


@app.command()
def deploy_device(
    server: str = typer.Option(..., "--server", "-s", help="PRTG server hostname or URL"),
    device_id: int = typer.Option(..., "--deviceId", "--device-id", help="PRTG device object id"),
    psu_count: int = typer.Option(
        4, "--psuCount", "--psu-count", min=1, help="Maximum number of PSU sensors to create"
    ),
    what_if: bool = typer.Option(
        False, "--whatIf", "--what-if", help="Discover and report only, create nothing"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Deploy PSU sensors to the device with the given id."""
    credentials = init_run(settings, verbose)
    print_banner("PSU Sensor Deployment (single device)", server, what_if)

    options = build_options(settings, dry_run=what_if, psu_limit=psu_count)

    with build_client(server, credentials, settings) as client:
        try:
            device = client.get_device(device_id)
        except DeviceNotFoundError as e:
            console.print(f"[bold red]❌ {e}[/bold red]")
            raise typer.Exit(1) from None
        except PrtgApiError as e:
            console.print(f"[bold red]❌ Could not look up device {device_id}: {e}[/bold red]")
            raise typer.Exit(1) from None

        console.print(f"Device: [bold]{escape(device.name)}[/bold] ({escape(device.group)})")
        driver = DeploymentDriver(client, options)
        driver.reporter.add(driver.deploy_device(device))

    driver.reporter.render_summary(console, dry_run=what_if)


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
