"""Shared CLI plumbing: console, credentials, client and option wiring."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from psu_deploy import __version__
from psu_deploy.client import PrtgClient, server_hostname
from psu_deploy.core.exceptions import ConfigurationError
from psu_deploy.core.logging_config import setup_logging
from psu_deploy.core.settings import Credentials, EnvSettings, get_report_dir, load_credentials
from psu_deploy.driver import DeploymentOptions

console = Console()


def init_run(env: EnvSettings, verbose: bool) -> Credentials:
    """Configure logging and load credentials, exiting with code 1 if incomplete."""
    setup_logging(verbose=verbose or env.log_level == "DEBUG", log_file=env.log_file)
    try:
        return load_credentials(env)
    except ConfigurationError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        console.print("[dim]Set PRTG_USERNAME and PRTG_PASSWORD (or PRTG_PASSHASH) in .env[/dim]")
        raise typer.Exit(1) from None


def build_client(server: str, credentials: Credentials, env: EnvSettings) -> PrtgClient:
    return PrtgClient(
        server,
        credentials,
        verify_ssl=env.prtg_verify_ssl,
        request_timeout=env.request_timeout,
        poll_interval=env.discovery_poll_interval,
        scheme=env.prtg_scheme,
    )


def build_options(
    env: EnvSettings,
    dry_run: bool = False,
    max_devices: int | None = None,
    psu_limit: int | None = None,
) -> DeploymentOptions:
    return DeploymentOptions(
        dry_run=dry_run,
        max_devices=max_devices,
        psu_limit=psu_limit,
        library=env.snmp_library,
        discovery_timeout=env.discovery_timeout,
        creation_delay=env.creation_delay,
        sensor_priority=env.sensor_priority,
        sensor_tags=env.sensor_tags,
    )


def default_report_path(server: str, env: EnvSettings, now: datetime | None = None) -> Path:
    """<report_dir>/psu_deployment_<host>_<YYYYmmdd_HHMMSS>.csv"""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    host = server_hostname(server).replace(":", "_")
    return get_report_dir(env) / f"psu_deployment_{host}_{stamp}.csv"


def print_banner(title: str, server: str, dry_run: bool) -> None:
    mode = "\n[bold yellow]WhatIf mode: no sensors will be created[/bold yellow]" if dry_run else ""
    console.print(
        Panel(
            f"[bold cyan]{title}[/bold cyan] v{__version__}\nServer: {server}{mode}",
            border_style="cyan",
        )
    )
