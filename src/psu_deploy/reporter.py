"""Run Reporter - collect deployment outcomes and write the CSV report.

Outcomes are kept in arrival order. The report file is written once at the
end of a real run; a dry run only renders the console summary.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from psu_deploy.models import DeploymentOutcome, DeploymentStatus

REPORT_COLUMNS = [
    "Timestamp",
    "DeviceId",
    "DeviceName",
    "Vendor",
    "Model",
    "Group",
    "PsusFound",
    "SensorsCreated",
    "SensorIds",
    "Status",
    "Message",
]

STATUS_STYLES = {
    DeploymentStatus.SUCCESS: "green",
    DeploymentStatus.SKIPPED: "yellow",
    DeploymentStatus.NO_ACTION: "cyan",
    DeploymentStatus.ERROR: "red",
}


class RunReporter:
    """Accumulates one DeploymentOutcome per processed device."""

    def __init__(self) -> None:
        self._outcomes: list[DeploymentOutcome] = []
        self.processed = 0
        self.created = 0
        self.skipped = 0
        self.no_action = 0
        self.failed = 0
        self.total_sensors = 0

    @property
    def outcomes(self) -> tuple[DeploymentOutcome, ...]:
        return tuple(self._outcomes)

    def add(self, outcome: DeploymentOutcome) -> None:
        self._outcomes.append(outcome)
        self.processed += 1
        self.total_sensors += outcome.sensors_created
        if outcome.status is DeploymentStatus.SUCCESS:
            self.created += 1
        elif outcome.status is DeploymentStatus.SKIPPED:
            self.skipped += 1
        elif outcome.status is DeploymentStatus.NO_ACTION:
            self.no_action += 1
        else:
            self.failed += 1

    def summary(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "created": self.created,
            "skipped": self.skipped,
            "no_action": self.no_action,
            "failed": self.failed,
            "total_sensors": self.total_sensors,
            "psus_found": sum(o.psus_found for o in self._outcomes),
        }

    def write_csv(self, path: str | Path) -> Path:
        """Write all outcomes to `path`, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=REPORT_COLUMNS)
            writer.writeheader()
            for outcome in self._outcomes:
                writer.writerow(outcome.to_row())
        return path

    def build_table(self, title: str = "PSU Sensor Deployment") -> Table:
        table = Table(title=title, border_style="cyan")
        table.add_column("Device", style="bold")
        table.add_column("Vendor")
        table.add_column("Model")
        table.add_column("PSUs", justify="right")
        table.add_column("Created", justify="right")
        table.add_column("Status")
        table.add_column("Message", overflow="fold")

        for o in self._outcomes:
            style = STATUS_STYLES.get(o.status, "white")
            table.add_row(
                escape(o.device_name),
                escape(o.vendor),
                escape(o.model),
                str(o.psus_found),
                str(o.sensors_created),
                f"[{style}]{o.status.value}[/{style}]",
                escape(o.message),
            )
        return table

    def render_summary(self, console: Console, dry_run: bool = False) -> None:
        if self._outcomes:
            console.print(self.build_table())

        s = self.summary()
        mode = "[cyan]WhatIf[/cyan] " if dry_run else ""
        console.print(
            f"\n{mode}[bold]Summary:[/bold] {s['processed']} processed, "
            f"[green]{s['created']} deployed[/green], "
            f"[yellow]{s['skipped']} skipped[/yellow], "
            f"[cyan]{s['no_action']} no action[/cyan], "
            f"[red]{s['failed']} failed[/red], "
            f"{s['psus_found']} PSUs found, {s['total_sensors']} sensors created"
        )
