# src/virtkube/reporters/console_reporter.py
"""
A reporter that displays a generation result in formatted tables in the console.
"""

import logging

from rich.console import Console
from rich.table import Table

from ..models.machines import DataVolumeSpec, GenerationResult
from .base_reporter import BaseReporter

logger = logging.getLogger(__name__)


def describe_source(spec: DataVolumeSpec) -> str:
    source = spec.source
    if source.pvc is not None:
        return f"pvc {source.pvc.namespace}/{source.pvc.name}"
    if source.http is not None:
        return f"http {source.http.url}"
    return "blank"


class ConsoleReporter(BaseReporter):
    """
    Renders machine classes, deployments and images to the console using the 'rich' library.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def report(self, result: GenerationResult):
        if not result.machine_classes:
            self.console.print("No machine classes generated.", style="yellow")
            return

        table = Table(title="Machine Classes", header_style="bold magenta", show_lines=True)
        table.add_column("Name", style="cyan")
        table.add_column("Zone", style="cyan")
        table.add_column("CPU", style="blue", justify="right")
        table.add_column("Memory", style="blue", justify="right")
        table.add_column("Root Volume", style="green")
        table.add_column("Data Volumes", style="dim", justify="right")
        for machine_class in result.machine_classes:
            root = machine_class.root_volume
            table.add_row(
                machine_class.name,
                machine_class.zone,
                machine_class.resources.requests.get("cpu", ""),
                machine_class.resources.requests.get("memory", ""),
                f"{root.pvc.resources.requests.get('storage', '')} ({describe_source(root)})",
                str(len(machine_class.additional_volumes)),
            )
        self.console.print(table)

        table = Table(title="Machine Deployments", header_style="bold magenta", show_lines=True)
        table.add_column("Name", style="cyan")
        table.add_column("Class", style="cyan")
        table.add_column("Min", justify="right")
        table.add_column("Max", justify="right")
        table.add_column("Max Surge", justify="right")
        table.add_column("Max Unavailable", justify="right")
        for deployment in result.machine_deployments:
            table.add_row(
                deployment.name,
                deployment.class_name,
                str(deployment.minimum),
                str(deployment.maximum),
                str(deployment.max_surge),
                str(deployment.max_unavailable),
            )
        self.console.print(table)

        table = Table(title="Machine Images", header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Version")
        table.add_column("Source URL", style="dim")
        for image in result.machine_images:
            table.add_row(image.name, image.version, image.source_url)
        self.console.print(table)

        if result.machine_class_volumes:
            self.console.print(
                f"{len(result.machine_class_volumes)} pre-allocated machine class volume(s).", style="green"
            )
