# src/virtkube/cli/generate.py
"""
Implements the `generate` command: compiles a Worker against its cluster
context and prints or exports the machine configuration.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from ..core.exceptions import VirtKubeError
from ..core.factory import get_machine_config_generator
from ..exporters.json_exporter import JSONExporter
from ..models.machines import GenerationResult
from ..models.worker import Worker
from ..reporters.console_reporter import ConsoleReporter
from .utils import load_cluster, load_object

logger = logging.getLogger(__name__)

app = typer.Typer(help="Generate KubeVirt machine classes and deployments for a Worker.", add_completion=False)


async def handle_export(result: GenerationResult, output_path: Optional[Path]):
    """Handles writing the generation result to a file."""
    exporter = JSONExporter()
    if not output_path:
        output_path = Path.cwd() / exporter.DEFAULT_FILENAME

    try:
        written_path = await exporter.export(result.to_dict(), str(output_path))
    except OSError as e:
        logger.error(f"Failed to export machine configuration to {output_path}: {e}")
        raise typer.Exit(code=1)
    logger.info(f"Successfully exported machine configuration to {written_path}")
    print(f"Machine configuration exported to: {written_path}", file=sys.stderr)


@app.callback(invoke_without_command=True)
def generate(
    worker_file: Annotated[
        Path, typer.Option("--worker", help="Worker manifest (YAML or JSON).", exists=True, dir_okay=False)
    ],
    cluster_file: Annotated[
        Path,
        typer.Option(
            "--cluster", help="Cluster context holding 'cloudProfile' and 'shoot'.", exists=True, dir_okay=False
        ),
    ],
    kubeconfig: Annotated[
        Path, typer.Option("--kubeconfig", help="Kubeconfig of the KubeVirt provider cluster.", exists=True)
    ],
    output_format: Annotated[
        str,
        typer.Option("--output", help="Output format (table/json).", case_sensitive=False),
    ] = "table",
    output_path: Annotated[
        Optional[Path],
        typer.Option(
            "--output-path",
            help="Output file for --output json. Default: './virtkube-machines.json'",
            dir_okay=False,
            writable=True,
        ),
    ] = None,
):
    """
    Compile every pool of a Worker into machine classes and machine deployments.

    Displays tables in the console by default.
    Use --output json to write the full result to a file.
    """
    output_format = output_format.lower()
    if output_format not in ("table", "json"):
        logger.error(f"Invalid output format '{output_format}'.")
        raise typer.Exit(code=1)

    worker = load_object(worker_file, Worker)
    cluster = load_cluster(cluster_file)
    generator = get_machine_config_generator(worker, cluster, kubeconfig_path=kubeconfig)

    async def _generate_async():
        try:
            result = await generator.generate()
        finally:
            await generator.close()
        if output_format == "json":
            await handle_export(result, output_path)
        else:
            ConsoleReporter().report(result)

    try:
        asyncio.run(_generate_async())
    except VirtKubeError as e:
        logger.error(f"Machine configuration generation failed: {e}")
        raise typer.Exit(code=1)
