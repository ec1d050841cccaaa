# src/virtkube/cli/main.py
"""
This module is the main entry point for the virtkube CLI.

It aggregates all commands from the submodules (generate, validate).
"""

import logging

import typer

from ..core.config import config
from ..core.telemetry import initialize_telemetry
from . import generate, validate

# --- Setup Logger ---
logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = typer.Typer(
    name="virtkube",
    help="Compile Gardener worker pools into KubeVirt machine classes and validate KubeVirt shoots.",
    add_completion=False,
)


def version_callback(value: bool):
    """
    Prints the version of virtkube.
    """
    if value:
        from .. import __version__

        typer.echo(f"virtkube version: {__version__}")
        raise typer.Exit()


@app.command()
def version():
    """
    Show the version of virtkube.
    """
    from .. import __version__

    typer.echo(f"virtkube version: {__version__}")


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
    telemetry: bool = typer.Option(
        False,
        "--telemetry",
        help="Export traces and metrics to OTEL_EXPORTER_OTLP_ENDPOINT.",
    ),
):
    """
    virtkube CLI main entry point.
    """
    if telemetry:
        initialize_telemetry()


# Register command sub-apps
app.add_typer(generate.app, name="generate")
app.add_typer(validate.app, name="validate")


if __name__ == "__main__":
    app()
