# src/virtkube/cli/validate.py
"""
Implements the `validate` commands: runs the admission checks against
manifests on disk, without a garden cluster.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from ..admission.base import StaticObjectReader
from ..admission.validation import validate_cloud_provider_secret
from ..core.exceptions import AdmissionError, VirtKubeError
from ..core.factory import get_cloud_profile_validator, get_secret_validator, get_shoot_validator
from ..models.cloud_profile import CloudProfile
from ..models.shoot import Secret, SecretBinding, Shoot
from .utils import load_object

logger = logging.getLogger(__name__)

app = typer.Typer(help="Validate KubeVirt shoots, cloud profiles and secrets.", add_completion=False)

existing_file = dict(exists=True, dir_okay=False)


def _run(coro, kind: str, name: str):
    try:
        asyncio.run(coro)
    except AdmissionError as e:
        typer.echo(f"{kind} {name!r} is invalid:", err=True)
        for error in e.errors:
            typer.echo(f"  - {error}", err=True)
        raise typer.Exit(code=1)
    except VirtKubeError as e:
        logger.error(f"Could not validate {kind} {name!r}: {e}")
        raise typer.Exit(code=1)
    typer.echo(f"{kind} {name!r} is valid.")


@app.command()
def shoot(
    shoot_file: Annotated[Path, typer.Argument(help="Shoot manifest.", **existing_file)],
    cloud_profile_file: Annotated[
        Path, typer.Option("--cloud-profile", help="Cloud profile referenced by the shoot.", **existing_file)
    ],
    old_file: Annotated[
        Optional[Path], typer.Option("--old", help="Previous shoot manifest; validates an update.", **existing_file)
    ] = None,
    secret_binding_file: Annotated[
        Optional[Path], typer.Option("--secret-binding", help="Secret binding used by the shoot.", **existing_file)
    ] = None,
    secret_file: Annotated[
        Optional[Path], typer.Option("--secret", help="Secret referenced by the binding.", **existing_file)
    ] = None,
):
    """
    Validate a shoot create, or an update when --old is given.
    Creates also check the cloud provider secret, so they need --secret-binding and --secret.
    """
    new = load_object(shoot_file, Shoot)
    old = load_object(old_file, Shoot) if old_file else None
    reader = StaticObjectReader(
        cloud_profiles=[load_object(cloud_profile_file, CloudProfile)],
        secret_bindings=[load_object(secret_binding_file, SecretBinding)] if secret_binding_file else None,
        secrets=[load_object(secret_file, Secret)] if secret_file else None,
    )

    async def _validate_shoot():
        async with reader:
            await get_shoot_validator(reader).validate(new, old)

    _run(_validate_shoot(), "Shoot", new.name)


@app.command()
def cloudprofile(
    cloud_profile_file: Annotated[Path, typer.Argument(help="Cloud profile manifest.", **existing_file)],
    old_file: Annotated[
        Optional[Path], typer.Option("--old", help="Previous cloud profile manifest.", **existing_file)
    ] = None,
):
    """
    Validate the KubeVirt provider config of a cloud profile.
    """
    new = load_object(cloud_profile_file, CloudProfile)
    old = load_object(old_file, CloudProfile) if old_file else None
    _run(get_cloud_profile_validator().validate(new, old), "CloudProfile", new.name)


@app.command()
def secret(
    secret_file: Annotated[Path, typer.Argument(help="Secret manifest.", **existing_file)],
    old_file: Annotated[Optional[Path], typer.Option("--old", help="Previous secret manifest.", **existing_file)] = None,
    secret_binding_file: Annotated[
        Optional[Path], typer.Option("--secret-binding", help="Secret binding pointing at the secret.", **existing_file)
    ] = None,
    shoot_file: Annotated[
        Optional[Path], typer.Option("--shoot", help="Shoot using the secret binding.", **existing_file)
    ] = None,
):
    """
    Validate the kubeconfig held by a cloud provider secret.

    With --secret-binding and --shoot the secret is only checked when that shoot uses it,
    as at admission time; otherwise it is checked unconditionally.
    """
    new = load_object(secret_file, Secret)
    old = load_object(old_file, Secret) if old_file else None

    if secret_binding_file and shoot_file:
        reader = StaticObjectReader(
            secret_bindings=[load_object(secret_binding_file, SecretBinding)],
            shoots=[load_object(shoot_file, Shoot)],
        )

        async def _validate_with_bindings():
            async with reader:
                await get_secret_validator(reader).validate(new, old)

        _run(_validate_with_bindings(), "Secret", new.name)
        return

    async def _validate_secret():
        validate_cloud_provider_secret(new).raise_if_any()

    _run(_validate_secret(), "Secret", new.name)
