# src/virtkube/cli/utils.py
import logging
from pathlib import Path
from typing import Type, TypeVar

import typer
from pydantic import BaseModel, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..models.base import flatten_object_metadata
from ..models.shoot import Cluster

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def read_manifest(path: Path) -> dict:
    """Reads a single YAML or JSON document from `path`."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = YAML(typ="safe").load(fh)
    except (OSError, YAMLError) as e:
        raise typer.BadParameter(f"Could not read '{path}': {e}")
    if not isinstance(data, dict):
        raise typer.BadParameter(f"'{path}' does not contain an object.")
    return data


def load_object(path: Path, model: Type[M]) -> M:
    """Loads a Kubernetes manifest from `path` into `model`."""
    try:
        return model.model_validate(flatten_object_metadata(read_manifest(path)))
    except ValidationError as e:
        raise typer.BadParameter(f"'{path}' is not a valid {model.__name__}: {e}")


def load_cluster(path: Path) -> Cluster:
    """
    Loads a cluster context file: an object holding a `cloudProfile` and a
    `shoot` manifest.
    """
    data = read_manifest(path)
    try:
        return Cluster.model_validate(
            {
                "cloudProfile": flatten_object_metadata(data.get("cloudProfile") or {}),
                "shoot": flatten_object_metadata(data.get("shoot") or {}),
            }
        )
    except ValidationError as e:
        raise typer.BadParameter(f"'{path}' is not a valid cluster context: {e}")
