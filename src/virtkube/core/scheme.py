# src/virtkube/core/scheme.py
"""
Registry of provider configuration kinds and the decoders that turn opaque
provider payloads into typed models.

A `Scheme` is built once (see `virtkube.core.factory`) and shared read-only;
`Decoder` instances wrap it with either strict or lenient field handling.
"""

import json
import logging
from typing import Dict, Optional, Tuple, Type, TypeVar, Union

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..models.base import RawExtension
from ..models.provider import (
    CloudProfileConfig,
    ControlPlaneConfig,
    InfrastructureConfig,
    InfrastructureStatus,
    ProviderModel,
    WorkerConfig,
    WorkerStatus,
)
from .config import config
from .exceptions import ConversionError, DecodeError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ProviderModel)


class Scheme:
    """Maps (apiVersion, kind) pairs to provider models and back."""

    def __init__(self, api_version: str):
        self.api_version = api_version
        self._models: Dict[Tuple[str, str], Type[ProviderModel]] = {}
        self._kinds: Dict[Type[ProviderModel], str] = {}

    def add_known_types(self, *models: Type[ProviderModel]) -> None:
        for model in models:
            self._models[(self.api_version, model.__name__)] = model
            self._kinds[model] = model.__name__

    def model_for(self, api_version: str, kind: str) -> Optional[Type[ProviderModel]]:
        return self._models.get((api_version, kind))

    def kind_for(self, model: Type[ProviderModel]) -> Optional[str]:
        return self._kinds.get(model)

    def convert_to_versioned(self, obj: ProviderModel) -> dict:
        """Renders `obj` as its versioned map, including apiVersion and kind."""
        kind = self.kind_for(type(obj))
        if kind is None:
            raise ConversionError(f"type {type(obj).__name__} is not registered for {self.api_version}")
        try:
            body = obj.to_dict()
        except (ValueError, TypeError) as e:
            raise ConversionError(f"could not convert {kind} to {self.api_version}: {e}") from e
        return {"apiVersion": self.api_version, "kind": kind, **body}

    def encode(self, obj: ProviderModel) -> bytes:
        return json.dumps(self.convert_to_versioned(obj), separators=(",", ":")).encode("utf-8")


def build_scheme() -> Scheme:
    """Builds the scheme holding every provider configuration kind."""
    scheme = Scheme(config.PROVIDER_API)
    scheme.add_known_types(
        WorkerConfig,
        WorkerStatus,
        InfrastructureConfig,
        InfrastructureStatus,
        ControlPlaneConfig,
        CloudProfileConfig,
    )
    return scheme


class Decoder:
    """
    Decodes JSON or YAML payloads carrying an apiVersion/kind discriminator.

    A strict decoder rejects unknown fields; a lenient one drops them. Use
    the lenient variant only to re-read already stored objects.
    """

    def __init__(self, scheme: Scheme, strict: bool = True):
        self.scheme = scheme
        self.strict = strict

    def decode(self, raw: Union[bytes, str], into: Type[T]) -> T:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            data = YAML(typ="safe").load(raw)
        except YAMLError as e:
            raise DecodeError(f"payload is neither valid JSON nor YAML: {e}") from e
        if not isinstance(data, dict):
            raise DecodeError("payload is not an object")

        data = dict(data)
        api_version = data.pop("apiVersion", None)
        kind = data.pop("kind", None)
        if not api_version or not kind:
            raise DecodeError("payload is missing apiVersion or kind")

        model = self.scheme.model_for(api_version, kind)
        if model is None:
            raise DecodeError(f"no kind {kind!r} is registered for version {api_version!r}")
        if model is not into:
            raise DecodeError(f"expected kind {into.__name__!r}, got {kind!r}")

        try:
            return into.model_validate(data, context={"strict": self.strict})
        except ValidationError as e:
            raise DecodeError(str(e)) from e


def _decode_extension(decoder: Decoder, ext: Optional[RawExtension], into: Type[T], what: str) -> T:
    if ext is None or not ext.raw:
        return into()
    try:
        return decoder.decode(ext.raw, into)
    except DecodeError as e:
        raise DecodeError(f"could not decode {what}: {e}") from e


def get_worker_config(decoder: Decoder, pool) -> WorkerConfig:
    """Extracts the WorkerConfig from the providerConfig of a worker pool (or shoot worker)."""
    return _decode_extension(decoder, pool.provider_config, WorkerConfig, f"providerConfig of worker pool {pool.name!r}")


def get_infrastructure_status(decoder: Decoder, worker) -> InfrastructureStatus:
    return _decode_extension(
        decoder,
        worker.spec.infrastructure_provider_status,
        InfrastructureStatus,
        f"infrastructureProviderStatus of worker '{worker.namespace}/{worker.name}'",
    )


def get_worker_status(decoder: Decoder, worker) -> WorkerStatus:
    return _decode_extension(
        decoder,
        worker.status.provider_status,
        WorkerStatus,
        f"providerStatus of worker '{worker.namespace}/{worker.name}'",
    )


def get_cloud_profile_config(decoder: Decoder, cloud_profile) -> CloudProfileConfig:
    return _decode_extension(
        decoder,
        cloud_profile.spec.provider_config,
        CloudProfileConfig,
        f"providerConfig of cloud profile {cloud_profile.name!r}",
    )


def get_infrastructure_config(decoder: Decoder, shoot) -> InfrastructureConfig:
    return _decode_extension(
        decoder,
        shoot.spec.provider.infrastructure_config,
        InfrastructureConfig,
        f"infrastructureConfig of shoot {shoot.name!r}",
    )


def get_control_plane_config(decoder: Decoder, shoot) -> ControlPlaneConfig:
    return _decode_extension(
        decoder,
        shoot.spec.provider.control_plane_config,
        ControlPlaneConfig,
        f"controlPlaneConfig of shoot {shoot.name!r}",
    )
