# src/virtkube/admission/shoot.py
"""
Admission validation of KubeVirt shoots.

On create every section is validated. On update the old object is decoded
leniently (so stored objects are never bounced after a schema addition) and
only the sections whose decoded value changed are validated again; worker
configs are matched by pool name, not by position.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..core.config import config
from ..core.exceptions import PreconditionError
from ..core.scheme import (
    Decoder,
    get_cloud_profile_config,
    get_control_plane_config,
    get_infrastructure_config,
    get_worker_config,
)
from ..models.cloud_profile import CloudProfile
from ..models.provider import CloudProfileConfig, ControlPlaneConfig, InfrastructureConfig, WorkerConfig
from ..models.shoot import Shoot
from ..models.worker import DataVolume
from .base import ObjectReader
from .field import ErrorList, Path
from .validation import (
    validate_cloud_provider_secret,
    validate_control_plane_config,
    validate_infrastructure_config,
    validate_infrastructure_config_update,
    validate_networking,
    validate_worker_config,
    validate_workers,
    validate_workers_update,
)

logger = logging.getLogger(__name__)

spec_path = Path("spec")
network_path = spec_path.child("networking")
provider_path = spec_path.child("provider")
infrastructure_config_path = provider_path.child("infrastructureConfig")
control_plane_config_path = provider_path.child("controlPlaneConfig")
workers_path = provider_path.child("workers")


def worker_config_path(index: int) -> Path:
    return workers_path.index(index).child("providerConfig")


@dataclass
class WorkerConfigContext:
    name: str
    worker_config: WorkerConfig
    data_volumes: List[DataVolume]


@dataclass
class ValidationContext:
    """A consistent snapshot of a shoot and all of its decoded provider sections."""

    shoot: Shoot
    infrastructure_config: InfrastructureConfig
    control_plane_config: ControlPlaneConfig
    worker_configs: List[WorkerConfigContext]
    cloud_profile: CloudProfile
    cloud_profile_config: CloudProfileConfig


class ShootValidator:
    """Validates shoots of the KubeVirt provider type."""

    def __init__(self, reader: ObjectReader, decoder: Decoder, lenient_decoder: Decoder):
        self.reader = reader
        self.decoder = decoder
        self.lenient_decoder = lenient_decoder

    async def validate(self, new: Shoot, old: Optional[Shoot] = None) -> None:
        """
        Validates a shoot create (old is None) or update.

        Raises:
            AdmissionError: With every field violation found.
            DecodeError, NotFoundError, PreconditionError: If the validation context cannot be built.
        """
        if new.spec.provider.type != config.PROVIDER_TYPE:
            logger.debug("Skipping shoot '%s' of provider type '%s'.", new.name, new.spec.provider.type)
            return
        if old is not None:
            return await self.validate_update(old, new)
        return await self.validate_create(new)

    async def new_validation_context(self, shoot: Shoot, decoder: Decoder) -> ValidationContext:
        infrastructure_config = get_infrastructure_config(decoder, shoot)
        control_plane_config = get_control_plane_config(decoder, shoot)

        worker_configs = [
            WorkerConfigContext(
                name=worker.name,
                worker_config=get_worker_config(decoder, worker),
                data_volumes=worker.data_volumes,
            )
            for worker in shoot.spec.provider.workers
        ]

        cloud_profile = await self.reader.get_cloud_profile(shoot.spec.cloud_profile_name)
        if cloud_profile.spec.provider_config is None:
            raise PreconditionError(f"missing providerConfig in cloud profile {cloud_profile.name!r}")
        cloud_profile_config = get_cloud_profile_config(decoder, cloud_profile)

        return ValidationContext(
            shoot=shoot,
            infrastructure_config=infrastructure_config,
            control_plane_config=control_plane_config,
            worker_configs=worker_configs,
            cloud_profile=cloud_profile,
            cloud_profile_config=cloud_profile_config,
        )

    def validate_context(self, context: ValidationContext) -> ErrorList:
        spec = context.shoot.spec
        errors = ErrorList()
        errors.extend(validate_networking(spec.networking, network_path))
        errors.extend(validate_infrastructure_config(context.infrastructure_config, infrastructure_config_path))
        errors.extend(validate_control_plane_config(context.control_plane_config, control_plane_config_path))
        errors.extend(validate_workers(spec.provider.workers, workers_path))
        for i, worker_context in enumerate(context.worker_configs):
            errors.extend(validate_worker_config(worker_context.worker_config, worker_context.data_volumes, worker_config_path(i)))
        return errors

    async def validate_create(self, shoot: Shoot) -> None:
        context = await self.new_validation_context(shoot, self.decoder)
        self.validate_context(context).raise_if_any()
        await self.validate_shoot_secret(shoot)

    async def validate_update(self, old_shoot: Shoot, shoot: Shoot) -> None:
        old_context = await self.new_validation_context(old_shoot, self.lenient_decoder)
        context = await self.new_validation_context(shoot, self.decoder)
        errors = ErrorList()

        if old_shoot.spec.networking != shoot.spec.networking:
            errors.extend(validate_networking(shoot.spec.networking, network_path))

        if old_context.infrastructure_config != context.infrastructure_config:
            errors.extend(
                validate_infrastructure_config_update(
                    old_context.infrastructure_config, context.infrastructure_config, infrastructure_config_path
                )
            )
            errors.extend(validate_infrastructure_config(context.infrastructure_config, infrastructure_config_path))
        else:
            logger.debug("infrastructureConfig of shoot '%s' unchanged; skipping.", shoot.name)

        if old_context.control_plane_config != context.control_plane_config:
            errors.extend(validate_control_plane_config(context.control_plane_config, control_plane_config_path))

        errors.extend(validate_workers_update(old_shoot.spec.provider.workers, shoot.spec.provider.workers, workers_path))
        errors.extend(validate_workers(shoot.spec.provider.workers, workers_path))

        old_by_name = {worker_context.name: worker_context for worker_context in old_context.worker_configs}
        for i, worker_context in enumerate(context.worker_configs):
            old_worker_context = old_by_name.get(worker_context.name)
            if (
                old_worker_context is not None
                and old_worker_context.worker_config == worker_context.worker_config
                and old_worker_context.data_volumes == worker_context.data_volumes
            ):
                logger.debug("providerConfig of worker '%s' unchanged; skipping.", worker_context.name)
                continue
            errors.extend(
                validate_worker_config(worker_context.worker_config, worker_context.data_volumes, worker_config_path(i))
            )

        errors.raise_if_any()

    async def validate_shoot_secret(self, shoot: Shoot) -> None:
        binding = await self.reader.get_secret_binding(shoot.namespace, shoot.spec.secret_binding_name)
        secret = await self.reader.get_secret(binding.secret_ref.namespace, binding.secret_ref.name)
        validate_cloud_provider_secret(secret).raise_if_any()
