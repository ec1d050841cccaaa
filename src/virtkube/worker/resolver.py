# src/virtkube/worker/resolver.py
"""
Catalog lookups for a generation run. Catalogs are small, so lookups are
linear scans with exact, case-sensitive name matching; the first match wins.
"""

import logging
from typing import Iterable, Optional, Tuple

from ..core.exceptions import NotFoundError, PreconditionError
from ..models.cloud_profile import MachineType, VolumeType
from ..models.provider import CloudProfileConfig, MachineImage, MachineTypeExtension, WorkerStatus
from ..utils.k8s_utils import is_valid_quantity

logger = logging.getLogger(__name__)


def get_machine_type(machine_types: Iterable[MachineType], name: str) -> MachineType:
    for machine_type in machine_types:
        if machine_type.name == name:
            return machine_type
    raise NotFoundError(f"machine type {name!r} not found in cloud profile")


def get_volume_type(volume_types: Iterable[VolumeType], name: str) -> VolumeType:
    for volume_type in volume_types:
        if volume_type.name == name:
            return volume_type
    raise NotFoundError(f"volume type {name!r} not found in cloud profile")


def get_machine_type_extension(
    cloud_profile_config: Optional[CloudProfileConfig], name: str
) -> Optional[MachineTypeExtension]:
    """Returns the provider extension for a machine type, or None; extensions are optional."""
    if cloud_profile_config is None:
        return None
    for extension in cloud_profile_config.machine_types:
        if extension.name == name:
            return extension
    return None


def get_storage_class_name_and_size(
    volume_types: Iterable[VolumeType], volume_type_name: Optional[str], volume_size: str
) -> Tuple[str, str]:
    """Resolves a volume type to its storage class and checks that the size is a quantity."""
    if not volume_type_name:
        raise PreconditionError("volume type must be set to resolve a storage class")
    volume_type = get_volume_type(volume_types, volume_type_name)
    if not is_valid_quantity(volume_size):
        raise PreconditionError(f"could not parse volume size {volume_size!r} as quantity")
    return volume_type.storage_class, volume_size


def get_machine_image_url(
    cloud_profile_config: Optional[CloudProfileConfig],
    worker_status: Optional[WorkerStatus],
    name: str,
    version: str,
) -> str:
    """
    Looks up the source URL of an image version, first in the cloud profile
    config, then among the images recorded in the worker's provider status.
    """
    if cloud_profile_config is not None:
        for image in cloud_profile_config.machine_images:
            if image.name != name:
                continue
            for image_version in image.versions:
                if image_version.version == version:
                    return image_version.source_url

    if worker_status is not None:
        for image in worker_status.machine_images:
            if image.name == name and image.version == version:
                logger.debug("Using machine image %s:%s from worker status", name, version)
                return image.source_url

    raise NotFoundError(f"could not find machine image source URL for {name}:{version}")


def append_machine_image(machine_images: list, machine_image: MachineImage) -> list:
    """Appends `machine_image` unless an image with the same name and version is already listed."""
    for image in machine_images:
        if image.name == machine_image.name and image.version == machine_image.version:
            return machine_images
    machine_images.append(machine_image)
    return machine_images
