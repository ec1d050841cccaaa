# src/virtkube/worker/volumes.py
"""
Builders for CDI data volume specs. Each builder sets exactly one source;
which builder to use is the caller's decision.
"""

from ..core.config import config
from ..models.machines import (
    DataVolumeBlankImage,
    DataVolumeSource,
    DataVolumeSourceHTTP,
    DataVolumeSourcePVC,
    DataVolumeSpec,
    PersistentVolumeClaimSpec,
    StorageResources,
)


def _pvc_spec(storage_class_name: str, storage_size: str) -> PersistentVolumeClaimSpec:
    return PersistentVolumeClaimSpec(
        access_modes=[config.DEFAULT_VOLUME_ACCESS_MODE],
        resources=StorageResources(requests={"storage": storage_size}),
        storage_class_name=storage_class_name,
    )


def build_data_volume_spec_with_pvc_source(
    storage_class_name: str, storage_size: str, namespace: str, name: str
) -> DataVolumeSpec:
    """Volume cloned from the existing PVC `namespace/name`."""
    return DataVolumeSpec(
        pvc=_pvc_spec(storage_class_name, storage_size),
        source=DataVolumeSource(pvc=DataVolumeSourcePVC(namespace=namespace, name=name)),
    )


def build_data_volume_spec_with_http_source(storage_class_name: str, storage_size: str, url: str) -> DataVolumeSpec:
    """Volume imported directly from an image URL."""
    return DataVolumeSpec(
        pvc=_pvc_spec(storage_class_name, storage_size),
        source=DataVolumeSource(http=DataVolumeSourceHTTP(url=url)),
    )


def build_data_volume_spec_with_blank_source(storage_class_name: str, storage_size: str) -> DataVolumeSpec:
    """Empty volume."""
    return DataVolumeSpec(
        pvc=_pvc_spec(storage_class_name, storage_size),
        source=DataVolumeSource(blank=DataVolumeBlankImage()),
    )
