# src/virtkube/models/cloud_profile.py

from typing import List, Optional

from pydantic import Field

from .base import KubeModel, RawExtension


class MachineTypeStorage(KubeModel):
    """Built-in storage of a machine type, used when a pool declares no volume."""

    storage_class: str = Field("", alias="class")
    storage_size: Optional[str] = Field(None, alias="size")
    type: Optional[str] = None


class MachineType(KubeModel):
    """
    Pydantic model for a machine type catalog entry.

    Attributes:
        name: Machine type name, referenced by worker pools
        cpu: CPU quantity (e.g. '2', '500m')
        memory: Memory quantity (e.g. '4Gi')
        storage: Optional built-in root disk
    """

    name: str
    cpu: str
    memory: str
    gpu: Optional[str] = None
    storage: Optional[MachineTypeStorage] = None
    usable: Optional[bool] = None


class VolumeType(KubeModel):
    name: str
    storage_class: str = Field(..., alias="class")
    usable: Optional[bool] = None


class ExpirableVersion(KubeModel):
    version: str
    classification: Optional[str] = None


class CloudProfileMachineImage(KubeModel):
    name: str
    versions: List[ExpirableVersion] = Field(default_factory=list)


class CloudProfileSpec(KubeModel):
    type: str = "kubevirt"
    machine_types: List[MachineType] = Field(default_factory=list)
    volume_types: List[VolumeType] = Field(default_factory=list)
    machine_images: List[CloudProfileMachineImage] = Field(default_factory=list)
    provider_config: Optional[RawExtension] = None


class CloudProfile(KubeModel):
    name: str
    spec: CloudProfileSpec = Field(default_factory=CloudProfileSpec)
