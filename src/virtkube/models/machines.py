# src/virtkube/models/machines.py
"""
This module defines the descriptors produced by the machine config
generator: KubeVirt machine classes, machine deployments for the machine
controller manager, and CDI data volume specs.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from .base import KubeModel
from .provider import CPU, Devices, DNSConfig, MachineImage, Memory
from .worker import Taint


class DataVolumeSourcePVC(KubeModel):
    namespace: str
    name: str


class DataVolumeSourceHTTP(KubeModel):
    url: str


class DataVolumeBlankImage(KubeModel):
    pass


class DataVolumeSource(KubeModel):
    """Where a data volume gets its content from. Exactly one variant is set."""

    pvc: Optional[DataVolumeSourcePVC] = None
    http: Optional[DataVolumeSourceHTTP] = None
    blank: Optional[DataVolumeBlankImage] = None

    @model_validator(mode="after")
    def _exactly_one_source(self):
        populated = [v for v in (self.pvc, self.http, self.blank) if v is not None]
        if len(populated) != 1:
            raise ValueError("exactly one of pvc, http or blank must be set")
        return self


class StorageResources(KubeModel):
    requests: Dict[str, str] = Field(default_factory=dict)


class PersistentVolumeClaimSpec(KubeModel):
    access_modes: List[str] = Field(default_factory=list)
    resources: StorageResources = Field(default_factory=StorageResources)
    storage_class_name: Optional[str] = None


class DataVolumeSpec(KubeModel):
    """A CDI DataVolume spec: a PVC envelope plus its content source."""

    pvc: PersistentVolumeClaimSpec
    source: DataVolumeSource


class AdditionalVolume(KubeModel):
    name: str
    data_volume: DataVolumeSpec


class ResourceRequirements(KubeModel):
    requests: Dict[str, str] = Field(default_factory=dict)
    limits: Optional[Dict[str, str]] = None
    overcommit_guest_overhead: bool = False


class MachineClassSecret(KubeModel):
    cloud_config: str
    kubeconfig: str


class MachineClass(KubeModel):
    """
    Chart values for one KubeVirt machine class. The name carries the pool
    hash, so any change to hashed inputs yields a new class.
    """

    name: str
    region: str
    zone: str
    resources: ResourceRequirements
    devices: Optional[Devices] = None
    root_volume: DataVolumeSpec
    additional_volumes: List[AdditionalVolume] = Field(default_factory=list)
    ssh_keys: List[str] = Field(default_factory=list)
    networks: List[Dict[str, Any]] = Field(default_factory=list)
    cpu: Optional[CPU] = None
    memory: Optional[Memory] = None
    dns_policy: Optional[str] = None
    dns_config: Optional[DNSConfig] = None
    tags: Dict[str, str] = Field(default_factory=dict)
    secret: MachineClassSecret


class MachineConfiguration(KubeModel):
    drain_timeout: Optional[str] = None
    health_timeout: Optional[str] = None
    creation_timeout: Optional[str] = None
    max_evict_retries: Optional[int] = None
    node_conditions: Optional[List[str]] = None


class MachineDeployment(KubeModel):
    """One scaling unit per pool and zone; its name does not carry the hash."""

    name: str
    class_name: str
    secret_name: str
    minimum: int
    maximum: int
    max_surge: int
    max_unavailable: int
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    taints: List[Taint] = Field(default_factory=list)
    machine_configuration: Optional[MachineConfiguration] = None


class GenerationResult(KubeModel):
    """
    Everything one generation run produces, in input pool/zone order.

    Attributes:
        machine_classes: Machine class chart values
        machine_deployments: Deployments referencing the classes by name
        machine_images: Images used, deduplicated by name+version
        machine_class_volumes: Machine class name -> pre-allocated root volume spec
    """

    machine_classes: List[MachineClass] = Field(default_factory=list)
    machine_deployments: List[MachineDeployment] = Field(default_factory=list)
    machine_images: List[MachineImage] = Field(default_factory=list)
    machine_class_volumes: Dict[str, DataVolumeSpec] = Field(default_factory=dict)
