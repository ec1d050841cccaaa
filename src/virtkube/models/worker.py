# src/virtkube/models/worker.py
"""
Pydantic models for the Gardener `Worker` extension resource: the abstract,
cloud-agnostic description of a shoot's worker pools.
"""

from typing import Dict, List, Optional, Union

from pydantic import Field

from .base import KubeModel, RawExtension


class SecretReference(KubeModel):
    name: str
    namespace: str = "default"


class MachineImage(KubeModel):
    name: str
    version: str


class Volume(KubeModel):
    type: Optional[str] = None
    size: str


class DataVolume(KubeModel):
    name: str
    type: Optional[str] = None
    size: str


class Taint(KubeModel):
    key: str
    value: Optional[str] = None
    effect: str


class MachineControllerManagerSettings(KubeModel):
    machine_drain_timeout: Optional[str] = None
    machine_health_timeout: Optional[str] = None
    machine_creation_timeout: Optional[str] = None
    max_evict_retries: Optional[int] = None
    node_conditions: List[str] = Field(default_factory=list)


class WorkerPool(KubeModel):
    """
    A named group of nodes sharing machine type, volume configuration and
    scaling bounds, spread over one or more zones.
    """

    name: str = Field(..., description="Pool name, part of every generated resource name")
    machine_type: str = Field(..., description="Machine type name from the cloud profile")
    machine_image: MachineImage
    minimum: int = 0
    maximum: int = 0
    max_surge: Union[int, str] = 1
    max_unavailable: Union[int, str] = 0
    zones: List[str] = Field(..., min_length=1)
    volume: Optional[Volume] = None
    data_volumes: List[DataVolume] = Field(default_factory=list)
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    taints: List[Taint] = Field(default_factory=list)
    provider_config: Optional[RawExtension] = None
    user_data: str = ""
    kubernetes_version: Optional[str] = None
    machine_controller_manager_settings: Optional[MachineControllerManagerSettings] = None


class WorkerSpec(KubeModel):
    region: str
    secret_ref: SecretReference
    ssh_public_key: str = ""
    infrastructure_provider_status: Optional[RawExtension] = None
    pools: List[WorkerPool] = Field(default_factory=list)


class WorkerStatusSection(KubeModel):
    provider_status: Optional[RawExtension] = None


class Worker(KubeModel):
    """The Worker resource, living in the shoot's control plane namespace."""

    name: str
    namespace: str
    spec: WorkerSpec
    status: WorkerStatusSection = Field(default_factory=WorkerStatusSection)
