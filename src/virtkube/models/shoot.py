# src/virtkube/models/shoot.py
"""
Pydantic models for the Gardener objects the admission validators and the
generator read: Shoot, SecretBinding, Secret and the Cluster context.
"""

import base64
import binascii
from typing import Dict, List, Optional, Union

from pydantic import Field

from .base import KubeModel, RawExtension
from .cloud_profile import CloudProfile
from .worker import DataVolume, MachineImage, Volume


class Networking(KubeModel):
    type: Optional[str] = None
    nodes: Optional[str] = None
    pods: Optional[str] = None
    services: Optional[str] = None


class Kubernetes(KubeModel):
    version: str


class Machine(KubeModel):
    type: str
    image: Optional[MachineImage] = None


class ShootWorker(KubeModel):
    name: str
    machine: Machine
    minimum: int = 0
    maximum: int = 0
    max_surge: Optional[Union[int, str]] = None
    max_unavailable: Optional[Union[int, str]] = None
    zones: List[str] = Field(default_factory=list)
    volume: Optional[Volume] = None
    data_volumes: List[DataVolume] = Field(default_factory=list)
    provider_config: Optional[RawExtension] = None
    kubernetes_version: Optional[str] = None


class Provider(KubeModel):
    type: str
    infrastructure_config: Optional[RawExtension] = None
    control_plane_config: Optional[RawExtension] = None
    workers: List[ShootWorker] = Field(default_factory=list)


class ShootSpec(KubeModel):
    cloud_profile_name: str
    secret_binding_name: str = ""
    region: str = ""
    kubernetes: Kubernetes
    networking: Networking = Field(default_factory=Networking)
    provider: Provider


class Shoot(KubeModel):
    name: str
    namespace: str = "garden"
    spec: ShootSpec


class ObjectReference(KubeModel):
    name: str
    namespace: str = "default"


class SecretBinding(KubeModel):
    name: str
    namespace: str
    secret_ref: ObjectReference


class Secret(KubeModel):
    """A Kubernetes secret; `data` values are base64 encoded, as on the wire."""

    name: str
    namespace: str = "default"
    data: Dict[str, str] = Field(default_factory=dict)

    def decoded(self, key: str) -> Optional[bytes]:
        """Returns the decoded value of `key`, or None when missing or not valid base64."""
        value = self.data.get(key)
        if value is None:
            return None
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            return None


class Cluster(KubeModel):
    """The target-cluster context a worker is reconciled against."""

    cloud_profile: CloudProfile
    shoot: Shoot
