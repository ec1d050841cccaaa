# src/virtkube/models/provider.py
"""
Provider-specific configuration sections. These travel as opaque payloads
attached to generic Gardener objects and are decoded once, at the system
boundary, into the models below (see `virtkube.core.scheme`).
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, ValidationInfo, model_validator

from .base import KubeModel


class ProviderModel(KubeModel):
    """
    Base for provider payload models.

    When validated with ``context={"strict": True}`` unknown fields are
    rejected at every nesting level; otherwise they are ignored.
    """

    @model_validator(mode="before")
    @classmethod
    def _reject_unknown_fields(cls, data: Any, info: ValidationInfo) -> Any:
        if not (info.context and info.context.get("strict")) or not isinstance(data, dict):
            return data
        known = set()
        for name, field in cls.model_fields.items():
            known.add(name)
            if field.alias:
                known.add(field.alias)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown field(s) {', '.join(unknown)}")
        return data


# --- WorkerConfig ---


class Disk(ProviderModel):
    name: str
    cache: Optional[str] = None
    boot_order: Optional[int] = None


class Devices(ProviderModel):
    disks: List[Disk] = Field(default_factory=list)
    rng: Optional[Dict[str, Any]] = None
    block_multi_queue: bool = Field(False, alias="blockMultiqueue")
    network_interface_multi_queue: bool = Field(False, alias="networkInterfaceMultiqueue")
    disable_guest_os_rng: bool = False


class CPU(ProviderModel):
    cores: Optional[int] = None
    sockets: Optional[int] = None
    threads: Optional[int] = None
    model: Optional[str] = None
    dedicated_cpu_placement: bool = False


class Hugepages(ProviderModel):
    page_size: str


class Memory(ProviderModel):
    hugepages: Optional[Hugepages] = None
    guest: Optional[str] = None


class DNSConfigOption(ProviderModel):
    name: str
    value: Optional[str] = None


class DNSConfig(ProviderModel):
    nameservers: List[str] = Field(default_factory=list)
    searches: List[str] = Field(default_factory=list)
    options: List[DNSConfigOption] = Field(default_factory=list)


class WorkerConfig(ProviderModel):
    """Per-pool provider configuration. Every section is optional."""

    devices: Optional[Devices] = None
    cpu: Optional[CPU] = None
    memory: Optional[Memory] = None
    dns_policy: Optional[str] = None
    dns_config: Optional[DNSConfig] = None
    overcommit_guest_overhead: bool = False
    disable_pre_allocated_data_volumes: bool = False


# --- CloudProfileConfig ---


class MachineImageVersion(ProviderModel):
    version: str
    source_url: str = Field("", alias="sourceURL")


class MachineImages(ProviderModel):
    name: str
    versions: List[MachineImageVersion] = Field(default_factory=list)


class ResourcesLimits(ProviderModel):
    cpu: str
    memory: str


class MachineTypeExtension(ProviderModel):
    """Sparse override layer for a cloud-profile machine type, keyed by name."""

    name: str
    limits: Optional[ResourcesLimits] = None


class CloudProfileConfig(ProviderModel):
    machine_images: List[MachineImages] = Field(default_factory=list)
    machine_types: List[MachineTypeExtension] = Field(default_factory=list)


# --- InfrastructureConfig / InfrastructureStatus ---


class TenantNetwork(ProviderModel):
    name: str
    config: Optional[str] = None
    default: bool = False


class SharedNetwork(ProviderModel):
    name: str
    namespace: str = "default"


class NetworksConfig(ProviderModel):
    tenant_networks: List[TenantNetwork] = Field(default_factory=list)
    shared_networks: List[SharedNetwork] = Field(default_factory=list)


class InfrastructureConfig(ProviderModel):
    networks: NetworksConfig = Field(default_factory=NetworksConfig)


class NetworkStatus(ProviderModel):
    name: str
    default: bool = False
    sha: str = ""


class InfrastructureStatus(ProviderModel):
    networks: List[NetworkStatus] = Field(default_factory=list)


# --- ControlPlaneConfig ---


class CloudControllerManagerConfig(ProviderModel):
    feature_gates: Dict[str, bool] = Field(default_factory=dict)


class ControlPlaneConfig(ProviderModel):
    cloud_controller_manager: Optional[CloudControllerManagerConfig] = None


# --- WorkerStatus ---


class MachineImage(ProviderModel):
    """A machine image actually referenced by a generated machine class."""

    name: str
    version: str
    source_url: str = Field("", alias="sourceURL")


class WorkerStatus(ProviderModel):
    machine_images: List[MachineImage] = Field(default_factory=list)
