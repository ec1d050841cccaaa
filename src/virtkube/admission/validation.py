# src/virtkube/admission/validation.py
"""
Structural validation of shoot networking, shoot workers and the provider
configuration sections. Every function returns an `ErrorList`; none of them
stops at the first violation.
"""

import ipaddress
import json
import re
from typing import List, Optional
from urllib.parse import urlparse

from ..core.config import config
from ..core.exceptions import DecodeError
from ..core.k8s_client import load_kubeconfig
from ..models.cloud_profile import CloudProfileSpec
from ..models.provider import CloudProfileConfig, ControlPlaneConfig, InfrastructureConfig, WorkerConfig
from ..models.shoot import Networking, Secret, ShootWorker
from ..models.worker import DataVolume
from ..utils.k8s_utils import is_valid_quantity, parse_quantity
from .field import ErrorList, Path, duplicate, forbidden, invalid, not_supported, required

VALID_DNS_POLICIES = ("ClusterFirstWithHostNet", "ClusterFirst", "Default", "None")
VALID_HUGEPAGE_SIZES = ("2Mi", "1Gi")
MAX_DNS_NAMESERVERS = 3

_FEATURE_GATE_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")


def validate_networking(networking: Networking, path: Path) -> ErrorList:
    errors = ErrorList()
    if not networking.nodes:
        errors.append(required(path.child("nodes"), "a nodes CIDR must be provided for KubeVirt shoots"))
        return errors
    try:
        ipaddress.ip_network(networking.nodes, strict=False)
    except ValueError as e:
        errors.append(invalid(path.child("nodes"), networking.nodes, str(e)))
    return errors


def validate_infrastructure_config(infrastructure_config: InfrastructureConfig, path: Path) -> ErrorList:
    errors = ErrorList()
    networks_path = path.child("networks")
    seen = set()

    defaults = 0
    for i, network in enumerate(infrastructure_config.networks.tenant_networks):
        network_path = networks_path.child("tenantNetworks").index(i)
        if not network.name:
            errors.append(required(network_path.child("name"), "network name is required"))
        elif network.name in seen:
            errors.append(duplicate(network_path.child("name"), network.name))
        seen.add(network.name)
        if network.config:
            try:
                json.loads(network.config)
            except ValueError as e:
                errors.append(invalid(network_path.child("config"), network.config, f"must be valid JSON: {e}"))
        if network.default:
            defaults += 1
            if defaults > 1:
                errors.append(forbidden(network_path.child("default"), "only one tenant network may be the default"))

    for i, network in enumerate(infrastructure_config.networks.shared_networks):
        network_path = networks_path.child("sharedNetworks").index(i)
        if not network.name:
            errors.append(required(network_path.child("name"), "network name is required"))
            continue
        key = f"{network.namespace}/{network.name}"
        if key in seen:
            errors.append(duplicate(network_path.child("name"), network.name))
        seen.add(key)

    return errors


def validate_infrastructure_config_update(
    old_config: InfrastructureConfig, new_config: InfrastructureConfig, path: Path
) -> ErrorList:
    """Networks attached to existing machines cannot be changed in place."""
    errors = ErrorList()
    networks_path = path.child("networks")
    if old_config.networks.tenant_networks != new_config.networks.tenant_networks:
        errors.append(
            invalid(
                networks_path.child("tenantNetworks"),
                [n.name for n in new_config.networks.tenant_networks],
                "field is immutable",
            )
        )
    if old_config.networks.shared_networks != new_config.networks.shared_networks:
        errors.append(
            invalid(
                networks_path.child("sharedNetworks"),
                [n.name for n in new_config.networks.shared_networks],
                "field is immutable",
            )
        )
    return errors


def validate_control_plane_config(control_plane_config: ControlPlaneConfig, path: Path) -> ErrorList:
    errors = ErrorList()
    ccm = control_plane_config.cloud_controller_manager
    if ccm is None:
        return errors
    gates_path = path.child("cloudControllerManager", "featureGates")
    for name in ccm.feature_gates:
        if not _FEATURE_GATE_RE.match(name):
            errors.append(invalid(gates_path.key(name), name, "feature gate names must be CamelCase identifiers"))
    return errors


def _validate_volume_size(size: str, path: Path, errors: ErrorList) -> None:
    if not size:
        errors.append(required(path, "volume size is required"))
    elif not is_valid_quantity(size):
        errors.append(invalid(path, size, "must be a valid quantity"))


def validate_workers(workers: List[ShootWorker], path: Path) -> ErrorList:
    errors = ErrorList()
    names = set()
    for i, worker in enumerate(workers):
        worker_path = path.index(i)
        if worker.name in names:
            errors.append(duplicate(worker_path.child("name"), worker.name))
        names.add(worker.name)

        if not worker.zones:
            errors.append(required(worker_path.child("zones"), "at least one zone must be configured"))
        zones = set()
        for j, zone in enumerate(worker.zones):
            if zone in zones:
                errors.append(duplicate(worker_path.child("zones").index(j), zone))
            zones.add(zone)

        if worker.minimum < 0:
            errors.append(invalid(worker_path.child("minimum"), worker.minimum, "must be greater than or equal to 0"))
        if worker.maximum < worker.minimum:
            errors.append(invalid(worker_path.child("maximum"), worker.maximum, "must be greater than or equal to minimum"))
        if worker.max_surge in (0, "0%") and worker.max_unavailable in (0, "0%"):
            errors.append(
                invalid(worker_path.child("maxUnavailable"), worker.max_unavailable, "may not be 0 when maxSurge is 0")
            )

        if worker.volume is not None:
            volume_path = worker_path.child("volume")
            if not worker.volume.type:
                errors.append(required(volume_path.child("type"), "volume type is required"))
            _validate_volume_size(worker.volume.size, volume_path.child("size"), errors)

        volume_names = set()
        for j, volume in enumerate(worker.data_volumes):
            volume_path = worker_path.child("dataVolumes").index(j)
            if not volume.name:
                errors.append(required(volume_path.child("name"), "data volume name is required"))
            elif volume.name in volume_names:
                errors.append(duplicate(volume_path.child("name"), volume.name))
            volume_names.add(volume.name)
            if not volume.type:
                errors.append(required(volume_path.child("type"), "data volume type is required"))
            _validate_volume_size(volume.size, volume_path.child("size"), errors)

    return errors


def validate_workers_update(old_workers: List[ShootWorker], new_workers: List[ShootWorker], path: Path) -> ErrorList:
    """Zones of an existing pool may be added but never removed."""
    errors = ErrorList()
    old_by_name = {worker.name: worker for worker in old_workers}
    for i, worker in enumerate(new_workers):
        old_worker = old_by_name.get(worker.name)
        if old_worker is None:
            continue
        removed = [zone for zone in old_worker.zones if zone not in worker.zones]
        if removed:
            errors.append(
                forbidden(path.index(i).child("zones"), f"zones may not be removed from an existing pool: {removed}")
            )
    return errors


def validate_worker_config(worker_config: WorkerConfig, data_volumes: List[DataVolume], path: Path) -> ErrorList:
    errors = ErrorList()

    if worker_config.dns_policy is not None and worker_config.dns_policy not in VALID_DNS_POLICIES:
        errors.append(not_supported(path.child("dnsPolicy"), worker_config.dns_policy, VALID_DNS_POLICIES))
    if worker_config.dns_policy == "None" and (
        worker_config.dns_config is None or not worker_config.dns_config.nameservers
    ):
        errors.append(required(path.child("dnsConfig"), 'at least one nameserver is required when dnsPolicy is "None"'))

    if worker_config.dns_config is not None:
        nameservers_path = path.child("dnsConfig", "nameservers")
        if len(worker_config.dns_config.nameservers) > MAX_DNS_NAMESERVERS:
            errors.append(
                invalid(
                    nameservers_path,
                    worker_config.dns_config.nameservers,
                    f"must not have more than {MAX_DNS_NAMESERVERS} nameservers",
                )
            )
        for i, nameserver in enumerate(worker_config.dns_config.nameservers):
            try:
                ipaddress.ip_address(nameserver)
            except ValueError:
                errors.append(invalid(nameservers_path.index(i), nameserver, "must be a valid IP address"))

    if worker_config.devices is not None:
        volume_names = {volume.name for volume in data_volumes}
        disk_names = set()
        for i, disk in enumerate(worker_config.devices.disks):
            disk_path = path.child("devices", "disks").index(i)
            if disk.name in disk_names:
                errors.append(duplicate(disk_path.child("name"), disk.name))
            disk_names.add(disk.name)
            if disk.name not in volume_names:
                errors.append(invalid(disk_path.child("name"), disk.name, "disk name must match a data volume name"))

    if worker_config.memory is not None and worker_config.memory.hugepages is not None:
        page_size = worker_config.memory.hugepages.page_size
        if page_size not in VALID_HUGEPAGE_SIZES:
            errors.append(not_supported(path.child("memory", "hugepages", "pageSize"), page_size, VALID_HUGEPAGE_SIZES))

    if worker_config.cpu is not None:
        for name in ("cores", "sockets", "threads"):
            value = getattr(worker_config.cpu, name)
            if value is not None and value < 0:
                errors.append(invalid(path.child("cpu", name), value, "must be greater than or equal to 0"))

    return errors


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_cloud_profile_config(
    spec: CloudProfileSpec, cloud_profile_config: CloudProfileConfig, path: Optional[Path] = None
) -> ErrorList:
    errors = ErrorList()
    path = path or Path("spec", "providerConfig")
    images_path = path.child("machineImages")

    if not cloud_profile_config.machine_images:
        errors.append(required(images_path, "must provide at least one machine image"))

    provided = set()
    for i, image in enumerate(cloud_profile_config.machine_images):
        image_path = images_path.index(i)
        if not image.name:
            errors.append(required(image_path.child("name"), "must provide a name"))
        if not image.versions:
            errors.append(required(image_path.child("versions"), f"must provide at least one version for image {image.name!r}"))
        for j, version in enumerate(image.versions):
            version_path = image_path.child("versions").index(j)
            if not version.version:
                errors.append(required(version_path.child("version"), "must provide a version"))
            if not version.source_url:
                errors.append(required(version_path.child("sourceURL"), "must provide a source URL"))
            elif not _is_http_url(version.source_url):
                errors.append(invalid(version_path.child("sourceURL"), version.source_url, "must be an http(s) URL"))
            provided.add((image.name, version.version))

    for image in spec.machine_images:
        for version in image.versions:
            if (image.name, version.version) not in provided:
                errors.append(
                    required(
                        images_path,
                        f"must provide a source URL for image {image.name!r} in version {version.version!r}",
                    )
                )

    machine_types = {machine_type.name: machine_type for machine_type in spec.machine_types}
    extension_names = set()
    for i, extension in enumerate(cloud_profile_config.machine_types):
        extension_path = path.child("machineTypes").index(i)
        if extension.name in extension_names:
            errors.append(duplicate(extension_path.child("name"), extension.name))
        extension_names.add(extension.name)

        machine_type = machine_types.get(extension.name)
        if machine_type is None:
            errors.append(invalid(extension_path.child("name"), extension.name, "machine type is not defined in the cloud profile"))
            continue
        if extension.limits is None:
            continue

        for resource, limit, request in (
            ("cpu", extension.limits.cpu, machine_type.cpu),
            ("memory", extension.limits.memory, machine_type.memory),
        ):
            limit_path = extension_path.child("limits", resource)
            if not is_valid_quantity(limit):
                errors.append(invalid(limit_path, limit, "must be a valid quantity"))
            elif is_valid_quantity(request) and parse_quantity(limit) < parse_quantity(request):
                errors.append(invalid(limit_path, limit, f"must not be lower than the machine type's {resource} ({request})"))

    return errors


def validate_cloud_provider_secret(secret: Secret) -> ErrorList:
    errors = ErrorList()
    key = config.KUBECONFIG_SECRET_KEY
    key_path = Path("data").key(key)

    if key not in secret.data:
        errors.append(required(key_path, f"missing {key!r} field in secret '{secret.namespace}/{secret.name}'"))
        return errors

    kubeconfig = secret.decoded(key)
    if not kubeconfig:
        errors.append(invalid(key_path, "(hidden)", "must be a non-empty, base64 encoded kubeconfig"))
        return errors
    try:
        load_kubeconfig(kubeconfig)
    except DecodeError as e:
        errors.append(invalid(key_path, "(hidden)", str(e)))
    return errors
