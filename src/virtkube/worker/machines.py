# src/virtkube/worker/machines.py
"""
The machine config generator: compiles a Worker's pools into KubeVirt
machine classes, machine deployments, machine images and pre-allocated
machine class volumes.

A run either produces a complete, consistent `GenerationResult` or raises;
nothing is kept on the generator between runs.
"""

import logging
from typing import List, Optional, Tuple

from ..core.config import config
from ..core.exceptions import DecodeError, PreconditionError, VirtKubeError
from ..core.k8s_client import CredentialFetcher, get_kubeconfig_namespace
from ..core.scheme import (
    Decoder,
    Scheme,
    get_cloud_profile_config,
    get_infrastructure_status,
    get_worker_config,
    get_worker_status,
)
from ..core.telemetry import machine_classes_generated, tracer
from ..models.machines import (
    AdditionalVolume,
    GenerationResult,
    MachineClass,
    MachineClassSecret,
    MachineConfiguration,
    MachineDeployment,
    ResourceRequirements,
)
from ..models.provider import CloudProfileConfig, InfrastructureStatus, MachineImage, WorkerStatus
from ..models.shoot import Cluster
from ..models.worker import Worker, WorkerPool
from .base import ChartApplier, DataVolumeManager
from .distribution import distribute_over_zones, distribute_positive_int_or_percent
from .hashing import worker_pool_hash
from .resolver import (
    append_machine_image,
    get_machine_image_url,
    get_machine_type,
    get_machine_type_extension,
    get_storage_class_name_and_size,
)
from .volumes import (
    build_data_volume_spec_with_blank_source,
    build_data_volume_spec_with_http_source,
    build_data_volume_spec_with_pvc_source,
)

logger = logging.getLogger(__name__)

MACHINE_CLASS_RELEASE_NAME = "machine-class"


def networks_hash_data(infrastructure_status: InfrastructureStatus) -> List[str]:
    """Flattens the provider networks into hash tokens: name, default flag and content hash of each."""
    data = []
    for network in infrastructure_status.networks:
        data.extend([network.name, "true" if network.default else "false", network.sha])
    return data


def read_machine_configuration(pool: WorkerPool) -> Optional[MachineConfiguration]:
    settings = pool.machine_controller_manager_settings
    if settings is None:
        return None
    return MachineConfiguration(
        drain_timeout=settings.machine_drain_timeout,
        health_timeout=settings.machine_health_timeout,
        creation_timeout=settings.machine_creation_timeout,
        max_evict_retries=settings.max_evict_retries,
        node_conditions=settings.node_conditions or None,
    )


class MachineConfigGenerator:
    """
    Generates the machine configuration for one Worker against its cluster context.

    :param worker: The Worker whose pools are compiled.
    :param cluster: Cloud profile and shoot the worker belongs to.
    :param credential_fetcher: Source of the provider cluster kubeconfig.
    :param scheme: Provider kind registry, used for versioned output.
    :param decoder: Decoder for the provider payloads attached to the inputs.
    """

    def __init__(
        self,
        worker: Worker,
        cluster: Cluster,
        credential_fetcher: CredentialFetcher,
        scheme: Scheme,
        decoder: Decoder,
        chart_applier: Optional[ChartApplier] = None,
        data_volume_manager: Optional[DataVolumeManager] = None,
    ):
        self.worker = worker
        self.cluster = cluster
        self.credential_fetcher = credential_fetcher
        self.scheme = scheme
        self.decoder = decoder
        self.chart_applier = chart_applier
        self.data_volume_manager = data_volume_manager

    @property
    def _worker_name(self) -> str:
        return f"{self.worker.namespace}/{self.worker.name}"

    async def _get_kubeconfig(self) -> bytes:
        kubeconfig = await self.credential_fetcher.get_kubeconfig(self.worker.spec.secret_ref)
        if not kubeconfig:
            raise PreconditionError(f"empty kubeconfig in secret referenced by worker {self._worker_name!r}")
        return kubeconfig

    async def close(self):
        """Close the credential fetcher and any API clients it opened."""
        await self.credential_fetcher.close()

    async def generate(self) -> GenerationResult:
        """
        Runs one generation pass over all pools and zones, in input order.

        Raises:
            NotFoundError: A machine type, volume type, image or the credential is missing.
            DecodeError: A provider payload or the provider kubeconfig is malformed.
            PreconditionError: The SSH key or a root volume definition is missing.
        """
        with tracer.start_as_current_span("generate_machine_config") as span:
            span.set_attribute("virtkube.worker", self._worker_name)

            kubeconfig = await self._get_kubeconfig()
            try:
                namespace = get_kubeconfig_namespace(kubeconfig)
            except DecodeError as e:
                raise DecodeError(f"could not read provider kubeconfig of worker {self._worker_name!r}: {e}") from e

            infrastructure_status = get_infrastructure_status(self.decoder, self.worker)
            networks = self.scheme.convert_to_versioned(infrastructure_status)["networks"]
            networks_data = networks_hash_data(infrastructure_status)

            if not self.worker.spec.ssh_public_key:
                raise PreconditionError(f"missing sshPublicKey in worker {self._worker_name!r}")

            cloud_profile_config = get_cloud_profile_config(self.decoder, self.cluster.cloud_profile)
            worker_status = get_worker_status(self.decoder, self.worker)

            result = GenerationResult()
            for pool in self.worker.spec.pools:
                try:
                    self._generate_pool(
                        result, pool, kubeconfig, namespace, networks, networks_data, cloud_profile_config, worker_status
                    )
                except VirtKubeError as e:
                    raise type(e)(f"worker pool {pool.name!r} of worker {self._worker_name!r}: {e}") from e

            machine_classes_generated.add(len(result.machine_classes), {"worker": self._worker_name})
            span.set_attribute("virtkube.machine_classes", len(result.machine_classes))
            return result

    def _resolve_root_volume(self, pool: WorkerPool, machine_type) -> Tuple[str, str]:
        if pool.volume is not None:
            return get_storage_class_name_and_size(
                self.cluster.cloud_profile.spec.volume_types, pool.volume.type, pool.volume.size
            )
        if machine_type.storage is not None and machine_type.storage.storage_size:
            return machine_type.storage.storage_class, machine_type.storage.storage_size
        raise PreconditionError("missing volume in worker pool and storage in machine type")

    def _generate_pool(
        self,
        result: GenerationResult,
        pool: WorkerPool,
        kubeconfig: bytes,
        namespace: str,
        networks: list,
        networks_data: List[str],
        cloud_profile_config: CloudProfileConfig,
        worker_status: WorkerStatus,
    ) -> None:
        zone_count = len(pool.zones)
        worker_config = get_worker_config(self.decoder, pool)
        machine_type = get_machine_type(self.cluster.cloud_profile.spec.machine_types, pool.machine_type)
        pool_hash = worker_pool_hash(pool, self.cluster, *networks_data)

        image_source_url = get_machine_image_url(
            cloud_profile_config, worker_status, pool.machine_image.name, pool.machine_image.version
        )
        append_machine_image(
            result.machine_images,
            MachineImage(name=pool.machine_image.name, version=pool.machine_image.version, source_url=image_source_url),
        )

        resources = ResourceRequirements(
            requests={"cpu": machine_type.cpu, "memory": machine_type.memory},
            overcommit_guest_overhead=worker_config.overcommit_guest_overhead,
        )
        extension = get_machine_type_extension(cloud_profile_config, machine_type.name)
        if extension is not None and extension.limits is not None:
            resources.limits = {"cpu": extension.limits.cpu, "memory": extension.limits.memory}

        root_volume_class_name, root_volume_size = self._resolve_root_volume(pool, machine_type)

        additional_volumes = []
        for volume in pool.data_volumes:
            storage_class_name, size = get_storage_class_name_and_size(
                self.cluster.cloud_profile.spec.volume_types, volume.type, volume.size
            )
            additional_volumes.append(
                AdditionalVolume(
                    name=volume.name,
                    data_volume=build_data_volume_spec_with_blank_source(storage_class_name, size),
                )
            )

        try:
            max_surges = [
                distribute_positive_int_or_percent(i, pool.max_surge, zone_count, pool.maximum, round_up=True)
                for i in range(zone_count)
            ]
            max_unavailables = [
                distribute_positive_int_or_percent(i, pool.max_unavailable, zone_count, pool.minimum, round_up=False)
                for i in range(zone_count)
            ]
        except ValueError as e:
            raise PreconditionError(str(e)) from e

        machine_configuration = read_machine_configuration(pool)

        for zone_index, zone in enumerate(pool.zones):
            deployment_name = f"{self.worker.namespace}-{pool.name}-z{zone_index + 1}"
            class_name = f"{deployment_name}-{pool_hash}"

            if not worker_config.disable_pre_allocated_data_volumes:
                root_volume = build_data_volume_spec_with_pvc_source(
                    root_volume_class_name, root_volume_size, namespace, class_name
                )
                result.machine_class_volumes[class_name] = build_data_volume_spec_with_http_source(
                    root_volume_class_name, root_volume_size, image_source_url
                )
            else:
                root_volume = build_data_volume_spec_with_http_source(
                    root_volume_class_name, root_volume_size, image_source_url
                )

            result.machine_classes.append(
                MachineClass(
                    name=class_name,
                    region=self.worker.spec.region,
                    zone=zone,
                    resources=resources,
                    devices=worker_config.devices,
                    root_volume=root_volume,
                    additional_volumes=additional_volumes,
                    ssh_keys=[self.worker.spec.ssh_public_key],
                    networks=networks,
                    cpu=worker_config.cpu,
                    memory=worker_config.memory,
                    dns_policy=worker_config.dns_policy,
                    dns_config=worker_config.dns_config,
                    tags={
                        "mcm.gardener.cloud/cluster": self.worker.namespace,
                        "mcm.gardener.cloud/role": "node",
                        "mcm.gardener.cloud/machineclass": class_name,
                    },
                    secret=MachineClassSecret(cloud_config=pool.user_data, kubeconfig=kubeconfig.decode("utf-8")),
                )
            )

            result.machine_deployments.append(
                MachineDeployment(
                    name=deployment_name,
                    class_name=class_name,
                    secret_name=class_name,
                    minimum=distribute_over_zones(zone_index, pool.minimum, zone_count),
                    maximum=distribute_over_zones(zone_index, pool.maximum, zone_count),
                    max_surge=max_surges[zone_index],
                    max_unavailable=max_unavailables[zone_index],
                    labels=pool.labels,
                    annotations=pool.annotations,
                    taints=pool.taints,
                    machine_configuration=machine_configuration,
                )
            )
            logger.info(" -> Machine class '%s' for pool '%s' in zone '%s'", class_name, pool.name, zone)

    def machine_images_status(self, result: GenerationResult) -> dict:
        """Returns the versioned WorkerStatus recording the images used by `result`."""
        return self.scheme.convert_to_versioned(WorkerStatus(machine_images=result.machine_images))

    async def deploy_machine_classes(self, result: GenerationResult) -> None:
        """
        Hands a generation result to the delivery collaborators: the machine
        class chart first, then one data volume per pre-allocated root volume.
        """
        if self.chart_applier is None or self.data_volume_manager is None:
            raise PreconditionError("a chart applier and a data volume manager are required to deploy machine classes")

        values = {"machineClasses": [machine_class.to_dict() for machine_class in result.machine_classes]}
        try:
            await self.chart_applier.apply(
                config.MACHINE_CLASS_CHART_PATH, self.worker.namespace, MACHINE_CLASS_RELEASE_NAME, values
            )
        except Exception as e:
            raise VirtKubeError(f"could not apply machine-class chart: {e}") from e

        kubeconfig = await self._get_kubeconfig()
        labels = {config.CLUSTER_LABEL: self.worker.namespace}
        for name, spec in result.machine_class_volumes.items():
            try:
                await self.data_volume_manager.create_or_update_data_volume(kubeconfig, name, labels, spec)
            except Exception as e:
                raise VirtKubeError(f"could not create or update data volume {name!r}: {e}") from e
            logger.debug("Data volume '%s' created or updated.", name)
