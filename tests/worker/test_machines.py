# tests/worker/test_machines.py
"""
Tests for the MachineConfigGenerator: per-zone expansion, naming, volumes,
scaling bounds and the error paths of a generation run.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from virtkube.core.exceptions import DecodeError, NotFoundError, PreconditionError
from virtkube.models.base import RawExtension
from virtkube.models.cloud_profile import MachineTypeStorage
from virtkube.models.worker import MachineControllerManagerSettings
from virtkube.worker.hashing import worker_pool_hash
from virtkube.worker.machines import MACHINE_CLASS_RELEASE_NAME, networks_hash_data, read_machine_configuration

PROVIDER_API = "kubevirt.provider.extensions.gardener.cloud/v1alpha1"
IMAGE_URL = "https://images.example.com/ubuntu-22.04.img"


def _set_pool(worker, **changes):
    worker.spec.pools[0] = worker.spec.pools[0].model_copy(update=changes)


@pytest.mark.asyncio
async def test_generate_expands_pool_per_zone(worker, cluster, make_generator):
    result = await make_generator(worker, cluster).generate()

    pool_hash = worker_pool_hash(worker.spec.pools[0], cluster, "shoot--dev--kv/net", "true", "abc123")
    assert [c.name for c in result.machine_classes] == [
        f"shoot--dev--kv-cpu-worker-z1-{pool_hash}",
        f"shoot--dev--kv-cpu-worker-z2-{pool_hash}",
    ]
    assert [c.zone for c in result.machine_classes] == ["zone-a", "zone-b"]
    assert [d.name for d in result.machine_deployments] == [
        "shoot--dev--kv-cpu-worker-z1",
        "shoot--dev--kv-cpu-worker-z2",
    ]
    for deployment, machine_class in zip(result.machine_deployments, result.machine_classes):
        assert deployment.class_name == machine_class.name
        assert deployment.secret_name == machine_class.name
        assert deployment.labels == {"pool": "cpu-worker"}


@pytest.mark.asyncio
async def test_generate_distributes_scaling_bounds(worker, cluster, make_generator):
    result = await make_generator(worker, cluster).generate()

    deployments = result.machine_deployments
    assert [d.minimum for d in deployments] == [2, 1]
    assert [d.maximum for d in deployments] == [3, 3]
    # 50% of maximum 6 resolves to 3 before being distributed
    assert [d.max_surge for d in deployments] == [2, 1]
    assert [d.max_unavailable for d in deployments] == [0, 0]


@pytest.mark.asyncio
async def test_generate_machine_class_contents(worker, cluster, make_generator, kubeconfig):
    result = await make_generator(worker, cluster).generate()
    machine_class = result.machine_classes[0]

    assert machine_class.region == "local"
    assert machine_class.resources.requests == {"cpu": "2", "memory": "4Gi"}
    assert machine_class.resources.limits == {"cpu": "4", "memory": "8Gi"}
    assert machine_class.ssh_keys == ["ssh-rsa AAAAB3Nza"]
    assert machine_class.networks == [{"name": "shoot--dev--kv/net", "default": True, "sha": "abc123"}]
    assert machine_class.secret.cloud_config == "#cloud-config"
    assert machine_class.secret.kubeconfig == kubeconfig.decode("utf-8")
    assert machine_class.tags["mcm.gardener.cloud/machineclass"] == machine_class.name
    assert machine_class.tags["mcm.gardener.cloud/cluster"] == "shoot--dev--kv"

    [data_volume] = machine_class.additional_volumes
    assert data_volume.name == "data"
    assert data_volume.data_volume.source.blank is not None
    assert data_volume.data_volume.pvc.storage_class_name == "ssd"


@pytest.mark.asyncio
async def test_generate_pre_allocates_root_volumes(worker, cluster, make_generator):
    result = await make_generator(worker, cluster).generate()

    assert set(result.machine_class_volumes) == {c.name for c in result.machine_classes}
    for machine_class in result.machine_classes:
        root = machine_class.root_volume
        assert root.source.pvc.namespace == "shoot--dev--kv"
        assert root.source.pvc.name == machine_class.name
        assert root.pvc.storage_class_name == "standard"
        assert root.pvc.resources.requests == {"storage": "20Gi"}

        companion = result.machine_class_volumes[machine_class.name]
        assert companion.source.http.url == IMAGE_URL
        assert companion.pvc.resources.requests == {"storage": "20Gi"}


@pytest.mark.asyncio
async def test_generate_without_pre_allocation(worker, cluster, make_generator):
    _set_pool(
        worker,
        provider_config=RawExtension.model_validate(
            {"apiVersion": PROVIDER_API, "kind": "WorkerConfig", "disablePreAllocatedDataVolumes": True}
        ),
    )
    result = await make_generator(worker, cluster).generate()

    assert result.machine_class_volumes == {}
    for machine_class in result.machine_classes:
        assert machine_class.root_volume.source.http.url == IMAGE_URL


@pytest.mark.asyncio
async def test_generate_deduplicates_machine_images(worker, cluster, make_generator):
    second = worker.spec.pools[0].model_copy(update={"name": "other", "zones": ["zone-c"]})
    worker.spec.pools.append(second)

    result = await make_generator(worker, cluster).generate()

    assert len(result.machine_classes) == 3
    assert [(i.name, i.version, i.source_url) for i in result.machine_images] == [("ubuntu", "22.04", IMAGE_URL)]


@pytest.mark.asyncio
async def test_generate_is_repeatable(worker, cluster, make_generator):
    generator = make_generator(worker, cluster)
    first = await generator.generate()
    second = await generator.generate()
    assert first == second


@pytest.mark.asyncio
async def test_generate_uses_machine_type_storage_without_volume(worker, cluster, make_generator):
    _set_pool(worker, machine_type="local-2", volume=None)
    result = await make_generator(worker, cluster).generate()

    root = result.machine_classes[0].root_volume
    assert root.pvc.storage_class_name == "local"
    assert root.pvc.resources.requests == {"storage": "20Gi"}


@pytest.mark.asyncio
async def test_generate_requires_a_root_volume(worker, cluster, make_generator):
    _set_pool(worker, volume=None)
    with pytest.raises(PreconditionError, match="cpu-worker"):
        await make_generator(worker, cluster).generate()


@pytest.mark.asyncio
async def test_generate_storage_without_size_is_not_enough(worker, cluster, make_generator):
    cluster.cloud_profile.spec.machine_types[2].storage = MachineTypeStorage(storage_class="local")
    _set_pool(worker, machine_type="local-2", volume=None)
    with pytest.raises(PreconditionError):
        await make_generator(worker, cluster).generate()


@pytest.mark.asyncio
async def test_generate_requires_ssh_key(worker, cluster, make_generator):
    worker.spec.ssh_public_key = ""
    with pytest.raises(PreconditionError, match="sshPublicKey"):
        await make_generator(worker, cluster).generate()


@pytest.mark.asyncio
async def test_generate_unknown_machine_type(worker, cluster, make_generator):
    _set_pool(worker, machine_type="huge")
    with pytest.raises(NotFoundError) as exc_info:
        await make_generator(worker, cluster).generate()
    assert "huge" in str(exc_info.value)
    assert "cpu-worker" in str(exc_info.value)


@pytest.mark.asyncio
async def test_generate_unknown_image(worker, cluster, make_generator):
    _set_pool(worker, machine_image=worker.spec.pools[0].machine_image.model_copy(update={"version": "24.04"}))
    with pytest.raises(NotFoundError, match="24.04"):
        await make_generator(worker, cluster).generate()


@pytest.mark.asyncio
async def test_generate_image_from_worker_status(worker, cluster, make_generator):
    _set_pool(worker, machine_image=worker.spec.pools[0].machine_image.model_copy(update={"version": "20.04"}))
    worker.status.provider_status = RawExtension.model_validate(
        {
            "apiVersion": PROVIDER_API,
            "kind": "WorkerStatus",
            "machineImages": [{"name": "ubuntu", "version": "20.04", "sourceURL": "https://old/20.04.img"}],
        }
    )
    result = await make_generator(worker, cluster).generate()
    assert result.machine_images[0].source_url == "https://old/20.04.img"


@pytest.mark.asyncio
async def test_generate_rejects_unknown_worker_config_fields(worker, cluster, make_generator):
    _set_pool(
        worker,
        provider_config=RawExtension.model_validate(
            {"apiVersion": PROVIDER_API, "kind": "WorkerConfig", "cpu": {"cores": 2, "turbo": True}}
        ),
    )
    with pytest.raises(DecodeError, match="turbo"):
        await make_generator(worker, cluster).generate()


@pytest.mark.asyncio
async def test_generate_rejects_empty_kubeconfig(worker, cluster, make_generator, credential_fetcher):
    credential_fetcher.get_kubeconfig.return_value = b""
    with pytest.raises(PreconditionError, match="empty kubeconfig"):
        await make_generator(worker, cluster).generate()


@pytest.mark.asyncio
async def test_generate_propagates_missing_credentials(worker, cluster, make_generator, credential_fetcher):
    credential_fetcher.get_kubeconfig.side_effect = NotFoundError("secret 'shoot--dev--kv/cloudprovider' not found")
    with pytest.raises(NotFoundError):
        await make_generator(worker, cluster).generate()


@pytest.mark.asyncio
async def test_generate_rejects_bad_percentage(worker, cluster, make_generator):
    _set_pool(worker, max_surge="lots")
    with pytest.raises(PreconditionError, match="cpu-worker"):
        await make_generator(worker, cluster).generate()


@pytest.mark.asyncio
async def test_machine_images_status(worker, cluster, make_generator):
    generator = make_generator(worker, cluster)
    result = await generator.generate()

    status = generator.machine_images_status(result)
    assert status["apiVersion"] == PROVIDER_API
    assert status["kind"] == "WorkerStatus"
    assert status["machineImages"] == [{"name": "ubuntu", "version": "22.04", "sourceURL": IMAGE_URL}]


@pytest.mark.asyncio
async def test_deploy_machine_classes(worker, cluster, make_generator, kubeconfig):
    chart_applier = MagicMock()
    chart_applier.apply = AsyncMock()
    data_volume_manager = MagicMock()
    data_volume_manager.create_or_update_data_volume = AsyncMock()

    generator = make_generator(worker, cluster, chart_applier=chart_applier, data_volume_manager=data_volume_manager)
    result = await generator.generate()
    await generator.deploy_machine_classes(result)

    chart_applier.apply.assert_awaited_once()
    _, namespace, release_name, values = chart_applier.apply.await_args.args
    assert namespace == "shoot--dev--kv"
    assert release_name == MACHINE_CLASS_RELEASE_NAME
    assert [c["name"] for c in values["machineClasses"]] == [c.name for c in result.machine_classes]

    assert data_volume_manager.create_or_update_data_volume.await_count == 2
    used_kubeconfig, name, labels, spec = data_volume_manager.create_or_update_data_volume.await_args_list[0].args
    assert used_kubeconfig == kubeconfig
    assert name == result.machine_classes[0].name
    assert labels == {"kubevirt.provider.extensions.gardener.cloud/cluster": "shoot--dev--kv"}
    assert spec.source.http.url == IMAGE_URL


@pytest.mark.asyncio
async def test_deploy_machine_classes_requires_collaborators(worker, cluster, make_generator):
    generator = make_generator(worker, cluster)
    result = await generator.generate()
    with pytest.raises(PreconditionError):
        await generator.deploy_machine_classes(result)


def test_networks_hash_data(decoder, worker):
    from virtkube.core.scheme import get_infrastructure_status

    status = get_infrastructure_status(decoder, worker)
    assert networks_hash_data(status) == ["shoot--dev--kv/net", "true", "abc123"]


def test_read_machine_configuration(worker):
    pool = worker.spec.pools[0]
    assert read_machine_configuration(pool) is None

    pool = pool.model_copy(
        update={
            "machine_controller_manager_settings": MachineControllerManagerSettings(
                machine_drain_timeout="10m", max_evict_retries=3
            )
        }
    )
    configuration = read_machine_configuration(pool)
    assert configuration.drain_timeout == "10m"
    assert configuration.max_evict_retries == 3
    assert configuration.node_conditions is None


@pytest.mark.asyncio
async def test_close_closes_credential_fetcher(worker, cluster, make_generator, credential_fetcher):
    generator = make_generator(worker, cluster)
    await generator.close()
    credential_fetcher.close.assert_awaited_once()
