# tests/conftest.py

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from virtkube.core.scheme import Decoder, build_scheme
from virtkube.models.base import flatten_object_metadata
from virtkube.models.cloud_profile import CloudProfile
from virtkube.models.shoot import Cluster, Secret, SecretBinding, Shoot
from virtkube.models.worker import Worker
from virtkube.worker.machines import MachineConfigGenerator

PROVIDER_API = "kubevirt.provider.extensions.gardener.cloud/v1alpha1"

KUBECONFIG = b"""apiVersion: v1
kind: Config
current-context: provider
contexts:
- name: provider
  context:
    cluster: provider
    user: admin
    namespace: shoot--dev--kv
clusters:
- name: provider
  cluster:
    server: https://kubevirt.example.com
users:
- name: admin
  user:
    token: abc
"""

IMAGE_URL = "https://images.example.com/ubuntu-22.04.img"


@pytest.fixture(autouse=True)
def mock_settings_env_vars(monkeypatch):
    """
    Pytest fixture to mock environment variables for the config module.

    This fixture runs automatically for every test (`autouse=True`), so the
    properties read at call time are predictable and isolated from the
    actual environment.
    """
    monkeypatch.setenv("POOL_HASH_LENGTH", "5")
    monkeypatch.setenv("LOG_LEVEL", "INFO")


@pytest.fixture
def kubeconfig():
    return KUBECONFIG


@pytest.fixture
def cloud_profile_manifest():
    return {
        "apiVersion": "core.gardener.cloud/v1beta1",
        "kind": "CloudProfile",
        "metadata": {"name": "kubevirt"},
        "spec": {
            "type": "kubevirt",
            "machineTypes": [
                {"name": "standard-2", "cpu": "2", "memory": "4Gi"},
                {"name": "standard-4", "cpu": "4", "memory": "8Gi"},
                {"name": "local-2", "cpu": "2", "memory": "4Gi", "storage": {"class": "local", "size": "20Gi"}},
            ],
            "volumeTypes": [
                {"name": "default", "class": "standard"},
                {"name": "fast", "class": "ssd"},
            ],
            "machineImages": [{"name": "ubuntu", "versions": [{"version": "22.04"}]}],
            "providerConfig": {
                "apiVersion": PROVIDER_API,
                "kind": "CloudProfileConfig",
                "machineImages": [{"name": "ubuntu", "versions": [{"version": "22.04", "sourceURL": IMAGE_URL}]}],
                "machineTypes": [{"name": "standard-2", "limits": {"cpu": "4", "memory": "8Gi"}}],
            },
        },
    }


@pytest.fixture
def shoot_manifest():
    return {
        "apiVersion": "core.gardener.cloud/v1beta1",
        "kind": "Shoot",
        "metadata": {"name": "kv", "namespace": "garden-dev"},
        "spec": {
            "cloudProfileName": "kubevirt",
            "secretBindingName": "kv-secret",
            "region": "local",
            "kubernetes": {"version": "1.28.2"},
            "networking": {"type": "calico", "nodes": "10.250.0.0/16"},
            "provider": {
                "type": "kubevirt",
                "infrastructureConfig": {
                    "apiVersion": PROVIDER_API,
                    "kind": "InfrastructureConfig",
                    "networks": {"tenantNetworks": [{"name": "net", "config": '{"cniVersion": "0.4.0"}', "default": True}]},
                },
                "workers": [
                    {
                        "name": "cpu-worker",
                        "machine": {"type": "standard-2", "image": {"name": "ubuntu", "version": "22.04"}},
                        "minimum": 3,
                        "maximum": 6,
                        "maxSurge": "50%",
                        "maxUnavailable": 0,
                        "zones": ["zone-a", "zone-b"],
                        "volume": {"type": "default", "size": "20Gi"},
                        "dataVolumes": [{"name": "data", "type": "fast", "size": "10Gi"}],
                        "providerConfig": {
                            "apiVersion": PROVIDER_API,
                            "kind": "WorkerConfig",
                            "devices": {"disks": [{"name": "data"}]},
                        },
                    }
                ],
            },
        },
    }


@pytest.fixture
def worker_manifest():
    return {
        "apiVersion": "extensions.gardener.cloud/v1alpha1",
        "kind": "Worker",
        "metadata": {"name": "kv", "namespace": "shoot--dev--kv"},
        "spec": {
            "region": "local",
            "secretRef": {"name": "cloudprovider", "namespace": "shoot--dev--kv"},
            "sshPublicKey": "ssh-rsa AAAAB3Nza",
            "infrastructureProviderStatus": {
                "apiVersion": PROVIDER_API,
                "kind": "InfrastructureStatus",
                "networks": [{"name": "shoot--dev--kv/net", "default": True, "sha": "abc123"}],
            },
            "pools": [
                {
                    "name": "cpu-worker",
                    "machineType": "standard-2",
                    "machineImage": {"name": "ubuntu", "version": "22.04"},
                    "minimum": 3,
                    "maximum": 6,
                    "maxSurge": "50%",
                    "maxUnavailable": 0,
                    "zones": ["zone-a", "zone-b"],
                    "volume": {"type": "default", "size": "20Gi"},
                    "dataVolumes": [{"name": "data", "type": "fast", "size": "10Gi"}],
                    "labels": {"pool": "cpu-worker"},
                    "userData": "#cloud-config",
                }
            ],
        },
    }


@pytest.fixture
def secret_binding_manifest():
    return {
        "apiVersion": "core.gardener.cloud/v1beta1",
        "kind": "SecretBinding",
        "metadata": {"name": "kv-secret", "namespace": "garden-dev"},
        "secretRef": {"name": "kv-credentials", "namespace": "garden-dev"},
    }


@pytest.fixture
def secret_manifest():
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "kv-credentials", "namespace": "garden-dev"},
        "data": {"kubeconfig": base64.b64encode(KUBECONFIG).decode("ascii")},
    }


@pytest.fixture
def cloud_profile(cloud_profile_manifest):
    return CloudProfile.model_validate(flatten_object_metadata(cloud_profile_manifest))


@pytest.fixture
def shoot(shoot_manifest):
    return Shoot.model_validate(flatten_object_metadata(shoot_manifest))


@pytest.fixture
def cluster(cloud_profile, shoot):
    return Cluster(cloud_profile=cloud_profile, shoot=shoot)


@pytest.fixture
def worker(worker_manifest):
    return Worker.model_validate(flatten_object_metadata(worker_manifest))


@pytest.fixture
def secret_binding(secret_binding_manifest):
    return SecretBinding.model_validate(flatten_object_metadata(secret_binding_manifest))


@pytest.fixture
def secret(secret_manifest):
    return Secret.model_validate(flatten_object_metadata(secret_manifest))


@pytest.fixture
def scheme():
    return build_scheme()


@pytest.fixture
def decoder(scheme):
    return Decoder(scheme, strict=True)


@pytest.fixture
def lenient_decoder(scheme):
    return Decoder(scheme, strict=False)


@pytest.fixture
def credential_fetcher():
    fetcher = MagicMock()
    fetcher.get_kubeconfig = AsyncMock(return_value=KUBECONFIG)
    fetcher.close = AsyncMock()
    return fetcher


@pytest.fixture
def make_generator(credential_fetcher, scheme, decoder):
    """Returns a factory building a generator for a worker/cluster pair."""

    def _make(worker, cluster, **kwargs):
        return MachineConfigGenerator(
            worker=worker,
            cluster=cluster,
            credential_fetcher=credential_fetcher,
            scheme=scheme,
            decoder=decoder,
            **kwargs,
        )

    return _make
