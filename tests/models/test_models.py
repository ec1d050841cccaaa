# tests/models/test_models.py
import base64

import pytest
from pydantic import ValidationError

from virtkube.models.base import RawExtension, flatten_object_metadata
from virtkube.models.cloud_profile import VolumeType
from virtkube.models.machines import DataVolumeSource, DataVolumeSourceHTTP, DataVolumeSourcePVC
from virtkube.models.shoot import Secret
from virtkube.models.worker import WorkerPool


def test_flatten_object_metadata():
    manifest = {"apiVersion": "v1", "kind": "Secret", "metadata": {"name": "s", "namespace": "ns"}, "data": {}}
    assert flatten_object_metadata(manifest) == {"name": "s", "namespace": "ns", "data": {}}


def test_raw_extension_accepts_embedded_objects():
    ext = RawExtension.model_validate({"kind": "WorkerConfig", "cpu": {"cores": 2}})
    assert ext.raw == b'{"kind":"WorkerConfig","cpu":{"cores":2}}'


def test_raw_extension_accepts_strings_and_bytes():
    assert RawExtension.model_validate("kind: X").raw == b"kind: X"
    assert RawExtension.model_validate(b"{}").raw == b"{}"


def test_raw_extension_serializes_back_to_an_object():
    ext = RawExtension.model_validate({"kind": "WorkerConfig"})
    assert ext.model_dump() == {"kind": "WorkerConfig"}
    assert RawExtension(raw=b"kind: X").model_dump() == "kind: X"


def test_models_use_camel_case_on_the_wire():
    pool = WorkerPool.model_validate(
        {
            "name": "p",
            "machineType": "m",
            "machineImage": {"name": "ubuntu", "version": "1"},
            "maxSurge": "25%",
            "zones": ["a"],
        }
    )
    assert pool.machine_type == "m"
    assert pool.max_surge == "25%"
    assert pool.to_dict()["machineType"] == "m"
    assert "volume" not in pool.to_dict()


def test_worker_pool_requires_a_zone():
    with pytest.raises(ValidationError):
        WorkerPool.model_validate(
            {"name": "p", "machineType": "m", "machineImage": {"name": "u", "version": "1"}, "zones": []}
        )


def test_volume_type_storage_class_alias():
    assert VolumeType.model_validate({"name": "fast", "class": "ssd"}).storage_class == "ssd"


def test_data_volume_source_requires_exactly_one_variant():
    with pytest.raises(ValidationError):
        DataVolumeSource()
    with pytest.raises(ValidationError):
        DataVolumeSource(pvc=DataVolumeSourcePVC(namespace="ns", name="n"), http=DataVolumeSourceHTTP(url="https://x"))


def test_secret_decoded():
    secret = Secret(name="s", data={"good": base64.b64encode(b"value").decode(), "bad": "!!!"})
    assert secret.decoded("good") == b"value"
    assert secret.decoded("bad") is None
    assert secret.decoded("missing") is None
