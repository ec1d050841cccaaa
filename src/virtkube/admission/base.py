# src/virtkube/admission/base.py
"""
Read access to the Gardener objects the admission validators cross-reference.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from kubernetes_asyncio import client
from kubernetes_asyncio.client.rest import ApiException
from pydantic import ValidationError

from ..core.exceptions import NotFoundError
from ..core.k8s_client import get_core_v1_api, get_custom_objects_api
from ..models.base import flatten_object_metadata
from ..models.cloud_profile import CloudProfile
from ..models.shoot import Secret, SecretBinding, Shoot

logger = logging.getLogger(__name__)

GARDENER_GROUP = "core.gardener.cloud"
GARDENER_VERSION = "v1beta1"


def _parse_item(model, item: dict):
    """Parses a listed object, returning None for items the model cannot read."""
    try:
        return model.model_validate(flatten_object_metadata(item))
    except ValidationError as e:
        name = (item.get("metadata") or {}).get("name")
        logger.debug("Skipping %s %r that could not be parsed: %s", model.__name__, name, e)
        return None


class ObjectReader(ABC):
    """
    Abstract base class for object readers.
    Every getter raises NotFoundError when the object does not exist.
    """

    @abstractmethod
    async def get_cloud_profile(self, name: str) -> CloudProfile:
        pass

    @abstractmethod
    async def get_secret_binding(self, namespace: str, name: str) -> SecretBinding:
        pass

    @abstractmethod
    async def get_secret(self, namespace: str, name: str) -> Secret:
        pass

    @abstractmethod
    async def is_secret_in_use_by_shoot(self, secret: Secret, provider_type: str) -> bool:
        """
        Returns whether a shoot of `provider_type` uses `secret` through one of
        its secret bindings.
        """
        pass

    async def close(self):
        """
        Clean up resources (e.g., close API clients).
        """
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


class KubernetesObjectReader(ObjectReader):
    """Reads objects from the garden cluster with kubernetes_asyncio."""

    def __init__(
        self,
        core_api: Optional[client.CoreV1Api] = None,
        custom_api: Optional[client.CustomObjectsApi] = None,
    ):
        self._core_api = core_api
        self._custom_api = custom_api

    async def _ensure_clients(self):
        if self._core_api is None:
            self._core_api = await get_core_v1_api()
        if self._custom_api is None:
            self._custom_api = await get_custom_objects_api()
        if self._core_api is None or self._custom_api is None:
            raise NotFoundError("Kubernetes client not configured; cannot read garden objects")

    async def get_cloud_profile(self, name: str) -> CloudProfile:
        await self._ensure_clients()
        try:
            obj = await self._custom_api.get_cluster_custom_object(GARDENER_GROUP, GARDENER_VERSION, "cloudprofiles", name)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(f"cloud profile {name!r} not found") from e
            raise
        return CloudProfile.model_validate(flatten_object_metadata(obj))

    async def get_secret_binding(self, namespace: str, name: str) -> SecretBinding:
        await self._ensure_clients()
        try:
            obj = await self._custom_api.get_namespaced_custom_object(
                GARDENER_GROUP, GARDENER_VERSION, namespace, "secretbindings", name
            )
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(f"secret binding '{namespace}/{name}' not found") from e
            raise
        return SecretBinding.model_validate(flatten_object_metadata(obj))

    async def get_secret(self, namespace: str, name: str) -> Secret:
        await self._ensure_clients()
        try:
            v1_secret = await self._core_api.read_namespaced_secret(name, namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(f"secret '{namespace}/{name}' not found") from e
            raise
        return Secret(name=name, namespace=namespace, data=v1_secret.data or {})

    async def is_secret_in_use_by_shoot(self, secret: Secret, provider_type: str) -> bool:
        await self._ensure_clients()
        bindings = await self._custom_api.list_cluster_custom_object(GARDENER_GROUP, GARDENER_VERSION, "secretbindings")

        for item in bindings.get("items", []):
            binding = _parse_item(SecretBinding, item)
            if binding is None:
                continue
            if binding.secret_ref.name != secret.name or binding.secret_ref.namespace != secret.namespace:
                continue

            shoots = await self._custom_api.list_namespaced_custom_object(
                GARDENER_GROUP, GARDENER_VERSION, binding.namespace, "shoots"
            )
            for shoot_item in shoots.get("items", []):
                shoot = _parse_item(Shoot, shoot_item)
                if shoot is None:
                    continue
                if shoot.spec.secret_binding_name == binding.name and shoot.spec.provider.type == provider_type:
                    logger.debug("Secret '%s/%s' is used by shoot '%s'.", secret.namespace, secret.name, shoot.name)
                    return True
        return False

    async def close(self):
        """Close the Kubernetes API clients if they exist."""
        if self._core_api:
            await self._core_api.api_client.close()
            self._core_api = None
        if self._custom_api:
            await self._custom_api.api_client.close()
            self._custom_api = None


class StaticObjectReader(ObjectReader):
    """Serves objects loaded up front, e.g. from manifests given on the command line."""

    def __init__(
        self,
        cloud_profiles: Optional[List[CloudProfile]] = None,
        secret_bindings: Optional[List[SecretBinding]] = None,
        secrets: Optional[List[Secret]] = None,
        shoots: Optional[List[Shoot]] = None,
    ):
        self.cloud_profiles = {p.name: p for p in cloud_profiles or []}
        self.secret_bindings = {(b.namespace, b.name): b for b in secret_bindings or []}
        self.secrets = {(s.namespace, s.name): s for s in secrets or []}
        self.shoots = list(shoots or [])

    async def get_cloud_profile(self, name: str) -> CloudProfile:
        if name not in self.cloud_profiles:
            raise NotFoundError(f"cloud profile {name!r} not found")
        return self.cloud_profiles[name]

    async def get_secret_binding(self, namespace: str, name: str) -> SecretBinding:
        if (namespace, name) not in self.secret_bindings:
            raise NotFoundError(f"secret binding '{namespace}/{name}' not found")
        return self.secret_bindings[(namespace, name)]

    async def get_secret(self, namespace: str, name: str) -> Secret:
        if (namespace, name) not in self.secrets:
            raise NotFoundError(f"secret '{namespace}/{name}' not found")
        return self.secrets[(namespace, name)]

    async def is_secret_in_use_by_shoot(self, secret: Secret, provider_type: str) -> bool:
        for binding in self.secret_bindings.values():
            if binding.secret_ref.name != secret.name or binding.secret_ref.namespace != secret.namespace:
                continue
            for shoot in self.shoots:
                if (
                    shoot.namespace == binding.namespace
                    and shoot.spec.secret_binding_name == binding.name
                    and shoot.spec.provider.type == provider_type
                ):
                    return True
        return False
