import asyncio
import logging
import typing
from abc import ABC, abstractmethod
from pathlib import Path

from kubernetes_asyncio import client, config
from kubernetes_asyncio.client.rest import ApiException
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..models.shoot import Secret
from ..models.worker import SecretReference
from .config import config as app_config
from .exceptions import DecodeError, NotFoundError

logger = logging.getLogger(__name__)

# Global lock to prevent race conditions during config loading
_CONFIG_LOCK = asyncio.Lock()
_CONFIG_LOADED = False


async def ensure_k8s_config() -> bool:
    """
    Ensures that the Kubernetes configuration of the seed cluster is loaded exactly once.

    Returns:
        bool: True if config was loaded successfully (or was already loaded), False otherwise.
    """
    global _CONFIG_LOADED

    if _CONFIG_LOADED:
        return True

    async with _CONFIG_LOCK:
        # Double-check locking pattern
        if _CONFIG_LOADED:
            return True

        try:
            logger.debug("Attempting to load in-cluster Kubernetes config...")
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration.")
            _CONFIG_LOADED = True
            return True
        except config.ConfigException:
            logger.debug("In-cluster config not found.")

        try:
            logger.debug("Attempting to load local kubeconfig...")
            await config.load_kube_config()
            logger.info("Loaded Kubernetes configuration from kubeconfig file.")
            _CONFIG_LOADED = True
            return True
        except config.ConfigException:
            logger.warning("Could not find kubeconfig file.")

    logger.warning("Failed to load any Kubernetes configuration.")
    return False


async def get_core_v1_api() -> typing.Optional[client.CoreV1Api]:
    """
    Returns a configured CoreV1Api instance.
    Safe to call concurrently.
    """
    if await ensure_k8s_config():
        return client.CoreV1Api()
    return None


async def get_custom_objects_api() -> typing.Optional[client.CustomObjectsApi]:
    if await ensure_k8s_config():
        return client.CustomObjectsApi()
    return None


def load_kubeconfig(kubeconfig: bytes) -> dict:
    """
    Parses a kubeconfig and checks that its current context exists.

    Raises:
        DecodeError: If the kubeconfig is not valid YAML or has no usable current context.
    """
    try:
        data = YAML(typ="safe").load(kubeconfig.decode("utf-8"))
    except (YAMLError, UnicodeDecodeError) as e:
        raise DecodeError(f"could not parse kubeconfig: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError("kubeconfig is not a YAML object")

    current = data.get("current-context")
    if not current:
        raise DecodeError("kubeconfig has no current-context")
    for entry in data.get("contexts") or []:
        if isinstance(entry, dict) and entry.get("name") == current:
            return data
    raise DecodeError(f"kubeconfig current-context {current!r} is not defined")


def get_kubeconfig_namespace(kubeconfig: bytes) -> str:
    """Returns the namespace of the kubeconfig's current context ('default' when unset)."""
    data = load_kubeconfig(kubeconfig)
    current = data["current-context"]
    for entry in data.get("contexts") or []:
        if entry.get("name") == current:
            context = entry.get("context") or {}
            return context.get("namespace") or "default"
    return "default"


class CredentialFetcher(ABC):
    """Fetches the kubeconfig of the provider (KubeVirt) cluster."""

    @abstractmethod
    async def get_kubeconfig(self, secret_ref: SecretReference) -> bytes:
        """
        Returns the raw kubeconfig referenced by `secret_ref`.

        Raises:
            NotFoundError: If the secret or its kubeconfig entry does not exist.
        """
        pass

    async def close(self):
        """
        Clean up resources (e.g., close API clients).
        """
        pass


class KubernetesSecretCredentialFetcher(CredentialFetcher):
    """Reads the kubeconfig from a secret in the seed cluster."""

    def __init__(self, api: typing.Optional[client.CoreV1Api] = None):
        self._api = api

    async def _ensure_client(self):
        if self._api:
            return self._api
        self._api = await get_core_v1_api()
        return self._api

    async def get_kubeconfig(self, secret_ref: SecretReference) -> bytes:
        api = await self._ensure_client()
        if not api:
            raise NotFoundError("Kubernetes client not configured; cannot read worker secret")

        try:
            v1_secret = await api.read_namespaced_secret(secret_ref.name, secret_ref.namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(f"secret '{secret_ref.namespace}/{secret_ref.name}' not found") from e
            raise

        secret = Secret(name=secret_ref.name, namespace=secret_ref.namespace, data=v1_secret.data or {})
        kubeconfig = secret.decoded(app_config.KUBECONFIG_SECRET_KEY)
        if not kubeconfig:
            raise NotFoundError(
                f"missing {app_config.KUBECONFIG_SECRET_KEY!r} field in secret '{secret_ref.namespace}/{secret_ref.name}'"
            )
        return kubeconfig

    async def close(self):
        """Close the Kubernetes API client if it exists."""
        if self._api:
            await self._api.api_client.close()
            self._api = None


class FileCredentialFetcher(CredentialFetcher):
    """Serves a kubeconfig from a local file, regardless of the secret reference."""

    def __init__(self, path: typing.Union[str, Path]):
        self.path = Path(path)

    async def get_kubeconfig(self, secret_ref: SecretReference) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"kubeconfig file {self.path} not found") from e
