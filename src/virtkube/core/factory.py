# src/virtkube/core/factory.py
"""
Factory functions to instantiate core components: the provider scheme, its
decoders, the machine config generator and the admission validators.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from ..admission.base import ObjectReader
from ..admission.cloudprofile import CloudProfileValidator
from ..admission.secret import SecretValidator
from ..admission.shoot import ShootValidator
from ..models.shoot import Cluster
from ..models.worker import Worker
from ..worker.machines import MachineConfigGenerator
from .k8s_client import CredentialFetcher, FileCredentialFetcher, KubernetesSecretCredentialFetcher
from .scheme import Decoder, Scheme, build_scheme

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_scheme() -> Scheme:
    """
    Builds the provider scheme once.
    Uses lru_cache to act as a singleton; the scheme is read-only afterwards.
    """
    logger.debug("Building provider scheme.")
    return build_scheme()


@lru_cache(maxsize=2)
def get_decoder(strict: bool = True) -> Decoder:
    return Decoder(get_scheme(), strict=strict)


def get_credential_fetcher(kubeconfig_path: Optional[Union[str, Path]] = None) -> CredentialFetcher:
    if kubeconfig_path:
        logger.info("Using provider kubeconfig from %s.", kubeconfig_path)
        return FileCredentialFetcher(kubeconfig_path)
    return KubernetesSecretCredentialFetcher()


def get_machine_config_generator(
    worker: Worker, cluster: Cluster, kubeconfig_path: Optional[Union[str, Path]] = None
) -> MachineConfigGenerator:
    """Instantiates a generator for one worker, wired with the shared scheme and strict decoder."""
    return MachineConfigGenerator(
        worker=worker,
        cluster=cluster,
        credential_fetcher=get_credential_fetcher(kubeconfig_path),
        scheme=get_scheme(),
        decoder=get_decoder(strict=True),
    )


def get_shoot_validator(reader: ObjectReader) -> ShootValidator:
    return ShootValidator(reader, decoder=get_decoder(strict=True), lenient_decoder=get_decoder(strict=False))


def get_cloud_profile_validator() -> CloudProfileValidator:
    return CloudProfileValidator(decoder=get_decoder(strict=False))


def get_secret_validator(reader: ObjectReader) -> SecretValidator:
    return SecretValidator(reader)
