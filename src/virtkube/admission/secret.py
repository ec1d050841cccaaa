# src/virtkube/admission/secret.py

import logging
from typing import Optional

from ..core.config import config
from ..models.shoot import Secret
from .base import ObjectReader
from .validation import validate_cloud_provider_secret

logger = logging.getLogger(__name__)


class SecretValidator:
    """
    Checks that a secret used by a KubeVirt shoot carries a usable kubeconfig.
    Unchanged secrets and secrets not used by any KubeVirt shoot are accepted as is.
    """

    def __init__(self, reader: ObjectReader):
        self.reader = reader

    async def validate(self, new: Secret, old: Optional[Secret] = None) -> None:
        if old is not None and new.data == old.data:
            return

        in_use = await self.reader.is_secret_in_use_by_shoot(new, config.PROVIDER_TYPE)
        if not in_use:
            logger.debug("Secret '%s/%s' is not used by a %s shoot.", new.namespace, new.name, config.PROVIDER_TYPE)
            return

        validate_cloud_provider_secret(new).raise_if_any()
