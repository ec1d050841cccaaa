# src/virtkube/admission/cloudprofile.py

import logging
from typing import Optional

from ..core.config import config
from ..core.exceptions import DecodeError
from ..core.scheme import Decoder, get_cloud_profile_config
from ..models.cloud_profile import CloudProfile
from .field import ErrorList, Path, required
from .validation import validate_cloud_profile_config

logger = logging.getLogger(__name__)

cp_provider_config_path = Path("spec", "providerConfig")


class CloudProfileValidator:
    """Validates the provider config of KubeVirt cloud profiles."""

    def __init__(self, decoder: Decoder):
        self.decoder = decoder

    async def validate(self, new: CloudProfile, old: Optional[CloudProfile] = None) -> None:
        if new.spec.type != config.PROVIDER_TYPE:
            logger.debug("Skipping cloud profile '%s' of type '%s'.", new.name, new.spec.type)
            return

        if new.spec.provider_config is None:
            ErrorList(
                [required(cp_provider_config_path, "providerConfig must be set for KubeVirt cloud profiles")]
            ).raise_if_any()

        try:
            cloud_profile_config = get_cloud_profile_config(self.decoder, new)
        except DecodeError as e:
            raise DecodeError(f"could not decode providerConfig in cloud profile {new.name!r}: {e}") from e

        validate_cloud_profile_config(new.spec, cloud_profile_config, cp_provider_config_path).raise_if_any()
