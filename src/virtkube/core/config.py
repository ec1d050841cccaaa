# src/virtkube/core/config.py

import logging
import os

from dotenv import load_dotenv

# Load environment variables from a .env file located in the project root
dotenv_path = os.path.join(os.path.dirname(__file__), "..", "..", "..", ".env")
load_dotenv(dotenv_path=dotenv_path)

VALID_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Config:
    """
    Handles the application's configuration by loading values from environment variables.
    """

    # --- Logging variables ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # --- Provider variables ---
    PROVIDER_TYPE = os.getenv("PROVIDER_TYPE", "kubevirt")
    PROVIDER_API_GROUP = "kubevirt.provider.extensions.gardener.cloud"
    PROVIDER_API_VERSION = "v1alpha1"

    # Key holding the provider cluster kubeconfig inside the worker's cloud provider secret
    KUBECONFIG_SECRET_KEY = os.getenv("KUBECONFIG_SECRET_KEY", "kubeconfig")

    # Label put on every machine class data volume to associate it with its shoot
    CLUSTER_LABEL = os.getenv("CLUSTER_LABEL", "kubevirt.provider.extensions.gardener.cloud/cluster")

    MACHINE_CLASS_CHART_PATH = os.getenv("MACHINE_CLASS_CHART_PATH", os.path.join("charts", "internal", "machine-class"))
    DEFAULT_VOLUME_ACCESS_MODE = os.getenv("DEFAULT_VOLUME_ACCESS_MODE", "ReadWriteOnce")

    # --- Telemetry variables ---
    OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")

    # POOL_HASH_LENGTH is a property so tests can change it through the
    # environment after import.
    @property
    def POOL_HASH_LENGTH(self) -> int:
        return int(os.getenv("POOL_HASH_LENGTH", "5"))

    @property
    def PROVIDER_API(self) -> str:
        return f"{self.PROVIDER_API_GROUP}/{self.PROVIDER_API_VERSION}"

    def validate_instance(self):
        if self.LOG_LEVEL.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}")
        if self.POOL_HASH_LENGTH <= 0 or self.POOL_HASH_LENGTH > 64:
            raise ValueError("POOL_HASH_LENGTH must be between 1 and 64.")
        if not self.KUBECONFIG_SECRET_KEY:
            raise ValueError("KUBECONFIG_SECRET_KEY must not be empty.")
        if self.DEFAULT_VOLUME_ACCESS_MODE not in ("ReadWriteOnce", "ReadWriteMany", "ReadOnlyMany"):
            logging.getLogger(__name__).warning(
                "Unusual DEFAULT_VOLUME_ACCESS_MODE '%s'; data volumes may not bind.",
                self.DEFAULT_VOLUME_ACCESS_MODE,
            )


# Instantiate the config to be imported by other modules
config = Config()
config.validate_instance()
