# src/virtkube/worker/base.py
"""
Interfaces of the collaborators that deliver a generation result. Rendering
machine classes into manifests and reconciling data volumes on the provider
cluster are done elsewhere; the generator only depends on these contracts.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..models.machines import DataVolumeSpec


class ChartApplier(ABC):
    """Renders a chart with the given values and applies it to the seed."""

    @abstractmethod
    async def apply(self, chart_path: str, namespace: str, release_name: str, values: Dict[str, Any]) -> None:
        pass


class DataVolumeManager(ABC):
    """Creates or updates data volumes on the provider cluster."""

    @abstractmethod
    async def create_or_update_data_volume(
        self, kubeconfig: bytes, name: str, labels: Dict[str, str], spec: DataVolumeSpec
    ) -> Any:
        pass
