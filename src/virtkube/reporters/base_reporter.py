# src/virtkube/reporters/base_reporter.py
"""
Defines the abstract base class for all reporters.
"""
from abc import ABC, abstractmethod

from ..models.machines import GenerationResult


class BaseReporter(ABC):
    """
    Abstract Base Class for all reporters.
    """

    @abstractmethod
    def report(self, result: GenerationResult):
        """
        Presents a generation result in a specific format.
        """
        pass
