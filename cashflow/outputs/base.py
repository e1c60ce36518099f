# cashflow/outputs/base.py
from abc import ABC, abstractmethod

class BaseOutput(ABC):
    @abstractmethod
    def write(self, projection):
        """Write a Projection to the chosen sink and return the path written."""
        pass
