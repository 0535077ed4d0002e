from abc import ABC, abstractmethod


class BasePlugin(ABC):
    """Abstract base class for all database technology plugins."""

    @property
    @abstractmethod
    def technology_name(self):
        """A lowercase, URL-friendly name for the technology (e.g., 'postgres')."""
        pass

    @property
    def key_prefix(self):
        """Prefix shared by all metric keys of this plugin (e.g., 'pg.')."""
        return f"{self.technology_name}."

    @abstractmethod
    def get_connector(self, settings):
        """Returns a new, unconnected instance of the technology-specific connector."""
        pass

    @abstractmethod
    def get_metric_registry(self) -> dict:
        """Returns a dict of metric key to MetricDefinition."""
        pass

    @abstractmethod
    def get_engine(self, settings):
        """Returns a metric engine bound to the given connection settings."""
        pass

    def supports_key(self, key) -> bool:
        return key.startswith(self.key_prefix)
