from functools import partial

# --- Import the components of this plugin ---
from .connector import PostgresConnector
from .metric_engine import MetricEngine
from .metrics import build_registry

# --- Import the base class it must implement ---
from plugins.base import BasePlugin


class PostgresPlugin(BasePlugin):
    """The PostgreSQL implementation of the plugin interface."""

    @property
    def technology_name(self):
        return "postgres"

    @property
    def key_prefix(self):
        return "pg."

    def get_connector(self, settings):
        """Returns an instance of the PostgreSQL connector."""
        return PostgresConnector(settings)

    def get_metric_registry(self):
        return build_registry()

    def get_engine(self, settings):
        """
        Returns a MetricEngine that opens a fresh PostgresConnector for
        every request it resolves.
        """
        return MetricEngine(self.get_metric_registry(), partial(self.get_connector, settings))
