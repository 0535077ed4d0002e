from .index_metrics import get_index_metrics
from .setting_metrics import get_setting_metrics


def build_registry():
    """Returns a dict of metric key to MetricDefinition for PostgreSQL."""
    registry = {}
    for definition in get_index_metrics() + get_setting_metrics():
        if definition.key in registry:
            raise ValueError(f"Duplicate metric key: {definition.key}")
        registry[definition.key] = definition
    return registry
