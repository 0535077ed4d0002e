"""Integration testing framework for pg_metrics."""

from .base import DatabaseContainer, MetricValidator
from .postgres import PostgreSQLContainer, FIXTURE_INDEXES, FIXTURE_SCHEMAS

__all__ = [
    'DatabaseContainer',
    'MetricValidator',
    'PostgreSQLContainer',
    'FIXTURE_INDEXES',
    'FIXTURE_SCHEMAS',
]
