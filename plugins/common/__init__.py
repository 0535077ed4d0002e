"""
Common components shared across metric plugins.

This package provides:
- The metric error hierarchy (errors)
- Request parameter parsing and validation (parameters)
- Typed scalar results and value coercion (results)
- Low-level discovery payloads (discovery)
"""

from .errors import (
    MetricError,
    ConnectionFailedError,
    QueryExecutionError,
    NoResultsError,
    InvalidParameterError,
    UnknownMetricError,
    ValueCoercionError
)
from .parameters import MetricRequest, ParameterSpec, extract_parameters
from .results import ScalarKind, TypedScalar, coerce_scalar, coerce_by_vartype
from .discovery import DiscoveryPayload, build_discovery_rows, build_wide_discovery_rows

__all__ = [
    # Errors
    'MetricError',
    'ConnectionFailedError',
    'QueryExecutionError',
    'NoResultsError',
    'InvalidParameterError',
    'UnknownMetricError',
    'ValueCoercionError',

    # Parameters
    'MetricRequest',
    'ParameterSpec',
    'extract_parameters',

    # Results
    'ScalarKind',
    'TypedScalar',
    'coerce_scalar',
    'coerce_by_vartype',

    # Discovery
    'DiscoveryPayload',
    'build_discovery_rows',
    'build_wide_discovery_rows'
]
