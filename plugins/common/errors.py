"""
Exception hierarchy for metric resolution.

Every failure that can end a metric invocation derives from MetricError,
so the dispatch layer can turn any of them into a failure result with a
human-readable message.
"""


class MetricError(Exception):
    """Base exception for all metric resolution errors."""
    pass


class ConnectionFailedError(MetricError):
    """Raised when a database connection cannot be established."""
    pass


class QueryExecutionError(MetricError):
    """Raised when the database rejects a query."""

    def __init__(self, message, query=None):
        super().__init__(message)
        self.query = query


class NoResultsError(MetricError):
    """Raised when a scalar lookup returns zero rows."""

    def __init__(self, query):
        super().__init__(f"No results returned for query: {query}")
        self.query = query


class InvalidParameterError(MetricError):
    """Raised when a request parameter is missing or has an invalid value."""

    def __init__(self, message, parameter=None, value=None):
        super().__init__(message)
        self.parameter = parameter
        self.value = value


class UnknownMetricError(MetricError):
    """Raised when no metric is registered under the requested key."""

    def __init__(self, key):
        super().__init__(f"Unsupported metric key: {key}")
        self.key = key


class ValueCoercionError(MetricError):
    """Raised when a returned value cannot be converted to the output type."""
    pass
