"""
Metric key resolution engine.

Every metric key is declared once as a MetricDefinition: its parameters,
its query template pair (aggregate / filtered), its output kind and the
handler that runs it. MetricEngine looks up the definition, validates the
request parameters, opens one connection, runs the handler and closes the
connection again. Nothing is kept between invocations.
"""

import logging
from typing import Callable, Dict, Optional, Sequence

from plugins.common.errors import InvalidParameterError, MetricError, UnknownMetricError
from plugins.common.parameters import MetricRequest, ParameterSpec, extract_parameters
from plugins.common.results import ScalarKind, TypedScalar, coerce_scalar
from plugins.postgres.utils.qrylib.percentage import get_percentage_query

logger = logging.getLogger(__name__)


class QueryTemplate:
    """
    An aggregate/filtered query pair.

    Args:
        aggregate: Query without placeholders, summing over all entities.
            None for families that have no aggregate.
        filtered: Query with one %s placeholder bound to the filter value.
        filter_parameter: Name of the request parameter holding the filter.
    """

    def __init__(self, aggregate, filtered, filter_parameter):
        self.aggregate = aggregate
        self.filtered = filtered
        self.filter_parameter = filter_parameter


def select_template(template: QueryTemplate, filter_value: Optional[str]):
    """
    Picks the query for a request.

    No filter always means the aggregate across all visible entities; any
    filter value means the filtered query with that value bound.

    Returns:
        tuple: (query, params) with params None for the aggregate.
    """
    if filter_value is None:
        if template.aggregate is None:
            raise InvalidParameterError(f"No {template.filter_parameter} specified", parameter=template.filter_parameter)
        return template.aggregate, None
    return template.filtered, (filter_value,)


def fetch_typed_scalar(connector, query, params, kind: ScalarKind) -> TypedScalar:
    """Runs a single-value query and coerces cell [0, 0] to kind."""
    row = connector.fetch_scalar_row(query, params)
    return coerce_scalar(row[0], kind)


def get_percentage(connector, table, numerator, denominator, filter_column=None, filter_value=None) -> TypedScalar:
    """
    Computes numerator / denominator as a percentage in a single query.

    Without filter_column the expressions should be aggregates over the
    whole table; with it, per-row expressions filtered by
    filter_column = filter_value.

    Returns:
        TypedScalar: float in [0, 100], or undefined when the denominator is zero.
    """
    query = get_percentage_query(table, numerator, denominator, filter_column)
    params = (filter_value,) if filter_column else None

    row = connector.fetch_scalar_row(query, params)
    if row[0] is None:
        logger.debug(f"Percentage on {table} is undefined (zero denominator)")
        return TypedScalar.undefined()
    return coerce_scalar(row[0], ScalarKind.FLOAT)


class RatioSpec:
    """Numerator/denominator expressions for a ratio metric, in both shapes."""

    def __init__(self, table, numerator_sum, denominator_sum, numerator, denominator,
                 filter_column, filter_parameter):
        self.table = table
        self.numerator_sum = numerator_sum
        self.denominator_sum = denominator_sum
        self.numerator = numerator
        self.denominator = denominator
        self.filter_column = filter_column
        self.filter_parameter = filter_parameter


class MetricDefinition:
    """Declarative description of one metric key."""

    def __init__(self, key: str, handler: Callable, parameters: Sequence[ParameterSpec] = (),
                 template: Optional[QueryTemplate] = None, output: Optional[ScalarKind] = ScalarKind.UNSIGNED,
                 ratio: Optional[RatioSpec] = None, description: str = ''):
        self.key = key
        self.handler = handler
        self.parameters = tuple(parameters)
        self.template = template
        self.output = output
        self.ratio = ratio
        self.description = description

    def __repr__(self):
        return f"MetricDefinition({self.key!r})"


def run_scalar_metric(connector, params, definition):
    """Generic handler for aggregate/filtered scalar metrics."""
    template = definition.template
    query, bind = select_template(template, params.get(template.filter_parameter))
    return fetch_typed_scalar(connector, query, bind, definition.output)


def run_ratio_metric(connector, params, definition):
    """Generic handler for percentage metrics."""
    ratio = definition.ratio
    value = params.get(ratio.filter_parameter)
    if value is None:
        return get_percentage(connector, ratio.table, ratio.numerator_sum, ratio.denominator_sum)
    return get_percentage(connector, ratio.table, ratio.numerator, ratio.denominator,
                          ratio.filter_column, value)


class AgentResult:
    """What goes back to the agent: a value or a failure message."""

    def __init__(self, ok, value=None, message=None):
        self.ok = ok
        self.value = value
        self.message = message

    @classmethod
    def success(cls, value):
        return cls(True, value=value)

    @classmethod
    def failure(cls, message):
        return cls(False, message=message)

    def format(self):
        return self.value.format() if self.ok else self.message

    def __repr__(self):
        if self.ok:
            return f"AgentResult(ok, {self.value!r})"
        return f"AgentResult(failed, {self.message!r})"


class MetricEngine:
    """
    Dispatches metric requests to their definitions.

    Args:
        registry: dict of metric key to MetricDefinition.
        connector_factory: Callable returning an unconnected connector.
    """

    def __init__(self, registry: Dict[str, MetricDefinition], connector_factory: Callable):
        self.registry = registry
        self.connector_factory = connector_factory

    def get_definition(self, key) -> MetricDefinition:
        definition = self.registry.get(key)
        if definition is None:
            raise UnknownMetricError(key)
        return definition

    def list_metrics(self):
        return [self.registry[key] for key in sorted(self.registry)]

    def resolve(self, request: MetricRequest):
        """
        Runs one request to completion.

        Returns:
            TypedScalar or DiscoveryPayload

        Raises:
            MetricError: On any failure; the connection is always closed.
        """
        logger.debug(f"In {request.key}()")
        definition = self.get_definition(request.key)

        # Parameters are validated before touching the database
        params = extract_parameters(request, definition.parameters)

        connector = self.connector_factory()
        connector.connect(request.connection_string, request.database)
        try:
            value = definition.handler(connector, params, definition)
        finally:
            connector.disconnect()

        logger.debug(f"End of {request.key}()")
        return value

    def handle(self, request: MetricRequest) -> AgentResult:
        """Like resolve(), but reports failures as an AgentResult."""
        try:
            return AgentResult.success(self.resolve(request))
        except MetricError as e:
            logger.debug(f"{request.key} failed: {e}")
            return AgentResult.failure(str(e))
