"""
Request parameter extraction.

Agent requests carry an ordered list of string parameters. Positions 0 and 1
always hold the connection string and the target database; everything after
that is metric specific and is mapped onto named parameters here.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from plugins.common.errors import InvalidParameterError

logger = logging.getLogger(__name__)

# Index of the first metric-specific parameter
FIRST_METRIC_PARAM = 2


def normalize_param(value):
    """Returns None for missing or empty parameters, the string otherwise."""
    if value is None:
        return None
    value = str(value)
    if value == '':
        return None
    return value


class MetricRequest:
    """A metric key plus its ordered parameter list."""

    def __init__(self, key: str, params: Optional[Sequence[Any]] = None):
        self.key = key
        self.params: List[Optional[str]] = [normalize_param(p) for p in (params or [])]

    def get_param(self, index: int) -> Optional[str]:
        """Returns the parameter at index, or None if absent."""
        if index < len(self.params):
            return self.params[index]
        return None

    @property
    def connection_string(self) -> Optional[str]:
        return self.get_param(0)

    @property
    def database(self) -> Optional[str]:
        return self.get_param(1)

    @property
    def metric_params(self) -> List[Optional[str]]:
        return self.params[FIRST_METRIC_PARAM:]

    def __repr__(self):
        # Position 0 may hold a password
        return f"MetricRequest({self.key!r}, database={self.database!r}, params={self.metric_params!r})"


class ParameterSpec:
    """
    Declares one metric-specific positional parameter.

    Args:
        name: Name used as the key in the extracted parameter dict.
        required: If True, absence is an error.
        choices: Optional tuple of accepted values.
        default: Value used when the parameter is absent.
        label: Human-readable name used in error messages.
    """

    def __init__(self, name, required=False, choices=None, default=None, label=None):
        self.name = name
        self.required = required
        self.choices = tuple(choices) if choices else None
        self.default = default
        self.label = label or name.replace('_', ' ')

    def __repr__(self):
        return f"ParameterSpec({self.name!r}, required={self.required})"


def extract_parameters(request: MetricRequest, specs: Sequence[ParameterSpec]) -> Dict[str, Optional[str]]:
    """
    Maps the metric-specific parameters of a request onto named values.

    Args:
        request: The incoming MetricRequest.
        specs: Ordered parameter declarations, starting at position 2.

    Returns:
        dict: Parameter name to value (None when absent and no default).

    Raises:
        InvalidParameterError: For a missing required parameter, a value not
            in the declared choices, or surplus parameters.
    """
    supplied = request.metric_params
    surplus = [p for p in supplied[len(specs):] if p is not None]
    if surplus:
        raise InvalidParameterError(
            f"Too many parameters for {request.key}: expected at most {len(specs) + FIRST_METRIC_PARAM}, "
            f"got {len(request.params)}"
        )

    values = {}
    for offset, spec in enumerate(specs):
        value = request.get_param(FIRST_METRIC_PARAM + offset)

        if value is None:
            if spec.required:
                raise InvalidParameterError(f"No {spec.label} specified", parameter=spec.name)
            value = spec.default

        if value is not None and spec.choices and value not in spec.choices:
            raise InvalidParameterError(
                f"Invalid {spec.label} parameter: {value}",
                parameter=spec.name,
                value=value
            )

        values[spec.name] = value

    logger.debug(f"Extracted parameters for {request.key}: {sorted(k for k, v in values.items() if v is not None)}")
    return values
