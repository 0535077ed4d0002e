"""
Typed scalar results and value coercion.

A metric resolves to exactly one of an unsigned integer, a float or a
string. The output kind is either fixed per metric family or chosen at run
time from a type tag returned next to the value (pg_settings.vartype).
"""

import logging
from decimal import Decimal, InvalidOperation
from enum import Enum

from plugins.common.errors import ValueCoercionError

logger = logging.getLogger(__name__)


class ScalarKind(Enum):
    UNSIGNED = "unsigned"
    FLOAT = "float"
    STRING = "string"


class TypedScalar:
    """A single metric value tagged with its output kind."""

    def __init__(self, kind: ScalarKind, value):
        self.kind = kind
        self.value = value

    @classmethod
    def undefined(cls):
        """The result of a ratio whose denominator is zero."""
        return cls(ScalarKind.FLOAT, None)

    @property
    def is_defined(self):
        return self.value is not None

    def format(self):
        """Renders the value the way the agent expects it on the wire."""
        if self.value is None:
            return ""
        if self.kind is ScalarKind.FLOAT:
            return f"{self.value:.6f}"
        return str(self.value)

    def __eq__(self, other):
        if not isinstance(other, TypedScalar):
            return NotImplemented
        return self.kind is other.kind and self.value == other.value

    def __repr__(self):
        return f"TypedScalar({self.kind.value}, {self.value!r})"


def _to_integer(value):
    if isinstance(value, (bool, int, Decimal, float)):
        return int(value)
    text = str(value).strip()
    try:
        return int(text, 10)
    except ValueError:
        pass
    # Numeric columns such as reltuples may come back as "1234.0"
    try:
        return int(Decimal(text))
    except (InvalidOperation, ValueError, OverflowError):
        raise ValueCoercionError(f"Cannot convert value '{value}' to an integer")


def _to_unsigned(value):
    number = _to_integer(value)
    if number < 0:
        raise ValueCoercionError(f"Negative value '{value}' cannot be reported as an unsigned integer")
    return number


def _to_float(value):
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        raise ValueCoercionError(f"Cannot convert value '{value}' to a float")


_CONVERTERS = {
    ScalarKind.UNSIGNED: _to_unsigned,
    ScalarKind.FLOAT: _to_float,
    ScalarKind.STRING: str,
}

_NULL_VALUES = {
    ScalarKind.UNSIGNED: 0,
    ScalarKind.FLOAT: 0.0,
    ScalarKind.STRING: "",
}


def coerce_scalar(value, kind: ScalarKind) -> TypedScalar:
    """
    Converts a single result cell into a TypedScalar of the given kind.

    SQL NULL (e.g. SUM over zero rows) maps to the zero value of the kind.

    Raises:
        ValueCoercionError: If the cell holds malformed numeric text.
    """
    if value is None:
        return TypedScalar(kind, _NULL_VALUES[kind])
    return TypedScalar(kind, _CONVERTERS[kind](value))


# pg_settings.vartype -> output kind; bool, string and enum pass through
VARTYPE_KINDS = {
    'integer': ScalarKind.UNSIGNED,
    'real': ScalarKind.FLOAT,
}


def kind_for_vartype(vartype) -> ScalarKind:
    return VARTYPE_KINDS.get(str(vartype or '').strip(), ScalarKind.STRING)


def coerce_by_vartype(value, vartype) -> TypedScalar:
    """Coerces a setting value using its run-time type tag."""
    kind = kind_for_vartype(vartype)
    if kind is ScalarKind.STRING:
        # Raw pass-through, no normalization
        return TypedScalar(kind, "" if value is None else value)
    return coerce_scalar(value, kind)
