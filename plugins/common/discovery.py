"""
Discovery listings for the agent's low-level discovery protocol.

A discovery payload has the shape ``{"data": [{"{#FIELD}": "value", ...}]}``.
Field names are the query's column aliases, uppercased and wrapped in
``{#...}``. The shape is consumed by the agent verbatim.
"""

import json
import logging
from typing import Dict, Iterable, List, Sequence

logger = logging.getLogger(__name__)

WIDE_FIELD_KEY = '{#METRIC}'


def discovery_field(column: str) -> str:
    """Returns the discovery macro name for a result column, e.g. '{#OID}'."""
    return '{#' + column.upper() + '}'


def _cell_text(value):
    return "" if value is None else str(value)


def build_discovery_rows(result) -> List[Dict[str, str]]:
    """
    Shallow discovery: one row per entity.

    Args:
        result: A TabularResult from the connector.

    Returns:
        list: One dict per result row, in query order.
    """
    fields = [discovery_field(c) for c in result.columns]
    rows = []
    for row in result.rows:
        rows.append({field: _cell_text(value) for field, value in zip(fields, row)})
    logger.debug(f"Built {len(rows)} shallow discovery rows")
    return rows


def build_wide_discovery_rows(rows: Iterable[Dict[str, str]], fields: Sequence[str],
                              field_key: str = WIDE_FIELD_KEY) -> List[Dict[str, str]]:
    """
    Wide discovery: crosses every entity with every discoverable field.

    Each shallow row is copied once per field, with the field name stored
    under field_key. N rows and M fields yield N*M rows.
    """
    wide = []
    for row in rows:
        for field in fields:
            item = dict(row)
            item[field_key] = field
            wide.append(item)
    logger.debug(f"Built {len(wide)} wide discovery rows across {len(fields)} fields")
    return wide


class DiscoveryPayload:
    """An ordered discovery listing; an empty listing is a valid result."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])

    def __len__(self):
        return len(self.rows)

    def to_dict(self):
        return {"data": self.rows}

    def to_json(self, **kwargs):
        return json.dumps(self.to_dict(), **kwargs)

    def format(self):
        return self.to_json()

    def __repr__(self):
        return f"DiscoveryPayload({len(self.rows)} rows)"
