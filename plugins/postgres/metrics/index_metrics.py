# -*- coding: utf-8 -*-
# index_metrics.py: pg.index.* metric keys (size, rows, statistics counters, discovery)

import logging

from plugins.common.discovery import DiscoveryPayload, build_discovery_rows, build_wide_discovery_rows
from plugins.common.parameters import ParameterSpec
from plugins.common.results import ScalarKind
from plugins.postgres.metric_engine import (
    MetricDefinition,
    QueryTemplate,
    RatioSpec,
    run_ratio_metric,
    run_scalar_metric,
)
from plugins.postgres.utils.qrylib import index_metrics as qry

logger = logging.getLogger(__name__)

SEARCH_MODE_DEEP = 'deep'
SEARCH_MODE_SHALLOW = 'shallow'

# Statistics offered per index in deep discovery
DISCOVERABLE_INDEX_FIELDS = qry.STAT_INDEX_FIELDS + qry.STATIO_INDEX_FIELDS

INDEX_PARAM = ParameterSpec('index', label='index name')


def run_index_discovery(connector, params, definition):
    """
    Lists every index outside the system schemas.

    Parameters:
        mode: 'deep' (default) crosses each index with each statistic
            field, 'shallow' returns one row per index.
        schema: optional schema name filter.
        table: optional table name filter.
    """
    query, bind = qry.get_index_discovery_query(params.get('schema'), params.get('table'))
    result = connector.execute_query(query, bind)

    rows = build_discovery_rows(result)
    if params.get('mode') == SEARCH_MODE_DEEP:
        rows = build_wide_discovery_rows(rows, DISCOVERABLE_INDEX_FIELDS)

    logger.debug(f"Discovered {len(result)} indexes ({len(rows)} items)")
    return DiscoveryPayload(rows)


def _stat_field_metrics():
    definitions = []
    for field in qry.STAT_INDEX_FIELDS:
        definitions.append(MetricDefinition(
            key=f"pg.index.{field}",
            handler=run_scalar_metric,
            parameters=[INDEX_PARAM],
            template=QueryTemplate(
                qry.get_stat_index_sum_query(field),
                qry.get_stat_index_query(field),
                'index'
            ),
            description=f"pg_stat_all_indexes.{field} for an index (default: sum of all indexes)"
        ))
    for field in qry.STATIO_INDEX_FIELDS:
        definitions.append(MetricDefinition(
            key=f"pg.index.{field}",
            handler=run_scalar_metric,
            parameters=[INDEX_PARAM],
            template=QueryTemplate(
                qry.get_statio_index_sum_query(field),
                qry.get_statio_index_query(field),
                'index'
            ),
            description=f"pg_statio_all_indexes.{field} for an index (default: sum of all indexes)"
        ))
    return definitions


def get_index_metrics():
    """Returns the MetricDefinitions for all pg.index.* keys."""
    return [
        MetricDefinition(
            key='pg.index.discovery',
            handler=run_index_discovery,
            parameters=[
                ParameterSpec('mode', choices=(SEARCH_MODE_DEEP, SEARCH_MODE_SHALLOW),
                              default=SEARCH_MODE_DEEP, label='search mode'),
                ParameterSpec('schema', label='schema name'),
                ParameterSpec('table', label='table name'),
            ],
            output=None,
            description="Discovery of all indexes"
        ),
        MetricDefinition(
            key='pg.index.size',
            handler=run_scalar_metric,
            parameters=[INDEX_PARAM],
            template=QueryTemplate(qry.INDEX_SIZE_SUM_QUERY, qry.INDEX_SIZE_QUERY, 'index'),
            description="Disk usage in bytes of an index (default: sum of all indexes)"
        ),
        MetricDefinition(
            key='pg.index.rows',
            handler=run_scalar_metric,
            parameters=[INDEX_PARAM],
            template=QueryTemplate(qry.INDEX_ROWS_SUM_QUERY, qry.INDEX_ROWS_QUERY, 'index'),
            description="Estimated row count of an index (default: sum of all indexes)"
        ),
        MetricDefinition(
            key='pg.index.idx_blks_ratio',
            handler=run_ratio_metric,
            parameters=[INDEX_PARAM],
            output=ScalarKind.FLOAT,
            ratio=RatioSpec(
                table='pg_statio_all_indexes',
                numerator_sum='sum(idx_blks_hit)',
                denominator_sum='sum(idx_blks_hit) + sum(idx_blks_read)',
                numerator='idx_blks_hit',
                denominator='idx_blks_hit + idx_blks_read',
                filter_column='indexrelname',
                filter_parameter='index'
            ),
            description="Index buffer cache hit percentage (default: all indexes)"
        ),
    ] + _stat_field_metrics()
