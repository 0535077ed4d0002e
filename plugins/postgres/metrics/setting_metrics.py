# -*- coding: utf-8 -*-
# setting_metrics.py: pg.setting keys for run-time configuration parameters

import logging

from plugins.common.discovery import DiscoveryPayload, build_discovery_rows
from plugins.common.parameters import ParameterSpec
from plugins.common.results import coerce_by_vartype
from plugins.postgres.metric_engine import MetricDefinition
from plugins.postgres.utils.qrylib.settings import SETTING_DISCOVERY_QUERY, SETTING_QUERY

logger = logging.getLogger(__name__)


def run_setting_discovery(connector, params, definition):
    """Lists all run-time settings with unit, category, context and vartype."""
    result = connector.execute_query(SETTING_DISCOVERY_QUERY)
    return DiscoveryPayload(build_discovery_rows(result))


def run_setting(connector, params, definition):
    """
    Returns the current value of a run-time setting, as SHOW would.

    The output type follows pg_settings.vartype: integer and real settings
    are numeric, everything else is returned as the raw string.
    """
    name = params['setting']
    row = connector.fetch_scalar_row(SETTING_QUERY, (name,))
    value, vartype = row[0], row[1]
    logger.debug(f"Setting {name} = {value} ({vartype})")
    return coerce_by_vartype(value, vartype)


def get_setting_metrics():
    """Returns the MetricDefinitions for the pg.setting* keys."""
    return [
        MetricDefinition(
            key='pg.setting.discovery',
            handler=run_setting_discovery,
            output=None,
            description="Discovery of all run-time settings"
        ),
        MetricDefinition(
            key='pg.setting',
            handler=run_setting,
            parameters=[ParameterSpec('setting', required=True, label='setting name')],
            output=None,
            description="Value of a run-time setting, typed by vartype"
        ),
    ]
