# -*- coding: utf-8 -*-
# test_metric_engine.py: Unit tests for metric dispatch and the index metric keys

import unittest
from decimal import Decimal
from unittest.mock import MagicMock

from plugins.common.discovery import DiscoveryPayload
from plugins.common.errors import (
    ConnectionFailedError,
    InvalidParameterError,
    NoResultsError,
    QueryExecutionError,
    UnknownMetricError,
)
from plugins.common.parameters import MetricRequest
from plugins.common.results import ScalarKind, TypedScalar
from plugins.postgres import PostgresPlugin
from plugins.postgres.connector import TabularResult
from plugins.postgres.metric_engine import MetricEngine
from plugins.postgres.metrics import build_registry
from plugins.postgres.metrics.index_metrics import DISCOVERABLE_INDEX_FIELDS
from plugins.postgres.utils.qrylib import index_metrics as qry
from plugins.postgres.utils.qrylib.percentage import get_percentage_query

INDEX_COLUMNS = ['oid', 'index', 'database', 'schema', 'table', 'owner', 'access']


class EngineTestCase(unittest.TestCase):
    def setUp(self):
        self.connector = MagicMock()
        self.engine = MetricEngine(build_registry(), lambda: self.connector)

    def request(self, key, *params):
        return MetricRequest(key, ['host=db1', 'appdb'] + list(params))


class TestDispatch(EngineTestCase):
    def test_unknown_key(self):
        with self.assertRaises(UnknownMetricError):
            self.engine.resolve(self.request('pg.index.bogus'))
        self.connector.connect.assert_not_called()

    def test_connects_with_request_params(self):
        self.connector.fetch_scalar_row.return_value = (Decimal('0'),)
        self.engine.resolve(self.request('pg.index.size'))
        self.connector.connect.assert_called_once_with('host=db1', 'appdb')
        self.connector.disconnect.assert_called_once()

    def test_invalid_parameter_before_connect(self):
        with self.assertRaises(InvalidParameterError):
            self.engine.resolve(self.request('pg.index.discovery', 'sideways'))
        self.connector.connect.assert_not_called()

    def test_disconnect_on_query_failure(self):
        self.connector.fetch_scalar_row.side_effect = QueryExecutionError('PostgreSQL query error: boom')
        with self.assertRaises(QueryExecutionError):
            self.engine.resolve(self.request('pg.index.size'))
        self.connector.disconnect.assert_called_once()

    def test_handle_reports_failure(self):
        self.connector.connect.side_effect = ConnectionFailedError('Failed to connect to PostgreSQL: refused')
        result = self.engine.handle(self.request('pg.index.size'))
        self.assertFalse(result.ok)
        self.assertEqual(result.message, 'Failed to connect to PostgreSQL: refused')
        self.connector.fetch_scalar_row.assert_not_called()

    def test_handle_reports_success(self):
        self.connector.fetch_scalar_row.return_value = (Decimal('8192'),)
        result = self.engine.handle(self.request('pg.index.size', 'idx_a'))
        self.assertTrue(result.ok)
        self.assertEqual(result.format(), '8192')

    def test_invocations_are_independent(self):
        connectors = []

        def factory():
            connector = MagicMock()
            connector.fetch_scalar_row.return_value = (1,)
            connectors.append(connector)
            return connector

        engine = MetricEngine(build_registry(), factory)
        engine.resolve(self.request('pg.index.rows'))
        engine.resolve(self.request('pg.index.rows'))
        self.assertEqual(len(connectors), 2)
        for connector in connectors:
            connector.connect.assert_called_once()
            connector.disconnect.assert_called_once()


class TestAggregateFilteredDuality(EngineTestCase):
    def test_every_scalar_family(self):
        self.connector.fetch_scalar_row.return_value = (Decimal('5'),)
        registry = build_registry()
        scalar_keys = [k for k, d in registry.items() if d.template is not None]
        self.assertIn('pg.index.size', scalar_keys)
        self.assertIn('pg.index.idx_blks_hit', scalar_keys)

        for key in scalar_keys:
            template = registry[key].template

            self.connector.reset_mock()
            self.engine.resolve(self.request(key))
            self.connector.fetch_scalar_row.assert_called_once_with(template.aggregate, None)

            self.connector.reset_mock()
            self.engine.resolve(self.request(key, 'idx_a'))
            self.connector.fetch_scalar_row.assert_called_once_with(template.filtered, ('idx_a',))

    def test_index_size_sum(self):
        # three indexes of 1, 2 and 3 pages
        self.connector.fetch_scalar_row.return_value = (Decimal(6 * 8192),)
        result = self.engine.resolve(self.request('pg.index.size'))
        self.assertEqual(result, TypedScalar(ScalarKind.UNSIGNED, 49152))
        self.connector.fetch_scalar_row.assert_called_once_with(qry.INDEX_SIZE_SUM_QUERY, None)

    def test_index_size_single(self):
        self.connector.fetch_scalar_row.return_value = (16384,)
        result = self.engine.resolve(self.request('pg.index.size', 'orders_pkey'))
        self.assertEqual(result.value, 16384)
        self.connector.fetch_scalar_row.assert_called_once_with(qry.INDEX_SIZE_QUERY, ('orders_pkey',))

    def test_stat_field_query(self):
        self.connector.fetch_scalar_row.return_value = (Decimal('42'),)
        result = self.engine.resolve(self.request('pg.index.idx_scan'))
        self.assertEqual(result.value, 42)
        self.connector.fetch_scalar_row.assert_called_once_with(qry.get_stat_index_sum_query('idx_scan'), None)

    def test_empty_sum_is_zero(self):
        self.connector.fetch_scalar_row.return_value = (None,)
        self.assertEqual(self.engine.resolve(self.request('pg.index.idx_blks_read')).value, 0)

    def test_negative_row_estimate_is_not_unsigned(self):
        self.connector.fetch_scalar_row.return_value = (-1,)
        result = self.engine.handle(self.request('pg.index.rows', 'fresh_idx'))
        self.assertFalse(result.ok)
        self.assertIn('unsigned', result.message)

    def test_unknown_index(self):
        self.connector.fetch_scalar_row.side_effect = NoResultsError('SELECT ...')
        result = self.engine.handle(self.request('pg.index.rows', 'missing_idx'))
        self.assertFalse(result.ok)
        self.assertIn('No results returned for query', result.message)


class TestIndexBlocksRatio(EngineTestCase):
    def test_aggregate(self):
        self.connector.fetch_scalar_row.return_value = (100.0,)
        result = self.engine.resolve(self.request('pg.index.idx_blks_ratio'))
        self.assertIs(result.kind, ScalarKind.FLOAT)
        self.assertAlmostEqual(result.value, 100.0)
        expected = get_percentage_query(
            'pg_statio_all_indexes', 'sum(idx_blks_hit)', 'sum(idx_blks_hit) + sum(idx_blks_read)'
        )
        self.connector.fetch_scalar_row.assert_called_once_with(expected, None)

    def test_filtered(self):
        self.connector.fetch_scalar_row.return_value = (0.0,)
        result = self.engine.resolve(self.request('pg.index.idx_blks_ratio', 'orders_pkey'))
        self.assertAlmostEqual(result.value, 0.0)
        expected = get_percentage_query(
            'pg_statio_all_indexes', 'idx_blks_hit', 'idx_blks_hit + idx_blks_read', 'indexrelname'
        )
        self.connector.fetch_scalar_row.assert_called_once_with(expected, ('orders_pkey',))

    def test_zero_denominator_is_undefined(self):
        self.connector.fetch_scalar_row.return_value = (None,)
        result = self.engine.resolve(self.request('pg.index.idx_blks_ratio'))
        self.assertFalse(result.is_defined)


class TestIndexDiscovery(EngineTestCase):
    def setUp(self):
        super().setUp()
        self.connector.execute_query.return_value = TabularResult(INDEX_COLUMNS, [
            (1, 'orders_pkey', 'appdb', 'public', 'orders', 'postgres', 'btree'),
            (2, 'orders_date_idx', 'appdb', 'public', 'orders', 'postgres', 'brin'),
        ])

    def test_shallow(self):
        payload = self.engine.resolve(self.request('pg.index.discovery', 'shallow'))
        self.assertIsInstance(payload, DiscoveryPayload)
        self.assertEqual(len(payload), 2)
        self.assertEqual(len(payload.rows[0]), 7)
        query, params = qry.get_index_discovery_query()
        self.connector.execute_query.assert_called_once_with(query, params)

    def test_deep_is_default(self):
        payload = self.engine.resolve(self.request('pg.index.discovery'))
        self.assertEqual(len(payload), 2 * len(DISCOVERABLE_INDEX_FIELDS))
        self.assertEqual(
            [r['{#METRIC}'] for r in payload.rows[:len(DISCOVERABLE_INDEX_FIELDS)]],
            list(DISCOVERABLE_INDEX_FIELDS)
        )

    def test_filters_are_bound(self):
        self.engine.resolve(self.request('pg.index.discovery', 'shallow', 'public', 'orders'))
        query, params = self.connector.execute_query.call_args[0]
        self.assertEqual(params, ('public', 'orders'))

    def test_empty_listing_is_success(self):
        self.connector.execute_query.return_value = TabularResult(INDEX_COLUMNS, [])
        result = self.engine.handle(self.request('pg.index.discovery', 'shallow', 'nosuchschema'))
        self.assertTrue(result.ok)
        self.assertEqual(result.format(), '{"data": []}')

    def test_invalid_mode_message(self):
        result = self.engine.handle(self.request('pg.index.discovery', 'wide'))
        self.assertFalse(result.ok)
        self.assertEqual(result.message, 'Invalid search mode parameter: wide')


class TestPostgresPlugin(unittest.TestCase):
    def test_engine_creates_connectors_from_settings(self):
        plugin = PostgresPlugin()
        engine = plugin.get_engine({'host': 'db1'})
        connector = engine.connector_factory()
        self.assertEqual(connector.settings, {'host': 'db1'})
        self.assertIsNot(connector, engine.connector_factory())

    def test_key_prefix(self):
        plugin = PostgresPlugin()
        self.assertTrue(plugin.supports_key('pg.setting'))
        self.assertFalse(plugin.supports_key('mysql.status'))


if __name__ == '__main__':
    unittest.main()
