"""
Query library for the pg.index.* metric keys.

Most keys come as a pair of templates: an aggregate that sums over every
visible index and a filtered one that binds a single index name.
"""

from psycopg2 import sql

# Page size assumed for relpages based sizes
BLOCK_SIZE = 8192

INDEX_DISCOVERY_QUERY = """
    SELECT
        ic.oid AS oid,
        ic.relname AS index,
        current_database() AS database,
        n.nspname AS schema,
        t.relname AS table,
        a.rolname AS owner,
        m.amname AS access
    FROM pg_index i
    JOIN pg_class ic ON ic.oid = i.indexrelid
    JOIN pg_namespace n ON n.oid = ic.relnamespace
    JOIN pg_roles a ON a.oid = ic.relowner
    JOIN pg_class t ON t.oid = i.indrelid
    JOIN pg_am m ON m.oid = ic.relam
    WHERE
        n.nspname <> 'pg_catalog'
        AND n.nspname <> 'information_schema'
        AND n.nspname !~ '^pg_toast'"""

INDEX_SIZE_SUM_QUERY = f"""
    SELECT SUM(relpages::bigint * {BLOCK_SIZE})
    FROM pg_class
    WHERE relkind = 'i'
"""

INDEX_SIZE_QUERY = f"""
    SELECT relpages::bigint * {BLOCK_SIZE}
    FROM pg_class
    WHERE relkind = 'i'
        AND relname = %s
"""

# reltuples is -1 until the first VACUUM or ANALYZE (PostgreSQL 14+); report 0
INDEX_ROWS_SUM_QUERY = """
    SELECT SUM(GREATEST(reltuples, 0)::bigint)
    FROM pg_class
    WHERE relkind = 'i'
"""

INDEX_ROWS_QUERY = """
    SELECT GREATEST(reltuples, 0)::bigint
    FROM pg_class
    WHERE relkind = 'i'
        AND relname = %s
"""

# Counters exposed by pg_stat_all_indexes and pg_statio_all_indexes
STAT_INDEX_FIELDS = ('idx_scan', 'idx_tup_read', 'idx_tup_fetch')
STATIO_INDEX_FIELDS = ('idx_blks_read', 'idx_blks_hit')


def _check_field(field, allowed):
    if field not in allowed:
        raise ValueError(f"Unknown index statistic field: {field}")
    return sql.Identifier(field)


def get_index_discovery_query(schema=None, table=None):
    """
    Returns the index listing query with optional schema/table filters.

    Each filter adds an independent AND clause with a bound parameter, so
    any combination narrows the listing to the intersection.

    Returns:
        tuple: (query, params) where params is None when no filter is set.
    """
    query = INDEX_DISCOVERY_QUERY
    params = []

    if schema is not None:
        query += "\n        AND n.nspname = %s"
        params.append(schema)

    if table is not None:
        query += "\n        AND t.relname = %s"
        params.append(table)

    query += "\n    ORDER BY n.nspname, t.relname, ic.relname"
    return query, (tuple(params) or None)


def get_stat_index_sum_query(field):
    """Sum of a pg_stat_all_indexes counter across all indexes."""
    return sql.SQL("SELECT SUM({field}) FROM pg_stat_all_indexes").format(
        field=_check_field(field, STAT_INDEX_FIELDS)
    )


def get_stat_index_query(field):
    """A pg_stat_all_indexes counter for one index name."""
    return sql.SQL("SELECT {field} FROM pg_stat_all_indexes WHERE indexrelname = %s").format(
        field=_check_field(field, STAT_INDEX_FIELDS)
    )


def get_statio_index_sum_query(field):
    """Sum of a pg_statio_all_indexes counter, excluding system schemas."""
    return sql.SQL("""
        SELECT SUM({field}::bigint) FROM pg_statio_all_indexes
        WHERE
            schemaname !~ '^pg_toast'
            AND schemaname <> 'pg_catalog'
            AND schemaname <> 'information_schema'
    """).format(field=_check_field(field, STATIO_INDEX_FIELDS))


def get_statio_index_query(field):
    """A pg_statio_all_indexes counter for one index name."""
    return sql.SQL("SELECT {field} FROM pg_statio_all_indexes WHERE indexrelname = %s").format(
        field=_check_field(field, STATIO_INDEX_FIELDS)
    )
