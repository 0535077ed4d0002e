"""
Builds ratio queries of the form numerator / denominator * 100.
"""

from psycopg2 import sql


def get_percentage_query(table, numerator, denominator, filter_column=None):
    """
    Returns a query computing numerator / denominator as a percentage.

    The expressions are trusted SQL fragments from the metric table; the
    table and filter column are quoted as identifiers. A zero denominator
    yields NULL instead of a division error.

    Args:
        table (str): Relation to read, e.g. 'pg_statio_all_indexes'.
        numerator (str): SQL expression, e.g. 'sum(idx_blks_hit)'.
        denominator (str): SQL expression for the total.
        filter_column (str): If set, the query binds one value against it.

    Returns:
        sql.Composed: The query, with one %s placeholder when filtered.
    """
    query = sql.SQL(
        "SELECT ({numerator})::double precision / NULLIF({denominator}, 0) * 100 FROM {table}"
    ).format(
        numerator=sql.SQL(numerator),
        denominator=sql.SQL(denominator),
        table=sql.Identifier(table),
    )

    if filter_column:
        query = query + sql.SQL(" WHERE {column} = %s").format(column=sql.Identifier(filter_column))

    return query
