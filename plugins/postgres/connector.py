import logging

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import parse_dsn

from plugins.common.errors import ConnectionFailedError, NoResultsError, QueryExecutionError

logger = logging.getLogger(__name__)

DEFAULT_APPLICATION_NAME = 'pg_metrics'


class TabularResult:
    """Rows and column names returned by one query."""

    def __init__(self, columns, rows):
        self.columns = list(columns)
        self.rows = list(rows)

    def __len__(self):
        return len(self.rows)

    @property
    def is_empty(self):
        return not self.rows

    def first_row(self):
        return self.rows[0] if self.rows else None

    def as_dicts(self):
        return [dict(zip(self.columns, row)) for row in self.rows]

    def __repr__(self):
        return f"TabularResult(columns={self.columns}, rows={len(self.rows)})"


class PostgresConnector:
    """
    Single-use PostgreSQL connection for one metric invocation.

    Connection defaults come from the settings dict (config.yaml). The
    request's connection string (a libpq conninfo) and database name are
    layered on top of them. The connector opens exactly one connection and
    must be closed when the invocation ends; use it as a context manager:

        with PostgresConnector(settings).connect(conninfo, dbname) as connector:
            result = connector.execute_query("SELECT 1")
    """

    def __init__(self, settings=None):
        self.settings = settings or {}
        self.conn = None
        self.cursor = None

    def _connect_kwargs(self):
        """Builds default psycopg2.connect() keyword arguments from settings."""
        kwargs = {}
        for key in ('host', 'port', 'user', 'password', 'sslmode'):
            if self.settings.get(key) not in (None, ''):
                kwargs[key] = self.settings[key]

        if self.settings.get('database'):
            kwargs['dbname'] = self.settings['database']

        kwargs['connect_timeout'] = self.settings.get('connect_timeout', 10)
        kwargs['application_name'] = self.settings.get('application_name', DEFAULT_APPLICATION_NAME)

        timeout = self.settings.get('statement_timeout', 30000)
        if timeout:
            kwargs['options'] = f"-c statement_timeout={int(timeout)}"

        return kwargs

    def connect(self, connection_string=None, database=None):
        """
        Opens the connection.

        Args:
            connection_string: libpq conninfo string; its keywords override
                the configured defaults.
            database: Database name; overrides both the defaults and any
                dbname in the connection string.

        Returns:
            self, so the call can be chained into a with statement.

        Raises:
            ConnectionFailedError: If the server cannot be reached or
                rejects the connection.
        """
        kwargs = self._connect_kwargs()
        try:
            if connection_string:
                kwargs.update(parse_dsn(connection_string))
            if database:
                kwargs['dbname'] = database
            self.conn = psycopg2.connect(**kwargs)
            self.conn.set_session(readonly=True, autocommit=True)
            self.cursor = self.conn.cursor()
        except psycopg2.Error as e:
            self.disconnect()
            message = str(e).strip()
            logger.warning(f"Failed to connect to PostgreSQL: {message}")
            raise ConnectionFailedError(f"Failed to connect to PostgreSQL: {message}") from e

        logger.debug(f"Connected to PostgreSQL database {self.conn.info.dbname} on {self.conn.info.host}")
        return self

    def disconnect(self):
        """Closes cursor and connection. Safe to call more than once."""
        if self.cursor is not None:
            try:
                self.cursor.close()
            except psycopg2.Error as e:
                logger.debug(f"Error closing cursor: {e}")
            self.cursor = None

        if self.conn is not None:
            try:
                self.conn.close()
            except psycopg2.Error as e:
                logger.debug(f"Error closing connection: {e}")
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.disconnect()
        return False

    def query_text(self, query):
        """Renders a query for log and error messages."""
        if isinstance(query, sql.Composable):
            if self.conn is not None:
                try:
                    return query.as_string(self.conn)
                except psycopg2.Error:
                    pass
            return repr(query)
        return ' '.join(str(query).split())

    def execute_query(self, query, params=None):
        """
        Executes a query with at most one set of bound parameters.

        Args:
            query: SQL string or psycopg2.sql.Composable.
            params: Tuple of values for the %s placeholders, or None.

        Returns:
            TabularResult

        Raises:
            QueryExecutionError: If the connection is not open or the query
                fails; carries the driver's message verbatim.
        """
        if self.conn is None or self.conn.closed:
            raise QueryExecutionError("PostgreSQL connection is not open", query=self.query_text(query))

        if self.cursor is None or self.cursor.closed:
            self.cursor = self.conn.cursor()

        logger.debug(f"Executing query: {self.query_text(query)}")
        try:
            self.cursor.execute(query, params)
            if self.cursor.description is None:
                return TabularResult([], [])
            columns = [desc[0] for desc in self.cursor.description]
            return TabularResult(columns, self.cursor.fetchall())
        except psycopg2.Error as e:
            message = (e.pgerror or str(e)).strip()
            logger.warning(f"Query failed: {message}")
            raise QueryExecutionError(f"PostgreSQL query error: {message}", query=self.query_text(query)) from e

    def fetch_scalar_row(self, query, params=None):
        """
        Executes a query and returns its first row.

        Raises:
            NoResultsError: If the query returns zero rows.
        """
        result = self.execute_query(query, params)
        if result.is_empty:
            raise NoResultsError(self.query_text(query))
        return result.first_row()
