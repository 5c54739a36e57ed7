import logging
import sqlite3
import typing
from typing import Any

from typing_extensions import override

from pylookupsync.base import BaseConnection, BaseContext
from pylookupsync.util.dispatch import thread_dispatch

LOGGER = logging.getLogger("pylookupsync.sqlite")


class SQLiteConnection(BaseConnection):
    """
    Represents a connection to an SQLite database file.

    The database file is identified by the database component of the connection string, e.g.
    `sqlite:///path/to/file.db`. An absent database name opens an in-memory database.
    """

    native: sqlite3.Connection

    @override
    @thread_dispatch
    def open(self) -> BaseContext:
        database = self.params.database or ":memory:"
        LOGGER.info("connecting to %s", database)

        # calls are dispatched to a new worker thread each time; transactions are controlled explicitly
        conn = sqlite3.connect(database, isolation_level=None, check_same_thread=False)
        LOGGER.info("SQLite version %s", sqlite3.sqlite_version)

        self.native = conn
        return SQLiteContext(self)

    @override
    @thread_dispatch
    def close(self) -> None:
        self.native.close()


class SQLiteContext(BaseContext):
    def __init__(self, connection: SQLiteConnection) -> None:
        super().__init__(connection)

    @property
    def native_connection(self) -> sqlite3.Connection:
        return typing.cast(SQLiteConnection, self.connection).native

    @override
    @thread_dispatch
    def _execute(self, statement: str) -> None:
        self.native_connection.executescript(statement)

    @override
    @thread_dispatch
    def _execute_batch(self, statements: list[str]) -> None:
        conn = self.native_connection
        conn.execute("BEGIN")
        try:
            for statement in statements:
                conn.execute(statement)
        except Exception:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")

    @override
    @thread_dispatch
    def _query_all(self, statement: str) -> list[tuple[Any, ...]]:
        return [tuple(row) for row in self.native_connection.execute(statement).fetchall()]
