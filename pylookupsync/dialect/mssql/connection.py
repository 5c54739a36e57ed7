import logging
import typing
from typing import Any, Optional

import pyodbc
from typing_extensions import override

from pylookupsync.base import BaseConnection, BaseContext
from pylookupsync.connection import ConnectionParameters
from pylookupsync.util.dispatch import thread_dispatch

LOGGER = logging.getLogger("pylookupsync.mssql")


def odbc_connection_string(params: ConnectionParameters) -> str:
    "Builds an ODBC connection string with the options of the Microsoft ODBC driver for SQL Server."

    server = params.host or "localhost"
    options: dict[str, Optional[str]] = {
        "DRIVER": "{ODBC Driver 18 for SQL Server}",
        "SERVER": server if params.port is None else f"{server},{params.port}",
        "DATABASE": params.database,
        "UID": params.username,
        "PWD": params.password,
    }

    ssl_mode = params.ssl
    if ssl_mode is not None:
        options["Encrypt"] = "yes" if ssl_mode.encrypts else "no"
    verify = ssl_mode is not None and ssl_mode.verifies_certificate
    options["TrustServerCertificate"] = "no" if verify else "yes"

    return ";".join(f"{key}={value}" for key, value in options.items() if value is not None)


class MSSQLConnection(BaseConnection):
    "A connection to a Microsoft SQL Server through the pyodbc driver, with blocking calls run on a worker thread."

    native: pyodbc.Connection

    @override
    @thread_dispatch
    def open(self) -> BaseContext:
        LOGGER.info("connecting to %s", self.params)
        self.native = pyodbc.connect(odbc_connection_string(self.params), autocommit=True)
        LOGGER.debug("server version: %s", self.native.getinfo(pyodbc.SQL_DBMS_VER))
        return MSSQLContext(self)

    @override
    @thread_dispatch
    def close(self) -> None:
        self.native.close()


class MSSQLContext(BaseContext):
    "Runs each statement batch in a transaction by switching off autocommit for its duration."

    @property
    def native_connection(self) -> pyodbc.Connection:
        return typing.cast(MSSQLConnection, self.connection).native

    @override
    @thread_dispatch
    def _execute(self, statement: str) -> None:
        with self.native_connection.cursor() as cur:
            cur.execute(statement)

    @override
    @thread_dispatch
    def _execute_batch(self, statements: list[str]) -> None:
        conn = self.native_connection
        conn.autocommit = False
        try:
            with conn.cursor() as cur:
                for statement in statements:
                    cur.execute(statement)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.autocommit = True

    @override
    @thread_dispatch
    def _query_all(self, statement: str) -> list[tuple[Any, ...]]:
        with self.native_connection.cursor() as cur:
            return [tuple(row) for row in cur.execute(statement).fetchall()]
