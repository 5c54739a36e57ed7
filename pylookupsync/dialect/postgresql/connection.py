import logging
import typing
from typing import Any

import asyncpg
from typing_extensions import override

from pylookupsync.base import BaseConnection, BaseContext
from pylookupsync.connection import create_context

LOGGER = logging.getLogger("pylookupsync.postgresql")


class PostgreSQLConnection(BaseConnection):
    "A connection to a PostgreSQL server through the asyncpg driver."

    native: asyncpg.Connection

    @override
    async def open(self) -> BaseContext:
        LOGGER.info("connecting to %s", self.params)
        self.native = await asyncpg.connect(
            host=self.params.host,
            port=self.params.port,
            user=self.params.username,
            password=self.params.password,
            database=self.params.database,
            ssl=create_context(self.params.ssl),
        )
        LOGGER.debug("server version: %s", self.native.get_server_version())
        return PostgreSQLContext(self)

    @override
    async def close(self) -> None:
        await self.native.close()


class PostgreSQLContext(BaseContext):
    "Runs each statement batch inside an asyncpg transaction block."

    @property
    def native_connection(self) -> asyncpg.Connection:
        return typing.cast(PostgreSQLConnection, self.connection).native

    @override
    async def _execute(self, statement: str) -> None:
        await self.native_connection.execute(statement)

    @override
    async def _execute_batch(self, statements: list[str]) -> None:
        async with self.native_connection.transaction():
            for statement in statements:
                await self.native_connection.execute(statement)

    @override
    async def _query_all(self, statement: str) -> list[tuple[Any, ...]]:
        records: list[asyncpg.Record] = await self.native_connection.fetch(statement)
        return [tuple(record.values()) for record in records]
