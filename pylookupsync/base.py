"""
pylookupsync: Synchronize lookup tables with enumeration types.

This module defines base classes to generate SQL, create a connection, execute statement batches, and synchronize
lookup tables with the members of enumeration types.
"""

import abc
import enum
import logging
import re
import types
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol, Union

from strong_typing.inspection import is_type_enum

from .connection import ConnectionParameters
from .formation.inspection import describe_container
from .formation.object_types import (
    LookupTable,
    ObjectFactory,
    StatementList,
    Table,
    TableFormationError,
)
from .formation.references import distinct_enum_types, find_references
from .metadata.resolver import MappingResolver
from .metadata.workspace import MetadataWorkspace
from .model.data_types import SqlDataType, SqlIntegerType, SqlVariableCharacterType
from .model.description import (
    EnumReference,
    ModelDescription,
    enum_members,
    is_integer_enum_type,
)
from .model.id_types import LocalId, QualifiedId, SupportsQualifiedId

LOGGER = logging.getLogger("pylookupsync")

_PREFIX_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class LookupOptions:
    """
    Database-agnostic options for lookup tables.

    :param name_length: Maximum length of the column that stores the name of an enumeration member.
    :param table_prefix: Prepended to the name of the enumeration type to obtain the name of its lookup table.
    :param namespace: Database schema in which lookup tables are created, `None` for the default schema.
    """

    name_length: int = 255
    table_prefix: Optional[str] = "Enum_"
    namespace: Optional[str] = None

    def __post_init__(self) -> None:
        if self.name_length <= 0:
            raise ValueError(
                f"expected: a positive name length; got: {self.name_length}"
            )
        if self.table_prefix and not _PREFIX_PATTERN.match(self.table_prefix):
            raise ValueError(
                f"expected: a table prefix that is a valid identifier; got: {self.table_prefix!r}"
            )


class BaseGenerator(abc.ABC):
    """
    Generates SQL statements for creating lookup tables and reconciling their contents with enumeration types.

    :param options: Database-agnostic lookup table options.
    :param factory: A factory object to create new column and table instances.
    """

    options: LookupOptions
    factory: ObjectFactory

    def __init__(
        self, options: LookupOptions, factory: Optional[ObjectFactory] = None
    ) -> None:
        self.options = options
        self.factory = factory if factory is not None else ObjectFactory()

    def get_table_name(self, enum_type: type[enum.Enum]) -> QualifiedId:
        "Name of the lookup table for an enumeration type."

        prefix = self.options.table_prefix or ""
        return QualifiedId(self.options.namespace, f"{prefix}{enum_type.__name__}")

    def get_staging_name(self, table: LookupTable) -> SupportsQualifiedId:
        "Name of the temporary table that holds the expected contents of a lookup table."

        return QualifiedId(None, f"staging_{table.name.local_id}")

    def get_id_type(self) -> SqlDataType:
        return SqlIntegerType()

    def get_name_type(self, length: int) -> SqlDataType:
        return SqlVariableCharacterType(length)

    def get_lookup_table(self, enum_type: type[enum.Enum]) -> LookupTable:
        "Maps an enumeration type to a lookup table, with one row per enumeration member."

        table_name = self.get_table_name(enum_type)
        if not is_type_enum(enum_type):
            raise TableFormationError(
                f"expected: an enumeration type; got: {enum_type}", table_name
            )
        if not is_integer_enum_type(enum_type):
            raise TableFormationError(
                f"enumeration `{enum_type.__name__}` has member values that are not integers",
                table_name,
            )

        values = enum_members(enum_type)
        for _, name in values:
            if len(name) > self.options.name_length:
                raise TableFormationError(
                    f"name of member `{enum_type.__name__}.{name}` exceeds maximum length of {self.options.name_length}",
                    table_name,
                )

        return self.factory.lookup_table_class(
            table_name,
            self.factory.column_class(LocalId("Id"), self.get_id_type(), False),
            self.factory.column_class(
                LocalId("Name"), self.get_name_type(self.options.name_length), False
            ),
            values=values,
        )

    def get_staging_table(self, table: LookupTable) -> Table:
        "A temporary table with the same columns as the lookup table but no constraints."

        return self.factory.table_class(
            self.get_staging_name(table),
            [
                self.factory.column_class(c.name, c.data_type, c.nullable)
                for c in table.columns
            ],
        )

    def get_create_table_stmt(self, enum_type: type[enum.Enum]) -> str:
        "Creates the lookup table for an enumeration type unless it already exists."

        return self.get_lookup_table(enum_type).create_guarded_stmt()

    def get_create_staging_stmts(self, staging: Table) -> list[str]:
        return [staging.drop_if_exists_stmt(), staging.create_stmt()]

    def get_drop_staging_stmts(self, staging: Table) -> list[str]:
        return [staging.drop_stmt()]

    def get_merge_stmts(self, table: LookupTable, staging: Table) -> list[str]:
        """
        Reconciles the lookup table with the staging table.

        Rows with a matching identifier and a different name are updated, rows missing from the lookup table are
        inserted, and rows missing from the staging table are deleted.
        """

        id_column = table.id_column.name
        name_column = table.name_column.name
        return [
            f"UPDATE {table.name} SET {name_column} = (\n"
            f"SELECT source.{name_column} FROM {staging.name} AS source WHERE source.{id_column} = {table.name}.{id_column}\n"
            ")\n"
            f"WHERE EXISTS (\n"
            f"SELECT 1 FROM {staging.name} AS source\n"
            f"WHERE source.{id_column} = {table.name}.{id_column} AND source.{name_column} <> {table.name}.{name_column}\n"
            ");",
            f"INSERT INTO {table.name} ({table.column_list})\n"
            f"SELECT source.{id_column}, source.{name_column} FROM {staging.name} AS source\n"
            f"WHERE NOT EXISTS (SELECT 1 FROM {table.name} AS target WHERE target.{id_column} = source.{id_column});",
            f"DELETE FROM {table.name}\n"
            f"WHERE NOT EXISTS (SELECT 1 FROM {staging.name} AS source WHERE source.{id_column} = {table.name}.{id_column});",
        ]

    def get_reconcile_stmts(self, enum_type: type[enum.Enum]) -> list[str]:
        """
        Brings the contents of a lookup table in line with the members of an enumeration type.

        The statements stage the expected rows in a temporary table, update names that have changed, insert missing
        rows, delete rows with no corresponding member, and finally drop the temporary table.
        """

        table = self.get_lookup_table(enum_type)
        staging = self.get_staging_table(table)

        statements = StatementList()
        statements.extend(self.get_create_staging_stmts(staging))
        statements.extend(staging.insert_values_stmts(table.values))
        statements.extend(self.get_merge_stmts(table, staging))
        statements.extend(self.get_drop_staging_stmts(staging))
        return statements


class ExecutionFailure(RuntimeError):
    "Raised when a SQL statement fails to execute."

    query: str

    def __init__(self, query: str) -> None:
        super().__init__()
        self.query = query

    def __str__(self) -> str:
        query = f"{self.query[:1000]}..." if len(self.query) > 1000 else self.query
        return f"error executing query:\n{query}"


class ExecutionSink(Protocol):
    "Runs a batch of SQL statements as a single unit of work."

    async def execute_batch(self, statements: list[str]) -> None: ...


class BaseConnection(abc.ABC):
    "An active connection to a database."

    generator: BaseGenerator
    params: ConnectionParameters

    def __init__(
        self,
        generator: BaseGenerator,
        params: ConnectionParameters,
    ) -> None:
        self.generator = generator
        self.params = params

    async def __aenter__(self) -> "BaseContext":
        return await self.open()

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[types.TracebackType],
    ) -> None:
        await self.close()

    @abc.abstractmethod
    async def open(self) -> "BaseContext": ...

    @abc.abstractmethod
    async def close(self) -> None: ...


class BaseContext(abc.ABC):
    "Context object returned by a connection object."

    connection: BaseConnection

    def __init__(self, connection: BaseConnection) -> None:
        self.connection = connection

    async def execute(self, statement: str) -> None:
        "Executes one or more SQL statements."

        if not statement:
            raise ValueError("empty statement")
        if not statement.strip():
            raise ValueError("blank statement")

        LOGGER.debug("execute SQL:\n%s", statement)
        try:
            await self._execute(statement)
        except ExecutionFailure:
            raise
        except Exception as e:
            raise ExecutionFailure(statement) from e

    @abc.abstractmethod
    async def _execute(self, statement: str) -> None:
        "Executes one or more SQL statements."

        ...

    async def execute_batch(self, statements: list[str]) -> None:
        """
        Executes a list of SQL statements in a single transaction.

        If any statement fails, the transaction is rolled back and no changes are persisted.
        """

        if not statements:
            raise ValueError("empty statement batch")
        for statement in statements:
            if not statement.strip():
                raise ValueError("blank statement in batch")

        LOGGER.debug("execute SQL batch:\n%s", "\n".join(statements))
        try:
            await self._execute_batch(statements)
        except ExecutionFailure:
            raise
        except Exception as e:
            raise ExecutionFailure("\n".join(statements)) from e

    @abc.abstractmethod
    async def _execute_batch(self, statements: list[str]) -> None:
        "Executes a list of SQL statements in a single transaction."

        ...

    async def query_all(self, statement: str) -> list[tuple[Any, ...]]:
        "Runs a query and returns all rows."

        LOGGER.debug("query SQL:\n%s", statement)
        try:
            return await self._query_all(statement)
        except Exception as e:
            raise ExecutionFailure(statement) from e

    @abc.abstractmethod
    async def _query_all(self, statement: str) -> list[tuple[Any, ...]]: ...

    def get_synchronizer(self) -> "LookupSynchronizer":
        "A synchronizer that executes statements in this context."

        return LookupSynchronizer(self.connection.generator, self)


LookupSource = Union[
    ModelDescription, MetadataWorkspace, type, Iterable[EnumReference]
]


class LookupSynchronizer:
    """
    Ensures that a lookup table exists for each enumeration type and holds exactly one row per enumeration member.

    :param generator: Generates SQL statements for the target database.
    :param sink: Executes batches of SQL statements.
    """

    generator: BaseGenerator
    sink: ExecutionSink

    def __init__(self, generator: BaseGenerator, sink: ExecutionSink) -> None:
        self.generator = generator
        self.sink = sink

    async def apply(self, source: LookupSource) -> list[EnumReference]:
        """
        Synchronizes lookup tables for all enumeration types referenced by a data model.

        :param source: An explicit model description, a metadata workspace, a root container class, or a list of
            enumeration references.
        :returns: The enumeration references the lookup tables were derived from.
        """

        if isinstance(source, ModelDescription):
            return await self.apply_model(source)
        elif isinstance(source, MetadataWorkspace):
            return await self.apply_workspace(source)
        elif isinstance(source, type):
            return await self.apply_model(describe_container(source))
        else:
            return await self.apply_references(list(source))

    async def apply_model(self, model: ModelDescription) -> list[EnumReference]:
        "Synchronizes lookup tables for the enumeration types referenced in a model description."

        return await self.apply_references(find_references(model))

    async def apply_workspace(
        self, workspace: MetadataWorkspace
    ) -> list[EnumReference]:
        "Synchronizes lookup tables for the enumeration types referenced in object/relational mapping metadata."

        return await self.apply_references(
            MappingResolver(workspace).find_enum_references()
        )

    async def apply_references(
        self, references: list[EnumReference]
    ) -> list[EnumReference]:
        "Synchronizes lookup tables for the distinct enumeration types in a list of references."

        await self.apply_types(distinct_enum_types(references))
        return references

    def _check_table_names(self, enum_types: list[type[enum.Enum]]) -> None:
        "Ensures that no two enumeration types share a lookup table, comparing names case-insensitively."

        owners: dict[str, type[enum.Enum]] = {}
        for enum_type in enum_types:
            table_name = self.generator.get_table_name(enum_type)
            owner = owners.setdefault(table_name.compact_id.casefold(), enum_type)
            if owner is not enum_type:
                raise TableFormationError(
                    f"enumeration types `{owner.__module__}.{owner.__qualname__}` and "
                    f"`{enum_type.__module__}.{enum_type.__qualname__}` map to the same lookup table",
                    table_name,
                )

    async def apply_types(self, enum_types: list[type[enum.Enum]]) -> None:
        """
        Creates missing lookup tables, and reconciles the contents of each lookup table with its enumeration type.

        Each table is created and then populated, with each step executed as a separate batch. The first failure
        aborts the run.
        """

        if not enum_types:
            LOGGER.warning("no enumeration types to synchronize")
            return

        self._check_table_names(enum_types)
        for enum_type in enum_types:
            table_name = self.generator.get_table_name(enum_type)
            LOGGER.debug("create lookup table %s", table_name)
            await self.sink.execute_batch(
                [self.generator.get_create_table_stmt(enum_type)]
            )

            await self.sink.execute_batch(self.generator.get_reconcile_stmts(enum_type))
            LOGGER.info(
                "lookup table %s has been synchronized with %d member(s) of `%s`",
                table_name,
                len(enum_members(enum_type)),
                enum_type.__name__,
            )


class BaseEngine(abc.ABC):
    "Represents a specific database server type."

    @property
    @abc.abstractmethod
    def name(self) -> str: ...

    @abc.abstractmethod
    def get_generator_type(self) -> type[BaseGenerator]: ...

    @abc.abstractmethod
    def get_connection_type(self) -> type[BaseConnection]: ...

    def create_connection(
        self, params: ConnectionParameters, options: Optional[LookupOptions] = None
    ) -> BaseConnection:
        "Opens a connection to a database server."

        lookup_options = options if options is not None else LookupOptions()
        connection_type = self.get_connection_type()
        return connection_type(self.create_generator(lookup_options), params)

    def create_generator(self, options: Optional[LookupOptions] = None) -> BaseGenerator:
        "Instantiates a generator that can emit SQL statements."

        lookup_options = options if options is not None else LookupOptions()
        generator_type = self.get_generator_type()
        return generator_type(lookup_options)
