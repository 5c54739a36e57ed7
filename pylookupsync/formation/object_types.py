import abc
from dataclasses import dataclass
from typing import Iterable, Optional

from ..model.data_types import SqlDataType, constant
from ..model.id_types import LocalId, SupportsQualifiedId

# maximum number of rows in a single `VALUES` list (imposed by Microsoft SQL Server)
VALUES_BATCH_SIZE = 1000


class StatementList(list[str]):
    def append(self, __object: Optional[str]) -> None:
        if __object is None:
            return
        if isinstance(__object, str) and not __object.strip():
            raise ValueError("empty statement")
        return super().append(__object)

    def extend(self, __iterable: Iterable[Optional[str]]) -> None:
        for item in __iterable:
            self.append(item)


class FormationError(RuntimeError):
    "Raised when an enumeration type cannot be mapped to a lookup table."


class TableFormationError(FormationError):
    "Raised when a lookup table cannot be formed."

    table: SupportsQualifiedId

    def __init__(self, cause: str, table: SupportsQualifiedId) -> None:
        super().__init__(cause)
        self.table = table

    def __str__(self) -> str:
        return f"table {self.table}: {self.args[0]}"


class DatabaseObject(abc.ABC):
    @abc.abstractmethod
    def create_stmt(self) -> str: ...

    @abc.abstractmethod
    def drop_stmt(self) -> str: ...


@dataclass
class Column:
    """
    A column in a database table.

    :param name: The name of the column within its host table.
    :param data_type: The SQL data type of the column.
    :param nullable: True if the column can take the value NULL.
    """

    name: LocalId
    data_type: SqlDataType
    nullable: bool

    def __str__(self) -> str:
        return self.column_spec

    @property
    def column_spec(self) -> str:
        return f"{self.name} {self.data_spec}"

    @property
    def data_spec(self) -> str:
        nullable = " NOT NULL" if not self.nullable else ""
        return f"{self.data_type}{nullable}"


class Table(DatabaseObject):
    """
    A database table.

    :param name: The name of the table, optionally qualified with a namespace.
    :param columns: The columns of the table.
    :param primary_key: The columns that make up the primary key, if any.
    """

    name: SupportsQualifiedId
    columns: list[Column]
    primary_key: tuple[LocalId, ...]

    def __init__(
        self,
        name: SupportsQualifiedId,
        columns: list[Column],
        *,
        primary_key: tuple[LocalId, ...] = (),
    ) -> None:
        self.name = name
        self.columns = columns
        self.primary_key = primary_key

    def __str__(self) -> str:
        return self.create_stmt()

    @property
    def primary_key_constraint_id(self) -> LocalId:
        return LocalId(f"pk_{self.name.compact_id.replace('.', '_')}")

    @property
    def column_list(self) -> str:
        return ", ".join(str(column.name) for column in self.columns)

    def create_definition(self) -> str:
        defs: list[str] = []
        defs.extend(str(c) for c in self.columns)
        if self.primary_key:
            keys = ", ".join(str(key) for key in self.primary_key)
            defs.append(
                f"CONSTRAINT {self.primary_key_constraint_id} PRIMARY KEY ({keys})"
            )
        return ",\n".join(defs)

    def create_stmt(self) -> str:
        return f"CREATE TABLE {self.name} (\n{self.create_definition()}\n);"

    def create_if_not_exists_stmt(self) -> str:
        return f"CREATE TABLE IF NOT EXISTS {self.name} (\n{self.create_definition()}\n);"

    def drop_stmt(self) -> str:
        return f"DROP TABLE {self.name};"

    def drop_if_exists_stmt(self) -> str:
        return f"DROP TABLE IF EXISTS {self.name};"

    def insert_values_stmts(self, rows: list[tuple[int, str]]) -> list[str]:
        "Inserts literal rows, splitting long value lists into several statements."

        statements: list[str] = []
        for index in range(0, len(rows), VALUES_BATCH_SIZE):
            value_list = ",\n".join(
                constant(row) for row in rows[index : index + VALUES_BATCH_SIZE]
            )
            statements.append(
                f"INSERT INTO {self.name} ({self.column_list}) VALUES\n{value_list};"
            )
        return statements


class LookupTable(Table):
    """
    A table that holds the members of an enumeration type, one row per member.

    :param name: The name of the lookup table.
    :param id_column: Column that stores the integer value of an enumeration member (primary key).
    :param name_column: Column that stores the declared name of an enumeration member.
    :param values: Rows the table is expected to hold, in the form (integer value, declared name).
    """

    values: list[tuple[int, str]]

    def __init__(
        self,
        name: SupportsQualifiedId,
        id_column: Column,
        name_column: Column,
        *,
        values: list[tuple[int, str]],
    ) -> None:
        super().__init__(name, [id_column, name_column], primary_key=(id_column.name,))
        self.values = values

    @property
    def id_column(self) -> Column:
        return self.columns[0]

    @property
    def name_column(self) -> Column:
        return self.columns[1]

    def create_guarded_stmt(self) -> str:
        "Creates the table unless a table by the same name already exists."

        return self.create_if_not_exists_stmt()


class ObjectFactory:
    "Creates new column and table instances."

    @property
    def column_class(self) -> type[Column]:
        "The object type instantiated for table columns."

        return Column

    @property
    def table_class(self) -> type[Table]:
        "The object type instantiated for staging tables."

        return Table

    @property
    def lookup_table_class(self) -> type[LookupTable]:
        "The object type instantiated for tables that store enumeration values."

        return LookupTable
