from typing_extensions import override

from pylookupsync.base import BaseGenerator, LookupOptions
from pylookupsync.formation.object_types import LookupTable, Table

from .object_types import PostgreSQLObjectFactory


class PostgreSQLGenerator(BaseGenerator):
    "Generator for PostgreSQL."

    def __init__(self, options: LookupOptions) -> None:
        super().__init__(options, PostgreSQLObjectFactory())

    @override
    def get_create_staging_stmts(self, staging: Table) -> list[str]:
        return [staging.create_stmt()]

    @override
    def get_drop_staging_stmts(self, staging: Table) -> list[str]:
        # staging table is dropped on commit
        return []

    @override
    def get_merge_stmts(self, table: LookupTable, staging: Table) -> list[str]:
        id_column = table.id_column.name
        name_column = table.name_column.name
        return [
            f"INSERT INTO {table.name} AS target ({table.column_list})\n"
            f"SELECT {staging.column_list} FROM {staging.name}\n"
            f"ON CONFLICT ({id_column}) DO UPDATE SET {name_column} = EXCLUDED.{name_column}\n"
            f"WHERE target.{name_column} <> EXCLUDED.{name_column};",
            f"DELETE FROM {table.name} AS target\n"
            f"WHERE NOT EXISTS (SELECT 1 FROM {staging.name} AS source WHERE source.{id_column} = target.{id_column});",
        ]
