from typing_extensions import override

from pylookupsync.base import BaseGenerator, LookupOptions
from pylookupsync.formation.object_types import LookupTable, Table
from pylookupsync.model.data_types import SqlDataType
from pylookupsync.model.id_types import GlobalId, SupportsQualifiedId

from .data_types import MSSQLIntegerType, MSSQLVariableCharacterType
from .object_types import MSSQLObjectFactory


class MSSQLGenerator(BaseGenerator):
    """
    Generator for Microsoft SQL Server (T-SQL).

    Member names are stored as `nvarchar` and compared as binary data such that a change in letter case is detected
    irrespective of collation.
    """

    def __init__(self, options: LookupOptions) -> None:
        super().__init__(options, MSSQLObjectFactory())

    @override
    def get_staging_name(self, table: LookupTable) -> SupportsQualifiedId:
        # local temporary table, visible only in the current session
        return GlobalId("#lookups")

    @override
    def get_id_type(self) -> SqlDataType:
        return MSSQLIntegerType()

    @override
    def get_name_type(self, length: int) -> SqlDataType:
        return MSSQLVariableCharacterType(length)

    @override
    def get_merge_stmts(self, table: LookupTable, staging: Table) -> list[str]:
        id_column = table.id_column.name
        name_column = table.name_column.name
        return [
            f"MERGE INTO {table.name} AS target\n"
            f"USING {staging.name} AS source\n"
            f"ON source.{id_column} = target.{id_column}\n"
            f"WHEN MATCHED AND CAST(source.{name_column} AS varbinary(max)) <> CAST(target.{name_column} AS varbinary(max)) THEN\n"
            f"UPDATE SET target.{name_column} = source.{name_column}\n"
            f"WHEN NOT MATCHED BY TARGET THEN\n"
            f"INSERT ({table.column_list}) VALUES (source.{id_column}, source.{name_column})\n"
            f"WHEN NOT MATCHED BY SOURCE THEN\n"
            f"DELETE;"
        ]
