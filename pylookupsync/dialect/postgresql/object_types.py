from typing_extensions import override

from pylookupsync.formation.object_types import LookupTable, ObjectFactory, Table
from pylookupsync.model.id_types import LocalId


class PostgreSQLStagingTable(Table):
    "A temporary table that PostgreSQL drops automatically when the enclosing transaction completes."

    @override
    def create_stmt(self) -> str:
        return f"CREATE TEMPORARY TABLE {self.name} (\n{self.create_definition()}\n) ON COMMIT DROP;"


class PostgreSQLLookupTable(LookupTable):
    @property
    def primary_key_constraint_id(self) -> LocalId:
        return LocalId(f"pk_{self.name.local_id.replace('.', '_')}")


class PostgreSQLObjectFactory(ObjectFactory):
    @property
    def table_class(self) -> type[Table]:
        return PostgreSQLStagingTable

    @property
    def lookup_table_class(self) -> type[LookupTable]:
        return PostgreSQLLookupTable
