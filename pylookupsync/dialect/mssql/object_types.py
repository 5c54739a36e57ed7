from typing_extensions import override

from pylookupsync.formation.object_types import LookupTable, ObjectFactory
from pylookupsync.model.data_types import quote
from pylookupsync.model.id_types import SupportsQualifiedId


def object_name(name: SupportsQualifiedId) -> str:
    "A (possibly qualified) object name with T-SQL bracket quoting, as accepted by `OBJECT_ID`."

    parts = [name.scope_id, name.local_id]
    return ".".join(
        "[" + part.replace("]", "]]") + "]" for part in parts if part is not None
    )


class MSSQLLookupTable(LookupTable):
    @override
    def create_guarded_stmt(self) -> str:
        # T-SQL has no `CREATE TABLE IF NOT EXISTS`
        return (
            f"IF OBJECT_ID(N{quote(object_name(self.name))}, N'U') IS NULL\n"
            f"{self.create_stmt()}"
        )


class MSSQLObjectFactory(ObjectFactory):
    @property
    def lookup_table_class(self) -> type[LookupTable]:
        return MSSQLLookupTable
