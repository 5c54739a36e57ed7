from typing_extensions import override

from pylookupsync.base import BaseGenerator, LookupOptions
from pylookupsync.formation.object_types import LookupTable
from pylookupsync.model.id_types import QualifiedId, SupportsQualifiedId


class SQLiteGenerator(BaseGenerator):
    """
    Generator for SQLite.

    A namespace in lookup options refers to the name of an attached database. The staging table is created in the
    database `temp`, which is private to the connection.
    """

    def __init__(self, options: LookupOptions) -> None:
        super().__init__(options)

    @override
    def get_staging_name(self, table: LookupTable) -> SupportsQualifiedId:
        return QualifiedId("temp", f"staging_{table.name.local_id}")
