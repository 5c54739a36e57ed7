from pylookupsync.base import BaseConnection, BaseEngine, BaseGenerator

from .connection import MSSQLConnection
from .generator import MSSQLGenerator


class MSSQLEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "mssql"

    def get_generator_type(self) -> type[BaseGenerator]:
        return MSSQLGenerator

    def get_connection_type(self) -> type[BaseConnection]:
        return MSSQLConnection
