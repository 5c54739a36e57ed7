from pylookupsync.base import BaseConnection, BaseEngine, BaseGenerator

from .connection import SQLiteConnection
from .generator import SQLiteGenerator


class SQLiteEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "sqlite"

    def get_generator_type(self) -> type[BaseGenerator]:
        return SQLiteGenerator

    def get_connection_type(self) -> type[BaseConnection]:
        return SQLiteConnection
