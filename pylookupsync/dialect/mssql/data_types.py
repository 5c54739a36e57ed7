from pylookupsync.model.data_types import SqlIntegerType, SqlVariableCharacterType


class MSSQLIntegerType(SqlIntegerType):
    def __str__(self) -> str:
        return "int"


class MSSQLVariableCharacterType(SqlVariableCharacterType):
    "A Unicode string stored as UTF-16, which holds at most 4000 characters unless declared with `max`."

    def __str__(self) -> str:
        if self.limit is not None and 0 < self.limit <= 4000:
            return f"nvarchar({self.limit})"
        else:
            return "nvarchar(max)"
