import enum
from dataclasses import dataclass
from typing import Any, Optional


def quote(s: str) -> str:
    "Quotes a string to be embedded in an SQL statement."

    return "'" + s.replace("'", "''") + "'"


def constant(v: Any) -> str:
    "Outputs a constant value."

    if isinstance(v, enum.Enum):
        raise TypeError(f"expected: a plain value; got enumeration member: {v!r}")
    if isinstance(v, str):
        return quote(v)
    elif isinstance(v, int):
        return str(v)
    elif isinstance(v, tuple):
        values = ", ".join(constant(value) for value in v)
        return f"({values})"
    else:
        raise NotImplementedError(
            f"unknown constant representation for value (of type): {v} ({type(v)})"
        )


class SqlDataType:
    "Base class for SQL column types."

    def __str__(self) -> str:
        raise NotImplementedError()


class SqlIntegerType(SqlDataType):
    "A 4-byte signed integer."

    def __str__(self) -> str:
        return "integer"


@dataclass
class SqlVariableCharacterType(SqlDataType):
    limit: Optional[int] = None

    def __str__(self) -> str:
        if self.limit is not None:
            return f"varchar({self.limit})"
        else:
            return "text"
