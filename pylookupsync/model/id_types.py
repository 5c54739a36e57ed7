from dataclasses import dataclass
from typing import Optional, Union

ID_QUOTE_CHAR = '"'


def quote_id(name: str) -> str:
    return name.replace(ID_QUOTE_CHAR, 2 * ID_QUOTE_CHAR)


@dataclass(frozen=True)
class LocalId:
    "An identifier to be used in a local context, e.g. columns of a table."

    id: str

    @property
    def local_id(self) -> str:
        "Unquoted identifier."

        return self.id

    @property
    def quoted_id(self) -> str:
        return ID_QUOTE_CHAR + quote_id(self.id) + ID_QUOTE_CHAR

    def __str__(self) -> str:
        "Quotes an identifier to be embedded in a SQL statement."

        return self.quoted_id


@dataclass(frozen=True)
class QualifiedId:
    "An identifier optionally qualified with a namespace (database schema)."

    namespace: Optional[str]
    id: str

    @property
    def scope_id(self) -> Optional[str]:
        return self.namespace

    @property
    def local_id(self) -> str:
        return self.id

    @property
    def compact_id(self) -> str:
        "An unquoted composite identifier."

        if self.namespace is not None:
            return f"{self.namespace}.{self.id}"
        else:
            return self.id

    @property
    def quoted_id(self) -> str:
        if self.namespace is not None:
            return (
                ID_QUOTE_CHAR
                + quote_id(self.namespace)
                + ID_QUOTE_CHAR
                + "."
                + ID_QUOTE_CHAR
                + quote_id(self.id)
                + ID_QUOTE_CHAR
            )
        else:
            return ID_QUOTE_CHAR + quote_id(self.id) + ID_QUOTE_CHAR

    def __str__(self) -> str:
        "Quotes a qualified identifier to be embedded in a SQL statement."

        return self.quoted_id


@dataclass(frozen=True)
class GlobalId:
    "An identifier that is embedded in a SQL statement verbatim, e.g. a session-local temporary table."

    id: str

    @property
    def scope_id(self) -> Optional[str]:
        return None

    @property
    def local_id(self) -> str:
        return self.id

    @property
    def compact_id(self) -> str:
        return self.id

    @property
    def quoted_id(self) -> str:
        return self.id

    def __str__(self) -> str:
        return self.id


SupportsQualifiedId = Union[QualifiedId, GlobalId]
