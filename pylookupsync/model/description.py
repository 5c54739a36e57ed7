"""
Explicit description of a data model in terms of entity collections, entities and fields.

A description is built once (e.g. at application start) either by hand or by inspecting Python classes, and is
validated when constructed, such that an unsupported field shape is reported before any database work begins.
"""

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from strong_typing.inspection import is_type_enum

T = TypeVar("T")


class UnsupportedModelShape(TypeError):
    "Raised when an enumeration-referencing field has a shape that cannot be interpreted."


class EntitySet(Generic[T]):
    """
    Marks a member of a root container class as a named collection of entities of type `T`.

    Example:
    ```
    class ShopContext:
        customers: EntitySet[Customer]
        orders: EntitySet[Order]
    ```
    """


def is_integer_enum_type(typ: Any) -> bool:
    "True if the type is an enumeration type whose member values are all integers."

    if not is_type_enum(typ):
        return False

    return all(
        isinstance(e.value, int) and not isinstance(e.value, bool) for e in typ
    )


def check_integer_enum_type(enum_type: Any) -> None:
    "Ensures that the type is an enumeration with integer member values."

    if not is_type_enum(enum_type):
        raise UnsupportedModelShape(f"expected: an enumeration type; got: {enum_type}")
    if not is_integer_enum_type(enum_type):
        value_types = sorted(set(type(e.value).__name__ for e in enum_type))
        raise UnsupportedModelShape(
            f"expected: integer member values in enumeration `{enum_type.__name__}`; got: {', '.join(value_types)}"
        )


def enum_members(enum_type: type[enum.Enum]) -> list[tuple[int, str]]:
    """
    Returns the (integer value, declared name) pairs of an enumeration type in declaration order.

    Aliases (names bound to the value of an earlier member) are not included.
    """

    check_integer_enum_type(enum_type)
    return [(int(e.value), e.name) for e in enum_type]


@enum.unique
class FieldKind(enum.Enum):
    "Shape of a field as far as enumeration discovery is concerned."

    PLAIN = "plain"
    "A field that does not reference an enumeration type."

    ENUM = "enum"
    "A field of an enumeration type."

    OPTIONAL_ENUM = "optional_enum"
    "A nullable field of an enumeration type."

    EMBEDDED = "embedded"
    "A value type with no identity of its own, composed into the entity as a group of columns."


@dataclass(frozen=True)
class FieldDescription:
    """
    Describes a single field of an entity or an embedded value type.

    :param name: Name of the field.
    :param kind: Shape of the field.
    :param enum_type: Enumeration type for kinds `ENUM` and `OPTIONAL_ENUM`.
    :param fields: Nested fields for kind `EMBEDDED`.
    """

    name: str
    kind: FieldKind = FieldKind.PLAIN
    enum_type: Optional[type[enum.Enum]] = None
    fields: tuple["FieldDescription", ...] = ()

    def __post_init__(self) -> None:
        if self.kind is FieldKind.ENUM or self.kind is FieldKind.OPTIONAL_ENUM:
            if self.enum_type is None:
                raise UnsupportedModelShape(
                    f"field `{self.name}` of kind {self.kind.name} lacks an enumeration type"
                )
            check_integer_enum_type(self.enum_type)
        elif self.enum_type is not None:
            raise UnsupportedModelShape(
                f"field `{self.name}` of kind {self.kind.name} cannot have an enumeration type"
            )

        if self.kind is FieldKind.EMBEDDED:
            for field in self.fields:
                if field.kind is FieldKind.EMBEDDED:
                    raise UnsupportedModelShape(
                        f"embedded field `{self.name}.{field.name}` is nested more than one level deep"
                    )
        elif self.fields:
            raise UnsupportedModelShape(
                f"field `{self.name}` of kind {self.kind.name} cannot have nested fields"
            )

    @property
    def is_enum(self) -> bool:
        return self.kind is FieldKind.ENUM or self.kind is FieldKind.OPTIONAL_ENUM


@dataclass(frozen=True)
class EntityDescription:
    "Describes an entity type as a list of fields."

    name: str
    fields: tuple[FieldDescription, ...] = ()


@dataclass(frozen=True)
class EntitySetDescription:
    "Describes a named collection of entities."

    name: str
    entity: EntityDescription


@dataclass(frozen=True)
class ModelDescription:
    "Describes a data model as a list of named entity collections."

    entity_sets: tuple[EntitySetDescription, ...] = ()


@dataclass(frozen=True)
class EnumReference:
    """
    A column that references an enumeration type.

    :param enum_type: The enumeration type referenced.
    :param referencing_table: Table that holds the column, or `None` if the entity has no storage mapping of its own.
    :param referencing_field: Column (or field) that holds enumeration values.
    """

    enum_type: type[enum.Enum]
    referencing_table: Optional[str]
    referencing_field: str
