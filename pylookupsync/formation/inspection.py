import logging
import typing
from typing import Any, Optional

from strong_typing.inspection import (
    dataclass_fields,
    is_dataclass_type,
    is_type_enum,
    is_type_optional,
    unwrap_annotated_type,
    unwrap_optional_type,
)
from typing_extensions import get_args, get_origin, get_type_hints

from ..model.description import (
    EntityDescription,
    EntitySet,
    EntitySetDescription,
    FieldDescription,
    FieldKind,
    ModelDescription,
    UnsupportedModelShape,
)

LOGGER = logging.getLogger("pylookupsync")


def is_entity_set_type(typ: Any) -> bool:
    "True if the type is of the form `EntitySet[T]`."

    return get_origin(unwrap_annotated_type(typ)) is EntitySet


def _references_enum(typ: Any) -> bool:
    "True if the type is an enumeration or a generic type with an enumeration type argument."

    typ = unwrap_annotated_type(typ)
    if is_type_enum(typ):
        return True
    return any(is_type_enum(unwrap_annotated_type(arg)) for arg in get_args(typ))


def _contains_enum(cls: type, visited: Optional[set[type]] = None) -> bool:
    "True if the data class has a field that references an enumeration type at any depth."

    if visited is None:
        visited = set()
    if cls in visited:
        return False
    visited.add(cls)

    for field in dataclass_fields(cls):
        plain_type = unwrap_annotated_type(field.type)
        if is_type_optional(plain_type):
            plain_type = unwrap_annotated_type(unwrap_optional_type(plain_type))
        if _references_enum(plain_type):
            return True
        if is_dataclass_type(plain_type) and _contains_enum(plain_type, visited):
            return True
    return False


class ModelInspector:
    """
    Builds an explicit model description by inspecting a root container class.

    :param entity_types: Data class types that are element types of an entity collection.
    """

    entity_types: set[type]

    def __init__(self, entity_types: Optional[set[type]] = None) -> None:
        self.entity_types = entity_types if entity_types is not None else set()

    def describe_field(
        self, owner: type, name: str, field_type: Any, *, nested: bool = False
    ) -> FieldDescription:
        """
        Determines the shape of a single field.

        :param owner: The class that declares the field, used in error messages.
        :param name: Name of the field.
        :param field_type: Declared (resolved) type of the field.
        :param nested: True if the field is declared in an embedded value type.
        """

        plain_type = unwrap_annotated_type(field_type)

        if is_type_enum(plain_type):
            return FieldDescription(name, FieldKind.ENUM, enum_type=plain_type)

        if is_type_optional(plain_type):
            inner_type = unwrap_annotated_type(unwrap_optional_type(plain_type))
            if is_type_enum(inner_type):
                return FieldDescription(
                    name, FieldKind.OPTIONAL_ENUM, enum_type=inner_type
                )
            if is_dataclass_type(inner_type):
                return self.describe_field(owner, name, inner_type, nested=nested)
            if _references_enum(inner_type):
                raise UnsupportedModelShape(
                    f"unexpected generic enumeration type for field `{owner.__name__}.{name}`: {field_type}; "
                    "expected: an enumeration type or an optional enumeration type"
                )
            return FieldDescription(name)

        if _references_enum(plain_type):
            raise UnsupportedModelShape(
                f"unexpected generic enumeration type for field `{owner.__name__}.{name}`: {field_type}; "
                "expected: an enumeration type or an optional enumeration type"
            )

        if is_dataclass_type(plain_type):
            if plain_type in self.entity_types:
                # a reference to another entity maps to a key column, not a group of columns
                return FieldDescription(name)

            if nested:
                if _contains_enum(plain_type):
                    raise UnsupportedModelShape(
                        f"embedded type `{plain_type.__name__}` in field `{owner.__name__}.{name}` "
                        "is nested more than one level deep"
                    )
                return FieldDescription(name)

            return FieldDescription(
                name,
                FieldKind.EMBEDDED,
                fields=tuple(
                    self.describe_field(plain_type, field.name, field.type, nested=True)
                    for field in dataclass_fields(plain_type)
                ),
            )

        return FieldDescription(name)

    def describe_entity(self, entity_type: type) -> EntityDescription:
        "Describes the fields of an entity type."

        if not is_dataclass_type(entity_type):
            raise UnsupportedModelShape(
                f"expected: a data class as entity type; got: {entity_type}"
            )

        return EntityDescription(
            entity_type.__name__,
            tuple(
                self.describe_field(entity_type, field.name, field.type)
                for field in dataclass_fields(entity_type)
            ),
        )


def describe_container(container_type: type) -> ModelDescription:
    """
    Builds a model description from a root container class.

    Members of the container annotated as `EntitySet[T]` become named entity collections; other members are ignored.

    :param container_type: A class whose annotated members describe entity collections.
    :returns: A validated model description.
    """

    hints = get_type_hints(container_type, include_extras=True)
    collections: list[tuple[str, Any]] = []
    for name, member_type in hints.items():
        if not is_entity_set_type(member_type):
            continue

        (element_type,) = get_args(unwrap_annotated_type(member_type))
        if isinstance(element_type, typing.ForwardRef) or not is_dataclass_type(
            element_type
        ):
            raise UnsupportedModelShape(
                f"expected: a data class as element type of collection `{container_type.__name__}.{name}`; "
                f"got: {element_type}"
            )
        collections.append((name, element_type))

    if not collections:
        LOGGER.warning("no entity collections in `%s`", container_type.__name__)

    inspector = ModelInspector(set(element_type for _, element_type in collections))
    entity_sets = tuple(
        EntitySetDescription(name, inspector.describe_entity(element_type))
        for name, element_type in collections
    )
    LOGGER.debug(
        "found %d entity collection(s) in `%s`",
        len(entity_sets),
        container_type.__name__,
    )
    return ModelDescription(entity_sets)
