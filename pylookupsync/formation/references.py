import enum
import logging
from typing import Iterable

from ..model.description import (
    EntitySetDescription,
    EnumReference,
    FieldDescription,
    FieldKind,
    ModelDescription,
)

LOGGER = logging.getLogger("pylookupsync")


def nested_field_name(field: FieldDescription, nested: FieldDescription) -> str:
    "Name of the column that holds a field of an embedded value type."

    return f"{field.name}__{nested.name}"


def _entity_set_references(entity_set: EntitySetDescription) -> list[EnumReference]:
    references: list[EnumReference] = []
    for field in entity_set.entity.fields:
        if field.is_enum:
            assert field.enum_type is not None
            references.append(
                EnumReference(field.enum_type, entity_set.name, field.name)
            )
        elif field.kind is FieldKind.EMBEDDED:
            # embedded types are never nested more than one level deep
            references.extend(
                EnumReference(
                    nested.enum_type, entity_set.name, nested_field_name(field, nested)
                )
                for nested in field.fields
                if nested.is_enum and nested.enum_type is not None
            )
    return references


def find_references(model: ModelDescription) -> list[EnumReference]:
    """
    Finds all fields that reference an enumeration type across all entity collections.

    The same enumeration type may be referenced by several fields; references are not de-duplicated.

    :param model: A validated model description.
    :returns: One reference for each field of an enumeration type or an optional enumeration type, including fields
        nested in embedded value types.
    """

    references: list[EnumReference] = []
    for entity_set in model.entity_sets:
        entity_references = _entity_set_references(entity_set)
        LOGGER.debug(
            "found %d enumeration reference(s) in collection `%s`",
            len(entity_references),
            entity_set.name,
        )
        references.extend(entity_references)
    return references


def distinct_enum_types(references: Iterable[EnumReference]) -> list[type[enum.Enum]]:
    "Returns the enumeration types referenced, each listed once, in order of first occurrence."

    enum_types: dict[type[enum.Enum], None] = {}
    for reference in references:
        enum_types.setdefault(reference.enum_type, None)
    return list(enum_types)
