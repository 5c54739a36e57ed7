"""
Object/relational model metadata in three layers and the mappings between them.

* The object layer lists Python types: entity classes and enumeration classes.
* The conceptual layer describes entity types, their properties, and the entity sets that hold them.
* The storage layer describes tables.
* The mapping layer associates conceptual entity sets and properties with storage tables and columns.

An adapter for a specific object/relational mapper populates a workspace, see e.g.
:func:`pylookupsync.metadata.sqlalchemy.workspace_from_registry`.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar, Union

T = TypeVar("T")


@enum.unique
class DataSpace(enum.Enum):
    "Identifies a layer of model metadata."

    OBJECT = "object"
    "Python classes."

    CONCEPTUAL = "conceptual"
    "Entity types, complex types, enumeration types, entity sets and containers."

    STORAGE = "storage"
    "Tables in the database."

    MAPPING = "mapping"
    "Mappings between the conceptual and the storage layer."


@dataclass
class ObjectEntityType:
    "A Python class whose instances are persisted as rows."

    name: str
    python_type: type


@dataclass
class ObjectEnumType:
    "A Python enumeration class."

    name: str
    python_type: type[enum.Enum]


@dataclass
class EdmEnumType:
    "An enumeration type in the conceptual layer."

    name: str


@dataclass
class EdmProperty:
    """
    A property of an entity type or a complex type in the conceptual layer.

    :param name: Name of the property.
    :param enum_type: Set if the property is of an enumeration type.
    :param complex_type: Set if the property is of an embedded (complex) value type.
    :param nullable: True if the property can take no value.
    """

    name: str
    enum_type: Optional[EdmEnumType] = None
    complex_type: Optional["EdmComplexType"] = None
    nullable: bool = True

    def __str__(self) -> str:
        return self.name


@dataclass
class EdmComplexType:
    "A value type with no identity of its own, composed into an entity type as a group of properties."

    name: str
    properties: list[EdmProperty] = field(default_factory=list)


@dataclass
class EdmEntityType:
    """
    An entity type in the conceptual layer.

    :param name: Name of the entity type, matching the name of its object layer counterpart.
    :param properties: Properties mapped to columns.
    :param base_type: The entity type this type derives from in an inheritance hierarchy.
    """

    name: str
    properties: list[EdmProperty] = field(default_factory=list)
    base_type: Optional["EdmEntityType"] = None


@dataclass
class EntitySet:
    "A set of entities of the same element type (including derived types)."

    name: str
    element_type: EdmEntityType


@dataclass
class EntityContainer:
    "Holds all entity sets of a conceptual model."

    name: str
    entity_sets: list[EntitySet] = field(default_factory=list)


@dataclass
class StoreEntitySet:
    "A table in the storage layer."

    name: str
    table: str
    schema: Optional[str] = None


@dataclass
class ScalarPropertyMapping:
    "Maps a property to a single column."

    property: EdmProperty
    column: str


@dataclass
class ComplexTypeMapping:
    "Maps the properties of a complex type to columns."

    complex_type: EdmComplexType
    property_mappings: list["PropertyMapping"] = field(default_factory=list)


@dataclass
class ComplexPropertyMapping:
    "Maps a property of a complex type to a group of columns."

    property: EdmProperty
    type_mappings: list[ComplexTypeMapping] = field(default_factory=list)


PropertyMapping = Union[ScalarPropertyMapping, ComplexPropertyMapping]


@dataclass
class MappingFragment:
    "Describes how properties of an entity type map to the columns of a single table."

    store_entity_set: StoreEntitySet
    property_mappings: list[PropertyMapping] = field(default_factory=list)


@dataclass
class EntityTypeMapping:
    "Maps an entity type to one or more tables."

    entity_type: EdmEntityType
    fragments: list[MappingFragment] = field(default_factory=list)


@dataclass
class EntitySetMapping:
    "Maps an entity set to storage, with one type mapping for each type in an inheritance hierarchy."

    entity_set: EntitySet
    entity_type_mappings: list[EntityTypeMapping] = field(default_factory=list)


@dataclass
class EntityContainerMapping:
    "Maps all entity sets of a conceptual container to storage."

    container: EntityContainer
    entity_set_mappings: list[EntitySetMapping] = field(default_factory=list)


class MetadataWorkspace:
    "A collection of metadata items organized into data spaces."

    items: dict[DataSpace, list[Any]]

    def __init__(self) -> None:
        self.items = {space: [] for space in DataSpace}

    def register(self, space: DataSpace, *items: Any) -> None:
        "Adds items to a data space."

        self.items[space].extend(items)

    def get_items(self, space: DataSpace, item_type: type[T]) -> list[T]:
        "Returns all items of the given type in a data space."

        return [item for item in self.items[space] if isinstance(item, item_type)]

    def __len__(self) -> int:
        return sum(len(items) for items in self.items.values())
