"""
Builds a metadata workspace from SQLAlchemy declarative mappings.

* Columns of type `IntegerEnum(E)` become properties of enumeration type `E`. Such columns store the integer value of
  a member, which is what the `Id` column of a lookup table holds.
* Columns of type `sqlalchemy.Enum(E)` also become properties of enumeration type `E`, but SQLAlchemy stores the
  member name in them rather than the integer value, so their values do not match the keys of the lookup table. A
  warning is logged for each such column.
* Attributes declared with `composite()` become properties of a complex type.
* Classes mapped with single-table inheritance have no entity set of their own; their columns are mapped in a type
  mapping of their own within the entity set of the class that owns the table.
* Classes mapped with joined-table inheritance have an entity set and a table of their own.
"""

import enum
import logging
from typing import Any, Iterable, Optional

import sqlalchemy
from sqlalchemy.orm import ColumnProperty, Composite, Mapper, registry
from strong_typing.inspection import dataclass_fields, is_dataclass_type, is_type_enum

from .workspace import (
    ComplexPropertyMapping,
    ComplexTypeMapping,
    DataSpace,
    EdmComplexType,
    EdmEntityType,
    EdmEnumType,
    EdmProperty,
    EntityContainer,
    EntityContainerMapping,
    EntitySet,
    EntitySetMapping,
    EntityTypeMapping,
    MappingFragment,
    MetadataWorkspace,
    ObjectEntityType,
    ObjectEnumType,
    PropertyMapping,
    ScalarPropertyMapping,
    StoreEntitySet,
)


LOGGER = logging.getLogger("pylookupsync")


class IntegerEnum(sqlalchemy.TypeDecorator[enum.Enum]):
    """
    Persists an enumeration member as its integer value.

    Example:
    ```
    color: Mapped[Color] = mapped_column(IntegerEnum(Color))
    ```
    """

    impl = sqlalchemy.Integer
    cache_ok = True

    enum_class: type[enum.Enum]

    def __init__(self, enum_class: type[enum.Enum]) -> None:
        super().__init__()
        self.enum_class = enum_class

    def process_bind_param(
        self, value: Optional[enum.Enum], dialect: sqlalchemy.Dialect
    ) -> Optional[int]:
        return value.value if value is not None else None

    def process_result_value(
        self, value: Optional[int], dialect: sqlalchemy.Dialect
    ) -> Optional[enum.Enum]:
        return self.enum_class(value) if value is not None else None


def _enum_class(column: sqlalchemy.Column[Any]) -> Optional[type[enum.Enum]]:
    "The enumeration class of a column that stores enumeration members, if any."

    column_type = column.type
    if isinstance(column_type, IntegerEnum):
        return column_type.enum_class

    enum_class = getattr(column_type, "enum_class", None)
    if is_type_enum(enum_class):
        LOGGER.warning(
            "column `%s` stores member names of `%s`, which do not match lookup table keys; use `IntegerEnum` instead",
            column,
            enum_class.__name__,
        )
        return enum_class
    return None


def _storage_owner(mapper: Mapper[Any]) -> Mapper[Any]:
    "The mapper that owns the table in which instances of the mapped class are stored."

    while mapper.single and mapper.inherits is not None:
        mapper = mapper.inherits
    return mapper


def _own_column(mapper: Mapper[Any], prop: ColumnProperty[Any]) -> sqlalchemy.Column[Any]:
    "The column of a property that lives in the table of the mapper."

    for column in prop.columns:
        if getattr(column, "table", None) is mapper.local_table:
            return column  # type: ignore[return-value]
    return prop.columns[0]  # type: ignore[return-value]


class _WorkspaceBuilder:
    workspace: MetadataWorkspace
    enum_types: dict[type[enum.Enum], EdmEnumType]

    def __init__(self) -> None:
        self.workspace = MetadataWorkspace()
        self.enum_types = {}

    def get_enum_type(self, enum_class: type[enum.Enum]) -> EdmEnumType:
        edm_enum_type = self.enum_types.get(enum_class)
        if edm_enum_type is None:
            edm_enum_type = EdmEnumType(enum_class.__name__)
            self.enum_types[enum_class] = edm_enum_type
            self.workspace.register(
                DataSpace.OBJECT, ObjectEnumType(enum_class.__name__, enum_class)
            )
            self.workspace.register(DataSpace.CONCEPTUAL, edm_enum_type)
        return edm_enum_type

    def scalar_property(
        self, name: str, column: sqlalchemy.Column[Any]
    ) -> ScalarPropertyMapping:
        enum_class = _enum_class(column)
        edm_property = EdmProperty(
            name,
            enum_type=self.get_enum_type(enum_class) if enum_class is not None else None,
            nullable=bool(column.nullable),
        )
        return ScalarPropertyMapping(edm_property, column.name)

    def complex_property(self, prop: Composite[Any]) -> ComplexPropertyMapping:
        composite_class = prop.composite_class
        columns: list[sqlalchemy.Column[Any]] = list(prop.columns)  # type: ignore[arg-type]
        if is_dataclass_type(composite_class):
            names = [field.name for field in dataclass_fields(composite_class)]
        else:
            names = [column.key for column in columns]
        if len(names) != len(columns):
            raise TypeError(
                f"composite attribute `{prop.key}` has {len(names)} fields but {len(columns)} columns"
            )

        nested_mappings: list[PropertyMapping] = [
            self.scalar_property(name, column) for name, column in zip(names, columns)
        ]
        complex_type = EdmComplexType(
            getattr(composite_class, "__name__", prop.key),
            [mapping.property for mapping in nested_mappings],
        )
        self.workspace.register(DataSpace.CONCEPTUAL, complex_type)

        return ComplexPropertyMapping(
            EdmProperty(prop.key, complex_type=complex_type),
            [ComplexTypeMapping(complex_type, nested_mappings)],
        )

    def property_mappings(self, mapper: Mapper[Any]) -> list[PropertyMapping]:
        "Maps the attributes declared by the class of a mapper (excluding inherited attributes)."

        composite_columns: set[Any] = set()
        for composite in mapper.composites:
            composite_columns.update(composite.columns)

        mappings: list[PropertyMapping] = []
        for prop in mapper.column_attrs:
            if prop.parent is not mapper:
                continue
            if any(column in composite_columns for column in prop.columns):
                continue
            mappings.append(self.scalar_property(prop.key, _own_column(mapper, prop)))
        for composite in mapper.composites:
            if composite.parent is not mapper:
                continue
            mappings.append(self.complex_property(composite))
        return mappings

    def build(
        self, mappers: list[Mapper[Any]], container_name: str
    ) -> MetadataWorkspace:
        entity_types: dict[Mapper[Any], EdmEntityType] = {
            mapper: EdmEntityType(mapper.class_.__name__) for mapper in mappers
        }
        for mapper, entity_type in entity_types.items():
            if mapper.inherits is not None:
                entity_type.base_type = entity_types.get(mapper.inherits)

        # only mappers that own a table have an entity set and a mapping fragment
        fragments: dict[Mapper[Any], MappingFragment] = {}
        for mapper in mappers:
            if _storage_owner(mapper) is not mapper:
                continue
            table = mapper.local_table
            table_name: str = getattr(table, "name", str(table))
            fragments[mapper] = MappingFragment(
                StoreEntitySet(table_name, table_name, getattr(table, "schema", None))
            )

        container = EntityContainer(container_name)
        container_mapping = EntityContainerMapping(container)
        set_mappings: dict[Mapper[Any], EntitySetMapping] = {}
        for mapper, fragment in fragments.items():
            entity_type = entity_types[mapper]
            entity_set = EntitySet(entity_type.name, entity_type)
            container.entity_sets.append(entity_set)
            set_mappings[mapper] = EntitySetMapping(
                entity_set, [EntityTypeMapping(entity_type, [fragment])]
            )
            container_mapping.entity_set_mappings.append(set_mappings[mapper])
            self.workspace.register(DataSpace.STORAGE, fragment.store_entity_set)

        for mapper in mappers:
            mappings = self.property_mappings(mapper)
            entity_types[mapper].properties.extend(m.property for m in mappings)

            owner = _storage_owner(mapper)
            if owner is mapper:
                fragments[mapper].property_mappings.extend(mappings)
            else:
                # a derived class maps its own columns in the table of the class that owns it
                fragment = MappingFragment(fragments[owner].store_entity_set, mappings)
                set_mappings[owner].entity_type_mappings.append(
                    EntityTypeMapping(entity_types[mapper], [fragment])
                )

        for mapper, entity_type in entity_types.items():
            self.workspace.register(
                DataSpace.OBJECT, ObjectEntityType(entity_type.name, mapper.class_)
            )
            self.workspace.register(DataSpace.CONCEPTUAL, entity_type)
        self.workspace.register(DataSpace.CONCEPTUAL, container)
        self.workspace.register(DataSpace.MAPPING, container_mapping)
        return self.workspace


def workspace_from_mappers(
    mappers: Iterable[Mapper[Any]], container_name: str = "default"
) -> MetadataWorkspace:
    """
    Builds a metadata workspace from a collection of configured SQLAlchemy mappers.

    :param mappers: Mappers of all classes in the model, including all classes in an inheritance hierarchy.
    :param container_name: Name of the entity container in the conceptual layer.
    """

    return _WorkspaceBuilder().build(list(mappers), container_name)


def workspace_from_registry(
    mapper_registry: registry, container_name: str = "default"
) -> MetadataWorkspace:
    """
    Builds a metadata workspace from the mappers of a SQLAlchemy declarative registry.

    Classes are listed in alphabetical order of their name.

    :param mapper_registry: A registry, e.g. `Base.registry` of a declarative base class.
    :param container_name: Name of the entity container in the conceptual layer.
    """

    mapper_registry.configure()
    mappers = sorted(mapper_registry.mappers, key=lambda m: m.class_.__name__)
    return workspace_from_mappers(mappers, container_name)
