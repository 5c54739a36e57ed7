import enum
import logging
from typing import Optional, Protocol, Sequence, TypeVar

from ..model.description import EnumReference
from .workspace import (
    ComplexPropertyMapping,
    DataSpace,
    EdmEntityType,
    EdmEnumType,
    EdmProperty,
    EntityContainer,
    EntityContainerMapping,
    EntitySet,
    EntitySetMapping,
    MappingFragment,
    MetadataWorkspace,
    ObjectEntityType,
    ObjectEnumType,
    PropertyMapping,
    ScalarPropertyMapping,
)

LOGGER = logging.getLogger("pylookupsync")

T = TypeVar("T")


@enum.unique
class ResolutionStep(enum.Enum):
    "A step in the chain of lookups that leads from an entity type to a storage column."

    ENTITY = "entity"
    CONTAINER = "container"
    ENTITY_SET = "entity-set"
    CONTAINER_MAPPING = "container-mapping"
    ENTITY_SET_MAPPING = "entity-set-mapping"
    FRAGMENT = "fragment"
    PROPERTY_MAPPING = "property-mapping"
    COMPLEX_TYPE_MAPPING = "complex-type-mapping"
    NESTED_PROPERTY_MAPPING = "nested-property-mapping"
    COLUMN_MAPPING = "column-mapping"
    ENUM_TYPE = "enum-type"


class MappingResolutionError(RuntimeError):
    """
    Raised when model metadata cannot be resolved unambiguously to a storage table or column.

    :param step: The lookup that failed.
    :param count: Number of items found where exactly one was expected, if applicable.
    :param subject: The entity, property or type being resolved.
    :param detail: Explanation when the failure is not a multiplicity mismatch.
    """

    step: ResolutionStep
    count: Optional[int]
    subject: str
    detail: Optional[str]

    def __init__(
        self,
        step: ResolutionStep,
        count: Optional[int],
        subject: str,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(step, count, subject, detail)
        self.step = step
        self.count = count
        self.subject = subject
        self.detail = detail

    def __str__(self) -> str:
        if self.detail is not None:
            return f"{self.step.value} lookup failed for {self.subject}: {self.detail}"
        else:
            return f"expected exactly one {self.step.value} for {self.subject}; found: {self.count}"


class StorageMapping(Protocol):
    "Maps a property of an entity type to the table and column that store it."

    def resolve(
        self, entity_name: str, property_path: Sequence[str]
    ) -> Optional[tuple[str, str]]:
        """
        Resolves a property to a physical table and column name.

        :param entity_name: Name of the entity type.
        :param property_path: Name of a property, optionally followed by the name of a property nested in it.
        :returns: A (table, column) pair, or `None` if the entity type has no storage mapping of its own.
        """
        ...


def _single(items: list[T], step: ResolutionStep, subject: str) -> T:
    if len(items) != 1:
        raise MappingResolutionError(step, len(items), subject)
    return items[0]


def _mapping_kind(mapping: PropertyMapping) -> str:
    return type(mapping).__name__


class MappingResolver:
    """
    Resolves enumeration-typed properties to physical tables and columns by walking model metadata.

    :param workspace: Object, conceptual, storage and mapping layer metadata.
    """

    workspace: MetadataWorkspace

    def __init__(self, workspace: MetadataWorkspace) -> None:
        self.workspace = workspace

    def find_entity_type(self, name: str) -> EdmEntityType:
        "Locates the conceptual entity type that corresponds to an object layer type."

        return _single(
            [
                e
                for e in self.workspace.get_items(DataSpace.CONCEPTUAL, EdmEntityType)
                if e.name == name
            ],
            ResolutionStep.ENTITY,
            f"entity type `{name}`",
        )

    def _get_container(self, subject: str) -> EntityContainer:
        return _single(
            self.workspace.get_items(DataSpace.CONCEPTUAL, EntityContainer),
            ResolutionStep.CONTAINER,
            subject,
        )

    def _get_entity_sets(self, entity_type: EdmEntityType) -> list[EntitySet]:
        container = self._get_container(f"entity type `{entity_type.name}`")
        return [
            s for s in container.entity_sets if s.element_type.name == entity_type.name
        ]

    def _find_entity_set_mapping(
        self, entity_type: EdmEntityType
    ) -> Optional[EntitySetMapping]:
        subject = f"entity type `{entity_type.name}`"
        entity_sets = self._get_entity_sets(entity_type)
        if not entity_sets:
            return None
        entity_set = _single(entity_sets, ResolutionStep.ENTITY_SET, subject)

        container_mapping = _single(
            self.workspace.get_items(DataSpace.MAPPING, EntityContainerMapping),
            ResolutionStep.CONTAINER_MAPPING,
            subject,
        )
        return _single(
            [
                m
                for m in container_mapping.entity_set_mappings
                if m.entity_set.name == entity_set.name
            ],
            ResolutionStep.ENTITY_SET_MAPPING,
            subject,
        )

    def find_fragment(self, entity_type: EdmEntityType) -> Optional[MappingFragment]:
        """
        Locates the storage mapping fragment for an entity type.

        :returns: The mapping fragment, or `None` if the entity type has no entity set of its own, which is the case
            for types that share the table of their base type in an inheritance hierarchy.
        """

        subject = f"entity type `{entity_type.name}`"
        try:
            entity_set_mapping = self._find_entity_set_mapping(entity_type)
            if entity_set_mapping is None:
                return None

            # with an inheritance hierarchy, there is one type mapping per type; the first is the base type
            entity_type_mapping = entity_set_mapping.entity_type_mappings[0]
            return _single(
                entity_type_mapping.fragments, ResolutionStep.FRAGMENT, subject
            )
        except MappingResolutionError:
            raise
        except Exception as e:
            raise MappingResolutionError(
                ResolutionStep.FRAGMENT, None, subject, detail=repr(e)
            ) from e

    def _find_property_mapping(
        self,
        mappings: list[PropertyMapping],
        prop: EdmProperty,
        step: ResolutionStep,
    ) -> PropertyMapping:
        return _single(
            [m for m in mappings if m.property.name == prop.name],
            step,
            f"property `{prop.name}`",
        )

    def _get_scalar_column(self, mapping: PropertyMapping) -> str:
        if not isinstance(mapping, ScalarPropertyMapping):
            raise MappingResolutionError(
                ResolutionStep.COLUMN_MAPPING,
                None,
                f"property `{mapping.property.name}`",
                detail=f"expected: a column mapping; got: {_mapping_kind(mapping)}",
            )
        return mapping.column

    def get_column_name(
        self,
        fragment: MappingFragment,
        prop: EdmProperty,
        nested: Optional[EdmProperty] = None,
    ) -> str:
        """
        Resolves a property to the name of the column that stores it.

        :param fragment: The mapping fragment of the entity type that declares the property.
        :param prop: A property of the entity type.
        :param nested: A property of the complex type of `prop`, if `prop` is an embedded value type.
        """

        mapping = self._find_property_mapping(
            fragment.property_mappings, prop, ResolutionStep.PROPERTY_MAPPING
        )
        if nested is None:
            return self._get_scalar_column(mapping)

        if not isinstance(mapping, ComplexPropertyMapping):
            raise MappingResolutionError(
                ResolutionStep.COMPLEX_TYPE_MAPPING,
                None,
                f"property `{prop.name}`",
                detail=f"expected: a complex property mapping; got: {_mapping_kind(mapping)}",
            )
        type_mapping = _single(
            mapping.type_mappings,
            ResolutionStep.COMPLEX_TYPE_MAPPING,
            f"property `{prop.name}`",
        )
        nested_mapping = self._find_property_mapping(
            type_mapping.property_mappings,
            nested,
            ResolutionStep.NESTED_PROPERTY_MAPPING,
        )
        return self._get_scalar_column(nested_mapping)

    def get_enum_type(self, edm_enum_type: EdmEnumType) -> type[enum.Enum]:
        "Maps a conceptual enumeration type to its Python class."

        object_type = _single(
            [
                t
                for t in self.workspace.get_items(DataSpace.OBJECT, ObjectEnumType)
                if t.name == edm_enum_type.name
            ],
            ResolutionStep.ENUM_TYPE,
            f"enumeration type `{edm_enum_type.name}`",
        )
        return object_type.python_type

    def _has_entity_set(self, entity_type: EdmEntityType) -> bool:
        return bool(self._get_entity_sets(entity_type))

    def _shared_table_descendants(
        self, entity_type: EdmEntityType
    ) -> list[EdmEntityType]:
        "Derived types that have no entity set of their own and are stored in the table of the given type."

        descendants: list[EdmEntityType] = []
        for candidate in self.workspace.get_items(
            DataSpace.CONCEPTUAL, EdmEntityType
        ):
            if candidate.name == entity_type.name or self._has_entity_set(candidate):
                continue

            base = candidate.base_type
            while base is not None and base.name != entity_type.name:
                if self._has_entity_set(base):
                    base = None
                    break
                base = base.base_type

            if base is not None:
                descendants.append(candidate)
        return descendants

    def _property_references(
        self, fragment: MappingFragment, prop: EdmProperty
    ) -> list[EnumReference]:
        table = fragment.store_entity_set.table
        if prop.enum_type is not None:
            return [
                EnumReference(
                    self.get_enum_type(prop.enum_type),
                    table,
                    self.get_column_name(fragment, prop),
                )
            ]
        elif prop.complex_type is not None:
            # complex types are never nested more than one level deep
            return [
                EnumReference(
                    self.get_enum_type(nested.enum_type),
                    table,
                    self.get_column_name(fragment, prop, nested),
                )
                for nested in prop.complex_type.properties
                if nested.enum_type is not None
            ]
        else:
            return []

    def _descendant_references(
        self,
        entity_set_mapping: EntitySetMapping,
        root_fragment: MappingFragment,
        entity_type: EdmEntityType,
    ) -> list[EnumReference]:
        "Resolves the properties of a shared-table derived type with its own type mapping or that of the base type."

        fragments = [
            f
            for m in entity_set_mapping.entity_type_mappings
            if m.entity_type.name == entity_type.name
            for f in m.fragments
        ]
        if not any(f is root_fragment for f in fragments):
            fragments.append(root_fragment)

        references: list[EnumReference] = []
        for prop in entity_type.properties:
            if prop.enum_type is None and prop.complex_type is None:
                continue

            fragment = next(
                (
                    f
                    for f in fragments
                    if any(m.property.name == prop.name for m in f.property_mappings)
                ),
                None,
            )
            if fragment is None:
                LOGGER.debug(
                    "skipping unmapped property `%s` of entity type `%s`",
                    prop.name,
                    entity_type.name,
                )
                continue

            references.extend(self._property_references(fragment, prop))
        return references

    def find_enum_references(self) -> list[EnumReference]:
        """
        Finds all columns that store enumeration values, with table and column names resolved to physical names.

        Entity types that share the table of a base type are skipped; their properties are resolved with their own
        type mapping within the entity set of the base type, falling back to the mapping fragment of the base type.
        """

        references: list[EnumReference] = []
        for object_type in self.workspace.get_items(
            DataSpace.OBJECT, ObjectEntityType
        ):
            entity_type = self.find_entity_type(object_type.name)
            fragment = self.find_fragment(entity_type)
            if fragment is None:
                LOGGER.debug(
                    "skipping entity type `%s` with no entity set of its own",
                    entity_type.name,
                )
                continue

            for prop in entity_type.properties:
                references.extend(self._property_references(fragment, prop))

            descendants = self._shared_table_descendants(entity_type)
            if descendants:
                entity_set_mapping = self._find_entity_set_mapping(entity_type)
                assert entity_set_mapping is not None
                for descendant in descendants:
                    references.extend(
                        self._descendant_references(
                            entity_set_mapping, fragment, descendant
                        )
                    )

        LOGGER.debug("found %d enumeration reference(s) in metadata", len(references))
        return references

    def resolve(
        self, entity_name: str, property_path: Sequence[str]
    ) -> Optional[tuple[str, str]]:
        if len(property_path) not in (1, 2):
            raise ValueError(
                f"expected: a property name optionally followed by a nested property name; got: {property_path}"
            )

        entity_type = self.find_entity_type(entity_name)
        fragment = self.find_fragment(entity_type)
        if fragment is None:
            return None

        prop = _single(
            [p for p in entity_type.properties if p.name == property_path[0]],
            ResolutionStep.PROPERTY_MAPPING,
            f"property `{entity_name}.{property_path[0]}`",
        )
        nested: Optional[EdmProperty] = None
        if len(property_path) == 2:
            if prop.complex_type is None:
                raise MappingResolutionError(
                    ResolutionStep.COMPLEX_TYPE_MAPPING,
                    None,
                    f"property `{entity_name}.{prop.name}`",
                    detail="property is not of a complex type",
                )
            nested = _single(
                [p for p in prop.complex_type.properties if p.name == property_path[1]],
                ResolutionStep.NESTED_PROPERTY_MAPPING,
                f"property `{entity_name}.{prop.name}.{property_path[1]}`",
            )

        return fragment.store_entity_set.table, self.get_column_name(
            fragment, prop, nested
        )
