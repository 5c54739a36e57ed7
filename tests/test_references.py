import unittest

from pylookupsync.formation.inspection import describe_container
from pylookupsync.formation.references import distinct_enum_types, find_references
from pylookupsync.model.description import (
    EntityDescription,
    EntitySetDescription,
    EnumReference,
    FieldDescription,
    FieldKind,
    ModelDescription,
)
from tests.model.shop import Color, OrderStatus, ShopContext, Size
from tests.params import configure

if __name__ == "__main__":
    configure()


class TestReferences(unittest.TestCase):
    def test_find_references(self) -> None:
        references = find_references(describe_container(ShopContext))
        self.assertEqual(
            references,
            [
                EnumReference(Color, "customers", "favorite_color"),
                EnumReference(Size, "customers", "shirt_size"),
                EnumReference(Color, "customers", "address__kind"),
                EnumReference(Size, "customers", "address__preferred_size"),
                EnumReference(OrderStatus, "orders", "status"),
                EnumReference(Color, "orders", "gift_wrap_color"),
            ],
        )

    def test_distinct_enum_types(self) -> None:
        references = find_references(describe_container(ShopContext))
        self.assertEqual(distinct_enum_types(references), [Color, Size, OrderStatus])
        self.assertEqual(distinct_enum_types([]), [])

    def test_optional_unwrapping(self) -> None:
        model = ModelDescription(
            (
                EntitySetDescription(
                    "items",
                    EntityDescription(
                        "Item",
                        (
                            FieldDescription("required", FieldKind.ENUM, enum_type=Color),
                            FieldDescription(
                                "optional", FieldKind.OPTIONAL_ENUM, enum_type=Color
                            ),
                        ),
                    ),
                ),
            )
        )
        required, optional = find_references(model)
        self.assertIs(required.enum_type, optional.enum_type)
        self.assertEqual(distinct_enum_types([required, optional]), [Color])

    def test_embedded_nesting(self) -> None:
        model = ModelDescription(
            (
                EntitySetDescription(
                    "items",
                    EntityDescription(
                        "Item",
                        (
                            FieldDescription("kind", FieldKind.ENUM, enum_type=Color),
                            FieldDescription(
                                "box",
                                FieldKind.EMBEDDED,
                                fields=(
                                    FieldDescription(
                                        "kind", FieldKind.ENUM, enum_type=Size
                                    ),
                                    FieldDescription("label"),
                                ),
                            ),
                        ),
                    ),
                ),
            )
        )
        self.assertEqual(
            find_references(model),
            [
                EnumReference(Color, "items", "kind"),
                EnumReference(Size, "items", "box__kind"),
            ],
        )

    def test_no_references(self) -> None:
        model = ModelDescription(
            (
                EntitySetDescription(
                    "notes", EntityDescription("Note", (FieldDescription("text"),))
                ),
            )
        )
        self.assertEqual(find_references(model), [])
        self.assertEqual(find_references(ModelDescription()), [])


if __name__ == "__main__":
    unittest.main()
