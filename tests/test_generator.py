import enum
import unittest

from pylookupsync.base import BaseGenerator, LookupOptions
from pylookupsync.dialect.mssql.generator import MSSQLGenerator
from pylookupsync.dialect.postgresql.generator import PostgreSQLGenerator
from pylookupsync.dialect.sqlite.generator import SQLiteGenerator
from pylookupsync.formation.object_types import (
    VALUES_BATCH_SIZE,
    FormationError,
    TableFormationError,
)
from pylookupsync.model.id_types import QualifiedId
from tests.model.shop import Color, Empty, Quoted
from tests.params import configure

if __name__ == "__main__":
    configure()


class Flavor(enum.Enum):
    SWEET = "sweet"
    SOUR = "sour"


Large = enum.Enum("Large", [(f"M{i}", i) for i in range(2 * VALUES_BATCH_SIZE + 1)])


class TestOptions(unittest.TestCase):
    def test_defaults(self) -> None:
        options = LookupOptions()
        self.assertEqual(options.name_length, 255)
        self.assertEqual(options.table_prefix, "Enum_")
        self.assertIsNone(options.namespace)

    def test_validation(self) -> None:
        with self.assertRaises(ValueError):
            LookupOptions(name_length=0)
        with self.assertRaises(ValueError):
            LookupOptions(name_length=-1)
        with self.assertRaises(ValueError):
            LookupOptions(table_prefix="1st_")
        with self.assertRaises(ValueError):
            LookupOptions(table_prefix='Enum"; DROP TABLE x; --')
        LookupOptions(table_prefix="")
        LookupOptions(table_prefix=None)
        LookupOptions(table_prefix="_lookup_")

    def test_table_name(self) -> None:
        generator = SQLiteGenerator(LookupOptions())
        self.assertEqual(generator.get_table_name(Color), QualifiedId(None, "Enum_Color"))
        generator = SQLiteGenerator(LookupOptions(table_prefix=None, namespace="lookup"))
        self.assertEqual(generator.get_table_name(Color), QualifiedId("lookup", "Color"))
        generator = SQLiteGenerator(LookupOptions(table_prefix=""))
        self.assertEqual(generator.get_table_name(Color), QualifiedId(None, "Color"))


class TestGenerator(unittest.TestCase):
    def test_formation_errors(self) -> None:
        generator: BaseGenerator = SQLiteGenerator(LookupOptions(name_length=3))
        with self.assertRaises(TableFormationError) as cm:
            generator.get_create_table_stmt(Color)
        self.assertIn('"Enum_Color"', str(cm.exception))
        self.assertIn("GREEN", str(cm.exception))

        generator = SQLiteGenerator(LookupOptions(name_length=5))
        generator.get_create_table_stmt(Color)

        with self.assertRaises(FormationError):
            generator.get_reconcile_stmts(Flavor)

    def test_chunked_values(self) -> None:
        generator = SQLiteGenerator(LookupOptions())
        statements = generator.get_reconcile_stmts(Large)
        inserts = [
            s for s in statements if s.startswith('INSERT INTO "temp"."staging_Enum_Large"')
        ]
        self.assertEqual(len(inserts), 3)
        self.assertTrue(inserts[0].endswith("(999, 'M999');"))
        self.assertTrue(inserts[2].endswith(f"({2 * VALUES_BATCH_SIZE}, 'M{2 * VALUES_BATCH_SIZE}');"))

    def test_empty_enum(self) -> None:
        generator = SQLiteGenerator(LookupOptions())
        statements = generator.get_reconcile_stmts(Empty)
        self.assertFalse(any(s.startswith('INSERT INTO "temp"') for s in statements))
        self.assertTrue(any(s.startswith('DELETE FROM "Enum_Empty"') for s in statements))

    def test_escaping(self) -> None:
        for generator in [
            SQLiteGenerator(LookupOptions()),
            PostgreSQLGenerator(LookupOptions()),
            MSSQLGenerator(LookupOptions()),
        ]:
            with self.subTest(generator=type(generator).__name__):
                statements = generator.get_reconcile_stmts(Quoted)
                self.assertIn(
                    "VALUES\n(1, 'O''Brien'),\n(2, 'Say \"hi\"'),\n(3, '''''');",
                    "\n".join(statements),
                )

    def test_quoted_identifier(self) -> None:
        QuotedName = enum.Enum('Bad"Name', [("A", 1)])
        generator = SQLiteGenerator(LookupOptions())
        self.assertIn(
            'CREATE TABLE IF NOT EXISTS "Enum_Bad""Name" (',
            generator.get_create_table_stmt(QuotedName),
        )


class TestSQLiteGenerator(unittest.TestCase):
    def test_create_table(self) -> None:
        generator = SQLiteGenerator(LookupOptions())
        self.assertMultiLineEqual(
            generator.get_create_table_stmt(Color),
            'CREATE TABLE IF NOT EXISTS "Enum_Color" (\n'
            '"Id" integer NOT NULL,\n'
            '"Name" varchar(255) NOT NULL,\n'
            'CONSTRAINT "pk_Enum_Color" PRIMARY KEY ("Id")\n'
            ");",
        )

    def test_create_table_namespace(self) -> None:
        generator = SQLiteGenerator(
            LookupOptions(name_length=50, table_prefix=None, namespace="lookup")
        )
        self.assertMultiLineEqual(
            generator.get_create_table_stmt(Color),
            'CREATE TABLE IF NOT EXISTS "lookup"."Color" (\n'
            '"Id" integer NOT NULL,\n'
            '"Name" varchar(50) NOT NULL,\n'
            'CONSTRAINT "pk_lookup_Color" PRIMARY KEY ("Id")\n'
            ");",
        )

    def test_reconcile(self) -> None:
        generator = SQLiteGenerator(LookupOptions())
        self.assertEqual(
            generator.get_reconcile_stmts(Color),
            [
                'DROP TABLE IF EXISTS "temp"."staging_Enum_Color";',
                'CREATE TABLE "temp"."staging_Enum_Color" (\n'
                '"Id" integer NOT NULL,\n'
                '"Name" varchar(255) NOT NULL\n'
                ");",
                'INSERT INTO "temp"."staging_Enum_Color" ("Id", "Name") VALUES\n'
                "(1, 'RED'),\n"
                "(2, 'GREEN'),\n"
                "(3, 'BLUE');",
                'UPDATE "Enum_Color" SET "Name" = (\n'
                'SELECT source."Name" FROM "temp"."staging_Enum_Color" AS source WHERE source."Id" = "Enum_Color"."Id"\n'
                ")\n"
                "WHERE EXISTS (\n"
                'SELECT 1 FROM "temp"."staging_Enum_Color" AS source\n'
                'WHERE source."Id" = "Enum_Color"."Id" AND source."Name" <> "Enum_Color"."Name"\n'
                ");",
                'INSERT INTO "Enum_Color" ("Id", "Name")\n'
                'SELECT source."Id", source."Name" FROM "temp"."staging_Enum_Color" AS source\n'
                'WHERE NOT EXISTS (SELECT 1 FROM "Enum_Color" AS target WHERE target."Id" = source."Id");',
                'DELETE FROM "Enum_Color"\n'
                'WHERE NOT EXISTS (SELECT 1 FROM "temp"."staging_Enum_Color" AS source WHERE source."Id" = "Enum_Color"."Id");',
                'DROP TABLE "temp"."staging_Enum_Color";',
            ],
        )


class TestPostgreSQLGenerator(unittest.TestCase):
    def test_create_table(self) -> None:
        generator = PostgreSQLGenerator(LookupOptions(namespace="lookup"))
        self.assertMultiLineEqual(
            generator.get_create_table_stmt(Color),
            'CREATE TABLE IF NOT EXISTS "lookup"."Enum_Color" (\n'
            '"Id" integer NOT NULL,\n'
            '"Name" varchar(255) NOT NULL,\n'
            'CONSTRAINT "pk_Enum_Color" PRIMARY KEY ("Id")\n'
            ");",
        )

    def test_reconcile(self) -> None:
        generator = PostgreSQLGenerator(LookupOptions())
        self.assertEqual(
            generator.get_reconcile_stmts(Color),
            [
                'CREATE TEMPORARY TABLE "staging_Enum_Color" (\n'
                '"Id" integer NOT NULL,\n'
                '"Name" varchar(255) NOT NULL\n'
                ") ON COMMIT DROP;",
                'INSERT INTO "staging_Enum_Color" ("Id", "Name") VALUES\n'
                "(1, 'RED'),\n"
                "(2, 'GREEN'),\n"
                "(3, 'BLUE');",
                'INSERT INTO "Enum_Color" AS target ("Id", "Name")\n'
                'SELECT "Id", "Name" FROM "staging_Enum_Color"\n'
                'ON CONFLICT ("Id") DO UPDATE SET "Name" = EXCLUDED."Name"\n'
                'WHERE target."Name" <> EXCLUDED."Name";',
                'DELETE FROM "Enum_Color" AS target\n'
                'WHERE NOT EXISTS (SELECT 1 FROM "staging_Enum_Color" AS source WHERE source."Id" = target."Id");',
            ],
        )


class TestMSSQLGenerator(unittest.TestCase):
    def test_create_table(self) -> None:
        generator = MSSQLGenerator(LookupOptions())
        self.assertMultiLineEqual(
            generator.get_create_table_stmt(Color),
            "IF OBJECT_ID(N'[Enum_Color]', N'U') IS NULL\n"
            'CREATE TABLE "Enum_Color" (\n'
            '"Id" int NOT NULL,\n'
            '"Name" nvarchar(255) NOT NULL,\n'
            'CONSTRAINT "pk_Enum_Color" PRIMARY KEY ("Id")\n'
            ");",
        )

    def test_create_table_namespace(self) -> None:
        generator = MSSQLGenerator(LookupOptions(namespace="look]up's", name_length=10000))
        statement = generator.get_create_table_stmt(Color)
        self.assertTrue(
            statement.startswith("IF OBJECT_ID(N'[look]]up''s].[Enum_Color]', N'U') IS NULL\n")
        )
        self.assertIn('"Name" nvarchar(max) NOT NULL', statement)

    def test_reconcile(self) -> None:
        generator = MSSQLGenerator(LookupOptions())
        self.assertEqual(
            generator.get_reconcile_stmts(Color),
            [
                "DROP TABLE IF EXISTS #lookups;",
                "CREATE TABLE #lookups (\n"
                '"Id" int NOT NULL,\n'
                '"Name" nvarchar(255) NOT NULL\n'
                ");",
                'INSERT INTO #lookups ("Id", "Name") VALUES\n'
                "(1, 'RED'),\n"
                "(2, 'GREEN'),\n"
                "(3, 'BLUE');",
                'MERGE INTO "Enum_Color" AS target\n'
                "USING #lookups AS source\n"
                'ON source."Id" = target."Id"\n'
                'WHEN MATCHED AND CAST(source."Name" AS varbinary(max)) <> CAST(target."Name" AS varbinary(max)) THEN\n'
                'UPDATE SET target."Name" = source."Name"\n'
                "WHEN NOT MATCHED BY TARGET THEN\n"
                'INSERT ("Id", "Name") VALUES (source."Id", source."Name")\n'
                "WHEN NOT MATCHED BY SOURCE THEN\n"
                "DELETE;",
                "DROP TABLE #lookups;",
            ],
        )


if __name__ == "__main__":
    unittest.main()
