import unittest

from mail_admin.schema import (
    Dynamic,
    FieldDefinition,
    Required,
    SchemaError,
    Schemas,
    Select,
    Static,
    Text,
    display_if_eq,
    resolve_options,
)


def _fields():
    return [
        FieldDefinition(name="kind", typ=Select(source=Static((("a", "A"), ("b", "B")))), default="a"),
        FieldDefinition(name="detail", typ=Text(), validators=(Required(),), display_if=display_if_eq("kind", ["b"])),
        FieldDefinition(name="note", typ=Text()),
    ]


class TestSchemaRegistry(unittest.TestCase):
    def test_lookup_preserves_order_and_names(self):
        schemas = Schemas()
        schemas.register("sample", _fields())
        schema = schemas.lookup("sample")
        self.assertEqual(schema.name, "sample")
        self.assertEqual(schema.names, ["kind", "detail", "note"])
        self.assertEqual(schema.fields, tuple(_fields()))
        self.assertIn("sample", schemas)

    def test_duplicate_field_rejected(self):
        schemas = Schemas()
        with self.assertRaises(SchemaError):
            schemas.register("dup", [FieldDefinition(name="x"), FieldDefinition(name="x")])
        self.assertNotIn("dup", schemas)

    def test_duplicate_schema_rejected(self):
        schemas = Schemas()
        schemas.register("one", [FieldDefinition(name="x")])
        with self.assertRaises(SchemaError):
            schemas.register("one", [FieldDefinition(name="y")])

    def test_condition_on_unknown_field_rejected(self):
        schemas = Schemas()
        with self.assertRaises(SchemaError):
            schemas.register(
                "bad",
                [FieldDefinition(name="x", display_if=display_if_eq("missing", ["1"]))],
            )

    def test_unknown_schema(self):
        with self.assertRaises(SchemaError):
            Schemas().lookup("nope")

    def test_build_form_applies_defaults(self):
        schemas = Schemas()
        schemas.register("sample", _fields())
        form = schemas.build_form("sample")
        self.assertEqual(form.value("kind"), "a")
        self.assertIsNone(form.value("note"))

    def test_resolve_options(self):
        static = _fields()[0]
        self.assertEqual(resolve_options(static), [("a", "A"), ("b", "B")])

        dynamic = FieldDefinition(name="group", typ=Select(source=Dynamic("groups"), multi=True))
        self.assertEqual(resolve_options(dynamic), [])
        self.assertEqual(
            resolve_options(dynamic, {"groups": lambda: [("staff", "Staff")]}),
            [("staff", "Staff")],
        )
        self.assertEqual(resolve_options(_fields()[2]), [])
