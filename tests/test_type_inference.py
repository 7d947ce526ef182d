import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

import type_inference
from app.log_sink import LogSink
from basin.semantic_types import SemanticType


class TestInferFromName(unittest.TestCase):
    def test_name_rules(self) -> None:
        cases = {
            "email": SemanticType.EMAIL,
            "contact_email": SemanticType.EMAIL,
            "website_url": SemanticType.URL,
            "profile_link": SemanticType.URL,
            "price": SemanticType.NUMBER,
            "user_count": SemanticType.NUMBER,
            "is_admin": SemanticType.BOOLEAN,
            "enabled": SemanticType.BOOLEAN,
            "published_at": SemanticType.DATE,
            "created_at": SemanticType.DATE,
            "bio": SemanticType.TEXTAREA,
            "notes": SemanticType.TEXTAREA,
            "category": SemanticType.SELECT,
            "role": SemanticType.SELECT,
        }
        for name, expected in cases.items():
            with self.subTest(name=name):
                self.assertEqual(type_inference.infer(name), expected)

    def test_first_rule_wins(self) -> None:
        # email is checked before number, status before date
        self.assertEqual(type_inference.infer("email_count"), SemanticType.EMAIL)
        self.assertEqual(type_inference.infer("status_date"), SemanticType.BOOLEAN)

    def test_matching_is_case_insensitive(self) -> None:
        self.assertEqual(type_inference.infer("ContactEmail"), SemanticType.EMAIL)

    def test_unknown_name_falls_back_to_text_and_logs(self) -> None:
        sink = LogSink("test_inference").init()
        self.assertEqual(type_inference.infer("nickname", sink), SemanticType.TEXT)
        entries = sink.entries()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["event"], "inference_fallback")
        self.assertEqual(entries[0]["context"]["field"], "nickname")
        self.assertEqual(entries[0]["level"], "debug")

    def test_explicit_type_wins_over_name(self) -> None:
        self.assertEqual(type_inference.infer({"name": "contact_email", "field_type": "text"}), SemanticType.TEXT)
        self.assertEqual(type_inference.infer({"name": "title", "type": "integer"}), SemanticType.NUMBER)
        self.assertEqual(type_inference.infer({"name": "x", "semantic_type": SemanticType.UUID}), SemanticType.UUID)

    def test_unknown_explicit_type_is_ignored(self) -> None:
        self.assertEqual(type_inference.infer({"name": "price", "type": "money"}), SemanticType.NUMBER)

    def test_deterministic(self) -> None:
        raw = {"name": "order_total"}
        self.assertEqual(type_inference.infer(raw), type_inference.infer(dict(raw)))


class TestDescribe(unittest.TestCase):
    def test_format_label(self) -> None:
        self.assertEqual(type_inference.format_label("first_name"), "First Name")

    def test_describe_field_reads_validation_rules(self) -> None:
        descriptor = type_inference.describe_field(
            {
                "name": "code",
                "is_required": True,
                "validation_rules": {"min_length": 2, "maxLength": 8, "pattern": "^[A-Z]+$"},
            }
        )
        self.assertTrue(descriptor.required)
        self.assertEqual(descriptor.min_length, 2)
        self.assertEqual(descriptor.max_length, 8)
        self.assertEqual(descriptor.pattern, "^[A-Z]+$")
        self.assertEqual(descriptor.display_name, "Code")

    def test_describe_field_parses_string_flags(self) -> None:
        optional = type_inference.describe_field({"name": "code", "is_required": "false", "is_primary": "0"})
        self.assertFalse(optional.required)
        self.assertFalse(optional.is_primary)
        required = type_inference.describe_field({"name": "code", "required": "True", "is_primary": "true"})
        self.assertTrue(required.required)
        self.assertTrue(required.is_primary)

    def test_describe_field_options(self) -> None:
        descriptor = type_inference.describe_field(
            {"name": "category", "options": ["a", {"value": "b", "label": "B"}]}
        )
        self.assertEqual(descriptor.semantic_type, SemanticType.SELECT)
        self.assertEqual(descriptor.options, ("a", "b"))

    def test_describe_collection_orders_primary_first(self) -> None:
        payload = {
            "data": [
                {"name": "title", "created_at": "2024-01-02"},
                {"name": "email", "created_at": "2024-01-01"},
                {"name": "id", "is_primary": True, "created_at": "2024-01-03"},
            ]
        }
        collection = type_inference.describe_collection("posts", payload)
        self.assertEqual(collection.names(), ["id", "email", "title"])
        self.assertEqual(collection.source, "schema")
        self.assertTrue(collection.field("id").is_primary)

    def test_describe_collection_drops_duplicates_and_nameless(self) -> None:
        collection = type_inference.describe_collection("c", [{"name": "a"}, {"name": "a"}, {"label": "x"}])
        self.assertEqual(collection.names(), ["a"])

    def test_describe_sample(self) -> None:
        record = {
            "id": "1",
            "name": "Ada",
            "email": "ada@example.com",
            "visits": 3,
            "verified": True,
            "bio": "",
        }
        collection = type_inference.describe_sample("users", record)
        self.assertEqual(collection.source, "sample")
        self.assertTrue(collection.field("id").is_primary)
        name = collection.field("name")
        self.assertTrue(name.required)
        self.assertEqual((name.min_length, name.max_length), (1, 100))
        self.assertTrue(collection.field("email").required)
        self.assertEqual(collection.field("visits").semantic_type, SemanticType.NUMBER)
        self.assertEqual(collection.field("verified").semantic_type, SemanticType.BOOLEAN)
        self.assertEqual(collection.field("bio").max_length, 1000)

    def test_fallback_collection(self) -> None:
        collection = type_inference.fallback_collection("anything")
        self.assertEqual(collection.names(), ["id", "name", "created_at"])
        self.assertEqual(collection.source, "fallback")
        self.assertEqual(collection.field("created_at").semantic_type, SemanticType.DATE)

    def test_order_fields(self) -> None:
        ordered = type_inference.order_fields(
            [{"name": "b", "created_at": "2"}, {"name": "a", "created_at": "1"}, {"name": "id", "is_primary": True}]
        )
        self.assertEqual([f["name"] for f in ordered], ["id", "a", "b"])


if __name__ == "__main__":
    unittest.main()
