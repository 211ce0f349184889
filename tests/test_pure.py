import unittest
from decimal import Decimal

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from timberline.utils.errors import NotFoundError, ValidationError
from timberline.utils.pure import format_money, generate_markdown_table, is_uk_postcode, to_money


class _Inner(BaseModel):
    postcode: str = Field(min_length=5)


class _Outer(BaseModel):
    name: str = Field(min_length=1)
    inner: _Inner


class PureTestCase(unittest.TestCase):
    def test_money(self):
        self.assertEqual(to_money(0.1), Decimal("0.10"))
        self.assertEqual(to_money("2.675"), Decimal("2.68"))
        self.assertEqual(to_money(None), Decimal("0.00"))
        self.assertEqual(format_money(Decimal("12650")), "£12,650.00")
        self.assertEqual(format_money(5, "€"), "€5.00")
        with self.assertRaises(ValueError):
            to_money("ten")

    def test_postcodes(self):
        for good in ("HR1 2AB", "sw1a 1aa", " M1 1AE ", "EC1A1BB"):
            self.assertTrue(is_uk_postcode(good), good)
        for bad in ("12", "123456", "HR1 2A", "ABC 123"):
            self.assertFalse(is_uk_postcode(bad), bad)

    def test_markdown_table(self):
        table = generate_markdown_table(["A", "B"], [["x|y", 1]], ["l", "r"])
        self.assertEqual(table.splitlines(), ["| A | B |", "| :--- | ---: |", "| x\\|y | 1 |"])
        self.assertEqual(generate_markdown_table(["A"], []), "")


class ErrorsTestCase(unittest.TestCase):
    def test_from_pydantic_collects_dotted_paths(self):
        with self.assertRaises(PydanticValidationError) as ctx:
            _Outer.model_validate({"name": "", "inner": {"postcode": "12"}})
        err = ValidationError.from_pydantic(ctx.exception, prefix="form")
        self.assertEqual(set(err.fields), {"form.name", "form.inner.postcode"})

    def test_merge_and_message(self):
        merged = ValidationError.single("a", "one").merge(ValidationError({"a": ["two"], "b": ["x"]}))
        self.assertEqual(merged.field_errors, {"a": ["one", "two"], "b": ["x"]})
        self.assertIn("a: one, two", str(merged))

    def test_not_found_message(self):
        err = NotFoundError("deal", "d1")
        self.assertEqual(err.message, "Deal not found.")


if __name__ == "__main__":
    unittest.main()
