import unittest
from datetime import date, datetime

from backend.variable_validator import validate_variables
from shared.types import SelectOption, TemplateVariable, VariableType

FIELD = "field"


def make_variable(variable_type, **overrides):
    fields = dict(name=FIELD, label="Field", type=variable_type, required=True, order=1)
    fields.update(overrides)
    return TemplateVariable(**fields)


def make_options(*values):
    return [SelectOption(value, value) for value in values]


class ValidateVariablesTests(unittest.TestCase):
    def assertRejected(self, schema, value, code):
        result = validate_variables(schema, {FIELD: value})
        self.assertFalse(result.valid)
        self.assertEqual(result.errors[0].code, code)
        self.assertEqual(result.errors[0].field, FIELD)
        self.assertNotIn(FIELD, result.sanitized)

    def test_string_is_trimmed_escaped_and_length_checked(self):
        schema = [make_variable(VariableType.STRING, min_length=2, max_length=10)]

        result = validate_variables(schema, {FIELD: "  <b>Ok</b>  "})
        self.assertTrue(result.valid)
        self.assertEqual(result.errors, [])
        self.assertEqual(result.sanitized[FIELD], "&lt;b&gt;Ok&lt;/b&gt;")

        self.assertRejected(schema, "x", "MIN_LENGTH")
        self.assertRejected(schema, "x" * 11, "MAX_LENGTH")

    def test_string_escaping_can_be_turned_off(self):
        schema = [make_variable(VariableType.STRING)]
        result = validate_variables(schema, {FIELD: " M/s A & B "}, escape_html=False)
        self.assertEqual(result.sanitized[FIELD], "M/s A & B")

    def test_text_pattern(self):
        schema = [make_variable(VariableType.TEXT, pattern="^text$")]

        self.assertTrue(validate_variables(schema, {FIELD: "text"}).valid)
        self.assertRejected(schema, "other", "PATTERN")

        broken = [make_variable(VariableType.TEXT, pattern="([unclosed")]
        result = validate_variables(broken, {FIELD: "anything"})
        self.assertEqual(result.errors[0].message, "Invalid pattern")

    def test_required_and_optional_values(self):
        schema = [make_variable(VariableType.STRING)]
        for value in (None, "", "   "):
            with self.subTest(value=value):
                self.assertRejected(schema, value, "REQUIRED")
        self.assertEqual(
            validate_variables(schema, {}).errors[0].message, "Value is required"
        )

        optional = [make_variable(VariableType.STRING, required=False)]
        result = validate_variables(optional, {FIELD: "  "})
        self.assertTrue(result.valid)
        self.assertEqual(result.sanitized, {})

    def test_wrong_types(self):
        self.assertRejected([make_variable(VariableType.STRING)], 42, "INVALID_TYPE")
        self.assertRejected([make_variable(VariableType.NUMBER)], True, "INVALID_TYPE")
        self.assertRejected([make_variable(VariableType.DATE)], ["x"], "INVALID_TYPE")
        self.assertRejected(
            [make_variable(VariableType.MULTISELECT)], "opt-1", "INVALID_TYPE"
        )

    def test_date(self):
        schema = [make_variable(VariableType.DATE)]

        result = validate_variables(schema, {FIELD: "2026-03-01"})
        self.assertTrue(result.valid)
        self.assertEqual(result.sanitized[FIELD], datetime(2026, 3, 1))

        result = validate_variables(schema, {FIELD: date(2026, 3, 1)})
        self.assertEqual(result.sanitized[FIELD], date(2026, 3, 1))

        self.assertRejected(schema, "invalid-date", "INVALID_DATE")

    def test_number_and_currency(self):
        result = validate_variables([make_variable(VariableType.NUMBER)], {FIELD: "42.5"})
        self.assertTrue(result.valid)
        self.assertEqual(result.sanitized[FIELD], 42.5)

        currency = [make_variable(VariableType.CURRENCY)]
        result = validate_variables(currency, {FIELD: 1000})
        self.assertEqual(result.sanitized[FIELD], 1000)

        for value in ("not-a-number", "inf", "nan"):
            with self.subTest(value=value):
                self.assertRejected(currency, value, "INVALID_NUMBER")

    def test_select(self):
        schema = [
            make_variable(
                VariableType.SELECT, options=make_options("opt-1", "opt-2", "opt-3")
            )
        ]

        result = validate_variables(schema, {FIELD: " opt-1 "})
        self.assertTrue(result.valid)
        self.assertEqual(result.sanitized[FIELD], "opt-1")
        self.assertRejected(schema, "opt-x", "INVALID_OPTION")

    def test_multiselect(self):
        options = make_options("opt-2", "opt-3")
        schema = [make_variable(VariableType.MULTISELECT, options=options)]

        result = validate_variables(schema, {FIELD: ["opt-2", "opt-3"]})
        self.assertTrue(result.valid)
        self.assertEqual(result.sanitized[FIELD], ["opt-2", "opt-3"])

        self.assertRejected(schema, ["opt-x"], "INVALID_OPTION")
        self.assertRejected(schema, [], "REQUIRED")

        optional = [
            make_variable(VariableType.MULTISELECT, options=options, required=False)
        ]
        self.assertEqual(validate_variables(optional, {FIELD: []}).sanitized[FIELD], [])

    def test_phone(self):
        schema = [make_variable(VariableType.PHONE)]

        self.assertTrue(validate_variables(schema, {FIELD: "9876543210"}).valid)
        self.assertRejected(schema, "12345", "INVALID_PHONE")
        self.assertRejected(schema, "5876543210", "INVALID_PHONE")

    def test_email(self):
        schema = [make_variable(VariableType.EMAIL)]

        self.assertTrue(validate_variables(schema, {FIELD: "test@example.com"}).valid)
        self.assertRejected(schema, "bad-email", "INVALID_EMAIL")

    def test_collects_errors_across_fields_and_drops_unknown_keys(self):
        schema = [
            make_variable(VariableType.STRING, name="tenant_name"),
            make_variable(VariableType.EMAIL, name="tenant_email"),
            make_variable(VariableType.PHONE, name="tenant_phone"),
        ]

        result = validate_variables(
            schema,
            {"tenant_name": "Asha", "tenant_email": "nope", "extra": "ignored"},
        )

        self.assertFalse(result.valid)
        self.assertEqual(
            [(e.field, e.code) for e in result.errors],
            [("tenant_email", "INVALID_EMAIL"), ("tenant_phone", "REQUIRED")],
        )
        self.assertEqual(result.sanitized, {"tenant_name": "Asha"})
        self.assertEqual(
            result.errors[0].as_dict(),
            {"field": "tenant_email", "code": "INVALID_EMAIL", "message": "Invalid email"},
        )


if __name__ == "__main__":
    unittest.main()
