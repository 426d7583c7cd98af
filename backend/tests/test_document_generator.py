import io
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from docx import Document

from backend import document_generator
from backend.document_generator import (
    DocumentGenerationError,
    format_indian_currency,
    format_indian_date,
    format_indian_number,
    format_phone,
    format_variables,
    generate_document,
)
from import_pipeline.docx_testing_utils import build_docx_bytes
from import_pipeline.docx_variables import iter_document_text
from shared.types import TemplateVariable, VariableType


def make_variable(variable_type, name):
    return TemplateVariable(name=name, label=name, type=variable_type, order=1)


def document_text(data):
    return "\n".join(iter_document_text(Document(io.BytesIO(data))))


class FormattingTests(unittest.TestCase):
    def test_indian_number_grouping(self):
        self.assertEqual(format_indian_number(100000), "1,00,000")
        self.assertEqual(format_indian_number(999), "999")
        self.assertEqual(format_indian_number(12345678.5), "1,23,45,678.5")
        self.assertEqual(format_indian_number(1234.567), "1,234.57")
        self.assertEqual(format_indian_number(-1500000), "-15,00,000")

    def test_indian_currency_has_no_paise(self):
        self.assertEqual(format_indian_currency(100000), "₹1,00,000")
        self.assertEqual(format_indian_currency(2500.5), "₹2,501")
        self.assertEqual(format_indian_currency(-1000), "-₹1,000")

    def test_indian_date(self):
        self.assertEqual(format_indian_date(datetime(2026, 3, 1)), "01/03/2026")
        ist = timezone(timedelta(hours=5, minutes=30))
        self.assertEqual(
            format_indian_date(datetime(2026, 3, 1, 2, 0, tzinfo=ist)), "28/02/2026"
        )

    def test_phone(self):
        self.assertEqual(format_phone("9876543210"), "+91 98765 43210")
        self.assertEqual(format_phone("98765-43210"), "+91 98765 43210")
        self.assertEqual(format_phone("12345"), "12345")

    def test_format_variables_uses_the_schema(self):
        schema = [
            make_variable(VariableType.DATE, "dateField"),
            make_variable(VariableType.CURRENCY, "currencyField"),
            make_variable(VariableType.NUMBER, "numberField"),
            make_variable(VariableType.PHONE, "phoneField"),
            make_variable(VariableType.MULTISELECT, "multiField"),
            make_variable(VariableType.STRING, "textField"),
            make_variable(VariableType.STRING, "emptyField"),
        ]

        formatted = format_variables(
            schema,
            {
                "dateField": "2026-03-01",
                "currencyField": 100000,
                "numberField": 100000,
                "phoneField": "9876543210",
                "multiField": ["opt-1", "opt-2"],
                "textField": "Some text",
                "emptyField": None,
                "extraField": "ignored",
            },
        )

        self.assertEqual(
            formatted,
            {
                "dateField": "01/03/2026",
                "currencyField": "₹1,00,000",
                "numberField": "1,00,000",
                "phoneField": "+91 98765 43210",
                "multiField": "opt-1, opt-2",
                "textField": "Some text",
            },
        )

    def test_unparseable_values_pass_through(self):
        schema = [
            make_variable(VariableType.DATE, "d"),
            make_variable(VariableType.CURRENCY, "c"),
        ]
        self.assertEqual(
            format_variables(schema, {"d": "someday", "c": "lots"}),
            {"d": "someday", "c": "lots"},
        )


class GenerateDocumentTests(unittest.TestCase):
    def setUp(self):
        self.schema = [
            make_variable(VariableType.STRING, "tenant_name"),
            make_variable(VariableType.CURRENCY, "monthly_rent"),
            make_variable(VariableType.DATE, "start_date"),
            make_variable(VariableType.STRING, "LANDLORD NAME"),
            make_variable(VariableType.STRING, "COURT NAME"),
            make_variable(VariableType.STRING, "advocate_name"),
        ]
        self.values = {
            "tenant_name": "Asha Rao",
            "monthly_rent": 25000,
            "start_date": "2026-03-01",
            "LANDLORD NAME": "Vikram Shah",
            "COURT NAME": "Pune",
            "advocate_name": "R. Iyer",
        }

    def test_fills_body_tables_headers_and_footers(self):
        template = build_docx_bytes(
            ["Between [LANDLORD NAME] and {{tenant_name}}.", "Unknown {{witness}} stays."],
            table_rows=[["Rent", "{{ monthly_rent }}"], ["From", "{start_date}"]],
            header="Tenant: {{tenant_name}}",
            first_page_header="Before the Court of [COURT NAME]",
            even_page_footer="Advocate: {{advocate_name}}",
        )

        result = generate_document(template, self.values, self.schema)

        text = document_text(result.data)
        self.assertIn("Between Vikram Shah and Asha Rao.", text)
        self.assertIn("Unknown {{witness}} stays.", text)
        self.assertIn("₹25,000", text)
        self.assertIn("01/03/2026", text)
        self.assertIn("Tenant: Asha Rao", text)
        self.assertIn("Before the Court of Pune", text)
        self.assertIn("Advocate: R. Iyer", text)
        self.assertEqual(result.variable_count, len(self.schema))
        self.assertIsNotNone(result.generated_at.tzinfo)

    def test_placeholder_split_across_runs_is_filled(self):
        template = build_docx_bytes(
            [], split_runs=[["Rent of {{month", "ly_re", "nt}} per month"]]
        )

        result = generate_document(template, self.values, self.schema)

        paragraph = Document(io.BytesIO(result.data)).paragraphs[0]
        self.assertEqual(paragraph.text, "Rent of ₹25,000 per month")

    def test_run_formatting_is_kept_when_placeholders_do_not_span_runs(self):
        template = build_docx_bytes([], split_runs=[["Tenant: ", "{{tenant_name}}"]])

        result = generate_document(template, self.values, self.schema)

        runs = Document(io.BytesIO(result.data)).paragraphs[0].runs
        self.assertEqual([r.text for r in runs], ["Tenant: ", "Asha Rao"])

    def test_unreadable_template_raises(self):
        with self.assertRaisesRegex(DocumentGenerationError, "Failed to load template"):
            generate_document(b"not a docx", self.values, self.schema)

    def test_fill_failure_raises(self):
        template = build_docx_bytes(["{{tenant_name}}"])
        with patch.object(
            document_generator, "_fill_paragraph", side_effect=RuntimeError("boom")
        ):
            with self.assertLogs("backend.document_generator", level="ERROR"):
                with self.assertRaisesRegex(
                    DocumentGenerationError, "Document generation failed"
                ):
                    generate_document(template, self.values, self.schema)


if __name__ == "__main__":
    unittest.main()
