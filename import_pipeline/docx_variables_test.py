# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================


import unittest

from import_pipeline import docx_variables
from import_pipeline.docx_testing_utils import build_docx_bytes
from shared.types import VariableType


class ExtractPlaceholdersTest(unittest.TestCase):

    def test_finds_all_three_placeholder_styles_in_order(self):
        data = build_docx_bytes(
            [
                "This deed is made on {{agreement_date}} between [LANDLORD NAME]",
                "and {tenant_name}, residing at {{ tenant_address }}.",
            ]
        )
        self.assertEqual(
            docx_variables.extract_placeholders(data),
            ["agreement_date", "LANDLORD NAME", "tenant_name", "tenant_address"],
        )

    def test_deduplicates_repeated_placeholders(self):
        data = build_docx_bytes(
            ["{{party_name}} agrees.", "Signed by {{party_name}} and [WITNESS]."]
        )
        self.assertEqual(
            docx_variables.extract_placeholders(data), ["party_name", "WITNESS"]
        )

    def test_reads_tables_headers_and_footers(self):
        data = build_docx_bytes(
            ["Body text"],
            table_rows=[["Name", "{{client_name}}"], ["Fee", "{{legal_fee}}"]],
            header="Case No. [CASE NUMBER]",
            footer="Page footer {{firm_email}}",
        )
        names = docx_variables.extract_placeholders(data)
        self.assertEqual(
            set(names), {"client_name", "legal_fee", "CASE NUMBER", "firm_email"}
        )

    def test_reads_first_page_and_even_page_variants(self):
        data = build_docx_bytes(
            ["Body text"],
            first_page_header="Before the Court of [COURT NAME]",
            even_page_footer="Advocate: {{advocate_name}}",
        )
        names = docx_variables.extract_placeholders(data)
        self.assertEqual(set(names), {"COURT NAME", "advocate_name"})

    def test_placeholder_split_across_runs_is_found(self):
        data = build_docx_bytes([], split_runs=[["Dated {{exec", "ution_", "date}}"]])
        self.assertEqual(docx_variables.extract_placeholders(data), ["execution_date"])

    def test_ignores_non_placeholders(self):
        data = build_docx_bytes(
            [
                "Section [3] of the Act and clause [a] do not count.",
                "Neither do {1st_party} or {} or {{   }}.",
            ]
        )
        self.assertEqual(docx_variables.extract_placeholders(data), [])

    def test_rejects_overlong_names(self):
        long_name = "A" * 100
        data = build_docx_bytes([f"[{long_name}] and [{long_name[:99]}]"])
        self.assertEqual(docx_variables.extract_placeholders(data), [long_name[:99]])

    def test_invalid_file_raises_docx_parse_error(self):
        with self.assertRaises(docx_variables.DocxParseError):
            docx_variables.extract_placeholders(b"definitely not a zip file")


class VariableTypingTest(unittest.TestCase):

    def test_infer_variable_type(self):
        cases = {
            "agreement_date": VariableType.DATE,
            "signed_on": VariableType.DATE,
            "monthly_rent": VariableType.CURRENCY,
            "Security Deposit Amount": VariableType.CURRENCY,
            "mobile_no": VariableType.PHONE,
            "E-mail": VariableType.EMAIL,
            "property_address": VariableType.TEXT,
            "reason_for_leave": VariableType.TEXT,
            "number_of_years": VariableType.NUMBER,
            "tenant_name": VariableType.STRING,
        }
        for name, expected in cases.items():
            with self.subTest(name=name):
                self.assertEqual(docx_variables.infer_variable_type(name), expected)

    def test_first_matching_rule_wins(self):
        # "date" is checked before "amount".
        self.assertEqual(
            docx_variables.infer_variable_type("amount_due_date"), VariableType.DATE
        )

    def test_parse_variables_labels_and_order(self):
        variables = docx_variables.parse_variables(["tenant_NAME", "RENT AMOUNT"])
        self.assertEqual([v.name for v in variables], ["tenant_NAME", "RENT AMOUNT"])
        self.assertEqual([v.label for v in variables], ["Tenant Name", "Rent Amount"])
        self.assertEqual([v.order for v in variables], [1, 2])
        self.assertTrue(all(v.required for v in variables))
        self.assertEqual(variables[1].type, VariableType.CURRENCY)


if __name__ == "__main__":
    unittest.main()
