"""Tests for docfill.renderer."""

import pytest

from docfill.draft import Draft
from docfill.errors import MissingFieldsError
from docfill.renderer import finalize_draft, render
from docfill.schema.models import FieldSchema, FieldSpec


@pytest.fixture
def company_investor_schema() -> FieldSchema:
    return FieldSchema(fields=(
        FieldSpec(key="company_name", label="Company Name"),
        FieldSpec(key="investor_name", label="Investor Name", required=False),
    ))


class TestRender:
    """Placeholder substitution."""

    def test_optional_placeholder_left_literal(self, company_investor_schema):
        """Unfilled optional field keeps its bracket literal."""
        result = render(
            company_investor_schema,
            {"company_name": "Acme Corp"},
            "Between [Company Name] and [Investor Name].",
        )
        assert result.text == "Between Acme Corp and [Investor Name]."

    def test_missing_marker_for_optional(self, company_investor_schema):
        """A configured marker replaces unfilled optional placeholders."""
        result = render(
            company_investor_schema,
            {"company_name": "Acme Corp"},
            "Between [Company Name] and [Investor Name].",
            missing_marker="[MISSING]",
        )
        assert result.text == "Between Acme Corp and [MISSING]."

    def test_missing_required_refuses(self, two_field_schema):
        """Render with one of two required fields names the other's label."""
        with pytest.raises(MissingFieldsError) as exc_info:
            render(two_field_schema, {"a": "X"}, "[Field A] [Field B]")
        assert exc_info.value.missing_labels == ["Field B"]

    def test_empty_string_counts_as_missing(self, two_field_schema):
        with pytest.raises(MissingFieldsError):
            render(two_field_schema, {"a": "X", "b": ""}, "[Field A] [Field B]")

    def test_label_is_case_sensitive(self):
        schema = FieldSchema(fields=(FieldSpec(key="party", label="Party Name"),))
        result = render(schema, {"party": "Acme"}, "[Party Name] / [party name]")
        assert result.text == "Acme / [party name]"

    def test_key_is_case_insensitive(self):
        schema = FieldSchema(fields=(FieldSpec(key="company_name", label="Company"),))
        result = render(schema, {"company_name": "Acme"}, "[company_name] [COMPANY_NAME]")
        assert result.text == "Acme Acme"

    def test_all_occurrences_replaced(self, company_investor_schema):
        result = render(
            company_investor_schema,
            {"company_name": "Acme"},
            "[Company Name] ... [Company Name] ... [company_name]",
        )
        assert result.text == "Acme ... Acme ... Acme"
        assert result.replacements["company_name"] == 3

    def test_money_blank(self):
        """Money fields fill $[____] blanks, value brings its own currency sign."""
        schema = FieldSchema(fields=(
            FieldSpec(key="purchase_amount", label="Purchase Amount", type="money"),
        ))
        result = render(
            schema, {"purchase_amount": "$250,000"},
            "the Purchase Amount of $[_____________] and $[ __ __ ]",
        )
        assert result.text == "the Purchase Amount of $250,000 and $250,000"

    def test_money_blank_ignored_for_text_fields(self):
        schema = FieldSchema(fields=(FieldSpec(key="name", label="Name"),))
        result = render(schema, {"name": "Acme"}, "[Name] paid $[_____]")
        assert result.text == "Acme paid $[_____]"

    def test_substring_labels_do_not_overlap(self):
        """'Company' must not match inside '[Company Name]'."""
        schema = FieldSchema(fields=(
            FieldSpec(key="company", label="Company"),
            FieldSpec(key="company_name", label="Company Name"),
        ))
        result = render(
            schema, {"company": "ACME-SHORT", "company_name": "Acme Corp"},
            "[Company] is [Company Name]",
        )
        assert result.text == "ACME-SHORT is Acme Corp"

    def test_values_inserted_literally(self):
        """Backslashes and group references in values are not interpreted."""
        schema = FieldSchema(fields=(FieldSpec(key="path", label="Path"),))
        result = render(schema, {"path": r"C:\new\1 \g<0>"}, "at [Path]")
        assert result.text == r"at C:\new\1 \g<0>"

    def test_label_with_regex_characters(self):
        schema = FieldSchema(fields=(FieldSpec(key="cap", label="Valuation Cap ($)"),))
        result = render(schema, {"cap": "$10M"}, "cap: [Valuation Cap ($)]")
        assert result.text == "cap: $10M"

    def test_deterministic(self, safe_schema):
        data = {"company_name": "Acme", "purchase_amount": "$1", "date_of_safe": "2025-01-15"}
        text = "[Company Name] $[___] [Date of Safe] [Investor Name]"
        assert render(safe_schema, data, text) == render(safe_schema, data, text)

    def test_html_text(self, company_investor_schema):
        result = render(
            company_investor_schema, {"company_name": "Acme"},
            "<p><strong>[Company Name]</strong></p>",
        )
        assert result.text == "<p><strong>Acme</strong></p>"

    def test_no_required_fields(self):
        schema = FieldSchema(fields=(FieldSpec(key="x", label="X", required=False),))
        assert render(schema, {}, "[X]").text == "[X]"


class TestFinalizeDraft:
    """Rendering a draft caches the result."""

    def test_caches_rendered_text(self, two_field_schema):
        draft = Draft(
            field_schema=two_field_schema,
            document_text="[Field A]/[Field B]",
            collected_data={"a": "X", "b": "Y"},
        )
        assert finalize_draft(draft) == "X/Y"
        assert draft.rendered_text == "X/Y"
        assert draft.is_rendered
        assert draft.status == "complete"
        assert draft.document_text == "[Field A]/[Field B]"

    def test_returns_cache_on_repeat(self, two_field_schema):
        draft = Draft(
            field_schema=two_field_schema,
            document_text="[Field A]",
            collected_data={"a": "X", "b": "Y"},
            rendered_text="cached",
        )
        assert finalize_draft(draft) == "cached"

    def test_incomplete_draft_not_rendered(self, two_field_draft):
        with pytest.raises(MissingFieldsError):
            finalize_draft(two_field_draft)
        assert two_field_draft.rendered_text is None

    def test_cache_ignores_later_marker(self, company_investor_schema):
        """A second finalize with another marker still returns the first render."""
        draft = Draft(
            field_schema=company_investor_schema,
            document_text="[Company Name] / [Investor Name]",
            collected_data={"company_name": "Acme"},
        )
        assert finalize_draft(draft) == "Acme / [Investor Name]"
        assert finalize_draft(draft, missing_marker="[MISSING]") == "Acme / [Investor Name]"
        assert render(
            draft.field_schema, draft.collected_data, draft.document_text, "[MISSING]"
        ).text == "Acme / [MISSING]"
