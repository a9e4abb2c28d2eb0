"""
Tests for tool result redaction.

These tests ensure:
1. Denylisted fields are removed at any depth, whatever their spelling
2. JSON strings are decoded and redacted like structures
3. Summaries are bounded
4. Dataclass and pydantic outputs are redacted field by field
"""

import json
from dataclasses import dataclass

from pydantic import BaseModel

from src.merchdesk.agent.tools.redaction import (
    DEFAULT_DENYLIST,
    TRUNCATION_MARKER,
    ResultRedactor,
)


@dataclass
class QuoteLine:
    sku: str
    total: float
    base_price: float


class InvoiceModel(BaseModel):
    invoice_number: str
    total: float
    markup: float
    lines: list[dict] = []


class TestFieldRemoval:
    """Test denylist matching."""

    def test_clean_data_unchanged(self):
        result = ResultRedactor().redact({"status": "Packed", "total": 500})
        assert json.loads(result.summary) == {"status": "Packed", "total": 500}
        assert not result.was_redacted

    def test_top_level_field_removed(self):
        result = ResultRedactor().redact({"total": 500, "base_price": 320})
        assert json.loads(result.summary) == {"total": 500}
        assert result.redaction_count == 1

    def test_nested_fields_removed(self):
        data = {
            "quote": {
                "items": [
                    {"sku": "MUG-1", "unit_cost": 12},
                    {"sku": "CAP-2", "markup": 0.4},
                ]
            }
        }
        result = ResultRedactor().redact(data)
        assert json.loads(result.summary) == {"quote": {"items": [{"sku": "MUG-1"}, {"sku": "CAP-2"}]}}
        assert result.redaction_count == 2

    def test_spelling_variants_matched(self):
        redactor = ResultRedactor()
        for key in ("beforeVAT", "before_vat", "Before-VAT", "BEFORE VAT"):
            assert redactor.is_denied(key), key
        assert not redactor.is_denied("total")

    def test_custom_denylist(self):
        redactor = ResultRedactor(denylist=["internal_note"])
        result = redactor.redact({"internal_note": "x", "base_price": 1})
        assert json.loads(result.summary) == {"base_price": 1}

    def test_default_denylist_has_pre_markup_fields(self):
        assert "base_price" in DEFAULT_DENYLIST
        assert "beforeVAT" in DEFAULT_DENYLIST


class TestStructuredOutputs:
    """Test dataclass and pydantic handler outputs."""

    def test_dataclass_fields_removed(self):
        result = ResultRedactor().redact(QuoteLine(sku="MUG-1", total=500, base_price=320))
        assert json.loads(result.summary) == {"sku": "MUG-1", "total": 500}
        assert result.redaction_count == 1
        assert "base_price" not in result.summary

    def test_list_of_dataclasses(self):
        result = ResultRedactor().redact([QuoteLine(sku="A", total=1, base_price=0.5)])
        assert json.loads(result.summary) == [{"sku": "A", "total": 1}]

    def test_pydantic_model_fields_removed(self):
        model = InvoiceModel(
            invoice_number="Q100-ABCDE",
            total=1150.0,
            markup=0.3,
            lines=[{"sku": "CAP-2", "unit_cost": 40}],
        )
        result = ResultRedactor().redact(model)
        assert json.loads(result.summary) == {
            "invoice_number": "Q100-ABCDE",
            "total": 1150.0,
            "lines": [{"sku": "CAP-2"}],
        }
        assert result.redaction_count == 2


class TestSummaryRendering:
    """Test summary text."""

    def test_json_string_is_redacted(self):
        raw = json.dumps({"total": 10, "cost_price": 4})
        result = ResultRedactor().redact(raw)
        assert "cost_price" not in result.summary
        assert result.redaction_count == 1

    def test_plain_string_passes_through(self):
        result = ResultRedactor().redact("Refunds are processed within 7 days.")
        assert result.summary == "Refunds are processed within 7 days."

    def test_unicode_kept_readable(self):
        result = ResultRedactor().redact({"name": "Zoë"})
        assert "Zoë" in result.summary

    def test_long_summary_truncated(self):
        redactor = ResultRedactor(max_result_chars=50)
        result = redactor.redact("x" * 51)
        assert result.summary == "x" * 50 + TRUNCATION_MARKER
        assert result.was_truncated
        assert result.original_length == 51

    def test_short_summary_not_truncated(self):
        result = ResultRedactor(max_result_chars=50).redact("x" * 50)
        assert result.summary == "x" * 50
        assert not result.was_truncated
