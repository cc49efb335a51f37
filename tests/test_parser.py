"""Tests for the end-to-end document parser."""

import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from docstruct.extraction.classifier import DocumentType
from docstruct.parser import DocumentParser, ParseResult, parse_document, summarize
from docstruct.utils.config import AppConfig, ValidationConfig


class TestDocumentParser:
    """Tests for DocumentParser.parse."""

    def setup_method(self) -> None:
        self.parser = DocumentParser()

    def test_percentage_invoice(self, percent_invoice_text: str) -> None:
        result = self.parser.parse(percent_invoice_text)
        fields = result.fields
        assert fields.doc_type == DocumentType.INVOICE
        assert fields.doc_no == "INV-001"
        assert fields.date == "01/02/2024"
        assert fields.subtotal.value == 100.0
        assert fields.vat.value == 7.0
        assert fields.vat.raw == "7%"
        assert fields.total.value == 107.0
        assert result.validation is not None
        assert result.validation.warnings == []
        assert len(result.validation.fixes) == 1

    def test_invoice_with_items(self, invoice_text: str) -> None:
        result = self.parser.parse(invoice_text)
        assert len(result.line_items) == 2
        assert result.validation.warnings == []
        assert result.validation.computed["subtotal_from_items"] == 500.0
        assert result.validation.confidence == pytest.approx(0.95)

    def test_total_on_line_after_label(self) -> None:
        result = self.parser.parse("INVOICE\nSUBTOTAL 100.00\nTOTAL\nTHB 107.00")
        assert result.fields.total.value == 107.0
        assert result.fields.total.derived is False
        assert result.fields.vat.value == 7.0
        assert result.validation.warnings == []

    def test_grouped_integer_amounts(self) -> None:
        result = self.parser.parse("INVOICE\nSUBTOTAL 1,000\nVAT 70\nTOTAL 1,070")
        assert result.fields.subtotal.value == 1000.0
        assert result.fields.total.value == 1070.0
        assert result.validation.warnings == []

    def test_memo_has_no_validation(self, memo_text: str) -> None:
        result = self.parser.parse(memo_text)
        assert result.fields.doc_type == DocumentType.THAI_MEMO
        assert result.validation is None
        assert result.line_items == []
        assert result.sections[0].heading == "header"

    def test_letter(self, letter_text: str) -> None:
        result = self.parser.parse(letter_text)
        assert result.fields.doc_type == DocumentType.BUSINESS_LETTER
        assert result.fields.sender == "John Carter"

    def test_empty_text(self) -> None:
        result = self.parser.parse("")
        assert result.text == ""
        assert result.fields.doc_type == DocumentType.GENERIC
        assert result.sections == []

    def test_rejects_non_string(self) -> None:
        with pytest.raises(TypeError):
            self.parser.parse(b"INVOICE")  # type: ignore[arg-type]

    def test_config_is_used(self, percent_invoice_text: str) -> None:
        config = AppConfig(validation=ValidationConfig(confidence_baseline=0.1))
        result = DocumentParser(config).parse(percent_invoice_text)
        assert result.validation.confidence == pytest.approx(0.48)

    def test_module_level_helper(self, percent_invoice_text: str) -> None:
        result = parse_document(percent_invoice_text, lang="eng")
        assert isinstance(result, ParseResult)
        assert result.fields.doc_no == "INV-001"

    @settings(max_examples=50, deadline=None)
    @given(st.text(max_size=400))
    def test_total(self, text: str) -> None:
        result = self.parser.parse(text)
        json.dumps(result.to_dict(), allow_nan=False)


class TestSerialization:
    """Tests for ParseResult.to_dict."""

    def test_json_ready(self, invoice_text: str) -> None:
        data = DocumentParser().parse(invoice_text).to_dict()
        assert set(data) == {"text", "fields", "sections", "line_items", "validation"}
        assert data["fields"]["doc_type"] == "invoice"
        assert data["fields"]["total"]["value"] == 535.0
        assert data["fields"]["discount"] is None
        assert data["line_items"][0]["description"] == "Widget A"
        json.dumps(data, ensure_ascii=False, allow_nan=False)

    def test_validation_null_for_non_commercial(self, resume_text: str) -> None:
        data = DocumentParser().parse(resume_text).to_dict()
        assert data["validation"] is None
        assert data["fields"]["name"] == "Somchai Jaidee"


class TestSummarize:
    """Tests for the one-line summary."""

    def test_commercial_summary(self, invoice_text: str) -> None:
        summary = summarize(DocumentParser().parse(invoice_text))
        assert summary.startswith("Type invoice")
        assert "No. IV-2024-0042" in summary
        assert "Total 535.00" in summary
        assert "Top item Widget A (300.00)" in summary
        assert summary.endswith("Confidence 95%")

    def test_missing_values_shown_as_dash(self) -> None:
        summary = summarize(DocumentParser().parse("INVOICE"))
        assert "No. -" in summary
        assert "Total -" in summary

    def test_letter_summary(self, letter_text: str) -> None:
        summary = summarize(DocumentParser().parse(letter_text))
        assert summary.startswith("Type business_letter")
        assert "Subject Service renewal" in summary
        assert "From John Carter" in summary
        assert "Confidence" not in summary
