"""Unified document structuring pipeline.

Combines normalization, classification, field and line-item extraction,
totals reconciliation and section splitting into a single interface that
turns raw OCR text into a structured, serializable result.
"""

import math
from dataclasses import dataclass, field

from docstruct.extraction.classifier import COMMERCIAL_TYPES, classify
from docstruct.extraction.field_extractor import FieldExtractor, SmartFields
from docstruct.extraction.line_items import LineItem, extract_line_items
from docstruct.extraction.money import MoneyField, format_money
from docstruct.normalization.text_normalizer import normalize
from docstruct.sections.splitter import Section, split_sections
from docstruct.utils.config import AppConfig
from docstruct.utils.logger import get_logger
from docstruct.validation.reconciler import ReconciliationEngine, ValidationReport

logger = get_logger(__name__)


@dataclass
class ParseResult:
    """Complete structuring results for one document."""

    text: str
    fields: SmartFields
    sections: list[Section] = field(default_factory=list)
    line_items: list[LineItem] = field(default_factory=list)
    validation: ValidationReport | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize to JSON-compatible values with explicit ``None``s."""
        return _json_safe(
            {
                "text": self.text,
                "fields": self.fields.to_dict(),
                "sections": [s.to_dict() for s in self.sections],
                "line_items": [item.to_dict() for item in self.line_items],
                "validation": self.validation.to_dict() if self.validation else None,
            }
        )


def _json_safe(value: object) -> object:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


class DocumentParser:
    """End-to-end structuring of OCR text.

    Args:
        config: Application configuration, defaults when omitted.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()
        self.field_extractor = FieldExtractor(self.config.extraction)
        self.reconciler = ReconciliationEngine(self.config.validation)

    def parse(self, text: str, lang: str = "auto") -> ParseResult:
        """Structure one document.

        Args:
            text: Raw OCR text.
            lang: Label language preference, ``"auto"``, ``"tha"`` or ``"eng"``.

        Returns:
            The normalized text with its fields, sections, line items and,
            for commercial documents, the validation report.

        Raises:
            TypeError: If ``text`` is not a string.
        """
        if not isinstance(text, str):
            raise TypeError(f"text must be str, not {type(text).__name__}")

        clean = normalize(text, self.config.normalization)
        doc_type = classify(clean)
        fields = self.field_extractor.extract(clean, doc_type, lang)
        sections = split_sections(clean, doc_type, self.config.sections)

        line_items: list[LineItem] = []
        validation = None
        if doc_type in COMMERCIAL_TYPES:
            line_items = extract_line_items(clean, self.config.extraction)
            fields, validation = self.reconciler.validate(fields, line_items)

        logger.info(
            "Parsed %s: %d sections, %d line items",
            doc_type,
            len(sections),
            len(line_items),
        )
        return ParseResult(
            text=clean,
            fields=fields,
            sections=sections,
            line_items=line_items,
            validation=validation,
        )


def parse_document(
    text: str, lang: str = "auto", config: AppConfig | None = None
) -> ParseResult:
    """Structure one document with a one-off :class:`DocumentParser`."""
    return DocumentParser(config).parse(text, lang)


def _money_text(money: MoneyField | None) -> str:
    return money.text if money is not None and money.text else "-"


def summarize(result: ParseResult) -> str:
    """Build a one-line human summary of a parse result.

    Commercial documents show their number, date, totals, the most
    expensive item and the confidence; other documents their type and
    headline fields.
    """
    f = result.fields
    parts = [f"Type {f.doc_type}"]
    if f.doc_type in COMMERCIAL_TYPES:
        parts += [f"No. {f.doc_no or '-'}", f"Date {f.date or '-'}"]
        parts.append(f"Subtotal {_money_text(f.subtotal)}")
        if f.discount is not None:
            parts.append(f"Discount {f.discount.text or f.discount.raw}")
        parts.append(f"Tax {_money_text(f.vat)}")
        parts.append(f"Total {_money_text(f.total)}")
        priced = [item for item in result.line_items if item.amount]
        if priced:
            top = max(priced, key=lambda item: item.amount)
            parts.append(f"Top item {top.description} ({format_money(top.amount)})")
    else:
        for label, value in (
            ("Subject", f.subject),
            ("Name", f.name),
            ("Date", f.date),
            ("From", f.sender or f.agency),
            ("To", f.recipient),
        ):
            if value:
                parts.append(f"{label} {value}")
    if result.validation is not None:
        parts.append(f"Confidence {int(result.validation.confidence * 100)}%")
    return " · ".join(parts)
