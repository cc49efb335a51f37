"""Tests for totals reconciliation."""

from hypothesis import given
from hypothesis import strategies as st

from docstruct.extraction.classifier import DocumentType
from docstruct.extraction.field_extractor import SmartFields
from docstruct.extraction.line_items import LineItem
from docstruct.extraction.money import MoneyField
from docstruct.utils.config import ValidationConfig
from docstruct.validation.reconciler import ReconciliationEngine, validate


def _fields(**amounts: str) -> SmartFields:
    return SmartFields(
        doc_type=DocumentType.INVOICE,
        **{name: MoneyField.from_raw(raw) for name, raw in amounts.items()},
    )


AMOUNTS = st.floats(min_value=1, max_value=1_000_000, allow_nan=False).map(
    lambda v: round(v, 2)
)


class TestRules:
    """Tests for the individual reconciliation rules."""

    def setup_method(self) -> None:
        self.engine = ReconciliationEngine()

    def test_rule_order(self) -> None:
        assert self.engine.rule_names() == [
            "percentages",
            "derive_tax",
            "synthesize_total",
            "tax_sanity",
            "items_sum",
            "identity",
        ]

    def test_percentage_tax_resolved(self) -> None:
        fields, report = self.engine.validate(
            _fields(subtotal="100.00", vat="7%", total="107.00")
        )
        assert fields.vat.value == 7.0
        assert fields.vat.raw == "7%"
        assert fields.vat.derived is True
        assert len(report.fixes) == 1
        assert report.warnings == []

    def test_percentage_discount_resolved(self) -> None:
        fields, report = self.engine.validate(
            _fields(subtotal="200.00", discount="10%", total="180.00")
        )
        assert fields.discount.value == 20.0
        assert report.computed["discount_from_pct"] == 20.0
        assert report.warnings == []

    def test_percentage_without_subtotal_left_alone(self) -> None:
        original = _fields(vat="7%", total="107.00")
        fields, _ = self.engine.validate(original)
        assert fields.vat is original.vat

    def test_tax_derived_from_total(self) -> None:
        fields, report = self.engine.validate(
            _fields(subtotal="100.00", total="110.00")
        )
        assert fields.vat.value == 10.0
        assert fields.vat.derived is True
        assert len(report.fixes) == 1
        assert report.warnings == []

    def test_implausible_derived_tax_ignored(self) -> None:
        fields, report = self.engine.validate(
            _fields(subtotal="100.00", total="500.00")
        )
        assert fields.vat is None
        assert report.fixes == []
        assert len(report.warnings) == 1

    def test_total_synthesized(self) -> None:
        fields, report = self.engine.validate(
            _fields(subtotal="100.00", discount="5.00", vat="6.65")
        )
        assert fields.total.value == 101.65
        assert fields.total.derived is True
        assert report.warnings == []

    def test_lost_decimal_tax_reinterpreted(self) -> None:
        fields, report = self.engine.validate(
            _fields(subtotal="100.00", vat="700.00", total="107.00")
        )
        assert fields.vat.value == 7.0
        assert fields.vat.raw == "700.00"
        assert fields.vat.derived is False
        assert len(report.fixes) == 1
        assert report.warnings == []

    def test_reinterpreted_tax_updates_derived_total(self) -> None:
        fields, report = self.engine.validate(_fields(subtotal="100.00", vat="700.00"))
        assert fields.vat.value == 7.0
        assert fields.total.value == 107.0
        assert report.warnings == []

    def test_implausible_tax_warned(self) -> None:
        fields, report = self.engine.validate(
            _fields(subtotal="100.00", vat="5,000.00", total="5,100.00")
        )
        assert fields.vat.value == 5000.0
        assert any("implausibly high" in w for w in report.warnings)

    def test_subtotal_from_items(self) -> None:
        items = [LineItem("A", 1, 60.0, 60.0), LineItem("B", 2, 20.0, 40.0)]
        fields, report = self.engine.validate(_fields(total="107.00"), items)
        assert fields.subtotal.value == 100.0
        assert fields.subtotal.derived is True
        assert report.computed["subtotal_from_items"] == 100.0
        assert report.computed["tax_from_calc"] == 7.0

    def test_items_mismatch_warned(self) -> None:
        items = [LineItem("A", 1, 60.0, 60.0)]
        original = _fields(subtotal="100.00", vat="7.00", total="107.00")
        fields, report = self.engine.validate(original, items)
        assert fields.subtotal is original.subtotal
        assert len(report.warnings) == 1
        assert "line items" in report.warnings[0]


class TestConservatism:
    """Directly extracted values survive reconciliation."""

    def test_inconsistent_totals_only_warned(self) -> None:
        original = _fields(subtotal="100.00", vat="15.00", total="105.00")
        fields, report = validate(original)
        assert fields.subtotal is original.subtotal
        assert fields.vat is original.vat
        assert fields.total is original.total
        assert report.fixes == []
        assert len(report.warnings) == 1

    def test_input_not_mutated(self) -> None:
        original = _fields(subtotal="100.00", total="110.00")
        validate(original)
        assert original.vat is None

    @given(
        subtotal=st.none() | AMOUNTS,
        tax_ratio=st.floats(min_value=0, max_value=0.75),
        has_tax=st.booleans(),
        total=st.none() | AMOUNTS,
    )
    def test_present_values_never_replaced(
        self,
        subtotal: float | None,
        tax_ratio: float,
        has_tax: bool,
        total: float | None,
    ) -> None:
        amounts = {}
        if subtotal is not None:
            amounts["subtotal"] = f"{subtotal:.2f}"
            if has_tax:
                amounts["vat"] = f"{subtotal * tax_ratio:.2f}"
        if total is not None:
            amounts["total"] = f"{total:.2f}"
        original = _fields(**amounts)

        fields, _ = validate(original)

        for name in amounts:
            assert getattr(fields, name) is getattr(original, name)


class TestReport:
    """Tests for confidence and the computed snapshot."""

    def test_empty_fields_baseline(self) -> None:
        _, report = validate(SmartFields())
        assert report.confidence == 0.6
        assert report.warnings == []
        assert report.fixes == []

    def test_full_document_confidence(self) -> None:
        fields = _fields(subtotal="100.00", vat="7%", total="107.00").replace(
            doc_no="INV-001", date="01/02/2024"
        )
        _, report = validate(fields)
        assert report.confidence == 0.98

    def test_warnings_lower_confidence(self) -> None:
        _, clean = validate(_fields(subtotal="100.00", vat="7.00", total="107.00"))
        _, broken = validate(_fields(subtotal="100.00", vat="15.00", total="105.00"))
        assert broken.confidence < clean.confidence

    def test_confidence_clamped(self) -> None:
        config = ValidationConfig(confidence_baseline=0.99, fix_bonus=0.5)
        _, report = validate(_fields(subtotal="100.00", total="107.00"), config=config)
        assert report.confidence == 1.0

    def test_computed_snapshot(self) -> None:
        _, report = validate(_fields(subtotal="100.00", vat="7.00", total="107.00"))
        assert report.computed == {
            "subtotal_from_items": None,
            "tax_from_calc": 7.0,
            "discount_from_pct": None,
            "total_from_calc": 107.0,
        }

    def test_to_dict(self) -> None:
        _, report = validate(_fields(subtotal="100.00", total="110.00"))
        data = report.to_dict()
        assert set(data) == {"warnings", "fixes", "confidence", "computed"}
