"""Totals reconciliation for commercial documents.

Fills gaps among subtotal, tax, discount and total from the arithmetic
relations between them and from the line-item sum, and reports
inconsistencies as warnings. Values read directly from labeled text are
never replaced by derived ones; the only exception is a tax token that
evidently lost its decimal point, which is reinterpreted in place.
"""

from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass, field

from docstruct.extraction.field_extractor import SmartFields
from docstruct.extraction.line_items import LineItem
from docstruct.extraction.money import (
    MoneyField,
    approx_equal,
    format_money,
    parse_percent,
)
from docstruct.utils.config import ValidationConfig
from docstruct.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ValidationReport:
    """Outcome of reconciling one document's totals."""

    warnings: list[str] = field(default_factory=list)
    fixes: list[str] = field(default_factory=list)
    confidence: float = 0.0
    computed: dict[str, float | None] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass
class _Reconciliation:
    """Working state threaded through the rules of one run."""

    fields: SmartFields
    items: Sequence[LineItem]
    warnings: list[str] = field(default_factory=list)
    fixes: list[str] = field(default_factory=list)
    subtotal_from_items: float | None = None

    def value(self, name: str) -> float | None:
        money = getattr(self.fields, name)
        return money.value if money is not None else None

    def percent(self, name: str) -> float | None:
        money = getattr(self.fields, name)
        if money is None or not money.is_percent:
            return None
        return parse_percent(money.raw)

    def set(self, name: str, money: MoneyField, note: str) -> None:
        self.fields = self.fields.replace(**{name: money})
        self.fixes.append(note)


def _money(value: float | None) -> str:
    return format_money(value) or "-"


class ReconciliationEngine:
    """Apply the totals reconciliation rules in a fixed order.

    Args:
        config: Tolerances, ratios and confidence weights.
    """

    def __init__(self, config: ValidationConfig | None = None) -> None:
        self.config = config or ValidationConfig()
        self._rules: list[tuple[str, Callable[[_Reconciliation], None]]] = [
            ("percentages", self._resolve_percentages),
            ("derive_tax", self._derive_tax),
            ("synthesize_total", self._synthesize_total),
            ("tax_sanity", self._check_tax_sanity),
            ("items_sum", self._reconcile_items),
            ("identity", self._check_identity),
        ]

    def rule_names(self) -> list[str]:
        return [name for name, _ in self._rules]

    def validate(
        self, fields: SmartFields, line_items: Sequence[LineItem] = ()
    ) -> tuple[SmartFields, ValidationReport]:
        """Reconcile a document's totals.

        Args:
            fields: Extracted fields. Left untouched.
            line_items: Extracted item rows.

        Returns:
            The reconciled copy of ``fields`` and the validation report.
        """
        state = _Reconciliation(fields=fields, items=line_items)
        for name, rule in self._rules:
            rule(state)
            logger.debug(
                "After %s: %d fixes, %d warnings",
                name,
                len(state.fixes),
                len(state.warnings),
            )

        report = ValidationReport(
            warnings=state.warnings,
            fixes=state.fixes,
            confidence=self._confidence(state),
            computed=self._computed(state),
        )
        logger.info(
            "Reconciliation: %d fixes, %d warnings, confidence %.2f",
            len(report.fixes),
            len(report.warnings),
            report.confidence,
        )
        return state.fields, report

    def _approx(self, a: float | None, b: float | None) -> bool:
        return approx_equal(a, b, self.config.abs_tolerance, self.config.rel_tolerance)

    def _resolve_percentages(self, state: _Reconciliation) -> None:
        subtotal = state.value("subtotal")
        if subtotal is None:
            return
        for name, label in (("vat", "tax"), ("discount", "discount")):
            percent = state.percent(name)
            if percent is None:
                continue
            amount = subtotal * percent / 100
            raw = getattr(state.fields, name).raw
            state.set(
                name,
                MoneyField.from_value(amount, raw=raw),
                f"computed {label} as {percent:g}% of subtotal",
            )

    def _derive_tax(self, state: _Reconciliation) -> None:
        subtotal, total = state.value("subtotal"), state.value("total")
        if state.value("vat") is not None or subtotal is None or total is None:
            return
        tax = round(total - (subtotal - (state.value("discount") or 0.0)), 2)
        if tax < -0.01 or tax > subtotal * self.config.max_tax_ratio:
            logger.debug("Derived tax %.2f outside plausible range, ignored", tax)
            return
        state.set(
            "vat",
            MoneyField.from_value(max(tax, 0.0)),
            "derived tax from total - (subtotal - discount)",
        )

    def _synthesize_total(self, state: _Reconciliation) -> None:
        subtotal = state.value("subtotal")
        if state.value("total") is not None or subtotal is None:
            return
        total = subtotal - (state.value("discount") or 0.0) + (state.value("vat") or 0.0)
        state.set(
            "total",
            MoneyField.from_value(total),
            "filled total from subtotal - discount + tax",
        )

    def _check_tax_sanity(self, state: _Reconciliation) -> None:
        subtotal, tax = state.value("subtotal"), state.value("vat")
        if subtotal is None or tax is None:
            return
        if tax <= subtotal * self.config.tax_sanity_ratio:
            return
        fixed = round(tax / 100, 2)
        if not 0 <= fixed <= subtotal * self.config.max_tax_ratio:
            state.warnings.append(
                f"tax {_money(tax)} is implausibly high for subtotal {_money(subtotal)}"
            )
            return
        vat = state.fields.vat
        state.set(
            "vat",
            MoneyField.from_value(fixed, raw=vat.raw, derived=vat.derived),
            f"reinterpreted tax {_money(tax)} as {_money(fixed)} (lost decimal point)",
        )
        if state.fields.total is not None and state.fields.total.derived:
            total = subtotal - (state.value("discount") or 0.0) + fixed
            state.fields = state.fields.replace(total=MoneyField.from_value(total))

    def _reconcile_items(self, state: _Reconciliation) -> None:
        amounts = [item.amount for item in state.items if item.amount is not None]
        if not amounts:
            return
        items_sum = round(sum(amounts), 2)
        state.subtotal_from_items = items_sum
        subtotal = state.value("subtotal")
        if subtotal is None:
            state.set(
                "subtotal",
                MoneyField.from_value(items_sum),
                f"set subtotal from the sum of {len(amounts)} line items",
            )
        elif not self._approx(subtotal, items_sum):
            state.warnings.append(
                f"subtotal {_money(subtotal)} does not match line items sum "
                f"{_money(items_sum)}"
            )

    def _check_identity(self, state: _Reconciliation) -> None:
        subtotal, total = state.value("subtotal"), state.value("total")
        if subtotal is None or total is None:
            return
        expected = round(
            subtotal - (state.value("discount") or 0.0) + (state.value("vat") or 0.0), 2
        )
        if not self._approx(expected, total):
            state.warnings.append(
                f"subtotal - discount + tax ({_money(expected)}) does not equal "
                f"total ({_money(total)})"
            )

    def _confidence(self, state: _Reconciliation) -> float:
        cfg = self.config
        fields = state.fields
        present = {
            "doc_no": bool(fields.doc_no),
            "date": bool(fields.date),
            "subtotal": state.value("subtotal") is not None,
            "vat": state.value("vat") is not None,
            "total": state.value("total") is not None,
        }
        score = cfg.confidence_baseline + sum(
            weight for name, weight in cfg.field_weights.items() if present.get(name)
        )
        score += len(state.fixes) * cfg.fix_bonus
        score -= len(state.warnings) * cfg.warning_penalty
        return round(max(0.0, min(1.0, score)), 4)

    def _computed(self, state: _Reconciliation) -> dict[str, float | None]:
        subtotal, total = state.value("subtotal"), state.value("total")
        discount = state.value("discount") or 0.0
        tax = state.value("vat") or 0.0
        discount_field = state.fields.discount
        discount_percent = parse_percent(discount_field.raw) if discount_field else None
        return {
            "subtotal_from_items": state.subtotal_from_items,
            "tax_from_calc": (
                round(total - (subtotal - discount), 2)
                if subtotal is not None and total is not None
                else None
            ),
            "discount_from_pct": (
                round(subtotal * discount_percent / 100, 2)
                if subtotal is not None and discount_percent is not None
                else None
            ),
            "total_from_calc": (
                round(subtotal - discount + tax, 2) if subtotal is not None else None
            ),
        }


def validate(
    fields: SmartFields,
    line_items: Sequence[LineItem] = (),
    config: ValidationConfig | None = None,
) -> tuple[SmartFields, ValidationReport]:
    """Reconcile totals with a one-off :class:`ReconciliationEngine`."""
    return ReconciliationEngine(config).validate(fields, line_items)
