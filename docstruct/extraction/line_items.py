"""Line-item table extraction from OCR text.

The item table is located by its header row, tokenized on whitespace and
read by competing grammars, because invoice layouts put the quantity
column before the description, after the unit price or between the two.
Whichever grammar accepts the most rows wins.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass
from typing import NamedTuple

from docstruct.extraction.money import parse_money_token
from docstruct.utils.config import ExtractionConfig
from docstruct.utils.logger import get_logger

logger = get_logger(__name__)

_GAP = r"[\s\S]{0,40}?"
_QTY = r"\b(?:QTY|QUANTITY)\b"
_QTY_ANY = r"\b(?:QTY|QUANTITY|HOURS?|HRS?)\b"
_DESC = r"\b(?:DESCRIPTION|ITEM|TASK|PRODUCT|DETAILS?)\b"
_PRICE = r"\b(?:UNIT\s+PRICE|RATE|PRICE)\b"
_AMOUNT = r"\b(?:AMOUNT|TOTAL|COST)\b"

HEADER_PATTERNS: list[re.Pattern[str]] = [
    re.compile(_GAP.join([_QTY, _DESC, _PRICE, _AMOUNT]), re.IGNORECASE),
    re.compile(_GAP.join([_DESC, _PRICE, _QTY_ANY, _AMOUNT]), re.IGNORECASE),
    re.compile(_GAP.join([_DESC, _QTY_ANY, _PRICE, _AMOUNT]), re.IGNORECASE),
    re.compile(_GAP.join([_DESC, _PRICE, _AMOUNT]), re.IGNORECASE),
    re.compile(
        _GAP.join(["รายการ", "(?:จำนวน|ราคา|หน่วยละ)", "(?:จำนวนเงิน|ราคารวม|รวมเงิน)"])
    ),
]

_REGION_END_RE = re.compile(
    r"\bSUB\s*-?\s*TOTAL\b|\bGRAND\s+TOTAL\b|\b(?:BALANCE|AMOUNT)\s+DUE\b|\bTOTAL\b"
    r"|รวมเงิน|รวมเป็นเงิน|รวมทั้งสิ้น|ยอดรวม",
    re.IGNORECASE,
)

_HAS_DECIMAL_RE = re.compile(r"\d[\d,]*\.\d{1,2}")
_GROUPED_RE = re.compile(r"[$฿]?\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?")
_BARE_DIGITS_RE = re.compile(r"\d{3,}")
_DIGITS_RE = re.compile(r"\d+")
_FRAGMENT_RE = re.compile(r"\d{2}")
_CURRENCY_RE = re.compile(r"[$฿]\d[\d,]*(?:\.\d{1,2})?(?:/[A-Za-z]+)?")
_QTY_RE = re.compile(r"\d{1,4}(?:[.,]\d{1,2})?")


@dataclass(frozen=True)
class LineItem:
    """One row of an item table."""

    description: str
    qty: float | None = None
    unit_price: float | None = None
    amount: float | None = None

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class Token(NamedTuple):
    """A number read from the token stream and the index after it."""

    raw: str
    value: float
    next: int


def _at(tokens: Sequence[str], index: int) -> str:
    return tokens[index] if 0 <= index < len(tokens) else ""


def read_money(tokens: Sequence[str], index: int) -> Token | None:
    """Read a money-shaped token, joining a split decimal fragment."""
    cur, nxt = _at(tokens, index), _at(tokens, index + 1)
    if _HAS_DECIMAL_RE.search(cur) or _GROUPED_RE.fullmatch(cur):
        value = parse_money_token(cur)
        if value is not None:
            return Token(cur, value, index + 1)
    # "4000 00" is a split decimal, not 40.00 followed by a stray "00".
    if _BARE_DIGITS_RE.fullmatch(cur) and nxt != "00":
        value = parse_money_token(cur)
        if value is not None:
            return Token(cur, value, index + 1)
    if _DIGITS_RE.fullmatch(cur) and _FRAGMENT_RE.fullmatch(nxt):
        raw = f"{cur} {nxt}"
        value = parse_money_token(raw)
        if value is not None:
            return Token(raw, value, index + 2)
    if _CURRENCY_RE.fullmatch(cur):
        value = parse_money_token(cur.split("/")[0])
        if value is not None:
            return Token(cur, value, index + 1)
    return None


def read_qty(tokens: Sequence[str], index: int) -> Token | None:
    """Read a quantity token.

    Bare integers keep their value; only an explicit split fragment
    ("1 50") is read as a decimal.
    """
    cur, nxt = _at(tokens, index), _at(tokens, index + 1)
    if _DIGITS_RE.fullmatch(cur) and _FRAGMENT_RE.fullmatch(nxt):
        return Token(f"{cur} {nxt}", float(f"{cur}.{nxt}"), index + 2)
    if _QTY_RE.fullmatch(cur):
        return Token(cur, float(cur.replace(",", ".")), index + 1)
    if _DIGITS_RE.fullmatch(cur):
        return Token(cur, float(cur), index + 1)
    return None


def is_consistent(
    qty: float | None,
    unit_price: float | None,
    amount: float | None,
    abs_tol: float = 0.05,
    rel_tol: float = 0.02,
) -> bool:
    """Check ``qty * unit_price`` against ``amount`` when all are known."""
    if qty is None or unit_price is None or amount is None:
        return True
    return abs(qty * unit_price - amount) <= max(abs_tol, rel_tol * abs(amount))


def _has_letter(text: str) -> bool:
    return any(c.isalpha() for c in text)


def slice_items_region(text: str) -> str | None:
    """Return the text between the item table header and the totals.

    The earliest header match wins. The region ends at the next total or
    subtotal keyword, or at the end of the text.
    """
    if not text:
        return None
    matches = [m for m in (p.search(text) for p in HEADER_PATTERNS) if m]
    if not matches:
        return None
    header = min(matches, key=lambda m: (m.start(), -m.end()))
    tail = text[header.end() :]
    end = _REGION_END_RE.search(tail)
    region = (tail[: end.start()] if end else tail).strip()
    return region or None


def tokenize(region: str) -> list[str]:
    return region.split()


def parse_qty_first(
    tokens: Sequence[str], config: ExtractionConfig | None = None
) -> list[LineItem]:
    """Read rows laid out as quantity, description, unit price, amount."""
    cfg = config or ExtractionConfig()
    items: list[LineItem] = []
    i = 0
    while i < len(tokens):
        qty = read_qty(tokens, i)
        if qty is None:
            i += 1
            continue
        window_end = min(len(tokens), qty.next + cfg.qty_first_window)
        unit_index = next(
            (k for k in range(qty.next, window_end) if read_money(tokens, k)),
            None,
        )
        if unit_index is None:
            i = qty.next
            continue
        unit = read_money(tokens, unit_index)
        amount = read_money(tokens, unit.next)
        description = " ".join(tokens[qty.next : unit_index])
        if (
            amount is None
            or not _has_letter(description)
            or not is_consistent(
                qty.value,
                unit.value,
                amount.value,
                cfg.item_abs_tolerance,
                cfg.item_rel_tolerance,
            )
        ):
            i = qty.next
            continue
        items.append(LineItem(description, qty.value, unit.value, amount.value))
        i = amount.next
    return items


_Row = tuple[Token, Token, Token]


def _price_then_qty(tokens: Sequence[str], k: int) -> _Row | None:
    unit = read_money(tokens, k)
    if unit is None:
        return None
    qty = read_qty(tokens, unit.next)
    if qty is None:
        return None
    amount = read_money(tokens, qty.next)
    if amount is None:
        return None
    return qty, unit, amount


def _qty_then_price(tokens: Sequence[str], k: int) -> _Row | None:
    qty = read_qty(tokens, k)
    if qty is None:
        return None
    unit = read_money(tokens, qty.next)
    if unit is None:
        return None
    amount = read_money(tokens, unit.next)
    if amount is None:
        return None
    return qty, unit, amount


RowReader = Callable[[Sequence[str], int], _Row | None]


def _scan_description_led(
    tokens: Sequence[str], cfg: ExtractionConfig, read_row: RowReader
) -> list[LineItem]:
    items: list[LineItem] = []
    i = 0
    while i < len(tokens):
        start = i
        for k in range(start + 1, min(len(tokens), start + cfg.desc_first_window)):
            row = read_row(tokens, k)
            if row is None:
                continue
            qty, unit, amount = row
            description = " ".join(tokens[start:k])
            if _has_letter(description) and is_consistent(
                qty.value,
                unit.value,
                amount.value,
                cfg.item_abs_tolerance,
                cfg.item_rel_tolerance,
            ):
                items.append(LineItem(description, qty.value, unit.value, amount.value))
                i = amount.next
            else:
                i = max(qty.next, start + 1)
            break
        if i == start:
            i += 1
    return items


def parse_desc_first(
    tokens: Sequence[str], config: ExtractionConfig | None = None
) -> list[LineItem]:
    """Read rows laid out as description, unit price, quantity, amount."""
    return _scan_description_led(tokens, config or ExtractionConfig(), _price_then_qty)


def parse_desc_qty_first(
    tokens: Sequence[str], config: ExtractionConfig | None = None
) -> list[LineItem]:
    """Read rows laid out as description, quantity, unit price, amount."""
    return _scan_description_led(tokens, config or ExtractionConfig(), _qty_then_price)


def extract_line_items(
    text: str, config: ExtractionConfig | None = None
) -> list[LineItem]:
    """Extract the item table of a commercial document.

    Args:
        text: Normalized document text.
        config: Extraction settings, defaults when omitted.

    Returns:
        Accepted rows from the grammar that reads the most rows. Ties go
        to the quantity-first reading, then the price-before-quantity
        one. No table yields an empty list.
    """
    region = slice_items_region(text or "")
    if region is None:
        logger.debug("No item table header found")
        return []
    tokens = tokenize(region)
    readings = [
        parse_qty_first(tokens, config),
        parse_desc_first(tokens, config),
        parse_desc_qty_first(tokens, config),
    ]
    logger.debug(
        "Item grammars over %d tokens: qty-first=%d desc-first=%d desc-qty=%d",
        len(tokens),
        *(len(items) for items in readings),
    )
    return max(readings, key=len)
