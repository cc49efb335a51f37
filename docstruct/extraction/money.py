"""Interpretation of OCR-mangled money and number tokens.

OCR regularly drops decimal points, splits a decimal fragment off with a
space ("40 00") and sprinkles currency symbols and thousands separators
around amounts. The helpers here turn such tokens into floats and never
raise: an unparseable token is simply ``None``.
"""

import math
import re
from dataclasses import asdict, dataclass

_NON_NUMERIC_RE = re.compile(r"[^\d\s.,\-]")
_WHITESPACE_RE = re.compile(r"\s+")
_DECIMAL_RE = re.compile(r"-?\d+\.\d{1,2}")
_BARE_DIGITS_RE = re.compile(r"\d{3,}")
_SPLIT_DECIMAL_RE = re.compile(r"(-?\d+) (\d{2})")
_INTEGER_RE = re.compile(r"-?\d+")
_GROUPED_INTEGER_RE = re.compile(r"-?\d{1,3}(?:,\d{3})+")
_PERCENT_RE = re.compile(r"(\d{1,3}(?:[.,]\d+)?)\s?%")

_DATE_LIKE_RE = re.compile(r"\d{1,4}[/.\-]\d{1,2}[/.\-]\d{1,4}")
_AMOUNT_TOKEN_RE = re.compile(r"(?<![\w./\-])-?\d[\d,]*(?:\.\d+)?(?: ?%)?")


def parse_money_token(raw: str | None) -> float | None:
    """Parse a money-like token into a float.

    Rules, first match wins:

    1. A comma-grouped integer is a whole amount ("1,500" -> 1500).
    2. A decimal point followed by one or two digits is parsed directly.
    3. A bare run of three or more digits with no separators lost its
       decimal point two digits from the end ("4000" -> 40.00).
    4. A number followed by a separate two-digit fragment is a split
       decimal ("40 00" -> 40.00).
    5. Anything else that is a plain integer is parsed as such.

    Args:
        raw: Token text, possibly with currency symbols and separators.

    Returns:
        The parsed amount, or ``None`` if the token is not a number.
    """
    if raw is None:
        return None
    s = _NON_NUMERIC_RE.sub("", str(raw))
    s = _WHITESPACE_RE.sub(" ", s).strip().rstrip(".-").strip()
    if not s:
        return None
    if _GROUPED_INTEGER_RE.fullmatch(s):
        return _finite(float(s.replace(",", "")))
    s = s.replace(",", "")

    if _DECIMAL_RE.fullmatch(s):
        return _finite(float(s))
    if _BARE_DIGITS_RE.fullmatch(s):
        return _finite(float(f"{s[:-2]}.{s[-2:]}"))
    match = _SPLIT_DECIMAL_RE.fullmatch(s)
    if match:
        return _finite(float(f"{match.group(1)}.{match.group(2)}"))
    if _INTEGER_RE.fullmatch(s):
        return _finite(float(s))
    return None


def parse_percent(raw: str | None) -> float | None:
    """Return the percentage in a token such as ``"7%"`` or ``"7.5 %"``."""
    if not raw:
        return None
    match = _PERCENT_RE.search(raw)
    if not match:
        return None
    return _finite(float(match.group(1).replace(",", ".")))


def format_money(value: float | None) -> str | None:
    """Render an amount with thousands separators and two decimals."""
    if value is None or not math.isfinite(value):
        return None
    return f"{value:,.2f}"


def approx_equal(
    a: float | None,
    b: float | None,
    abs_tol: float = 0.05,
    rel_tol: float = 0.02,
) -> bool:
    """Compare two amounts with an absolute floor and a relative tolerance."""
    if a is None or b is None:
        return False
    return abs(a - b) <= max(abs_tol, rel_tol * max(abs(a), abs(b)))


def find_last_amount(text: str) -> str | None:
    """Return the last numeric-looking substring of a line.

    Date-shaped substrings are ignored. A trailing two-digit fragment is
    joined to the number before it so "1,040 00" comes back whole.
    """
    if not text:
        return None
    scrubbed = _DATE_LIKE_RE.sub(" ", text)
    tokens = [m.group(0) for m in _AMOUNT_TOKEN_RE.finditer(scrubbed)]
    if not tokens:
        return None
    last = tokens[-1].strip()
    if len(tokens) >= 2 and re.fullmatch(r"\d{2}", last):
        prev = tokens[-2].strip()
        if re.fullmatch(r"-?\d[\d,]*", prev) and re.search(
            rf"{re.escape(prev)}\s+{last}\s*\D*$", scrubbed
        ):
            return f"{prev} {last}"
    return last


def _finite(value: float) -> float | None:
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class MoneyField:
    """A monetary field as read from the document.

    ``derived`` is False for values read from labeled text and True for
    values synthesized during reconciliation.
    """

    raw: str | None = None
    value: float | None = None
    text: str | None = None
    derived: bool = False

    @classmethod
    def from_raw(cls, raw: str) -> "MoneyField":
        """Build a field from a matched token, keeping percentages as text."""
        raw = raw.strip()
        if "%" in raw:
            percent = parse_percent(raw)
            text = f"{percent:g}%" if percent is not None else raw
            return cls(raw=raw, value=None, text=text)
        value = parse_money_token(raw)
        return cls(raw=raw, value=value, text=format_money(value))

    @classmethod
    def from_value(
        cls, value: float, raw: str | None = None, derived: bool = True
    ) -> "MoneyField":
        """Build a field from a computed amount."""
        value = round(value, 2)
        return cls(
            raw=raw if raw is not None else format_money(value),
            value=value,
            text=format_money(value),
            derived=derived,
        )

    @property
    def is_percent(self) -> bool:
        return self.value is None and self.raw is not None and "%" in self.raw

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
