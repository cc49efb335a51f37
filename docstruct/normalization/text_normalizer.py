"""Cleanup of raw OCR text for mixed Thai/English documents.

The normalizer unifies digit scripts, strips invisible characters,
collapses whitespace, rejoins words and paragraphs that OCR broke across
lines, repairs a fixed set of common misrecognitions and tidies spacing
around Thai clusters and punctuation.

Every step is written so that running :func:`normalize` on its own
output returns the same text.
"""

import re

from docstruct.utils.config import NormalizationConfig
from docstruct.utils.logger import get_logger

logger = get_logger(__name__)

_THAI_DIGITS = str.maketrans("๐๑๒๓๔๕๖๗๘๙", "0123456789")

_INVISIBLE_RE = re.compile(r"[\u200b\u200c\u200d\u2060\ufeff\u00ad]")
_HSPACE_RE = re.compile(r"[^\S\n]+")
_SOFT_WRAP_RE = re.compile(r"(\w)[\-\u2010\u2011] ?\n ?(?=\w)")
_BLANK_RUN_RE = re.compile(r"\n{3,}")

_BULLET_RE = re.compile(r"^(?:[\-*•▪■●○◦]\s+|\(?\d{1,3}[.)]\s+|[A-Za-z][.)]\s+)")
_LABEL_RE = re.compile(r"^[^:：\n]{1,40}[:：]")
_TERMINAL_RE = re.compile(r"[.!?:;：。…]$")

_HEADING_EN_RE = re.compile(
    r"^(?:TAX\s+INVOICE|INVOICE|RECEIPT|QUOTATION|QUOTE|PURCHASE\s+ORDER"
    r"|CREDIT\s+NOTE|DEBIT\s+NOTE|BILL(?:ING)?|SUB\s*-?\s*TOTAL|GRAND\s+TOTAL"
    r"|TOTAL|VAT|TAX|GST|DISCOUNT|DATE|DUE\s+DATE|SHIP\s+TO|SOLD\s+TO"
    r"|ISSUED\s+TO|PAY\s+TO|SUMMARY|PROFILE|OBJECTIVE|EDUCATION"
    r"|(?:WORK\s+)?EXPERIENCE|SKILLS|PROJECTS?|CERTIFICATIONS?|LANGUAGES"
    r"|REFERENCES|CONTACT|DEAR|SUBJECT|SINCERELY|REGARDS|NOTES?)\b",
    re.IGNORECASE,
)
_HEADING_TH_RE = re.compile(
    r"^(?:ใบกำกับภาษี|ใบเสร็จ|ใบแจ้งหนี้|ใบเสนอราคา|ใบสั่งซื้อ|ใบลดหนี้|ใบเพิ่มหนี้"
    r"|ใบวางบิล|บันทึกข้อความ|ส่วนราชการ|ที่\s|วันที่|เรื่อง|เรียน|อ้างถึง"
    r"|สิ่งที่ส่งมาด้วย|ลงชื่อ|ขอแสดงความนับถือ|ตำแหน่ง|รวม|ภาษี|ส่วนลด|ประวัติ"
    r"|การศึกษา|ประสบการณ์|ทักษะ|หมายเหตุ)"
)

_MONEY_RE = re.compile(r"\d[\d,]*\.\d{2}(?!\d)")
_DATE_RE = re.compile(r"\b\d{1,2}[/.\-]\d{1,2}[/.\-]\d{2,4}\b")
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}")
_PHONE_RE = re.compile(r"(?:\+66|\b0)\d(?:[ \-]?\d){7,8}\b")

# Spaces OCR inserts inside Thai syllables: before a combining mark or a
# following vowel, and after a leading vowel.
_THAI_SPACE_BEFORE_MARK_RE = re.compile(
    r"(?<=[\u0e01-\u0e4e]) +(?=[\u0e30-\u0e3a\u0e45\u0e47-\u0e4e])"
)
_THAI_SPACE_AFTER_LEAD_RE = re.compile(r"(?<=[\u0e40-\u0e44]) +(?=[\u0e01-\u0e2e])")

_SPACE_BEFORE_CLOSING_RE = re.compile(r" +(?=[)\]}”’,.;:!?%：])")
_SPACE_AFTER_OPENING_RE = re.compile(r"(?<=[(\[{“‘]) +")

# Ordered: a later entry may depend on an earlier entry's output, never
# the other way round.
_THAI_CORRECTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"ภาษื"), "ภาษี"),
    (re.compile(r"บันท[ีื]ก"), "บันทึก"),
    (re.compile(r"ราซการ"), "ราชการ"),
    (re.compile(r"เร[ีึ]่อง"), "เรื่อง"),
    (re.compile(r"นับถีอ"), "นับถือ"),
    (re.compile(r"เพิ้ม"), "เพิ่ม"),
    (re.compile(r"จำนวนเงิบ"), "จำนวนเงิน"),
    (re.compile(r"เสนอราดา"), "เสนอราคา"),
    (re.compile(r"(แจ้ง|ลด|เพิ่ม)หนี(?![\u0e48-\u0e4c])"), r"\1หนี้"),
    (
        re.compile(r"ไบ(?=กำกับ|เสร็จ|แจ้งหนี้|เสนอราคา|สั่งซื้อ|ลดหนี้|เพิ่มหนี้|วางบิล)"),
        "ใบ",
    ),
]

_LATIN_CONFUSIONS: dict[str, str] = {
    "INV0ICE": "INVOICE",
    "SUBT0TAL": "SUBTOTAL",
    "T0TAL": "TOTAL",
    "AM0UNT": "AMOUNT",
    "DISC0UNT": "DISCOUNT",
    "RECE1PT": "RECEIPT",
    "QTV": "QTY",
}


def _build_latin_corrections() -> list[tuple[re.Pattern[str], str]]:
    corrections = []
    for wrong, right in _LATIN_CONFUSIONS.items():
        for variant_wrong, variant_right in (
            (wrong, right),
            (wrong.capitalize(), right.capitalize()),
        ):
            corrections.append(
                (re.compile(rf"\b{re.escape(variant_wrong)}\b"), variant_right)
            )
    return corrections


_OCR_CORRECTIONS = _THAI_CORRECTIONS + _build_latin_corrections()


def to_arabic_digits(text: str) -> str:
    """Replace Thai digit glyphs with ASCII digits."""
    return (text or "").translate(_THAI_DIGITS)


def is_bullet_line(line: str) -> bool:
    """Return True for lines that start with a bullet or list marker."""
    return bool(_BULLET_RE.match(line))


def strip_bullet(line: str) -> str:
    """Drop a leading bullet or list marker."""
    return _BULLET_RE.sub("", line, count=1)


def is_mostly_upper(line: str, min_letters: int = 4, ratio: float = 0.75) -> bool:
    """Return True when most Latin letters in the line are upper-case."""
    letters = [c for c in line if "A" <= c <= "Z" or "a" <= c <= "z"]
    if len(letters) < min_letters:
        return False
    uppers = sum(1 for c in letters if c <= "Z")
    return uppers / len(letters) >= ratio


def is_structural_line(line: str) -> bool:
    """Decide whether a line must stay on its own during line merging.

    Structural lines are headings, labels, list items and lines that carry
    data OCR tends to put on dedicated lines (amounts, dates, contacts).
    """
    return bool(
        is_bullet_line(line)
        or _HEADING_EN_RE.match(line)
        or _HEADING_TH_RE.match(line)
        or _LABEL_RE.match(line)
        or _MONEY_RE.search(line)
        or _DATE_RE.search(line)
        or _EMAIL_RE.search(line)
        or _PHONE_RE.search(line)
        or is_mostly_upper(line)
    )


def _is_noise_line(line: str) -> bool:
    return len(line) >= 3 and not any(c.isalnum() for c in line)


def _is_open(line: str, min_chars: int) -> bool:
    """A line accepts a continuation when it looks like a wrapped paragraph."""
    if not line or _TERMINAL_RE.search(line) or is_mostly_upper(line):
        return False
    return sum(1 for c in line if c.isalnum()) >= min_chars


def merge_broken_lines(lines: list[str], min_chars: int = 30) -> list[str]:
    """Rejoin paragraph lines that OCR split while keeping structural lines."""
    merged: list[str] = []
    for line in lines:
        if (
            merged
            and line
            and not is_structural_line(line)
            and _is_open(merged[-1], min_chars)
        ):
            merged[-1] = f"{merged[-1]} {line}"
        else:
            merged.append(line)
    return merged


def apply_ocr_corrections(text: str) -> str:
    """Apply the fixed table of known OCR misrecognitions."""
    for pattern, replacement in _OCR_CORRECTIONS:
        text = pattern.sub(replacement, text)
    return text


def collapse_thai_spacing(text: str) -> str:
    """Remove spaces that split a single Thai syllable."""
    text = _THAI_SPACE_AFTER_LEAD_RE.sub("", text)
    return _THAI_SPACE_BEFORE_MARK_RE.sub("", text)


def normalize_punctuation_spacing(text: str) -> str:
    """Drop spaces before closing and after opening punctuation."""
    text = _SPACE_BEFORE_CLOSING_RE.sub("", text)
    return _SPACE_AFTER_OPENING_RE.sub("", text)


def _rewrite(text: str) -> str:
    text = collapse_thai_spacing(text)
    text = apply_ocr_corrections(text)
    return normalize_punctuation_spacing(text)


def normalize(raw: str | None, config: NormalizationConfig | None = None) -> str:
    """Normalize raw OCR text.

    Args:
        raw: Text as produced by the OCR engine. ``None`` is treated as
            empty input.
        config: Normalization settings, defaults when omitted.

    Returns:
        Normalized text. Empty input yields an empty string.
    """
    if not raw:
        return ""
    cfg = config or NormalizationConfig()

    text = to_arabic_digits(raw)
    text = _INVISIBLE_RE.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HSPACE_RE.sub(" ", text)

    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(line for line in lines if not _is_noise_line(line))
    text = _SOFT_WRAP_RE.sub(r"\1", text)

    # Line rewrites run before merging so merge decisions see final lines,
    # and again after merging for spacing across joined lines.
    text = _rewrite(text)
    lines = merge_broken_lines(text.split("\n"), cfg.open_line_min_chars)
    text = _rewrite("\n".join(lines))
    text = _BLANK_RUN_RE.sub("\n\n", text).strip()

    logger.debug("Normalized %d chars into %d chars", len(raw), len(text))
    return text
