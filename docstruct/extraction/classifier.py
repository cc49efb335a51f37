"""Document type classification from keyword and structure signals.

Rules are evaluated top-to-bottom and the first match wins, so more
specific document types are listed before generic ones and commercial
documents before letters and resumes.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from docstruct.utils.logger import get_logger

logger = get_logger(__name__)


class DocumentType(StrEnum):
    """Document types recognized by the classifier."""

    INVOICE = "invoice"
    RECEIPT = "receipt"
    QUOTATION = "quotation"
    PURCHASE_ORDER = "purchase_order"
    CREDIT_NOTE = "credit_note"
    DEBIT_NOTE = "debit_note"
    BILL = "bill"
    BUSINESS_LETTER = "business_letter"
    THAI_MEMO = "thai_memo"
    RESUME = "resume"
    GENERIC = "generic"


COMMERCIAL_TYPES: frozenset[DocumentType] = frozenset(
    {
        DocumentType.INVOICE,
        DocumentType.RECEIPT,
        DocumentType.QUOTATION,
        DocumentType.PURCHASE_ORDER,
        DocumentType.CREDIT_NOTE,
        DocumentType.DEBIT_NOTE,
        DocumentType.BILL,
    }
)


def _compile(*patterns: str, flags: int = re.IGNORECASE) -> list[re.Pattern[str]]:
    return [re.compile(p, flags) for p in patterns]


# Thai official memo (บันทึกข้อความ) signals.
_MEMO_HEADER_PATTERNS = _compile(
    r"บันทึกข้อความ",
    r"^\s*ส่วนราชการ",
    r"^\s*ที่(?:\s|[:：])",
    r"(?:^|\s)วันที่",
    r"^\s*เรื่อง",
    flags=re.MULTILINE,
)
_MEMO_BODY_PATTERNS = _compile(
    r"^\s*เรียน",
    r"สิ่งที่ส่งมาด้วย",
    r"^\s*อ้างถึง",
    r"จึงเรียนมาเพื่อ",
    r"ขอแสดงความนับถือ",
    r"ลงชื่อ",
    flags=re.MULTILINE,
)

_CREDIT_NOTE = _compile(r"\bCREDIT\s+NOTE\b", r"ใบลดหนี้")
_DEBIT_NOTE = _compile(r"\bDEBIT\s+NOTE\b", r"ใบเพิ่มหนี้")
_TAX_INVOICE = _compile(r"\bTAX\s+INVOICE\b", r"ใบกำกับภาษี")
_RECEIPT = _compile(r"\bRECEIPT\b", r"ใบเสร็จ(?:รับเงิน)?")
_QUOTATION = _compile(r"\bQUOTATION\b", r"\bQUOTE\s*(?:NO|NUMBER|#)", r"ใบเสนอราคา")
_PURCHASE_ORDER = _compile(
    r"\bPURCHASE\s+ORDER\b", r"\bP\.?O\.?\s*(?:NO\.?|NUMBER|#)", r"ใบสั่งซื้อ"
)
_INVOICE = _compile(r"\bINVOICE\b", r"ใบแจ้งหนี้")
# A bare "BILL" counts, "BILL TO" does not, and "BILLING" only in the
# explicit billing-note phrases.
_BILL = _compile(
    r"\bBILL\b(?!\s*TO\b)",
    r"\bBILLING\s+(?:NOTE|STATEMENT)\b",
    r"ใบวางบิล",
    r"ใบแจ้งค่า",
)
_LETTER_SALUTATION = _compile(
    r"^\s*(?:Dear\b|To\s+whom\s+it\s+may\s+concern)", r"^\s*เรียน", flags=re.I | re.M
)
_LETTER_CLOSING = _compile(
    r"\b(?:Sincerely|Yours\s+(?:faithfully|truly|sincerely)|(?:Best|Kind|Warm)\s+regards"
    r"|Regards)\b",
    r"ขอแสดงความนับถือ",
)
_RESUME_EXPLICIT = _compile(
    r"\bRESUME\b", r"\bRÉSUMÉ\b", r"\bCURRICULUM\s+VITAE\b", r"\bCV\b", r"ประวัติย่อ"
)
_RESUME_SECTIONS = _compile(
    r"^\s*(?:EDUCATION|ประวัติการศึกษา|การศึกษา)",
    r"^\s*(?:(?:WORK\s+|PROFESSIONAL\s+)?EXPERIENCE|EMPLOYMENT\s+HISTORY|ประสบการณ์(?:การ)?ทำงาน)",
    r"^\s*(?:SKILLS|TECHNICAL\s+SKILLS|ทักษะ|ความสามารถ)",
    r"^\s*(?:CERTIFICATIONS?|PROJECTS?|ผลงาน)",
    flags=re.I | re.M,
)


def _count_hits(patterns: list[re.Pattern[str]], text: str) -> int:
    return sum(1 for p in patterns if p.search(text))


def _any_hit(patterns: list[re.Pattern[str]]) -> Callable[[str], bool]:
    return lambda text: any(p.search(text) for p in patterns)


def memo_signal_counts(text: str) -> tuple[int, int]:
    """Count memo header-field and body keyword hits.

    Returns:
        ``(header_hits, body_hits)``.
    """
    return (
        _count_hits(_MEMO_HEADER_PATTERNS, text),
        _count_hits(_MEMO_BODY_PATTERNS, text),
    )


def detect_thai_memo(text: str) -> bool:
    """Return True when the text carries the Thai official memo layout.

    At least two header fields and at least one body keyword must be
    present; a single strong keyword is not enough.
    """
    header_hits, body_hits = memo_signal_counts(text or "")
    return header_hits >= 2 and body_hits >= 1


def _is_business_letter(text: str) -> bool:
    return _any_hit(_LETTER_SALUTATION)(text) and _any_hit(_LETTER_CLOSING)(text)


def _is_resume(text: str) -> bool:
    return _any_hit(_RESUME_EXPLICIT)(text) or _count_hits(_RESUME_SECTIONS, text) >= 2


@dataclass(frozen=True)
class ClassificationRule:
    """A named predicate that assigns a document type when it matches."""

    name: str
    doc_type: DocumentType
    predicate: Callable[[str], bool]


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("thai_memo", DocumentType.THAI_MEMO, detect_thai_memo),
    ClassificationRule("credit_note", DocumentType.CREDIT_NOTE, _any_hit(_CREDIT_NOTE)),
    ClassificationRule("debit_note", DocumentType.DEBIT_NOTE, _any_hit(_DEBIT_NOTE)),
    ClassificationRule("tax_invoice", DocumentType.INVOICE, _any_hit(_TAX_INVOICE)),
    ClassificationRule("receipt", DocumentType.RECEIPT, _any_hit(_RECEIPT)),
    ClassificationRule("quotation", DocumentType.QUOTATION, _any_hit(_QUOTATION)),
    ClassificationRule(
        "purchase_order", DocumentType.PURCHASE_ORDER, _any_hit(_PURCHASE_ORDER)
    ),
    ClassificationRule("invoice", DocumentType.INVOICE, _any_hit(_INVOICE)),
    ClassificationRule("bill", DocumentType.BILL, _any_hit(_BILL)),
    ClassificationRule(
        "business_letter", DocumentType.BUSINESS_LETTER, _is_business_letter
    ),
    ClassificationRule("resume", DocumentType.RESUME, _is_resume),
)


def rule_names() -> list[str]:
    """Return rule names in evaluation order."""
    return [rule.name for rule in CLASSIFICATION_RULES]


def matching_rule(text: str) -> ClassificationRule | None:
    """Return the first rule whose predicate accepts the text."""
    for rule in CLASSIFICATION_RULES:
        if rule.predicate(text):
            return rule
    return None


def classify(text: str) -> DocumentType:
    """Assign exactly one document type to normalized text.

    Args:
        text: Normalized document text.

    Returns:
        The first matching rule's type, or ``DocumentType.GENERIC``.
    """
    rule = matching_rule(text or "")
    if rule is None:
        logger.debug("No classification rule matched, using generic")
        return DocumentType.GENERIC
    logger.info("Classified document as %s (rule=%s)", rule.doc_type, rule.name)
    return rule.doc_type
