"""Rule-based field extraction for classified documents.

Commercial documents are scanned for labeled values (document number,
dates, parties and money fields) with separate English and Thai label
sets. Resumes, business letters and Thai memos each have their own
layout-specific extraction, and every document gets contact details.
"""

import dataclasses
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from docstruct.extraction.classifier import COMMERCIAL_TYPES, DocumentType
from docstruct.extraction.money import MoneyField, find_last_amount
from docstruct.sections.thai_memo import extract_memo_fields
from docstruct.utils.config import ExtractionConfig
from docstruct.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SmartFields:
    """Structured fields extracted from one document.

    Every field except ``doc_type`` may be absent. Money fields keep both
    the raw matched token and the parsed value.
    """

    doc_type: DocumentType = DocumentType.GENERIC
    doc_no: str | None = None
    date: str | None = None
    due_date: str | None = None
    seller: str | None = None
    buyer: str | None = None
    subtotal: MoneyField | None = None
    vat: MoneyField | None = None
    discount: MoneyField | None = None
    total: MoneyField | None = None
    email: str | None = None
    phone: str | None = None
    name: str | None = None
    title: str | None = None
    subject: str | None = None
    recipient: str | None = None
    sender: str | None = None
    agency: str | None = None
    ref_no: str | None = None
    reference: str | None = None
    attachments: tuple[str, ...] = ()
    signer_name: str | None = None
    signer_position: str | None = None

    def replace(self, **changes: object) -> "SmartFields":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, object]:
        """Serialize to plain JSON-compatible values."""
        result: dict[str, object] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, MoneyField):
                value = value.to_dict()
            elif isinstance(value, tuple):
                value = list(value)
            elif isinstance(value, DocumentType):
                value = value.value
            result[f.name] = value
        return result


@dataclass(frozen=True)
class LabelSet:
    """English and Thai label patterns for one field."""

    en: tuple[re.Pattern[str], ...]
    th: tuple[re.Pattern[str], ...]

    def ordered(self, prefer_thai: bool) -> list[re.Pattern[str]]:
        return [*self.th, *self.en] if prefer_thai else [*self.en, *self.th]


def _labels(en: Sequence[str], th: Sequence[str]) -> LabelSet:
    return LabelSet(
        en=tuple(re.compile(p, re.IGNORECASE) for p in en),
        th=tuple(re.compile(p) for p in th),
    )


# Specific document-number labels come before the generic ones so an
# address "เลขที่" never wins over "เลขที่ใบกำกับภาษี".
DOC_NO_LABELS = _labels(
    [
        r"\b(?:TAX\s+)?INVOICE\s*(?:NO\b\.?|NUMBER\b|#)",
        r"\bRECEIPT\s*(?:NO\b\.?|NUMBER\b|#)",
        r"\bQUOT(?:E|ATION)\s*(?:NO\b\.?|NUMBER\b|#)",
        r"\b(?:PO|P\.O\.|PURCHASE\s+ORDER)\s*(?:NO\b\.?|NUMBER\b|#)",
        r"\b(?:CREDIT|DEBIT)\s+NOTE\s*(?:NO\b\.?|NUMBER\b|#)",
        r"\bBILL\s*(?:NO\b\.?|NUMBER\b|#)",
        r"\bDOC(?:UMENT)?\s*(?:NO\b\.?|NUMBER\b|#)",
    ],
    [
        r"เลขที่(?:ใบกำกับภาษี|ใบเสร็จ(?:รับเงิน)?|ใบแจ้งหนี้|ใบเสนอราคา|ใบสั่งซื้อ"
        r"|ใบลดหนี้|ใบเพิ่มหนี้|ใบวางบิล|เอกสาร)",
    ],
)
GENERIC_DOC_NO_LABELS = _labels(
    [r"^\s*(?:NO\b\.?|NUMBER\b|#)", r"\bREF(?:ERENCE)?\s*(?:NO\b\.?|#)"],
    [r"^\s*เลขที่"],
)
DATE_LABELS = _labels(
    [r"(?<!DUE\s)(?<!DUE)\bDATE\b", r"\bDATED\b"],
    [r"(?<!ครบกำหนด)วันที่(?!ครบ)", r"ลงวันที่"],
)
DUE_DATE_LABELS = _labels(
    [r"\bDUE\s+DATE\b", r"\bPAYMENT\s+DUE\b", r"\bDUE\s+ON\b"],
    [r"(?:วัน)?ครบกำหนด(?:ชำระ(?:เงิน)?)?"],
)
SELLER_LABELS = _labels(
    [r"^\s*(?:SELLER|VENDOR|SUPPLIER|PAY\s+TO|ISSUED\s+BY|FROM)\b"],
    [r"^\s*(?:ชื่อผู้ขาย|ผู้ขาย|ผู้ออกใบกำกับภาษี|ผู้รับเงิน)"],
)
BUYER_LABELS = _labels(
    [
        r"^\s*(?:BILL(?:ED)?\s+TO|SOLD\s+TO|ISSUED\s+TO|CUSTOMER(?:\s+NAME)?|BUYER"
        r"|CLIENT|RECEIVED\s+FROM)\b",
    ],
    [r"^\s*(?:ชื่อลูกค้า|ลูกค้า|นามผู้ซื้อ|ผู้ซื้อ|ได้รับเงินจาก)"],
)
SUBTOTAL_LABELS = _labels(
    [r"\bSUB\s*-?\s*TOTAL\b"],
    [r"รวมเงิน(?!ทั้งสิ้น)", r"รวมเป็นเงิน", r"ยอดรวมก่อนภาษี", r"ราคาก่อนภาษี"],
)
VAT_LABELS = _labels(
    [
        r"\b(?:VAT|GST|SALES\s+TAX|TAX)\b"
        r"(?!\s*(?:INVOICE|ID\b|I\.D|NO\b|NUMBER|REG|IDENTIFICATION|#))",
    ],
    [r"ภาษีมูลค่าเพิ่ม", r"(?<!กำกับ)(?<!ผู้เสีย)ภาษี(?!อากร)"],
)
DISCOUNT_LABELS = _labels([r"\bDISCOUNT\b"], [r"ส่วนลด"])
STRONG_TOTAL_LABELS = _labels(
    [
        r"\bGRAND\s+TOTAL\b",
        r"\bTOTAL\s+(?:DUE|AMOUNT|PAYABLE)\b",
        r"\b(?:BALANCE|AMOUNT)\s+DUE\b",
        r"\bNET\s+(?:TOTAL|AMOUNT)\b",
        r"\bAMOUNT\s+PAYABLE\b",
    ],
    [
        r"จำนวนเงินรวมทั้งสิ้น",
        r"รวมเงินทั้งสิ้น",
        r"รวมทั้งสิ้น",
        r"ยอดรวมสุทธิ",
        r"ยอดสุทธิ",
        r"ยอดชำระ",
    ],
)
WEAK_TOTAL_LABELS = _labels(
    [r"(?<!SUB)(?<!SUB\s)(?<!SUB-)\bTOTAL\b(?!\s*(?:QTY|QUANTITY|ITEMS?)\b)"],
    [r"ยอดรวม(?!ก่อน)"],
)
_MONEY_LABEL_SETS = (
    SUBTOTAL_LABELS,
    VAT_LABELS,
    DISCOUNT_LABELS,
    STRONG_TOTAL_LABELS,
    WEAK_TOTAL_LABELS,
)

SUBJECT_LABELS = _labels([r"^\s*(?:SUBJECT|SUBJ|RE)\s*[:：.]"], [r"^\s*เรื่อง"])
RECIPIENT_LABELS = _labels(
    [r"^\s*Dear\b", r"^\s*To\s*[:：]", r"^\s*Attn\.?\s*[:：]?"], [r"^\s*เรียน"]
)
SENDER_LABELS = _labels([r"^\s*From\s*[:：]"], [r"^\s*จาก\s*[:：]"])
_CLOSING_RE = re.compile(
    r"^\s*(?:Sincerely|Yours\s+(?:faithfully|truly|sincerely)"
    r"|(?:Best|Kind|Warm)\s+regards|Regards|ขอแสดงความนับถือ)\b",
    re.IGNORECASE,
)

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b")
PHONE_RE = re.compile(r"(?:\+?\d{1,4}[\s\-])?(?:0|\+66)\d(?:[\s\-]?\d){7,8}\b")

_MONTHS_EN = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?"
    r"|Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)
_MONTHS_TH = (
    r"(?:มกราคม|กุมภาพันธ์|มีนาคม|เมษายน|พฤษภาคม|มิถุนายน|กรกฎาคม|สิงหาคม"
    r"|กันยายน|ตุลาคม|พฤศจิกายน|ธันวาคม|ม\.ค\.|ก\.พ\.|มี\.ค\.|เม\.ย\.|พ\.ค\."
    r"|มิ\.ย\.|ก\.ค\.|ส\.ค\.|ก\.ย\.|ต\.ค\.|พ\.ย\.|ธ\.ค\.)"
)
DATE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}\b"),
    re.compile(r"\b\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}\b"),
    re.compile(
        rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTHS_EN}\.?,?\s+\d{{4}}\b", re.IGNORECASE
    ),
    re.compile(
        rf"\b{_MONTHS_EN}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b", re.IGNORECASE
    ),
    re.compile(rf"\d{{1,2}}\s*{_MONTHS_TH}\s*(?:(?:พ\.ศ\.|ค\.ศ\.)\s*)?\d{{4}}"),
]

_SEPARATORS_RE = re.compile(r"^[\s:：\-–=#.]+")
_DOC_NO_TOKEN_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9\-/_.]*")
_COMPANY_RE = re.compile(
    r"\b(?:Co\.?,?\s*Ltd|Company|Limited|Inc|LLC|Corp(?:oration)?|Ltd)\b\.?"
    r"|บริษัท.*จำกัด|ห้างหุ้นส่วน|หจก\.",
    re.IGNORECASE,
)
_RESUME_HEADING_RE = re.compile(
    r"^\s*(?:SUMMARY|PROFILE|OBJECTIVE|ABOUT\s+ME|EDUCATION|(?:WORK\s+|PROFESSIONAL\s+)?"
    r"EXPERIENCE|EMPLOYMENT|SKILLS|TECHNICAL\s+SKILLS|PROJECTS?|CERTIFICATIONS?"
    r"|LANGUAGES|REFERENCES|CONTACT|ประวัติการศึกษา|การศึกษา|ประสบการณ์|ทักษะ"
    r"|ความสามารถ|ผลงาน|ข้อมูลส่วนตัว)\b",
    re.IGNORECASE,
)
_RESUME_TITLE_RE = re.compile(
    r"^\s*(?:RESUME|RÉSUMÉ|CURRICULUM\s+VITAE|CV|ประวัติย่อ)\s*$", re.IGNORECASE
)
_THAI_LETTER_RE = re.compile(r"[ก-ฮ]")
_LATIN_LETTER_RE = re.compile(r"[A-Za-z]")

Accept = Callable[[str], str | None]


def prefers_thai(text: str, lang: str = "auto") -> bool:
    """Decide whether Thai labels are tried before English ones.

    Args:
        text: Document text.
        lang: ``"tha"``, ``"eng"`` or ``"auto"``. Auto picks Thai when
            Thai letters outnumber Latin ones.
    """
    lang = (lang or "auto").lower()
    if lang.startswith("tha") or lang == "th":
        return True
    if lang.startswith("eng") or lang == "en":
        return False
    return len(_THAI_LETTER_RE.findall(text)) > len(_LATIN_LETTER_RE.findall(text))


def _remainder(line: str, match: re.Match[str]) -> str:
    return _SEPARATORS_RE.sub("", line[match.end() :]).strip()


def find_labeled_value(
    lines: Sequence[str],
    labels: Sequence[re.Pattern[str]],
    accept: Accept | None = None,
    lookahead: int = 2,
) -> str | None:
    """Find the value written after a label.

    The value is the rest of the label line, or one of the next
    ``lookahead`` non-empty lines when the label stands alone or its
    remainder is rejected. ``accept`` cleans a candidate and returns
    ``None`` to reject it, in which case scanning continues.

    Args:
        lines: Document lines.
        labels: Label patterns in priority order.
        accept: Optional candidate validator.
        lookahead: How many following lines may carry the value.

    Returns:
        The first accepted value, or ``None``.
    """
    for index, line in enumerate(lines):
        for pattern in labels:
            match = pattern.search(line)
            if not match:
                continue
            remainder = _remainder(line, match)
            candidates = [remainder] if remainder else []
            candidates += [
                following.strip()
                for following in lines[index + 1 : index + 1 + lookahead]
                if following.strip()
            ]
            for candidate in candidates:
                value = accept(candidate) if accept else candidate
                if value:
                    return value
    return None


def _is_money_label_line(line: str) -> bool:
    return any(
        pattern.search(line)
        for labels in _MONEY_LABEL_SETS
        for pattern in (*labels.en, *labels.th)
    )


def find_labeled_amount(
    lines: Sequence[str],
    labels: Sequence[re.Pattern[str]],
    lookahead: int = 2,
) -> MoneyField | None:
    """Find a money value written after a label.

    The amount is the last number after the label on its line. A label
    with no number takes the last number of the next ``lookahead`` lines,
    stopping at a line that carries another money label.
    """
    for index, line in enumerate(lines):
        for pattern in labels:
            match = pattern.search(line)
            if not match:
                continue
            token = find_last_amount(line[match.end() :])
            if token is None:
                for following in lines[index + 1 : index + 1 + lookahead]:
                    if _is_money_label_line(following):
                        break
                    token = find_last_amount(following)
                    if token is not None:
                        break
            if token is not None:
                return MoneyField.from_raw(token)
    return None


def find_date(text: str) -> str | None:
    """Return the earliest date-shaped substring of the text."""
    best: re.Match[str] | None = None
    for pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if match and (best is None or match.start() < best.start()):
            best = match
    return best.group(0) if best else None


def _accept_doc_no(candidate: str) -> str | None:
    match = _DOC_NO_TOKEN_RE.search(candidate)
    if not match:
        return None
    token = match.group(0).rstrip("./-_")
    if not any(c.isdigit() for c in token) or find_date(token) == token:
        return None
    return token


def _accept_party(candidate: str) -> str | None:
    value = candidate.strip(" ,;:：-")
    if not value or len(value) > 120 or not any(c.isalpha() for c in value):
        return None
    return value


def _accept_text(candidate: str) -> str | None:
    value = candidate.strip(" ,;:：")
    return value or None


def _first_of(*values: str | None) -> str | None:
    return next((v for v in values if v), None)


class FieldExtractor:
    """Extract typed fields according to the document type."""

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self._extractors: dict[DocumentType, Callable[[list[str], str, bool], dict]] = {
            DocumentType.RESUME: self._extract_resume,
            DocumentType.BUSINESS_LETTER: self._extract_letter,
            DocumentType.THAI_MEMO: self._extract_memo,
        }

    def extract(
        self, text: str, doc_type: DocumentType, lang: str | None = None
    ) -> SmartFields:
        """Extract fields from normalized text.

        Args:
            text: Normalized document text.
            doc_type: Type assigned by the classifier.
            lang: Language hint, ``"tha"``, ``"eng"`` or ``"auto"``.

        Returns:
            The extracted fields. Missing fields are ``None``.
        """
        text = text or ""
        lines = [line.strip() for line in text.split("\n")]
        prefer_thai = prefers_thai(text, lang or self.config.default_lang)

        values: dict[str, object] = self._extract_contacts(text)
        if doc_type in COMMERCIAL_TYPES:
            values.update(self._extract_commercial(lines, text, prefer_thai))
        elif doc_type in self._extractors:
            values.update(self._extractors[doc_type](lines, text, prefer_thai))
        else:
            values["date"] = find_date(text)

        fields = SmartFields(doc_type=doc_type, **values)
        found = [k for k, v in fields.to_dict().items() if v and k != "doc_type"]
        logger.info("Extracted %d fields for %s: %s", len(found), doc_type, found)
        return fields

    def _extract_contacts(self, text: str) -> dict[str, object]:
        email = EMAIL_RE.search(text)
        phone = PHONE_RE.search(text)
        return {
            "email": email.group(0) if email else None,
            "phone": phone.group(0).strip() if phone else None,
        }

    def _extract_commercial(
        self, lines: list[str], text: str, prefer_thai: bool
    ) -> dict[str, object]:
        def labeled(labels: LabelSet, accept: Accept | None = None) -> str | None:
            return find_labeled_value(lines, labels.ordered(prefer_thai), accept)

        def amount(labels: LabelSet) -> MoneyField | None:
            return find_labeled_amount(lines, labels.ordered(prefer_thai))

        def date_accept(candidate: str) -> str | None:
            return find_date(candidate)

        buyer = labeled(BUYER_LABELS, _accept_party)
        seller = labeled(SELLER_LABELS, _accept_party) or self._company_line(
            lines, exclude=buyer
        )
        return {
            "doc_no": _first_of(
                labeled(DOC_NO_LABELS, _accept_doc_no),
                labeled(GENERIC_DOC_NO_LABELS, _accept_doc_no),
            ),
            "date": labeled(DATE_LABELS, date_accept) or find_date(text),
            "due_date": labeled(DUE_DATE_LABELS, date_accept),
            "seller": seller,
            "buyer": buyer,
            "subtotal": amount(SUBTOTAL_LABELS),
            "vat": amount(VAT_LABELS),
            "discount": amount(DISCOUNT_LABELS),
            "total": amount(STRONG_TOTAL_LABELS) or amount(WEAK_TOTAL_LABELS),
        }

    @staticmethod
    def _company_line(lines: list[str], exclude: str | None = None) -> str | None:
        """First company-looking line near the top of the document."""
        for line in lines[:10]:
            if exclude and exclude in line:
                continue
            if _COMPANY_RE.search(line) and len(line) <= 120:
                return line
        return None

    def _extract_resume(
        self, lines: list[str], text: str, prefer_thai: bool
    ) -> dict[str, object]:
        candidates: list[str] = []
        for line in [l for l in lines if l][: self.config.resume_scan_lines]:
            if _RESUME_HEADING_RE.match(line):
                break
            if _RESUME_TITLE_RE.match(line) or EMAIL_RE.search(line):
                continue
            if PHONE_RE.search(line) or any(c.isdigit() for c in line):
                continue
            if any(c.isalpha() for c in line) and not line.endswith((":", "：")):
                candidates.append(line)

        name = next(
            (c for c in candidates if len(c) < 50 and 1 <= len(c.split()) <= 5), None
        )
        title = None
        if name is not None:
            rest = candidates[candidates.index(name) + 1 :]
            title = next((c for c in rest if len(c) < 60 and len(c.split()) <= 8), None)
        return {"name": name, "title": title}

    def _extract_letter(
        self, lines: list[str], text: str, prefer_thai: bool
    ) -> dict[str, object]:
        def labeled(labels: LabelSet, accept: Accept | None = None) -> str | None:
            return find_labeled_value(lines, labels.ordered(prefer_thai), accept)

        return {
            "date": labeled(DATE_LABELS, find_date) or find_date(text),
            "subject": labeled(SUBJECT_LABELS, _accept_text),
            "recipient": labeled(RECIPIENT_LABELS, _accept_party),
            "sender": labeled(SENDER_LABELS, _accept_party)
            or self._signature_sender(lines),
        }

    @staticmethod
    def _signature_sender(lines: list[str]) -> str | None:
        """The first named line after the closing phrase."""
        for index, line in enumerate(lines):
            if not _CLOSING_RE.match(line):
                continue
            for following in lines[index + 1 : index + 4]:
                value = following.strip(" ()")
                if value and any(c.isalpha() for c in value):
                    return value
        return None

    def _extract_memo(
        self, lines: list[str], text: str, prefer_thai: bool
    ) -> dict[str, object]:
        return extract_memo_fields(text)


def extract_fields(
    text: str,
    doc_type: DocumentType,
    lang: str | None = None,
    config: ExtractionConfig | None = None,
) -> SmartFields:
    """Extract fields with a one-off :class:`FieldExtractor`."""
    return FieldExtractor(config).extract(text, doc_type, lang)
