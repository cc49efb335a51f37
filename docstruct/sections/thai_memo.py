"""Fixed-template parsing of Thai official memos (บันทึกข้อความ).

A memo has a fixed header (agency, reference number, date, subject),
an addressee line, optional reference and attachment blocks, a free-form
body and a signature block with the signer's name and position.
"""

import re
from dataclasses import dataclass, field

from docstruct.utils.logger import get_logger

logger = get_logger(__name__)

MEMO_TITLE = "บันทึกข้อความ"

_AGENCY_RE = re.compile(r"^ส่วนราชการ\s*[:：]?\s*(.*)$")
_REF_NO_RE = re.compile(r"^ที่(?:\s+|\s*[:：]\s*)(.*?)(?:\s+วันที่.*)?$")
_DATE_RE = re.compile(r"(?:^|\s)วันที่\s*[:：]?\s*(.*)$")
_SUBJECT_RE = re.compile(r"^เรื่อง\s*[:：]?\s*(.*)$")
_ADDRESSEE_RE = re.compile(r"^เรียน\s*[:：]?\s*(.*)$")
_REFERENCE_RE = re.compile(r"^อ้างถึง\s*[:：]?\s*(.*)$")
_ATTACHMENTS_RE = re.compile(r"^สิ่งที่ส่งมาด้วย\s*[:：]?\s*(.*)$")
_ATTACHMENT_ITEM_RE = re.compile(r"^(?:\(?\d{1,2}[.)]|[\-•])\s*(.+)$")
_SIGNATURE_START_RE = re.compile(r"^(?:ขอแสดงความนับถือ|\(?ลงชื่อ\)?)")
_SIGNED_NAME_RE = re.compile(r"^\(?ลงชื่อ\)?\s*[.\s…_]*([^.\s…_(][^()]{1,60}?)[.\s…_]*$")
_PAREN_NAME_RE = re.compile(r"^\(\s*([^()]{2,60}?)\s*\)$")
_POSITION_RE = re.compile(r"^(?:ตำแหน่ง\s*[:：]?\s*)?(.{2,80})$")

# Lines that close the addressee/reference/attachment blocks.
_BLOCK_STARTS = (_ADDRESSEE_RE, _REFERENCE_RE, _ATTACHMENTS_RE, _SIGNATURE_START_RE)


@dataclass
class ThaiMemo:
    """Fields and sections recovered from a Thai official memo."""

    fields: dict[str, object] = field(default_factory=dict)
    sections: list[tuple[str, list[str]]] = field(default_factory=list)


def _first_group(pattern: re.Pattern[str], lines: list[str]) -> tuple[int, str] | None:
    for index, line in enumerate(lines):
        match = pattern.search(line)
        if match:
            return index, match.group(1).strip()
    return None


def _value_or_next(lines: list[str], found: tuple[int, str] | None) -> str | None:
    """Use the remainder of the label line, or the following line if empty."""
    if found is None:
        return None
    index, value = found
    if value:
        return value
    if index + 1 < len(lines) and not _is_block_start(lines[index + 1]):
        return lines[index + 1]
    return None


def _is_block_start(line: str) -> bool:
    return any(p.match(line) for p in _BLOCK_STARTS)


def _block(lines: list[str], found: tuple[int, str] | None) -> tuple[list[str], int]:
    """Collect a labeled block until the next structural keyword.

    Returns:
        The block's entries and the index of the first line after it.
    """
    if found is None:
        return [], -1
    index, value = found
    entries = [value] if value else []
    end = index + 1
    while end < len(lines) and _ATTACHMENT_ITEM_RE.match(lines[end]):
        if _is_block_start(lines[end]):
            break
        entries.append(_ATTACHMENT_ITEM_RE.match(lines[end]).group(1).strip())
        end += 1
    return entries, end


def _signature(lines: list[str], window: int) -> tuple[int, list[str]]:
    """Locate the signature block, bounded to ``window`` lines."""
    for index, line in enumerate(lines):
        if _SIGNATURE_START_RE.match(line):
            return index, lines[index : index + window]
    # No closing keyword: a parenthesized name near the end marks the block.
    tail_start = max(0, len(lines) - window)
    for index in range(len(lines) - 1, tail_start - 1, -1):
        if _PAREN_NAME_RE.match(lines[index]):
            return index, lines[index : index + window]
    return len(lines), []


def _signer(block: list[str]) -> tuple[str | None, str | None]:
    name_index = None
    name = None
    for index, line in enumerate(block):
        match = _PAREN_NAME_RE.match(line)
        if match:
            name_index, name = index, match.group(1).strip()
            break
    if name is None:
        for index, line in enumerate(block):
            match = _SIGNED_NAME_RE.match(line)
            if match:
                name_index, name = index, match.group(1).strip()
                break
    if name_index is None or name_index + 1 >= len(block):
        return name, None
    match = _POSITION_RE.match(block[name_index + 1])
    return name, match.group(1).strip() if match else None


def extract_memo_fields(text: str, signature_window: int = 6) -> dict[str, object]:
    """Return only the field values of a memo."""
    return parse_thai_memo(text, signature_window).fields


def parse_thai_memo(text: str, signature_window: int = 6) -> ThaiMemo:
    """Parse a Thai official memo into fields and template sections.

    Args:
        text: Normalized memo text.
        signature_window: Maximum number of lines in the signature block.

    Returns:
        The memo's fields and its sections, starting with a synthesized
        header section.
    """
    lines = [line.strip() for line in (text or "").split("\n") if line.strip()]

    agency = _value_or_next(lines, _first_group(_AGENCY_RE, lines))
    ref_no = _value_or_next(lines, _first_group(_REF_NO_RE, lines))
    date_found = _first_group(_DATE_RE, lines)
    date = date_found[1] or None if date_found else None
    subject = _value_or_next(lines, _first_group(_SUBJECT_RE, lines))

    addressee_found = _first_group(_ADDRESSEE_RE, lines)
    recipient = _value_or_next(lines, addressee_found)
    reference_found = _first_group(_REFERENCE_RE, lines)
    reference = _value_or_next(lines, reference_found)
    attachments, attachments_end = _block(lines, _first_group(_ATTACHMENTS_RE, lines))

    sig_index, sig_block = _signature(lines, signature_window)
    signer_name, signer_position = _signer(sig_block)

    body_start = 0
    for found, consumed in (
        (addressee_found, 1 if addressee_found and addressee_found[1] else 2),
        (reference_found, 1 if reference_found and reference_found[1] else 2),
    ):
        if found is not None:
            body_start = max(body_start, found[0] + consumed)
    if attachments_end > 0:
        body_start = max(body_start, attachments_end)
    if body_start == 0:
        subject_found = _first_group(_SUBJECT_RE, lines)
        if subject_found is not None:
            body_start = subject_found[0] + 1
    body = [line for line in lines[body_start:sig_index] if not _is_block_start(line)]

    fields: dict[str, object] = {
        "agency": agency,
        "ref_no": ref_no,
        "date": date,
        "subject": subject,
        "recipient": recipient,
        "reference": reference,
        "attachments": tuple(attachments),
        "signer_name": signer_name,
        "signer_position": signer_position,
    }

    header = [
        f"{label}: {value}"
        for label, value in (
            ("ส่วนราชการ", agency),
            ("ที่", ref_no),
            ("วันที่", date),
            ("เรื่อง", subject),
        )
        if value
    ]
    sections: list[tuple[str, list[str]]] = [("header", header)]
    if recipient:
        sections.append(("addressee", [recipient]))
    if reference:
        sections.append(("reference", [reference]))
    if attachments:
        sections.append(("attachments", attachments))
    if body:
        sections.append(("body", body))
    if sig_block:
        sections.append(("signature", sig_block))

    logger.debug(
        "Parsed Thai memo: %d body lines, signer=%s", len(body), signer_name
    )
    return ThaiMemo(fields=fields, sections=sections)
