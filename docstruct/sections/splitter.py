"""Split normalized text into headed sections.

General documents are folded line by line through a two-state machine:
before the first heading everything lands in an implicit ``body``
section, afterwards lines belong to the most recent heading. Thai
official memos use their fixed template instead.
"""

import re
from dataclasses import asdict, dataclass, field
from functools import reduce

from docstruct.extraction.classifier import DocumentType, detect_thai_memo
from docstruct.normalization.text_normalizer import (
    is_bullet_line,
    is_mostly_upper,
    strip_bullet,
)
from docstruct.sections.thai_memo import parse_thai_memo
from docstruct.utils.config import SectionConfig
from docstruct.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SECTION = "body"

_SECTION_KEYWORD_RE = re.compile(
    r"^(?:SUMMARY|PROFILE|OBJECTIVE|ABOUT(?:\s+ME)?|EDUCATION|(?:WORK\s+|PROFESSIONAL\s+)?"
    r"EXPERIENCE|EMPLOYMENT|SKILLS|PROJECTS?|CERTIFICATIONS?|LANGUAGES|INTERESTS"
    r"|AWARDS|REFERENCES|CONTACT|NOTES?|TERMS|PAYMENT|BILL\s+TO|SHIP\s+TO"
    r"|INTRODUCTION|BACKGROUND|CONCLUSION"
    r"|ประวัติการศึกษา|การศึกษา|ประสบการณ์|ทักษะ|ความสามารถ|ผลงาน|ข้อมูลส่วนตัว"
    r"|หมายเหตุ|เงื่อนไข|ที่อยู่|ติดต่อ)",
    re.IGNORECASE,
)
_COLON_END_RE = re.compile(r"[:：]\s*$")
_CONNECTOR_END_RE = re.compile(r"[\-,/&+]$")
_CONTINUATION_START_RE = re.compile(r"^[a-z\u0e00-\u0e7f]")


@dataclass
class Section:
    """A heading and the content lines under it."""

    heading: str
    content: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class _FoldState:
    """Sections closed so far and the one being filled.

    ``heading`` is ``None`` until the first heading is seen.
    """

    closed: tuple[Section, ...] = ()
    heading: str | None = None
    content: tuple[str, ...] = ()
    paragraph_break: bool = False

    def close(self) -> tuple[Section, ...]:
        if self.heading is None and not self.content:
            return self.closed
        section = Section(self.heading or DEFAULT_SECTION, list(self.content))
        return (*self.closed, section)


def is_heading(line: str, config: SectionConfig | None = None) -> bool:
    """Decide whether a line opens a new section."""
    cfg = config or SectionConfig()
    line = line.strip()
    if not line or is_bullet_line(line):
        return False
    if _COLON_END_RE.search(line) and len(line) <= cfg.colon_heading_max_chars:
        return True
    if len(line) <= cfg.heading_max_chars and _SECTION_KEYWORD_RE.match(line):
        return True
    return is_mostly_upper(line) and not any(c.isdigit() for c in line)


def _is_continuation(previous: str, line: str) -> bool:
    if is_bullet_line(line):
        return False
    if _CONNECTOR_END_RE.search(previous):
        return True
    return bool(_CONTINUATION_START_RE.match(line)) and previous[-1:].isalnum()


def _step(config: SectionConfig):
    def step(state: _FoldState, line: str) -> _FoldState:
        line = line.strip()
        if not line:
            return _FoldState(state.closed, state.heading, state.content, True)
        if is_heading(line, config):
            heading = _COLON_END_RE.sub("", line).strip() or line
            return _FoldState(state.close(), heading)
        if (
            state.content
            and not state.paragraph_break
            and _is_continuation(state.content[-1], line)
        ):
            joined = f"{state.content[-1]} {line}"
            return _FoldState(state.closed, state.heading, (*state.content[:-1], joined))
        entry = strip_bullet(line)
        return _FoldState(state.closed, state.heading, (*state.content, entry))

    return step


def split_sections(
    text: str,
    doc_type: DocumentType | None = None,
    config: SectionConfig | None = None,
) -> list[Section]:
    """Split text into sections.

    Args:
        text: Normalized document text.
        doc_type: Classified type. Thai memos, whether classified or
            detected here, use the memo template.
        config: Section settings, defaults when omitted.

    Returns:
        Sections in document order. Empty text yields an empty list.
    """
    cfg = config or SectionConfig()
    text = text or ""
    if doc_type == DocumentType.THAI_MEMO or detect_thai_memo(text):
        memo = parse_thai_memo(text, cfg.memo_signature_window)
        return [Section(heading, list(content)) for heading, content in memo.sections]

    state = reduce(_step(cfg), text.split("\n"), _FoldState())
    sections = list(state.close())
    logger.debug("Split text into %d sections", len(sections))
    return sections
