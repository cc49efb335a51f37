"""Optional text revision with the heuristic engine as fallback.

A reviser is any callable that takes a prompt and returns the revised
document, either as a mapping or as a JSON string (optionally wrapped in
a Markdown code fence). It is an optional enhancement: whenever it is
missing, fails or returns malformed data, the heuristic engine's own
clean text and sections are returned instead.
"""

import json
import re
from collections.abc import Callable, Mapping
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from docstruct.parser import DocumentParser
from docstruct.utils.logger import get_logger

logger = get_logger(__name__)

Reviser = Callable[[str], Any]

REVISION_INSTRUCTIONS = """\
Clean up this OCR transcription so it reads naturally without changing its meaning.
- Remove OCR garbage characters and rejoin broken lines.
- Keep bullets, years and date ranges. For a resume, find the name and title.
- Reply with JSON only, no commentary and no code block:
{"clean_text": string, "sections": [{"heading": string, "content": [string]}],
 "name": string or null, "title": string or null}"""

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$")


class RefinedSection(BaseModel):
    """A section of a revised document."""

    heading: str
    content: list[str] = Field(default_factory=list)


class RefinedDocument(BaseModel):
    """Revised text and sections, tagged with where they came from."""

    clean_text: str = Field(validation_alias=AliasChoices("clean_text", "cleanText"))
    sections: list[RefinedSection] = Field(default_factory=list)
    name: str | None = None
    title: str | None = None
    source: Literal["reviser", "fallback"] = "reviser"


def build_prompt(text: str) -> str:
    return f"{REVISION_INSTRUCTIONS}\n\nOCR text:\n{text}"


def _decode(reply: Any) -> Mapping[str, Any]:
    if isinstance(reply, str):
        reply = json.loads(_FENCE_RE.sub("", reply))
    if not isinstance(reply, Mapping):
        raise TypeError(f"reviser returned {type(reply).__name__}, expected a mapping")
    return reply


def fallback(text: str, parser: DocumentParser | None = None) -> RefinedDocument:
    """Build the revised document from the heuristic engine alone."""
    result = (parser or DocumentParser()).parse(text)
    return RefinedDocument(
        clean_text=result.text,
        sections=[
            RefinedSection(heading=s.heading, content=s.content)
            for s in result.sections
        ],
        name=result.fields.name,
        title=result.fields.title,
        source="fallback",
    )


def refine(
    text: str,
    reviser: Reviser | None = None,
    parser: DocumentParser | None = None,
) -> RefinedDocument:
    """Revise OCR text, falling back to the heuristic engine.

    Args:
        text: Raw OCR text.
        reviser: Optional revision callable, called with the full prompt.
        parser: Parser used for the fallback, a default one when omitted.

    Returns:
        The reviser's document, or the heuristic fallback.

    Raises:
        TypeError: If ``text`` is not a string.
    """
    if not isinstance(text, str):
        raise TypeError(f"text must be str, not {type(text).__name__}")
    if reviser is None:
        logger.debug("No reviser configured, using heuristic fallback")
        return fallback(text, parser)

    try:
        reply = _decode(reviser(build_prompt(text)))
        document = RefinedDocument.model_validate({**reply, "source": "reviser"})
    except (json.JSONDecodeError, TypeError, ValidationError) as exc:
        logger.warning("Reviser returned malformed data (%s), using fallback", exc)
        return fallback(text, parser)
    except Exception:
        logger.warning("Reviser failed, using heuristic fallback", exc_info=True)
        return fallback(text, parser)

    logger.info("Reviser produced %d sections", len(document.sections))
    return document
