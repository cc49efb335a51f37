"""Tests for optional text revision and its fallback."""

import pytest

from docstruct.refine import RefinedDocument, build_prompt, fallback, refine


def _reply(_prompt: str) -> dict:
    return {
        "clean_text": "Somchai Jaidee\nData Engineer",
        "sections": [{"heading": "Profile", "content": ["Data Engineer"]}],
        "name": "Somchai Jaidee",
        "title": "Data Engineer",
    }


class TestFallback:
    """Tests for the heuristic fallback."""

    def test_no_reviser(self, resume_text: str) -> None:
        document = refine(resume_text)
        assert document.source == "fallback"
        assert document.name == "Somchai Jaidee"
        assert document.title == "Senior Data Engineer"
        assert [s.heading for s in document.sections][1:] == [
            "SUMMARY",
            "EXPERIENCE",
            "EDUCATION",
            "SKILLS",
        ]

    def test_fallback_uses_normalized_text(self) -> None:
        document = fallback("  Hello\u200b world  \r\n")
        assert document.clean_text == "Hello world"

    def test_rejects_non_string(self) -> None:
        with pytest.raises(TypeError):
            refine(None)  # type: ignore[arg-type]


class TestReviser:
    """Tests for reviser replies."""

    def test_mapping_reply(self) -> None:
        document = refine("raw text", reviser=_reply)
        assert document.source == "reviser"
        assert document.name == "Somchai Jaidee"
        assert document.sections[0].heading == "Profile"

    def test_fenced_json_reply(self) -> None:
        reply = '```json\n{"clean_text": "Hello", "sections": []}\n```'
        document = refine("raw text", reviser=lambda _prompt: reply)
        assert document.source == "reviser"
        assert document.clean_text == "Hello"
        assert document.name is None

    def test_camel_case_alias(self) -> None:
        document = refine("raw", reviser=lambda _prompt: {"cleanText": "Hello"})
        assert document.clean_text == "Hello"

    def test_prompt_contains_text(self) -> None:
        prompts = []

        def reviser(prompt: str) -> dict:
            prompts.append(prompt)
            return {"clean_text": "x"}

        refine("Invoice 42", reviser=reviser)
        assert prompts == [build_prompt("Invoice 42")]
        assert prompts[0].endswith("Invoice 42")

    @pytest.mark.parametrize(
        "reply",
        ["not json at all", "[1, 2, 3]", {"sections": []}, 42],
    )
    def test_malformed_reply_falls_back(self, reply: object) -> None:
        document = refine("Hello", reviser=lambda _prompt: reply)
        assert document.source == "fallback"
        assert document.clean_text == "Hello"

    def test_failing_reviser_falls_back(self) -> None:
        def reviser(_prompt: str) -> dict:
            raise ConnectionError("service unavailable")

        document = refine("Hello", reviser=reviser)
        assert document.source == "fallback"

    def test_model_dump(self) -> None:
        data = RefinedDocument(clean_text="x").model_dump()
        assert data == {
            "clean_text": "x",
            "sections": [],
            "name": None,
            "title": None,
            "source": "reviser",
        }
