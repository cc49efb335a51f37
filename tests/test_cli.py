"""Tests for the structuring CLI and CSV export."""

import csv
import json
from pathlib import Path

import pytest

from docstruct.cli import (
    _find_documents,
    _write_csv,
    main,
    parse_single,
    process_folder,
)


class TestFindDocuments:
    """Tests for the _find_documents helper."""

    def test_finds_text_files(self, tmp_path: Path) -> None:
        (tmp_path / "b.txt").write_text("b")
        (tmp_path / "a.TXT").write_text("a")
        (tmp_path / "scan.png").write_bytes(b"\x89PNG")
        found = _find_documents(tmp_path)
        assert [p.name for p in found] == ["a.TXT", "b.txt"]

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert _find_documents(tmp_path) == []


class TestWriteCsv:
    """Tests for the _write_csv helper."""

    def test_writes_rows(self, tmp_path: Path) -> None:
        output = tmp_path / "out" / "results.csv"
        _write_csv([{"filename": "a.txt", "status": "success"}], output)
        with open(output, encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["filename"] == "a.txt"
        assert "total" in rows[0]

    def test_no_results_writes_nothing(self, tmp_path: Path) -> None:
        output = tmp_path / "results.csv"
        _write_csv([], output)
        assert not output.exists()


class TestProcessFolder:
    """Tests for batch folder processing."""

    def test_process_folder(
        self, tmp_path: Path, invoice_text: str, memo_text: str
    ) -> None:
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "invoice.txt").write_text(invoice_text, encoding="utf-8")
        (docs / "memo.txt").write_text(memo_text, encoding="utf-8")
        output = tmp_path / "results.csv"

        summary = process_folder(docs, output)

        assert summary == {"total": 2, "successful": 2, "failed": 0}
        with open(output, encoding="utf-8") as f:
            rows = {row["filename"]: row for row in csv.DictReader(f)}
        assert rows["invoice.txt"]["doc_type"] == "invoice"
        assert rows["invoice.txt"]["total"] == "535.0"
        assert rows["invoice.txt"]["line_items"] == "2"
        assert rows["memo.txt"]["doc_type"] == "thai_memo"
        assert rows["memo.txt"]["agency"] == "กองคลัง สำนักงานปลัด"
        assert rows["memo.txt"]["confidence"] == ""

    def test_empty_folder(self, tmp_path: Path) -> None:
        output = tmp_path / "results.csv"
        summary = process_folder(tmp_path, output)
        assert summary == {"total": 0, "successful": 0, "failed": 0}
        assert not output.exists()


class TestParseSingle:
    """Tests for structuring one file."""

    def test_parse_single(self, tmp_path: Path, letter_text: str) -> None:
        path = tmp_path / "letter.txt"
        path.write_text(letter_text, encoding="utf-8")
        result = parse_single(path)
        assert result.fields.subject == "Service renewal"


class TestMain:
    """Tests for argument parsing and dispatch."""

    def test_parse_to_file(self, tmp_path: Path, invoice_text: str) -> None:
        path = tmp_path / "invoice.txt"
        path.write_text(invoice_text, encoding="utf-8")
        output = tmp_path / "out" / "invoice.json"

        main(["parse", str(path), "-o", str(output)])

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["fields"]["doc_no"] == "IV-2024-0042"
        assert data["validation"]["warnings"] == []

    def test_thai_text_not_escaped(self, tmp_path: Path, memo_text: str) -> None:
        path = tmp_path / "memo.txt"
        path.write_text(memo_text, encoding="utf-8")
        output = tmp_path / "memo.json"

        main(["parse", str(path), "-l", "tha", "-o", str(output)])

        assert "บันทึกข้อความ" in output.read_text(encoding="utf-8")

    def test_summary(
        self, tmp_path: Path, invoice_text: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "invoice.txt"
        path.write_text(invoice_text, encoding="utf-8")

        main(["parse", str(path), "--summary"])

        assert "Type invoice" in capsys.readouterr().out

    def test_batch(self, tmp_path: Path, letter_text: str) -> None:
        (tmp_path / "letter.txt").write_text(letter_text, encoding="utf-8")
        output = tmp_path / "batch.csv"

        main(["batch", str(tmp_path), "-o", str(output)])

        assert output.exists()

    def test_missing_file_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["parse", str(tmp_path / "nope.txt")])
        assert exc_info.value.code == 1

    def test_missing_directory_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["batch", str(tmp_path / "nope")])
        assert exc_info.value.code == 1

    def test_no_command_prints_help(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
