"""Command-line interface for structuring OCR transcriptions.

Provides subcommands for structuring a single text file to JSON and for
processing folders of transcriptions with CSV export.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from docstruct.extraction.money import MoneyField
from docstruct.parser import DocumentParser, ParseResult, summarize
from docstruct.utils.config import load_config
from docstruct.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.txt",)
_META_COLUMNS = [
    "filename",
    "status",
    "doc_type",
    "processing_time_s",
    "confidence",
    "warnings",
    "fixes",
    "line_items",
    "error",
]
_FIELD_COLUMNS = [
    "doc_no",
    "date",
    "due_date",
    "seller",
    "buyer",
    "subtotal",
    "vat",
    "discount",
    "total",
    "email",
    "phone",
    "name",
    "title",
    "subject",
    "recipient",
    "sender",
    "agency",
    "ref_no",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all transcription files in a directory.

    Args:
        input_dir: Directory to scan for transcriptions.

    Returns:
        Sorted list of file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _read_text(file_path: Path) -> str:
    return file_path.read_text(encoding="utf-8", errors="replace")


def _row(file_path: Path, result: ParseResult) -> dict[str, object]:
    """Flatten a parse result into one CSV row."""
    validation = result.validation
    row: dict[str, object] = {
        "filename": file_path.name,
        "status": "success",
        "doc_type": result.fields.doc_type.value,
        "confidence": validation.confidence if validation else None,
        "warnings": len(validation.warnings) if validation else 0,
        "fixes": len(validation.fixes) if validation else 0,
        "line_items": len(result.line_items),
        "error": None,
    }
    for column in _FIELD_COLUMNS:
        value = getattr(result.fields, column)
        if isinstance(value, MoneyField):
            value = value.value if value.value is not None else value.raw
        row[column] = value
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    lang: str = "auto",
    verbose: bool = False,
    config_path: Path | None = None,
) -> dict[str, int]:
    """Structure all transcriptions in a folder and export results to CSV.

    Args:
        input_dir: Directory containing ``.txt`` transcriptions.
        output_csv: Path for the output CSV file.
        lang: Label language preference.
        verbose: Whether to print per-file progress.
        config_path: Optional configuration file.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    parser = DocumentParser(load_config(config_path))

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No transcriptions found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d transcriptions to process", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            result = parser.parse(_read_text(file_path), lang)
            row = _row(file_path, result)
            row["processing_time_s"] = round(time.time() - start_time, 3)
            results.append(row)
            successful += 1
        except (OSError, TypeError) as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            results.append(
                {
                    "filename": file_path.name,
                    "status": "failed",
                    "error": str(exc),
                }
            )
            failed += 1

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write batch results to a CSV file.

    Args:
        results: List of result rows.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    columns = _META_COLUMNS + _FIELD_COLUMNS
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout."""
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def parse_single(
    file_path: Path, lang: str = "auto", config_path: Path | None = None
) -> ParseResult:
    """Structure a single transcription file."""
    parser = DocumentParser(load_config(config_path))
    return parser.parse(_read_text(file_path), lang)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Structure Thai/English OCR transcriptions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="Configuration YAML file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    single_parser = subparsers.add_parser("parse", help="Structure a single text file")
    single_parser.add_argument("file", type=Path, help="Transcription to structure")
    single_parser.add_argument(
        "-l",
        "--lang",
        choices=["auto", "tha", "eng"],
        default="auto",
        help="Preferred label language (default: auto)",
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")
    single_parser.add_argument(
        "--summary", action="store_true", help="Print a one-line summary instead"
    )

    batch_parser = subparsers.add_parser(
        "batch", help="Structure a folder of transcriptions"
    )
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with .txt files"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-l",
        "--lang",
        choices=["auto", "tha", "eng"],
        default="auto",
        help="Preferred label language (default: auto)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir, args.output, args.lang, args.verbose, args.config
        )
    elif args.command == "parse":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = parse_single(args.file, args.lang, args.config)
        if args.summary:
            print(summarize(result))
            return
        output_str = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str, encoding="utf-8")
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
