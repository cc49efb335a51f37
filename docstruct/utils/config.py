"""Configuration management for the document structuring engine.

Loads and validates YAML configuration with sensible defaults for
normalization, field and line-item extraction, reconciliation, and
section splitting, plus the HTTP server.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class NormalizationConfig(BaseModel):
    """Configuration for OCR text normalization."""

    open_line_min_chars: int = 30


class ExtractionConfig(BaseModel):
    """Configuration for field and line-item extraction."""

    default_lang: str = "auto"
    item_abs_tolerance: float = 0.05
    item_rel_tolerance: float = 0.02
    qty_first_window: int = 24
    desc_first_window: int = 40
    resume_scan_lines: int = 8


def _default_field_weights() -> dict[str, float]:
    return {
        "doc_no": 0.05,
        "date": 0.05,
        "subtotal": 0.10,
        "vat": 0.05,
        "total": 0.10,
    }


class ValidationConfig(BaseModel):
    """Configuration for the totals reconciliation engine."""

    abs_tolerance: float = 0.05
    rel_tolerance: float = 0.02
    max_tax_ratio: float = 0.35
    tax_sanity_ratio: float = 0.8
    confidence_baseline: float = 0.6
    field_weights: dict[str, float] = Field(default_factory=_default_field_weights)
    warning_penalty: float = 0.05
    fix_bonus: float = 0.03


class SectionConfig(BaseModel):
    """Configuration for the section splitter."""

    heading_max_chars: int = 24
    colon_heading_max_chars: int = 40
    memo_signature_window: int = 6


class ApiConfig(BaseModel):
    """Configuration for the HTTP server."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Top-level application configuration."""

    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    sections: SectionConfig = Field(default_factory=SectionConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
