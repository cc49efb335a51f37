"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from docstruct.utils.config import (
    ApiConfig,
    AppConfig,
    ExtractionConfig,
    NormalizationConfig,
    SectionConfig,
    ValidationConfig,
    load_config,
)


class TestExtractionConfig:
    """Tests for ExtractionConfig defaults and overrides."""

    def test_defaults(self) -> None:
        cfg = ExtractionConfig()
        assert cfg.default_lang == "auto"
        assert cfg.item_abs_tolerance == 0.05
        assert cfg.item_rel_tolerance == 0.02
        assert cfg.qty_first_window == 24
        assert cfg.desc_first_window == 40

    def test_override(self) -> None:
        cfg = ExtractionConfig(default_lang="tha", qty_first_window=10)
        assert cfg.default_lang == "tha"
        assert cfg.qty_first_window == 10


class TestValidationConfig:
    """Tests for ValidationConfig defaults."""

    def test_defaults(self) -> None:
        cfg = ValidationConfig()
        assert cfg.max_tax_ratio == 0.35
        assert cfg.tax_sanity_ratio == 0.8
        assert cfg.confidence_baseline == 0.6
        assert sum(cfg.field_weights.values()) == pytest.approx(0.35)

    def test_weights_not_shared(self) -> None:
        first = ValidationConfig()
        first.field_weights["doc_no"] = 1.0
        assert ValidationConfig().field_weights["doc_no"] == 0.05

    def test_rejects_bad_types(self) -> None:
        with pytest.raises(ValidationError):
            ValidationConfig(abs_tolerance="loose")


class TestAppConfig:
    """Tests for the top-level AppConfig."""

    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert isinstance(cfg.normalization, NormalizationConfig)
        assert isinstance(cfg.extraction, ExtractionConfig)
        assert isinstance(cfg.validation, ValidationConfig)
        assert isinstance(cfg.sections, SectionConfig)
        assert isinstance(cfg.api, ApiConfig)
        assert cfg.log_level == "INFO"
        assert cfg.api.port == 8000

    def test_nested_override(self) -> None:
        cfg = AppConfig(
            sections=SectionConfig(memo_signature_window=3),
            log_level="DEBUG",
        )
        assert cfg.sections.memo_signature_window == 3
        assert cfg.log_level == "DEBUG"


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_load_default_config(self, config_dir: Path) -> None:
        cfg = load_config(config_dir / "config.yaml")
        assert isinstance(cfg, AppConfig)
        assert cfg.extraction.default_lang == "auto"
        assert cfg.validation.field_weights == ValidationConfig().field_weights

    def test_load_missing_file_returns_defaults(self) -> None:
        cfg = load_config(Path("/nonexistent/path/config.yaml"))
        assert isinstance(cfg, AppConfig)
        assert cfg.extraction.default_lang == "auto"

    def test_load_custom_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "normalization": {"open_line_min_chars": 20},
            "validation": {"max_tax_ratio": 0.25},
            "api": {"port": 9000},
            "log_level": "DEBUG",
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_config(config_file)
        assert cfg.normalization.open_line_min_chars == 20
        assert cfg.validation.max_tax_ratio == 0.25
        assert cfg.validation.rel_tolerance == 0.02
        assert cfg.api.port == 9000
        assert cfg.log_level == "DEBUG"

    def test_load_empty_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        cfg = load_config(config_file)
        assert isinstance(cfg, AppConfig)

    def test_load_none_defaults_to_standard_path(self) -> None:
        cfg = load_config()
        assert isinstance(cfg, AppConfig)
