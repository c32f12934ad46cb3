"""Configuration validation tests.

Maps to BDD spec: TestSettingsLoading
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from jobcatalog.config import load_settings
from jobcatalog.errors import ActionableError, ErrorType

# A full settings TOML for tests
_VALID_SETTINGS = """\
[dedup]
similarity_threshold = 0.8
max_date_diff_days = 14
min_tech_overlap = 0.4

[dedup.weights]
company = 30
title = 40
location = 15
technologies = 10
posted_date = 5

[quality]
min_score = 50

[ingestion]
batch_size = 25
max_retries = 2
retry_delay = 0.5
call_timeout = 5.0
max_concurrency = 3

[ollama]
base_url = "http://localhost:11434"
embed_model = "nomic-embed-text"

[chroma]
persist_dir = "./data/chroma_db"
"""


def _write_settings(tmpdir: str, content: str) -> Path:
    """Write settings content to a temp file and return the path."""
    path = Path(tmpdir) / "settings.toml"
    path.write_text(content, encoding="utf-8")
    return path


class TestSettingsLoading:
    """REQUIREMENT: Invalid or missing configuration is caught at startup, not mid-run.

    WHO: The operator who misconfigured settings.toml
    WHAT: A missing file raises CONFIG; malformed TOML raises PARSE;
          out-of-range thresholds, negative weights, an all-zero weight set,
          non-positive batch sizes and a scheme-less Ollama URL raise
          VALIDATION naming the field; absent sections use the defaults
    WHY: A weight typo found after a 10 000-posting run has been merged
         is far more costly than a startup validation failure
    """

    def test_valid_settings_load_without_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = load_settings(_write_settings(tmpdir, _VALID_SETTINGS))
            assert settings.dedup.similarity_threshold == 0.8
            assert settings.dedup.max_date_diff_days == 14
            assert settings.dedup.weights.title == 40.0
            assert settings.quality.min_score == 50
            assert settings.ingestion.batch_size == 25
            assert settings.ingestion.max_concurrency == 3
            assert settings.chroma.persist_dir == "./data/chroma_db"

    def test_empty_file_uses_documented_defaults(self) -> None:
        """Every section is optional."""
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = load_settings(_write_settings(tmpdir, ""))
            assert settings.dedup.similarity_threshold == 0.75
            assert settings.dedup.max_date_diff_days == 30
            assert settings.dedup.weights.total == 100.0
            assert settings.quality.min_score == 40
            assert settings.ingestion.batch_size == 100
            assert settings.ingestion.max_retries == 3
            assert settings.ollama.embed_model == "nomic-embed-text"

    def test_shipped_settings_file_is_valid(self) -> None:
        path = Path(__file__).resolve().parent.parent / "config" / "settings.toml"
        settings = load_settings(path)
        assert settings.dedup.similarity_threshold == 0.75

    def test_missing_file_raises_config_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ActionableError) as exc_info:
                load_settings(Path(tmpdir) / "absent.toml")
            assert exc_info.value.error_type == ErrorType.CONFIG

    def test_malformed_toml_raises_parse_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_settings(tmpdir, "[dedup\nsimilarity_threshold = ")
            with pytest.raises(ActionableError) as exc_info:
                load_settings(path)
            assert exc_info.value.error_type == ErrorType.PARSE

    def test_threshold_above_one_raises_validation_error(self) -> None:
        bad = _VALID_SETTINGS.replace("similarity_threshold = 0.8", "similarity_threshold = 1.5")
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ActionableError) as exc_info:
                load_settings(_write_settings(tmpdir, bad))
            assert exc_info.value.error_type == ErrorType.VALIDATION
            assert "similarity_threshold" in exc_info.value.error

    def test_negative_weight_raises_validation_error(self) -> None:
        bad = _VALID_SETTINGS.replace("location = 15", "location = -1")
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ActionableError) as exc_info:
                load_settings(_write_settings(tmpdir, bad))
            assert "dedup.weights.location" in exc_info.value.error

    def test_all_zero_weights_raise_validation_error(self) -> None:
        zero = """\
[dedup.weights]
company = 0
title = 0
location = 0
technologies = 0
posted_date = 0
"""
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ActionableError) as exc_info:
                load_settings(_write_settings(tmpdir, zero))
            assert exc_info.value.error_type == ErrorType.VALIDATION
            assert "dedup.weights" in exc_info.value.error

    def test_zero_batch_size_raises_validation_error(self) -> None:
        bad = _VALID_SETTINGS.replace("batch_size = 25", "batch_size = 0")
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ActionableError) as exc_info:
                load_settings(_write_settings(tmpdir, bad))
            assert "ingestion.batch_size" in exc_info.value.error

    def test_min_score_above_hundred_raises_validation_error(self) -> None:
        bad = _VALID_SETTINGS.replace("min_score = 50", "min_score = 120")
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ActionableError) as exc_info:
                load_settings(_write_settings(tmpdir, bad))
            assert "quality.min_score" in exc_info.value.error

    def test_ollama_url_without_scheme_raises_validation_error(self) -> None:
        bad = _VALID_SETTINGS.replace(
            'base_url = "http://localhost:11434"',
            'base_url = "localhost:11434"',
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ActionableError) as exc_info:
                load_settings(_write_settings(tmpdir, bad))
            assert exc_info.value.error_type == ErrorType.VALIDATION
            assert "scheme" in exc_info.value.error.lower()

    def test_section_that_is_not_a_table_raises_config_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ActionableError) as exc_info:
                load_settings(_write_settings(tmpdir, 'quality = "high"\n'))
            assert exc_info.value.error_type == ErrorType.CONFIG
            assert "quality" in exc_info.value.error
