"""Configuration loading and validation.

Loads ``settings.toml`` and validates all fields at startup, before any
postings are transformed or any store is opened.  A weight typo found
after a 10 000-posting run has already been merged is far more costly
than a startup validation failure.

The validated config is exposed as a :class:`Settings` dataclass with
typed fields for each section: ``dedup``, ``quality``, ``ingestion``,
``ollama`` and ``chroma``.  Every section is optional; missing sections
fall back to the dataclass defaults.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from jobcatalog.errors import ActionableError

# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------


@dataclass
class SimilarityWeights:
    """Relative weights of the five similarity signals from ``[dedup.weights]``."""

    company: float = 30.0
    title: float = 40.0
    location: float = 15.0
    technologies: float = 10.0
    posted_date: float = 5.0

    @property
    def total(self) -> float:
        return self.company + self.title + self.location + self.technologies + self.posted_date


@dataclass
class DedupConfig:
    """Duplicate detection thresholds from ``[dedup]``."""

    similarity_threshold: float = 0.75
    max_date_diff_days: int = 30
    min_tech_overlap: float = 0.5
    weights: SimilarityWeights = field(default_factory=SimilarityWeights)


@dataclass
class QualityConfig:
    """Quality gate from ``[quality]``."""

    min_score: int = 40


@dataclass
class IngestionConfig:
    """Pipeline tuning from ``[ingestion]``."""

    batch_size: int = 100
    max_retries: int = 3
    retry_delay: float = 1.0
    call_timeout: float = 10.0
    max_concurrency: int = 5


@dataclass
class OllamaConfig:
    """Ollama connection settings from ``[ollama]``."""

    base_url: str = "http://localhost:11434"
    embed_model: str = "nomic-embed-text"


@dataclass
class ChromaConfig:
    """ChromaDB settings from ``[chroma]``."""

    persist_dir: str = "./data/chroma_db"


@dataclass
class Settings:
    """Top-level validated configuration."""

    dedup: DedupConfig = field(default_factory=DedupConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    chroma: ChromaConfig = field(default_factory=ChromaConfig)


# ---------------------------------------------------------------------------
# Default settings path
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")


# ---------------------------------------------------------------------------
# Loading and validation
# ---------------------------------------------------------------------------


def load_settings(path: str | Path = DEFAULT_SETTINGS_PATH) -> Settings:
    """Load and validate settings from a TOML file.

    Raises :class:`~jobcatalog.errors.ActionableError`:
      - CONFIG if the file is missing or a section has the wrong shape
      - VALIDATION if field values are out of range
      - PARSE if the TOML is malformed

    Returns a fully validated :class:`Settings` instance.
    """
    filepath = Path(path)
    if not filepath.exists():
        raise ActionableError.config(
            field_name="settings_path",
            reason=f"Settings file not found: {filepath}",
            suggestion=f"Create {filepath} or copy from config/settings.toml",
        )

    raw_text = filepath.read_text(encoding="utf-8")
    try:
        data = tomllib.loads(raw_text)
    except tomllib.TOMLDecodeError as exc:
        raise ActionableError.parse(
            source="settings",
            location="TOML syntax",
            raw_error=str(exc),
            suggestion=f"Fix TOML syntax in {filepath}",
        ) from None

    return _validate(data)


def _validate(data: dict[str, object]) -> Settings:
    """Validate raw TOML data and return a Settings instance."""

    # -- dedup section -------------------------------------------------------
    dedup_data = _optional_section(data, "dedup")
    weights_data = _optional_section(dedup_data, "weights", parent="dedup")

    weights = SimilarityWeights(
        company=float(weights_data.get("company", 30.0)),
        title=float(weights_data.get("title", 40.0)),
        location=float(weights_data.get("location", 15.0)),
        technologies=float(weights_data.get("technologies", 10.0)),
        posted_date=float(weights_data.get("posted_date", 5.0)),
    )
    for weight_name in ("company", "title", "location", "technologies", "posted_date"):
        value = getattr(weights, weight_name)
        if value < 0.0:
            raise ActionableError.validation(
                field_name=f"dedup.weights.{weight_name}",
                reason=f"is {value} — must be >= 0.0",
                suggestion=f"Set [dedup.weights].{weight_name} to a non-negative number",
            )
    if weights.total <= 0.0:
        raise ActionableError.validation(
            field_name="dedup.weights",
            reason="all weights are zero — similarity would be undefined",
            suggestion="Give at least one signal in [dedup.weights] a positive weight",
        )

    dedup = DedupConfig(
        similarity_threshold=float(dedup_data.get("similarity_threshold", 0.75)),
        max_date_diff_days=int(dedup_data.get("max_date_diff_days", 30)),
        min_tech_overlap=float(dedup_data.get("min_tech_overlap", 0.5)),
        weights=weights,
    )
    for ratio_name in ("similarity_threshold", "min_tech_overlap"):
        value = getattr(dedup, ratio_name)
        if not 0.0 <= value <= 1.0:
            raise ActionableError.validation(
                field_name=f"dedup.{ratio_name}",
                reason=f"is {value} — must be between 0.0 and 1.0",
                suggestion=f"Set [dedup].{ratio_name} to a value between 0.0 and 1.0",
            )
    if dedup.max_date_diff_days < 0:
        raise ActionableError.validation(
            field_name="dedup.max_date_diff_days",
            reason=f"is {dedup.max_date_diff_days} — must be >= 0",
            suggestion="Set [dedup].max_date_diff_days to a number of days",
        )

    # -- quality section -----------------------------------------------------
    quality_data = _optional_section(data, "quality")
    quality = QualityConfig(min_score=int(quality_data.get("min_score", 40)))
    if not 0 <= quality.min_score <= 100:
        raise ActionableError.validation(
            field_name="quality.min_score",
            reason=f"is {quality.min_score} — must be between 0 and 100",
            suggestion="Set [quality].min_score to an integer between 0 and 100",
        )

    # -- ingestion section ---------------------------------------------------
    ingestion_data = _optional_section(data, "ingestion")
    ingestion = IngestionConfig(
        batch_size=int(ingestion_data.get("batch_size", 100)),
        max_retries=int(ingestion_data.get("max_retries", 3)),
        retry_delay=float(ingestion_data.get("retry_delay", 1.0)),
        call_timeout=float(ingestion_data.get("call_timeout", 10.0)),
        max_concurrency=int(ingestion_data.get("max_concurrency", 5)),
    )
    for positive_name in ("batch_size", "max_retries", "max_concurrency"):
        value = getattr(ingestion, positive_name)
        if value < 1:
            raise ActionableError.validation(
                field_name=f"ingestion.{positive_name}",
                reason=f"is {value} — must be >= 1",
                suggestion=f"Set [ingestion].{positive_name} to a positive integer",
            )
    if ingestion.retry_delay < 0.0:
        raise ActionableError.validation(
            field_name="ingestion.retry_delay",
            reason=f"is {ingestion.retry_delay} — must be >= 0",
            suggestion="Set [ingestion].retry_delay to a number of seconds",
        )
    if ingestion.call_timeout <= 0.0:
        raise ActionableError.validation(
            field_name="ingestion.call_timeout",
            reason=f"is {ingestion.call_timeout} — must be > 0",
            suggestion="Set [ingestion].call_timeout to a positive number of seconds",
        )

    # -- ollama section ------------------------------------------------------
    ollama_data = _optional_section(data, "ollama")
    base_url = str(ollama_data.get("base_url", "http://localhost:11434"))
    if not base_url.startswith(("http://", "https://")):
        raise ActionableError.validation(
            field_name="ollama.base_url",
            reason=f"'{base_url}' is missing a scheme (http:// or https://)",
            suggestion="Set [ollama].base_url to a URL starting with http:// or https://",
        )
    ollama = OllamaConfig(
        base_url=base_url,
        embed_model=str(ollama_data.get("embed_model", "nomic-embed-text")),
    )

    # -- chroma section ------------------------------------------------------
    chroma_data = _optional_section(data, "chroma")
    chroma = ChromaConfig(
        persist_dir=str(chroma_data.get("persist_dir", "./data/chroma_db")),
    )

    return Settings(
        dedup=dedup,
        quality=quality,
        ingestion=ingestion,
        ollama=ollama,
        chroma=chroma,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _optional_section(
    data: dict[str, object], name: str, *, parent: str | None = None
) -> dict[str, object]:
    """Return a section that may be absent, or raise CONFIG if it is not a table."""
    section = data.get(name, {})
    if not isinstance(section, dict):
        qualified = f"{parent}.{name}" if parent else name
        raise ActionableError.config(
            field_name=qualified,
            reason=f"[{qualified}] must be a table, not {type(section).__name__}",
            suggestion=f"Define [{qualified}] as a TOML table",
        )
    return section
