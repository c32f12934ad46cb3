"""Actionable error hierarchy for the job catalog.

Errors are classified by **recovery path**, not by origin.
Each error type carries structured guidance for three audiences:
  - The calling code (typed ``error_type`` for routing)
  - The human operator (``suggestion`` + ``troubleshooting`` steps)
  - An AI agent (``ai_guidance`` with concrete next actions)

Item-scoped failures inside the ingestion pipeline are never raised to
the caller; they are caught and summarized in the run result.  The
factories here are what the pipeline catches.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class ErrorType(StrEnum):
    """Recovery-path categories — what to *do*, not where it came from."""

    CONFIG = "config"
    CONNECTION = "connection"
    EMBEDDING = "embedding"
    INDEX = "index"
    PARSE = "parse"
    VALIDATION = "validation"
    DETECTION = "detection"
    PERSISTENCE = "persistence"
    UNEXPECTED = "unexpected"


# ---------------------------------------------------------------------------
# Guidance dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AIGuidance:
    """Machine-readable guidance for an AI agent consuming this error."""

    action_required: str
    command: str | None = None
    discovery_tool: str | None = None
    checks: list[str] | None = None
    steps: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"action_required": self.action_required}
        if self.command is not None:
            result["command"] = self.command
        if self.discovery_tool is not None:
            result["discovery_tool"] = self.discovery_tool
        if self.checks is not None:
            result["checks"] = self.checks
        if self.steps is not None:
            result["steps"] = self.steps
        return result


@dataclass(frozen=True)
class Troubleshooting:
    """Sequential, human-readable recovery steps for the operator."""

    steps: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"steps": self.steps}


# ---------------------------------------------------------------------------
# Base actionable error
# ---------------------------------------------------------------------------


@dataclass
class ActionableError(Exception):
    """Structured error with embedded recovery guidance.

    Use the factory classmethods rather than constructing directly —
    they encode domain knowledge so callers don't have to.
    """

    error: str
    error_type: ErrorType
    service: str

    success: bool = field(default=False, init=False)
    suggestion: str | None = None
    ai_guidance: AIGuidance | None = None
    troubleshooting: Troubleshooting | None = None
    context: dict[str, Any] | None = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __post_init__(self) -> None:
        super().__init__(self.error)

    # -- serialisation -------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Compact JSON-ready dict — ``None`` values are excluded."""
        result: dict[str, Any] = {
            "success": self.success,
            "error": self.error,
            "error_type": self.error_type.value,
            "service": self.service,
            "timestamp": self.timestamp,
        }
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        if self.ai_guidance is not None:
            result["ai_guidance"] = self.ai_guidance.to_dict()
        if self.troubleshooting is not None:
            result["troubleshooting"] = self.troubleshooting.to_dict()
        if self.context is not None:
            result["context"] = self.context
        return result

    # -- factory methods -----------------------------------------------------

    @classmethod
    def config(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """settings.toml is missing, or a section of it has the wrong shape."""
        return cls(
            error=f"Configuration error — {field_name}: {reason}",
            error_type=ErrorType.CONFIG,
            service="settings.toml",
            suggestion=suggestion or f"Fix '{field_name}' in the settings file passed with --config",
            ai_guidance=AIGuidance(
                action_required=f"Repair '{field_name}' in the settings file",
                checks=[
                    "Does the --config path point at an existing file?",
                    f"Is '{field_name}' a TOML table where a table is expected?",
                    "Compare against the shipped config/settings.toml",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Open the settings file given to --config (default config/settings.toml)",
                    f"2. Go to '{field_name}': {reason}",
                    "3. Delete the section to fall back to the built-in defaults, or correct it",
                    "4. Re-run the ingest",
                ]
            ),
        )

    @classmethod
    def connection(
        cls,
        service: str,
        url: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """A backend the pipeline depends on (Ollama, ChromaDB) did not answer."""
        where = f" at {url}" if url else ""
        return cls(
            error=f"Cannot connect to {service}{where}: {raw_error}",
            error_type=ErrorType.CONNECTION,
            service=service,
            suggestion=suggestion or f"Start {service}{where} before ingesting",
            ai_guidance=AIGuidance(
                action_required=f"Bring {service} up, then re-run the ingest",
                command=f"curl -s {url}" if url else None,
                checks=[
                    f"Is {service} running? For Ollama: ollama serve",
                    "Does [ollama].base_url in the settings file match the running service?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Start {service}",
                    f"2. Check it answers{where}",
                    "3. Re-run: python -m jobcatalog ingest <file>",
                ]
            ),
        )

    @classmethod
    def embedding(
        cls,
        model: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Ollama could not embed a posting or technology document."""
        return cls(
            error=f"Embedding call failed for model '{model}': {raw_error}",
            error_type=ErrorType.EMBEDDING,
            service="Ollama",
            suggestion=suggestion or f"Pull '{model}' and make sure Ollama is not overloaded",
            ai_guidance=AIGuidance(
                action_required=f"Make '{model}' available in Ollama",
                command=f"ollama pull {model}",
                checks=[
                    f"Does 'ollama list' show {model}?",
                    "Is [ollama].embed_model spelled as Ollama names it?",
                    "Are retries exhausted because Ollama is busy? Lower --batch-size",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. ollama pull {model}",
                    "2. Lower --batch-size if Ollama keeps returning 503",
                    "3. Re-run the ingest; stored postings are updated, not duplicated",
                ]
            ),
        )

    @classmethod
    def index(
        cls,
        collection: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """ChromaDB collection missing when a read needs it."""
        return cls(
            error=f"Collection '{collection}' is empty or missing — ingest postings first",
            error_type=ErrorType.INDEX,
            service="ChromaDB",
            suggestion=suggestion or f"Run 'python -m jobcatalog ingest' to populate '{collection}'",
            ai_guidance=AIGuidance(
                action_required=f"Populate the '{collection}' collection before reading it",
                command="python -m jobcatalog ingest postings.json",
                checks=[
                    f"Does data/chroma_db contain the '{collection}' collection?",
                    "Was the persist directory moved or reset?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Run: python -m jobcatalog ingest <file>",
                    f"2. Verify the '{collection}' collection was created",
                    "3. Re-run the command",
                ]
            ),
        )

    @classmethod
    def parse(
        cls,
        source: str,
        location: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Input could not be parsed — malformed file or unexpected source payload."""
        return cls(
            error=f"Parse failure on {source} — {location}: {raw_error}",
            error_type=ErrorType.PARSE,
            service=source,
            suggestion=suggestion or f"Check the {source} payload format at {location}",
            ai_guidance=AIGuidance(
                action_required=f"Inspect {source} input at {location}",
                checks=[
                    "Is the file valid JSON / TOML?",
                    f"Does the {source} payload still use the expected field names?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Open the {source} input",
                    f"2. Inspect {location}",
                    "3. Fix the syntax or update the source mapper",
                ]
            ),
        )

    @classmethod
    def validation(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Input validation failure (posting fields, TOML values, CLI args)."""
        return cls(
            error=f"Validation error — {field_name}: {reason}",
            error_type=ErrorType.VALIDATION,
            service="validation",
            suggestion=suggestion or f"Fix '{field_name}': {reason}",
            ai_guidance=AIGuidance(
                action_required=f"Correct the value for '{field_name}'",
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Check the value of '{field_name}'",
                    f"2. Issue: {reason}",
                    "3. Correct and retry",
                ]
            ),
        )

    @classmethod
    def detection(
        cls,
        detector: str,
        posting_id: str,
        raw_error: str,
        *,
        attempts: int | None = None,
        suggestion: str | None = None,
    ) -> ActionableError:
        """A tagger / classifier / resolver call kept failing for one posting."""
        tries = f" after {attempts} attempts" if attempts is not None else ""
        return cls(
            error=f"Detection failed for posting {posting_id} ({detector}){tries}: {raw_error}",
            error_type=ErrorType.DETECTION,
            service=detector,
            suggestion=suggestion or f"Check that the {detector} is healthy and re-ingest the posting",
            ai_guidance=AIGuidance(
                action_required=f"Re-run ingestion for posting {posting_id} once {detector} recovers",
                checks=[
                    f"Is the {detector} backend reachable?",
                    "Did the call time out? Consider raising [ingestion].call_timeout",
                ],
            ),
            context={"posting_id": posting_id, "detector": detector},
        )

    @classmethod
    def persistence(
        cls,
        operation: str,
        count: int,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """A bulk store operation failed as a whole."""
        return cls(
            error=f"{operation} failed for {count} postings: {raw_error}",
            error_type=ErrorType.PERSISTENCE,
            service="posting-store",
            suggestion=suggestion or "Verify the posting store is writable and re-run the batch",
            ai_guidance=AIGuidance(
                action_required="Re-run the failed batch once the store is healthy",
                checks=[
                    "Is the ChromaDB persist directory writable?",
                    "Is the disk full?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Check the ChromaDB persist directory permissions and free space",
                    "2. Re-run: python -m jobcatalog ingest <file>",
                ]
            ),
        )

    @classmethod
    def unexpected(
        cls,
        service: str,
        operation: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Anything no other factory classifies."""
        return cls(
            error=f"Unexpected error in {service} during {operation}: {raw_error}",
            error_type=ErrorType.UNEXPECTED,
            service=service,
            suggestion=suggestion or "Re-run with --log-dir and inspect the traceback in the log file",
            ai_guidance=AIGuidance(
                action_required=f"Inspect the {operation} traceback before retrying",
                checks=[
                    "Re-run with --log-dir data/logs to capture the full traceback",
                    f"Does {operation} fail for every posting or only for some?",
                ],
            ),
        )

    @classmethod
    def from_exception(
        cls,
        error: Exception,
        service: str,
        operation: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Auto-classify an exception by keyword patterns.

        A caller-supplied ``suggestion`` is always preserved — it carries
        context the generic classifier cannot infer.
        """
        if isinstance(error, ActionableError):
            return error

        error_str = str(error).lower()
        raw_error = str(error) or type(error).__name__

        if isinstance(error, TimeoutError) or any(
            kw in error_str for kw in ("timeout", "timed out")
        ):
            return cls.connection(service, "", raw_error, suggestion=suggestion)

        if any(kw in error_str for kw in ("connection refused", "unreachable", "resolve")):
            return cls.connection(service, "", raw_error, suggestion=suggestion)

        return cls.unexpected(service, operation, raw_error, suggestion=suggestion)
