"""Actionable error hierarchy tests.

Tests that the error factory methods produce correct, structured,
recoverable errors per the actionable-error philosophy.
"""

from __future__ import annotations

from jobcatalog.errors import ActionableError, AIGuidance, ErrorType, Troubleshooting


class TestErrorFactoryMethods:
    """REQUIREMENT: Factory methods produce structured errors with embedded guidance.

    WHO: Any component catching exceptions and wrapping them for consumers
    WHAT: Each factory produces the correct error_type; suggestion is always populated;
          the message names the thing the operator must fix
    WHY: An error that does not say which posting, field or service failed
         cannot be acted upon from a batch summary
    """

    def test_config_error_names_the_field(self) -> None:
        err = ActionableError.config("dedup.weights", "must be a table")
        assert err.error_type == ErrorType.CONFIG
        assert "dedup.weights" in err.error
        assert err.suggestion

    def test_connection_error_includes_url(self) -> None:
        err = ActionableError.connection("Ollama", "http://localhost:11434", "refused")
        assert err.error_type == ErrorType.CONNECTION
        assert "http://localhost:11434" in err.error

    def test_embedding_error_names_model(self) -> None:
        err = ActionableError.embedding("nomic-embed-text", "timeout after 3 retries")
        assert "nomic-embed-text" in err.error

    def test_index_error_names_collection(self) -> None:
        err = ActionableError.index("postings")
        assert err.error_type == ErrorType.INDEX
        assert "postings" in err.error

    def test_parse_error_names_source_and_location(self) -> None:
        err = ActionableError.parse("adzuna", "results[3].salary_min", "not a number")
        assert "adzuna" in err.error
        assert "results[3].salary_min" in err.error

    def test_validation_error_names_field(self) -> None:
        err = ActionableError.validation("title", "must not be empty")
        assert err.error_type == ErrorType.VALIDATION
        assert err.error == "Validation error — title: must not be empty"

    def test_detection_error_reports_posting_and_attempts(self) -> None:
        err = ActionableError.detection("FakeTagger", "p-7", "boom", attempts=3)
        assert err.error_type == ErrorType.DETECTION
        assert err.error == "Detection failed for posting p-7 (FakeTagger) after 3 attempts: boom"
        assert err.context == {"posting_id": "p-7", "detector": "FakeTagger"}

    def test_detection_error_without_attempts(self) -> None:
        err = ActionableError.detection("FakeTagger", "p-7", "boom")
        assert err.error == "Detection failed for posting p-7 (FakeTagger): boom"

    def test_persistence_error_reports_count(self) -> None:
        err = ActionableError.persistence("Bulk upsert", 12, "disk full")
        assert err.error_type == ErrorType.PERSISTENCE
        assert err.error == "Bulk upsert failed for 12 postings: disk full"

    def test_all_factories_set_success_false(self) -> None:
        err = ActionableError.unexpected("test", "op", "boom")
        assert err.success is False

    def test_error_is_raisable_with_message(self) -> None:
        err = ActionableError.validation("company", "must not be empty")
        assert str(err) == err.error


class TestSerialization:
    """REQUIREMENT: Errors serialize cleanly for logs and batch summaries.

    WHO: The CLI printing failures; logging consumers
    WHAT: to_dict() omits None values and nests guidance as dicts;
          AIGuidance and Troubleshooting serialize only populated fields
    WHY: Noise in serialized errors hides the one line the operator needs
    """

    def test_to_dict_excludes_none_values(self) -> None:
        d = ActionableError.config("weight", "too high").to_dict()
        assert None not in d.values()
        assert d["error_type"] == "config"
        assert isinstance(d["ai_guidance"], dict)
        assert isinstance(d["troubleshooting"], dict)

    def test_ai_guidance_includes_only_populated_fields(self) -> None:
        d = AIGuidance(action_required="fix it", command="run fix").to_dict()
        assert d == {"action_required": "fix it", "command": "run fix"}

    def test_troubleshooting_serializes_steps(self) -> None:
        assert Troubleshooting(steps=["1. a", "2. b"]).to_dict() == {"steps": ["1. a", "2. b"]}


class TestFromException:
    """REQUIREMENT: Arbitrary exceptions are classified into actionable errors.

    WHO: Code wrapping third-party failures (Chroma, Ollama, source payloads)
    WHAT: Timeouts and refused connections become CONNECTION; anything
          else becomes UNEXPECTED; an ActionableError passes through
          unchanged; a caller suggestion is preserved
    WHY: Callers have context that generic classifiers cannot infer
    """

    def test_timeout_becomes_connection(self) -> None:
        err = ActionableError.from_exception(TimeoutError(), "Ollama", "embed")
        assert err.error_type == ErrorType.CONNECTION

    def test_refused_becomes_connection(self) -> None:
        err = ActionableError.from_exception(OSError("Connection refused"), "Ollama", "embed")
        assert err.error_type == ErrorType.CONNECTION

    def test_other_errors_become_unexpected(self) -> None:
        err = ActionableError.from_exception(KeyError("x"), "chroma", "upsert")
        assert err.error_type == ErrorType.UNEXPECTED
        assert "upsert" in err.error

    def test_actionable_error_passes_through(self) -> None:
        original = ActionableError.validation("title", "empty")
        assert ActionableError.from_exception(original, "x", "y") is original

    def test_caller_suggestion_is_preserved(self) -> None:
        err = ActionableError.from_exception(
            ValueError("bad"), "test", "test_op", suggestion="Custom hint"
        )
        assert err.suggestion == "Custom hint"
